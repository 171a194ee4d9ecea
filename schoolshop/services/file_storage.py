# schoolshop/services/file_storage.py
import secrets
import time

import requests
from requests import RequestException

from schoolshop.domain.errors import FileStorageError
from schoolshop.utils.retry import http_retry
from schoolshop.utils.settings import (
    FILE_STORAGE_URL,
    FILE_STORAGE_BUCKET,
    FILE_STORAGE_KEY,
    COLLABORATOR_TIMEOUT_SECONDS,
)
from schoolshop.utils.logging import get_logger

logger = get_logger(__name__)


class FileStorageClient:
    """
    Klient object storage (HTTP):
    -upload pliku -> sciezka w buckecie
    -usuwanie po sciezce
    -publiczny URL do sciezki
    """

    def __init__(
        self,
        base_url: str | None = None,
        bucket: str | None = None,
        api_key: str | None = None,
        timeout: int = COLLABORATOR_TIMEOUT_SECONDS,
    ):
        self.base_url = (base_url or FILE_STORAGE_URL).rstrip("/")
        self.bucket = bucket or FILE_STORAGE_BUCKET
        self.api_key = api_key if api_key is not None else FILE_STORAGE_KEY
        self.timeout = timeout

    def _headers(self, content_type: str | None = None) -> dict:
        headers = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        if content_type:
            headers["Content-Type"] = content_type
        return headers

    @staticmethod
    def build_path(folder: str, prefix: str, extension: str) -> str:
        extension = extension.lstrip(".").lower() or "bin"
        name = f"{prefix}-{time.time_ns() // 1_000_000}-{secrets.token_hex(5)}.{extension}"
        return f"{folder}/{name}" if folder else name

    def public_url(self, path: str | None) -> str | None:
        if not path:
            return None
        if path.startswith("http"):
            return path
        return f"{self.base_url}/object/public/{self.bucket}/{path}"

    # bez retry - upload to zapis
    def upload(self, data: bytes, folder: str, prefix: str, extension: str, content_type: str) -> str:
        path = self.build_path(folder, prefix, extension)
        url = f"{self.base_url}/object/{self.bucket}/{path}"
        logger.info(f"FileStorage PUT {url} ({len(data)} bytes)")

        try:
            resp = requests.put(
                url,
                data=data,
                headers=self._headers(content_type),
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except RequestException as e:
            logger.error(f"Upload of {path} failed: {e}")
            raise FileStorageError(f"Upload failed: {e}") from e

        return path

    @http_retry()
    def _delete(self, path: str) -> None:
        url = f"{self.base_url}/object/{self.bucket}/{path}"
        logger.info(f"FileStorage DELETE {url}")
        resp = requests.delete(url, headers=self._headers(), timeout=self.timeout)
        if resp.status_code == 404:
            return
        resp.raise_for_status()

    def delete(self, path: str) -> None:
        try:
            self._delete(path)
        except RequestException as e:
            logger.error(f"Delete of {path} failed: {e}")
            raise FileStorageError(f"Delete failed: {e}") from e
