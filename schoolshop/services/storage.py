# schoolshop/services/storage.py
import threading

import redis
from redis.exceptions import RedisError

from schoolshop.utils.retry import redis_retry
from schoolshop.utils.settings import REDIS_URL, STORAGE_BACKEND, COLLABORATOR_TIMEOUT_SECONDS
from schoolshop.utils.logging import get_logger

logger = get_logger(__name__)

#LUA porownaj i zapisz - GET + porownanie + SET jako jedna operacja
#ARGV[1] = '1' gdy oczekujemy istniejacej wartosci ARGV[2], '0' gdy klucza ma nie byc
_COMPARE_AND_SET_LUA = """
local current = redis.call('GET', KEYS[1])
if ARGV[1] == '0' then
    if current then
        return 0
    end
elseif current ~= ARGV[2] then
    return 0
end
redis.call('SET', KEYS[1], ARGV[3])
return 1
"""


class StorageError(Exception):
    """Trwaly magazyn klucz-wartosc jest niedostepny."""


class KeyValueStorage:
    """
    Trwaly magazyn stanu sesji:
    -koszyk (cart_<session>)
    -dane klienta do formularza (customer_<session>)
    -tokeny administratora
    """

    def get(self, key: str) -> str | None:
        raise NotImplementedError

    def set(self, key: str, value: str, ttl: int | None = None) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def compare_and_set(self, key: str, expected: str | None, value: str) -> bool:
        """Zapisuje value tylko gdy pod kluczem nadal jest expected (None = brak klucza)."""
        raise NotImplementedError


class RedisStorage(KeyValueStorage):
    def __init__(self, url: str | None = None):
        self.redis = redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
            socket_timeout=COLLABORATOR_TIMEOUT_SECONDS,
        )

    @redis_retry()
    def _get(self, key: str) -> str | None:
        return self.redis.get(key)

    def get(self, key: str) -> str | None:
        try:
            return self._get(key)
        except RedisError as e:
            raise StorageError(str(e)) from e

    def set(self, key: str, value: str, ttl: int | None = None) -> None:
        try:
            #SET key value [EX ttl]
            self.redis.set(name=key, value=value, ex=ttl)
        except RedisError as e:
            raise StorageError(str(e)) from e

    @redis_retry()
    def _delete(self, key: str) -> None:
        self.redis.delete(key)

    def delete(self, key: str) -> None:
        try:
            self._delete(key)
        except RedisError as e:
            raise StorageError(str(e)) from e

    def compare_and_set(self, key: str, expected: str | None, value: str) -> bool:
        # bez retry - to zapis
        try:
            res = self.redis.eval(
                _COMPARE_AND_SET_LUA,
                1,
                key,
                "0" if expected is None else "1",
                expected or "",
                value,
            )
        except RedisError as e:
            raise StorageError(str(e)) from e
        return bool(res)


class MemoryStorage(KeyValueStorage):
    """Magazyn w pamieci procesu (dev/testy). TTL jest ignorowany."""

    def __init__(self):
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str, ttl: int | None = None) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def compare_and_set(self, key: str, expected: str | None, value: str) -> bool:
        with self._lock:
            if self._data.get(key) != expected:
                return False
            self._data[key] = value
            return True


def create_storage(backend: str | None = None) -> KeyValueStorage:
    backend = (backend or STORAGE_BACKEND).lower()
    if backend == "memory":
        return MemoryStorage()
    if backend == "redis":
        return RedisStorage()
    raise ValueError(f"Unknown STORAGE_BACKEND: {backend}")
