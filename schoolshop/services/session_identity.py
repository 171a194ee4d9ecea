# schoolshop/services/session_identity.py
import secrets
import time

from schoolshop.services.storage import KeyValueStorage
from schoolshop.utils.logging import get_logger

logger = get_logger(__name__)

SESSION_KEY = "session_id"


def new_session_id(kind: str = "session") -> str:
    """kind_timestamp_random; 6 losowych bajtow wystarcza przy tej skali."""
    return f"{kind}_{time.time_ns() // 1_000_000}_{secrets.token_hex(6)}"


class SessionIdentity:
    """
    Anonimowa tozsamosc przegladarki.
    Jedna tozsamosc dla koszyka i historii zamowien.
    """

    def __init__(self, storage: KeyValueStorage, key: str = SESSION_KEY):
        self.storage = storage
        self.key = key

    def get_or_create(self) -> str:
        session_id = self.storage.get(self.key)
        if session_id:
            return session_id

        session_id = new_session_id()
        self.storage.set(self.key, session_id)
        logger.info(f"Created session identity {session_id}")
        return session_id
