# schoolshop/api/deps.py
from fastapi import Depends, Header, HTTPException, Request, Response
from sqlalchemy.orm import Session

from schoolshop.data.database import get_db
from schoolshop.domain.errors import CartPersistenceError, ShopError
from schoolshop.api.errors import raise_http
from schoolshop.services.auth_service import AuthService
from schoolshop.services.cart_store import CartStore
from schoolshop.services.file_storage import FileStorageClient
from schoolshop.services.session_identity import SESSION_KEY, SessionIdentity
from schoolshop.services.storage import KeyValueStorage

COOKIE_MAX_AGE = 10 * 365 * 24 * 60 * 60


class CookieStorage(KeyValueStorage):
    """Ciasteczka przegladarki jako trwaly magazyn po stronie klienta."""

    def __init__(self, request: Request, response: Response):
        self.request = request
        self.response = response
        self._written: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._written.get(key) or self.request.cookies.get(key)

    def set(self, key: str, value: str, ttl: int | None = None) -> None:
        self._written[key] = value
        self.response.set_cookie(
            key,
            value,
            max_age=ttl or COOKIE_MAX_AGE,
            httponly=True,
            samesite="lax",
        )

    def delete(self, key: str) -> None:
        self._written.pop(key, None)
        self.response.delete_cookie(key)


def get_storage(request: Request) -> KeyValueStorage:
    return request.app.state.storage


def get_file_storage() -> FileStorageClient:
    return FileStorageClient()


def get_session_id(request: Request, response: Response) -> str:
    return SessionIdentity(CookieStorage(request, response), key=SESSION_KEY).get_or_create()


def get_cart_store(
    response: Response,
    session_id: str = Depends(get_session_id),
    storage: KeyValueStorage = Depends(get_storage),
) -> CartStore:
    try:
        cart = CartStore(storage, session_id)
    except CartPersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e

    # licznik koszyka w naglowku, aktualizowany przy kazdej zmianie
    def _badge(items) -> None:
        response.headers["X-Cart-Count"] = str(sum(i.quantity for i in items.values()))

    cart.subscribe(_badge)
    return cart


def bearer_token(authorization: str | None = Header(default=None)) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def require_admin(
    token: str | None = Depends(bearer_token),
    db: Session = Depends(get_db),
    storage: KeyValueStorage = Depends(get_storage),
):
    try:
        return AuthService(db, storage).require_admin(token)
    except ShopError as e:
        raise_http(e)
