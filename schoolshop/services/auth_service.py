# schoolshop/services/auth_service.py
import secrets
from typing import Sequence

import bcrypt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from schoolshop.data.models.admin_user import AdminUserModel
from schoolshop.domain.errors import (
    InvalidCredentialsError,
    NotAdminError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from schoolshop.repos.admin_repo import AdminRepo
from schoolshop.services.storage import KeyValueStorage, StorageError
from schoolshop.utils.settings import ADMIN_TOKEN_TTL_SECONDS, BCRYPT_ROUNDS
from schoolshop.utils.logging import get_logger

logger = get_logger(__name__)

BCRYPT_MAX_BYTES = 72


def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    raw = password.encode("utf-8")
    # bcrypt bierze pod uwage tylko 72 bajty
    if len(raw) > BCRYPT_MAX_BYTES:
        raise ValidationError("Password is too long")
    return bcrypt.hashpw(raw, bcrypt.gensalt(rounds=rounds)).decode("ascii")


def verify_password(password: str, encoded: str) -> bool:
    raw = password.encode("utf-8")
    if len(raw) > BCRYPT_MAX_BYTES:
        return False
    try:
        return bcrypt.checkpw(raw, encoded.encode("ascii"))
    except ValueError:
        # uszkodzony hash
        return False


def token_key(token: str) -> str:
    return f"admin_token_{token}"


class AuthService:
    """
    Konta operatorow sklepu:
    -logowanie i wylogowanie (token w magazynie klucz-wartosc z TTL)
    -dostep tylko dla roli admin
    -zarzadzanie kontami administratorow
    """

    def __init__(self, db: Session, storage: KeyValueStorage):
        self.repo = AdminRepo(db)
        self.storage = storage

    def create_admin(self, email: str, name: str, password: str, role: str = "admin") -> AdminUserModel:
        existing = self.repo.get_by_email(email)
        if existing:
            return existing
        user = AdminUserModel(
            email=email.lower(),
            name=name,
            password_hash=hash_password(password),
            role=role,
        )
        return self.repo.create_user(user)

    # --- sesje ---

    def sign_in(self, email: str, password: str) -> tuple[str, AdminUserModel]:
        user = self.repo.get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            logger.info(f"Failed admin login for {email}")
            raise InvalidCredentialsError()
        if user.role != "admin":
            logger.info(f"Login of {email} rejected, role {user.role}")
            raise NotAdminError()

        token = secrets.token_urlsafe(32)
        try:
            self.storage.set(token_key(token), str(user.id), ttl=ADMIN_TOKEN_TTL_SECONDS)
        except StorageError as e:
            logger.error(f"Cannot store admin token for {email}: {e}")
            raise PersistenceError("Sign-in is temporarily unavailable") from e
        logger.info(f"Admin {email} signed in")
        return token, user

    def sign_out(self, token: str) -> None:
        try:
            self.storage.delete(token_key(token))
        except StorageError as e:
            logger.error(f"Cannot revoke admin token: {e}")
            raise PersistenceError("Sign-out is temporarily unavailable") from e

    def get_role(self, token: str) -> str | None:
        user = self.current_user(token)
        return user.role if user else None

    def current_user(self, token: str) -> AdminUserModel | None:
        try:
            user_id = self.storage.get(token_key(token))
        except StorageError as e:
            logger.error(f"Cannot read admin token: {e}")
            raise PersistenceError("Authentication is temporarily unavailable") from e
        if not user_id:
            return None
        return self.repo.get_user(int(user_id))

    def require_admin(self, token: str | None) -> AdminUserModel:
        if not token:
            raise InvalidCredentialsError()
        user = self.current_user(token)
        if user is None:
            raise InvalidCredentialsError()
        if user.role != "admin":
            raise NotAdminError()
        return user

    # --- konta ---

    def list_accounts(self) -> Sequence[AdminUserModel]:
        return self.repo.list_users()

    def _get_account(self, user_id: int) -> AdminUserModel:
        user = self.repo.get_user(user_id)
        if user is None:
            raise NotFoundError(f"Admin account {user_id} not found")
        return user

    def create_account(self, email: str, name: str, password: str) -> AdminUserModel:
        if self.repo.get_by_email(email):
            raise ValidationError(f"Account {email} already exists")
        user = AdminUserModel(
            email=email.lower(),
            name=name.strip(),
            password_hash=hash_password(password),
            role="admin",
        )
        try:
            user = self.repo.create_user(user)
        except IntegrityError as e:
            self.repo.rollback()
            raise ValidationError(f"Account {email} already exists") from e
        logger.info(f"Admin account {user.email} created")
        return user

    def update_account(
        self,
        user_id: int,
        name: str | None = None,
        email: str | None = None,
        password: str | None = None,
    ) -> AdminUserModel:
        user = self._get_account(user_id)
        if name is not None:
            user.name = name.strip()
        if email is not None:
            user.email = email.lower()
        if password:
            user.password_hash = hash_password(password)

        try:
            user = self.repo.save(user)
        except IntegrityError as e:
            self.repo.rollback()
            raise ValidationError(f"Account {email} already exists") from e
        logger.info(f"Admin account {user_id} updated (password changed: {bool(password)})")
        return user

    def delete_account(self, user_id: int, acting_user: AdminUserModel) -> None:
        user = self._get_account(user_id)
        if user.id == acting_user.id:
            raise ValidationError("You cannot delete your own account")
        if user.role == "admin" and self.repo.count_admins() <= 1:
            raise ValidationError("The last admin account cannot be deleted")

        self.repo.delete_user(user)
        # tokeny usunietego konta przestaja dzialac - current_user nie znajdzie uzytkownika
        logger.info(f"Admin account {user_id} deleted by {acting_user.email}")
