from typing import Sequence

from sqlalchemy.orm import Session
from schoolshop.data.models.admin_user import AdminUserModel


class AdminRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> AdminUserModel | None:
        return self.db.get(AdminUserModel, user_id)

    def get_by_email(self, email: str) -> AdminUserModel | None:
        return (
            self.db.query(AdminUserModel)
            .filter(AdminUserModel.email == email.lower())
            .one_or_none()
        )

    def list_users(self) -> Sequence[AdminUserModel]:
        return self.db.query(AdminUserModel).order_by(AdminUserModel.name, AdminUserModel.id).all()

    def count_admins(self) -> int:
        return self.db.query(AdminUserModel).filter(AdminUserModel.role == "admin").count()

    def create_user(self, user: AdminUserModel) -> AdminUserModel:
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def save(self, user: AdminUserModel) -> AdminUserModel:
        self.db.commit()
        self.db.refresh(user)
        return user

    def delete_user(self, user: AdminUserModel) -> None:
        self.db.delete(user)
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
