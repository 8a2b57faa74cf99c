"""Access to the Users table."""

import logging
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from src.models.user import User

logger = logging.getLogger(__name__)


class UserStore:
    """Reads and writes user accounts through one database session.

    Every write is a single statement committed on its own. Failed writes
    are rolled back and the SQLAlchemy error is re-raised; an
    ``IntegrityError`` means the email already exists.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def get_by_email(self, email: str) -> User | None:
        """Get a user by email."""
        return self.db.query(User).filter(User.email == email).first()

    def email_exists(self, email: str) -> bool:
        """Check if an account with this email is stored."""
        return self.db.query(User.id).filter(User.email == email).first() is not None

    def list_users(self) -> list[User]:
        """Get all users, oldest first."""
        return self.db.query(User).order_by(User.id).all()

    def count(self) -> int:
        """Count stored users."""
        return self.db.query(func.count(User.id)).scalar() or 0

    def create(
        self,
        email: str,
        password_hash: str | None = None,
        encrypted_email: str | None = None,
        is_pro: bool = False,
        first_name: str | None = None,
    ) -> User:
        """Insert a new user."""
        user = User(
            email=email,
            password=password_hash,
            encrypted_email=encrypted_email,
            is_pro=is_pro,
            first_name=first_name,
        )
        self.db.add(user)
        self._commit()
        self.db.refresh(user)
        return user

    def update_by_email(self, email: str, values: dict[str, Any]) -> int:
        """Update columns for the user with this email.

        Returns:
            Number of rows updated (0 or 1)
        """
        updates = {getattr(User, key): value for key, value in values.items()}
        try:
            count = (
                self.db.query(User)
                .filter(User.email == email)
                .update(updates, synchronize_session=False)
            )
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self._commit()
        return count

    def set_pro(self, email: str, is_pro: bool) -> int:
        """Set the pro flag for an email."""
        return self.update_by_email(email, {"is_pro": is_pro})

    def update_password(self, email: str, password_hash: str) -> int:
        """Replace the stored password digest for an email."""
        return self.update_by_email(email, {"password": password_hash})

    def upsert_pro(self, email: str, is_pro: bool = True, first_name: str | None = None) -> User:
        """Insert the user, or update the pro flag if the email already exists."""
        try:
            return self.create(email, is_pro=is_pro, first_name=first_name)
        except IntegrityError:
            logger.info(f"Email {email} exists, updating instead")
        values: dict[str, Any] = {"is_pro": is_pro}
        if first_name:
            values["first_name"] = first_name
        self.update_by_email(email, values)
        user = self.get_by_email(email)
        if user is None:
            raise SQLAlchemyError(f"User {email} vanished during upsert")
        return user

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
