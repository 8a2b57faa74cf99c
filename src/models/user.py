"""User account model."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, false, func

from src.database import Base


class User(Base):
    """A user account, provisioned by signup or by a Stripe payment.

    Column names follow the existing Supabase ``Users`` table, which uses
    camelCase and one legacy column name containing a space.
    """

    __tablename__ = "Users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    # SHA-256 hex digest; NULL for accounts created by a payment webhook
    password = Column(String(255), nullable=True)
    is_pro = Column("isPro", Boolean, nullable=False, default=False, server_default=false())
    first_name = Column("firstName", String(255), nullable=True)
    # Legacy 32-bit rolling hash of the email, kept for older readers
    encrypted_email = Column("Encrypted Email", String(32), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<User {self.email} pro={self.is_pro}>"
