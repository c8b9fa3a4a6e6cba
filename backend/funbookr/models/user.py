"""
User model.

Only the fields the booking core reads: identity, email (used to resolve
the system actor for webhook confirmations) and the active flag.
Credentials live with the identity service.
"""

from uuid import uuid4

from sqlalchemy import Boolean, Column, String, Uuid

from funbookr.db.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid4)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(200), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"
