from sqlalchemy import Column, String, Boolean, DateTime, Integer, ForeignKey
import enum

from schoolms.core.database import Base
from schoolms.core.types import GUID, generate_uuid, utcnow


class RoleName(str, enum.Enum):
    """Roles a user can hold. One operative role per user."""
    ADMIN = "Admin"
    TEACHER = "Teacher"
    STUDENT = "Student"
    EMPLOYEE = "Employee"
    PENDING = "Pending"
    ANONYMOUS = "Anonymous"

    @classmethod
    def parse(cls, value):
        """Return the matching RoleName, or None for anything outside the set"""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class User(Base):
    """Login identity. The email doubles as the user name."""
    __tablename__ = "users"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    email = Column(String(256), unique=True, index=True, nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    address = Column(String(100), nullable=True)
    phone_number = Column(String(20), nullable=True)

    hashed_password = Column(String(255), nullable=True)
    email_confirmed = Column(Boolean, default=False, nullable=False)
    # Rotated on logout and password reset; session tokens carry a copy
    security_stamp = Column(String(64), nullable=False)

    # Password reset fields
    reset_token_hash = Column(String(255), nullable=True)
    reset_token_expires = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    last_login = Column(DateTime, nullable=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<User {self.email}>"


class Role(Base):
    """Named role, seeded from RoleName"""
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), unique=True, nullable=False)

    def __repr__(self):
        return f"<Role {self.name}>"


class UserRoleLink(Base):
    """Role membership"""
    __tablename__ = "user_roles"

    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True)
