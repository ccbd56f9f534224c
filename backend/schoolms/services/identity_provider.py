"""
Identity provider backed by the relational store.

Owns password hashing, role membership, session stamps and password
reset tokens. Methods flush but never commit; the calling service decides
where a unit of work ends. A store conflict rolls the session back.
"""

from datetime import datetime
from functools import lru_cache
import secrets
from typing import Optional, Union

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolms.core.config import settings
from schoolms.core.exceptions import SchoolError
from schoolms.core.logging_config import logger
from schoolms.core.security import (
    PASSWORD_RESET_TOKEN_TYPE,
    create_password_reset_token,
    decode_token,
    generate_security_stamp,
    get_password_hash,
    tokens_match,
    hash_token,
    verify_password,
)
from schoolms.models.user import User, Role, RoleName, UserRoleLink
from schoolms.services.outcomes import IdentityResult


def normalize_email(email: str) -> str:
    return email.strip().lower()


@lru_cache(maxsize=1)
def _dummy_password_hash() -> str:
    return get_password_hash(secrets.token_hex(16))


class IdentityProvider:
    """User, role and credential operations over one database session"""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ===== USERS =====

    async def find_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.email == normalize_email(email))
        )
        return result.scalar_one_or_none()

    async def find_by_id(self, user_id: str) -> Optional[User]:
        return await self.db.get(User, user_id)

    def validate_password(self, password: str) -> IdentityResult:
        if len(password) < settings.PASSWORD_MIN_LENGTH:
            return IdentityResult.failed(
                "PasswordTooShort",
                f"Passwords must be at least {settings.PASSWORD_MIN_LENGTH} characters."
            )
        return IdentityResult.success()

    async def create(self, user: User, password: str) -> IdentityResult:
        """Persist a new user with a hashed password. Email must be unused."""
        user.email = normalize_email(user.email)

        policy = self.validate_password(password)
        if not policy.succeeded:
            return policy

        if await self.find_by_email(user.email):
            return IdentityResult.failed("DuplicateEmail", f"Email '{user.email}' is already taken.")

        user.hashed_password = get_password_hash(password)
        user.security_stamp = generate_security_stamp()

        email = user.email
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            # Lost a race with a concurrent registration for the same email
            logger.warning(f"[Identity] Duplicate insert rejected by store for {email}")
            return IdentityResult.failed("DuplicateEmail", f"Email '{email}' is already taken.")

        return IdentityResult.success()

    async def update(self, user: User) -> IdentityResult:
        email = user.email
        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"[Identity] Update rejected for {email}: {e.orig}")
            return IdentityResult.failed("UpdateRejected", "The user could not be updated.")
        return IdentityResult.success()

    # ===== ROLES =====

    async def find_role(self, name: Union[RoleName, str]) -> Optional[Role]:
        role_name = name.value if isinstance(name, RoleName) else name
        result = await self.db.execute(select(Role).where(Role.name == role_name))
        return result.scalar_one_or_none()

    async def ensure_role(self, name: RoleName) -> Role:
        """Create the role if it does not exist yet"""
        role = await self.find_role(name)
        if role is None:
            role = Role(name=name.value)
            self.db.add(role)
            await self.db.flush()
        return role

    async def assign_role(self, user: User, name: Union[RoleName, str]) -> IdentityResult:
        """Make `name` the user's only role"""
        role = await self.find_role(name)
        if role is None:
            return IdentityResult.failed("RoleNotFound", f"Role '{name}' does not exist.")

        await self.db.execute(delete(UserRoleLink).where(UserRoleLink.user_id == user.id))
        self.db.add(UserRoleLink(user_id=user.id, role_id=role.id))
        await self.db.flush()
        return IdentityResult.success()

    async def get_role(self, user: User) -> Optional[str]:
        result = await self.db.execute(
            select(Role.name)
            .join(UserRoleLink, UserRoleLink.role_id == Role.id)
            .where(UserRoleLink.user_id == user.id)
            .order_by(Role.name)
        )
        return result.scalars().first()

    # ===== CREDENTIALS =====

    async def check_password_sign_in(self, email: str, password: str) -> Optional[User]:
        """Return the user if the credentials are valid and the email is confirmed"""
        user = await self.find_by_email(email)
        if user is None:
            # Same bcrypt cost as a wrong password
            verify_password(password, _dummy_password_hash())
            return None
        if not verify_password(password, user.hashed_password):
            return None
        if not user.email_confirmed:
            return None
        return user

    async def verify_and_change_password(self, user: User, old_password: str,
                                         new_password: str) -> IdentityResult:
        if not verify_password(old_password, user.hashed_password):
            return IdentityResult.failed("PasswordMismatch", "Incorrect password.")

        policy = self.validate_password(new_password)
        if not policy.succeeded:
            return policy

        self._set_password(user, new_password)
        await self.db.flush()
        return IdentityResult.success()

    def _set_password(self, user: User, new_password: str) -> None:
        """Store a new password; outstanding reset tokens and sessions stop working"""
        user.hashed_password = get_password_hash(new_password)
        user.reset_token_hash = None
        user.reset_token_expires = None
        user.security_stamp = generate_security_stamp()

    async def rotate_security_stamp(self, user: User) -> None:
        """Invalidate every session token issued to the user"""
        user.security_stamp = generate_security_stamp()
        await self.db.flush()

    # ===== PASSWORD RESET =====

    async def issue_reset_token(self, user: User) -> str:
        """
        Issue a reset token. Only its digest is stored, and issuing a new
        token replaces the previous one.
        """
        token, expires = create_password_reset_token(user.id, user.email)
        user.reset_token_hash = hash_token(token)
        user.reset_token_expires = expires
        await self.db.flush()
        return token

    def _reset_token_is_live(self, user: User, token: str) -> bool:
        try:
            payload = decode_token(token, expected_type=PASSWORD_RESET_TOKEN_TYPE)
        except SchoolError:
            return False

        if payload.get("sub") != str(user.id):
            return False
        if not tokens_match(token, user.reset_token_hash):
            return False
        if not user.reset_token_expires or user.reset_token_expires < datetime.utcnow():
            return False
        return True

    async def reset_password(self, user: User, token: str, new_password: str) -> IdentityResult:
        """Consume a reset token and set a new password. A token works once."""
        if not self._reset_token_is_live(user, token):
            return IdentityResult.failed("InvalidToken", "Invalid token.")

        policy = self.validate_password(new_password)
        if not policy.succeeded:
            return policy

        self._set_password(user, new_password)
        await self.db.flush()
        return IdentityResult.success()
