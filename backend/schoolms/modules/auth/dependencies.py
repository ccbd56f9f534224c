from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import uuid

from schoolms.core.database import get_db
from schoolms.core.exceptions import AuthenticationError, AuthorizationError, InvalidTokenError
from schoolms.core.logging_config import set_user_id
from schoolms.core.security import ACCESS_TOKEN_TYPE, decode_token
from schoolms.models.user import User, RoleName
from schoolms.schemas.auth import Principal
from schoolms.services.account_service import AccountService
from schoolms.services.email_service import EmailService, get_email_service

security = HTTPBearer(auto_error=False)


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Principal:
    """Resolve the bearer token into the calling principal"""
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    payload = decode_token(credentials.credentials, expected_type=ACCESS_TOKEN_TYPE)

    user_id = payload.get("sub")
    try:
        uuid.UUID(str(user_id))
    except ValueError:
        raise InvalidTokenError("Invalid token payload")

    user = await db.get(User, user_id)
    if user is None:
        raise InvalidTokenError("User not found")

    # Logout, password reset and role changes rotate the stamp
    if payload.get("stamp") != user.security_stamp:
        raise InvalidTokenError("Session is no longer valid")

    set_user_id(str(user.id))
    return Principal(user_id=str(user.id), email=user.email, role=payload.get("role"))


def require_roles(*roles: RoleName):
    """Dependency factory allowing only principals holding one of `roles`"""
    allowed = " or ".join(role.value for role in roles)

    async def dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not principal.has_role(*roles):
            raise AuthorizationError(f"{allowed} access required")
        return principal

    return dependency


get_current_admin = require_roles(RoleName.ADMIN)
get_current_teacher = require_roles(RoleName.TEACHER)
get_current_student = require_roles(RoleName.STUDENT)
get_current_employee = require_roles(RoleName.EMPLOYEE)
get_billing_staff = require_roles(RoleName.ADMIN, RoleName.EMPLOYEE)


def get_account_service(
    db: AsyncSession = Depends(get_db),
    mail: EmailService = Depends(get_email_service)
) -> AccountService:
    return AccountService(db, mail)
