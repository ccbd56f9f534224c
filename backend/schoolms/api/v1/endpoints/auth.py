from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from typing import Dict
import uuid

from schoolms.core.exceptions import UserNotFoundError
from schoolms.core.rate_limiter import limiter, AUTH_LIMIT, STRICT_LIMIT
from schoolms.modules.auth.dependencies import (
    get_account_service,
    get_current_admin,
    get_current_principal,
)
from schoolms.schemas.auth import (
    AssignRoleRequest,
    ChangeFirstPasswordRequest,
    ChangePasswordRequest,
    LoginResponse,
    OutcomeResponse,
    Principal,
    RecoverPasswordRequest,
    ResetPasswordLink,
    ResetPasswordRequest,
    UserLogin,
    UserProfileUpdate,
    UserRegister,
    UserResponse,
)
from schoolms.services.account_service import AccountService
from schoolms.services.outcomes import Outcome, OutcomeCode

router = APIRouter()


OUTCOME_HTTP_STATUS: Dict[OutcomeCode, int] = {
    OutcomeCode.VALIDATION_FAILED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    OutcomeCode.LOGIN_FAILED: status.HTTP_401_UNAUTHORIZED,
    OutcomeCode.NOT_AUTHORIZED: status.HTTP_403_FORBIDDEN,
    OutcomeCode.USER_ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    OutcomeCode.USER_CREATION_FAILED: status.HTTP_400_BAD_REQUEST,
    OutcomeCode.USER_UPDATE_FAILED: status.HTTP_400_BAD_REQUEST,
    OutcomeCode.USER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    OutcomeCode.UNKNOWN_EMAIL: status.HTTP_404_NOT_FOUND,
    OutcomeCode.ROLE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    OutcomeCode.PASSWORD_CHANGE_REJECTED: status.HTTP_400_BAD_REQUEST,
    OutcomeCode.INVALID_OR_EXPIRED_TOKEN: status.HTTP_400_BAD_REQUEST,
}


def outcome_response(outcome: Outcome, success_status: int = status.HTTP_200_OK) -> JSONResponse:
    """Render an outcome; partial successes keep the success status and report themselves in the body"""
    if outcome.succeeded:
        status_code = success_status
    else:
        status_code = OUTCOME_HTTP_STATUS.get(outcome.code, status.HTTP_400_BAD_REQUEST)

    body = OutcomeResponse(
        status=outcome.status.value,
        message=outcome.message,
        code=outcome.code.value if outcome.code else None,
        detail=outcome.detail,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


# ===== SESSION =====

@router.post("/login", response_model=LoginResponse)
@limiter.limit(AUTH_LIMIT)
async def login(
    request: Request,
    credentials: UserLogin,
    accounts: AccountService = Depends(get_account_service)
):
    """Login and get the dashboard to route to (rate limited: 5/min)"""
    client_ip = request.client.host if request.client else "unknown"
    outcome = await accounts.login(credentials.email, credentials.password, client_ip=client_ip)
    if not outcome.succeeded:
        return outcome_response(outcome)

    return LoginResponse(
        access_token=outcome.access_token,
        role=outcome.role,
        route=outcome.route,
        user_id=outcome.user_id,
    )


@router.post("/logout", response_model=OutcomeResponse)
async def logout(
    principal: Principal = Depends(get_current_principal),
    accounts: AccountService = Depends(get_account_service)
):
    return outcome_response(await accounts.logout(principal))


@router.get("/me", response_model=UserResponse)
async def get_me(
    principal: Principal = Depends(get_current_principal),
    accounts: AccountService = Depends(get_account_service)
):
    """Profile of the signed-in user"""
    profile = await accounts.get_profile(principal)
    if profile is None:
        raise UserNotFoundError(principal.user_id)
    return profile


# ===== ADMINISTRATION =====

@router.post("/register", response_model=OutcomeResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    admin: Principal = Depends(get_current_admin),
    accounts: AccountService = Depends(get_account_service)
):
    """Create a Pending account; the temporary password goes out by email only"""
    outcome = await accounts.register_by_admin(admin, user_data)
    return outcome_response(outcome, success_status=status.HTTP_201_CREATED)


@router.put("/users/{user_id}/role", response_model=OutcomeResponse)
async def assign_role(
    user_id: uuid.UUID,
    role_data: AssignRoleRequest,
    admin: Principal = Depends(get_current_admin),
    accounts: AccountService = Depends(get_account_service)
):
    outcome = await accounts.assign_role(admin, str(user_id), role_data.role)
    return outcome_response(outcome)


# ===== SELF SERVICE =====

@router.patch("/profile", response_model=OutcomeResponse)
async def change_profile(
    profile_data: UserProfileUpdate,
    principal: Principal = Depends(get_current_principal),
    accounts: AccountService = Depends(get_account_service)
):
    return outcome_response(await accounts.change_own_profile(principal, profile_data))


@router.post("/change-password", response_model=OutcomeResponse)
async def change_password(
    password_data: ChangePasswordRequest,
    principal: Principal = Depends(get_current_principal),
    accounts: AccountService = Depends(get_account_service)
):
    outcome = await accounts.change_password(
        principal, password_data.old_password, password_data.new_password
    )
    return outcome_response(outcome)


@router.post("/change-first-password", response_model=OutcomeResponse)
@limiter.limit(STRICT_LIMIT)
async def change_first_password(
    request: Request,
    password_data: ChangeFirstPasswordRequest,
    accounts: AccountService = Depends(get_account_service)
):
    """Replace the emailed temporary password (rate limited: 3/min)"""
    outcome = await accounts.change_first_password(
        password_data.email, password_data.temporary_password, password_data.new_password
    )
    return outcome_response(outcome)


# ===== PASSWORD RECOVERY =====

@router.post("/recover-password", response_model=OutcomeResponse)
@limiter.limit(STRICT_LIMIT)
async def recover_password(
    request: Request,
    recover_data: RecoverPasswordRequest,
    accounts: AccountService = Depends(get_account_service)
):
    """Email a password reset link (rate limited: 3/min)"""
    return outcome_response(await accounts.request_password_recovery(recover_data.email))


@router.get("/reset-password", response_model=ResetPasswordLink)
async def reset_password_form(
    token: str = Query(..., min_length=1),
    email: str = Query(..., min_length=1)
):
    """Echo the reset link state so the form can post it back unchanged"""
    return ResetPasswordLink(token=token, email=email)


@router.post("/reset-password", response_model=OutcomeResponse)
async def reset_password(
    reset_data: ResetPasswordRequest,
    accounts: AccountService = Depends(get_account_service)
):
    outcome = await accounts.reset_password(reset_data.email, reset_data.token, reset_data.new_password)
    return outcome_response(outcome)
