"""
Account Lifecycle Service
=========================
Login role routing, admin registration with an emailed temporary password,
self-service profile and password changes, and the two-step
recover/reset password flow.

Every operation takes the caller explicitly (a Principal where a signed-in
user is required) and returns an Outcome. Store changes are committed
before any mail is sent, so a mail failure never undoes them.
"""

from typing import Optional
from urllib.parse import urlencode

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolms.core.config import settings
from schoolms.core.logging_config import logger, set_user_id
from schoolms.core.security import create_access_token, generate_temporary_password
from schoolms.core.types import utcnow
from schoolms.models.staff import Employee, Teacher
from schoolms.models.student import Student
from schoolms.models.user import RoleName, User
from schoolms.schemas.auth import Principal, UserProfileUpdate, UserRegister, UserResponse
from schoolms.services.dashboard_service import route_for_role
from schoolms.services.email_service import EmailService
from schoolms.services.identity_provider import IdentityProvider
from schoolms.services.outcomes import LoginOutcome, Outcome, OutcomeCode, OutcomeStatus

LOGIN_FAILED = "Failed to log in."
USER_ALREADY_EXISTS = "User already exists."
USER_CREATED = "User created successfully. Credentials sent by email."
USER_CREATED_MAIL_FAILED = "User created successfully, but email sending failed. Check mail configuration."
USER_UPDATE_FAILED = "Failed to update user details."
USER_NOT_FOUND = "User not found."
UNKNOWN_EMAIL = "The email does not correspond to a registered user."
RECOVERY_SENT = "Instructions to recover your password have been sent to your email."
RECOVERY_MAIL_FAILED = "Failed to send email. Check your mail settings."
PASSWORD_RESET_DONE = "Password reset successfully. You can now login."
PASSWORD_RESET_FAILED = "Error resetting the password."
PASSWORD_CHANGE_FAILED = "Failed to change the password."
ADMIN_REQUIRED = "Admin access required."


def build_reset_link(token: str, email: str) -> str:
    """Reset page URL carrying the token and the email as plain query parameters"""
    return f"{settings.get_reset_password_url()}?{urlencode({'token': token, 'email': email})}"


class AccountService:
    """Account lifecycle operations over one database session"""

    def __init__(self, db: AsyncSession, mail: EmailService,
                 identity: Optional[IdentityProvider] = None):
        self.db = db
        self.mail = mail
        self.identity = identity or IdentityProvider(db)

    # ===== SESSION =====

    async def login(self, email: str, password: str, client_ip: Optional[str] = None) -> LoginOutcome:
        """
        Validate credentials and route by role.

        Unknown email and wrong password produce the same failure.
        """
        user = await self.identity.check_password_sign_in(email, password)
        if user is None:
            logger.log_auth_event(
                event="login",
                success=False,
                user_email=email,
                reason="Invalid credentials",
                client_ip=client_ip
            )
            return LoginOutcome.failure(OutcomeCode.LOGIN_FAILED, LOGIN_FAILED)

        role = await self.identity.get_role(user)
        route = route_for_role(role)

        user.last_login = utcnow()
        await self.db.commit()

        set_user_id(str(user.id))
        access_token = create_access_token({
            "sub": str(user.id),
            "email": user.email,
            "role": role,
            "stamp": user.security_stamp,
        })

        logger.log_auth_event(
            event="login",
            success=True,
            user_email=user.email,
            client_ip=client_ip,
            user_role=role,
            route=route.value
        )

        return LoginOutcome(
            status=OutcomeStatus.SUCCESS,
            message="Logged in.",
            user_id=str(user.id),
            access_token=access_token,
            route=route.value,
            role=role,
        )

    async def logout(self, principal: Principal) -> Outcome:
        """End the session. Every token issued to the user stops validating."""
        user = await self.identity.find_by_id(principal.user_id)
        if user is not None:
            await self.identity.rotate_security_stamp(user)
            await self.db.commit()

        logger.log_auth_event(event="logout", success=True, user_email=principal.email)
        return Outcome.success("Logged out.")

    async def get_profile(self, principal: Principal) -> Optional[UserResponse]:
        user = await self.identity.find_by_id(principal.user_id)
        if user is None:
            return None
        profile = UserResponse.model_validate(user)
        profile.role = await self.identity.get_role(user)
        return profile

    # ===== REGISTRATION =====

    async def register_by_admin(self, principal: Principal, data: UserRegister) -> Outcome:
        """
        Create a Pending account and email its temporary password.

        The password exists only in the outgoing email: it is not logged and
        not part of the returned outcome.
        """
        if not principal.has_role(RoleName.ADMIN):
            logger.log_auth_event(
                event="register",
                success=False,
                user_email=data.email,
                reason="Caller is not an admin",
                actor=principal.email
            )
            return Outcome.failure(OutcomeCode.NOT_AUTHORIZED, ADMIN_REQUIRED)

        if await self.identity.find_by_email(data.email):
            logger.log_auth_event(
                event="register",
                success=False,
                user_email=data.email,
                reason="User already exists",
                actor=principal.email
            )
            return Outcome.failure(OutcomeCode.USER_ALREADY_EXISTS, USER_ALREADY_EXISTS)

        temporary_password = generate_temporary_password()
        user = User(
            email=data.email,
            first_name=data.first_name,
            last_name=data.last_name,
            address=data.address,
            phone_number=data.phone_number,
            email_confirmed=True,
            created_at=utcnow(),
        )

        result = await self.identity.create(user, temporary_password)
        if not result.succeeded:
            code = (
                OutcomeCode.USER_ALREADY_EXISTS
                if result.errors[0].code == "DuplicateEmail"
                else OutcomeCode.USER_CREATION_FAILED
            )
            message = USER_ALREADY_EXISTS if code == OutcomeCode.USER_ALREADY_EXISTS else result.first_error
            logger.log_auth_event(
                event="register",
                success=False,
                user_email=data.email,
                reason=result.first_error,
                actor=principal.email
            )
            return Outcome.failure(code, message, detail=result.first_error)

        # User and default role are written in one transaction
        await self.identity.ensure_role(RoleName.PENDING)
        await self.identity.assign_role(user, RoleName.PENDING)
        user_id = str(user.id)
        email = user.email
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.log_auth_event(
                event="register",
                success=False,
                user_email=email,
                reason="Duplicate email rejected by store",
                actor=principal.email
            )
            return Outcome.failure(OutcomeCode.USER_ALREADY_EXISTS, USER_ALREADY_EXISTS)

        logger.log_auth_event(
            event="register",
            success=True,
            user_email=email,
            actor=principal.email,
            user_role=RoleName.PENDING.value
        )

        mail = await self.mail.send_account_created_email(email, temporary_password)
        if not mail.is_success:
            logger.warning(f"[Account] Account {email} created but credentials email failed: {mail.message}")
            return Outcome.notification_failure(
                OutcomeCode.ACCOUNT_CREATED_MAIL_FAILED,
                USER_CREATED_MAIL_FAILED,
                detail=mail.message,
                user_id=user_id,
            )

        return Outcome.success(USER_CREATED, user_id=user_id)

    async def assign_role(self, principal: Principal, user_id: str, role: RoleName) -> Outcome:
        """Admin grants a user its operative role, replacing the previous one"""
        if not principal.has_role(RoleName.ADMIN):
            return Outcome.failure(OutcomeCode.NOT_AUTHORIZED, ADMIN_REQUIRED)

        user = await self.identity.find_by_id(user_id)
        if user is None:
            return Outcome.failure(OutcomeCode.USER_NOT_FOUND, USER_NOT_FOUND)

        result = await self.identity.assign_role(user, role)
        if not result.succeeded:
            return Outcome.failure(OutcomeCode.ROLE_NOT_FOUND, result.first_error, detail=result.first_error)

        # Outstanding tokens carry the old role claim
        await self.identity.rotate_security_stamp(user)
        await self.db.commit()

        logger.log_auth_event(
            event="assign_role",
            success=True,
            user_email=user.email,
            actor=principal.email,
            user_role=role.value
        )
        return Outcome.success(f"Role '{role.value}' assigned successfully.", user_id=str(user.id))

    # ===== PROFILE =====

    async def change_own_profile(self, principal: Principal, data: UserProfileUpdate) -> Outcome:
        user = await self.identity.find_by_id(principal.user_id)
        if user is None:
            return Outcome.failure(OutcomeCode.USER_NOT_FOUND, USER_NOT_FOUND)

        user.first_name = data.first_name
        user.last_name = data.last_name
        user.address = data.address
        user.phone_number = data.phone_number

        result = await self.identity.update(user)
        if not result.succeeded:
            logger.log_auth_event(
                event="change_profile",
                success=False,
                user_email=principal.email,
                reason=result.first_error
            )
            return Outcome.failure(OutcomeCode.USER_UPDATE_FAILED, USER_UPDATE_FAILED, detail=result.first_error)

        await self._propagate_profile(principal, data)
        await self.db.commit()

        logger.log_auth_event(event="change_profile", success=True, user_email=principal.email)
        return Outcome.success("User updated successfully.", user_id=principal.user_id)

    async def _propagate_profile(self, principal: Principal, data: UserProfileUpdate) -> None:
        """Copy name and contact fields into the role's profile row"""
        role = principal.role_name

        if role == RoleName.TEACHER:
            teacher = await self._profile_row(Teacher, principal.user_id)
            if teacher:
                teacher.first_name = data.first_name
                teacher.last_name = data.last_name

        elif role == RoleName.STUDENT:
            student = await self._profile_row(Student, principal.user_id)
            if student:
                student.first_name = data.first_name
                student.last_name = data.last_name
                student.address = data.address
                student.phone_number = data.phone_number

        elif role == RoleName.EMPLOYEE:
            employee = await self._profile_row(Employee, principal.user_id)
            if employee:
                employee.first_name = data.first_name
                employee.last_name = data.last_name
                employee.phone_number = data.phone_number

    async def _profile_row(self, model, user_id: str):
        result = await self.db.execute(select(model).where(model.user_id == user_id))
        return result.scalar_one_or_none()

    # ===== PASSWORDS =====

    async def change_password(self, principal: Principal, old_password: str, new_password: str) -> Outcome:
        user = await self.identity.find_by_id(principal.user_id)
        if user is None:
            return Outcome.failure(OutcomeCode.USER_NOT_FOUND, USER_NOT_FOUND)

        result = await self.identity.verify_and_change_password(user, old_password, new_password)
        if not result.succeeded:
            logger.log_auth_event(
                event="change_password",
                success=False,
                user_email=principal.email,
                reason=result.first_error
            )
            return Outcome.failure(
                OutcomeCode.PASSWORD_CHANGE_REJECTED, result.first_error, detail=result.first_error
            )

        await self.db.commit()
        logger.log_auth_event(event="change_password", success=True, user_email=principal.email)
        return Outcome.success("Password changed successfully.", user_id=principal.user_id)

    async def change_first_password(self, email: str, temporary_password: str, new_password: str) -> Outcome:
        """Replace the emailed temporary password without a session"""
        user = await self.identity.find_by_email(email)
        if user is None:
            logger.log_auth_event(
                event="change_first_password",
                success=False,
                user_email=email,
                reason="Unknown email"
            )
            return Outcome.failure(OutcomeCode.PASSWORD_CHANGE_REJECTED, PASSWORD_CHANGE_FAILED)

        result = await self.identity.verify_and_change_password(user, temporary_password, new_password)
        if not result.succeeded:
            logger.log_auth_event(
                event="change_first_password",
                success=False,
                user_email=email,
                reason=result.first_error
            )
            return Outcome.failure(
                OutcomeCode.PASSWORD_CHANGE_REJECTED, PASSWORD_CHANGE_FAILED, detail=result.first_error
            )

        await self.db.commit()
        logger.log_auth_event(event="change_first_password", success=True, user_email=email)
        return Outcome.success("Password changed successfully. You can now login.", user_id=str(user.id))

    async def request_password_recovery(self, email: str) -> Outcome:
        """Email a single-use reset link for the account"""
        user = await self.identity.find_by_email(email)
        if user is None:
            logger.log_auth_event(
                event="password_recovery",
                success=False,
                user_email=email,
                reason="Unknown email"
            )
            if settings.RECOVERY_REVEAL_UNKNOWN_EMAIL:
                return Outcome.failure(OutcomeCode.UNKNOWN_EMAIL, UNKNOWN_EMAIL)
            return Outcome.success(RECOVERY_SENT)

        token = await self.identity.issue_reset_token(user)
        user_id = str(user.id)
        user_email = user.email
        await self.db.commit()

        mail = await self.mail.send_password_reset_email(user_email, build_reset_link(token, user_email))
        if not mail.is_success:
            logger.log_auth_event(
                event="password_recovery",
                success=False,
                user_email=user_email,
                reason=f"Mail delivery failed: {mail.message}"
            )
            return Outcome.notification_failure(
                OutcomeCode.RECOVERY_MAIL_FAILED, RECOVERY_MAIL_FAILED, detail=mail.message, user_id=user_id
            )

        logger.log_auth_event(event="password_recovery", success=True, user_email=user_email)
        return Outcome.success(RECOVERY_SENT, user_id=user_id)

    async def reset_password(self, email: str, token: str, new_password: str) -> Outcome:
        user = await self.identity.find_by_email(email)
        if user is None:
            logger.log_auth_event(event="password_reset", success=False, user_email=email, reason="Unknown email")
            return Outcome.failure(OutcomeCode.USER_NOT_FOUND, USER_NOT_FOUND)

        result = await self.identity.reset_password(user, token, new_password)
        if not result.succeeded:
            logger.log_auth_event(
                event="password_reset",
                success=False,
                user_email=email,
                reason=result.first_error
            )
            code = (
                OutcomeCode.INVALID_OR_EXPIRED_TOKEN
                if result.errors[0].code == "InvalidToken"
                else OutcomeCode.PASSWORD_CHANGE_REJECTED
            )
            return Outcome.failure(code, result.first_error or PASSWORD_RESET_FAILED, detail=result.first_error)

        user_id = str(user.id)
        await self.db.commit()
        logger.log_auth_event(event="password_reset", success=True, user_email=email)
        return Outcome.success(PASSWORD_RESET_DONE, user_id=user_id)
