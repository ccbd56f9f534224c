"""
Tagged results of account lifecycle operations.

Expected failures (conflicts, rejected passwords, unknown users, mail
trouble) are returned, not raised, so callers can always render them.
"""

from dataclasses import dataclass, field
from typing import Optional, List
import enum


class OutcomeStatus(str, enum.Enum):
    SUCCESS = "success"
    SUCCESS_WITH_NOTIFICATION_FAILURE = "success_with_notification_failure"
    FAILED = "failed"


class OutcomeCode(str, enum.Enum):
    # Failures
    VALIDATION_FAILED = "ValidationFailed"
    LOGIN_FAILED = "LoginFailed"
    NOT_AUTHORIZED = "NotAuthorized"
    USER_ALREADY_EXISTS = "UserAlreadyExists"
    USER_CREATION_FAILED = "UserCreationFailed"
    USER_UPDATE_FAILED = "UserUpdateFailed"
    USER_NOT_FOUND = "UserNotFound"
    UNKNOWN_EMAIL = "UnknownEmail"
    ROLE_NOT_FOUND = "RoleNotFound"
    PASSWORD_CHANGE_REJECTED = "PasswordChangeRejected"
    INVALID_OR_EXPIRED_TOKEN = "InvalidOrExpiredToken"
    # Notification failures after a committed change
    ACCOUNT_CREATED_MAIL_FAILED = "AccountCreatedMailFailed"
    RECOVERY_MAIL_FAILED = "RecoveryMailFailed"


@dataclass
class Outcome:
    status: OutcomeStatus
    message: str
    code: Optional[OutcomeCode] = None
    # Diagnostic text from the identity provider or mail gateway
    detail: Optional[str] = None
    user_id: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status != OutcomeStatus.FAILED

    @property
    def notification_failed(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS_WITH_NOTIFICATION_FAILURE

    @classmethod
    def success(cls, message: str, user_id: Optional[str] = None) -> "Outcome":
        return cls(status=OutcomeStatus.SUCCESS, message=message, user_id=user_id)

    @classmethod
    def notification_failure(cls, code: OutcomeCode, message: str,
                             detail: Optional[str] = None,
                             user_id: Optional[str] = None) -> "Outcome":
        return cls(
            status=OutcomeStatus.SUCCESS_WITH_NOTIFICATION_FAILURE,
            message=message,
            code=code,
            detail=detail,
            user_id=user_id,
        )

    @classmethod
    def failure(cls, code: OutcomeCode, message: str,
                detail: Optional[str] = None) -> "Outcome":
        return cls(status=OutcomeStatus.FAILED, message=message, code=code, detail=detail)


@dataclass
class LoginOutcome(Outcome):
    """Login result; carries the session token and routing target on success"""
    access_token: Optional[str] = None
    route: Optional[str] = None
    role: Optional[str] = None


@dataclass
class IdentityError:
    code: str
    description: str


@dataclass
class IdentityResult:
    """Identity provider result. Callers surface only the first error."""
    succeeded: bool
    errors: List[IdentityError] = field(default_factory=list)

    @classmethod
    def success(cls) -> "IdentityResult":
        return cls(succeeded=True)

    @classmethod
    def failed(cls, code: str, description: str) -> "IdentityResult":
        return cls(succeeded=False, errors=[IdentityError(code, description)])

    @property
    def first_error(self) -> Optional[str]:
        return self.errors[0].description if self.errors else None
