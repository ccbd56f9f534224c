"""
Custom Exceptions for the School Management System
==================================================

Account lifecycle operations report expected failures as outcomes
(see schoolms.services.outcomes). These exceptions cover the rest:
access control in request dependencies and guards in the store layer.

Usage:
    from schoolms.core.exceptions import AuthorizationError

    if principal.role not in allowed:
        raise AuthorizationError("Admin access required")
"""

from typing import Optional, Any, Dict


class SchoolError(Exception):
    """Base exception for all application errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(SchoolError):
    """User authentication failed"""

    status_code = 401

    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(message, code="AUTH_FAILED")


class AuthorizationError(SchoolError):
    """User not authorized for this action"""

    status_code = 403

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, code="NOT_AUTHORIZED")


class TokenExpiredError(AuthenticationError):
    """JWT token has expired"""

    def __init__(self):
        super().__init__("Token has expired")
        self.code = "TOKEN_EXPIRED"


class InvalidTokenError(AuthenticationError):
    """JWT token is invalid"""

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)
        self.code = "INVALID_TOKEN"


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(SchoolError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with ID '{resource_id}' not found",
            code=f"{resource_type.upper()}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


class UserNotFoundError(ResourceNotFoundError):
    """User not found"""

    def __init__(self, user_id: str):
        super().__init__("User", user_id)


class StudentNotFoundError(ResourceNotFoundError):
    """Student not found"""

    def __init__(self, student_id: Any):
        super().__init__("Student", str(student_id))


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(SchoolError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class PaymentValidationError(ValidationError):
    """Payment data violates store rules"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, field=field)
        self.code = "INVALID_PAYMENT"


def error_response(error: SchoolError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "success": False,
        "error": error.to_dict()
    }
