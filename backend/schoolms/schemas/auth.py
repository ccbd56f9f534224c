from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Optional
from datetime import datetime

from schoolms.models.user import RoleName

PHONE_PATTERN = r'^\+?[0-9\s\-()]*$'


def _strip_required(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class Principal(BaseModel):
    """Authenticated caller, built from a verified session token"""
    user_id: str
    email: str
    role: Optional[str] = None

    class Config:
        frozen = True

    @property
    def role_name(self) -> Optional[RoleName]:
        return RoleName.parse(self.role)

    def has_role(self, *roles: RoleName) -> bool:
        return self.role_name in roles


class UserLogin(BaseModel):
    email: str = Field(..., min_length=1, max_length=256)
    password: str = Field(..., min_length=1)


class ProfileFields(BaseModel):
    first_name: str = Field(..., max_length=50)
    last_name: str = Field(..., max_length=50)
    address: Optional[str] = Field(None, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=20, pattern=PHONE_PATTERN)

    @field_validator('first_name', 'last_name')
    @classmethod
    def names_not_blank(cls, v: str) -> str:
        return _strip_required(v)

    @field_validator('address', 'phone_number')
    @classmethod
    def optional_blank_is_none(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)


class UserRegister(ProfileFields):
    """Admin registration. The password is generated server-side."""
    email: EmailStr


class UserProfileUpdate(ProfileFields):
    pass


class PasswordConfirmation(BaseModel):
    new_password: str = Field(..., min_length=6, max_length=128)
    confirm_password: str

    @model_validator(mode='after')
    def passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError("The new password and confirmation do not match")
        return self


class ChangePasswordRequest(PasswordConfirmation):
    old_password: str = Field(..., min_length=1)


class ChangeFirstPasswordRequest(PasswordConfirmation):
    email: EmailStr
    temporary_password: str = Field(..., min_length=1)


class RecoverPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(PasswordConfirmation):
    email: EmailStr
    token: str = Field(..., min_length=1)


class ResetPasswordLink(BaseModel):
    """State carried by the reset link, echoed back for the reset form"""
    token: str
    email: str


class AssignRoleRequest(BaseModel):
    role: RoleName


class UserResponse(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    address: Optional[str] = None
    phone_number: Optional[str] = None
    email_confirmed: bool
    role: Optional[str] = None
    created_at: datetime
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class OutcomeResponse(BaseModel):
    status: str
    message: str
    code: Optional[str] = None
    detail: Optional[str] = None


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: Optional[str] = None
    route: str
    user_id: str
