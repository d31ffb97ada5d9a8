import re
from pydantic import BaseModel, field_validator

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 8


def validate_email(v: str) -> str:
    v = v.strip().lower()
    if not EMAIL_RE.match(v):
        raise ValueError("Invalid email address")
    return v


class UserRegisterRequest(BaseModel):
    name: str
    email: str
    password: str
    church_name: str

    @field_validator("name", "church_name")
    def required_text(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("All fields are required")
        return v.strip()

    @field_validator("email")
    def email_format(cls, v: str) -> str:
        return validate_email(v)

    @field_validator("password")
    def password_length(cls, v: str) -> str:
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError("Password must be at least 8 characters")
        return v


class UserRegisterResponse(BaseModel):
    message: str
    user_id: int
    church_id: int


class UserLogoutRequest(BaseModel):
    refresh_token: str


class UserLogoutResponse(BaseModel):
    message: str


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str
    confirm_new_password: str

    @field_validator("new_password", "confirm_new_password")
    def password_length(cls, v: str) -> str:
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError("Password must be at least 8 characters")
        return v


class ChangePasswordResponse(BaseModel):
    message: str
