"""Pydantic schemas for the auth endpoints.

String fields default to "" so missing values reach the service's own
validation and produce its error messages. Request models also accept the
camelCase / short field names used by existing Bondfire clients (``mfa``,
``token``, ``newPassword``), and numeric one-time codes are read as strings.
"""

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator


def _code_to_str(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


class RegisterRequest(BaseModel):
    name: str = ""
    email: str = ""
    password: str = ""


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""
    mfa_code: Optional[str] = Field(default=None, validation_alias=AliasChoices("mfa_code", "mfa"))

    @field_validator("mfa_code", mode="before")
    @classmethod
    def coerce_code(cls, value: Any) -> Any:
        return _code_to_str(value)


class ForgotPasswordRequest(BaseModel):
    email: str = ""


class ResetPasswordRequest(BaseModel):
    token: str = ""
    new_password: str = Field(default="", validation_alias=AliasChoices("new_password", "newPassword"))


class MfaVerifyRequest(BaseModel):
    code: str = Field(default="", validation_alias=AliasChoices("code", "token"))
    secret: Optional[str] = None

    @field_validator("code", mode="before")
    @classmethod
    def coerce_code(cls, value: Any) -> Any:
        return _code_to_str(value)


class UserResponse(BaseModel):
    id: str
    name: str
    email: str


class SessionResponse(BaseModel):
    """Token plus the signed-in user."""

    token: str
    token_type: str = "bearer"
    user: UserResponse


class ProfileResponse(BaseModel):
    id: str
    name: str
    email: str
    mfa_enabled: bool = Field(serialization_alias="mfaEnabled")


class MfaSetupResponse(BaseModel):
    secret: str
    otpauth_url: str = Field(serialization_alias="otpauthUrl")


class OkResponse(BaseModel):
    ok: bool = True
