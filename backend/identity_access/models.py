"""
Pydantic models for identities, managed users and form payloads.

Why:
    The marketplace API speaks camelCase JSON (`firstName`, `isVerified`).
    Models accept those aliases on input and produce them on output, so the
    rest of the code works with snake_case attributes only.

Validation rules mirror the dashboard forms:
    - first/last name: trimmed, at least 2 characters
    - email: minimal `local@domain.tld` shape
    - password: at least 6 characters (required on create, optional on update)
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .domain import Role, SELF_REGISTER_ROLES


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_NAME_LEN = 2
MIN_PASSWORD_LEN = 6


def _clean_name(value: str) -> str:
    value = (value or "").strip()
    if len(value) < MIN_NAME_LEN:
        raise ValueError(f"must be at least {MIN_NAME_LEN} characters")
    return value


def _clean_email(value: str) -> str:
    value = (value or "").strip()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("invalid email address")
    return value


def _check_password(value: str) -> str:
    if len(value or "") < MIN_PASSWORD_LEN:
        raise ValueError(f"must be at least {MIN_PASSWORD_LEN} characters")
    return value


class _ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class Profile(_ApiModel):
    """Identity resolved from the session credential."""

    id: str
    first_name: str = Field(default="", alias="firstName")
    last_name: str = Field(default="", alias="lastName")
    username: Optional[str] = None
    email: str = ""
    role: Role
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    is_verified: Optional[bool] = Field(default=None, alias="isVerified")

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value):
        return str(value) if value is not None else value

    @property
    def display_name(self) -> str:
        full = f"{self.first_name} {self.last_name}".strip()
        return full or (self.username or "").strip() or "User"

    @property
    def initials(self) -> str:
        source = f"{self.first_name} {self.last_name}".strip() or (self.username or "")
        names = source.split()
        if not names:
            return "??"
        if len(names) == 1:
            return names[0][:2].upper()
        return (names[0][0] + names[-1][0]).upper()


class ManagedUser(Profile):
    """User record administered through the dashboard (same shape as Profile)."""


class LoginResult(_ApiModel):
    token: str
    message: str = "Login successful."
    profile: Optional[Profile] = None


class LoginForm(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _valid_email(cls, value: str) -> str:
        return _clean_email(value)

    @field_validator("password")
    @classmethod
    def _password_present(cls, value: str) -> str:
        if not value:
            raise ValueError("password is required")
        return value


class _UserFields(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")
    email: str

    @field_validator("first_name", "last_name")
    @classmethod
    def _valid_name(cls, value: str) -> str:
        return _clean_name(value)

    @field_validator("email")
    @classmethod
    def _valid_email(cls, value: str) -> str:
        return _clean_email(value)


class RegistrationForm(_UserFields):
    password: str
    role: Role

    @field_validator("password")
    @classmethod
    def _valid_password(cls, value: str) -> str:
        return _check_password(value)

    @field_validator("role")
    @classmethod
    def _self_register_only(cls, value: Role) -> Role:
        if value not in SELF_REGISTER_ROLES:
            raise ValueError("role cannot be chosen at registration")
        return value


class UserCreate(_UserFields):
    password: str

    @field_validator("password")
    @classmethod
    def _valid_password(cls, value: str) -> str:
        return _check_password(value)


class UserUpdate(_UserFields):
    password: Optional[str] = None

    @field_validator("password")
    @classmethod
    def _blank_means_unchanged(cls, value: Optional[str]) -> Optional[str]:
        # An empty password field leaves the stored password untouched.
        if value is None or not value.strip():
            return None
        return _check_password(value)


def field_errors(model_cls: type[BaseModel], exc: ValidationError) -> dict[str, str]:
    """Map a ValidationError to {field name: message}, first message per field.

    Locations may carry the camelCase alias; they are reported under the
    snake_case field name the forms use.
    """
    by_alias = {f.alias: name for name, f in model_cls.model_fields.items() if f.alias}
    errors: dict[str, str] = {}
    for err in exc.errors():
        loc = err.get("loc") or ("__root__",)
        name = by_alias.get(str(loc[0]), str(loc[0]))
        message = str(err.get("msg", "Invalid value")).removeprefix("Value error, ")
        errors.setdefault(name, message[:1].upper() + message[1:])
    return errors


def to_api_payload(model: BaseModel, **extra) -> dict:
    """Serialize a form model to the camelCase JSON the API expects."""
    payload = model.model_dump(by_alias=True, exclude_none=True, mode="json")
    payload.update(extra)
    return payload


__all__ = [
    "Profile",
    "ManagedUser",
    "LoginResult",
    "LoginForm",
    "RegistrationForm",
    "UserCreate",
    "UserUpdate",
    "field_errors",
    "to_api_payload",
]
