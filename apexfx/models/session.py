"""
Session Models for ApexFX

DESIGN DECISION: The session is a single tagged value. There is exactly one
mode at a time (anonymous, user or admin); the two "is authenticated"
flags the view tree reads are derived from it, so they can never both be true.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from apexfx.models.ledger import User, validate_email_shape


class SessionMode(str, Enum):
    """Which view tree the current process is authenticated for."""
    ANONYMOUS = "anonymous"
    USER = "user"
    ADMIN = "admin"


class Session(BaseModel):
    """The process-wide session value owned by the SessionStore."""
    model_config = ConfigDict(frozen=True)

    mode: SessionMode = SessionMode.ANONYMOUS
    current_user: Optional[User] = None

    @model_validator(mode="after")
    def validate_mode_matches_user(self) -> "Session":
        if self.mode == SessionMode.ANONYMOUS and self.current_user is not None:
            raise ValueError("Anonymous session cannot carry a user")
        if self.mode != SessionMode.ANONYMOUS and self.current_user is None:
            raise ValueError(f"{self.mode.value} session requires a user")
        return self

    @classmethod
    def anonymous(cls) -> "Session":
        return cls()

    @property
    def is_authenticated(self) -> bool:
        return self.mode == SessionMode.USER

    @property
    def is_admin_authenticated(self) -> bool:
        return self.mode == SessionMode.ADMIN

    def with_user(self, user: User) -> "Session":
        """Same mode, refreshed user record."""
        return Session(mode=self.mode, current_user=user)


class Credentials(BaseModel):
    """
    A syntactically well-formed credential pair.

    Only shape is checked here. Password strength and minimum length are the
    login form's concern.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    email: str
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return validate_email_shape(v)


class RegistrationProfile(BaseModel):
    """Profile submitted by the registration form."""
    model_config = ConfigDict(str_strip_whitespace=True)

    email: str
    password: str = Field(..., min_length=1)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    avatar: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return validate_email_shape(v)


class LoginOutcome(BaseModel):
    """Result of a login handed back to the view tree."""
    model_config = ConfigDict(frozen=True)

    success: bool
    redirect_to: Optional[str] = None


class AccessAction(str, Enum):
    """What route resolution should do with a requested path."""
    RENDER = "render"
    SHOW_LOGIN = "show_login"
    REDIRECT = "redirect"


class AccessDecision(BaseModel):
    """Outcome of an access check."""
    model_config = ConfigDict(frozen=True)

    action: AccessAction
    path: str
    redirect_to: Optional[str] = None

    @model_validator(mode="after")
    def validate_redirect_target(self) -> "AccessDecision":
        if (self.action == AccessAction.REDIRECT) != (self.redirect_to is not None):
            raise ValueError("redirect_to is required for, and only for, redirects")
        return self

    @classmethod
    def render(cls, path: str) -> "AccessDecision":
        return cls(action=AccessAction.RENDER, path=path)

    @classmethod
    def show_login(cls, path: str) -> "AccessDecision":
        return cls(action=AccessAction.SHOW_LOGIN, path=path)

    @classmethod
    def redirect(cls, path: str, target: str) -> "AccessDecision":
        return cls(action=AccessAction.REDIRECT, path=path, redirect_to=target)
