from datetime import datetime
from enum import Enum
from typing import Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_ICON = "🔒"


class Profile(BaseModel):
    """A named set of blocked applications and categories."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    name: str
    icon: str = DEFAULT_ICON
    blocked_apps: frozenset[str] = Field(default_factory=frozenset)
    blocked_categories: frozenset[str] = Field(default_factory=frozenset)

    @property
    def is_empty(self) -> bool:
        return not self.blocked_apps and not self.blocked_categories


class Idle(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["idle"] = "idle"


class Active(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["active"] = "active"
    start_time: datetime


SessionState = Idle | Active


class AuthorizationState(str, Enum):
    UNREQUESTED = "unrequested"
    GRANTED = "granted"
    DENIED = "denied"


class EngineStatus(BaseModel):
    """Read-only snapshot of the engine handed to presentation layers."""

    is_blocking: bool
    session_start_time: datetime | None
    elapsed_session: float
    today_total: float
    profile: Profile
    authorization: AuthorizationState
    authorization_reason: str | None = None
    shield_error: str | None = None
