"""Session state and the plain data exposed to the UI layer."""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..core.models import ScenarioType


class SessionStatus(str, Enum):
    """Status of one payment attempt."""
    UNARMED = "unarmed"
    AWAITING_SESSION = "awaiting_session"
    ARMED = "armed"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    RETRYING = "retrying"


class Session(BaseModel):
    """
    One attempt to pay.

    ``order_id``, ``scenario_type``, ``amount`` and ``currency`` are frozen; a
    retry creates a new Session instead of changing them.
    """

    model_config = ConfigDict(validate_assignment=True)

    order_id: str = Field(..., frozen=True)
    scenario_type: ScenarioType = Field(..., frozen=True)
    amount: float = Field(..., frozen=True)
    currency: str = Field(..., frozen=True)
    status: SessionStatus = SessionStatus.UNARMED
    session_token: Optional[str] = None
    redirect_url: Optional[str] = None
    degraded: bool = False


class OutcomeKind(str, Enum):
    """Outcome reported upward to the page."""
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REDIRECT = "redirect"


class WidgetEvent(BaseModel):
    """Raw outcome event reported by a widget instance."""
    kind: OutcomeKind
    payload: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_raw(cls, kind: OutcomeKind, payload: Any) -> "WidgetEvent":
        """Build an event from whatever the runtime passed to its callback."""
        if payload is None:
            payload = {}
        elif not isinstance(payload, dict):
            # Runtimes sometimes report a bare error string
            payload = {"message": str(payload)}
        return cls(kind=kind, payload=payload)

    @property
    def message(self) -> str:
        """Failure text reported by the widget, empty if none."""
        for key in ("message", "msg", "errorMessage", "code"):
            value = self.payload.get(key)
            if value:
                return str(value)
        return ""


class CheckoutOutcome(BaseModel):
    """Outcome the page routes on (e.g. to a result view)."""
    kind: OutcomeKind
    order_id: str
    scenario_type: ScenarioType
    payload: Dict[str, Any] = Field(default_factory=dict)
    redirect_url: Optional[str] = None


class NoticeLevel(str, Enum):
    INFO = "info"
    ERROR = "error"
    FATAL = "fatal"


class Notice(BaseModel):
    """Message shown to the user."""
    level: NoticeLevel
    message: str
