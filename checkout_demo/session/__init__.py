"""Payment session state, order identifiers and orchestration."""

from .classifier import DuplicateOrderClassifier
from .models import (
    CheckoutOutcome,
    Notice,
    NoticeLevel,
    OutcomeKind,
    ScenarioType,
    Session,
    SessionStatus,
    WidgetEvent,
)
from .order_ids import OrderIdGenerator
from .orchestrator import SessionOrchestrator

__all__ = [
    "CheckoutOutcome",
    "DuplicateOrderClassifier",
    "Notice",
    "NoticeLevel",
    "OrderIdGenerator",
    "OutcomeKind",
    "ScenarioType",
    "Session",
    "SessionOrchestrator",
    "SessionStatus",
    "WidgetEvent",
]
