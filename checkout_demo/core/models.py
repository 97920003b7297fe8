"""Payment API wire models."""

import re
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ScenarioType(str, Enum):
    """Checkout integration scenario."""
    REDIRECT = "redirect"
    EMBEDDED = "embedded"
    DIRECT = "direct"

    @property
    def payment_type(self) -> str:
        """Wire value of ``paymentType`` for this scenario."""
        return PAYMENT_TYPES[self]


PAYMENT_TYPES = {
    ScenarioType.REDIRECT: "linkpay",
    ScenarioType.EMBEDDED: "dropin",
    ScenarioType.DIRECT: "directapi",
}


class WireModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class CardInfo(WireModel):
    """Card details for direct payments. Demo data only, never stored."""
    card_number: str
    expiry_date: str
    cvv: str
    holder_name: str

    @field_validator("card_number")
    @classmethod
    def strip_card_number(cls, v: str) -> str:
        return re.sub(r"\s", "", v)

    @field_validator("expiry_date")
    @classmethod
    def strip_expiry_date(cls, v: str) -> str:
        return re.sub(r"\D", "", v)

    def __repr__(self):
        return f"CardInfo(card_number='****{self.card_number[-4:]}')"


class PaymentRequest(WireModel):
    """Order submitted to the interaction or direct endpoint."""
    amount: float = Field(..., gt=0)
    currency: str
    merchant_trans_id: str
    payment_type: str
    payment_method: Optional[str] = None
    return_url: str
    webhook_url: str
    card_info: Optional[CardInfo] = None


class ActionInfo(WireModel):
    """Follow-up action required by the provider (e.g. 3DS redirect)."""
    type: str
    data: Dict[str, Any] = Field(default_factory=dict)

    @property
    def three_ds_url(self) -> Optional[str]:
        """Redirect URL of a ``threeDSRedirect`` action, if any."""
        if self.type != "threeDSRedirect":
            return None
        three_ds = self.data.get("threeDSData") or {}
        return three_ds.get("url")


class PaymentResponse(WireModel):
    """Payment API response to interaction and direct requests."""
    success: bool
    session_id: Optional[str] = None
    link_url: Optional[str] = None
    merchant_trans_id: str
    status: str
    message: str = ""
    data: Optional[Dict[str, Any]] = None
    action: Optional[ActionInfo] = None


class PaymentStatus(WireModel):
    """Status of a payment or interaction."""
    merchant_trans_id: str
    status: str
    amount: Optional[float] = None
    currency: Optional[str] = None
    created_at: Optional[str] = None


def normalize_status(status: str) -> str:
    """Map provider status names onto captured/pending/failed/cancelled."""
    lowered = status.lower()
    if lowered in ("success", "completed", "paid", "captured"):
        return "captured"
    if lowered in ("pending", "processing", "authorized"):
        return "pending"
    if lowered in ("failed", "declined", "rejected", "error"):
        return "failed"
    if lowered in ("cancelled", "canceled", "voided"):
        return "cancelled"
    return status
