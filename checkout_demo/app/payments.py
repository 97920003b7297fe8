"""Demo-mode payment API endpoints."""

from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from ..core.logging import get_logger
from ..core.models import PaymentRequest, PaymentResponse, PaymentStatus, ScenarioType, normalize_status
from ..session.order_ids import OrderIdGenerator

logger = get_logger(__name__)
router = APIRouter(prefix="/api/v1")

SUPPORTED_CURRENCIES = {"USD", "HKD", "KRW", "JPY", "MYR", "IDR", "THB", "SGD"}
DEMO_LINK_BASE = "https://demo.linkpay.com/payment"

_session_ids = OrderIdGenerator(prefix="sess")


def error_response(message: str, status_code: int = 400) -> JSONResponse:
    """Error body shared by every endpoint."""
    return JSONResponse({"success": False, "message": message}, status_code=status_code)


def _check_request(request: PaymentRequest, allowed_types: set) -> str:
    """Return an error message for an unacceptable request, else empty string."""
    if request.currency not in SUPPORTED_CURRENCIES:
        return f"Unsupported currency: {request.currency}"
    if request.payment_type not in allowed_types:
        return f"Unsupported payment type for this endpoint: {request.payment_type}"
    return ""


@router.post("/payment/interaction")
async def create_interaction(request: PaymentRequest):
    """Create a LinkPay or Drop-in interaction."""
    error = _check_request(request, {ScenarioType.REDIRECT.payment_type, ScenarioType.EMBEDDED.payment_type})
    if error:
        return error_response(error)

    session_id = f"demo_session_{_session_ids.next()}"
    link_url = None
    if request.payment_type == ScenarioType.REDIRECT.payment_type:
        link_url = f"{DEMO_LINK_BASE}?session={session_id}"

    logger.info(
        "Demo interaction created",
        merchant_trans_id=request.merchant_trans_id,
        payment_type=request.payment_type,
    )
    response = PaymentResponse(
        success=True,
        session_id=session_id,
        link_url=link_url,
        merchant_trans_id=request.merchant_trans_id,
        status="pending",
        message="Demo mode: Payment interaction created successfully",
    )
    return JSONResponse(response.to_wire())


@router.post("/payment/direct")
async def create_direct_payment(request: PaymentRequest):
    """Create a Direct API payment."""
    error = _check_request(request, {ScenarioType.DIRECT.payment_type})
    if error:
        return error_response(error)
    if request.card_info is None:
        return error_response("cardInfo is required for direct payments")

    logger.info("Demo direct payment captured", merchant_trans_id=request.merchant_trans_id)
    response = PaymentResponse(
        success=True,
        merchant_trans_id=request.merchant_trans_id,
        status="captured",
        message="Demo mode: Payment completed successfully",
    )
    return JSONResponse(response.to_wire())


def _mock_status(merchant_trans_id: str) -> PaymentStatus:
    """Deterministic demo status derived from the id."""
    statuses = ["captured", "pending", "failed"]
    status = statuses[len(merchant_trans_id) % len(statuses)]
    created_at = datetime.now(timezone.utc) - timedelta(minutes=5)

    if status == "captured":
        return PaymentStatus(
            merchant_trans_id=merchant_trans_id,
            status=normalize_status(status),
            amount=300,
            currency="USD",
            created_at=created_at.isoformat(),
        )

    return PaymentStatus(
        merchant_trans_id=merchant_trans_id,
        status=normalize_status(status),
        amount=289.97,
        currency="USD",
        created_at=created_at.isoformat(),
    )


@router.get("/payment/{merchant_trans_id}")
async def get_payment_status(merchant_trans_id: str):
    """Status of a Direct API payment."""
    return JSONResponse({"success": True, "data": _mock_status(merchant_trans_id).to_wire()})


@router.get("/interaction/{merchant_order_id}")
async def get_interaction_status(merchant_order_id: str):
    """Status of a LinkPay or Drop-in interaction."""
    return JSONResponse({"success": True, "data": _mock_status(merchant_order_id).to_wire()})


@router.post("/payment/webhook")
async def handle_webhook(request: Request):
    """Acknowledge a provider notification."""
    try:
        notification = await request.json()
    except ValueError:
        return error_response("Invalid webhook data")

    if not isinstance(notification, dict):
        return error_response("Invalid webhook data")

    logger.info("Webhook received", event_code=notification.get("eventCode"))
    return PlainTextResponse("SUCCESS")
