"""
End-to-end payment session flow.

The orchestrator turns a submitted order into a Session, obtains a session
token or redirect from the payment API, arms the widget for embedded orders and
interprets the widget's outcome events. Failures the backend reports as
"order already paid" are recovered by issuing a fresh Session with a new order
id and re-arming the widget.

Nothing raised below this module reaches the UI: every error ends up as a
``Notice`` and a Session status.
"""

from typing import Any, Callable, Optional

from pydantic import ValidationError

from ..core.config import Settings, get_settings
from ..core.errors import (
    PaymentAPIError,
    PaymentAPIRejected,
    SessionNotReadyError,
    WidgetConstructionError,
)
from ..core.logging import get_logger
from ..core.models import CardInfo, PaymentRequest, PaymentResponse, PaymentStatus, ScenarioType
from ..core.payment_api import PaymentAPIClient
from ..widget.controller import InstanceController
from ..widget.loader import WidgetLoader
from .classifier import DuplicateOrderClassifier
from .models import (
    CheckoutOutcome,
    Notice,
    NoticeLevel,
    OutcomeKind,
    Session,
    SessionStatus,
    WidgetEvent,
)
from .order_ids import OrderIdGenerator

logger = get_logger(__name__)

OutcomeListener = Callable[[CheckoutOutcome], Any]
StatusListener = Callable[[Session], Any]


class SessionOrchestrator:
    """Drives one checkout view's payment sessions."""

    def __init__(
        self,
        api: PaymentAPIClient,
        controller: InstanceController,
        loader: WidgetLoader,
        settings: Optional[Settings] = None,
        id_generator: Optional[OrderIdGenerator] = None,
        classifier: Optional[DuplicateOrderClassifier] = None,
        on_outcome: Optional[OutcomeListener] = None,
        on_status: Optional[StatusListener] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            api: Payment API client
            controller: Owner of the view's widget instance
            loader: Widget runtime loader
            settings: Settings (defaults to the global settings)
            id_generator: Order id source
            classifier: Duplicate-order failure classifier
            on_outcome: Receives outcomes the page should route on
            on_status: Receives the Session after every status change
        """
        self.settings = settings or get_settings()
        self.api = api
        self.controller = controller
        self.loader = loader
        self.id_generator = id_generator or OrderIdGenerator(prefix=self.settings.order_id_prefix)
        self.classifier = classifier or DuplicateOrderClassifier(self.settings.duplicate_order_phrases)
        self.on_outcome = on_outcome
        self.on_status = on_status

        self._session: Optional[Session] = None
        self._notice: Optional[Notice] = None
        self._in_flight = False
        self._auto_retries = 0
        self._closed = False

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def status(self) -> SessionStatus:
        if self._session is None:
            return SessionStatus.UNARMED
        return self._session.status

    @property
    def notice(self) -> Optional[Notice]:
        """Current error or info message, if any."""
        return self._notice

    def _set_status(self, session: Session, status: SessionStatus) -> None:
        session.status = status
        logger.info(
            "Session status changed",
            order_id=session.order_id,
            scenario=session.scenario_type.value,
            status=status.value,
        )
        if self.on_status is not None:
            self.on_status(session)

    def _emit(self, session: Session, kind: OutcomeKind, payload: Optional[dict] = None) -> None:
        outcome = CheckoutOutcome(
            kind=kind,
            order_id=session.order_id,
            scenario_type=session.scenario_type,
            payload=payload or {},
            redirect_url=session.redirect_url,
        )
        logger.info("Checkout outcome", kind=kind.value, order_id=session.order_id)
        if self.on_outcome is not None:
            self.on_outcome(outcome)

    def _build_request(self, session: Session, instrument: Optional[CardInfo] = None) -> PaymentRequest:
        base = self.settings.return_base_url.rstrip("/")
        payment_type = session.scenario_type.payment_type
        return PaymentRequest(
            amount=session.amount,
            currency=session.currency,
            merchant_trans_id=session.order_id,
            payment_type=payment_type,
            return_url=f"{base}/payment-result?orderId={session.order_id}&paymentType={payment_type}",
            webhook_url=f"{base}/api/v1/payment/webhook",
            card_info=instrument,
        )

    async def prepare(self) -> None:
        """Start loading the widget runtime ahead of the first embedded order."""
        await self.loader.ensure_runtime_available()

    async def submit(
        self,
        scenario_type: ScenarioType,
        amount: float,
        currency: str,
        instrument: Optional[CardInfo] = None,
    ) -> None:
        """
        Submit an order for the given scenario.

        Ignored while another submission or a recovery is in flight.
        """
        if self._closed:
            logger.warning("Submit ignored, checkout view is closed")
            return
        if self._in_flight:
            logger.warning("Submit ignored, a submission is in flight", order_id=self._session and self._session.order_id)
            return

        try:
            scenario_type = ScenarioType(scenario_type)
        except ValueError:
            logger.warning("Submit rejected, unknown scenario", scenario=str(scenario_type))
            self._notice = Notice(level=NoticeLevel.ERROR, message=f"Unknown payment scenario: {scenario_type}")
            return
        if scenario_type == ScenarioType.DIRECT and instrument is None:
            self._notice = Notice(level=NoticeLevel.ERROR, message="Card details are required for direct payments")
            return

        self._in_flight = True
        try:
            await self.controller.destroy()
            self._auto_retries = 0
            self._notice = None

            try:
                session = Session(
                    order_id=self.id_generator.next(),
                    scenario_type=scenario_type,
                    amount=amount,
                    currency=currency,
                )
                request = self._build_request(session, instrument)
            except ValidationError as e:
                logger.warning("Invalid order", errors=e.error_count())
                self._notice = Notice(level=NoticeLevel.ERROR, message=f"Invalid order: {e.errors()[0]['msg']}")
                return

            self._session = session
            self._set_status(session, SessionStatus.AWAITING_SESSION)

            try:
                if scenario_type == ScenarioType.DIRECT:
                    response = await self.api.create_direct_payment(request)
                else:
                    response = await self.api.create_interaction(request)
            except PaymentAPIError as e:
                self._notice = Notice(level=NoticeLevel.ERROR, message=e.message)
                self._set_status(session, SessionStatus.UNARMED)
                return

            await self._handle_response(session, response)
        finally:
            self._in_flight = False

    async def _handle_response(self, session: Session, response: PaymentResponse) -> None:
        if session.scenario_type == ScenarioType.REDIRECT:
            if not response.link_url:
                self._notice = Notice(level=NoticeLevel.ERROR, message="Payment API did not return a payment link")
                self._set_status(session, SessionStatus.UNARMED)
                return
            session.redirect_url = response.link_url
            self._set_status(session, SessionStatus.COMPLETED)
            self._emit(session, OutcomeKind.REDIRECT, response.to_wire())
            return

        if session.scenario_type == ScenarioType.DIRECT:
            three_ds_url = response.action.three_ds_url if response.action else None
            if three_ds_url:
                session.redirect_url = three_ds_url
                self._set_status(session, SessionStatus.COMPLETED)
                self._emit(session, OutcomeKind.REDIRECT, response.to_wire())
                return
            self._set_status(session, SessionStatus.COMPLETED)
            self._emit(session, OutcomeKind.COMPLETED, response.to_wire())
            return

        if not response.session_id:
            self._notice = Notice(level=NoticeLevel.ERROR, message="Payment API did not return a session")
            self._set_status(session, SessionStatus.UNARMED)
            return

        session.session_token = response.session_id
        await self._arm(session)

    async def _arm(self, session: Session) -> bool:
        """Mount the widget for ``session`` and mark it armed."""
        runtime = await self.loader.ensure_runtime_available()
        session.degraded = runtime.degraded

        try:
            mounted = await self.controller.mount(
                session,
                self._widget_completed,
                self._widget_failed,
                self._widget_cancelled,
                runtime,
            )
        except (WidgetConstructionError, SessionNotReadyError) as e:
            self._notice = Notice(level=NoticeLevel.ERROR, message=str(e))
            self._set_status(session, SessionStatus.FAILED)
            self._emit(session, OutcomeKind.FAILED, {"message": str(e)})
            return False

        if not mounted or self._session is not session:
            logger.info("Widget mount superseded", order_id=session.order_id)
            return False

        if runtime.degraded and self._notice is None:
            self._notice = Notice(
                level=NoticeLevel.INFO,
                message="The payment widget could not be loaded; using the payment simulator.",
            )
        self._set_status(session, SessionStatus.ARMED)
        return True

    async def _widget_completed(self, payload: Any) -> None:
        await self.on_widget_outcome(WidgetEvent.from_raw(OutcomeKind.COMPLETED, payload))

    async def _widget_failed(self, payload: Any) -> None:
        await self.on_widget_outcome(WidgetEvent.from_raw(OutcomeKind.FAILED, payload))

    async def _widget_cancelled(self, payload: Any) -> None:
        await self.on_widget_outcome(WidgetEvent.from_raw(OutcomeKind.CANCELLED, payload))

    async def on_widget_outcome(self, event: WidgetEvent) -> None:
        """Classify a widget outcome and apply the resulting transition."""
        session = self._session
        if self._closed or session is None or session.status != SessionStatus.ARMED:
            logger.warning(
                "Widget outcome ignored, no armed session",
                kind=event.kind.value,
                status=self.status.value,
            )
            return

        if event.kind == OutcomeKind.COMPLETED:
            self._auto_retries = 0
            self._set_status(session, SessionStatus.COMPLETED)
            await self.controller.destroy()
            self._emit(session, OutcomeKind.COMPLETED, event.payload)
            return

        if event.kind == OutcomeKind.CANCELLED:
            self._notice = Notice(level=NoticeLevel.INFO, message="Payment cancelled")
            self._set_status(session, SessionStatus.CANCELLED)
            await self.controller.destroy()
            self._emit(session, OutcomeKind.CANCELLED, event.payload)
            return

        message = event.message
        phrase = self.classifier.match(message)
        if phrase is not None:
            if self._auto_retries < self.settings.max_auto_retries:
                logger.info("Duplicate order reported by widget", order_id=session.order_id, phrase=phrase)
                await self._recover_duplicate_order(session)
                return
            logger.warning(
                "Duplicate order reported again, automatic retry limit reached",
                order_id=session.order_id,
                max_auto_retries=self.settings.max_auto_retries,
            )

        self._notice = Notice(level=NoticeLevel.ERROR, message=f"Payment failed: {message or 'Unknown error'}")
        self._set_status(session, SessionStatus.FAILED)
        await self.controller.destroy()
        self._emit(session, OutcomeKind.FAILED, event.payload)

    async def _recover_duplicate_order(self, previous: Session) -> None:
        """Replace ``previous`` with a new Session and re-arm the widget."""
        self._in_flight = True
        try:
            self._auto_retries += 1
            self._set_status(previous, SessionStatus.RETRYING)
            await self.controller.destroy()

            session = Session(
                order_id=self.id_generator.next(),
                scenario_type=previous.scenario_type,
                amount=previous.amount,
                currency=previous.currency,
            )
            self._session = session
            self._notice = Notice(
                level=NoticeLevel.INFO,
                message=f"Order {previous.order_id} was already paid; created a new payment attempt {session.order_id}.",
            )
            self._set_status(session, SessionStatus.RETRYING)

            try:
                response = await self.api.create_interaction(self._build_request(session))
                if not response.session_id:
                    raise PaymentAPIRejected("Payment API did not return a session")
            except PaymentAPIError as e:
                logger.error("Duplicate order recovery failed", order_id=session.order_id, error=e.message)
                self._notice = Notice(
                    level=NoticeLevel.FATAL,
                    message=f"Could not create a new payment attempt ({e.message}). Please restart the checkout.",
                )
                self._set_status(session, SessionStatus.FAILED)
                self._emit(session, OutcomeKind.FAILED, {"message": e.message})
                return

            session.session_token = response.session_id
            await self._arm(session)
        finally:
            self._in_flight = False

    async def simulate_pay(self, payment_method: str = "credit_card") -> bool:
        """Pay through the fallback simulator, if it is the live widget."""
        session = self._session
        if session is None or session.status != SessionStatus.ARMED:
            return False
        return await self.controller.simulate_pay(
            amount=session.amount,
            currency=session.currency,
            payment_method=payment_method,
        )

    async def simulate_cancel(self) -> bool:
        """Cancel through the fallback simulator, if it is the live widget."""
        if self.status != SessionStatus.ARMED:
            return False
        return await self.controller.simulate_cancel()

    async def reload_widget_runtime(self) -> None:
        """
        Retry loading the real widget runtime on user request.

        An armed session running on the simulator is re-armed with the real
        widget when it becomes available.
        """
        runtime = await self.loader.reload()
        session = self._session
        if session is None or session.status != SessionStatus.ARMED:
            return
        if session.degraded and not runtime.degraded:
            logger.info("Re-arming session with widget runtime", order_id=session.order_id)
            self._notice = None
            await self._arm(session)

    async def refresh_status(self) -> Optional[PaymentStatus]:
        """Query the payment API for the current session's status."""
        session = self._session
        if session is None:
            return None
        try:
            return await self.api.get_status(session.order_id, session.scenario_type)
        except PaymentAPIError as e:
            self._notice = Notice(level=NoticeLevel.ERROR, message=e.message)
            return None

    async def close(self) -> None:
        """Tear down the view: destroy the widget and ignore later events."""
        self._closed = True
        await self.controller.destroy()
        logger.info("Checkout view closed", order_id=self._session and self._session.order_id)
