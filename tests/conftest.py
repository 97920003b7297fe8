"""Shared pytest fixtures for all tests."""

import asyncio
import os
from typing import Any, Dict, List, Optional, Sequence

import pytest

os.environ.setdefault("LOG_FILE", "")

from checkout_demo.core.config import Settings
from checkout_demo.core.errors import WidgetConstructionError
from checkout_demo.core.logging import setup_logging
from checkout_demo.core.models import (
    ActionInfo,
    PaymentRequest,
    PaymentResponse,
    PaymentStatus,
    ScenarioType,
)
from checkout_demo.session.models import Session, SessionStatus
from checkout_demo.session.orchestrator import SessionOrchestrator
from checkout_demo.widget.controller import InstanceController
from checkout_demo.widget.host import WidgetCallbacks, WidgetHost
from checkout_demo.widget.loader import WidgetLoader

setup_logging()

SDK_URL = "https://cdn.example.test/dropin/index.min.js"


class FakeWidget:
    """Widget instance constructed by the fake host."""

    def __init__(self, runtime_name: str, mount_id: str, options: Dict[str, Any], callbacks: WidgetCallbacks):
        self.runtime_name = runtime_name
        self.mount_id = mount_id
        self.options = options
        self.callbacks = callbacks
        self.destroyed = False

    async def complete(self, payload: Optional[Dict[str, Any]] = None) -> None:
        await self.callbacks.on_completed(payload or {})

    async def fail(self, payload: Optional[Dict[str, Any]] = None) -> None:
        await self.callbacks.on_failed(payload or {})

    async def cancel(self, payload: Optional[Dict[str, Any]] = None) -> None:
        await self.callbacks.on_cancelled(payload or {})


class FakeWidgetHost(WidgetHost):
    """In-memory browser environment."""

    def __init__(
        self,
        preloaded: bool = False,
        script_loads: bool = True,
        registers_as: Optional[str] = "DropInSDK",
        construct_error: Optional[str] = None,
    ):
        self.registers_as = registers_as
        self.globals = {registers_as} if preloaded and registers_as else set()
        self.script_loads = script_loads
        self.construct_error = construct_error
        self.construct_gate: Optional[asyncio.Event] = None
        self.scripts: List[str] = []
        self.injections = 0
        self.events: List[tuple] = []
        self.mount_point: Dict[str, Any] = {"id": None, "content": ""}
        self.widgets: List[FakeWidget] = []

    async def inject_script(self, url: str) -> bool:
        self.injections += 1
        self.scripts.append(url)
        self.events.append(("inject", url))
        if not self.script_loads:
            return False
        if self.registers_as:
            self.globals.add(self.registers_as)
        return True

    async def remove_scripts(self, url: str) -> int:
        before = len(self.scripts)
        self.scripts = [s for s in self.scripts if s != url]
        self.events.append(("remove", url))
        return before - len(self.scripts)

    async def resolve_runtime(self, names: Sequence[str]) -> Optional[str]:
        for name in names:
            if name in self.globals:
                return name
        return None

    async def prepare_mount(self, mount_id: str) -> None:
        self.events.append(("prepare", mount_id))
        self.mount_point = {"id": mount_id, "content": ""}

    async def release_mount(self) -> None:
        self.events.append(("release", self.mount_point["id"]))
        self.mount_point = {"id": None, "content": ""}

    async def construct_widget(self, runtime_name, mount_id, options, callbacks):
        self.events.append(("construct", mount_id))
        if self.construct_gate is not None:
            await self.construct_gate.wait()
        if self.construct_error:
            raise WidgetConstructionError(self.construct_error)
        widget = FakeWidget(runtime_name, mount_id, options, callbacks)
        self.widgets.append(widget)
        self.mount_point["content"] = f"<widget {mount_id}>"
        return widget

    async def teardown_widget(self, handle: FakeWidget) -> None:
        self.events.append(("teardown", handle.mount_id))
        handle.destroyed = True

    def live_widgets(self) -> List[FakeWidget]:
        return [w for w in self.widgets if not w.destroyed]

    @property
    def last_widget(self) -> FakeWidget:
        return self.widgets[-1]


class FakePaymentAPI:
    """Payment API stand-in recording every request."""

    def __init__(self):
        self.requests: List[tuple] = []
        self.errors: List[Exception] = []
        self.gate: Optional[asyncio.Event] = None
        self.link_url = "https://pay.example.test/link/abc"
        self.three_ds_url: Optional[str] = None
        self.omit_session = False

    def fail_next(self, error: Exception) -> None:
        self.errors.append(error)

    def order_ids(self) -> List[str]:
        return [request.merchant_trans_id for _, request in self.requests]

    async def _respond(self, kind: str, request: PaymentRequest) -> PaymentResponse:
        self.requests.append((kind, request))
        if self.gate is not None:
            await self.gate.wait()
        if self.errors:
            raise self.errors.pop(0)

        if kind == "direct":
            action = None
            if self.three_ds_url:
                action = ActionInfo(type="threeDSRedirect", data={"threeDSData": {"url": self.three_ds_url}})
            return PaymentResponse(
                success=True,
                merchant_trans_id=request.merchant_trans_id,
                status="captured",
                message="Payment completed",
                action=action,
            )

        return PaymentResponse(
            success=True,
            session_id=None if self.omit_session else f"sess_{len(self.requests)}",
            link_url=self.link_url if request.payment_type == "linkpay" else None,
            merchant_trans_id=request.merchant_trans_id,
            status="pending",
            message="Interaction created",
        )

    async def create_interaction(self, request: PaymentRequest) -> PaymentResponse:
        return await self._respond("interaction", request)

    async def create_direct_payment(self, request: PaymentRequest) -> PaymentResponse:
        return await self._respond("direct", request)

    async def get_status(self, order_id: str, scenario_type: ScenarioType) -> PaymentStatus:
        self.requests.append(("status", order_id))
        return PaymentStatus(merchant_trans_id=order_id, status="captured", amount=300, currency="USD")


def make_settings(**overrides) -> Settings:
    """Settings with fast timings and no env file."""
    values = dict(
        sdk_url=SDK_URL,
        sdk_settle_interval=0,
        sdk_ready_checks=2,
        sdk_ready_backoff=1,
        simulator_processing_delay=0,
        simulator_success_rate=1.0,
        log_file="",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_session(token: Optional[str] = "sess_token", order_id: str = "demo_order_1") -> Session:
    return Session(
        order_id=order_id,
        scenario_type=ScenarioType.EMBEDDED,
        amount=300.0,
        currency="USD",
        status=SessionStatus.AWAITING_SESSION,
        session_token=token,
    )


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def host():
    return FakeWidgetHost()


@pytest.fixture
def api():
    return FakePaymentAPI()


@pytest.fixture
def loader(host, settings):
    return WidgetLoader(host, settings=settings)


@pytest.fixture
def controller(host, settings):
    return InstanceController(host, settings=settings)


class Recorder:
    """Collects outcomes and status transitions."""

    def __init__(self):
        self.outcomes = []
        self.statuses = []

    def on_outcome(self, outcome):
        self.outcomes.append(outcome)

    def on_status(self, session):
        self.statuses.append((session.order_id, session.status))

    def statuses_of(self, order_id: str) -> List[SessionStatus]:
        return [status for oid, status in self.statuses if oid == order_id]


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def orchestrator(api, controller, loader, settings, recorder):
    return SessionOrchestrator(
        api=api,
        controller=controller,
        loader=loader,
        settings=settings,
        on_outcome=recorder.on_outcome,
        on_status=recorder.on_status,
    )
