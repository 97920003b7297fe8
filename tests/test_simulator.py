"""Tests for the fallback payment simulator."""

import asyncio
import random

import pytest

from checkout_demo.widget.host import WidgetCallbacks
from checkout_demo.widget.simulator import DECLINE_CODE, FallbackSimulator


def make_simulator(events, **kwargs):
    async def completed(payload):
        events.append(("completed", payload))

    async def failed(payload):
        events.append(("failed", payload))

    async def cancelled(payload):
        events.append(("cancelled", payload))

    kwargs.setdefault("processing_delay", 0)
    return FallbackSimulator(
        session_token="sess_sim",
        callbacks=WidgetCallbacks(completed, failed, cancelled),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_pay_completes_at_full_success_rate():
    """Test a certain success reports completion with the order details."""
    events = []
    simulator = make_simulator(events, success_rate=1.0)

    await simulator.pay(amount=300.0, currency="HKD", payment_method="wallet")

    kind, payload = events[0]
    assert kind == "completed"
    assert payload["type"] == "payment_completed"
    assert payload["sessionID"] == "sess_sim"
    assert payload["amount"] == 300.0
    assert payload["currency"] == "HKD"
    assert payload["paymentMethod"] == "wallet"
    assert payload["merchantTransID"].startswith("mock_")


@pytest.mark.asyncio
async def test_pay_declines_at_zero_success_rate():
    """Test a certain failure reports the mock decline."""
    events = []
    simulator = make_simulator(events, success_rate=0.0)

    await simulator.pay(amount=10.0)

    kind, payload = events[0]
    assert kind == "failed"
    assert payload["code"] == DECLINE_CODE
    assert payload["message"]


@pytest.mark.asyncio
async def test_success_rate_drives_outcome_mix():
    """Test both outcomes occur at an intermediate success rate."""
    events = []
    simulator = make_simulator(events, success_rate=0.5, rng=random.Random(7))

    for _ in range(40):
        await simulator.pay(amount=1.0)

    kinds = {kind for kind, _ in events}
    assert kinds == {"completed", "failed"}


@pytest.mark.asyncio
async def test_cancel_reports_immediately():
    """Test cancel emits a cancelled event without delay."""
    events = []
    simulator = make_simulator(events, processing_delay=60)

    await asyncio.wait_for(simulator.cancel(), timeout=1)

    assert events == [("cancelled", {"type": "payment_cancelled", "sessionID": "sess_sim"})]


@pytest.mark.asyncio
async def test_destroy_suppresses_pending_outcome():
    """Test a payment in progress emits nothing once destroyed."""
    events = []
    simulator = make_simulator(events, processing_delay=0.05, success_rate=1.0)

    task = asyncio.create_task(simulator.pay(amount=5.0))
    await asyncio.sleep(0)
    simulator.destroy()
    await task

    assert events == []


@pytest.mark.asyncio
async def test_actions_ignored_while_processing():
    """Test a second pay or a cancel during processing is ignored."""
    events = []
    simulator = make_simulator(events, processing_delay=0.05, success_rate=1.0)

    task = asyncio.create_task(simulator.pay(amount=5.0))
    await asyncio.sleep(0)
    await simulator.pay(amount=5.0)
    await simulator.cancel()
    await task

    assert [kind for kind, _ in events] == ["completed"]


@pytest.mark.asyncio
async def test_destroyed_simulator_ignores_actions():
    """Test nothing is emitted after destroy."""
    events = []
    simulator = make_simulator(events, success_rate=1.0)
    simulator.destroy()

    await simulator.pay(amount=5.0)
    await simulator.cancel()

    assert events == []
