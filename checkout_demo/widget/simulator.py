"""Fallback payment widget used when the real runtime cannot be loaded."""

import asyncio
import random
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..core.logging import get_logger
from .host import WidgetCallbacks

logger = get_logger(__name__)

DECLINE_CODE = "MOCK_DECLINED"
DECLINE_MESSAGE = "Simulated payment declined (demo only)"


class FallbackSimulator:
    """
    Stand-in for the real widget with the same three outcome callbacks.

    ``pay()`` completes or fails after a processing delay according to the
    configured success rate; ``cancel()`` reports immediately. The success
    rate only exists to exercise both outcome paths.
    """

    def __init__(
        self,
        session_token: str,
        callbacks: WidgetCallbacks,
        success_rate: float = 0.8,
        processing_delay: float = 2.0,
        rng: Optional[random.Random] = None,
    ):
        self.session_token = session_token
        self.callbacks = callbacks
        self.success_rate = success_rate
        self.processing_delay = processing_delay
        self.rng = rng or random.Random()
        self.processing = False
        self.destroyed = False

    async def pay(
        self,
        amount: Optional[float] = None,
        currency: str = "USD",
        payment_method: str = "credit_card",
    ) -> None:
        """Simulate a payment attempt."""
        if self.destroyed or self.processing:
            logger.debug("Ignoring simulated payment", destroyed=self.destroyed, processing=self.processing)
            return

        self.processing = True
        logger.info("Simulated payment processing", payment_method=payment_method)
        try:
            await asyncio.sleep(self.processing_delay)
        finally:
            self.processing = False

        if self.destroyed:
            return

        result: Dict[str, Any] = {
            "merchantTransID": f"mock_{int(time.time() * 1000)}",
            "sessionID": self.session_token,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        if self.rng.random() < self.success_rate:
            result.update({
                "type": "payment_completed",
                "amount": amount,
                "currency": currency,
                "paymentMethod": payment_method,
            })
            logger.info("Simulated payment completed")
            await self.callbacks.on_completed(result)
        else:
            result.update({
                "type": "payment_failed",
                "code": DECLINE_CODE,
                "message": DECLINE_MESSAGE,
            })
            logger.info("Simulated payment declined")
            await self.callbacks.on_failed(result)

    async def cancel(self) -> None:
        """Simulate the user cancelling the payment."""
        if self.destroyed or self.processing:
            return
        await self.callbacks.on_cancelled({
            "type": "payment_cancelled",
            "sessionID": self.session_token,
        })

    def destroy(self) -> None:
        """Suppress any pending outcome."""
        self.destroyed = True
