"""
Ownership of the single live widget instance.

The controller holds one slot: the current instance handle and the mount id it
was created for. Every outcome callback handed to an instance is tagged with
that mount id, and a callback whose tag no longer matches the slot is dropped.
This is what keeps a late event from a superseded widget away from the active
session.
"""

import itertools
import random
import time
from enum import Enum
from typing import Any, Dict, Optional

from ..core.config import Settings, get_settings
from ..core.errors import SessionNotReadyError, WidgetConstructionError, WidgetError
from ..core.logging import get_logger
from .host import OutcomeCallback, WidgetCallbacks, WidgetHost
from .loader import RuntimeHandle
from .simulator import FallbackSimulator

logger = get_logger(__name__)

MOUNT_ID_PREFIX = "dropin-container"

WIDGET_APPEARANCE = {
    "colorBackground": "#ffffff",
    "colorPrimary": "#1890ff",
}


class LifecycleState(str, Enum):
    """Lifecycle of the controller's widget slot."""
    ABSENT = "absent"
    INITIALIZING = "initializing"
    ACTIVE = "active"
    DESTROYED = "destroyed"


class InstanceController:
    """Creates, tracks and destroys the one widget instance of a view."""

    def __init__(
        self,
        host: WidgetHost,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize the controller.

        Args:
            host: Browser environment owning the mount point
            settings: Settings for runtime options and the simulator
            rng: Random source handed to fallback simulators
        """
        self.host = host
        self.settings = settings or get_settings()
        self.rng = rng
        self._handle: Any = None
        self._mount_id: Optional[str] = None
        self._state = LifecycleState.ABSENT
        self._degraded = False
        self._mount_in_flight = False
        self._sequence = itertools.count(1)

    @property
    def lifecycle_state(self) -> LifecycleState:
        return self._state

    @property
    def mount_id(self) -> Optional[str]:
        return self._mount_id

    @property
    def degraded(self) -> bool:
        """True when the live instance is the fallback simulator."""
        return self._degraded and self._state == LifecycleState.ACTIVE

    def _next_mount_id(self) -> str:
        return f"{MOUNT_ID_PREFIX}-{int(time.time() * 1000)}-{next(self._sequence)}"

    def _guard(self, mount_id: str, kind: str, callback: OutcomeCallback) -> OutcomeCallback:
        """Wrap a callback so it only fires while ``mount_id`` is current."""
        async def forward(payload: Dict[str, Any]) -> None:
            if mount_id != self._mount_id:
                logger.debug(
                    "Dropping stale widget callback",
                    kind=kind,
                    callback_mount_id=mount_id,
                    current_mount_id=self._mount_id,
                )
                return
            await callback(payload)

        return forward

    def _runtime_options(self, session_token: str, mount_id: str) -> Dict[str, Any]:
        return {
            "id": f"#{mount_id}",
            "type": "payment",
            "sessionID": session_token,
            "locale": self.settings.widget_locale,
            "mode": "embedded",
            "environment": self.settings.runtime_environment,
            "appearance": dict(WIDGET_APPEARANCE),
        }

    async def mount(
        self,
        session: Any,
        on_completed: OutcomeCallback,
        on_failed: OutcomeCallback,
        on_cancelled: OutcomeCallback,
        runtime: RuntimeHandle,
    ) -> bool:
        """
        Mount a widget for ``session``, replacing any current instance.

        Args:
            session: Session with a session token (read only)
            on_completed: Called with the raw payload on completion
            on_failed: Called with the raw payload on failure
            on_cancelled: Called with the raw payload on cancellation
            runtime: Loader result; degraded mounts the fallback simulator

        Returns:
            True if mounted, False if ignored because a mount is in flight
            or the mount was superseded before it finished

        Raises:
            SessionNotReadyError: If the session has no session token
            WidgetConstructionError: If the runtime threw during construction
        """
        if self._mount_in_flight:
            logger.warning("Mount ignored, another mount is in flight", order_id=session.order_id)
            return False

        if not session.session_token:
            raise SessionNotReadyError(f"Session {session.order_id} has no session token")

        self._mount_in_flight = True
        try:
            await self.destroy()

            mount_id = self._next_mount_id()
            self._mount_id = mount_id
            self._state = LifecycleState.INITIALIZING

            callbacks = WidgetCallbacks(
                on_completed=self._guard(mount_id, "completed", on_completed),
                on_failed=self._guard(mount_id, "failed", on_failed),
                on_cancelled=self._guard(mount_id, "cancelled", on_cancelled),
            )

            logger.info(
                "Mounting widget",
                order_id=session.order_id,
                mount_id=mount_id,
                degraded=runtime.degraded,
                environment=self.settings.runtime_environment,
            )

            try:
                await self.host.prepare_mount(mount_id)
                if runtime.degraded:
                    handle: Any = FallbackSimulator(
                        session_token=session.session_token,
                        callbacks=callbacks,
                        success_rate=self.settings.simulator_success_rate,
                        processing_delay=self.settings.simulator_processing_delay,
                        rng=self.rng,
                    )
                else:
                    handle = await self.host.construct_widget(
                        runtime.name,
                        mount_id,
                        self._runtime_options(session.session_token, mount_id),
                        callbacks,
                    )
            except WidgetConstructionError as e:
                logger.error("Widget construction failed", mount_id=mount_id, error=str(e))
                if self._mount_id == mount_id:
                    self._mount_id = None
                    self._state = LifecycleState.ABSENT
                    await self._release_mount()
                raise

            if self._mount_id != mount_id:
                # destroy() ran while construction was suspended
                logger.info("Mount superseded during construction", mount_id=mount_id)
                await self._teardown(handle)
                return False

            self._handle = handle
            self._degraded = runtime.degraded
            self._state = LifecycleState.ACTIVE
            logger.info("Widget active", mount_id=mount_id, degraded=runtime.degraded)
            return True
        finally:
            self._mount_in_flight = False

    async def destroy(self) -> None:
        """
        Destroy the current instance.

        No-op when nothing is mounted; safe to call repeatedly. The slot is
        cleared before any teardown work so callbacks arriving during teardown
        are already stale.
        """
        if self._handle is None and self._mount_id is None:
            return

        handle = self._handle
        mount_id = self._mount_id
        self._handle = None
        self._mount_id = None
        self._degraded = False
        self._state = LifecycleState.DESTROYED

        await self._teardown(handle)
        await self._release_mount()
        logger.info("Widget destroyed", mount_id=mount_id)

    async def _teardown(self, handle: Any) -> None:
        if handle is None:
            return
        if isinstance(handle, FallbackSimulator):
            handle.destroy()
            return
        try:
            await self.host.teardown_widget(handle)
        except WidgetError as e:
            logger.warning("Widget teardown hook failed", error=str(e))

    async def _release_mount(self) -> None:
        try:
            await self.host.release_mount()
        except WidgetError as e:
            logger.warning("Mount point release failed", error=str(e))

    def _simulator(self) -> Optional[FallbackSimulator]:
        if isinstance(self._handle, FallbackSimulator):
            return self._handle
        return None

    async def simulate_pay(self, **kwargs: Any) -> bool:
        """Trigger the simulator's pay action. False if no simulator is live."""
        simulator = self._simulator()
        if simulator is None:
            logger.warning("No simulator mounted, ignoring pay action")
            return False
        await simulator.pay(**kwargs)
        return True

    async def simulate_cancel(self) -> bool:
        """Trigger the simulator's cancel action. False if no simulator is live."""
        simulator = self._simulator()
        if simulator is None:
            logger.warning("No simulator mounted, ignoring cancel action")
            return False
        await simulator.cancel()
        return True
