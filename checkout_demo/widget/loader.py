"""
Widget runtime loading with graceful degradation.

The runtime is a third-party script that registers a global constructor. The
loader injects it at most once per process, polls for the constructor after
the script reports load, and falls back to a degraded handle (meaning: use the
fallback simulator) whenever the runtime cannot be confirmed. Loading never
fails outright; the demo must stay usable without the real widget.
"""

import asyncio
from typing import Awaitable, Callable, List, Optional, Sequence

from pydantic import BaseModel

from ..core.config import Settings, get_settings
from ..core.errors import WidgetLoadError
from ..core.logging import get_logger
from .host import WidgetHost

logger = get_logger(__name__)

RuntimeResolver = Callable[[Sequence[str]], Awaitable[Optional[str]]]


class RuntimeHandle(BaseModel):
    """Result of a load: the runtime's global name, or degraded mode."""
    name: Optional[str] = None
    degraded: bool = False
    reason: Optional[str] = None

    @classmethod
    def available(cls, name: str) -> "RuntimeHandle":
        return cls(name=name)

    @classmethod
    def fallback(cls, reason: str) -> "RuntimeHandle":
        return cls(degraded=True, reason=reason)


class WidgetLoader:
    """Ensures the widget runtime is available, once per process."""

    def __init__(
        self,
        host: WidgetHost,
        settings: Optional[Settings] = None,
        resolver: Optional[RuntimeResolver] = None,
        script_url: Optional[str] = None,
        global_names: Optional[List[str]] = None,
        settle_interval: Optional[float] = None,
        ready_checks: Optional[int] = None,
        backoff: Optional[float] = None,
    ):
        """
        Initialize the loader.

        Args:
            host: Browser environment
            settings: Settings to read defaults from
            resolver: Runtime lookup; defaults to ``host.resolve_runtime``
            script_url: Runtime script location
            global_names: Names the runtime may register under
            settle_interval: Wait before the first check after load (seconds)
            ready_checks: Maximum number of checks after load
            backoff: Multiplier for the wait between checks
        """
        settings = settings or get_settings()
        self.host = host
        self.resolver: RuntimeResolver = resolver or host.resolve_runtime
        self.script_url = script_url or settings.sdk_url
        self.global_names = list(global_names or settings.sdk_global_names)
        self.settle_interval = settle_interval if settle_interval is not None else settings.sdk_settle_interval
        self.ready_checks = max(1, ready_checks if ready_checks is not None else settings.sdk_ready_checks)
        self.backoff = backoff if backoff is not None else settings.sdk_ready_backoff

        self._result: Optional[RuntimeHandle] = None
        self._pending: Optional[asyncio.Future] = None
        self._script_injected = False

    @property
    def result(self) -> Optional[RuntimeHandle]:
        """Settled load result, if any."""
        return self._result

    @property
    def script_injected(self) -> bool:
        return self._script_injected

    async def ensure_runtime_available(self) -> RuntimeHandle:
        """
        Resolve the runtime, loading it if needed.

        Idempotent: the first settled result is returned to every later call,
        and concurrent callers share one in-flight load.

        Returns:
            RuntimeHandle, degraded when the simulator must be used
        """
        if self._result is not None:
            return self._result

        if self._pending is None:
            self._pending = asyncio.ensure_future(self._load())

        try:
            result = await asyncio.shield(self._pending)
        finally:
            if self._pending is not None and self._pending.done():
                self._pending = None

        self._result = result
        return result

    async def reload(self) -> RuntimeHandle:
        """
        Re-run loading on explicit user request.

        Removes the previously injected script first so the runtime does not
        register its globals twice.
        """
        if self._pending is not None:
            await asyncio.shield(self._pending)

        logger.info("Reloading widget runtime", script_url=self.script_url)
        try:
            removed = await self.host.remove_scripts(self.script_url)
            logger.debug("Removed previous runtime script", removed=removed)
        except WidgetLoadError as e:
            logger.warning("Could not remove previous runtime script", error=str(e))

        self._script_injected = False
        self._result = None
        return await self.ensure_runtime_available()

    async def _resolve(self) -> Optional[str]:
        try:
            return await self.resolver(self.global_names)
        except WidgetLoadError as e:
            logger.warning("Runtime lookup failed", error=str(e))
            return None

    async def _load(self) -> RuntimeHandle:
        name = await self._resolve()
        if name:
            logger.info("Widget runtime already loaded", runtime=name)
            return RuntimeHandle.available(name)

        if self._script_injected:
            # Detection already ran for this script; only reload() re-injects
            return RuntimeHandle.fallback("runtime not registered by injected script")

        logger.info("Loading widget runtime", script_url=self.script_url)
        self._script_injected = True
        try:
            loaded = await self.host.inject_script(self.script_url)
        except WidgetLoadError as e:
            logger.warning("Widget runtime injection failed, using simulator", error=str(e))
            return RuntimeHandle.fallback(str(e))

        if not loaded:
            logger.warning("Widget runtime script failed to load, using simulator", script_url=self.script_url)
            return RuntimeHandle.fallback("script load error")

        delay = self.settle_interval
        for attempt in range(1, self.ready_checks + 1):
            await asyncio.sleep(delay)
            name = await self._resolve()
            if name:
                logger.info("Widget runtime available", runtime=name, attempt=attempt)
                return RuntimeHandle.available(name)
            delay *= self.backoff

        logger.warning(
            "Widget runtime not found after script load, using simulator",
            names=self.global_names,
            checks=self.ready_checks,
        )
        return RuntimeHandle.fallback("runtime not found after script load")
