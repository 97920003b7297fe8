"""
Browser environment access for the widget layer.

The loader and the instance controller never talk to a page directly. They go
through a ``WidgetHost`` that can inject and remove the runtime script, look up
the runtime's global constructor, prepare and release the mount point, and
construct and tear down widget instances. ``PlaywrightWidgetHost`` is the
production implementation on top of a Playwright page; tests substitute an
in-memory host.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, NamedTuple, Optional, Sequence

from playwright.async_api import Error as PlaywrightError, Page

from ..core.errors import WidgetConstructionError, WidgetError, WidgetLoadError
from ..core.logging import get_logger

logger = get_logger(__name__)

OutcomeCallback = Callable[[Dict[str, Any]], Awaitable[None]]

EVENT_BINDING = "__checkoutWidgetEvent"


class WidgetCallbacks(NamedTuple):
    """The three outcome callbacks a widget instance reports through."""
    on_completed: OutcomeCallback
    on_failed: OutcomeCallback
    on_cancelled: OutcomeCallback

    def for_kind(self, kind: str) -> Optional[OutcomeCallback]:
        return {
            "completed": self.on_completed,
            "failed": self.on_failed,
            "cancelled": self.on_cancelled,
        }.get(kind)


class WidgetHost(ABC):
    """Environment capabilities needed to load and run the widget."""

    @abstractmethod
    async def inject_script(self, url: str) -> bool:
        """Append a script element; True on load, False on load error."""

    @abstractmethod
    async def remove_scripts(self, url: str) -> int:
        """Remove script elements pointing at ``url``; returns how many."""

    @abstractmethod
    async def resolve_runtime(self, names: Sequence[str]) -> Optional[str]:
        """Return the first of ``names`` bound to a constructor, else None."""

    @abstractmethod
    async def prepare_mount(self, mount_id: str) -> None:
        """Clear the mount point and assign it ``mount_id``."""

    @abstractmethod
    async def release_mount(self) -> None:
        """Clear the mount point and remove its id."""

    @abstractmethod
    async def construct_widget(
        self,
        runtime_name: str,
        mount_id: str,
        options: Dict[str, Any],
        callbacks: WidgetCallbacks,
    ) -> Any:
        """Construct a runtime instance; returns an opaque handle."""

    @abstractmethod
    async def teardown_widget(self, handle: Any) -> None:
        """Run the instance's own teardown hooks and forget it."""


_INJECT_SCRIPT_JS = """
(url) => new Promise((resolve) => {
  const script = document.createElement('script');
  script.src = url;
  script.crossOrigin = 'anonymous';
  script.onload = () => resolve(true);
  script.onerror = () => resolve(false);
  document.head.appendChild(script);
})
"""

_REMOVE_SCRIPTS_JS = """
(url) => {
  const scripts = Array.from(document.querySelectorAll('script[src]'))
    .filter((s) => s.getAttribute('src') === url || s.src === url);
  scripts.forEach((s) => s.remove());
  return scripts.length;
}
"""

_RESOLVE_RUNTIME_JS = """
(names) => names.find((name) => typeof window[name] === 'function') || null
"""

_PREPARE_MOUNT_JS = """
([selector, mountId]) => {
  const el = document.querySelector(selector);
  if (!el) return false;
  el.innerHTML = '';
  el.id = mountId;
  return true;
}
"""

_RELEASE_MOUNT_JS = """
(selector) => {
  const el = document.querySelector(selector);
  if (!el) return;
  el.innerHTML = '';
  el.removeAttribute('id');
}
"""

_CONSTRUCT_WIDGET_JS = """
([name, mountId, options, binding]) => {
  const Runtime = window[name];
  const emit = (kind) => (params) => {
    const payload = params == null ? null : JSON.parse(JSON.stringify(params));
    return window[binding](mountId, kind, payload);
  };
  const config = Object.assign({}, options, {
    payment_completed: emit('completed'),
    payment_failed: emit('failed'),
    payment_not_preformed: emit('failed'),
    payment_cancelled: emit('cancelled'),
  });
  const instance = new Runtime(config);
  window.__checkoutWidgets = window.__checkoutWidgets || {};
  window.__checkoutWidgets[mountId] = instance;
  return mountId;
}
"""

_TEARDOWN_WIDGET_JS = """
(mountId) => {
  const registry = window.__checkoutWidgets || {};
  const instance = registry[mountId];
  delete registry[mountId];
  if (!instance) return false;
  if (typeof instance.destroy === 'function') instance.destroy();
  if (typeof instance.cleanup === 'function') instance.cleanup();
  return true;
}
"""


class PlaywrightWidgetHost(WidgetHost):
    """WidgetHost backed by a Playwright page."""

    def __init__(self, page: Page, mount_selector: str):
        """
        Initialize the host.

        Args:
            page: Page holding the checkout shell
            mount_selector: CSS selector of the widget mount point
        """
        self.page = page
        self.mount_selector = mount_selector
        self._callbacks: Dict[str, WidgetCallbacks] = {}
        self._binding_installed = False

    async def _install_binding(self) -> None:
        if self._binding_installed:
            return
        await self.page.expose_binding(EVENT_BINDING, self._on_widget_event)
        self._binding_installed = True

    async def _on_widget_event(self, source: Any, mount_id: str, kind: str, payload: Optional[Dict[str, Any]]) -> None:
        callbacks = self._callbacks.get(mount_id)
        if callbacks is None:
            logger.debug("Widget event for released mount", mount_id=mount_id, kind=kind)
            return

        callback = callbacks.for_kind(kind)
        if callback is None:
            logger.warning("Unknown widget event kind", mount_id=mount_id, kind=kind)
            return

        await callback(payload or {})

    async def inject_script(self, url: str) -> bool:
        try:
            return await self.page.evaluate(_INJECT_SCRIPT_JS, url)
        except PlaywrightError as e:
            raise WidgetLoadError(f"Script injection failed: {e}") from e

    async def remove_scripts(self, url: str) -> int:
        try:
            return await self.page.evaluate(_REMOVE_SCRIPTS_JS, url)
        except PlaywrightError as e:
            raise WidgetLoadError(f"Script removal failed: {e}") from e

    async def resolve_runtime(self, names: Sequence[str]) -> Optional[str]:
        try:
            return await self.page.evaluate(_RESOLVE_RUNTIME_JS, list(names))
        except PlaywrightError as e:
            raise WidgetLoadError(f"Runtime lookup failed: {e}") from e

    async def prepare_mount(self, mount_id: str) -> None:
        try:
            found = await self.page.evaluate(_PREPARE_MOUNT_JS, [self.mount_selector, mount_id])
        except PlaywrightError as e:
            raise WidgetConstructionError(f"Mount point preparation failed: {e}") from e
        if not found:
            raise WidgetConstructionError(f"Mount point not found: {self.mount_selector}")

    async def release_mount(self) -> None:
        try:
            await self.page.evaluate(_RELEASE_MOUNT_JS, self.mount_selector)
        except PlaywrightError as e:
            raise WidgetError(f"Mount point release failed: {e}") from e

    async def construct_widget(
        self,
        runtime_name: str,
        mount_id: str,
        options: Dict[str, Any],
        callbacks: WidgetCallbacks,
    ) -> Any:
        await self._install_binding()
        self._callbacks[mount_id] = callbacks
        try:
            return await self.page.evaluate(
                _CONSTRUCT_WIDGET_JS, [runtime_name, mount_id, options, EVENT_BINDING]
            )
        except PlaywrightError as e:
            self._callbacks.pop(mount_id, None)
            raise WidgetConstructionError(f"Failed to initialize Drop-in component: {e}") from e

    async def teardown_widget(self, handle: Any) -> None:
        self._callbacks.pop(handle, None)
        try:
            found = await self.page.evaluate(_TEARDOWN_WIDGET_JS, handle)
        except PlaywrightError as e:
            raise WidgetError(f"Widget teardown failed: {e}") from e
        logger.debug("Widget instance torn down", mount_id=handle, found=found)
