"""Widget runtime loading, instance ownership and the fallback simulator."""

from .controller import InstanceController, LifecycleState
from .host import PlaywrightWidgetHost, WidgetCallbacks, WidgetHost
from .loader import RuntimeHandle, WidgetLoader
from .simulator import FallbackSimulator

__all__ = [
    "FallbackSimulator",
    "InstanceController",
    "LifecycleState",
    "PlaywrightWidgetHost",
    "RuntimeHandle",
    "WidgetCallbacks",
    "WidgetHost",
    "WidgetLoader",
]
