"""Wiring of the checkout core onto a Playwright page."""

from typing import Optional

from playwright.async_api import Page

from .core.config import Settings, get_settings
from .core.payment_api import PaymentAPIClient
from .session.orchestrator import OutcomeListener, SessionOrchestrator, StatusListener
from .widget.controller import InstanceController
from .widget.host import PlaywrightWidgetHost
from .widget.loader import WidgetLoader


def build_checkout(
    page: Page,
    settings: Optional[Settings] = None,
    api: Optional[PaymentAPIClient] = None,
    on_outcome: Optional[OutcomeListener] = None,
    on_status: Optional[StatusListener] = None,
) -> SessionOrchestrator:
    """
    Assemble loader, controller and orchestrator for one checkout view.

    Args:
        page: Page holding the checkout shell (see ``BrowserManager.open_checkout_page``)
        settings: Settings (defaults to the global settings)
        api: Payment API client (defaults to one built from settings)
        on_outcome: Receives outcomes to route on
        on_status: Receives every session status change

    Returns:
        Orchestrator for the view
    """
    settings = settings or get_settings()
    host = PlaywrightWidgetHost(page, settings.widget_container_selector)
    return SessionOrchestrator(
        api=api or PaymentAPIClient(),
        controller=InstanceController(host, settings=settings),
        loader=WidgetLoader(host, settings=settings),
        settings=settings,
        on_outcome=on_outcome,
        on_status=on_status,
    )
