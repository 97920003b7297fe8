"""
Run an embedded (Drop-in) checkout end to end.

Usage: Start the demo payment API, then run this script.

    python -m checkout_demo.app.main
    python scripts/run_checkout_demo.py --amount 300 --currency USD

When the widget runtime cannot be loaded (offline, CDN blocked), the session is
armed with the payment simulator and the script pays through it.

Requirements:
- Playwright Chromium installed (playwright install chromium)
- API_BASE_URL pointing at the payment API (defaults to localhost:8080)
- HEADLESS=false to watch the widget render
"""

import argparse
import asyncio

from checkout_demo.checkout import build_checkout
from checkout_demo.core.browser import managed_browser
from checkout_demo.core.logging import setup_logging
from checkout_demo.core.models import ScenarioType

setup_logging()


async def run_checkout(amount: float, currency: str, wait_seconds: int) -> None:
    """Submit an embedded order and wait for its outcome."""
    print("\n💳 Drop-in checkout demo")
    print("=" * 60)

    outcomes = []
    done = asyncio.Event()

    def on_outcome(outcome):
        outcomes.append(outcome)
        done.set()

    async with managed_browser() as browser:
        page = await browser.open_checkout_page()
        checkout = build_checkout(page, on_outcome=on_outcome)

        try:
            print("\n1. Loading widget runtime...")
            await checkout.prepare()

            print(f"\n2. Submitting order: {currency} {amount:.2f}")
            await checkout.submit(ScenarioType.EMBEDDED, amount, currency)
            print(f"   Status: {checkout.status.value}")
            if checkout.notice:
                print(f"   Notice: {checkout.notice.message}")

            if checkout.session and checkout.session.degraded:
                print("\n3. Widget unavailable, paying through the simulator...")
                await checkout.simulate_pay()
            else:
                print(f"\n3. Waiting up to {wait_seconds}s for the widget outcome...")
                try:
                    await asyncio.wait_for(done.wait(), timeout=wait_seconds)
                except asyncio.TimeoutError:
                    print("   No outcome before timeout")

            for outcome in outcomes:
                print(f"\n✅ Outcome: {outcome.kind.value} for order {outcome.order_id}")

            status = await checkout.refresh_status()
            if status:
                print(f"   Payment API status: {status.status}")
        finally:
            await checkout.close()
            await page.close()

    print("\n" + "=" * 60)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run a Drop-in checkout")
    parser.add_argument("--amount", type=float, default=300.0)
    parser.add_argument("--currency", default="USD")
    parser.add_argument("--wait", type=int, default=120, help="Seconds to wait for the widget outcome")
    args = parser.parse_args()

    asyncio.run(run_checkout(args.amount, args.currency, args.wait))
