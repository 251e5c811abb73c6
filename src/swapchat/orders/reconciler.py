"""Background reconciliation of pending orders.

Every `interval` seconds the engine walks the session's `order_*` records,
asks the backend for each order's status and announces changes in the chat.
Orders that reached a terminal status are removed from the store.

The last announced status is written to the record before the message is
emitted, so a restart never repeats an announcement (a crash between the
write and the emit loses that one message instead).

Run standalone over every chat with pending orders:

    python -m swapchat.orders.reconciler [--once] [--interval SECONDS]
"""

import argparse
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import ValidationError

from swapchat.errors import ReconciliationError
from swapchat.flow.formatting import order_status_update
from swapchat.messages import bot_message
from swapchat.orders.models import OrderStatus, PendingOrder, is_terminal, now_ms
from swapchat.session import SessionContext

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    """Result of reconciling one order record."""

    SKIPPED = "skipped"
    UNCHANGED = "unchanged"
    UPDATED = "updated"
    ANNOUNCED = "announced"
    RESOLVED = "resolved"


@dataclass
class ReconciliationReport:
    """Counts for one polling cycle."""

    checked: int = 0
    announced: int = 0
    resolved: int = 0
    skipped: int = 0
    failed: int = 0

    def __str__(self) -> str:
        return (
            f"checked={self.checked} announced={self.announced} resolved={self.resolved} "
            f"skipped={self.skipped} failed={self.failed}"
        )


class OrderReconciliationEngine:
    """Polls pending orders of one session and announces status changes."""

    def __init__(self, session: SessionContext, interval: Optional[float] = None):
        self.session = session
        self.orders = session.orders
        self.tokens = session.token_service
        self.interval = interval if interval is not None else session.settings.status_poll_interval
        self._announced: set[str] = set()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def poll_once(self) -> ReconciliationReport:
        """Run one cycle over every stored order. Never raises."""
        report = ReconciliationReport()
        try:
            keys = await self.orders.keys()
        except Exception as e:
            logger.error(f"Session {self.session.session_id}: cannot list orders: {e}")
            return report

        for key in keys:
            report.checked += 1
            try:
                outcome = await self.reconcile(key, report)
            except ReconciliationError as e:
                report.failed += 1
                logger.warning(f"Order {key} not reconciled this cycle: {e}")
                continue
            except Exception as e:
                report.failed += 1
                logger.error(f"Error processing order {key}: {type(e).__name__}: {e}")
                continue

            if outcome is Outcome.SKIPPED:
                report.skipped += 1
            elif outcome is Outcome.RESOLVED:
                report.resolved += 1

        if keys:
            logger.debug(f"Session {self.session.session_id} reconciliation: {report}")
        return report

    async def reconcile(self, key: str, report: Optional[ReconciliationReport] = None) -> Outcome:
        """Reconcile a single order record. Announcements are counted in `report`."""
        raw = await self.orders.get_raw(key)
        if raw is None:
            return Outcome.SKIPPED

        try:
            order = PendingOrder.from_json(raw)
        except ValidationError as e:
            logger.warning(f"Skipping unreadable order record {key}: {e.error_count()} error(s)")
            return Outcome.SKIPPED

        try:
            status = await self.tokens.check_order_status(order.order_id)
        except Exception as e:
            raise ReconciliationError(f"status query for {order.order_id} failed: {e}") from e
        status = (status or "").strip().lower()
        if not status or status == OrderStatus.UNKNOWN.value:
            return Outcome.UNCHANGED

        changed = status != order.status
        if not changed and not is_terminal(status):
            return Outcome.UNCHANGED

        dedup_key = f"{order.order_id}:{status}"
        announce = (
            changed and dedup_key not in self._announced and order.announced_status != status
        )

        text = None
        if announce:
            # render before announced_status is saved
            link = self.session.settings.explorer_link(order.tx_hash)
            text = order_status_update(order, status, link)

        updated = order.model_copy(
            update={
                "status": status,
                "last_checked": now_ms(),
                "announced_status": status if announce else order.announced_status,
            }
        )
        if announce or not is_terminal(status):
            await self.orders.save(updated)

        if text is not None:
            self._announced.add(dedup_key)
            if report is not None:
                report.announced += 1
            await self.session.emit(bot_message(text))
            logger.info(f"Order {order.order_id} is now {status}")

        if is_terminal(status):
            await self.orders.delete(key)
            self._forget(order.order_id)
            return Outcome.RESOLVED

        return Outcome.ANNOUNCED if announce else Outcome.UPDATED

    def _forget(self, order_id: str) -> None:
        prefix = f"{order_id}:"
        self._announced = {k for k in self._announced if not k.startswith(prefix)}

    async def _run(self) -> None:
        logger.info(
            f"Order reconciliation started for session {self.session.session_id} "
            f"(every {self.interval}s)"
        )
        while True:
            await self.poll_once()
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        """Start polling in the background. No-op if already running."""
        if self.running:
            return
        self._task = asyncio.create_task(
            self._run(), name=f"reconciler-{self.session.session_id}"
        )

    async def stop(self) -> None:
        """Stop polling and wait for the task to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info(f"Order reconciliation stopped for session {self.session.session_id}")


async def run(once: bool = False, interval: Optional[float] = None) -> None:
    """Reconcile orders of every chat namespace found in the database."""
    from aiogram import Bot

    from swapchat.config import get_settings
    from swapchat.events import EventBus, EventKind
    from swapchat.notifications.telegram import TelegramNotifier
    from swapchat.orders.database import close_db, init_db
    from swapchat.orders.store import list_namespaces
    from swapchat.services.factory import create_backend, create_session
    from swapchat.services.wallet import SimulatedWallet

    settings = get_settings()
    interval = interval if interval is not None else settings.status_poll_interval
    database = await init_db()
    backend = create_backend(settings)

    bot = Bot(token=settings.telegram_bot_token) if settings.telegram_bot_token else None
    notifier = TelegramNotifier(bot)
    bus = EventBus()
    bus.subscribe(EventKind.MESSAGE, notifier.deliver)
    bus.subscribe(EventKind.ERROR, notifier.deliver)

    engines: dict[str, OrderReconciliationEngine] = {}
    try:
        while True:
            for namespace in await list_namespaces(database):
                if namespace not in engines:
                    session = create_session(
                        namespace,
                        settings,
                        bus,
                        database,
                        backend=backend,
                        # status checks never touch the wallet
                        wallet_factory=lambda owner: SimulatedWallet(owner=owner),
                    )
                    engines[namespace] = OrderReconciliationEngine(session, interval=interval)
                report = await engines[namespace].poll_once()
                logger.info(f"Chat {namespace}: {report}")
            if once:
                break
            await asyncio.sleep(interval)
    finally:
        if bot is not None:
            await bot.session.close()
        await close_db()


def main() -> None:
    """Command line entry point."""
    from dotenv import load_dotenv

    from swapchat.logging_config import setup_logging

    load_dotenv()
    setup_logging()

    parser = argparse.ArgumentParser(description="Reconcile pending swap orders")
    parser.add_argument("--once", action="store_true", help="Run a single polling cycle and exit")
    parser.add_argument("--interval", type=float, default=None, help="Seconds between cycles")
    args = parser.parse_args()

    try:
        asyncio.run(run(once=args.once, interval=args.interval))
    except KeyboardInterrupt:
        logger.info("Reconciler stopped")


if __name__ == "__main__":
    main()
