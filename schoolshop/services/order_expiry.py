# schoolshop/services/order_expiry.py
import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from schoolshop.data.database import SessionLocal
from schoolshop.repos.order_repo import OrderRepo
from schoolshop.utils.settings import ORDER_TTL_SECONDS
from schoolshop.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class SweepResult:
    success: bool
    deleted_count: int = 0
    error: str | None = None


def expiry_cutoff(now: datetime | None = None, ttl_seconds: int = ORDER_TTL_SECONDS) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now - timedelta(seconds=ttl_seconds)


def sweep_expired_orders(
    db: Session,
    now: datetime | None = None,
    ttl_seconds: int = ORDER_TTL_SECONDS,
) -> SweepResult:
    """
    Usuwa zamowienia z payment_status == pending starsze niz ttl_seconds.

    Idempotentne - predykat jest liczony od nowa przy kazdym wywolaniu.
    Bledy sa logowane i zwracane jako nieudany wynik, nigdy nie sa rzucane.
    """
    cutoff = expiry_cutoff(now, ttl_seconds)
    try:
        deleted = OrderRepo(db).delete_expired_pending(cutoff)
    except SQLAlchemyError as e:
        logger.error(f"Order sweep failed: {e}")
        return SweepResult(success=False, error=str(e))

    if deleted:
        logger.info(f"Cleaned up {deleted} expired orders (created before {cutoff.isoformat()})")
    return SweepResult(success=True, deleted_count=deleted)


def run_sweep(session_factory: Callable[[], Session] = SessionLocal) -> SweepResult:
    """Sweep na wlasnej sesji - dla celery, timera i startu aplikacji."""
    try:
        db = session_factory()
    except SQLAlchemyError as e:
        logger.error(f"Order sweep could not open a session: {e}")
        return SweepResult(success=False, error=str(e))

    try:
        return sweep_expired_orders(db)
    finally:
        db.close()


def start_periodic_sweep(
    interval_seconds: float,
    sweep: Callable[[], SweepResult] = run_sweep,
) -> asyncio.Task:
    """
    Uruchamia sweep co interval_seconds w biezacej petli asyncio.
    Zwrocony task jest uchwytem - task.cancel() zatrzymuje cykl.
    """

    async def _loop():
        while True:
            await asyncio.sleep(interval_seconds)
            result = await asyncio.to_thread(sweep)
            if not result.success:
                logger.warning(f"Periodic order sweep failed, next attempt in {interval_seconds}s")

    logger.info(f"Starting periodic order sweep every {interval_seconds}s")
    return asyncio.get_running_loop().create_task(_loop(), name="order-sweep")
