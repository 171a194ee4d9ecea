# schoolshop/tasks/expire.py
from schoolshop.celery_worker import celery_app
from schoolshop.services.order_expiry import run_sweep
from schoolshop.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="schoolshop.tasks.expire.sweep_expired_orders_task")
def sweep_expired_orders_task():
    logger.info("Expired orders sweep task started")
    result = run_sweep()
    if not result.success:
        # bez ponawiania - nastepna proba w kolejnym cyklu beat
        logger.warning(f"Expired orders sweep failed: {result.error}")
    return {
        "success": result.success,
        "deleted_count": result.deleted_count,
        "error": result.error,
    }
