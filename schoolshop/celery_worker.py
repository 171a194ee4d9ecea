# schoolshop/celery_worker.py
from celery import Celery

from schoolshop.utils.settings import CELERY_BROKER_URL, CELERY_RESULT_BACKEND, SWEEP_INTERVAL_SECONDS

celery_app = Celery(
    "schoolshop",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# Explicite importuj taski, zeby Celery je zarejestrowal
celery_app.conf.imports = ("schoolshop.tasks.expire",)

# Jedyne cykliczne miejsce egzekwowania progu ORDER_TTL_SECONDS
celery_app.conf.beat_schedule = {
    "sweep-expired-orders": {
        "task": "schoolshop.tasks.expire.sweep_expired_orders_task",
        "schedule": float(SWEEP_INTERVAL_SECONDS),
    },
}

celery_app.conf.timezone = "UTC"
