# shopcart/celery_worker.py
from celery import Celery

from shopcart.utils.settings import CELERY_BROKER_URL, CELERY_RESULT_BACKEND

celery_app = Celery(
    "cart",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# Explicite importuj taski, zeby Celery je zarejestrowal
celery_app.conf.imports = ("shopcart.tasks.maintenance",)

celery_app.conf.beat_schedule = {
    "cleanup-session-carts-daily": {
        "task": "shopcart.tasks.maintenance.cleanup_session_carts_task",
        "schedule": 24 * 60 * 60.0,
    },
    "refresh-cart-prices-hourly": {
        "task": "shopcart.tasks.maintenance.refresh_cart_prices_task",
        "schedule": 60 * 60.0,
    },
}

celery_app.conf.timezone = "UTC"
