# shopcart/tasks/maintenance.py
from datetime import datetime, timezone, timedelta

from sqlalchemy.orm import Session

from shopcart.celery_worker import celery_app
from shopcart.data.database import SessionLocal
from shopcart.repos.cart_repo import CartRepo
from shopcart.services.product_client import ProductClient
from shopcart.services.reconciliation import CartReconciler
from shopcart.utils.settings import SESSION_CART_MAX_AGE_DAYS
from shopcart.utils.logging import get_logger

logger = get_logger(__name__)


def cleanup_session_carts(db: Session, days_old: int, now: datetime | None = None) -> int:
    """Usuwa koszyki gosci nieruszane od days_old dni. Koszyki userow zostaja."""
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days_old)
    repo = CartRepo(db)
    removed = repo.run_in_transaction(lambda: repo.delete_stale_session_lines(cutoff))
    logger.info(f"Usunieto {removed} pozycji z porzuconych koszykow gosci (starszych niz {cutoff})")
    return removed


def refresh_cart_prices(db: Session, catalog) -> int:
    repo = CartRepo(db)
    reconciler = CartReconciler(repo, catalog)
    updated = 0

    for product_id in repo.product_ids_in_carts():
        try:
            updated += repo.run_in_transaction(lambda: reconciler.sync_prices(product_id))
        except Exception as e:
            # jeden niedostepny produkt nie blokuje reszty
            logger.warning(f"Nie udalo sie odswiezyc cen produktu {product_id}: {e}")

    logger.info(f"Odswiezono ceny {updated} pozycji koszykow")
    return updated


@celery_app.task(name="shopcart.tasks.maintenance.cleanup_session_carts_task")
def cleanup_session_carts_task(days_old: int = SESSION_CART_MAX_AGE_DAYS):
    logger.info("Cleanup session carts task started")

    db = SessionLocal()
    try:
        return cleanup_session_carts(db, days_old)
    finally:
        db.close()


@celery_app.task(name="shopcart.tasks.maintenance.refresh_cart_prices_task")
def refresh_cart_prices_task():
    logger.info("Refresh cart prices task started")

    db = SessionLocal()
    try:
        return refresh_cart_prices(db, ProductClient())
    finally:
        db.close()
