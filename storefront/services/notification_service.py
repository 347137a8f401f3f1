# storefront/services/notification_service.py
from kombu.exceptions import OperationalError

from storefront.celery_worker import celery_app
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Kanal operacyjny przez Celery.
    -powiadomienie usera o zamowieniu (best effort)
    -zdarzenie "reconciliation required" (stan zdjety, brak zamowienia)
    Awaria brokera jest logowana, nigdy nie wywraca checkoutu.
    """

    @staticmethod
    def send_order_notification(user_id: str, order_id: int) -> bool:
        try:
            send_order_notification_task.delay(user_id, order_id)
            return True
        except OperationalError as e:
            logger.warning(f"Could not queue order notification for order {order_id}: {e}")
            return False

    @staticmethod
    def report_reconciliation_required(event: dict) -> bool:
        try:
            record_reconciliation_task.delay(event)
            return True
        except OperationalError as e:
            #zdarzenie jest juz w logu (critical), tu tylko brak kanalu
            logger.error(f"Could not queue reconciliation event for user {event.get('user_id')}: {e}")
            return False


@celery_app.task(name="storefront.services.notification_service.send_order_notification_task")
def send_order_notification_task(user_id: str, order_id: int):
    """
    Celery task - w prawdziwym systemie wyslalby email/SMS/push.
    Teraz tylko loguje.
    """
    logger.info(f"[NOTIFICATION] User {user_id}: Order {order_id} is being processed")
    return {"user_id": user_id, "order_id": order_id, "status": "sent"}


@celery_app.task(name="storefront.services.notification_service.record_reconciliation_task")
def record_reconciliation_task(event: dict):
    """Worker operacyjny: zdarzenie do recznej/automatycznej rekoncyliacji."""
    logger.critical(
        f"[RECONCILIATION REQUIRED] user={event.get('user_id')} "
        f"lines={event.get('lines')} reason={event.get('reason')}"
    )
    return {**event, "status": "recorded"}
