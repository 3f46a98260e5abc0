# easy_ops/services/reminders.py
from datetime import date, timedelta
from smtplib import SMTPException
from typing import List, Dict, Any, Optional
from sqlalchemy.orm import Session, joinedload
import logging

from easy_ops.core.config import settings
from easy_ops.core.exceptions import InventoryException, NotFoundException
from easy_ops.models.dates import ItemDate, GeneralDate
from easy_ops.schemas.dates import GeneralDateCreate, ItemDateCreate
from easy_ops.services.email_service import EmailService
from easy_ops.services.stock_store import StockStore

logger = logging.getLogger(__name__)


class ReminderService:

    # ================================
    # IMPORTANT DATES
    # ================================

    @staticmethod
    def create_general_date(db: Session, data: GeneralDateCreate) -> GeneralDate:
        try:
            record = GeneralDate(
                label=data.label,
                target_date=data.target_date,
                notify_manager=bool(data.notify_manager),
            )
            db.add(record)
            db.commit()
            db.refresh(record)
            logger.info(f"General date created: {record.id} - {record.label}")
            return record
        except Exception as e:
            db.rollback()
            logger.error(f"Error creating general date: {str(e)}")
            raise

    @staticmethod
    def list_general_dates(db: Session) -> List[GeneralDate]:
        return db.query(GeneralDate).order_by(GeneralDate.target_date, GeneralDate.id).all()

    @staticmethod
    def delete_general_date(db: Session, date_id: int) -> None:
        record = db.query(GeneralDate).filter(GeneralDate.id == date_id).first()
        if not record:
            raise NotFoundException(f"Date {date_id} not found")
        try:
            db.delete(record)
            db.commit()
            logger.info(f"General date deleted: {date_id}")
        except Exception as e:
            db.rollback()
            logger.error(f"Error deleting general date {date_id}: {str(e)}")
            raise

    @staticmethod
    def create_item_date(db: Session, data: ItemDateCreate) -> ItemDate:
        StockStore.get_item(db, data.item_id)
        try:
            record = ItemDate(
                item_id=data.item_id,
                label=data.label,
                target_date=data.target_date,
                notify_manager=bool(data.notify_manager),
            )
            db.add(record)
            db.commit()
            db.refresh(record)
            logger.info(f"Item date created: {record.id} for item {data.item_id}")
            return record
        except Exception as e:
            db.rollback()
            logger.error(f"Error creating item date: {str(e)}")
            raise

    @staticmethod
    def list_item_dates(db: Session, item_id: Optional[int] = None) -> List[ItemDate]:
        query = db.query(ItemDate)
        if item_id is not None:
            query = query.filter(ItemDate.item_id == item_id)
        return query.order_by(ItemDate.target_date, ItemDate.id).all()

    # ================================
    # REMINDER SWEEP
    # ================================

    @staticmethod
    def _notify(record, kind: str, today: date, item_name: Optional[str] = None) -> Dict[str, Any]:
        result = {
            "kind": kind,
            "date_id": record.id,
            "label": record.label,
            "target_date": record.target_date,
            "sent": False,
            "error": None,
        }
        try:
            result["sent"] = EmailService.send_reminder_email(
                settings.ADMIN_EMAIL, record.label, record.target_date, today, item_name=item_name
            )
            if not result["sent"]:
                result["error"] = "SMTP not configured"
        except (SMTPException, OSError) as e:
            result["error"] = str(e)

        if result["sent"]:
            record.reminder_sent = True
        return result

    @staticmethod
    def run_reminders(db: Session, today: Optional[date] = None) -> List[Dict[str, Any]]:
        """
        Email one reminder per upcoming or overdue date that has not been
        reminded yet. ``reminder_sent`` only flips after a successful send.
        """
        today = today or date.today()
        horizon = today + timedelta(days=settings.REMINDER_WINDOW_DAYS)

        try:
            item_dates = db.query(ItemDate).options(joinedload(ItemDate.item)).filter(
                ItemDate.target_date <= horizon,
                ItemDate.notify_manager.is_(True),
                ItemDate.reminder_sent.is_(False)
            ).order_by(ItemDate.target_date, ItemDate.id).all()

            general_dates = db.query(GeneralDate).filter(
                GeneralDate.target_date <= horizon,
                GeneralDate.notify_manager.is_(True),
                GeneralDate.reminder_sent.is_(False)
            ).order_by(GeneralDate.target_date, GeneralDate.id).all()

            results = []
            for record in item_dates:
                item_name = record.item.name if record.item else None
                results.append(ReminderService._notify(record, "item", today, item_name))
            for record in general_dates:
                results.append(ReminderService._notify(record, "general", today))

            db.commit()

        except InventoryException:
            db.rollback()
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error running reminders: {str(e)}")
            raise

        sent = sum(1 for r in results if r["sent"])
        logger.info(f"Reminders processed: {len(results)} due, {sent} sent")
        return results
