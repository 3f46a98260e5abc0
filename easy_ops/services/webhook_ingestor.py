# easy_ops/services/webhook_ingestor.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional, List, Dict, Any, Tuple
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import json
import logging

from easy_ops.core.config import settings
from easy_ops.core.security import SecurityUtils, SignatureScheme, Actor
from easy_ops.core.exceptions import (
    InventoryException, ExternalServiceException, WebhookAuthenticationException,
    WebhookConfigurationException, WebhookPayloadException
)
from easy_ops.models.inventory import Item
from easy_ops.models.webhooks import WebhookEvent
from easy_ops.services.reconciliation import ReconciliationService, AutoDeduct
from easy_ops.services.square_client import SquareClient
from easy_ops.services.stock_store import CENT

logger = logging.getLogger(__name__)

ORDER_EVENTS = ("order.created", "order.updated")
PAYMENT_EVENT = "payment.updated"


@dataclass
class IngestResult:
    event_id: Optional[str] = None
    duplicate: bool = False
    ignored: bool = False
    message: Optional[str] = None
    processed: List[Dict[str, Any]] = field(default_factory=list)
    skipped: List[Dict[str, Any]] = field(default_factory=list)
    failed: List[Dict[str, Any]] = field(default_factory=list)

    def to_response(self) -> Dict[str, Any]:
        body = {"success": True}
        if self.event_id:
            body["event_id"] = self.event_id
        if self.duplicate:
            body["duplicate"] = True
        if self.ignored:
            body["ignored"] = True
        if self.message:
            body["message"] = self.message
        if not self.duplicate and not self.ignored:
            body["processed"] = self.processed
            body["skipped"] = self.skipped
            body["failed"] = self.failed
        return body


# ================================
# WEBHOOK INGESTOR
# ================================
class WebhookIngestor:

    # ---------------- Verification ----------------
    @staticmethod
    def verify(
        raw_body: bytes,
        signature: Optional[str],
        scheme: str,
        notification_url: Optional[str] = None,
        timestamp: Optional[str] = None
    ) -> None:
        secret = settings.square_webhook_secret
        if not secret:
            logger.error("Square webhook secret not configured")
            raise WebhookConfigurationException("Configuration error")

        if not signature:
            logger.error("Missing webhook signature header")
            raise WebhookAuthenticationException("Missing signature")

        try:
            scheme = SignatureScheme(scheme)
        except ValueError:
            logger.error(f"Unknown webhook signature scheme configured: {scheme}")
            raise WebhookConfigurationException("Configuration error")

        if scheme == SignatureScheme.TIMESTAMP_BODY:
            WebhookIngestor._check_timestamp(timestamp)

        try:
            message = SecurityUtils.string_to_sign(
                scheme, raw_body.decode("utf-8"), url=notification_url, timestamp=timestamp
            )
        except UnicodeDecodeError:
            raise WebhookPayloadException("Body is not valid UTF-8")
        except ValueError as e:
            logger.error(f"Cannot build webhook string to sign: {str(e)}")
            raise WebhookAuthenticationException(str(e))

        if SecurityUtils.verify_webhook_signature(secret, message, signature):
            return

        if settings.SQUARE_WEBHOOK_SANDBOX_MODE:
            logger.warning("Webhook signature mismatch ignored (sandbox mode)")
            return

        logger.error("Invalid webhook signature")
        raise WebhookAuthenticationException("Invalid signature")

    @staticmethod
    def _check_timestamp(timestamp: Optional[str]) -> None:
        if not timestamp:
            raise WebhookAuthenticationException("Missing request timestamp")
        try:
            sent_at = int(timestamp)
        except ValueError:
            raise WebhookAuthenticationException("Invalid request timestamp")

        skew = abs(datetime.now(timezone.utc).timestamp() - sent_at)
        if skew > settings.SQUARE_TIMESTAMP_TOLERANCE_SECONDS:
            logger.error(f"Stale webhook timestamp (skew {int(skew)}s)")
            raise WebhookAuthenticationException("Stale request timestamp")

    @staticmethod
    def parse(raw_body: bytes) -> Dict[str, Any]:
        try:
            payload = json.loads(raw_body)
        except ValueError:
            raise WebhookPayloadException("Malformed JSON")
        if not isinstance(payload, dict):
            raise WebhookPayloadException("Malformed JSON")
        return payload

    # ---------------- Idempotency ----------------
    @staticmethod
    def is_processed(db: Session, event_id: str) -> bool:
        return db.query(WebhookEvent.id).filter(WebhookEvent.event_id == event_id).first() is not None

    @staticmethod
    def _claim(db: Session, event_id: str, event_type: str, payload: Dict[str, Any]) -> bool:
        """Insert the processed-marker; False when another delivery got there first"""
        try:
            with db.begin_nested():
                db.add(WebhookEvent(event_id=event_id, event_type=event_type, payload=payload))
        except IntegrityError:
            logger.info(f"Webhook event {event_id} claimed by a concurrent delivery")
            return False
        return True

    # ---------------- Line items ----------------
    @staticmethod
    def _parse_quantity(raw) -> Optional[Decimal]:
        try:
            quantity = Decimal(str(raw))
            if not quantity.is_finite() or quantity <= 0 or quantity != quantity.quantize(CENT):
                return None
        except (InvalidOperation, ValueError, TypeError):
            return None
        return quantity

    @staticmethod
    def _deduct_lines(
        db: Session,
        order_id: str,
        lines: List[Tuple[Optional[str], Any, Optional[str]]],
        match_column,
        result: IngestResult
    ) -> None:
        """lines are (external id, raw quantity, display name)"""
        actor = Actor.service()

        for external_id, raw_quantity, name in lines:
            quantity = WebhookIngestor._parse_quantity(raw_quantity)
            if not external_id or quantity is None:
                logger.info(f"Skipping line item '{name}': no identifier or quantity ({raw_quantity})")
                result.skipped.append({"external_id": external_id, "name": name, "reason": "invalid line item"})
                continue

            items = db.query(Item).filter(
                match_column == external_id,
                Item.is_auto_deduct.is_(True)
            ).order_by(Item.id).all()

            if not items:
                logger.info(f"No auto-deduct item found for '{external_id}' ({name})")
                result.skipped.append({"external_id": external_id, "name": name, "reason": "no matching item"})
                continue

            if len(items) > 1:
                logger.error(
                    f"Configuration error: '{external_id}' matches {len(items)} auto-deduct items "
                    f"{[i.id for i in items]}; deducting from all"
                )

            for item in items:
                item_id = item.id
                try:
                    with db.begin_nested():
                        movement = ReconciliationService.apply_movement(
                            db,
                            AutoDeduct(item_id=item_id, quantity=quantity, external_order_ref=order_id),
                            actor,
                            commit=False
                        )
                    result.processed.append({
                        "item_id": item_id,
                        "external_id": external_id,
                        "requested": str(quantity),
                        "applied": str(-movement.applied_delta),
                        "stock": str(movement.new_stock_quantity),
                    })
                except (InventoryException, SQLAlchemyError) as e:
                    logger.error(f"Auto-deduct failed for item {item_id} on order {order_id}: {str(e)}")
                    result.failed.append({"item_id": item_id, "external_id": external_id, "error": str(e)})

    @staticmethod
    def _record_and_process(
        db: Session,
        event_id: str,
        event_type: str,
        payload: Dict[str, Any],
        lines: List[Tuple[Optional[str], Any, Optional[str]]],
        match_column
    ) -> IngestResult:
        result = IngestResult(event_id=event_id)
        try:
            if not WebhookIngestor._claim(db, event_id, event_type, payload):
                db.rollback()
                result.duplicate = True
                return result

            WebhookIngestor._deduct_lines(db, event_id, lines, match_column, result)
            db.commit()

        except Exception as e:
            db.rollback()
            logger.error(f"Error processing webhook event {event_id}: {str(e)}")
            raise

        logger.info(
            f"Webhook event {event_id} processed: {len(result.processed)} deducted, "
            f"{len(result.skipped)} skipped, {len(result.failed)} failed"
        )
        return result

    # ---------------- Payload shape ----------------
    @staticmethod
    def _section(container: Dict[str, Any], key: str) -> Dict[str, Any]:
        """Nested object of the payload; {} when absent, 400 when not an object"""
        value = container.get(key)
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise WebhookPayloadException(f"Malformed payload: '{key}' must be an object")
        return value

    @staticmethod
    def _line_tuples(line_items: Any, external_id=None) -> List[Tuple[Optional[str], Any, Optional[str]]]:
        """(external id, raw quantity, name) per line; non-object lines become skippable blanks"""
        if line_items is None:
            return []
        if not isinstance(line_items, list):
            raise WebhookPayloadException("Malformed payload: 'line_items' must be a list")

        lines = []
        for line in line_items:
            if not isinstance(line, dict):
                lines.append((None, None, None))
                continue
            key = line.get("catalog_object_id")
            if not isinstance(key, str):
                key = None
            lines.append((external_id(key) if external_id and key else key, line.get("quantity"), line.get("name")))
        return lines

    # ================================
    # ORDER VARIANT
    # ================================
    @staticmethod
    def ingest_order_event(
        db: Session,
        raw_body: bytes,
        signature: Optional[str],
        notification_url: Optional[str] = None,
        timestamp: Optional[str] = None
    ) -> IngestResult:
        """order.created / order.updated carrying the full order; lines match items.barcode"""
        WebhookIngestor.verify(
            raw_body,
            signature,
            settings.SQUARE_ORDER_SIGNATURE_SCHEME,
            notification_url=notification_url,
            timestamp=timestamp
        )
        payload = WebhookIngestor.parse(raw_body)

        event_type = payload.get("type") or ""
        if event_type not in ORDER_EVENTS:
            return IngestResult(ignored=True, message="Event type ignored")

        obj = WebhookIngestor._section(WebhookIngestor._section(payload, "data"), "object")
        order = (
            WebhookIngestor._section(WebhookIngestor._section(obj, "order_created"), "order")
            or WebhookIngestor._section(WebhookIngestor._section(obj, "order_updated"), "order")
        )
        lines = WebhookIngestor._line_tuples(order.get("line_items"))
        if not order.get("id") or not lines:
            return IngestResult(ignored=True, message="No line items in order")

        order_id = order["id"]
        if not isinstance(order_id, str):
            raise WebhookPayloadException("Malformed payload: order id must be a string")

        if WebhookIngestor.is_processed(db, order_id):
            logger.info(f"Order {order_id} already processed, skipping")
            return IngestResult(event_id=order_id, duplicate=True)

        return WebhookIngestor._record_and_process(db, order_id, event_type, payload, lines, Item.barcode)

    # ================================
    # PAYMENT VARIANT
    # ================================
    @staticmethod
    def ingest_payment_event(
        db: Session,
        raw_body: bytes,
        signature: Optional[str],
        notification_url: Optional[str] = None,
        timestamp: Optional[str] = None
    ) -> IngestResult:
        """payment.updated (COMPLETED); order and SKUs come from the Square API, lines match items.barcode_number"""
        WebhookIngestor.verify(
            raw_body,
            signature,
            settings.SQUARE_PAYMENT_SIGNATURE_SCHEME,
            notification_url=notification_url,
            timestamp=timestamp
        )
        payload = WebhookIngestor.parse(raw_body)

        if payload.get("type") != PAYMENT_EVENT:
            return IngestResult(ignored=True, message="Event type ignored")

        obj = WebhookIngestor._section(WebhookIngestor._section(payload, "data"), "object")
        payment = WebhookIngestor._section(obj, "payment")
        if payment.get("status") != "COMPLETED":
            return IngestResult(ignored=True, message="Payment not completed")

        order_id = payment.get("order_id")
        if not order_id:
            logger.warning("No order id in payment object")
            return IngestResult(ignored=True, message="No order ID, ignored")
        if not isinstance(order_id, str):
            raise WebhookPayloadException("Malformed payload: order id must be a string")

        if WebhookIngestor.is_processed(db, order_id):
            logger.info(f"Order {order_id} already processed, skipping")
            return IngestResult(event_id=order_id, duplicate=True)

        # upstream failures raise before anything is recorded so Square retries
        order = SquareClient.retrieve_order(order_id)
        line_items = order.get("line_items") or []
        if not isinstance(line_items, list):
            raise ExternalServiceException("Square API returned malformed line items")
        sku_map = SquareClient.variation_skus([
            line["catalog_object_id"] for line in line_items
            if isinstance(line, dict) and isinstance(line.get("catalog_object_id"), str)
        ])

        lines = WebhookIngestor._line_tuples(line_items, external_id=sku_map.get)
        return WebhookIngestor._record_and_process(db, order_id, PAYMENT_EVENT, payload, lines, Item.barcode_number)
