# easy_ops/routes/webhooks.py
from fastapi import APIRouter, Depends, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import Optional
import logging

from easy_ops.core.config import settings
from easy_ops.core.database import get_db
from easy_ops.core.exceptions import WebhookException, InventoryException
from easy_ops.services.webhook_ingestor import WebhookIngestor

logger = logging.getLogger(__name__)

webhook_router = APIRouter(tags=["Webhooks"])


def _notification_url(request: Request, configured: Optional[str]) -> str:
    """URL Square signed: configured value, else rebuilt from the forwarded request"""
    if configured:
        return configured
    proto = request.headers.get("x-forwarded-proto") or request.url.scheme
    host = request.headers.get("x-forwarded-host") or request.headers.get("host") or request.url.netloc
    return f"{proto}://{host}{request.url.path}"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@webhook_router.post("/webhooks/square",
    summary="Square order webhook",
    description="order.created / order.updated; deducts auto-deduct items matched on barcode"
)
async def square_order_webhook(request: Request, db: Session = Depends(get_db)):
    raw_body = await request.body()
    signature: Optional[str] = request.headers.get("x-square-hmacsha256-signature")
    timestamp: Optional[str] = request.headers.get("x-square-request-timestamp")

    try:
        result = await run_in_threadpool(
            WebhookIngestor.ingest_order_event,
            db,
            raw_body,
            signature,
            _notification_url(request, settings.SQUARE_ORDER_WEBHOOK_URL),
            timestamp
        )
        return JSONResponse(status_code=status.HTTP_200_OK, content=result.to_response())
    except (WebhookException, InventoryException) as e:
        return _error(e.status_code, e.message)
    except Exception as e:
        logger.error(f"Unexpected error in Square order webhook: {str(e)}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


@webhook_router.post("/square-webhook",
    summary="Square payment webhook",
    description="payment.updated (COMPLETED); fetches the order from Square and deducts items matched on SKU"
)
async def square_payment_webhook(request: Request, db: Session = Depends(get_db)):
    raw_body = await request.body()
    signature: Optional[str] = request.headers.get("x-square-signature")
    timestamp: Optional[str] = request.headers.get("x-square-request-timestamp")

    try:
        result = await run_in_threadpool(
            WebhookIngestor.ingest_payment_event,
            db,
            raw_body,
            signature,
            _notification_url(request, settings.SQUARE_WEBHOOK_URL),
            timestamp
        )
        return JSONResponse(status_code=status.HTTP_200_OK, content=result.to_response())
    except (WebhookException, InventoryException) as e:
        return _error(e.status_code, e.message)
    except Exception as e:
        logger.error(f"Unexpected error in Square payment webhook: {str(e)}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")
