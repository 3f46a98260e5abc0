# easy_ops/services/square_client.py
from typing import Dict, List, Any
import logging
import requests

from easy_ops.core.config import settings
from easy_ops.core.exceptions import ExternalServiceException, WebhookConfigurationException

logger = logging.getLogger(__name__)


class SquareClient:
    """Minimal Square REST client for order lookups."""

    @staticmethod
    def _headers() -> Dict[str, str]:
        token = settings.square_access_token
        if not token:
            raise WebhookConfigurationException("Square access token is not configured")
        return {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def retrieve_order(order_id: str) -> Dict[str, Any]:
        url = f"{settings.square_base_url}/v2/orders/{order_id}"
        try:
            response = requests.get(url, headers=SquareClient._headers(), timeout=settings.SQUARE_API_TIMEOUT)
        except requests.RequestException as e:
            logger.error(f"Square order fetch failed for {order_id}: {str(e)}")
            raise ExternalServiceException(f"Square API unreachable: {str(e)}")

        if response.status_code != 200:
            logger.error(f"Square order fetch failed for {order_id}: {response.status_code} {response.text}")
            raise ExternalServiceException(f"Square API error (Order): {response.status_code}")

        return response.json().get("order") or {}

    @staticmethod
    def variation_skus(object_ids: List[str]) -> Dict[str, str]:
        """Map catalog object id -> SKU for ITEM_VARIATION objects"""
        if not object_ids:
            return {}

        url = f"{settings.square_base_url}/v2/catalog/batch-retrieve"
        try:
            response = requests.post(
                url,
                headers=SquareClient._headers(),
                json={"object_ids": object_ids, "include_related_objects": False},
                timeout=settings.SQUARE_API_TIMEOUT
            )
        except requests.RequestException as e:
            logger.error(f"Square catalog batch retrieve failed: {str(e)}")
            raise ExternalServiceException(f"Square API unreachable: {str(e)}")

        if response.status_code != 200:
            logger.error(f"Square catalog batch retrieve failed: {response.status_code} {response.text}")
            raise ExternalServiceException(f"Square API error (Catalog): {response.status_code}")

        sku_map = {}
        for obj in response.json().get("objects") or []:
            sku = (obj.get("item_variation_data") or {}).get("sku")
            if obj.get("type") == "ITEM_VARIATION" and sku:
                sku_map[obj["id"]] = sku

        logger.info(f"Mapped {len(sku_map)} SKU(s) from {len(object_ids)} catalog object(s)")
        return sku_map
