import httpx
import logging

from woo2ac.config import HTTP_TIMEOUT
from woo2ac.models import OrderContactData

logger = logging.getLogger(__name__)

# Мета-поле заказа, отмечающее успешную синхронизацию с ActiveCampaign
SYNC_MARKER_KEY = "_ac_sync_processed"
_MARKER_TRUE_VALUES = {"1", "true", "yes"}


class OrderStoreError(Exception):
    """Ошибка обращения к заказам WooCommerce."""


class OrderLoadError(OrderStoreError):
    """Заказ не удалось получить из WooCommerce или в нём нет email."""


def _marker_is_set(order: dict) -> bool:
    for meta in order.get("meta_data") or []:
        if meta.get("key") == SYNC_MARKER_KEY:
            value = meta.get("value")
            if value is True:
                return True
            return str(value).strip().lower() in _MARKER_TRUE_VALUES
    return False


class WooCommerceOrders:
    """Чтение заказов WooCommerce и хранение метки синхронизации в мета-данных заказа."""

    def __init__(self, api_url: str, consumer_key: str, consumer_secret: str,
                 transport: httpx.AsyncBaseTransport | None = None):
        self.api_url = (api_url or "").rstrip("/")
        self.auth = (consumer_key or "", consumer_secret or "")
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(auth=self.auth, timeout=HTTP_TIMEOUT, transport=self._transport)

    async def get_order(self, order_id: int) -> dict:
        if not self.api_url:
            raise OrderLoadError("WC_API_URL is not set.")

        url = f"{self.api_url}/orders/{order_id}"
        async with self._client() as client:
            try:
                resp = await client.get(url)
                resp.raise_for_status()
                return resp.json()
            except httpx.HTTPStatusError as e:
                logger.error(f"HTTP error getting WC order {order_id}: {e.response.status_code} - {e.response.text}")
                raise OrderLoadError(f"Failed to load WooCommerce order {order_id}: HTTP {e.response.status_code}") from e
            except (httpx.HTTPError, ValueError) as e:
                logger.error(f"Error getting WC order {order_id}: {e}")
                raise OrderLoadError(f"Failed to load WooCommerce order {order_id}: {e}") from e

    async def get_contact_data(self, order_id: int) -> OrderContactData:
        """Данные контакта из платёжного адреса заказа."""
        order = await self.get_order(order_id)
        billing = order.get("billing") or {}
        email = (billing.get("email") or "").strip()
        if not email:
            raise OrderLoadError(f"Order {order_id} has no billing email")
        return OrderContactData(
            email=email,
            first_name=billing.get("first_name") or "",
            last_name=billing.get("last_name") or "",
        )

    async def is_processed(self, order_id: int, order: dict | None = None) -> bool:
        """Проверяет метку синхронизации. Если payload заказа уже есть (вебхук), запрос не делается."""
        if order is None:
            order = await self.get_order(order_id)
        return _marker_is_set(order)

    async def mark_processed(self, order_id: int) -> None:
        """Ставит метку синхронизации. Метка никогда не снимается этим пакетом."""
        url = f"{self.api_url}/orders/{order_id}"
        payload = {"meta_data": [{"key": SYNC_MARKER_KEY, "value": "1"}]}

        async with self._client() as client:
            try:
                resp = await client.put(url, json=payload)
                resp.raise_for_status()
                logger.info(f"WooCommerce order {order_id} marked as synced to ActiveCampaign")
            except httpx.HTTPStatusError as e:
                logger.error(f"HTTP error updating WC order {order_id}: {e.response.status_code} - {e.response.text}")
                raise OrderStoreError(f"Failed to mark WooCommerce order {order_id} as synced") from e
            except Exception as e:
                logger.exception(f"Error updating WC order {order_id}: {e}")
                raise OrderStoreError(f"Failed to mark WooCommerce order {order_id} as synced") from e
