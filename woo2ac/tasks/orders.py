import asyncio
import logging
from typing import Callable

from woo2ac.config import WC_API_URL, WC_CONSUMER_KEY, WC_CONSUMER_SECRET, load_sync_config
from woo2ac.db import db_pool
from woo2ac.models import SyncConfig, SyncOutcome
from woo2ac.sync_log import SyncLog, default_log_store
from woo2ac.utils.activecampaign import ActiveCampaignClient
from woo2ac.utils.woocommerce import OrderLoadError, OrderStoreError, WooCommerceOrders
from woo2ac.worker import celery_app

logger = logging.getLogger(__name__)

# Статусы оплаченного заказа, при переходе в которые запускается синхронизация
SYNC_STATUSES = ("processing", "completed")


def client_from_config(config: SyncConfig) -> ActiveCampaignClient:
    return ActiveCampaignClient(config.api_url, config.api_key)


class OrderContactSync:
    """Синхронизация одного оплаченного заказа с ActiveCampaign.

    Шаги: проверка настроек -> данные покупателя из заказа -> поиск контакта
    по email -> обновление имени -> добавление в список -> метка в заказе.
    Ни одно исключение не выходит за пределы run(): результат виден только
    в журнале, в метке заказа и в возвращаемом SyncOutcome.
    """

    def __init__(self, config_provider: Callable[[], SyncConfig], orders: WooCommerceOrders,
                 sync_log: SyncLog, client_factory: Callable[[SyncConfig], ActiveCampaignClient] = client_from_config):
        self.config_provider = config_provider
        self.orders = orders
        self.sync_log = sync_log
        self.client_factory = client_factory

    async def run(self, order_id: int) -> SyncOutcome:
        log = self.sync_log.log

        try:
            await log(f"Processing order: {order_id}", verbose=True)
            return await self._sync(order_id)
        except Exception as e:
            logger.exception(f"Unexpected error syncing order {order_id}")
            await log(f"Error processing order: {e}")
            return SyncOutcome.ERROR

    async def _sync(self, order_id: int) -> SyncOutcome:
        log = self.sync_log.log

        # Настройки читаются заново на каждый запуск
        config = self.config_provider()
        await log("Validating settings", verbose=True)
        if not config.is_valid:
            await log("Missing required settings")
            await log("Settings validation failed - sync aborted")
            return SyncOutcome.CONFIG_INVALID

        try:
            contact_data = await self.orders.get_contact_data(order_id)
        except OrderLoadError as e:
            await log(f"Failed to load order {order_id}: {e}")
            return SyncOutcome.ORDER_LOAD_FAILED

        client = self.client_factory(config)
        email = contact_data.email

        found = await client.find_contact_by_email(email)
        if not found.ok:
            await log(f"Failed to search contact {email}: {found.error}")
            return SyncOutcome.SEARCH_FAILED
        if found.value is None:
            # Новый контакт не создаётся: заказ остаётся без метки
            await log(f"No contact found for email: {email}", verbose=True)
            return SyncOutcome.NO_CONTACT

        contact_id = found.value
        await log(f"Found contact ID: {contact_id}", verbose=True)

        # Ошибка обновления не прерывает синхронизацию
        updated = await client.update_contact(contact_id, contact_data.to_contact())
        if updated.ok:
            await log(f"Update response code: {updated.status_code}", verbose=True)
            await log(f"Update response body: {updated.body}", verbose=True)
        else:
            await log(f"Failed to update contact: {updated.error}", verbose=True)

        subscribed = await client.add_contact_to_list(contact_id, config.list_id)
        if not subscribed.ok:
            if subscribed.status_code is not None:
                await log(f"Failed to add contact - response code: {subscribed.status_code}")
            else:
                await log(f"Failed to add contact to list: {subscribed.error}")
            return SyncOutcome.SUBSCRIBE_FAILED

        await log(f"Added {email} to list {config.list_id} successfully")

        try:
            await self.orders.mark_processed(order_id)
        except OrderStoreError as e:
            await log(f"Failed to mark order {order_id} as processed: {e}")
            return SyncOutcome.ERROR

        await log(f"Order {order_id} synced successfully")
        return SyncOutcome.SYNCED


async def on_order_status_changed(order_id: int, old_status: str, new_status: str, order: dict | None = None,
                                  *, orders: WooCommerceOrders, sync_log: SyncLog,
                                  dispatch: Callable[[int], object]) -> bool:
    """Решает, ставить ли синхронизацию заказа в очередь.

    В очередь попадает ровно одна задача, если заказ перешёл в processing или
    completed и ещё не отмечен как синхронизированный. Блокировки нет: два
    почти одновременных перехода могут поставить две задачи.
    Возвращает True, если задача поставлена.
    """
    order_id = int(order_id)

    if new_status not in SYNC_STATUSES:
        await sync_log.log(f"Order {order_id} status changed from {old_status} to {new_status}, no sync needed", verbose=True)
        return False

    try:
        processed = await orders.is_processed(order_id, order)
    except OrderStoreError as e:
        await sync_log.log(f"Could not check sync state of order {order_id}: {e}")
        return False

    if processed:
        await sync_log.log(f"Order {order_id} already processed", verbose=True)
        return False

    await sync_log.log(f"Scheduling sync for order {order_id}", verbose=True)
    try:
        dispatch(order_id)
    except Exception as e:
        # Брокер недоступен: задача не поставлена, метка не тронута
        logger.exception(f"Failed to enqueue sync for order {order_id}")
        await sync_log.log(f"Failed to schedule sync for order {order_id}: {e}")
        return False
    return True


def build_order_sync() -> OrderContactSync:
    config_provider = load_sync_config
    return OrderContactSync(
        config_provider=config_provider,
        orders=WooCommerceOrders(WC_API_URL, WC_CONSUMER_KEY, WC_CONSUMER_SECRET),
        sync_log=SyncLog(default_log_store(), config_provider),
    )


def enqueue_order_sync(order_id: int):
    """Ставит отложенную задачу синхронизации. Payload задачи - только order_id."""
    return process_order_task.delay(int(order_id))


async def _process_order(order_id: int) -> SyncOutcome:
    async with db_pool():
        return await build_order_sync().run(order_id)


async def _order_status_changed(order_id: int, old_status: str, new_status: str, order: dict | None = None) -> bool:
    async with db_pool():
        service = build_order_sync()
        return await on_order_status_changed(
            order_id, old_status, new_status, order,
            orders=service.orders, sync_log=service.sync_log, dispatch=enqueue_order_sync,
        )

# --- Задачи Celery ---

@celery_app.task(name="woo_to_ac_process_order")
def process_order_task(order_id: int):
    """Отложенная синхронизация заказа. Без ретраев: одна попытка на задачу."""
    outcome = asyncio.run(_process_order(int(order_id)))
    logger.info(f"Order {order_id} sync finished: {outcome.value}")
    return outcome.value


@celery_app.task(name="woo_to_ac_order_status_changed")
def order_status_changed_task(order_id: int, old_status: str, new_status: str, order: dict | None = None):
    """Точка входа для событий смены статуса заказа (например, из вебхука WooCommerce)."""
    return asyncio.run(_order_status_changed(order_id, old_status, new_status, order))
