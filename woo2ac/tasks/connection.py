# Вспомогательные операции для страницы настроек: проверка подключения,
# выбор списка и просмотр журнала синхронизации.

import asyncio
import logging
from typing import Callable

from woo2ac.config import load_sync_config
from woo2ac.db import db_pool
from woo2ac.models import SyncConfig
from woo2ac.sync_log import SyncLog, default_log_store
from woo2ac.utils.activecampaign import ActiveCampaignClient
from woo2ac.worker import celery_app

logger = logging.getLogger(__name__)


async def test_connection(config_provider: Callable[[], SyncConfig] = load_sync_config,
                          transport=None) -> tuple[bool, str]:
    """Проверяет, что ActiveCampaign отвечает на запрос списков."""
    config = config_provider()
    if not config.api_url or not config.api_key:
        return False, "API URL and Key are required"

    result = await ActiveCampaignClient(config.api_url, config.api_key, transport=transport).test_connection()
    if result.ok:
        return True, "Connection successful!"
    logger.warning(f"ActiveCampaign connection test failed: {result.error}")
    return False, result.error


async def get_lists(config_provider: Callable[[], SyncConfig] = load_sync_config,
                    transport=None) -> dict[str, str]:
    """Списки ActiveCampaign {id: название}; пустой словарь без URL/ключа или при ошибке."""
    config = config_provider()
    if not config.api_url or not config.api_key:
        return {}
    result = await ActiveCampaignClient(config.api_url, config.api_key, transport=transport).list_lists()
    return result.value or {}


async def recent_logs(sync_log: SyncLog | None = None) -> list[dict]:
    if sync_log is None:
        sync_log = SyncLog(default_log_store(), load_sync_config)
    return [entry.model_dump() for entry in await sync_log.recent()]


async def _recent_logs() -> list[dict]:
    async with db_pool():
        return await recent_logs()

# --- Задачи Celery ---

@celery_app.task(name="woo_to_ac_test_connection")
def test_connection_task():
    ok, message = asyncio.run(test_connection())
    return {"success": ok, "data": message}


@celery_app.task(name="woo_to_ac_get_lists")
def get_lists_task():
    return asyncio.run(get_lists())


@celery_app.task(name="woo_to_ac_recent_logs")
def recent_logs_task():
    return asyncio.run(_recent_logs())
