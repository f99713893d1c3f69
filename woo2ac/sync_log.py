import logging
from typing import Callable

import asyncpg

from woo2ac import db
from woo2ac.models import LogEntry, SyncConfig

logger = logging.getLogger(__name__)

# Храним только последние записи, старые отбрасываются
MAX_LOG_ENTRIES = 100


class MemoryLogStore:
    """Лог в памяти процесса. Используется без DATABASE_URL и в тестах."""

    def __init__(self):
        self._entries: list[LogEntry] = []

    async def prepend(self, entry: LogEntry, limit: int) -> None:
        self._entries.insert(0, entry)
        del self._entries[limit:]

    async def recent(self, limit: int) -> list[LogEntry]:
        return list(self._entries[:limit])


class PostgresLogStore:
    """Лог в таблице ac_sync_log. Вставка и обрезка - в одной транзакции."""

    async def prepend(self, entry: LogEntry, limit: int) -> None:
        async with db.get_connection() as conn:
            async with conn.transaction():
                await conn.execute(
                    "INSERT INTO ac_sync_log (time, message) VALUES ($1, $2)",
                    entry.time, entry.message,
                )
                await conn.execute("""
                    DELETE FROM ac_sync_log
                    WHERE id NOT IN (
                        SELECT id FROM ac_sync_log ORDER BY id DESC LIMIT $1
                    )
                """, limit)

    async def recent(self, limit: int) -> list[LogEntry]:
        async with db.get_connection() as conn:
            rows = await conn.fetch(
                "SELECT time, message FROM ac_sync_log ORDER BY id DESC LIMIT $1", limit
            )
        return [LogEntry(time=row["time"], message=row["message"]) for row in rows]


_memory_store = MemoryLogStore()


def default_log_store():
    if db.DB_POOL is not None:
        return PostgresLogStore()
    return _memory_store


class SyncLog:
    """Журнал синхронизации, который показывается на странице настроек.

    Новые записи добавляются в начало, хранится не больше MAX_LOG_ENTRIES.
    Записи с verbose=True сохраняются только при включённом verbose_logging
    в текущих настройках (настройки читаются на каждый вызов).
    """

    def __init__(self, store, config_provider: Callable[[], SyncConfig]):
        self.store = store
        self.config_provider = config_provider

    async def log(self, message: str, verbose: bool = False) -> None:
        if verbose and not self.config_provider().verbose_logging:
            return

        entry = LogEntry.now(message)
        logger.log(logging.DEBUG if verbose else logging.INFO, message)
        try:
            await self.store.prepend(entry, MAX_LOG_ENTRIES)
        except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError):
            # Сообщение уже ушло в стандартный лог
            logger.exception("Failed to store sync log entry")

    async def recent(self) -> list[LogEntry]:
        return await self.store.recent(MAX_LOG_ENTRIES)
