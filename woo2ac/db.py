from contextlib import asynccontextmanager

import asyncpg
import logging

from woo2ac.config import DATABASE_URL

logger = logging.getLogger(__name__)

DB_POOL = None # Глобальная переменная для пула

async def init_db_pool(dsn: str | None = None):
    """Инициализирует пул соединений asyncpg и создаёт таблицу лога."""
    global DB_POOL
    dsn = dsn or DATABASE_URL
    if not dsn:
        logger.warning("DATABASE_URL is not set. Sync log will be kept in process memory.")
        return
    try:
        DB_POOL = await asyncpg.create_pool(
            dsn=dsn,
            min_size=1, # Минимальное количество соединений
            max_size=10 # Максимальное количество соединений
        )
        logger.info("Database connection pool initialized.")
        await init_db()
    except (OSError, asyncpg.PostgresError):
        logger.exception("Failed to initialize database connection pool")
        DB_POOL = None

async def close_db_pool():
    """Закрывает пул соединений asyncpg."""
    global DB_POOL
    if DB_POOL:
        await DB_POOL.close()
        logger.info("Database connection pool closed.")
        DB_POOL = None

def get_connection():
    """Возвращает соединение из пула.
    Используется как async context manager: async with get_connection() as conn:
    """
    if not DB_POOL:
        logger.error("DB Pool is not initialized. Cannot get connection.")
        raise ConnectionError("Database pool not available")
    return DB_POOL.acquire()

async def init_db():
    async with get_connection() as conn:
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS ac_sync_log (
                id SERIAL PRIMARY KEY,
                time TEXT NOT NULL,
                message TEXT NOT NULL
            )
        """)

@asynccontextmanager
async def db_pool(dsn: str | None = None):
    """Пул на время одного event loop (одна задача Celery = один asyncio.run)."""
    await init_db_pool(dsn)
    try:
        yield DB_POOL
    finally:
        await close_db_pool()
