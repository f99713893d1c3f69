import os

from woo2ac.models import SyncConfig

# --- Константы и конфигурация воркера ---
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://redis:6379/0")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", "redis://redis:6379/0")
DATABASE_URL = os.getenv("DATABASE_URL")

WC_API_URL = os.getenv("WC_API_URL") # Обязателен, например https://shop.example/wp-json/wc/v3
WC_CONSUMER_KEY = os.getenv("WC_CONSUMER_KEY") # Обязателен
WC_CONSUMER_SECRET = os.getenv("WC_CONSUMER_SECRET") # Обязателен

# Таймаут по умолчанию для HTTP запросов
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "15.0"))

LOG_FILE = os.getenv("LOG_FILE", "woo2ac_worker.log")

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in _TRUE_VALUES


def load_sync_config() -> SyncConfig:
    """Читает настройки ActiveCampaign из окружения.

    Вызывается на каждый запуск синхронизации (и на каждую запись в лог),
    без кэширования: изменения настроек применяются сразу.
    """
    return SyncConfig(
        api_url=os.getenv("AC_API_URL", ""),
        api_key=os.getenv("AC_API_KEY", ""),
        list_id=os.getenv("AC_LIST_ID", ""),
        verbose_logging=_env_flag("AC_VERBOSE_LOGGING"),
    )
