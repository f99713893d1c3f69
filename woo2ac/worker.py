import logging
from celery import Celery
from celery.signals import worker_process_init

from woo2ac.config import CELERY_BROKER_URL, CELERY_RESULT_BACKEND, DATABASE_URL, LOG_FILE, load_sync_config

# --- Настройка логирования --- (Базовая)
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(LOG_FILE), # Вывод в файл
        logging.StreamHandler() # Вывод в консоль
    ]
)
logger = logging.getLogger(__name__)

# Создаем экземпляр Celery
celery_app = Celery(
    'woo2ac',
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
    include=['woo2ac.tasks.orders', 'woo2ac.tasks.connection'] # Указываем модули с задачами
)

# Периодических задач нет: каждая синхронизация - одна отложенная задача без ретраев
celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],  # Допустимые форматы контента
    result_serializer='json',
    enable_utc=True,
)

@worker_process_init.connect
def on_worker_init(**kwargs):
    """Проверка настроек при старте процесса воркера."""
    logger.info("Worker process initializing...")
    if not DATABASE_URL:
        logger.warning("DATABASE_URL is not set. Sync log will be kept in process memory.")
    if not load_sync_config().is_valid:
        logger.warning("ActiveCampaign settings are incomplete (AC_API_URL, AC_API_KEY, AC_LIST_ID). Orders will not be synced.")

if __name__ == '__main__':
    celery_app.start()
