import os

# Окружение тестов задаётся до импорта модулей woo2ac (они читают его при импорте)
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")
os.environ.setdefault("LOG_FILE", os.devnull)
os.environ.pop("DATABASE_URL", None)

import httpx
import pytest

from woo2ac.models import SyncConfig
from woo2ac.sync_log import MemoryLogStore, SyncLog


class ConfigHolder:
    """Изменяемые настройки: провайдер читает их на каждый вызов."""

    def __init__(self, **kwargs):
        values = {"api_url": "https://x.test", "api_key": "k", "list_id": "7", "verbose_logging": True}
        values.update(kwargs)
        self.config = SyncConfig(**values)

    def __call__(self) -> SyncConfig:
        return self.config


class Recorder:
    """Обработчик для httpx.MockTransport: записывает запросы и отдаёт заготовленные ответы."""

    def __init__(self, routes=None):
        self.routes = routes or {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"message": "not found"})
        if isinstance(handler, Exception):
            raise handler
        if callable(handler):
            return handler(request)
        # Новый объект ответа на каждый запрос
        return httpx.Response(handler.status_code, headers=handler.headers, content=handler.content)

    def calls(self, method: str | None = None) -> list[httpx.Request]:
        return [r for r in self.requests if method is None or r.method == method]


@pytest.fixture
def config():
    return ConfigHolder()


@pytest.fixture
def sync_log(config):
    return SyncLog(MemoryLogStore(), config)


@pytest.fixture
def recorder():
    """Фабрика Recorder: recorder({("GET", "/api/3/lists"): httpx.Response(...)})."""
    return Recorder


def make_order(email="a@b.com", first_name="Ann", last_name="Bee", meta_data=None):
    return {
        "id": 42,
        "status": "completed",
        "billing": {"email": email, "first_name": first_name, "last_name": last_name},
        "meta_data": meta_data or [],
    }


@pytest.fixture
def order_payload():
    return make_order
