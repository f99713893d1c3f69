# Модели данных синхронизации заказов WooCommerce с ActiveCampaign.

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

LOG_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


class SyncConfig(BaseModel):
    """Настройки подключения к ActiveCampaign."""
    api_url: str = ""
    api_key: str = ""
    list_id: str = ""
    verbose_logging: bool = False

    @field_validator("api_url", "api_key", "list_id", mode="before")
    @classmethod
    def _strip(cls, value):
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def is_valid(self) -> bool:
        # verbose_logging на валидность не влияет
        return bool(self.api_url and self.api_key and self.list_id)


class OrderContactData(BaseModel):
    """Данные контакта из платёжного адреса заказа. Email - ключ поиска в AC."""
    model_config = ConfigDict(populate_by_name=True)

    email: str
    first_name: str = Field("", alias="firstName")
    last_name: str = Field("", alias="lastName")

    def to_contact(self) -> dict[str, str]:
        """Тело поля `contact` для API ActiveCampaign."""
        return self.model_dump(by_alias=True)


class LogEntry(BaseModel):
    time: str
    message: str

    @classmethod
    def now(cls, message: str) -> "LogEntry":
        return cls(time=datetime.now().strftime(LOG_TIME_FORMAT), message=message)


class SyncOutcome(str, Enum):
    """Итоговое состояние одного запуска синхронизации."""
    CONFIG_INVALID = "config_invalid"
    ORDER_LOAD_FAILED = "order_load_failed"
    SEARCH_FAILED = "search_failed"
    NO_CONTACT = "no_contact"
    SUBSCRIBE_FAILED = "subscribe_failed"
    SYNCED = "synced"
    ERROR = "error"
