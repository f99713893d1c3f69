import httpx
import logging
from dataclasses import dataclass
from typing import Any

from woo2ac.config import HTTP_TIMEOUT

logger = logging.getLogger(__name__)

# Таймаут для добавления контакта в список (остальные запросы - HTTP_TIMEOUT)
LIST_ADD_TIMEOUT = 30.0
# Статус подписки "active" в API ActiveCampaign
SUBSCRIBED = 1


@dataclass(frozen=True)
class ApiResult:
    """Результат одного вызова API: либо значение, либо текст ошибки."""
    ok: bool
    value: Any = None
    status_code: int | None = None
    error: str = ""
    body: str = ""


def _failure(error: str, status_code: int | None = None, value: Any = None) -> ApiResult:
    return ApiResult(ok=False, value=value, status_code=status_code, error=error)


class ActiveCampaignClient:
    """Тонкая обёртка над API v3 ActiveCampaign.

    Каждый вызов открывает свой httpx.AsyncClient (без постоянной сессии),
    делает ровно одну попытку и никогда не бросает исключение наружу.
    """

    def __init__(self, api_url: str, api_key: str, transport: httpx.AsyncBaseTransport | None = None):
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "Api-Token": self.api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def _request(self, method: str, path: str, *, timeout: float = HTTP_TIMEOUT, **kwargs) -> httpx.Response:
        url = f"{self.api_url}/api/3/{path}"
        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            return await client.request(method, url, headers=self._headers(), **kwargs)

    @staticmethod
    def _json(response: httpx.Response) -> dict | None:
        try:
            body = response.json()
        except ValueError:
            return None
        return body if isinstance(body, dict) else None

    async def list_lists(self) -> ApiResult:
        """Возвращает словарь {id списка: название}. Пустой словарь при любой ошибке."""
        try:
            response = await self._request("GET", "lists")
        except httpx.HTTPError as e:
            logger.error(f"Error fetching ActiveCampaign lists: {e}")
            return _failure(str(e), value={})

        body = self._json(response)
        if not body or not isinstance(body.get("lists"), list):
            logger.warning(f"Unexpected lists response from ActiveCampaign: {response.status_code}")
            return _failure("Invalid response from ActiveCampaign", response.status_code, value={})

        lists = {str(item["id"]): item.get("name", "") for item in body["lists"]
                 if isinstance(item, dict) and "id" in item}
        return ApiResult(ok=True, value=lists, status_code=response.status_code)

    async def test_connection(self) -> ApiResult:
        try:
            response = await self._request("GET", "lists")
        except httpx.HTTPError as e:
            return _failure(str(e) or e.__class__.__name__)

        body = self._json(response)
        if body is not None and "lists" in body:
            return ApiResult(ok=True, status_code=response.status_code)
        return _failure("Invalid response from ActiveCampaign", response.status_code)

    async def find_contact_by_email(self, email: str) -> ApiResult:
        """Ищет контакт по email. value - id первого найденного контакта или None."""
        try:
            response = await self._request("GET", "contacts", params={"email": email})
        except httpx.HTTPError as e:
            logger.error(f"Error searching ActiveCampaign contact {email}: {e}")
            return _failure(str(e) or e.__class__.__name__)

        body = self._json(response)
        if body is None or not response.is_success:
            return _failure(f"Invalid contact search response: {response.status_code}", response.status_code)

        # Порядок результатов задаёт ActiveCampaign, берём первый
        contacts = body.get("contacts") or []
        if contacts and isinstance(contacts[0], dict) and contacts[0].get("id") is not None:
            return ApiResult(ok=True, value=str(contacts[0]["id"]), status_code=response.status_code)
        return ApiResult(ok=True, value=None, status_code=response.status_code)

    async def create_contact(self, contact: dict[str, str]) -> ApiResult:
        try:
            response = await self._request("POST", "contacts", json={"contact": contact})
        except httpx.HTTPError as e:
            logger.error(f"Error creating ActiveCampaign contact: {e}")
            return _failure(str(e) or e.__class__.__name__)

        body = self._json(response) or {}
        contact_id = (body.get("contact") or {}).get("id")
        if contact_id is None:
            return _failure(f"No contact id in response: {response.status_code} - {response.text}", response.status_code)
        return ApiResult(ok=True, value=str(contact_id), status_code=response.status_code)

    async def update_contact(self, contact_id: str, contact: dict[str, str]) -> ApiResult:
        """Обновляет поля контакта.

        Код ответа не проверяется: если ответ получен, вызов считается успешным
        и возвращается тот же contact_id.
        """
        try:
            response = await self._request("PUT", f"contacts/{contact_id}", json={"contact": contact})
        except httpx.HTTPError as e:
            return _failure(str(e) or e.__class__.__name__)
        return ApiResult(ok=True, value=contact_id, status_code=response.status_code, body=response.text)

    async def add_contact_to_list(self, contact_id: str, list_id: str) -> ApiResult:
        payload = {
            "contactList": {
                "list": list_id,
                "contact": contact_id,
                "status": SUBSCRIBED,
            }
        }
        try:
            response = await self._request("POST", "contactLists", json=payload, timeout=LIST_ADD_TIMEOUT)
        except httpx.HTTPError as e:
            return _failure(str(e) or e.__class__.__name__)

        if response.status_code not in (200, 201):
            return _failure(f"response code: {response.status_code}", response.status_code)
        return ApiResult(ok=True, value=contact_id, status_code=response.status_code)
