"""Тесты клиента API ActiveCampaign на httpx.MockTransport."""

import json

import httpx
import pytest

from woo2ac.utils.activecampaign import LIST_ADD_TIMEOUT, ActiveCampaignClient


def make_client(handler) -> ActiveCampaignClient:
    return ActiveCampaignClient("https://x.test/", "secret", transport=httpx.MockTransport(handler))


class TestLists:

    @pytest.mark.asyncio
    async def test_list_lists_maps_id_to_name(self, recorder):
        rec = recorder({("GET", "/api/3/lists"): httpx.Response(200, json={
            "lists": [{"id": "1", "name": "Customers"}, {"id": 7, "name": "Buyers"}],
        })})

        result = await make_client(rec).list_lists()

        assert result.ok
        assert result.value == {"1": "Customers", "7": "Buyers"}
        assert rec.requests[0].headers["Api-Token"] == "secret"
        assert str(rec.requests[0].url) == "https://x.test/api/3/lists"

    @pytest.mark.asyncio
    async def test_list_lists_empty_on_malformed_body(self, recorder):
        rec = recorder({("GET", "/api/3/lists"): httpx.Response(200, json={"message": "nope"})})
        result = await make_client(rec).list_lists()
        assert not result.ok
        assert result.value == {}

    @pytest.mark.asyncio
    async def test_list_lists_empty_on_transport_error(self, recorder):
        rec = recorder({("GET", "/api/3/lists"): httpx.ConnectError("connection refused")})
        result = await make_client(rec).list_lists()
        assert not result.ok
        assert result.value == {}

    @pytest.mark.asyncio
    async def test_list_lists_empty_when_lists_is_null(self, recorder):
        rec = recorder({("GET", "/api/3/lists"): httpx.Response(200, json={"lists": None})})
        result = await make_client(rec).list_lists()
        assert not result.ok
        assert result.value == {}

    @pytest.mark.asyncio
    async def test_list_lists_skips_malformed_items(self, recorder):
        rec = recorder({("GET", "/api/3/lists"): httpx.Response(200, json={
            "lists": ["7", None, {"name": "no id"}, {"id": "3", "name": "Buyers"}],
        })})
        result = await make_client(rec).list_lists()
        assert result.ok
        assert result.value == {"3": "Buyers"}

    @pytest.mark.asyncio
    async def test_connection_ok_when_lists_present(self, recorder):
        rec = recorder({("GET", "/api/3/lists"): httpx.Response(200, json={"lists": []})})
        assert (await make_client(rec).test_connection()).ok

    @pytest.mark.asyncio
    async def test_connection_fails_on_non_json_body(self, recorder):
        rec = recorder({("GET", "/api/3/lists"): httpx.Response(403, text="<html>Forbidden</html>")})
        result = await make_client(rec).test_connection()
        assert not result.ok
        assert result.error == "Invalid response from ActiveCampaign"


class TestContacts:

    @pytest.mark.asyncio
    async def test_find_uses_email_filter_and_first_match(self, recorder):
        rec = recorder({("GET", "/api/3/contacts"): httpx.Response(200, json={
            "contacts": [{"id": "9"}, {"id": "3"}],
        })})

        result = await make_client(rec).find_contact_by_email("a+b@c.com")

        assert result.ok
        assert result.value == "9"
        assert rec.requests[0].url.params["email"] == "a+b@c.com"

    @pytest.mark.asyncio
    async def test_find_returns_none_without_contacts(self, recorder):
        rec = recorder({("GET", "/api/3/contacts"): httpx.Response(200, json={"contacts": []})})
        result = await make_client(rec).find_contact_by_email("a@b.com")
        assert result.ok
        assert result.value is None

    @pytest.mark.asyncio
    async def test_find_reports_transport_error(self, recorder):
        rec = recorder({("GET", "/api/3/contacts"): httpx.ReadTimeout("timed out")})
        result = await make_client(rec).find_contact_by_email("a@b.com")
        assert not result.ok
        assert "timed out" in result.error

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 404, 500])
    async def test_find_fails_on_error_status_with_json_body(self, recorder, status):
        rec = recorder({("GET", "/api/3/contacts"): httpx.Response(status, json={"message": "No Result found"})})

        result = await make_client(rec).find_contact_by_email("a@b.com")

        assert not result.ok
        assert result.status_code == status
        assert result.error == f"Invalid contact search response: {status}"

    @pytest.mark.asyncio
    async def test_create_contact_returns_new_id(self, recorder):
        rec = recorder({("POST", "/api/3/contacts"): httpx.Response(201, json={"contact": {"id": 15}})})
        body = {"email": "a@b.com", "firstName": "Ann", "lastName": "Bee"}

        result = await make_client(rec).create_contact(body)

        assert result.ok
        assert result.value == "15"
        assert json.loads(rec.requests[0].content) == {"contact": body}

    @pytest.mark.asyncio
    async def test_create_contact_without_id_fails(self, recorder):
        rec = recorder({("POST", "/api/3/contacts"): httpx.Response(422, json={"errors": [{"title": "duplicate"}]})})
        result = await make_client(rec).create_contact({"email": "a@b.com"})
        assert not result.ok
        assert result.value is None
        assert result.status_code == 422

    @pytest.mark.asyncio
    async def test_update_contact_is_optimistic(self, recorder):
        rec = recorder({("PUT", "/api/3/contacts/9"): httpx.Response(500, text="oops")})

        result = await make_client(rec).update_contact("9", {"email": "a@b.com"})

        assert result.ok
        assert result.value == "9"
        assert result.status_code == 500
        assert result.body == "oops"
        assert json.loads(rec.requests[0].content) == {"contact": {"email": "a@b.com"}}

    @pytest.mark.asyncio
    async def test_update_contact_transport_error(self, recorder):
        rec = recorder({("PUT", "/api/3/contacts/9"): httpx.ConnectError("down")})
        result = await make_client(rec).update_contact("9", {})
        assert not result.ok


class TestAddContactToList:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [200, 201])
    async def test_success_codes(self, recorder, status):
        rec = recorder({("POST", "/api/3/contactLists"): httpx.Response(status, json={})})

        result = await make_client(rec).add_contact_to_list("9", "7")

        assert result.ok
        assert json.loads(rec.requests[0].content) == {
            "contactList": {"list": "7", "contact": "9", "status": 1},
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [202, 400, 500])
    async def test_other_codes_fail(self, recorder, status):
        rec = recorder({("POST", "/api/3/contactLists"): httpx.Response(status, json={})})
        result = await make_client(rec).add_contact_to_list("9", "7")
        assert not result.ok
        assert result.status_code == status

    @pytest.mark.asyncio
    async def test_uses_long_timeout(self, recorder):
        rec = recorder({("POST", "/api/3/contactLists"): httpx.Response(201, json={})})
        await make_client(rec).add_contact_to_list("9", "7")
        assert rec.requests[0].extensions["timeout"]["read"] == LIST_ADD_TIMEOUT
