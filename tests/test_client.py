"""
Unit tests for the upstream EmployeeApiClient.
"""

import json
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

import httpx
import pytest
import pytest_asyncio

from employee_facade.models import CreateEmployeeRequest
from employee_facade.services.client import EmployeeApiClient, parse_retry_after
from employee_facade.services.errors import (
    InvalidInputError,
    NotFoundError,
    RateLimitError,
    UpstreamClientError,
    UpstreamServerError,
    UpstreamUnavailableError,
)

from tests.fakes import BASE_URL


@pytest_asyncio.fixture
async def api_client(upstream):
    client = EmployeeApiClient(BASE_URL, transport=upstream.transport)
    yield client
    await client.close()


class TestOperations:
    @pytest.mark.asyncio
    async def test_list_all_decodes_collection(self, api_client, upstream):
        employees = await api_client.list_all()

        assert [e.name for e in employees] == ["John Doe", "Jane Smith", "Bob Johnson"]
        assert upstream.calls["GET"] == 1
        assert str(upstream.requests[0].url) == BASE_URL

    @pytest.mark.asyncio
    async def test_create_posts_request_as_json(self, api_client, upstream):
        request = CreateEmployeeRequest(name="New Hire", salary=1, age=16, title="Intern")

        employee = await api_client.create(request)

        sent = json.loads(upstream.requests[0].content)
        assert upstream.requests[0].method == "POST"
        assert sent == {"name": "New Hire", "salary": 1, "age": 16, "title": "Intern"}
        assert employee.name == "New Hire"
        assert employee.id

    @pytest.mark.asyncio
    async def test_delete_sends_name_in_body(self, api_client, upstream):
        deleted = await api_client.delete_by_name("Jane Smith")

        request = upstream.requests[0]
        assert deleted is True
        assert request.method == "DELETE"
        assert str(request.url) == BASE_URL
        assert json.loads(request.content) == {"name": "Jane Smith"}

    @pytest.mark.asyncio
    async def test_delete_returns_upstream_refusal(self, api_client):
        assert await api_client.delete_by_name("Nobody") is False


class TestStatusMapping:
    @pytest.mark.asyncio
    async def test_400_is_invalid_input_with_upstream_message(self, api_client, upstream):
        upstream.script("POST", 400, body={"error": "salary must be positive"})

        with pytest.raises(InvalidInputError) as exc_info:
            await api_client.create(CreateEmployeeRequest(name="A", salary=1, age=20, title="T"))

        assert exc_info.value.message == "salary must be positive"

    @pytest.mark.asyncio
    async def test_404_is_not_found(self, api_client, upstream):
        upstream.script("GET", 404)

        with pytest.raises(NotFoundError):
            await api_client.list_all()

    @pytest.mark.asyncio
    async def test_429_carries_retry_after(self, api_client, upstream):
        upstream.script("GET", 429, headers={"Retry-After": "5"})

        with pytest.raises(RateLimitError) as exc_info:
            await api_client.list_all()

        assert exc_info.value.retry_after == 5

    @pytest.mark.asyncio
    async def test_429_without_header_has_no_retry_after(self, api_client, upstream):
        upstream.script("GET", 429)

        with pytest.raises(RateLimitError) as exc_info:
            await api_client.list_all()

        assert exc_info.value.retry_after is None

    @pytest.mark.asyncio
    async def test_other_4xx_is_upstream_client(self, api_client, upstream):
        upstream.script("DELETE", 403)

        with pytest.raises(UpstreamClientError) as exc_info:
            await api_client.delete_by_name("Jane Smith")

        assert exc_info.value.status == 403

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [500, 502, 503])
    async def test_5xx_is_upstream_server(self, api_client, upstream, status):
        upstream.script("GET", status)

        with pytest.raises(UpstreamServerError) as exc_info:
            await api_client.list_all()

        assert exc_info.value.status == status

    @pytest.mark.asyncio
    async def test_transport_failure_is_unavailable(self, api_client, upstream):
        upstream.script("GET", 0, exc=httpx.ConnectError("connection refused"))

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            await api_client.list_all()

        assert isinstance(exc_info.value.cause, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_timeout_is_unavailable(self, api_client, upstream):
        upstream.script("GET", 0, exc=httpx.ReadTimeout("too slow"))

        with pytest.raises(UpstreamUnavailableError):
            await api_client.list_all()


class TestEnvelopeDecoding:
    @pytest.mark.asyncio
    async def test_null_data_is_empty_payload(self, api_client, upstream):
        upstream.script("GET", 200, body={"data": None, "status": "ok"})

        with pytest.raises(UpstreamClientError) as exc_info:
            await api_client.list_all()

        assert exc_info.value.message == "empty payload"

    @pytest.mark.asyncio
    async def test_unknown_envelope_fields_are_ignored(self, api_client, upstream):
        upstream.script(
            "GET",
            200,
            body={"data": [], "status": "ok", "requestId": "r-1", "meta": {"x": 1}},
        )

        assert await api_client.list_all() == []

    @pytest.mark.asyncio
    async def test_malformed_payload_is_unavailable(self, api_client, upstream):
        upstream.script("GET", 200, body={"data": [{"id": "1"}]})

        with pytest.raises(UpstreamUnavailableError):
            await api_client.list_all()


class TestParseRetryAfter:
    def test_delta_seconds(self):
        assert parse_retry_after("120") == 120

    def test_missing(self):
        assert parse_retry_after(None) is None
        assert parse_retry_after("") is None

    def test_garbage(self):
        assert parse_retry_after("soon") is None

    def test_http_date(self):
        when = datetime.now(timezone.utc) + timedelta(seconds=30)

        parsed = parse_retry_after(format_datetime(when, usegmt=True))

        assert 25 <= parsed <= 30

    def test_past_date_is_zero(self):
        when = datetime.now(timezone.utc) - timedelta(minutes=5)
        assert parse_retry_after(format_datetime(when, usegmt=True)) == 0
