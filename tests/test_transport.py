"""Tests for HTTP client construction."""

import logging
import ssl

import httpx
import pytest

from keptn_cli.core import transport
from keptn_cli.core.transport import build_http_client, is_standard_transport


class CustomTransport(httpx.AsyncHTTPTransport):
    """A subclass counts as custom, not as the standard transport."""


class TestIsStandardTransport:
    def test_none(self):
        assert is_standard_transport(None)

    def test_plain_http_transport(self):
        assert is_standard_transport(httpx.AsyncHTTPTransport())

    def test_mock_transport(self):
        assert not is_standard_transport(httpx.MockTransport(lambda r: httpx.Response(200)))

    def test_subclass(self):
        assert not is_standard_transport(CustomTransport())


class TestBuildHttpClient:
    def test_default_client_trusts_environment(self):
        client = build_http_client()

        assert isinstance(client, httpx.AsyncClient)
        assert client.trust_env
        assert client.timeout == httpx.Timeout(60.0)

    def test_timeout(self):
        assert build_http_client(timeout=5).timeout == httpx.Timeout(5)

    def test_each_call_builds_a_new_client(self):
        assert build_http_client() is not build_http_client()

    @pytest.mark.parametrize("given", [None, httpx.AsyncHTTPTransport()], ids=["none", "standard"])
    def test_certificate_verification_disabled(self, given):
        client = build_http_client(given)

        assert client._transport._pool._ssl_context.verify_mode == ssl.CERT_NONE

    def test_standard_transport_is_replaced(self):
        given = httpx.AsyncHTTPTransport(retries=3)

        client = build_http_client(given)

        assert client._transport is not given
        assert client.trust_env

    def test_replacing_standard_transport_warns(self, caplog):
        given = httpx.AsyncHTTPTransport(retries=3)

        with caplog.at_level(logging.WARNING, logger=transport.__name__):
            build_http_client(given)

        [record] = caplog.records
        assert record.levelno == logging.WARNING
        assert "AsyncHTTPTransport" in record.getMessage()

    def test_default_client_does_not_warn(self, caplog):
        with caplog.at_level(logging.WARNING, logger=transport.__name__):
            build_http_client()

        assert caplog.records == []

    @pytest.mark.asyncio
    async def test_custom_transport_is_used(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"ok": True})

        client = build_http_client(httpx.MockTransport(handler))
        response = await client.get("https://keptn.test/api/v1/project")

        assert response.json() == {"ok": True}
        assert len(seen) == 1

    def test_client_is_instrumented(self):
        pytest.importorskip("opentelemetry.instrumentation.httpx")

        client = build_http_client()

        assert client._is_instrumented_by_opentelemetry

    def test_works_without_instrumentation(self, monkeypatch):
        monkeypatch.setattr(transport, "HTTPXClientInstrumentor", None)

        client = build_http_client()

        assert isinstance(client, httpx.AsyncClient)
