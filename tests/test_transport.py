"""Tests for the probe HTTP transport."""

from __future__ import annotations

import json

import httpx
import pytest

from schemaprobe.discovery.errors import ProbeTransportError
from schemaprobe.discovery.transport import ProbeTransport


class TestProbeTransport:
    """Probe request execution."""

    @pytest.mark.asyncio
    async def test_sends_json_body(self, make_transport, recording_handler):
        transport = make_transport(recording_handler)

        response = await transport.send(
            "POST",
            "http://api.test/api/users",
            body={"email": "a@b.com", "password": "secret"},
        )
        await transport.aclose()

        request = recording_handler.seen[0]
        assert request.method == "POST"
        assert request.headers["content-type"] == "application/json"
        assert json.loads(request.content) == {"email": "a@b.com", "password": "secret"}
        assert response.status_code == 201
        assert response.ok is True
        assert json.loads(response.body)["id"] == 1
        assert response.headers["content-type"] == ["application/json"]
        assert response.duration_ms >= 0

    @pytest.mark.asyncio
    async def test_caller_headers_override_defaults(self, make_transport, recording_handler):
        async with make_transport(recording_handler) as transport:
            await transport.send(
                "PUT",
                "http://api.test/api/users",
                headers={"Content-Type": "application/vnd.api+json", "Authorization": "Bearer t"},
                body={},
            )

        request = recording_handler.seen[0]
        assert request.headers["content-type"] == "application/vnd.api+json"
        assert request.headers["authorization"] == "Bearer t"

    @pytest.mark.asyncio
    async def test_error_status_is_returned(self, make_transport):
        async with make_transport() as transport:
            response = await transport.send("POST", "http://api.test/api/users", body={})

        assert response.status_code == 400
        assert response.ok is False
        assert json.loads(response.text) == {"error": "email is required"}

    @pytest.mark.asyncio
    async def test_array_body(self, make_transport, recording_handler):
        async with make_transport(recording_handler) as transport:
            response = await transport.send(
                "POST",
                "http://api.test/api/batch/users",
                body=[{"email": "a@b.com"}],
            )

        assert json.loads(recording_handler.seen[0].content) == [{"email": "a@b.com"}]
        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_no_body(self, make_transport, recording_handler):
        async with make_transport(recording_handler) as transport:
            await transport.send("GET", "http://api.test/api/users")

        assert recording_handler.seen[0].content == b""

    @pytest.mark.asyncio
    async def test_multi_value_headers(self, make_transport):
        def handler(request):
            return httpx.Response(200, headers=[("Set-Cookie", "a=1"), ("Set-Cookie", "b=2")])

        async with make_transport(handler) as transport:
            response = await transport.send("POST", "http://api.test/x", body={})

        assert response.headers["set-cookie"] == ["a=1", "b=2"]

    @pytest.mark.asyncio
    async def test_timeout_is_transport_error(self, make_transport):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        async with make_transport(handler) as transport:
            with pytest.raises(ProbeTransportError, match="timed out"):
                await transport.send("POST", "http://api.test/x", body={})

    @pytest.mark.asyncio
    async def test_connect_error_is_transport_error(self, make_transport):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with make_transport(handler) as transport:
            with pytest.raises(ProbeTransportError, match="failed to execute request"):
                await transport.send("POST", "http://api.test/x", body={})

    @pytest.mark.asyncio
    async def test_unserializable_body(self, make_transport, recording_handler):
        async with make_transport(recording_handler) as transport:
            with pytest.raises(ProbeTransportError, match="marshal"):
                await transport.send("POST", "http://api.test/x", body={"v": object()})

        assert recording_handler.seen == []

    @pytest.mark.asyncio
    async def test_non_ascii_header_is_transport_error(self, make_transport, recording_handler):
        async with make_transport(recording_handler) as transport:
            with pytest.raises(ProbeTransportError, match="invalid request header"):
                await transport.send(
                    "POST",
                    "http://api.test/api/users",
                    headers={"X-Name": "café"},
                    body={},
                )

        assert recording_handler.seen == []

    @pytest.mark.asyncio
    async def test_malformed_url_is_transport_error(self, make_transport, recording_handler):
        async with make_transport(recording_handler) as transport:
            with pytest.raises(ProbeTransportError, match="invalid request URL"):
                await transport.send("POST", "http://[::1/api/users", body={})

        assert recording_handler.seen == []

    @pytest.mark.asyncio
    async def test_response_reports_pacing_wait(self, make_transport):
        async with make_transport() as transport:
            response = await transport.send("POST", "http://api.test/api/users", body={})

        assert response.wait_ms == 0.0
        assert transport.pacer.hosts == ["http://api.test"]

    def test_from_config(self):
        transport = ProbeTransport.from_config(
            {"timeout_seconds": 3, "rate_limit": {"requests_per_second": 2.0, "burst_limit": 4}},
        )

        assert transport.timeout == 3
        assert transport.pacer.requests_per_second == 2.0
        assert transport.pacer.burst_limit == 4

    def test_from_config_defaults(self):
        transport = ProbeTransport.from_config({})

        assert transport.timeout == 10.0
        assert transport.pacer.requests_per_second == 5.0
        assert transport.pacer.burst_limit == 10
