"""Tests for the media host client."""

import hashlib
from urllib.parse import parse_qs

import httpx
import pytest

from office_chat.services.errors import MediaHostDisabledError, MediaHostError
from office_chat.services.media import (
    MediaHost,
    MediaHostConfig,
    resource_type_for,
)


def _config(**overrides):
    values = {
        "cloud_name": "demo",
        "api_key": "key-123",
        "api_secret": "shh",
        "folder": "office_management/chat",
        "timeout_seconds": 5.0,
    }
    values.update(overrides)
    return MediaHostConfig(**values)


class RecordingHandler:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self.body = body
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = self.body
        if body is None:
            resource = request.url.path.split("/")[3]
            body = {
                "public_id": "office_management/chat/generated",
                "secure_url": f"https://res.cloudinary.com/demo/{resource}/upload/generated",
            }
        return httpx.Response(self.status_code, json=body)


@pytest.mark.asyncio
async def test_requests_carry_cloudinary_signature(mocker):
    mocker.patch("office_chat.services.media.time.time", return_value=1315060510)
    handler = RecordingHandler(body={"result": "ok"})
    host = MediaHost(_config(), transport=httpx.MockTransport(handler))
    try:
        await host.destroy("sample")
    finally:
        await host.close()

    form = parse_qs(handler.requests[0].content.decode())
    expected = hashlib.sha1(b"public_id=sample&timestamp=1315060510shh").hexdigest()
    assert form["signature"] == [expected]
    assert form["api_key"] == ["key-123"]
    assert form["timestamp"] == ["1315060510"]


@pytest.mark.parametrize(
    ("content_type", "expected"),
    [("image/png", "image"), ("application/pdf", "raw"), (None, "raw")],
)
def test_resource_type_for(content_type, expected):
    assert resource_type_for(content_type) == expected


class TestUpload:
    @pytest.mark.asyncio
    async def test_image_upload(self):
        handler = RecordingHandler()
        host = MediaHost(_config(), transport=httpx.MockTransport(handler))
        try:
            attachment = await host.upload("photo.png", b"\x89PNG data", "image/png")
        finally:
            await host.close()

        (request,) = handler.requests
        assert request.method == "POST"
        assert request.url.path == "/v1_1/demo/image/upload"
        assert b"office_management/chat" in request.content
        assert b"key-123" in request.content
        assert attachment.type == "image"
        assert attachment.filename == "photo.png"
        assert attachment.size == len(b"\x89PNG data")
        assert attachment.public_id == "office_management/chat/generated"
        assert attachment.url.startswith("https://res.cloudinary.com/demo/image/")

    @pytest.mark.asyncio
    async def test_document_upload_uses_raw_resource(self):
        handler = RecordingHandler()
        host = MediaHost(_config(), transport=httpx.MockTransport(handler))
        try:
            attachment = await host.upload("report.pdf", b"%PDF-1.7", "application/pdf")
        finally:
            await host.close()

        assert handler.requests[0].url.path == "/v1_1/demo/raw/upload"
        assert attachment.type == "document"

    @pytest.mark.asyncio
    async def test_host_error_status(self):
        handler = RecordingHandler(status_code=500, body={"error": {"message": "boom"}})
        host = MediaHost(_config(), transport=httpx.MockTransport(handler))
        try:
            with pytest.raises(MediaHostError, match="500"):
                await host.upload("photo.png", b"data", "image/png")
        finally:
            await host.close()

    @pytest.mark.asyncio
    async def test_response_without_reference(self):
        handler = RecordingHandler(body={"secure_url": "https://example.com/x"})
        host = MediaHost(_config(), transport=httpx.MockTransport(handler))
        try:
            with pytest.raises(MediaHostError, match="public_id"):
                await host.upload("photo.png", b"data", "image/png")
        finally:
            await host.close()

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        host = MediaHost(_config(), transport=httpx.MockTransport(refuse))
        try:
            with pytest.raises(MediaHostError, match="request failed"):
                await host.upload("photo.png", b"data", "image/png")
        finally:
            await host.close()

    @pytest.mark.asyncio
    async def test_disabled_without_credentials(self):
        host = MediaHost(_config(api_secret=None))
        assert host.enabled is False
        with pytest.raises(MediaHostDisabledError):
            await host.upload("photo.png", b"data", "image/png")


class TestDestroy:
    @pytest.mark.asyncio
    async def test_destroy_reports_result(self):
        handler = RecordingHandler(body={"result": "ok"})
        host = MediaHost(_config(), transport=httpx.MockTransport(handler))
        try:
            assert await host.destroy("office_management/chat/a", resource_type="raw") is True
        finally:
            await host.close()

        request = handler.requests[0]
        assert request.url.path == "/v1_1/demo/raw/destroy"
        assert b"signature=" in request.content

    @pytest.mark.asyncio
    async def test_destroy_not_found(self):
        handler = RecordingHandler(body={"result": "not found"})
        host = MediaHost(_config(), transport=httpx.MockTransport(handler))
        try:
            assert await host.destroy("missing") is False
        finally:
            await host.close()

    @pytest.mark.asyncio
    async def test_destroy_without_credentials_is_a_no_op(self):
        host = MediaHost(_config(cloud_name=None))
        assert await host.destroy("anything") is False


@pytest.mark.asyncio
async def test_malformed_json_is_reported():
    def handler(request):
        return httpx.Response(200, content=b"<html>")

    host = MediaHost(_config(), transport=httpx.MockTransport(handler))
    try:
        with pytest.raises(MediaHostError, match="malformed"):
            await host.destroy("x")
    finally:
        await host.close()
