# backend/tests/test_report_renderer_client.py
from __future__ import annotations

import json

import httpx
import pytest

from app.clients.report_renderer import ReportRendererClient
from app.domain.inspection.errors import RenderingFailed
from app.domain.inspection.report_normalizer import normalize_report


def _report():
    return normalize_report(
        {
            "inspection_id": "9",
            "metadata": {"client_name": "Kim"},
            "rooms": [{"room_label": "Kitchen", "items": [{"label": "Leak", "status": "MAJOR"}]}],
        },
        photo_base_url="http://files",
    )


def test_render_posts_camel_case_report_and_returns_bytes():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, content=b"%PDF-1.7", headers={"content-type": "application/pdf"})

    client = ReportRendererClient(base_url="http://renderer:3000/", timeout=5, transport=httpx.MockTransport(handler))
    out = client.render(_report())

    assert out.content == b"%PDF-1.7"
    assert out.content_type == "application/pdf"
    assert seen["url"] == "http://renderer:3000/api/generate-pdf"
    assert seen["body"]["reportId"] == "00000009"
    assert seen["body"]["clientName"] == "Kim"
    assert seen["body"]["inspections"][0]["issueType"] == "Major"


def test_render_maps_http_errors():
    client = ReportRendererClient(
        base_url="http://renderer",
        transport=httpx.MockTransport(lambda r: httpx.Response(500, text="template exploded")),
    )
    with pytest.raises(RenderingFailed) as ei:
        client.render(_report())
    assert "500" in ei.value.message
    assert ei.value.status_code == 502


def test_render_maps_transport_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = ReportRendererClient(base_url="http://renderer", transport=httpx.MockTransport(handler))
    with pytest.raises(RenderingFailed):
        client.render(_report())


def test_render_rejects_empty_body():
    client = ReportRendererClient(base_url="http://renderer", transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    with pytest.raises(RenderingFailed):
        client.render(_report())
