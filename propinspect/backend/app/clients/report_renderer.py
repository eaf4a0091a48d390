from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from ..config import settings
from ..domain.inspection.errors import RenderingFailed
from ..schemas import ReportModel

log = logging.getLogger("propinspect.renderer")


@dataclass(frozen=True)
class RenderedReport:
    content: bytes
    content_type: str


class ReportRendererClient:
    """
    Thin client for the template-rendering service.
    POST {base}/api/generate-pdf with the camelCase report JSON, get PDF bytes back.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base = (base_url or settings.renderer_base_url).rstrip("/")
        self.timeout = float(timeout if timeout is not None else settings.renderer_timeout_seconds)
        self.transport = transport

    def render(self, report: ReportModel) -> RenderedReport:
        url = f"{self.base}/api/generate-pdf"
        payload = report.model_dump(by_alias=True, mode="json")

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                r = client.post(url, json=payload)
                r.raise_for_status()
        except httpx.HTTPStatusError as e:
            log.warning("renderer returned an error", extra={"action": "render"})
            raise RenderingFailed(
                f"Renderer returned status {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            log.warning("renderer unreachable", extra={"action": "render"})
            raise RenderingFailed(f"Could not reach the rendering service at {self.base}: {e}") from e

        if not r.content:
            raise RenderingFailed("Renderer returned an empty document")

        return RenderedReport(
            content=r.content,
            content_type=r.headers.get("content-type", "application/pdf"),
        )
