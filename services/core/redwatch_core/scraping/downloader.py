"""Page download with a rendering middleware.

PageDownloader fetches the raw page over HTTP and then lets its response
middleware replace the body. RenderingMiddleware swaps in the headless
render; if rendering fails in any way, the raw response passes through
untouched and the batch carries on with whatever it contains.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Optional, Protocol

import httpx

from redwatch_core.scraping.renderer import DEFAULT_USER_AGENT, Renderer, RenderOptions

logger = logging.getLogger(__name__)

USE_RENDERER = "use_renderer"


@dataclass(frozen=True)
class FetchRequest:
    url: str
    meta: dict[str, Any] = field(default_factory=dict)

    def with_meta(self, key: str, value: Any) -> "FetchRequest":
        return replace(self, meta={**self.meta, key: value})


@dataclass(frozen=True)
class FetchResponse:
    request: FetchRequest
    status: int
    body: str

    @property
    def url(self) -> str:
        return self.request.url

    def with_body(self, body: str) -> "FetchResponse":
        return replace(self, body=body)


class DownloaderMiddleware(Protocol):
    def handle_request(self, request: FetchRequest) -> FetchRequest: ...

    def handle_response(self, response: FetchResponse) -> FetchResponse: ...


class RenderingMiddleware:
    """Replaces response bodies with fully rendered HTML."""

    def __init__(self, renderer: Renderer, options: Optional[RenderOptions] = None):
        self.renderer = renderer
        self.options = options or RenderOptions()

    def handle_request(self, request: FetchRequest) -> FetchRequest:
        return request.with_meta(USE_RENDERER, True)

    def handle_response(self, response: FetchResponse) -> FetchResponse:
        if not response.request.meta.get(USE_RENDERER, False):
            return response

        try:
            html = self.renderer.render(response.url, self.options)
        except Exception as e:
            logger.error(f"Rendering failed for {response.url}: {e}")
            return response

        if not html:
            return response

        return response.with_body(html)


class PageDownloader:
    """Fetches pages and runs them through downloader middleware."""

    def __init__(
        self,
        middleware: Optional[list[DownloaderMiddleware]] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.middleware = middleware or []
        self.user_agent = user_agent
        self.timeout = timeout
        self.transport = transport

    def fetch(self, url: str) -> FetchResponse:
        request = FetchRequest(url=url)
        for mw in self.middleware:
            request = mw.handle_request(request)

        response = self._download(request)

        for mw in self.middleware:
            response = mw.handle_response(response)
        return response

    def _download(self, request: FetchRequest) -> FetchResponse:
        """Plain HTTP GET. Failures yield an empty response, not an error."""
        try:
            with httpx.Client(
                timeout=self.timeout,
                transport=self.transport,
                follow_redirects=True,
            ) as client:
                resp = client.get(request.url, headers={"User-Agent": self.user_agent})
            return FetchResponse(request=request, status=resp.status_code, body=resp.text)
        except httpx.HTTPError as e:
            logger.warning(f"Raw download of {request.url} failed: {e}")
            return FetchResponse(request=request, status=0, body="")
