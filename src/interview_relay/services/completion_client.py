from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional, Tuple
import logging

import requests

from ..config import DEFAULT_OPENAI_BASE_URL
from ..errors import UpstreamError
from ..infrastructure.http_session import build_http_session, error_detail


LOG = logging.getLogger("relay.llm")


class CompletionStream:
    """An open streaming completion response, iterated as raw event lines.

    ``close`` may be called from another thread to abort a read in progress.
    """

    def __init__(self, response: requests.Response) -> None:
        self._response = response
        self._closed = False

    def __iter__(self) -> Iterator[str]:
        for raw_line in self._response.iter_lines(decode_unicode=False):
            if self._closed:
                return
            if not raw_line:
                continue
            yield raw_line.decode("utf-8", errors="replace") if isinstance(raw_line, bytes) else raw_line

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._response.close()

    @property
    def closed(self) -> bool:
        return self._closed


class OpenAIRestClient:
    """Shared plumbing for the OpenAI-compatible REST endpoints."""

    service = "completion"

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = DEFAULT_OPENAI_BASE_URL,
        timeout: Tuple[float, float] = (5.0, 120.0),
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._session = session or build_http_session()

    def _headers(self) -> Dict[str, str]:
        if not self._api_key:
            raise UpstreamError(self.service, "API key not configured")
        return {"Authorization": f"Bearer {self._api_key}"}

    def _send(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            resp = self._session.request(method, url, headers=self._headers(), timeout=self._timeout, **kwargs)
        except requests.exceptions.RequestException as exc:
            LOG.error("openai_transport_failed", extra={"service": self.service, "path": path, "err": str(exc)})
            raise UpstreamError(self.service, f"Upstream API unreachable: {exc}") from exc
        if resp.status_code >= 400:
            detail = error_detail(resp)
            resp.close()
            LOG.error(
                "openai_request_failed",
                extra={"service": self.service, "path": path, "status": resp.status_code, "detail": detail},
            )
            raise UpstreamError(self.service, f"Upstream API error: {detail}", status_code=resp.status_code)
        return resp

    def _json(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        resp = self._send(method, path, **kwargs)
        try:
            data = resp.json()
        except ValueError as exc:
            raise UpstreamError(self.service, "Upstream API returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise UpstreamError(self.service, "Upstream API returned an unexpected body")
        return data


class CompletionClient(OpenAIRestClient):
    """Chat completions and model metadata."""

    service = "completion"

    def create_chat_completion(self, model: str, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        LOG.debug("completion_invoke", extra={"model": model, "base_url": self.base_url})
        return self._json("POST", "/chat/completions", json={"model": model, "messages": messages})

    def open_stream(self, model: str, messages: List[Dict[str, str]]) -> CompletionStream:
        """Start a streaming completion; errors before the first byte raise ``UpstreamError``."""
        LOG.debug("completion_stream", extra={"model": model, "base_url": self.base_url})
        resp = self._send(
            "POST",
            "/chat/completions",
            json={"model": model, "messages": messages, "stream": True},
            stream=True,
        )
        return CompletionStream(resp)

    def retrieve_model(self, model_id: str) -> Dict[str, Any]:
        return self._json("GET", f"/models/{model_id}")

    def list_models(self) -> Dict[str, Any]:
        return self._json("GET", "/models")
