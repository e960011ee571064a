"""
HTTP summarization backend.

POSTs {text, targetReduction, maxLength, detailLevel, instructions}
and expects {summary} back. An {error} body or a non-2xx status is a
failure.
"""

from typing import Optional

import httpx

from ..exceptions import SummarizationError
from .base import SummarizationBackend, SummaryRequest


class HttpSummarizationBackend(SummarizationBackend):
    """Calls a summarization endpoint over HTTP."""

    def __init__(
        self,
        endpoint: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
    ):
        """
        Initialize backend.

        Args:
            endpoint: Full URL of the summarization function
            api_key: Optional bearer token
            timeout: Request timeout in seconds
            client: Pre-built httpx client (tests inject a MockTransport here)
        """
        self.endpoint = endpoint
        self.api_key = api_key
        self.timeout = timeout
        self._client = client

    def summarize(self, request: SummaryRequest) -> str:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            if self._client is not None:
                response = self._client.post(self.endpoint, headers=headers, json=request.to_payload())
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(self.endpoint, headers=headers, json=request.to_payload())
        except httpx.HTTPError as e:
            raise SummarizationError(f"Transport error: {e}", cause=e) from e

        if not response.is_success:
            raise SummarizationError(f"HTTP {response.status_code}: {response.reason_phrase}")

        try:
            data = response.json()
        except ValueError as e:
            raise SummarizationError("Malformed response body: not JSON", cause=e) from e

        if not isinstance(data, dict):
            raise SummarizationError("Malformed response body: expected an object")
        if data.get("error"):
            raise SummarizationError(str(data["error"]))

        summary = data.get("summary")
        if not isinstance(summary, str) or not summary.strip():
            raise SummarizationError("Malformed response body: missing summary")
        return summary.strip()
