import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from packet_provisioner.metrics import metrics


logger = logging.getLogger(__name__)


class TransportError(RuntimeError):
    def __init__(self, *, method: str, url: str, error_type: str, detail: str):
        self.method = method
        self.url = url
        self.error_type = error_type
        self.detail = detail
        super().__init__(f"request failed: {method} {url} ({error_type}: {detail})")


class ApiError(TransportError):
    def __init__(
        self, *, method: str, url: str, status_code: int, response_text: str | None
    ):
        self.status_code = status_code
        self.response_text = response_text
        body = (response_text or "").strip()
        detail = f"HTTP {status_code}: {body[:240]}" if body else f"HTTP {status_code}"
        super().__init__(method=method, url=url, error_type="ApiError", detail=detail)


@dataclass
class ApiResponse:
    status_code: int
    raw: str
    data: Any = None


def encode_body(method: str, url: str, body: Any) -> bytes | None:
    if body is None:
        return None
    try:
        return json.dumps(body).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise TransportError(
            method=method,
            url=url,
            error_type=exc.__class__.__name__,
            detail=str(exc),
        ) from exc


def send_request(
    client: httpx.Client,
    method: str,
    url: str,
    *,
    body: Any = None,
    parse: bool = True,
    check_status: bool = False,
) -> ApiResponse:
    """Perform one exchange and decode the JSON body.

    Status codes are ignored unless ``check_status`` is set, so an error
    response with a parseable body comes back like any other.
    """
    content = encode_body(method, url, body)
    metrics.inc("api_requests_total")
    metrics.inc(f"api_requests_{method.lower()}_total")
    try:
        response = client.request(method, url, content=content)
    except httpx.HTTPError as exc:
        metrics.inc("api_errors_total")
        raise TransportError(
            method=method,
            url=url,
            error_type=exc.__class__.__name__,
            detail=str(exc) or "connection failed",
        ) from exc

    raw = response.text
    logger.debug(
        "api response method=%s url=%s status=%s bytes=%d",
        method,
        url,
        response.status_code,
        len(raw),
    )
    if check_status and response.is_error:
        metrics.inc("api_errors_total")
        raise ApiError(
            method=method,
            url=url,
            status_code=response.status_code,
            response_text=raw,
        )
    if not parse:
        return ApiResponse(status_code=response.status_code, raw=raw)

    try:
        data = json.loads(raw)
    except ValueError as exc:
        metrics.inc("api_errors_total")
        raise TransportError(
            method=method,
            url=url,
            error_type=exc.__class__.__name__,
            detail=f"malformed response body: {exc}",
        ) from exc
    return ApiResponse(status_code=response.status_code, raw=raw, data=data)
