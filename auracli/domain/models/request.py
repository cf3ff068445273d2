"""Request/response value objects used by the request executor and transports."""

import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, TypedDict
from urllib.parse import urlsplit

from .common import EndpointUrl, HttpMethod

DEFAULT_METHOD = HttpMethod("POST")
JSON_CONTENT_TYPE = "application/json"


class RequestOptions(TypedDict, total=False):
    """Caller-supplied request options. Opaque to the retry loop."""
    method: str
    headers: Mapping[str, str]
    body: Any  # bytes, str or a JSON-serialisable object


@dataclass(frozen=True)
class RequestDescriptor:
    """Everything needed to issue one attempt. Reused verbatim across retries."""
    target: EndpointUrl
    method: HttpMethod = DEFAULT_METHOD
    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    body: Optional[bytes] = None

    def __post_init__(self):
        parts = urlsplit(str(self.target))
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(f"Not a valid http(s) endpoint: {self.target!r}")
        # Freeze a private copy so later changes to the caller's dict cannot leak in
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))


@dataclass(frozen=True)
class TransportResponse:
    """What a transport hands back when the endpoint answered at all."""
    status_code: int
    body: bytes = b""
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code <= 299

    def text_excerpt(self, limit: int = 200) -> str:
        text = self.body.decode("utf-8", errors="replace")
        return text if len(text) <= limit else text[:limit] + "..."


def _has_header(headers: Mapping[str, str], name: str) -> bool:
    lowered = name.lower()
    return any(key.lower() == lowered for key in headers)


def build_descriptor(target: str, options: Optional[RequestOptions] = None) -> RequestDescriptor:
    """Turns a target and caller options into an immutable descriptor.

    The body is serialised here, once, so every attempt sends identical bytes.
    """
    options = options or {}
    method = HttpMethod(str(options.get("method", DEFAULT_METHOD)).upper())
    headers = dict(options.get("headers") or {})
    body = options.get("body")

    if body is None or isinstance(body, bytes):
        encoded = body
    elif isinstance(body, str):
        encoded = body.encode("utf-8")
    else:
        encoded = json.dumps(body, separators=(",", ":")).encode("utf-8")
        if not _has_header(headers, "Content-Type"):
            headers["Content-Type"] = JSON_CONTENT_TYPE

    return RequestDescriptor(
        target=EndpointUrl(target),
        method=method,
        headers=headers,
        body=encoded,
    )
