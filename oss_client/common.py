"""
Shared types for the OSS client.

This module defines the client configuration, the request/response value
objects passed between the operation facades and the request executor, and
the error hierarchy raised by every operation.
"""

from collections.abc import AsyncIterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class HttpMethod(str, Enum):
    """HTTP methods accepted by the service."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class ClientConfig(BaseModel):
    """Connection and credential settings of one client instance."""

    region: str = Field(..., description="Region id without the `oss-` prefix, e.g. cn-hangzhou")
    endpoint: str = Field(..., description="Endpoint host, e.g. oss-cn-hangzhou.aliyuncs.com")
    access_key_id: str
    access_key_secret: str
    secure: bool = Field(default=True, description="Send requests over HTTPS")
    cname: bool = Field(default=False, description="Endpoint is a custom domain bound to the bucket")
    timeout_ms: int | None = Field(default=None, description="Per-request timeout in milliseconds")
    debug: bool = Field(default=False, description="Trace signing and wire traffic at debug level")

    class Config:
        frozen = True

    @field_validator("region", "endpoint", "access_key_id", "access_key_secret")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        if v.startswith(("http://", "https://")):
            raise ValueError("endpoint must be a host name without scheme")
        return v.rstrip("/")

    @property
    def scheme(self) -> str:
        return "https" if self.secure else "http"

    @property
    def timeout_seconds(self) -> float | None:
        """Timeout in seconds, or None when unset or not a positive number."""
        if self.timeout_ms is None or self.timeout_ms <= 0:
            return None
        return self.timeout_ms / 1000


QueryValue = str | int | float | bool | None
RequestBody = bytes | AsyncIterable[bytes]


@dataclass
class RequestConfig:
    """One logical request, built fresh by a facade for every call."""

    method: HttpMethod
    bucket_name: str | None = None
    object_key: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    query: dict[str, QueryValue] = field(default_factory=dict)
    body: RequestBody | None = None
    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        try:
            self.method = HttpMethod(str(getattr(self.method, "value", self.method)).upper())
        except ValueError as e:
            raise ValidationError(f"unsupported http method: {self.method}") from e


@dataclass
class ResponseResult:
    """Buffered response of a successful request."""

    status: int
    headers: dict[str, str]
    data: bytes | None = None

    @property
    def content(self) -> str | None:
        if self.data is None:
            return None
        return self.data.decode("utf-8")


@dataclass
class RawResponse:
    """Unbuffered response handed to the caller of a streaming request."""

    status: int
    headers: dict[str, str]
    content: Any

    async def iter_chunks(self, chunk_size: int = 64 * 1024):
        async for chunk in self.content.iter_chunked(chunk_size):
            yield chunk


class ClientError(Exception):
    """
    Error raised by every client operation.

    Carries the diagnostic fields the service reports in its XML error
    envelope, or only a message when the error was produced locally.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        bucket_name: str | None = None,
        request_id: str | None = None,
        host_id: str | None = None,
        ec: str | None = None,
        recommend_doc: str | None = None,
        status: int | None = None,
    ):
        super().__init__(message)
        self._message = message
        self._code = code
        self._bucket_name = bucket_name
        self._request_id = request_id
        self._host_id = host_id
        self._ec = ec
        self._recommend_doc = recommend_doc
        self._status = status

    @property
    def message(self) -> str:
        return self._message

    @property
    def code(self) -> str | None:
        return self._code

    @property
    def bucket_name(self) -> str | None:
        return self._bucket_name

    @property
    def request_id(self) -> str | None:
        return self._request_id

    @property
    def host_id(self) -> str | None:
        return self._host_id

    @property
    def ec(self) -> str | None:
        return self._ec

    @property
    def recommend_doc(self) -> str | None:
        return self._recommend_doc

    @property
    def status(self) -> int | None:
        return self._status

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary format."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "bucket_name": self.bucket_name,
            "request_id": self.request_id,
            "host_id": self.host_id,
            "ec": self.ec,
            "recommend_doc": self.recommend_doc,
            "status": self.status,
        }

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    @classmethod
    def from_response_content(cls, content: str | bytes | None, status: int | None = None) -> "ClientError":
        """Build an error from the service's XML error envelope."""
        from .utils.xml_utils import find_text, parse_xml

        root = parse_xml(content, strict=False) if content else None
        if root is None or root.tag != "Error":
            return cls("unknown error", status=status)

        return cls(
            find_text(root, "Message") or "unknown error",
            code=find_text(root, "Code"),
            bucket_name=find_text(root, "BucketName"),
            request_id=find_text(root, "RequestId"),
            host_id=find_text(root, "HostId"),
            ec=find_text(root, "EC"),
            recommend_doc=find_text(root, "RecommendDoc"),
            status=status,
        )


class ValidationError(ClientError):
    """Invalid argument detected before any network call."""

    pass


class ServerError(ClientError):
    """The service answered with a 5xx status."""

    pass


class ProtocolError(ClientError):
    """The response does not have the shape the operation expects."""

    pass


class NetworkError(ClientError):
    """The transport failed before a response was received."""

    pass


class RequestTimeoutError(ClientError):
    """The configured request timeout fired."""

    pass


__all__ = [
    "HttpMethod",
    "ClientConfig",
    "QueryValue",
    "RequestBody",
    "RequestConfig",
    "ResponseResult",
    "RawResponse",
    "ClientError",
    "ValidationError",
    "ServerError",
    "ProtocolError",
    "NetworkError",
    "RequestTimeoutError",
]
