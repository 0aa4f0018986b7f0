"""
Pydantic models for object-level operations.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, Mapping, Optional, Union

from pydantic import BaseModel, Field

from ..utils.xml_utils import parse_datetime

USER_META_PREFIX = "x-oss-meta-"


class ObjectAcl(str, Enum):
    DEFAULT = "default"
    PRIVATE = "private"
    PUBLIC_READ = "public-read"
    PUBLIC_READ_WRITE = "public-read-write"


class StorageClass(str, Enum):
    STANDARD = "Standard"
    IA = "IA"
    ARCHIVE = "Archive"
    COLD_ARCHIVE = "ColdArchive"
    DEEP_COLD_ARCHIVE = "DeepColdArchive"


class ServerSideEncryption(str, Enum):
    AES256 = "AES256"
    KMS = "KMS"
    SM4 = "SM4"


MetaValue = Union[str, int, float, bool]


# Options


class PutObjectOptions(BaseModel):
    """Headers of a PutObject call."""

    content_type: Optional[str] = None
    content_length: Optional[int] = Field(default=None, ge=0)
    content_md5: Optional[str] = Field(default=None, description="Base64 encoded MD5 of the body")
    cache_control: Optional[str] = None
    content_disposition: Optional[str] = None
    content_encoding: Optional[str] = None
    expires: Optional[str] = None
    forbid_overwrite: Optional[bool] = None
    server_side_encryption: Optional[ServerSideEncryption] = None
    server_side_data_encryption: Optional[str] = None
    server_side_encryption_key_id: Optional[str] = None
    object_acl: Optional[ObjectAcl] = None
    storage_class: Optional[StorageClass] = None
    tagging: Dict[str, MetaValue] = Field(default_factory=dict)
    meta: Dict[str, MetaValue] = Field(default_factory=dict)

    class Config:
        use_enum_values = True


class ResponseHeaderOverrides(BaseModel):
    """Response headers the service should return instead of the stored ones."""

    response_content_type: Optional[str] = None
    response_content_language: Optional[str] = None
    response_expires: Optional[str] = None
    response_cache_control: Optional[str] = None
    response_content_disposition: Optional[str] = None
    response_content_encoding: Optional[str] = None

    def override_query(self) -> Dict[str, str]:
        """Return the overrides as ``response-*`` query parameters."""
        query = {}
        for name in ResponseHeaderOverrides.model_fields:
            value = getattr(self, name)
            if value is not None:
                query[name.replace("_", "-")] = value
        return query


class GetObjectOptions(ResponseHeaderOverrides):
    """Range, conditional headers and query of a GetObject call."""

    range: Optional[str] = Field(default=None, description="e.g. bytes=0-1023")
    if_modified_since: Optional[str] = None
    if_unmodified_since: Optional[str] = None
    if_match: Optional[str] = None
    if_none_match: Optional[str] = None
    accept_encoding: Optional[str] = None
    version_id: Optional[str] = None
    process: Optional[str] = Field(default=None, description="Image processing instruction, sent as x-oss-process")


class HeadObjectOptions(BaseModel):
    version_id: Optional[str] = None
    if_modified_since: Optional[str] = None
    if_unmodified_since: Optional[str] = None
    if_match: Optional[str] = None
    if_none_match: Optional[str] = None


class DeleteObjectOptions(BaseModel):
    version_id: Optional[str] = None


class SignatureOptions(ResponseHeaderOverrides):
    """Parameters of a pre-signed URL."""

    method: str = "GET"
    expires: int = Field(default=3600, description="Seconds the URL stays valid")
    content_type: Optional[str] = None
    content_md5: Optional[str] = None
    version_id: Optional[str] = None
    process: Optional[str] = None
    query: Dict[str, Optional[str]] = Field(default_factory=dict)


# Results


def _header_int(headers: Mapping[str, str], name: str) -> Optional[int]:
    value = headers.get(name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


class PutObjectResult(BaseModel):
    content_md5: Optional[str] = None
    etag: Optional[str] = None
    crc64: Optional[str] = None
    version_id: Optional[str] = None
    request_id: Optional[str] = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "PutObjectResult":
        return cls(
            content_md5=headers.get("content-md5"),
            etag=headers.get("etag"),
            crc64=headers.get("x-oss-hash-crc64ecma"),
            version_id=headers.get("x-oss-version-id"),
            request_id=headers.get("x-oss-request-id"),
        )


class ObjectMeta(BaseModel):
    """Object metadata carried in the headers of a GET or HEAD response."""

    content_type: Optional[str] = None
    content_length: Optional[int] = None
    content_md5: Optional[str] = None
    etag: Optional[str] = None
    last_modified: Optional[datetime] = None
    object_type: Optional[str] = None
    storage_class: Optional[str] = None
    server_side_encryption: Optional[str] = None
    version_id: Optional[str] = None
    crc64: Optional[str] = None
    request_id: Optional[str] = None
    user_meta: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "ObjectMeta":
        """
        Build metadata from response headers.

        Args:
            headers: Response headers keyed by lower-cased name

        Returns:
            ObjectMeta with ``x-oss-meta-*`` entries collected into user_meta
        """
        return cls(
            content_type=headers.get("content-type"),
            content_length=_header_int(headers, "content-length"),
            content_md5=headers.get("content-md5"),
            etag=headers.get("etag"),
            last_modified=parse_datetime(headers.get("last-modified")),
            object_type=headers.get("x-oss-object-type"),
            storage_class=headers.get("x-oss-storage-class"),
            server_side_encryption=headers.get("x-oss-server-side-encryption"),
            version_id=headers.get("x-oss-version-id"),
            crc64=headers.get("x-oss-hash-crc64ecma"),
            request_id=headers.get("x-oss-request-id"),
            user_meta={
                k[len(USER_META_PREFIX):]: v for k, v in headers.items() if k.startswith(USER_META_PREFIX)
            },
        )


class GetObjectResult(BaseModel):
    data: bytes
    meta: ObjectMeta


class GetObjectMetaResult(BaseModel):
    """Lightweight metadata returned by GetObjectMeta."""

    content_length: Optional[int] = None
    etag: Optional[str] = None
    last_modified: Optional[datetime] = None
    last_access_time: Optional[datetime] = None
    version_id: Optional[str] = None
    crc64: Optional[str] = None
    request_id: Optional[str] = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "GetObjectMetaResult":
        return cls(
            content_length=_header_int(headers, "content-length"),
            etag=headers.get("etag"),
            last_modified=parse_datetime(headers.get("last-modified")),
            last_access_time=parse_datetime(headers.get("x-oss-last-access-time")),
            version_id=headers.get("x-oss-version-id"),
            crc64=headers.get("x-oss-hash-crc64ecma"),
            request_id=headers.get("x-oss-request-id"),
        )

