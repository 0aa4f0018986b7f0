"""
Async client for Aliyun OSS style object storage.

Requests are authenticated with the V4 (OSS4-HMAC-SHA256) signature and
sent with aiohttp; XML responses are parsed into pydantic models.
"""

from .client import OssClient
from .common import (
    ClientConfig,
    ClientError,
    HttpMethod,
    NetworkError,
    ProtocolError,
    RequestTimeoutError,
    ServerError,
    ValidationError,
)
from .factories.client_factory import create_client
from .models import (
    Bucket,
    BucketInfo,
    DeleteObjectOptions,
    GetObjectMetaResult,
    GetObjectOptions,
    GetObjectResult,
    HeadObjectOptions,
    ListBucketsOptions,
    ListBucketsResult,
    ListObjectsContent,
    ListObjectsQuery,
    ListObjectsResult,
    ObjectMeta,
    PutObjectOptions,
    PutObjectResult,
    SignatureOptions,
)
from .utils.config_init import setup_logging
from .utils.env_config import OssSettings, get_settings, load_env_file, reload_settings

__version__ = "0.1.0"

__all__ = [
    # Client
    "OssClient",
    "ClientConfig",
    "HttpMethod",
    "create_client",
    # Options and results
    "ListBucketsOptions",
    "ListBucketsResult",
    "Bucket",
    "BucketInfo",
    "ListObjectsQuery",
    "ListObjectsResult",
    "ListObjectsContent",
    "PutObjectOptions",
    "PutObjectResult",
    "GetObjectOptions",
    "GetObjectResult",
    "HeadObjectOptions",
    "ObjectMeta",
    "GetObjectMetaResult",
    "DeleteObjectOptions",
    "SignatureOptions",
    # Errors
    "ClientError",
    "ValidationError",
    "ServerError",
    "ProtocolError",
    "NetworkError",
    "RequestTimeoutError",
    # Configuration
    "OssSettings",
    "get_settings",
    "reload_settings",
    "load_env_file",
    "setup_logging",
]
