"""
OSS client entry point.

``OssClient`` holds one immutable configuration, owns the HTTP session
(unless one is injected) and exposes every bucket and object operation.
"""

from pathlib import Path
from typing import Any, List, Optional, Union

import aiohttp
import pydantic
import structlog

from .common import ClientConfig, RequestBody, ValidationError
from .core.executor import RequestExecutor
from .models.bucket_model import (
    Bucket,
    BucketInfo,
    ListBucketsOptions,
    ListBucketsResult,
    ListObjectsContent,
    ListObjectsQuery,
    ListObjectsResult,
)
from .models.object_model import (
    DeleteObjectOptions,
    GetObjectMetaResult,
    GetObjectOptions,
    GetObjectResult,
    HeadObjectOptions,
    ObjectMeta,
    PutObjectOptions,
    PutObjectResult,
    SignatureOptions,
)
from .operations import BucketOperations, ObjectOperations
from .utils.env_config import OssSettings

logger = structlog.get_logger(__name__)


def build_client_config(**kwargs: Any) -> ClientConfig:
    """Validate raw settings into a ClientConfig, raising the client's ValidationError."""
    try:
        return ClientConfig(**kwargs)
    except pydantic.ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise ValidationError(f"invalid client config: {fields}", code="InvalidArgument") from e


class OssClient:
    """
    Async client for one OSS endpoint.

    Example:
        async with OssClient("cn-hangzhou", "oss-cn-hangzhou.aliyuncs.com", ak, sk) as client:
            buckets = await client.list_buckets()
    """

    def __init__(
        self,
        region: str,
        endpoint: str,
        access_key_id: str,
        access_key_secret: str,
        *,
        secure: bool = True,
        cname: bool = False,
        timeout_ms: Optional[int] = None,
        debug: bool = False,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        config = build_client_config(
            region=region,
            endpoint=endpoint,
            access_key_id=access_key_id,
            access_key_secret=access_key_secret,
            secure=secure,
            cname=cname,
            timeout_ms=timeout_ms,
            debug=debug,
        )
        self._init(config, session)

    def _init(self, config: ClientConfig, session: Optional[aiohttp.ClientSession]) -> None:
        self.config = config
        self.executor = RequestExecutor(config, session=session)
        self.buckets = BucketOperations(self.executor)
        self.objects = ObjectOperations(self.executor)
        logger.debug("Created OSS client", region=config.region, endpoint=config.endpoint, secure=config.secure)

    @classmethod
    def from_config(cls, config: ClientConfig, session: Optional[aiohttp.ClientSession] = None) -> "OssClient":
        client = cls.__new__(cls)
        client._init(config, session)
        return client

    @classmethod
    def from_settings(cls, settings: OssSettings, session: Optional[aiohttp.ClientSession] = None) -> "OssClient":
        return cls.from_config(build_client_config(**settings.get_client_config()), session=session)

    async def __aenter__(self) -> "OssClient":
        """Async context manager entry."""
        await self.executor.get_session()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Release the HTTP session; an injected session is left open."""
        await self.executor.close()

    # Bucket operations

    async def list_buckets(self, options: Optional[ListBucketsOptions] = None) -> List[Bucket]:
        return await self.buckets.list_buckets(options)

    async def list_buckets_page(self, options: Optional[ListBucketsOptions] = None) -> ListBucketsResult:
        return await self.buckets.list_buckets_page(options)

    async def list_all_buckets(self, options: Optional[ListBucketsOptions] = None) -> List[Bucket]:
        return await self.buckets.list_all_buckets(options)

    async def get_bucket_info(self, bucket_name: str) -> BucketInfo:
        return await self.buckets.get_bucket_info(bucket_name)

    async def list_objects(self, bucket_name: str, query: Optional[ListObjectsQuery] = None) -> ListObjectsResult:
        return await self.buckets.list_objects(bucket_name, query)

    async def list_all_objects(
        self, bucket_name: str, query: Optional[ListObjectsQuery] = None
    ) -> List[ListObjectsContent]:
        return await self.buckets.list_all_objects(bucket_name, query)

    # Object operations

    async def create_folder(self, bucket_name: str, folder_path: str) -> None:
        await self.objects.create_folder(bucket_name, folder_path)

    async def put_object(
        self,
        bucket_name: str,
        object_key: str,
        data: Union[bytes, str],
        options: Optional[PutObjectOptions] = None,
    ) -> PutObjectResult:
        return await self.objects.put_object(bucket_name, object_key, data, options)

    async def put_stream(
        self,
        bucket_name: str,
        object_key: str,
        stream: RequestBody,
        options: Optional[PutObjectOptions] = None,
    ) -> PutObjectResult:
        return await self.objects.put_stream(bucket_name, object_key, stream, options)

    async def put_file(
        self,
        bucket_name: str,
        object_key: str,
        file_path: Union[str, Path],
        options: Optional[PutObjectOptions] = None,
    ) -> PutObjectResult:
        return await self.objects.put_file(bucket_name, object_key, file_path, options)

    async def get_object(
        self, bucket_name: str, object_key: str, options: Optional[GetObjectOptions] = None
    ) -> GetObjectResult:
        return await self.objects.get_object(bucket_name, object_key, options)

    async def get_object_to_file(
        self,
        bucket_name: str,
        object_key: str,
        file_path: Union[str, Path],
        options: Optional[GetObjectOptions] = None,
    ) -> ObjectMeta:
        return await self.objects.get_object_to_file(bucket_name, object_key, file_path, options)

    async def head_object(
        self, bucket_name: str, object_key: str, options: Optional[HeadObjectOptions] = None
    ) -> ObjectMeta:
        return await self.objects.head_object(bucket_name, object_key, options)

    async def get_object_meta(
        self, bucket_name: str, object_key: str, options: Optional[HeadObjectOptions] = None
    ) -> GetObjectMetaResult:
        return await self.objects.get_object_meta(bucket_name, object_key, options)

    async def object_exists(self, bucket_name: str, object_key: str) -> bool:
        return await self.objects.object_exists(bucket_name, object_key)

    async def delete_object(
        self, bucket_name: str, object_key: str, options: Optional[DeleteObjectOptions] = None
    ) -> None:
        await self.objects.delete_object(bucket_name, object_key, options)

    async def delete_objects(self, bucket_name: str, object_keys: List[str], quiet: bool = True) -> List[str]:
        return await self.objects.delete_objects(bucket_name, object_keys, quiet)

    def signature_url(self, bucket_name: str, object_key: str, options: Optional[SignatureOptions] = None) -> str:
        return self.objects.signature_url(bucket_name, object_key, options)
