"""
Object operations.

Uploads (bytes, async streams and local files), downloads, metadata
lookups, deletes and pre-signed URLs. Option models are mapped onto request
headers and query parameters here; the shared RequestExecutor does the
signing and dispatch.
"""

import asyncio
import stat
from pathlib import Path
from typing import Dict, List, Optional, Union
from urllib.parse import quote

import aiofiles
import aiofiles.os
import aiohttp
import structlog

from ..common import ClientError, HttpMethod, QueryValue, RequestBody, RequestConfig
from ..core.executor import RequestExecutor
from ..models.object_model import (
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
from ..utils.file_utils import FileUtils, iter_file, md5_base64
from ..utils.validators import OssValidator
from ..utils.xml_utils import escape_xml, expect_root, find_all, find_text

logger = structlog.get_logger(__name__)

# PutObjectOptions field -> request header
PUT_HEADER_MAPPING = {
    "content_type": "content-type",
    "content_length": "content-length",
    "content_md5": "content-md5",
    "cache_control": "cache-control",
    "content_disposition": "content-disposition",
    "content_encoding": "content-encoding",
    "expires": "expires",
    "forbid_overwrite": "x-oss-forbid-overwrite",
    "server_side_encryption": "x-oss-server-side-encryption",
    "server_side_data_encryption": "x-oss-server-side-data-encryption",
    "server_side_encryption_key_id": "x-oss-server-side-encryption-key-id",
    "object_acl": "x-oss-object-acl",
    "storage_class": "x-oss-storage-class",
}

CONDITIONAL_HEADER_MAPPING = {
    "if_modified_since": "if-modified-since",
    "if_unmodified_since": "if-unmodified-since",
    "if_match": "if-match",
    "if_none_match": "if-none-match",
}


def _header_value(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_put_headers(options: Optional[PutObjectOptions]) -> Dict[str, str]:
    """Map upload options onto request headers."""
    if options is None:
        return {}

    headers = {}
    for name, header in PUT_HEADER_MAPPING.items():
        value = getattr(options, name)
        # forbid_overwrite=False is the service default, so only True is sent
        if value is None or value is False:
            continue
        headers[header] = _header_value(value)

    for key, value in options.meta.items():
        headers[f"x-oss-meta-{key.lower()}"] = _header_value(value)

    if options.tagging:
        headers["x-oss-tagging"] = "&".join(
            f"{quote(str(k), safe='')}={quote(_header_value(v), safe='')}" for k, v in options.tagging.items()
        )

    return headers


def _conditional_headers(options) -> Dict[str, str]:
    headers = {}
    for name, header in CONDITIONAL_HEADER_MAPPING.items():
        value = getattr(options, name)
        if value:
            headers[header] = value
    return headers


async def _remove_partial_file(path: Path) -> None:
    """Delete what a failed download left behind."""
    try:
        await aiofiles.os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not remove partial download", file_path=str(path), error=str(e))


def build_delete_body(keys: List[str], quiet: bool = True) -> bytes:
    objects = "".join(f"<Object><Key>{escape_xml(key)}</Key></Object>" for key in keys)
    body = (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f"<Delete><Quiet>{'true' if quiet else 'false'}</Quiet>{objects}</Delete>"
    )
    return body.encode("utf-8")


class ObjectOperations:
    """Object level API calls."""

    def __init__(self, executor: RequestExecutor):
        self.executor = executor
        self.file_utils = FileUtils()

    async def create_folder(self, bucket_name: str, folder_path: str) -> None:
        """
        Create an empty folder object.

        Args:
            bucket_name: The bucket name
            folder_path: Folder path such as ``foo/bar/new_folder``; a leading
                ``/`` is dropped and a trailing ``/`` appended
        """
        bucket_name = OssValidator.validate_bucket_name(bucket_name)
        object_key = OssValidator.validate_folder_path(folder_path)

        request_config = RequestConfig(method=HttpMethod.PUT, bucket_name=bucket_name, object_key=object_key)
        await self.executor.request(request_config)
        logger.info("Created folder", bucket_name=bucket_name, object_key=object_key)

    async def put_stream(
        self,
        bucket_name: str,
        object_key: str,
        stream: RequestBody,
        options: Optional[PutObjectOptions] = None,
    ) -> PutObjectResult:
        """
        Upload a body as one object.

        The caller owns ``stream`` and is responsible for closing it. Content
        type, length and MD5 should be supplied through ``options``.
        """
        bucket_name = OssValidator.validate_bucket_name(bucket_name)
        object_key = OssValidator.validate_object_key(object_key)

        request_config = RequestConfig(
            method=HttpMethod.PUT,
            bucket_name=bucket_name,
            object_key=object_key,
            headers=build_put_headers(options),
            body=stream,
        )
        response = await self.executor.request(request_config)

        result = PutObjectResult.from_headers(response.headers)
        if result.content_md5 is None and options is not None:
            result.content_md5 = options.content_md5
        return result

    async def put_object(
        self,
        bucket_name: str,
        object_key: str,
        data: Union[bytes, str],
        options: Optional[PutObjectOptions] = None,
    ) -> PutObjectResult:
        """Upload an in-memory payload; Content-MD5 and length are computed from it."""
        if isinstance(data, str):
            data = data.encode("utf-8")

        defaults = {"content_md5": md5_base64(data), "content_length": len(data)}
        if options is not None:
            defaults.update(options.model_dump(exclude_none=True))

        return await self.put_stream(bucket_name, object_key, data, PutObjectOptions(**defaults))

    async def put_file(
        self,
        bucket_name: str,
        object_key: str,
        file_path: Union[str, Path],
        options: Optional[PutObjectOptions] = None,
    ) -> PutObjectResult:
        """
        Upload a local file.

        The file is read twice: once to compute its Content-MD5 and once as
        the request body. Content type is guessed from the extension unless
        the options carry one.

        Raises:
            ValidationError: Blank file path
            ClientError: File missing, unreadable, not a regular file or empty
        """
        path = OssValidator.validate_file_path(file_path)
        bucket_name = OssValidator.validate_bucket_name(bucket_name)
        object_key = OssValidator.validate_object_key(object_key)

        try:
            file_stat = await aiofiles.os.stat(path)
            if not stat.S_ISREG(file_stat.st_mode):
                raise ClientError(f"{path} is not a regular file", code="InvalidArgument")

            if file_stat.st_size == 0:
                raise ClientError(f"{path} length is 0, can not put to OSS as a regular file", code="InvalidArgument")

            content_md5, _ = await self.file_utils.calculate_md5(path)
        except FileNotFoundError as e:
            raise ClientError(f"can not find file {path}", code="FileNotFound") from e
        except IsADirectoryError as e:
            raise ClientError(f"{path} is not a regular file", code="InvalidArgument") from e
        except PermissionError as e:
            raise ClientError(f"can not read file {path}", code="PermissionDenied") from e
        except OSError as e:
            raise ClientError(f"can not read file {path}: {e}") from e

        defaults = {
            "content_md5": content_md5,
            "content_length": file_stat.st_size,
        }
        content_type = self.file_utils.get_content_type(path)
        if content_type:
            defaults["content_type"] = content_type
        if options is not None:
            defaults.update(options.model_dump(exclude_none=True))

        logger.info(
            "Uploading file",
            bucket_name=bucket_name,
            object_key=object_key,
            file_path=str(path),
            size=file_stat.st_size,
        )
        return await self.put_stream(bucket_name, object_key, iter_file(path), PutObjectOptions(**defaults))

    def _get_request(
        self, bucket_name: str, object_key: str, options: Optional[GetObjectOptions]
    ) -> RequestConfig:
        bucket_name = OssValidator.validate_bucket_name(bucket_name)
        object_key = OssValidator.validate_object_key(object_key)
        options = options or GetObjectOptions()

        headers = _conditional_headers(options)
        if options.range:
            headers["range"] = options.range
        if options.accept_encoding:
            headers["accept-encoding"] = options.accept_encoding

        query: Dict[str, QueryValue] = dict(options.override_query())
        if options.version_id:
            query["versionId"] = options.version_id
        if options.process:
            query["x-oss-process"] = options.process

        return RequestConfig(
            method=HttpMethod.GET,
            bucket_name=bucket_name,
            object_key=object_key,
            headers=headers,
            query=query,
        )

    async def get_object(
        self, bucket_name: str, object_key: str, options: Optional[GetObjectOptions] = None
    ) -> GetObjectResult:
        """Download an object into memory."""
        request_config = self._get_request(bucket_name, object_key, options)
        response = await self.executor.request(request_config, expect_content=True)
        return GetObjectResult(data=response.data, meta=ObjectMeta.from_headers(response.headers))

    async def get_object_to_file(
        self,
        bucket_name: str,
        object_key: str,
        file_path: Union[str, Path],
        options: Optional[GetObjectOptions] = None,
    ) -> ObjectMeta:
        """
        Download an object straight into a local file.

        The body is streamed chunk by chunk; parent directories are created
        as needed.
        """
        path = OssValidator.validate_file_path(file_path)
        request_config = self._get_request(bucket_name, object_key, options)

        async with self.executor.stream(request_config) as response:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                async with aiofiles.open(path, "wb") as f:
                    async for chunk in response.iter_chunks():
                        await f.write(chunk)
            # TimeoutError and ClientOSError are OSErrors; the stream classifies them
            except (asyncio.TimeoutError, aiohttp.ClientError):
                await _remove_partial_file(path)
                raise
            except OSError as e:
                await _remove_partial_file(path)
                raise ClientError(f"can not write file {path}: {e}") from e

            meta = ObjectMeta.from_headers(response.headers)

        logger.info(
            "Downloaded object",
            bucket_name=request_config.bucket_name,
            object_key=request_config.object_key,
            file_path=str(path),
        )
        return meta

    async def head_object(
        self, bucket_name: str, object_key: str, options: Optional[HeadObjectOptions] = None
    ) -> ObjectMeta:
        bucket_name = OssValidator.validate_bucket_name(bucket_name)
        object_key = OssValidator.validate_object_key(object_key)
        options = options or HeadObjectOptions()

        query: Dict[str, QueryValue] = {}
        if options.version_id:
            query["versionId"] = options.version_id

        request_config = RequestConfig(
            method=HttpMethod.HEAD,
            bucket_name=bucket_name,
            object_key=object_key,
            headers=_conditional_headers(options),
            query=query,
        )
        response = await self.executor.request(request_config)
        return ObjectMeta.from_headers(response.headers)

    async def get_object_meta(
        self, bucket_name: str, object_key: str, options: Optional[HeadObjectOptions] = None
    ) -> GetObjectMetaResult:
        """Fetch the basic metadata (size, etag, last modified) of an object."""
        bucket_name = OssValidator.validate_bucket_name(bucket_name)
        object_key = OssValidator.validate_object_key(object_key)

        query: Dict[str, QueryValue] = {"objectMeta": None}
        if options is not None and options.version_id:
            query["versionId"] = options.version_id

        request_config = RequestConfig(
            method=HttpMethod.HEAD,
            bucket_name=bucket_name,
            object_key=object_key,
            query=query,
        )
        response = await self.executor.request(request_config)
        return GetObjectMetaResult.from_headers(response.headers)

    async def object_exists(self, bucket_name: str, object_key: str) -> bool:
        """
        Check if an object exists.

        Returns:
            True if the object exists, False on a 404 response
        """
        try:
            await self.head_object(bucket_name, object_key)
            return True
        except ClientError as e:
            if e.status == 404:
                return False
            raise

    async def delete_object(
        self, bucket_name: str, object_key: str, options: Optional[DeleteObjectOptions] = None
    ) -> None:
        bucket_name = OssValidator.validate_bucket_name(bucket_name)
        object_key = OssValidator.validate_object_key(object_key)

        query: Dict[str, QueryValue] = {}
        if options is not None and options.version_id:
            query["versionId"] = options.version_id

        request_config = RequestConfig(
            method=HttpMethod.DELETE,
            bucket_name=bucket_name,
            object_key=object_key,
            query=query,
        )
        await self.executor.request(request_config)
        logger.info("Deleted object", bucket_name=bucket_name, object_key=object_key)

    async def delete_objects(self, bucket_name: str, object_keys: List[str], quiet: bool = True) -> List[str]:
        """
        Delete up to 1000 objects in one request.

        Args:
            bucket_name: The bucket name
            object_keys: Keys to delete
            quiet: Only report failures; the service then lists no deleted keys

        Returns:
            Keys the service reported as deleted
        """
        bucket_name = OssValidator.validate_bucket_name(bucket_name)
        keys = OssValidator.validate_delete_keys(object_keys)
        if not keys:
            return []

        body = build_delete_body(keys, quiet)
        request_config = RequestConfig(
            method=HttpMethod.POST,
            bucket_name=bucket_name,
            headers={
                "content-type": "application/xml",
                "content-md5": md5_base64(body),
                "content-length": str(len(body)),
            },
            query={"delete": None},
            body=body,
        )
        response = await self.executor.request(request_config)

        deleted: List[str] = []
        if response.data and response.data.strip():
            root = expect_root(response.data, "DeleteResult")
            deleted = [k for k in (find_text(n, "Key") for n in find_all(root, "Deleted")) if k is not None]

        logger.info("Deleted objects", bucket_name=bucket_name, requested=len(keys), deleted=len(deleted))
        return deleted

    def signature_url(
        self, bucket_name: str, object_key: str, options: Optional[SignatureOptions] = None
    ) -> str:
        """
        Generate a pre-signed URL for an object.

        Args:
            bucket_name: The bucket name
            object_key: The object key
            options: Method, expiry in seconds, processing and response overrides

        Returns:
            URL carrying the V4 signature in its query string
        """
        bucket_name = OssValidator.validate_bucket_name(bucket_name)
        object_key = OssValidator.validate_object_key(object_key)
        options = options or SignatureOptions()
        expires = OssValidator.validate_expires(options.expires)

        headers = {}
        if options.content_type:
            headers["content-type"] = options.content_type
        if options.content_md5:
            headers["content-md5"] = options.content_md5

        query: Dict[str, QueryValue] = dict(options.query)
        query.update(options.override_query())
        if options.version_id:
            query["versionId"] = options.version_id
        if options.process:
            query["x-oss-process"] = options.process

        request_config = RequestConfig(
            method=options.method,
            bucket_name=bucket_name,
            object_key=object_key,
            headers=headers,
            query=query,
        )
        return self.executor.presign(request_config, expires)
