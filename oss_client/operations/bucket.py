"""
Bucket operations.

Listing buckets, reading bucket information and listing the objects of a
bucket. Every method builds a fresh RequestConfig, hands it to the shared
RequestExecutor and parses the XML result document.
"""

import xml.etree.ElementTree as ET
from typing import List, Optional

import structlog

from ..common import HttpMethod, QueryValue, RequestConfig
from ..core.executor import RequestExecutor
from ..models.bucket_model import (
    AccessControlList,
    Bucket,
    BucketInfo,
    BucketPolicy,
    ListBucketsOptions,
    ListBucketsResult,
    ListObjectsContent,
    ListObjectsQuery,
    ListObjectsResult,
    Owner,
    ServerSideEncryptionRule,
)
from ..utils.validators import OssValidator, snake_to_kebab
from ..utils.xml_utils import (
    expect_root,
    find_all,
    find_bool,
    find_datetime,
    find_int,
    find_text,
)

logger = structlog.get_logger(__name__)


def _parse_owner(node: Optional[ET.Element]) -> Optional[Owner]:
    if node is None:
        return None
    return Owner(id=find_text(node, "ID"), display_name=find_text(node, "DisplayName"))


def _parse_bucket(node: ET.Element) -> Bucket:
    return Bucket(
        name=find_text(node, "Name", ""),
        comment=find_text(node, "Comment"),
        creation_date=find_datetime(node, "CreationDate"),
        location=find_text(node, "Location"),
        region=find_text(node, "Region"),
        extranet_endpoint=find_text(node, "ExtranetEndpoint"),
        intranet_endpoint=find_text(node, "IntranetEndpoint"),
        storage_class=find_text(node, "StorageClass"),
        resource_group_id=find_text(node, "ResourceGroupId"),
    )


def parse_list_buckets(content: Optional[bytes]) -> ListBucketsResult:
    root = expect_root(content, "ListAllMyBucketsResult")
    return ListBucketsResult(
        prefix=find_text(root, "Prefix"),
        marker=find_text(root, "Marker"),
        max_keys=find_int(root, "MaxKeys"),
        is_truncated=find_bool(root, "IsTruncated", False),
        next_marker=find_text(root, "NextMarker"),
        owner=_parse_owner(root.find("Owner")),
        buckets=[_parse_bucket(b) for b in find_all(root, "Buckets/Bucket")],
    )


def parse_bucket_info(content: Optional[bytes]) -> BucketInfo:
    root = expect_root(content, "BucketInfo")
    node = root.find("Bucket")
    if node is None:
        node = ET.Element("Bucket")

    bucket = _parse_bucket(node)
    return BucketInfo(
        **bucket.model_dump(),
        access_monitor=find_text(node, "AccessMonitor"),
        block_public_access=find_bool(node, "BlockPublicAccess"),
        cross_region_replication=find_text(node, "CrossRegionReplication"),
        data_redundancy_type=find_text(node, "DataRedundancyType"),
        transfer_acceleration=find_text(node, "TransferAcceleration"),
        versioning=find_text(node, "Versioning"),
        owner=_parse_owner(node.find("Owner")),
        access_control_list=AccessControlList(grant=find_text(node, "AccessControlList/Grant")),
        server_side_encryption_rule=ServerSideEncryptionRule(
            sse_algorithm=find_text(node, "ServerSideEncryptionRule/SSEAlgorithm"),
            kms_master_key_id=find_text(node, "ServerSideEncryptionRule/KMSMasterKeyID"),
            kms_data_encryption=find_text(node, "ServerSideEncryptionRule/KMSDataEncryption"),
        ),
        bucket_policy=BucketPolicy(
            log_bucket=find_text(node, "BucketPolicy/LogBucket"),
            log_prefix=find_text(node, "BucketPolicy/LogPrefix"),
        ),
    )


def _parse_object_content(node: ET.Element) -> ListObjectsContent:
    return ListObjectsContent(
        key=find_text(node, "Key", ""),
        last_modified=find_datetime(node, "LastModified"),
        etag=find_text(node, "ETag"),
        type=find_text(node, "Type"),
        size=find_int(node, "Size", 0),
        storage_class=find_text(node, "StorageClass"),
        restore_info=find_text(node, "RestoreInfo"),
        owner=_parse_owner(node.find("Owner")),
    )


def parse_list_objects(content: Optional[bytes]) -> ListObjectsResult:
    root = expect_root(content, "ListBucketResult")
    return ListObjectsResult(
        name=find_text(root, "Name", ""),
        prefix=find_text(root, "Prefix"),
        max_keys=find_int(root, "MaxKeys"),
        delimiter=find_text(root, "Delimiter"),
        start_after=find_text(root, "StartAfter"),
        continuation_token=find_text(root, "ContinuationToken"),
        is_truncated=find_bool(root, "IsTruncated", False),
        next_continuation_token=find_text(root, "NextContinuationToken"),
        key_count=find_int(root, "KeyCount"),
        encoding_type=find_text(root, "EncodingType"),
        common_prefixes=[
            prefix
            for prefix in (find_text(n, "Prefix") for n in find_all(root, "CommonPrefixes"))
            if prefix is not None
        ],
        contents=[_parse_object_content(n) for n in find_all(root, "Contents")],
    )


class BucketOperations:
    """Bucket level API calls."""

    def __init__(self, executor: RequestExecutor):
        self.executor = executor

    async def list_buckets_page(self, options: Optional[ListBucketsOptions] = None) -> ListBucketsResult:
        """
        List one page of buckets.

        Args:
            options: Prefix, marker, page size and resource group filters

        Returns:
            ListBucketsResult with the paging cursor
        """
        options = options or ListBucketsOptions()

        query: dict[str, QueryValue] = {}
        if options.prefix:
            query["prefix"] = options.prefix
        if options.marker:
            query["marker"] = options.marker
        if options.max_keys:
            query["max-keys"] = options.max_keys

        headers = {}
        if options.resource_group_id:
            headers["x-oss-resource-group-id"] = options.resource_group_id

        request_config = RequestConfig(method=HttpMethod.GET, query=query, headers=headers)
        response = await self.executor.request(request_config, expect_content=True)
        return parse_list_buckets(response.data)

    async def list_buckets(self, options: Optional[ListBucketsOptions] = None) -> List[Bucket]:
        result = await self.list_buckets_page(options)
        return result.buckets

    async def list_all_buckets(self, options: Optional[ListBucketsOptions] = None) -> List[Bucket]:
        """Follow next_marker until the listing is no longer truncated."""
        options = options or ListBucketsOptions()
        buckets: List[Bucket] = []
        marker = options.marker
        pages = 0

        while True:
            page = await self.list_buckets_page(options.model_copy(update={"marker": marker}))
            buckets.extend(page.buckets)
            pages += 1

            if not (page.is_truncated and page.next_marker):
                break
            marker = page.next_marker

        logger.info("Listed all buckets", pages=pages, bucket_count=len(buckets))
        return buckets

    async def get_bucket_info(self, bucket_name: str) -> BucketInfo:
        bucket_name = OssValidator.validate_bucket_name(bucket_name)
        request_config = RequestConfig(
            method=HttpMethod.GET,
            bucket_name=bucket_name,
            query={"bucketInfo": None},
        )
        response = await self.executor.request(request_config, expect_content=True)
        return parse_bucket_info(response.data)

    async def list_objects(self, bucket_name: str, query: Optional[ListObjectsQuery] = None) -> ListObjectsResult:
        """
        List one page of objects with ListObjectsV2.

        Args:
            bucket_name: The bucket to list
            query: Prefix, delimiter and paging parameters

        Returns:
            ListObjectsResult; common prefixes and contents are always lists
        """
        bucket_name = OssValidator.validate_bucket_name(bucket_name)

        params: dict[str, QueryValue] = {"list-type": 2}
        if query is not None:
            for name, value in query.model_dump(exclude_none=True).items():
                params[snake_to_kebab(name)] = value

        request_config = RequestConfig(method=HttpMethod.GET, bucket_name=bucket_name, query=params)
        response = await self.executor.request(request_config, expect_content=True)
        return parse_list_objects(response.data)

    async def list_all_objects(
        self, bucket_name: str, query: Optional[ListObjectsQuery] = None
    ) -> List[ListObjectsContent]:
        """Follow next_continuation_token until the listing is no longer truncated."""
        query = query or ListObjectsQuery()
        contents: List[ListObjectsContent] = []
        token = query.continuation_token

        while True:
            page = await self.list_objects(bucket_name, query.model_copy(update={"continuation_token": token}))
            contents.extend(page.contents)

            if not (page.is_truncated and page.next_continuation_token):
                break
            token = page.next_continuation_token

        logger.info("Listed all objects", bucket_name=bucket_name, object_count=len(contents))
        return contents
