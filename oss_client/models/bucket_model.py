"""
Pydantic models for bucket-level operations.

Option models are turned into query/header dicts by the bucket facade;
result models are filled from the service's XML documents.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


# Options


class ListBucketsOptions(BaseModel):
    """Query of a ListBuckets call."""

    prefix: Optional[str] = Field(default=None, description="Only return buckets whose name starts with this prefix")
    marker: Optional[str] = Field(default=None, description="Return buckets after this name in alphabetical order")
    max_keys: Optional[int] = Field(default=None, ge=1, le=1000, description="Page size, service default is 100")
    resource_group_id: Optional[str] = Field(default=None, description="Only return buckets of this resource group")


class ListObjectsQuery(BaseModel):
    """Query of a ListObjectsV2 call; field names map to kebab-case parameters."""

    prefix: Optional[str] = None
    delimiter: Optional[str] = None
    start_after: Optional[str] = None
    continuation_token: Optional[str] = None
    max_keys: Optional[int] = Field(default=None, ge=0, le=1000)
    encoding_type: Optional[str] = None
    fetch_owner: Optional[bool] = None


# Results


class Owner(BaseModel):
    id: Optional[str] = None
    display_name: Optional[str] = None


class Bucket(BaseModel):
    """Summary of one bucket as returned by ListBuckets."""

    name: str
    comment: Optional[str] = None
    creation_date: Optional[datetime] = None
    location: Optional[str] = None
    region: Optional[str] = None
    extranet_endpoint: Optional[str] = None
    intranet_endpoint: Optional[str] = None
    storage_class: Optional[str] = None
    resource_group_id: Optional[str] = None


class ListBucketsResult(BaseModel):
    """One page of a ListBuckets call."""

    prefix: Optional[str] = None
    marker: Optional[str] = None
    max_keys: Optional[int] = None
    is_truncated: bool = False
    next_marker: Optional[str] = None
    owner: Optional[Owner] = None
    buckets: List[Bucket] = Field(default_factory=list)


class AccessControlList(BaseModel):
    grant: Optional[str] = None


class ServerSideEncryptionRule(BaseModel):
    sse_algorithm: Optional[str] = None
    kms_master_key_id: Optional[str] = None
    kms_data_encryption: Optional[str] = None


class BucketPolicy(BaseModel):
    log_bucket: Optional[str] = None
    log_prefix: Optional[str] = None


class BucketInfo(Bucket):
    """Detailed bucket information returned by GetBucketInfo."""

    access_monitor: Optional[str] = None
    block_public_access: Optional[bool] = None
    cross_region_replication: Optional[str] = None
    data_redundancy_type: Optional[str] = None
    transfer_acceleration: Optional[str] = None
    versioning: Optional[str] = None
    owner: Optional[Owner] = None
    access_control_list: AccessControlList = Field(default_factory=AccessControlList)
    server_side_encryption_rule: ServerSideEncryptionRule = Field(default_factory=ServerSideEncryptionRule)
    bucket_policy: BucketPolicy = Field(default_factory=BucketPolicy)


class ListObjectsContent(BaseModel):
    """One object entry of a ListObjectsV2 page."""

    key: str
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None
    type: Optional[str] = None
    size: int = 0
    storage_class: Optional[str] = None
    restore_info: Optional[str] = None
    owner: Optional[Owner] = None


class ListObjectsResult(BaseModel):
    """One page of a ListObjectsV2 call."""

    name: str
    prefix: Optional[str] = None
    max_keys: Optional[int] = None
    delimiter: Optional[str] = None
    start_after: Optional[str] = None
    continuation_token: Optional[str] = None
    is_truncated: bool = False
    next_continuation_token: Optional[str] = None
    key_count: Optional[int] = None
    encoding_type: Optional[str] = None
    common_prefixes: List[str] = Field(default_factory=list)
    contents: List[ListObjectsContent] = Field(default_factory=list)
