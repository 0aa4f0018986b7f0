"""Option and result models of the OSS client."""

from .bucket_model import (
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
from .object_model import (
    DeleteObjectOptions,
    GetObjectMetaResult,
    GetObjectOptions,
    GetObjectResult,
    HeadObjectOptions,
    ObjectAcl,
    ObjectMeta,
    PutObjectOptions,
    PutObjectResult,
    ServerSideEncryption,
    SignatureOptions,
    StorageClass,
)

__all__ = [
    # Bucket options and results
    "ListBucketsOptions",
    "ListBucketsResult",
    "Bucket",
    "BucketInfo",
    "Owner",
    "AccessControlList",
    "ServerSideEncryptionRule",
    "BucketPolicy",
    "ListObjectsQuery",
    "ListObjectsResult",
    "ListObjectsContent",
    # Object options and results
    "PutObjectOptions",
    "PutObjectResult",
    "GetObjectOptions",
    "GetObjectResult",
    "HeadObjectOptions",
    "ObjectMeta",
    "GetObjectMetaResult",
    "DeleteObjectOptions",
    "SignatureOptions",
    # Enums
    "ObjectAcl",
    "StorageClass",
    "ServerSideEncryption",
]
