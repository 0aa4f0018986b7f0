"""
Operation facades.

Each facade maps option models onto requests for one area of the API and
shares a single RequestExecutor with the others.
"""

from .bucket import BucketOperations
from .object import ObjectOperations

__all__ = [
    "BucketOperations",
    "ObjectOperations",
]
