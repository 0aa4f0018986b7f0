"""
Argument validation for client operations.

Every check here runs before a request is built, so a bad bucket name, key
or file path fails fast without touching the network.
"""

import re
from pathlib import Path

from ..common import ValidationError


# Configuration and Constants


class ValidationConfig:
    """Limits enforced by the service."""

    MIN_BUCKET_NAME_LENGTH = 3
    MAX_BUCKET_NAME_LENGTH = 63
    MAX_OBJECT_KEY_BYTES = 1023

    MIN_SIGNED_URL_EXPIRES = 1
    MAX_SIGNED_URL_EXPIRES = 7 * 24 * 3600  # 7 days

    MAX_DELETE_OBJECTS = 1000

    BUCKET_NAME_PATTERN = r"^[a-z0-9][a-z0-9-]*[a-z0-9]$"


# Standardized Error Messages


class ErrorMessages:
    """Standardized error messages."""

    BUCKET_NAME_BLANK = "bucket name must NOT be blank"
    BUCKET_NAME_LENGTH = "bucket name must be between {min_length} and {max_length} characters"
    BUCKET_NAME_INVALID = "bucket name can only contain lowercase letters, numbers and hyphens, and must not start or end with a hyphen"

    OBJECT_KEY_BLANK = "object key must NOT be blank"
    OBJECT_KEY_TOO_LONG = "object key cannot exceed {max_bytes} bytes"

    FOLDER_PATH_BLANK = "invalid bucket name or folder path to create a new folder"
    FILE_PATH_BLANK = "file path must NOT be empty"

    EXPIRES_OUT_OF_RANGE = "expires must be between {min_value} and {max_value} seconds"
    TOO_MANY_KEYS = "at most {max_keys} objects can be deleted in one request"


def is_blank(s: str | None) -> bool:
    """True when ``s`` is None or contains only whitespace."""
    if s is None:
        return True
    return len(s.strip()) == 0


def snake_to_kebab(name: str) -> str:
    """Convert a field name to its query parameter form, e.g. start_after -> start-after."""
    return name.replace("_", "-")


class OssValidator:
    """Validates bucket names, object keys and other operation arguments."""

    @staticmethod
    def validate_bucket_name(bucket_name: str | None) -> str:
        if is_blank(bucket_name):
            raise ValidationError(ErrorMessages.BUCKET_NAME_BLANK, code="InvalidBucketName")

        name = bucket_name.strip()
        if not ValidationConfig.MIN_BUCKET_NAME_LENGTH <= len(name) <= ValidationConfig.MAX_BUCKET_NAME_LENGTH:
            raise ValidationError(
                ErrorMessages.BUCKET_NAME_LENGTH.format(
                    min_length=ValidationConfig.MIN_BUCKET_NAME_LENGTH,
                    max_length=ValidationConfig.MAX_BUCKET_NAME_LENGTH,
                ),
                code="InvalidBucketName",
                bucket_name=name,
            )

        if not re.match(ValidationConfig.BUCKET_NAME_PATTERN, name):
            raise ValidationError(ErrorMessages.BUCKET_NAME_INVALID, code="InvalidBucketName", bucket_name=name)

        return name

    @staticmethod
    def validate_object_key(object_key: str | None) -> str:
        """
        Validate an object key and strip its leading slash.

        Args:
            object_key: Key as given by the caller, e.g. ``/foo/bar.png``

        Returns:
            Key without the leading ``/``

        Raises:
            ValidationError: If the key is blank or too long
        """
        if is_blank(object_key):
            raise ValidationError(ErrorMessages.OBJECT_KEY_BLANK, code="InvalidObjectName")

        key = object_key[1:] if object_key.startswith("/") else object_key
        if is_blank(key):
            raise ValidationError(ErrorMessages.OBJECT_KEY_BLANK, code="InvalidObjectName")

        if len(key.encode("utf-8")) > ValidationConfig.MAX_OBJECT_KEY_BYTES:
            raise ValidationError(
                ErrorMessages.OBJECT_KEY_TOO_LONG.format(max_bytes=ValidationConfig.MAX_OBJECT_KEY_BYTES),
                code="InvalidObjectName",
            )

        return key

    @staticmethod
    def validate_folder_path(folder_path: str | None) -> str:
        """Normalise a folder path to ``foo/bar/`` form."""
        if is_blank(folder_path):
            raise ValidationError(ErrorMessages.FOLDER_PATH_BLANK, code="InvalidObjectName")

        key = folder_path[1:] if folder_path.startswith("/") else folder_path
        if not key.endswith("/"):
            key = f"{key}/"

        return OssValidator.validate_object_key(key)

    @staticmethod
    def validate_file_path(file_path: str | Path | None) -> Path:
        if file_path is None or is_blank(str(file_path)):
            raise ValidationError(ErrorMessages.FILE_PATH_BLANK, code="InvalidArgument")
        return Path(file_path)

    @staticmethod
    def validate_expires(expires: int) -> int:
        if not ValidationConfig.MIN_SIGNED_URL_EXPIRES <= expires <= ValidationConfig.MAX_SIGNED_URL_EXPIRES:
            raise ValidationError(
                ErrorMessages.EXPIRES_OUT_OF_RANGE.format(
                    min_value=ValidationConfig.MIN_SIGNED_URL_EXPIRES,
                    max_value=ValidationConfig.MAX_SIGNED_URL_EXPIRES,
                ),
                code="InvalidArgument",
            )
        return expires

    @staticmethod
    def validate_delete_keys(keys: list[str]) -> list[str]:
        if len(keys) > ValidationConfig.MAX_DELETE_OBJECTS:
            raise ValidationError(
                ErrorMessages.TOO_MANY_KEYS.format(max_keys=ValidationConfig.MAX_DELETE_OBJECTS),
                code="InvalidArgument",
            )
        return [OssValidator.validate_object_key(k) for k in keys]
