"""
OSS V4 (OSS4-HMAC-SHA256) request signer.

The signing key is derived from the secret through a chain of HMAC-SHA256
operations: secret -> date -> region -> service -> terminator. The final
key signs the string-to-sign, which binds the hashed canonical request to a
date/region/service scope.
"""

import hashlib
import hmac
from collections.abc import Mapping
from datetime import datetime, timezone

from ..common import QueryValue
from .canonical import additional_headers, build_canonical_request

SIGNATURE_VERSION = "OSS4-HMAC-SHA256"
SERVICE = "oss"
TERMINATOR = "aliyun_v4_request"
SECRET_PREFIX = "aliyun_v4"


def oss_date_string(moment: datetime | None = None) -> str:
    """
    Format a moment in the compact form used by the service.

    Returns:
        e.g. ``20231203T121212Z``
    """
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y%m%dT%H%M%SZ")


def http_date_string(moment: datetime | None = None) -> str:
    """RFC 7231 date, e.g. ``Sun, 03 Dec 2023 12:12:12 GMT``."""
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("%a, %d %b %Y %H:%M:%S GMT")


def sign(key: bytes, msg: str) -> bytes:
    """HMAC-SHA256 signing helper"""
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


def sha256_hex(data: str) -> str:
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


class Signer:
    """Computes V4 signatures for one set of credentials in one region."""

    def __init__(self, access_key_id: str, access_key_secret: str, region: str):
        self.access_key_id = access_key_id
        self._access_key_secret = access_key_secret
        self.region = region

    def scope(self, date_time: str) -> str:
        return f"{date_time[:8]}/{self.region}/{SERVICE}/{TERMINATOR}"

    def credential(self, date_time: str) -> str:
        return f"{self.access_key_id}/{self.scope(date_time)}"

    def signing_key(self, date: str) -> bytes:
        k_date = sign(f"{SECRET_PREFIX}{self._access_key_secret}".encode("utf-8"), date)
        k_region = sign(k_date, self.region)
        k_service = sign(k_region, SERVICE)
        return sign(k_service, TERMINATOR)

    def string_to_sign(self, canonical_request: str, date_time: str) -> str:
        return "\n".join(
            [
                SIGNATURE_VERSION,
                date_time,
                self.scope(date_time),
                sha256_hex(canonical_request),
            ]
        )

    def signature(self, canonical_request: str, date_time: str) -> str:
        string_to_sign = self.string_to_sign(canonical_request, date_time)
        return hmac.new(
            self.signing_key(date_time[:8]),
            string_to_sign.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

    def authorization(
        self,
        method: str,
        bucket_name: str | None,
        object_key: str | None,
        headers_to_sign: Mapping[str, str] | None,
        query: Mapping[str, QueryValue] | None,
        date_time: str,
    ) -> str:
        """Build the ``Authorization`` header value for a request."""
        canonical_request = build_canonical_request(method, bucket_name, object_key, headers_to_sign, query)
        return self.authorization_for(canonical_request, additional_headers(headers_to_sign), date_time)

    def authorization_for(self, canonical_request: str, additional: str, date_time: str) -> str:
        signature = self.signature(canonical_request, date_time)
        return (
            f"{SIGNATURE_VERSION} "
            f"Credential={self.credential(date_time)},"
            f"AdditionalHeaders={additional},"
            f"Signature={signature}"
        )
