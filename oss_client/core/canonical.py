"""
Canonical request construction for OSS V4 signatures.

The same functions build the strings the signature is computed over and
the path/query sent on the wire, so the two can never diverge.
"""

from collections.abc import Mapping
from urllib.parse import quote

from ..common import QueryValue

UNSIGNED_PAYLOAD = "UNSIGNED-PAYLOAD"

HEADER_PREFIX = "x-oss-"
SIGNED_STANDARD_HEADERS = frozenset({"content-type", "content-md5", "host"})


def uri_encode(s: str) -> str:
    """Percent-encode everything except the RFC 3986 unreserved characters."""
    return quote(s, safe="")


def encode_object_key(object_key: str) -> str:
    """Encode each ``/``-delimited segment of a key on its own."""
    return "/".join(uri_encode(segment) for segment in object_key.split("/"))


def canonical_uri(bucket_name: str | None = None, object_key: str | None = None) -> str:
    if bucket_name and object_key:
        return f"/{uri_encode(bucket_name)}/{encode_object_key(object_key)}"

    if bucket_name:
        return f"/{uri_encode(bucket_name)}/"

    # bucket-less and key-only requests both sign the root
    return "/"


def request_uri(object_key: str | None = None) -> str:
    """Path sent on the wire; the bucket lives in the host name."""
    if object_key:
        return f"/{encode_object_key(object_key)}"
    return "/"


def _query_value(value: QueryValue) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"

    s = str(value)
    if not s.strip():
        return None
    return s


def canonical_query_string(query: Mapping[str, QueryValue] | None = None) -> str:
    """
    Build the sorted query string.

    Entries are ordered by key with plain string comparison. A key whose
    value is None or blank is emitted bare, without ``=``.
    """
    if not query:
        return ""

    parts = []
    for key in sorted(query):
        value = _query_value(query[key])
        parts.append(key if value is None else f"{key}={uri_encode(value)}")
    return "&".join(parts)


def select_headers_to_sign(headers: Mapping[str, str]) -> dict[str, str]:
    """Keep content-type, content-md5, host and every x-oss-* header."""
    selected = {}
    for key, value in headers.items():
        name = key.lower()
        if name in SIGNED_STANDARD_HEADERS or name.startswith(HEADER_PREFIX):
            selected[key] = value
    return selected


def canonical_headers(headers_to_sign: Mapping[str, str] | None = None) -> str:
    if not headers_to_sign:
        return "\n"

    lines = sorted((key.lower(), str(value).strip()) for key, value in headers_to_sign.items())
    return "\n".join(f"{key}:{value}" for key, value in lines) + "\n"


def additional_headers(headers_to_sign: Mapping[str, str] | None = None) -> str:
    if not headers_to_sign:
        return ""
    return ";".join(sorted(key.lower() for key in headers_to_sign))


def build_canonical_request(
    method: str,
    bucket_name: str | None,
    object_key: str | None,
    headers_to_sign: Mapping[str, str] | None,
    query: Mapping[str, QueryValue] | None,
    hashed_payload: str = UNSIGNED_PAYLOAD,
) -> str:
    return "\n".join(
        [
            method,
            canonical_uri(bucket_name, object_key),
            canonical_query_string(query),
            canonical_headers(headers_to_sign),
            additional_headers(headers_to_sign),
            hashed_payload,
        ]
    )
