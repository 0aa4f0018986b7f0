"""
Request executor.

Owns one request/response cycle: assembles the base headers, signs the
request, dispatches it through aiohttp and classifies the response into a
result or a ClientError. No retries are attempted.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import aiohttp
import structlog
from yarl import URL

from ..common import (
    ClientConfig,
    ClientError,
    HttpMethod,
    NetworkError,
    ProtocolError,
    RawResponse,
    RequestConfig,
    RequestTimeoutError,
    ResponseResult,
    ServerError,
)
from .canonical import (
    UNSIGNED_PAYLOAD,
    additional_headers,
    build_canonical_request,
    canonical_query_string,
    request_uri,
    select_headers_to_sign,
)
from .signer import SIGNATURE_VERSION, Signer, http_date_string, oss_date_string

SDK_CLIENT = "oss-client-python/0.1.0"


def lower_headers(headers: Any) -> dict[str, str]:
    """Copy response headers into a dict keyed by lower-cased names."""
    return {str(k).lower(): str(v) for k, v in headers.items()}


class RequestExecutor:
    """Signs and dispatches requests for every operation facade."""

    def __init__(
        self,
        config: ClientConfig,
        session: aiohttp.ClientSession | None = None,
        logger: Any = None,
    ) -> None:
        self.config = config
        self.signer = Signer(config.access_key_id, config.access_key_secret, config.region)
        self._session = session
        self._owns_session = session is None
        self._logger = logger or structlog.get_logger(__name__)

    async def get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this executor created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
            self._logger.info("Closed HTTP session")
        if self._owns_session:
            self._session = None

    def domain_name(self, bucket_name: str | None = None) -> str:
        if bucket_name and not self.config.cname:
            return f"{bucket_name}.{self.config.endpoint}"
        return self.config.endpoint

    def build_headers(self, request_config: RequestConfig, moment: datetime) -> dict[str, str]:
        """Merge the base headers with the caller's; caller headers win."""
        headers = {
            "date": http_date_string(moment),
            "host": self.domain_name(request_config.bucket_name),
            "x-sdk-client": SDK_CLIENT,
            "x-oss-content-sha256": UNSIGNED_PAYLOAD,
            "x-oss-date": oss_date_string(moment),
        }
        headers.update({k.lower(): str(v) for k, v in request_config.headers.items()})

        if request_config.method == HttpMethod.PUT and request_config.body is None:
            headers["content-length"] = "0"

        return headers

    def sign_request(self, request_config: RequestConfig, moment: datetime | None = None) -> tuple[str, dict[str, str]]:
        """
        Build the signed URL and headers of a request.

        Args:
            request_config: The logical request
            moment: Signing time, defaults to now

        Returns:
            Tuple of (full URL, headers including Authorization)
        """
        moment = moment or datetime.now(timezone.utc)
        date_time = oss_date_string(moment)

        headers = self.build_headers(request_config, moment)
        headers_to_sign = select_headers_to_sign(headers)

        if self.config.debug:
            canonical_request = build_canonical_request(
                request_config.method.value,
                request_config.bucket_name,
                request_config.object_key,
                headers_to_sign,
                request_config.query,
            )
            self._logger.debug("Canonical request", canonical_request=canonical_request)
            self._logger.debug(
                "String to sign",
                string_to_sign=self.signer.string_to_sign(canonical_request, date_time),
            )

        headers["Authorization"] = self.signer.authorization(
            request_config.method.value,
            request_config.bucket_name,
            request_config.object_key,
            headers_to_sign,
            request_config.query,
            date_time,
        )

        url = f"{self.config.scheme}://{self.domain_name(request_config.bucket_name)}"
        url = f"{url}{request_uri(request_config.object_key)}"
        query = canonical_query_string(request_config.query)
        if query:
            url = f"{url}?{query}"

        return url, headers

    def presign(self, request_config: RequestConfig, expires: int, moment: datetime | None = None) -> str:
        """
        Build a pre-signed URL.

        The host is not part of the signed headers, so the host name of the
        returned URL may be swapped for a CDN or custom domain.
        """
        moment = moment or datetime.now(timezone.utc)
        date_time = oss_date_string(moment)

        headers_to_sign = select_headers_to_sign({k.lower(): v for k, v in request_config.headers.items()})
        headers_to_sign.pop("host", None)

        query = dict(request_config.query)
        query.update(
            {
                "x-oss-signature-version": SIGNATURE_VERSION,
                "x-oss-credential": self.signer.credential(date_time),
                "x-oss-date": date_time,
                "x-oss-expires": expires,
            }
        )
        additional = additional_headers(headers_to_sign)
        if additional:
            query["x-oss-additional-headers"] = additional

        canonical_request = build_canonical_request(
            request_config.method.value,
            request_config.bucket_name,
            request_config.object_key,
            headers_to_sign,
            query,
        )
        if self.config.debug:
            self._logger.debug("Canonical request", canonical_request=canonical_request)

        signature = self.signer.signature(canonical_request, date_time)
        url = f"{self.config.scheme}://{self.domain_name(request_config.bucket_name)}"
        url = f"{url}{request_uri(request_config.object_key)}"
        return f"{url}?{canonical_query_string(query)}&x-oss-signature={signature}"

    async def _send(self, request_config: RequestConfig) -> aiohttp.ClientResponse:
        url, headers = self.sign_request(request_config)

        if self.config.debug:
            self._logger.debug(
                "Sending request",
                method=request_config.method.value,
                url=url,
                headers={k: v for k, v in headers.items() if k != "Authorization"},
            )

        kwargs: dict[str, Any] = {
            "headers": headers,
            "skip_auto_headers": ("Content-Type",),
        }
        if request_config.body is not None:
            kwargs["data"] = request_config.body

        timeout = self.config.timeout_seconds
        if timeout is not None:
            kwargs["timeout"] = aiohttp.ClientTimeout(total=timeout)

        session = await self.get_session()
        try:
            response = await session.request(request_config.method.value, URL(url, encoded=True), **kwargs)
        except asyncio.TimeoutError as e:
            raise self._timeout_error(request_config) from e
        except aiohttp.ClientError as e:
            raise self._network_error(request_config, e) from e

        if self.config.debug:
            self._logger.debug("Received response", status=response.status, headers=lower_headers(response.headers))
        return response

    def _timeout_error(self, request_config: RequestConfig) -> RequestTimeoutError:
        return RequestTimeoutError(
            f"request timed out after {self.config.timeout_ms} ms",
            code="RequestTimeout",
            bucket_name=request_config.bucket_name,
        )

    def _network_error(self, request_config: RequestConfig, error: Exception) -> NetworkError:
        return NetworkError(
            f"request to {self.domain_name(request_config.bucket_name)} failed: {error}",
            code="NetworkError",
            bucket_name=request_config.bucket_name,
        )

    async def _read(self, response: aiohttp.ClientResponse, request_config: RequestConfig) -> bytes | None:
        try:
            return await response.read()
        except asyncio.TimeoutError as e:
            raise self._timeout_error(request_config) from e
        except aiohttp.ClientError as e:
            raise self._network_error(request_config, e) from e

    async def _check_status(self, response: aiohttp.ClientResponse, request_config: RequestConfig) -> None:
        status = response.status
        if status >= 500:
            raise ServerError(
                f"oss server response status: {status}",
                code="ServerError",
                bucket_name=request_config.bucket_name,
                status=status,
            )

        if 400 <= status < 500:
            content = await self._read(response, request_config)
            error = ClientError.from_response_content(content, status=status)
            self._logger.warning(
                "Request failed",
                method=request_config.method.value,
                bucket_name=request_config.bucket_name,
                object_key=request_config.object_key,
                **error.to_dict(),
            )
            raise error

    async def request(self, request_config: RequestConfig, expect_content: bool = False) -> ResponseResult:
        """
        Issue a request and buffer its body.

        Args:
            request_config: The logical request
            expect_content: Fail with ProtocolError when the body is absent

        Returns:
            ResponseResult with lower-cased header names

        Raises:
            ServerError: status >= 500
            ClientError: 4xx status, with the service's diagnostic fields
            ProtocolError: body expected but absent
            RequestTimeoutError: configured timeout fired
            NetworkError: transport failure
        """
        response = await self._send(request_config)
        try:
            await self._check_status(response, request_config)
            data = await self._read(response, request_config)
            headers = lower_headers(response.headers)
        finally:
            response.release()

        if self.config.debug and data:
            self._logger.debug("Response content", content=data[:4096].decode("utf-8", errors="replace"))

        if expect_content and data is None:
            raise ProtocolError("null response body", status=response.status)

        return ResponseResult(status=response.status, headers=headers, data=data)

    @asynccontextmanager
    async def stream(self, request_config: RequestConfig) -> AsyncIterator[RawResponse]:
        """
        Issue a request and hand the unread body to the caller.

        The status is classified before the body is released; the response
        is released when the context exits, whatever the outcome.
        """
        response = await self._send(request_config)
        try:
            await self._check_status(response, request_config)
            if response.content is None:
                raise ProtocolError("null response body", status=response.status)

            try:
                yield RawResponse(
                    status=response.status,
                    headers=lower_headers(response.headers),
                    content=response.content,
                )
            except asyncio.TimeoutError as e:
                raise self._timeout_error(request_config) from e
            except aiohttp.ClientError as e:
                raise self._network_error(request_config, e) from e
        finally:
            response.release()
