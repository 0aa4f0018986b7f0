import asyncio
from datetime import datetime, timezone
from unittest.mock import MagicMock
from urllib.parse import parse_qs, urlsplit

import aiohttp
import pytest

from conftest import FakeResponse, FakeSession
from oss_client.common import (
    ClientConfig,
    ClientError,
    HttpMethod,
    NetworkError,
    ProtocolError,
    RequestConfig,
    RequestTimeoutError,
    ServerError,
    ValidationError,
)
from oss_client.core.canonical import build_canonical_request
from oss_client.core.executor import RequestExecutor

MOMENT = datetime(2024, 1, 1, tzinfo=timezone.utc)

NO_SUCH_KEY = b"""<?xml version="1.0" encoding="UTF-8"?>
<Error>
  <Code>NoSuchKey</Code>
  <Message>The specified key does not exist.</Message>
  <RequestId>5C3D9175B6FC201293AD0000</RequestId>
  <HostId>my-bucket.oss-cn-hangzhou.aliyuncs.com</HostId>
  <Key>missing.txt</Key>
  <EC>0026-00000001</EC>
  <RecommendDoc>https://api.aliyun.com/troubleshoot?q=0026-00000001</RecommendDoc>
</Error>"""


def make_config(**overrides) -> ClientConfig:
    values = {
        "region": "cn-hangzhou",
        "endpoint": "oss-cn-hangzhou.aliyuncs.com",
        "access_key_id": "ak",
        "access_key_secret": "sk",
    }
    values.update(overrides)
    return ClientConfig(**values)


class TestBuildHeaders:
    """Test suite for base header assembly."""

    def test_base_headers(self, executor: RequestExecutor) -> None:
        headers = executor.build_headers(RequestConfig(method=HttpMethod.GET, bucket_name="b1"), MOMENT)

        assert headers["date"] == "Mon, 01 Jan 2024 00:00:00 GMT"
        assert headers["host"] == "b1.oss-cn-hangzhou.aliyuncs.com"
        assert headers["x-oss-content-sha256"] == "UNSIGNED-PAYLOAD"
        assert headers["x-oss-date"] == "20240101T000000Z"
        assert headers["x-sdk-client"]
        assert "content-length" not in headers

    def test_caller_headers_override(self, executor: RequestExecutor) -> None:
        request_config = RequestConfig(method=HttpMethod.GET, headers={"X-SDK-Client": "custom", "Range": "bytes=0-1"})

        headers = executor.build_headers(request_config, MOMENT)

        assert headers["x-sdk-client"] == "custom"
        assert headers["range"] == "bytes=0-1"

    def test_put_without_body_has_zero_length(self, executor: RequestExecutor) -> None:
        headers = executor.build_headers(RequestConfig(method=HttpMethod.PUT, bucket_name="b1", object_key="d/"), MOMENT)

        assert headers["content-length"] == "0"

    def test_put_with_body_keeps_length(self, executor: RequestExecutor) -> None:
        request_config = RequestConfig(
            method=HttpMethod.PUT, bucket_name="b1", object_key="k", headers={"content-length": "3"}, body=b"abc"
        )

        assert executor.build_headers(request_config, MOMENT)["content-length"] == "3"


class TestDomainName:
    """Test suite for host name resolution."""

    def test_virtual_hosted(self, executor: RequestExecutor) -> None:
        assert executor.domain_name("b1") == "b1.oss-cn-hangzhou.aliyuncs.com"

    def test_no_bucket(self, executor: RequestExecutor) -> None:
        assert executor.domain_name() == "oss-cn-hangzhou.aliyuncs.com"

    def test_cname(self) -> None:
        executor = RequestExecutor(make_config(endpoint="static.example.com", cname=True), session=FakeSession())
        assert executor.domain_name("b1") == "static.example.com"


class TestSignRequest:
    """Test suite for request signing."""

    def test_url_and_authorization(self, executor: RequestExecutor) -> None:
        request_config = RequestConfig(
            method=HttpMethod.GET, bucket_name="b1", object_key="a b.txt", query={"versionId": "v1"}
        )

        url, headers = executor.sign_request(request_config, MOMENT)

        assert url == "https://b1.oss-cn-hangzhou.aliyuncs.com/a%20b.txt?versionId=v1"
        assert headers["Authorization"].startswith(
            "OSS4-HMAC-SHA256 Credential=ak/20240101/cn-hangzhou/oss/aliyun_v4_request,"
            "AdditionalHeaders=host;x-oss-content-sha256;x-oss-date,Signature="
        )

    def test_golden_authorization(self, executor: RequestExecutor) -> None:
        _, headers = executor.sign_request(RequestConfig(method=HttpMethod.GET), MOMENT)

        assert headers["Authorization"] == (
            "OSS4-HMAC-SHA256 Credential=ak/20240101/cn-hangzhou/oss/aliyun_v4_request,"
            "AdditionalHeaders=host;x-oss-content-sha256;x-oss-date,"
            "Signature=b2fb06bec07d683c9ab3de72514d8279375c42fa1487e186f6e808e77b48b50e"
        )

    def test_signature_matches_canonical_request(self, executor: RequestExecutor) -> None:
        request_config = RequestConfig(method=HttpMethod.GET, bucket_name="b1", query={"bucketInfo": None})

        _, headers = executor.sign_request(request_config, MOMENT)

        canonical_request = build_canonical_request(
            "GET",
            "b1",
            None,
            {
                "host": "b1.oss-cn-hangzhou.aliyuncs.com",
                "x-oss-content-sha256": "UNSIGNED-PAYLOAD",
                "x-oss-date": "20240101T000000Z",
            },
            {"bucketInfo": None},
        )
        expected = executor.signer.signature(canonical_request, "20240101T000000Z")
        assert headers["Authorization"].endswith(f"Signature={expected}")

    def test_plain_http(self) -> None:
        executor = RequestExecutor(make_config(secure=False), session=FakeSession())

        url, _ = executor.sign_request(RequestConfig(method=HttpMethod.GET), MOMENT)

        assert url == "http://oss-cn-hangzhou.aliyuncs.com/"

    def test_unknown_method_rejected(self) -> None:
        with pytest.raises(ValidationError, match="unsupported http method"):
            RequestConfig(method="PATCH")

    def test_lower_case_method_accepted(self) -> None:
        assert RequestConfig(method="get").method == HttpMethod.GET


class TestRequest:
    """Test suite for dispatch and response classification."""

    @pytest.mark.asyncio
    async def test_success(self, executor: RequestExecutor, fake_session: FakeSession) -> None:
        response = FakeResponse(200, {"ETag": '"abc"', "X-Oss-Request-Id": "r1"}, b"hello")
        fake_session.queue(response)

        result = await executor.request(RequestConfig(method=HttpMethod.GET, bucket_name="b1", object_key="k"))

        assert result.status == 200
        assert result.data == b"hello"
        assert result.content == "hello"
        assert result.headers == {"etag": '"abc"', "x-oss-request-id": "r1"}
        assert response.released

        call = fake_session.calls[0]
        assert call["method"] == "GET"
        assert call["url"] == "https://b1.oss-cn-hangzhou.aliyuncs.com/k"
        assert "Authorization" in call["headers"]
        assert "timeout" not in call

    @pytest.mark.asyncio
    async def test_server_error(self, executor: RequestExecutor, fake_session: FakeSession) -> None:
        response = FakeResponse(503, body=b"unavailable")
        fake_session.queue(response)

        with pytest.raises(ServerError) as exc_info:
            await executor.request(RequestConfig(method=HttpMethod.GET))

        assert exc_info.value.status == 503
        assert response.released

    @pytest.mark.asyncio
    async def test_client_error_from_xml(self, executor: RequestExecutor, fake_session: FakeSession) -> None:
        fake_session.queue(FakeResponse(404, body=NO_SUCH_KEY))

        with pytest.raises(ClientError) as exc_info:
            await executor.request(RequestConfig(method=HttpMethod.GET, bucket_name="my-bucket", object_key="x"))

        error = exc_info.value
        assert error.code == "NoSuchKey"
        assert error.message == "The specified key does not exist."
        assert error.request_id == "5C3D9175B6FC201293AD0000"
        assert error.host_id == "my-bucket.oss-cn-hangzhou.aliyuncs.com"
        assert error.ec == "0026-00000001"
        assert error.recommend_doc == "https://api.aliyun.com/troubleshoot?q=0026-00000001"
        assert error.status == 404
        assert str(error) == "[NoSuchKey] The specified key does not exist."

    @pytest.mark.asyncio
    async def test_client_error_without_body(self, executor: RequestExecutor, fake_session: FakeSession) -> None:
        fake_session.queue(FakeResponse(404, body=b""))

        with pytest.raises(ClientError, match="unknown error") as exc_info:
            await executor.request(RequestConfig(method=HttpMethod.HEAD, bucket_name="b1", object_key="x"))

        assert exc_info.value.status == 404
        assert exc_info.value.code is None

    @pytest.mark.asyncio
    async def test_client_error_with_garbage_body(self, executor: RequestExecutor, fake_session: FakeSession) -> None:
        fake_session.queue(FakeResponse(403, body=b"<html>denied"))

        with pytest.raises(ClientError, match="unknown error") as exc_info:
            await executor.request(RequestConfig(method=HttpMethod.GET))

        assert exc_info.value.status == 403

    @pytest.mark.asyncio
    async def test_null_body_when_content_expected(self, executor: RequestExecutor, fake_session: FakeSession) -> None:
        fake_session.queue(FakeResponse(200, body=None))

        with pytest.raises(ProtocolError, match="null response body"):
            await executor.request(RequestConfig(method=HttpMethod.GET), expect_content=True)

    @pytest.mark.asyncio
    async def test_null_body_allowed_otherwise(self, executor: RequestExecutor, fake_session: FakeSession) -> None:
        fake_session.queue(FakeResponse(200, body=None))

        result = await executor.request(RequestConfig(method=HttpMethod.DELETE, bucket_name="b1", object_key="k"))

        assert result.data is None

    @pytest.mark.asyncio
    async def test_timeout(self, fake_session: FakeSession) -> None:
        executor = RequestExecutor(make_config(timeout_ms=1500), session=fake_session)
        fake_session.queue(asyncio.TimeoutError())

        with pytest.raises(RequestTimeoutError, match="1500 ms"):
            await executor.request(RequestConfig(method=HttpMethod.GET))

        timeout = fake_session.calls[0]["timeout"]
        assert isinstance(timeout, aiohttp.ClientTimeout)
        assert timeout.total == 1.5

    @pytest.mark.asyncio
    async def test_invalid_timeout_is_ignored(self, fake_session: FakeSession) -> None:
        executor = RequestExecutor(make_config(timeout_ms=0), session=fake_session)
        fake_session.queue(FakeResponse(200))

        await executor.request(RequestConfig(method=HttpMethod.GET))

        assert "timeout" not in fake_session.calls[0]

    @pytest.mark.asyncio
    async def test_network_error(self, executor: RequestExecutor, fake_session: FakeSession) -> None:
        cause = aiohttp.ClientConnectionError("connection refused")
        fake_session.queue(cause)

        with pytest.raises(NetworkError) as exc_info:
            await executor.request(RequestConfig(method=HttpMethod.GET, bucket_name="b1"))

        assert exc_info.value.__cause__ is cause
        assert "b1.oss-cn-hangzhou.aliyuncs.com" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_no_retry(self, executor: RequestExecutor, fake_session: FakeSession) -> None:
        fake_session.queue(FakeResponse(500), FakeResponse(200))

        with pytest.raises(ServerError):
            await executor.request(RequestConfig(method=HttpMethod.GET))

        assert len(fake_session.calls) == 1

    @pytest.mark.asyncio
    async def test_debug_traces(self, fake_session: FakeSession) -> None:
        logger = MagicMock()
        executor = RequestExecutor(make_config(debug=True), session=fake_session, logger=logger)
        fake_session.queue(FakeResponse(200, body=b"ok"))

        await executor.request(RequestConfig(method=HttpMethod.GET))

        events = [c.args[0] for c in logger.debug.call_args_list]
        assert "Canonical request" in events
        assert "String to sign" in events
        for c in logger.debug.call_args_list:
            assert "sk" not in c.kwargs.values()
            assert "Authorization" not in c.kwargs.get("headers", {})

    @pytest.mark.asyncio
    async def test_no_traces_without_debug(self, fake_session: FakeSession) -> None:
        logger = MagicMock()
        executor = RequestExecutor(make_config(), session=fake_session, logger=logger)
        fake_session.queue(FakeResponse(200, body=b"ok"))

        await executor.request(RequestConfig(method=HttpMethod.GET))

        logger.debug.assert_not_called()


class TestStream:
    """Test suite for the streaming variant."""

    @pytest.mark.asyncio
    async def test_stream_chunks(self, executor: RequestExecutor, fake_session: FakeSession) -> None:
        response = FakeResponse(200, {"Content-Length": "5"}, b"hello")
        fake_session.queue(response)

        async with executor.stream(RequestConfig(method=HttpMethod.GET, bucket_name="b1", object_key="k")) as raw:
            assert raw.headers["content-length"] == "5"
            chunks = [chunk async for chunk in raw.iter_chunks(chunk_size=2)]

        assert chunks == [b"he", b"ll", b"o"]
        assert response.released

    @pytest.mark.asyncio
    async def test_stream_error_status(self, executor: RequestExecutor, fake_session: FakeSession) -> None:
        response = FakeResponse(404, body=NO_SUCH_KEY)
        fake_session.queue(response)

        with pytest.raises(ClientError, match="does not exist"):
            async with executor.stream(RequestConfig(method=HttpMethod.GET, bucket_name="b1", object_key="k")):
                pytest.fail("body must not be handed out")

        assert response.released

    @pytest.mark.asyncio
    async def test_stream_released_when_caller_fails(
        self, executor: RequestExecutor, fake_session: FakeSession
    ) -> None:
        response = FakeResponse(200, body=b"hello")
        fake_session.queue(response)

        with pytest.raises(RuntimeError):
            async with executor.stream(RequestConfig(method=HttpMethod.GET)):
                raise RuntimeError("consumer failed")

        assert response.released


class TestPresign:
    """Test suite for pre-signed URLs."""

    def test_presign_url(self, executor: RequestExecutor) -> None:
        request_config = RequestConfig(method=HttpMethod.GET, bucket_name="b1", object_key="dir/a b.png")

        url = executor.presign(request_config, 600, MOMENT)

        parts = urlsplit(url)
        query = parse_qs(parts.query)
        assert parts.scheme == "https"
        assert parts.netloc == "b1.oss-cn-hangzhou.aliyuncs.com"
        assert parts.path == "/dir/a%20b.png"
        assert query["x-oss-signature-version"] == ["OSS4-HMAC-SHA256"]
        assert query["x-oss-credential"] == ["ak/20240101/cn-hangzhou/oss/aliyun_v4_request"]
        assert query["x-oss-date"] == ["20240101T000000Z"]
        assert query["x-oss-expires"] == ["600"]
        assert "x-oss-additional-headers" not in query
        assert url.split("&")[-1].startswith("x-oss-signature=")

    def test_presign_signature(self, executor: RequestExecutor) -> None:
        request_config = RequestConfig(
            method=HttpMethod.GET, bucket_name="b1", object_key="k", query={"x-oss-process": "image/resize,w_100"}
        )

        url = executor.presign(request_config, 3600, MOMENT)

        canonical_request = build_canonical_request(
            "GET",
            "b1",
            "k",
            {},
            {
                "x-oss-process": "image/resize,w_100",
                "x-oss-signature-version": "OSS4-HMAC-SHA256",
                "x-oss-credential": "ak/20240101/cn-hangzhou/oss/aliyun_v4_request",
                "x-oss-date": "20240101T000000Z",
                "x-oss-expires": 3600,
            },
        )
        expected = executor.signer.signature(canonical_request, "20240101T000000Z")
        assert url.endswith(f"&x-oss-signature={expected}")
        assert "x-oss-process=image%2Fresize%2Cw_100" in url

    def test_presign_with_signed_headers(self, executor: RequestExecutor) -> None:
        request_config = RequestConfig(
            method=HttpMethod.PUT, bucket_name="b1", object_key="k", headers={"Content-Type": "image/png"}
        )

        url = executor.presign(request_config, 60, MOMENT)

        assert "x-oss-additional-headers=content-type" in url


class TestSessionLifecycle:
    """Test suite for session ownership."""

    @pytest.mark.asyncio
    async def test_injected_session_is_not_closed(self, executor: RequestExecutor, fake_session: FakeSession) -> None:
        await executor.close()

        assert not fake_session.closed

    @pytest.mark.asyncio
    async def test_owned_session_is_closed(self, client_config: ClientConfig) -> None:
        executor = RequestExecutor(client_config)
        session = await executor.get_session()

        await executor.close()

        assert session.closed
