import tempfile
from collections.abc import AsyncIterator, Generator
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest
import structlog

from oss_client.client import OssClient
from oss_client.common import ClientConfig
from oss_client.core.executor import RequestExecutor
from oss_client.utils.env_config import OssSettings


class FakeContent:
    """Stand-in for aiohttp's StreamReader."""

    def __init__(self, data: bytes):
        self._data = data

    async def iter_chunked(self, n: int) -> AsyncIterator[bytes]:
        for i in range(0, len(self._data), n):
            yield self._data[i : i + n]


class FakeResponse:
    def __init__(self, status: int = 200, headers: dict[str, str] | None = None, body: bytes | None = b""):
        self.status = status
        self.headers = headers or {}
        self._body = body
        self.content = FakeContent(body) if body is not None else None
        self.released = False

    async def read(self) -> bytes | None:
        return self._body

    def release(self) -> None:
        self.released = True


class FakeSession:
    """Records every request and answers from a queue of responses or exceptions."""

    def __init__(self, *responses: Any):
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    def queue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    async def request(self, method: str, url: Any, **kwargs: Any) -> Any:
        data = kwargs.get("data")
        if data is not None and not isinstance(data, bytes):
            chunks = [chunk async for chunk in data]
            data = b"".join(chunks)

        self.calls.append({"method": method, "url": str(url), "body": data, **kwargs})

        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def temp_dir() -> Generator[Path]:
    with tempfile.TemporaryDirectory() as tmpdirname:
        yield Path(tmpdirname)


@pytest.fixture
def client_config() -> ClientConfig:
    return ClientConfig(
        region="cn-hangzhou",
        endpoint="oss-cn-hangzhou.aliyuncs.com",
        access_key_id="ak",
        access_key_secret="sk",
    )


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def executor(client_config: ClientConfig, fake_session: FakeSession) -> RequestExecutor:
    return RequestExecutor(client_config, session=fake_session)


@pytest.fixture
def client(client_config: ClientConfig, fake_session: FakeSession) -> OssClient:
    return OssClient.from_config(client_config, session=fake_session)


@pytest.fixture
def mock_settings() -> MagicMock:
    settings = MagicMock(spec=OssSettings)
    settings.has_credentials.return_value = True
    settings.get_client_config.return_value = {
        "region": "cn-hangzhou",
        "endpoint": "oss-cn-hangzhou.aliyuncs.com",
        "access_key_id": "ak",
        "access_key_secret": "sk",
        "secure": True,
        "cname": False,
        "timeout_ms": None,
        "debug": False,
    }
    return settings


@pytest.fixture(autouse=True)
def mock_logger(mocker: Any) -> MagicMock:
    return mocker.patch.object(structlog, "get_logger", return_value=MagicMock())
