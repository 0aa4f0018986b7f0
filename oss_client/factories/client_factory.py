"""
Factory for creating client instances.
"""

from typing import Optional

import aiohttp

from oss_client.client import OssClient
from oss_client.utils.env_config import OssSettings


def create_client(settings: OssSettings, session: Optional[aiohttp.ClientSession] = None) -> OssClient | None:
    """Create a client from settings, or None when connection details are incomplete."""
    if not settings.has_credentials():
        return None
    return OssClient.from_settings(settings, session=session)
