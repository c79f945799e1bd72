"""Pytest fixtures for mxcontent tests."""
import pytest

from mxcontent.core.api import HttpApiConfig

from .helpers import FakeScheduler


@pytest.fixture
def scheduler():
    """Manually driven scheduler."""
    return FakeScheduler()


@pytest.fixture
def config():
    """Default configuration for an unreachable homeserver."""
    return HttpApiConfig(base_url='https://matrix.example.org/', access_token='syt_secret')


@pytest.fixture
def upload_body():
    """Successful upload response body."""
    return {'content_uri': 'mxc://example.org/AQwafuaFswefuhsfAFAgsw'}
