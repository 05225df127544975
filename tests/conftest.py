"""
pytest configuration and fixtures for radiko-session tests

ネットワークの代わりに偽のHTTP送信、ディスクの代わりにメモリ保存を使う。
"""

import os
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

os.environ.setdefault("RADIKO_SESSION_TEST_MODE", "true")

from radiko_session.api_client import RadikoApiClient
from radiko_session.state import StateStore
from radiko_session.storage import MemoryKeyValueStore, PlaybackStorage
from tests.utils.test_environment import (
    BASE_URL, FakeTransport, FixedClock, SleepRecorder, TemporaryTestEnvironment, build_client,
)


@pytest.fixture
def transport():
    """偽のHTTP送信fixture"""
    return FakeTransport()


@pytest.fixture
def api(transport):
    return RadikoApiClient(BASE_URL, transport)


@pytest.fixture
def kv_store():
    return MemoryKeyValueStore()


@pytest.fixture
def storage(kv_store):
    return PlaybackStorage(kv_store)


@pytest.fixture
def store():
    return StateStore()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def sleep():
    return SleepRecorder()


@pytest.fixture
def client(transport, storage, clock, sleep):
    """偽の送信・メモリ保存・固定時計を使うクライアントfixture"""
    return build_client(transport, storage, clock, sleep)


@pytest.fixture
def temp_env():
    """一時ファイル環境fixture"""
    with TemporaryTestEnvironment() as env:
        yield env
