import os

import pytest

from helpers import FakeProvider, FakeSourceFactory, ManualScheduler


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def source_factory():
    return FakeSourceFactory()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def clean_env():
    """Remove detector settings from the environment for the duration of a test."""
    keys = [k for k in os.environ if k.startswith("BLOW_") or k == "LOG_LEVEL"]
    saved = {k: os.environ.pop(k) for k in keys}
    yield
    for k in [k for k in os.environ if k.startswith("BLOW_") or k == "LOG_LEVEL"]:
        del os.environ[k]
    os.environ.update(saved)
