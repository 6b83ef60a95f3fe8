"""Pytest configuration and shared fixtures."""

import pytest

from shopzap.detect.history import ProductHistoryStore
from shopzap.notify.dispatcher import NotificationDispatcher
from shopzap.worker.tasks import MonitorService
from tests.fakes import FakeRenderer, MemoryStore, RecordingNotifier


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def dispatcher(notifier):
    return NotificationDispatcher(notifier, max_queue_size=10)


@pytest.fixture
def service(renderer, store, dispatcher):
    return MonitorService(renderer, ProductHistoryStore(limit=5), store, dispatcher)
