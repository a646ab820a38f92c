import pytest

from news_ingest.events import MemoryEventSink


@pytest.fixture
def events() -> MemoryEventSink:
    return MemoryEventSink()
