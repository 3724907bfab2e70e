"""Pytest configuration and shared fixtures."""

import pytest

from talks.services.tracker import TalkTracker
from talks.stores.auth import AnonymousAuth
from talks.stores.local_storage import MemoryLocalStorage
from talks.stores.memory_store import MemoryTreeStore

SCHEDULE_XML = """<?xml version="1.0" encoding="UTF-8"?>
<schedule>
  <conference><title>FOSDEM 2026</title></conference>
  <tracks>
    <track slug="main">Main Track</track>
    <track slug="rust">Rust</track>
  </tracks>
  <day date="2026-02-07">
    <room name="Janson">
      <event id="1">
        <slug>keynote</slug>
        <title>Welcome to FOSDEM</title>
        <track slug="main">Main Track</track>
        <date>2026-02-07</date>
        <start>09:30</start>
        <duration>00:25</duration>
        <room>Janson</room>
        <url>https://fosdem.org/2026/schedule/event/keynote/</url>
      </event>
      <event id="2">
        <slug>intro</slug>
        <title>Intro</title>
        <track slug="main">Main Track</track>
        <date>2026-02-07</date>
        <start>09:00</start>
        <room>Janson</room>
      </event>
    </room>
  </day>
  <day date="2026-02-08">
    <room name="H.1302">
      <event id="3">
        <slug>async-rust</slug>
        <title>Async Rust in Practice</title>
        <track slug="rust">Rust</track>
        <date>2026-02-08</date>
        <start>10:30</start>
        <room>H.1302</room>
      </event>
      <event id="4">
        <slug>borrowck</slug>
        <title>Borrow checker deep dive</title>
        <track slug="rust">Rust</track>
        <date>2026-02-07</date>
        <start>16:00</start>
        <room>H.1302</room>
      </event>
    </room>
  </day>
</schedule>
"""


@pytest.fixture
def schedule_xml() -> str:
    return SCHEDULE_XML


@pytest.fixture
def store() -> MemoryTreeStore:
    return MemoryTreeStore()


@pytest.fixture
def make_tracker(store):
    """Build trackers sharing one store, like several devices in one group."""

    def factory(**kwargs) -> TalkTracker:
        kwargs.setdefault("auth", AnonymousAuth())
        kwargs.setdefault("local_storage", MemoryLocalStorage())
        return TalkTracker(store=store, **kwargs)

    return factory


@pytest.fixture
def tracker(make_tracker) -> TalkTracker:
    return make_tracker()


@pytest.fixture
def joined(tracker, schedule_xml) -> TalkTracker:
    tracker.load_schedule(schedule_xml)
    tracker.register("Alice", "devgroup")
    return tracker


@pytest.fixture(autouse=True)
def clear_cache():
    from django.core.cache import cache
    cache.clear()
    yield
    cache.clear()
