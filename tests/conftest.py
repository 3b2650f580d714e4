from __future__ import annotations

import pytest

from songorders.services.approval_service import ApprovalService
from songorders.services.lyrics_pipeline import LyricsPipeline
from songorders.services.moderation import ContentModerator
from songorders.services.notifications import NotificationDispatcher
from songorders.services.order_transitions import OrderTransitionService
from songorders.services.recovery_sweep import RecoverySweep

from .fakes import (
    FakeEndpoints,
    FakeLogs,
    FakeLyricsRepo,
    FakeOrdersRepo,
    FakeProvider,
    FakeTracksRepo,
    FakeTransport,
    Store,
)


@pytest.fixture
def store():
    """Fresh in-memory tables per test"""
    return Store()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def dispatcher(store, transport):
    return NotificationDispatcher(
        endpoints=FakeEndpoints(store),
        logs=FakeLogs(store),
        transport=transport,
        timeout_s=1.0,
        base_url="https://app.test",
    )


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def make_pipeline(store, dispatcher):
    def _make(provider):
        return LyricsPipeline(
            orders=FakeOrdersRepo(store),
            lyrics=FakeLyricsRepo(store),
            provider=provider,
            moderator=ContentModerator(),
            notifier=dispatcher,
        )

    return _make


@pytest.fixture
def pipeline(make_pipeline, provider):
    return make_pipeline(provider)


@pytest.fixture
def approval(store, dispatcher):
    return ApprovalService(
        orders=FakeOrdersRepo(store),
        lyrics=FakeLyricsRepo(store),
        tracks=FakeTracksRepo(store),
        notifier=dispatcher,
    )


@pytest.fixture
def transitions(store, dispatcher):
    return OrderTransitionService(
        orders=FakeOrdersRepo(store),
        lyrics=FakeLyricsRepo(store),
        tracks=FakeTracksRepo(store),
        moderator=ContentModerator(),
        notifier=dispatcher,
    )


@pytest.fixture
def make_sweep(store):
    def _make(pipeline):
        return RecoverySweep(orders=FakeOrdersRepo(store), pipeline=pipeline, batch_limit=50)

    return _make
