"""Shared fixtures: a recording device channel and a scripted Harvest client."""

from __future__ import annotations

import pytest

from harvest_deck.coordinator import ReconciliationCoordinator

from .factories import TODAY, FakeChannel, FakeHarvestClient


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def harvest() -> FakeHarvestClient:
    return FakeHarvestClient()


@pytest.fixture
def make_coordinator(channel: FakeChannel, harvest: FakeHarvestClient):
    """Build a coordinator inside the running event loop of a test."""

    def _make(**kwargs) -> ReconciliationCoordinator:
        kwargs.setdefault("today", lambda: TODAY)
        return ReconciliationCoordinator(harvest, channel, **kwargs)

    return _make
