import random

import pytest

from chroma.logic.catalog import load_catalog
from chroma.session.broadcast import BroadcastGateway
from chroma.session.registry import RoomRegistry

# Short enough that a full countdown finishes well inside a test.
FAST_TICK = 0.01


@pytest.fixture(scope="session")
def catalog():
    return load_catalog()


@pytest.fixture
def gateway():
    return BroadcastGateway()


@pytest.fixture
async def registry(catalog, gateway):
    registry = RoomRegistry(catalog, gateway, tick_interval=FAST_TICK, rng=random.Random(42))
    yield registry
    await registry.shutdown()
