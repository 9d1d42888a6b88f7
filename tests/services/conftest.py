"""Service test fixtures — fake ledger, fake wallet, and wired clients.

Invariants:
    - Every test gets a fresh FakeLedger seeded with three items
    - `client` is unconnected; `connected` has authorized ALICE and run the initial refresh
    - confirmation timeout disabled unless a test sets it

Design Decisions:
    - MarketplaceClient built on fakes, not mocks: the sync logic runs for real
"""

import pytest

from marketplace.services.marketplace_client import MarketplaceClient

from tests.services.fake_ledger import FakeSigningAgent, seeded_ledger


@pytest.fixture
def ledger():
    return seeded_ledger()


@pytest.fixture
def agent():
    return FakeSigningAgent()


@pytest.fixture
def client(ledger, agent):
    return MarketplaceClient(
        ledger, agent, max_concurrent_reads=4, confirmation_timeout=None,
    )


@pytest.fixture
async def connected(client):
    await client.connect()
    return client
