"""Marketplace Client — tests for connect, identity-driven resync, and notifications.

Tests cover:
    - connect(): authorization + initial full refresh
    - Identity A → B: exactly one holdings lookup for B, stale A refresh discarded
    - Holdings never shown under an identity they were not computed for
    - Listeners notified after resync; failed resync reported as event.error
    - identity_changes() async iterator unsubscribes when closed
"""

import asyncio

import pytest

from marketplace.core.errors import AuthorizationDeniedError, LedgerRpcError

from tests.services.fake_ledger import ALICE, BOB


async def _next(stream):
    return await anext(stream)


async def test_connect_runs_initial_refresh(client, ledger, agent):
    await client.connect()
    assert agent.authorization_requests == 1
    assert client.identity == ALICE
    assert len(client.catalog) == 3
    assert [i.name for i in client.owned] == ["Lamp", "Rug"]


async def test_denied_connect_reads_nothing(client, ledger, agent):
    agent.deny = True
    with pytest.raises(AuthorizationDeniedError):
        await client.connect()
    assert client.catalog == ()
    assert ledger.count_reads == 0


async def test_refresh_without_session_loads_catalog_only(client, ledger):
    await client.refresh()
    assert len(client.catalog) == 3
    assert client.owned == ()
    assert ledger.owner_lookups == []


async def test_identity_change_refreshes_owned_once_for_new_identity(connected, ledger, agent):
    ledger.owner_lookups.clear()
    await agent.emit(BOB)
    assert connected.identity == BOB
    assert ledger.owner_lookups == [BOB]
    assert [i.name for i in connected.owned] == ["Chair"]


async def test_identity_change_discards_stale_refresh(connected, ledger, agent):
    gate = asyncio.Event()
    ledger.owner_gates[ALICE] = gate
    ledger.owner_lookups.clear()

    stale = asyncio.create_task(connected.refresh())
    while ALICE not in ledger.owner_lookups:
        await asyncio.sleep(0)
    await agent.emit(BOB)

    gate.set()
    await stale
    assert connected.cache.owned_identity == BOB
    assert [i.name for i in connected.owned] == ["Chair"]


async def test_owned_hidden_until_new_identity_is_synced(connected, ledger, agent):
    gate = asyncio.Event()
    ledger.owner_gates[BOB] = gate

    change = asyncio.create_task(agent.emit(BOB))
    while BOB not in ledger.owner_lookups:
        await asyncio.sleep(0)
    assert connected.identity == BOB
    assert connected.owned == ()

    gate.set()
    await change
    assert [i.name for i in connected.owned] == ["Chair"]


async def test_listener_runs_after_resync(connected, agent):
    seen = []

    async def listener(event):
        seen.append((event.identity, event.synced, [i.name for i in connected.owned]))

    connected.subscribe(listener)
    await agent.emit(BOB)
    assert seen == [(BOB, True, ["Chair"])]


async def test_failed_resync_is_reported_not_hidden(connected, ledger, agent):
    events = []

    async def listener(event):
        events.append(event)

    connected.subscribe(listener)
    ledger.fail_reads = LedgerRpcError("node down")
    await agent.emit(BOB)

    (event,) = events
    assert event.identity == BOB
    assert not event.synced
    assert event.error.code == "LEDGER_RPC_ERROR"
    assert len(connected.catalog) == 3
    assert connected.owned == ()


async def test_identity_changes_stream(connected, agent):
    stream = connected.identity_changes()
    pending = asyncio.create_task(_next(stream))
    await asyncio.sleep(0)

    await agent.emit(BOB)
    event = await pending
    assert event.identity == BOB
    assert event.generation == 2

    await stream.aclose()
    assert len(connected._listeners) == 0


async def test_aclose_detaches_from_wallet(connected, agent):
    await connected.aclose()
    assert len(agent.handlers) == 0
    assert connected.identity is None
