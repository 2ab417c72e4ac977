"""리포지토리 통합 테스트"""
from datetime import timedelta

import pytest

from market_import.core.entities.connection import Connection, ConnectionStatus, Marketplace
from market_import.core.entities.import_execution import ExecutionType, ImportExecution
from conftest import make_item


async def test_upsert_connection_is_keyed_by_user_and_marketplace(repository, clock):
    first = Connection(id="a", user_id="user-1", marketplace=Marketplace.AMAZON, connection_name="Amazon",
                       access_token="t1", status=ConnectionStatus.CONNECTED)
    await repository.upsert_connection(first)

    second = Connection(id="b", user_id="user-1", marketplace=Marketplace.AMAZON, connection_name="Amazon 2",
                        access_token="t2", status=ConnectionStatus.CONNECTED,
                        expires_at=clock.now() + timedelta(hours=1))
    saved = await repository.upsert_connection(second)

    assert saved.id == "a"
    assert saved.access_token == "t2"
    assert saved.expires_at == clock.now() + timedelta(hours=1)
    assert await repository.get_connection("b") is None


async def test_execution_round_trip(repository, clock):
    execution = ImportExecution(id="exec-1", connection_id="conn-1",
                                execution_type=ExecutionType.SELECTIVE_IMPORT, started_at=clock.now())
    execution.counters.found = 2
    execution.counters.processed = 1
    execution.counters.imported = 1
    execution.counters.add_skip("MLB2", "404")
    clock.advance(3)
    execution.complete(clock.now())

    await repository.add_execution(execution)

    [stored] = await repository.list_executions("conn-1")
    assert stored.to_dict() == execution.to_dict()
    assert stored.duration_seconds == pytest.approx(3.0)


async def test_sync_candidates_are_enabled_rows_oldest_first(repository, ml_adapter, make_connection, clock):
    connection = await make_connection()
    synced = {"MLB1": clock.now(), "MLB2": None, "MLB3": clock.now() - timedelta(days=1), "MLB4": None}
    for item_id, last_sync_at in synced.items():
        product = ml_adapter.normalize(make_item(item_id), connection, synced_at=clock.now())
        product.last_sync_at = last_sync_at
        product.auto_sync_enabled = item_id != "MLB4"
        await repository.upsert_product(product)

    candidates = await repository.list_sync_candidates("conn-1")
    assert [p.marketplace_product_id for p in candidates] == ["MLB2", "MLB3", "MLB1"]

    [first] = await repository.list_sync_candidates("conn-1", limit=1)
    assert first.marketplace_product_id == "MLB2"
    assert await repository.list_sync_candidates("conn-2") == []
