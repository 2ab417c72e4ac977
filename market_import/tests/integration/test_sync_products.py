"""상품 재동기화 통합 테스트"""
from datetime import timedelta
from decimal import Decimal

import pytest

from market_import.core.entities.import_execution import ExecutionStatus, ExecutionType
from market_import.core.entities.product import MarkupPolicy
from market_import.core.exceptions import TokenExpiredError, ValidationError
from market_import.core.usecases.sync_products import SyncProductsUseCase, SyncType
from conftest import make_item


@pytest.fixture
def usecase(registry, repository, clock):
    return SyncProductsUseCase(registry, repository, clock)


@pytest.fixture
def seed(repository, ml_adapter, clock, fake_ml):
    """마켓 응답과 같은 내용으로 상품 행 생성"""

    async def _seed(connection, item_id, markup=None, auto_sync=True, **item):
        raw = make_item(item_id, **item)
        fake_ml.items[item_id] = dict(raw)
        product = ml_adapter.normalize(raw, connection, markup or MarkupPolicy(), clock.now())
        product.auto_sync_enabled = auto_sync
        return await repository.upsert_product(product)

    return _seed


class TestSyncScopes:
    """동기화 범위별 반영"""

    async def test_price_sync_keeps_markup_and_other_fields(self, usecase, make_connection, seed, fake_ml, repository):
        connection = await make_connection()
        await seed(connection, "MLB1", markup=MarkupPolicy.of("flat", 1), price=100)
        fake_ml.items["MLB1"] = make_item("MLB1", price=200, title="Novo título", available_quantity=0)

        report = await usecase.execute("conn-1", "prices")

        [row] = await repository.list_products("conn-1")
        assert row.original_price == Decimal("200")
        assert row.price == Decimal("201.00")
        assert row.markup == MarkupPolicy.of("flat", 1)
        assert row.title == "Produto MLB1"
        assert row.available_quantity == 5
        assert report.updated_count == 1
        assert report.execution.execution_type == ExecutionType.SYNC_PRICES

    async def test_inventory_sync_updates_stock_only(self, usecase, make_connection, seed, fake_ml, repository):
        connection = await make_connection()
        await seed(connection, "MLB1")
        fake_ml.items["MLB1"] = make_item("MLB1", price=999, available_quantity=1, sold_quantity=7)

        await usecase.execute("conn-1", "inventory")

        [row] = await repository.list_products("conn-1")
        assert (row.available_quantity, row.sold_quantity) == (1, 7)
        assert row.original_price == Decimal("100")

    async def test_details_sync_updates_title_condition_images(self, usecase, make_connection, seed, fake_ml, repository):
        connection = await make_connection()
        await seed(connection, "MLB1")
        fake_ml.items["MLB1"] = make_item(
            "MLB1", title="Outro", condition="used", pictures=[{"secure_url": "https://img/novo.jpg"}]
        )

        report = await usecase.execute("conn-1", "details")

        [row] = await repository.list_products("conn-1")
        assert (row.title, row.condition, row.images) == ("Outro", "used", ["https://img/novo.jpg"])
        assert report.updated_count == 1


class TestSyncRun:
    """실행 단위 동작"""

    async def test_unchanged_rows_are_not_counted_as_updated(
        self, usecase, make_connection, seed, fake_ml, repository, clock
    ):
        connection = await make_connection()
        await seed(connection, "MLB1")
        await seed(connection, "MLB2")
        fake_ml.items["MLB2"] = make_item("MLB2", available_quantity=9)

        report = await usecase.execute("conn-1")

        execution = report.execution
        assert execution.execution_type == ExecutionType.SYNC_ALL
        assert execution.status == ExecutionStatus.COMPLETED
        assert (execution.counters.found, execution.counters.processed, execution.counters.updated) == (2, 2, 1)
        assert [p.marketplace_product_id for p in report.updated] == ["MLB2"]
        assert clock.sleeps == [0.1]

        [stored] = await repository.list_executions("conn-1")
        assert stored.to_dict()["products_updated"] == 1
        for row in await repository.list_products("conn-1"):
            assert row.last_sync_at >= clock.now() - timedelta(seconds=0.1)

    async def test_disabled_rows_are_skipped(self, usecase, make_connection, seed, fake_ml):
        connection = await make_connection()
        await seed(connection, "MLB1")
        await seed(connection, "MLB2", auto_sync=False)

        report = await usecase.execute("conn-1", "all")

        assert report.execution.counters.found == 1
        assert [r.url.path for r in fake_ml.market_calls] == ["/items/MLB1"]

    async def test_fetch_failures_are_skipped(self, usecase, make_connection, seed, fake_ml):
        connection = await make_connection()
        await seed(connection, "MLB1")
        del fake_ml.items["MLB1"]

        report = await usecase.execute("conn-1", "prices")

        assert report.execution.status == ExecutionStatus.FAILED
        assert list(report.execution.summary["skipped"]) == ["MLB1"]

    async def test_no_candidates_completes(self, usecase, make_connection, repository):
        await make_connection()

        report = await usecase.execute("conn-1")

        assert report.execution.status == ExecutionStatus.COMPLETED
        assert len(await repository.list_executions("conn-1")) == 1

    async def test_unknown_sync_type(self, usecase, make_connection, repository):
        await make_connection()

        with pytest.raises(ValidationError):
            await usecase.execute("conn-1", "everything")
        assert await repository.list_executions("conn-1") == []

    async def test_expired_token_makes_no_calls(self, usecase, make_connection, seed, fake_ml, clock):
        connection = await make_connection(expires_at=clock.now() - timedelta(seconds=1))
        await seed(connection, "MLB1")

        with pytest.raises(TokenExpiredError):
            await usecase.execute("conn-1")
        assert fake_ml.market_calls == []


class TestReimportKeepsAutoSync:

    async def test_reimport_does_not_reenable_auto_sync(self, registry, repository, clock, make_connection, seed):
        from market_import.core.usecases.import_products import ImportProductsUseCase

        connection = await make_connection()
        await seed(connection, "MLB1", auto_sync=False)

        await ImportProductsUseCase(registry, repository, clock).execute("conn-1", product_ids=["MLB1"])

        [row] = await repository.list_products("conn-1")
        assert row.auto_sync_enabled is False


def test_sync_type_parse():
    assert SyncType.parse(None) == SyncType.ALL
    assert SyncType.parse(" Prices ") == SyncType.PRICES
    assert SyncType.INVENTORY.execution_type == ExecutionType.SYNC_INVENTORY
