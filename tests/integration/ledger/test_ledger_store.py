"""LedgerEntryStore 통합 테스트"""

from datetime import date, time
from decimal import Decimal

import pytest
import pytest_asyncio

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.ledger.errors import ConcurrentReconciliationConflict, InvalidKey, NotFound
from core.ledger.store import LedgerEntryStore
from core.ledger.types import LedgerEntry, PartitionKey

KEY = PartitionKey.create("ITEM-001", "Stores")
OTHER = PartitionKey.create("ITEM-002", "Stores")


def make_entry(
    key: PartitionKey = KEY,
    day: int = 10,
    at: time = time(9, 0),
    qty: str = "10",
    voucher_no: str = "PR-0001",
    company: str = "default",
) -> LedgerEntry:
    return LedgerEntry(
        partition=key,
        posting_date=date(2024, 1, day),
        posting_time=at,
        actual_qty=Decimal(qty),
        voucher_type="Stock Adjustment",
        voucher_no=voucher_no,
        incoming_rate=Decimal("5"),
        qty_after_transaction=Decimal(qty),
        valuation_rate=Decimal("5"),
        stock_value=Decimal(qty) * 5,
        company=company,
    )


@pytest_asyncio.fixture
async def store(ledger_db: SQLiteAdapter) -> LedgerEntryStore:
    return LedgerEntryStore(ledger_db)


async def append_all(store: LedgerEntryStore, *entries: LedgerEntry) -> list[int]:
    async with store.db.transaction():
        return [await store.append(entry) for entry in entries]


class TestAppendAndGet:
    """append / get 테스트"""

    @pytest.mark.asyncio
    async def test_round_trip_fields(self, store: LedgerEntryStore) -> None:
        """Decimal/시각/파티션이 그대로 복원"""
        [entry_id] = await append_all(store, make_entry(at=time(9, 30, 15, 500)))

        entry = await store.get(entry_id)

        assert entry.entry_id == entry_id
        assert entry.partition == KEY
        assert entry.posting_time == time(9, 30, 15, 500)
        assert entry.actual_qty == Decimal("10")
        assert entry.incoming_rate == Decimal("5")
        assert entry.stock_value == Decimal("50")
        assert entry.created_at is not None

    @pytest.mark.asyncio
    async def test_entry_ids_monotonic(self, store: LedgerEntryStore) -> None:
        ids = await append_all(store, make_entry(), make_entry(), make_entry())

        assert ids == sorted(ids)
        assert len(set(ids)) == 3

    @pytest.mark.asyncio
    async def test_null_incoming_rate(self, store: LedgerEntryStore) -> None:
        entry = make_entry()
        entry.incoming_rate = None
        [entry_id] = await append_all(store, entry)

        assert (await store.get(entry_id)).incoming_rate is None

    @pytest.mark.asyncio
    async def test_get_missing(self, store: LedgerEntryStore) -> None:
        with pytest.raises(NotFound):
            await store.get(999)

    @pytest.mark.asyncio
    async def test_get_many_missing(self, store: LedgerEntryStore) -> None:
        [entry_id] = await append_all(store, make_entry())

        with pytest.raises(NotFound):
            await store.get_many([entry_id, 999])

    @pytest.mark.asyncio
    async def test_invalid_key(self, store: LedgerEntryStore) -> None:
        with pytest.raises(InvalidKey):
            await store.list_partition(PartitionKey(item="", warehouse="Stores"))


class TestPartitionOrder:
    """파티션 전순서 테스트"""

    @pytest.mark.asyncio
    async def test_list_partition_total_order(self, store: LedgerEntryStore) -> None:
        """(posting_date, posting_time, entry_id) 순, 도착 순서와 무관"""
        ids = await append_all(
            store,
            make_entry(day=12, voucher_no="V3"),
            make_entry(day=10, at=time(15, 0), voucher_no="V2"),
            make_entry(day=10, at=time(9, 0), voucher_no="V1a"),
            make_entry(day=10, at=time(9, 0), voucher_no="V1b"),
            make_entry(key=OTHER, day=1, voucher_no="X"),
        )

        entries = await store.list_partition(KEY)

        assert [e.voucher_no for e in entries] == ["V1a", "V1b", "V2", "V3"]
        assert entries[0].entry_id == ids[2]
        assert (await store.last_entry(KEY)).voucher_no == "V3"
        assert len(await store.list_partition(KEY)) == 4

    @pytest.mark.asyncio
    async def test_last_entry_empty(self, store: LedgerEntryStore) -> None:
        assert await store.last_entry(KEY) is None

    @pytest.mark.asyncio
    async def test_last_entry_on_or_before(self, store: LedgerEntryStore) -> None:
        await append_all(
            store,
            make_entry(day=10, at=time(9, 0), voucher_no="A"),
            make_entry(day=10, at=time(12, 0), voucher_no="B"),
            make_entry(day=11, voucher_no="C"),
        )

        assert (await store.last_entry_on_or_before(KEY, date(2024, 1, 10))).voucher_no == "B"
        by_time = await store.last_entry_on_or_before(KEY, date(2024, 1, 10), time(9, 0))
        assert by_time.voucher_no == "A"
        assert await store.last_entry_on_or_before(KEY, date(2024, 1, 9)) is None

    @pytest.mark.asyncio
    async def test_date_ranges(self, store: LedgerEntryStore) -> None:
        await append_all(
            store,
            make_entry(day=5, voucher_no="A"),
            make_entry(day=10, voucher_no="B"),
            make_entry(key=OTHER, day=10, voucher_no="C", company="other"),
            make_entry(day=15, voucher_no="D"),
        )

        between = await store.list_partition_between(KEY, date(2024, 1, 5), date(2024, 1, 10))
        assert [e.voucher_no for e in between] == ["A", "B"]

        all_entries = await store.entries_between(date(2024, 1, 10), date(2024, 1, 31))
        assert {e.voucher_no for e in all_entries} == {"B", "C", "D"}

        by_company = await store.entries_between(company="other")
        assert [e.voucher_no for e in by_company] == ["C"]

        by_item = await store.entries_between(item="ITEM-001")
        assert len(by_item) == 3

    @pytest.mark.asyncio
    async def test_latest_per_partition(self, store: LedgerEntryStore) -> None:
        await append_all(
            store,
            make_entry(day=5, qty="10", voucher_no="A"),
            make_entry(day=20, qty="3", voucher_no="B"),
            make_entry(key=OTHER, day=6, qty="7", voucher_no="C"),
        )

        latest = await store.latest_per_partition(date(2024, 1, 10))

        assert {e.voucher_no for e in latest} == {"A", "C"}

    @pytest.mark.asyncio
    async def test_partitions(self, store: LedgerEntryStore) -> None:
        await append_all(store, make_entry(key=OTHER), make_entry())

        assert await store.partitions() == [KEY, OTHER]


class TestMutations:
    """갱신 / 삭제 / 버전 테스트"""

    @pytest.mark.asyncio
    async def test_update_computed_fields(self, store: LedgerEntryStore) -> None:
        [entry_id] = await append_all(store, make_entry())

        async with store.db.transaction():
            await store.update_computed_fields(
                entry_id, Decimal("7"), Decimal("6.5"), Decimal("45.50")
            )

        entry = await store.get(entry_id)
        assert entry.qty_after_transaction == Decimal("7")
        assert entry.valuation_rate == Decimal("6.5")
        assert entry.stock_value == Decimal("45.50")
        assert entry.actual_qty == Decimal("10")

    @pytest.mark.asyncio
    async def test_update_missing(self, store: LedgerEntryStore) -> None:
        with pytest.raises(NotFound):
            async with store.db.transaction():
                await store.update_computed_fields(1, Decimal("1"), Decimal("1"), Decimal("1"))

    @pytest.mark.asyncio
    async def test_remove(self, store: LedgerEntryStore) -> None:
        [entry_id] = await append_all(store, make_entry())

        async with store.db.transaction():
            await store.remove(entry_id)

        assert await store.list_partition(KEY) == []
        with pytest.raises(NotFound):
            async with store.db.transaction():
                await store.remove(entry_id)

    @pytest.mark.asyncio
    async def test_rollback_discards_append(self, store: LedgerEntryStore) -> None:
        with pytest.raises(RuntimeError):
            async with store.db.transaction():
                await store.append(make_entry())
                raise RuntimeError("abort")

        assert len(await store.list_partition(KEY)) == 0

    @pytest.mark.asyncio
    async def test_version_compare_and_set(self, store: LedgerEntryStore) -> None:
        assert await store.get_version(KEY) == 0

        async with store.db.transaction():
            assert await store.bump_version(KEY, 0) == 1

        assert await store.get_version(KEY) == 1

        with pytest.raises(ConcurrentReconciliationConflict, match="expected version 0, found 1"):
            async with store.db.transaction():
                await store.bump_version(KEY, 0)
