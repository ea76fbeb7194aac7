"""
Posting Coordinator

전표 전기/취소/정정의 진입점.

흐름:
1. 입력 검증 및 Movement 계약 확인 (락 획득 전, 부작용 없음)
2. 영향받는 파티션 락을 정렬 순서로 획득한 뒤 연결 락 획득
   (호출 하나의 deadline을 공유하며 초과 시 부작용 없이 LockTimeout)
3. 단일 트랜잭션 안에서 항목 저장 → 필요 시 재계산 → 전표 인덱스 갱신 → 파티션 버전 증가
4. ConcurrentReconciliationConflict만 backoff 후 재시도, 나머지는 즉시 전달

새 항목이 파티션 마지막 항목 뒤에 정렬되면 재계산 없이
마지막 항목 상태에서 바로 계산하여 저장 (일반적인 실시간 전기 경로).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, time
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterable, Sequence, TypeVar

from adapters.db.sqlite_adapter import DatabaseBusyError, SQLiteAdapter
from core.config.loader import PostingSettings
from core.constants import Defaults
from core.domain.state_machines import PartitionState, PartitionStateMachine
from core.ledger.errors import (
    ConcurrentReconciliationConflict,
    DuplicateVoucher,
    InvalidMovement,
    LockTimeout,
    NotFound,
)
from core.ledger.store import LedgerEntryStore
from core.ledger.types import LedgerEntry, Movement, PartitionKey, ValuationState, VoucherRef
from core.ledger.voucher_index import VoucherReferenceIndex
from core.utils.posting_time import parse_posting_date, parse_posting_time
from engine.posting.locks import PartitionLockManager
from engine.reconciler.timeline import TimelineReconciler

if TYPE_CHECKING:
    from engine.posting.requests import StockMovementRequest, VoucherPostingRequest

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class PostingLine:
    """전표 라인 (전기 입력)

    actual_qty: 부호 있는 수량 (+ 입고, - 출고)
    incoming_rate: 입고 단가 (단가 없는 반품 등은 None)
    """

    item: str
    warehouse: str
    posting_date: date | str
    actual_qty: Decimal | int | str
    posting_time: time | str | None = None
    incoming_rate: Decimal | int | str | None = None
    batch_no: str | None = None
    serial_no: str | None = None


def to_decimal(value: Any, field: str) -> Decimal:
    """숫자 입력을 Decimal로 변환

    float은 str을 거쳐 변환 (이진 표현 오차 방지).

    Raises:
        InvalidMovement: 변환 불가 또는 비유한 값
    """
    if isinstance(value, bool):
        raise InvalidMovement(f"{field} must be numeric", **{field: value})
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise InvalidMovement(f"{field} must be numeric", **{field: value}) from None
    if not result.is_finite():
        raise InvalidMovement(f"{field} must be finite", **{field: value})
    return result


class PostingCoordinator:
    """Posting Coordinator

    파티션별 상태 머신:
    IDLE -> POSTING -> IDLE (append 경로)
    IDLE -> POSTING -> RECONCILING -> IDLE (과거 일자 삽입/취소)

    Args:
        db: 단일 writer 연결
        store: 원장 저장소
        index: 전표 참조 인덱스
        reconciler: 타임라인 재계산기
        posting: 락/재시도 설정
        locks: 파티션 락 관리자 (None이면 새로 생성)

    사용 예시:
    ```python
    coordinator = PostingCoordinator(db, store, index, reconciler)

    entry = await coordinator.post(
        VoucherRef.create(VoucherType.PURCHASE_RECEIPT, "PR-0001"),
        item="ITEM-001",
        warehouse="Stores",
        posting_date="2024-01-10",
        posting_time="09:00:00",
        actual_qty=Decimal("10"),
        incoming_rate=Decimal("100"),
    )

    removed = await coordinator.cancel(entry.voucher)
    ```
    """

    def __init__(
        self,
        db: SQLiteAdapter,
        store: LedgerEntryStore,
        index: VoucherReferenceIndex,
        reconciler: TimelineReconciler,
        posting: PostingSettings | None = None,
        locks: PartitionLockManager | None = None,
    ):
        self.db = db
        self.store = store
        self.index = index
        self.reconciler = reconciler
        self.calculator = reconciler.calculator
        self.posting = posting or PostingSettings()
        self.locks = locks or PartitionLockManager()

        self._machines: dict[str, PartitionStateMachine] = {}

        # 통계
        self._posted_count = 0
        self._cancelled_count = 0
        self._append_count = 0
        self._backdated_count = 0
        self._conflict_retries = 0

    @property
    def stats(self) -> dict[str, int]:
        """전기 통계"""
        return {
            "posted_count": self._posted_count,
            "cancelled_count": self._cancelled_count,
            "append_count": self._append_count,
            "backdated_count": self._backdated_count,
            "conflict_retries": self._conflict_retries,
        }

    def current_state(self, key: PartitionKey) -> str:
        """파티션 현재 상태 (IDLE / POSTING / RECONCILING)"""
        machine = self._machines.get(key.as_str())
        return machine.state if machine else PartitionState.IDLE.value

    # -------------------------------------------------------------------------
    # 전기
    # -------------------------------------------------------------------------

    async def post(
        self,
        voucher: VoucherRef,
        item: str,
        warehouse: str,
        posting_date: date | str,
        posting_time: time | str | None,
        actual_qty: Decimal | int | str,
        incoming_rate: Decimal | int | str | None = None,
        batch_no: str | None = None,
        serial_no: str | None = None,
        company: str = Defaults.COMPANY,
        owner: str = Defaults.OWNER,
        timeout: float | None = None,
    ) -> LedgerEntry:
        """단일 라인 전표 전기

        Returns:
            저장된 항목 (entry_id와 파생 필드 포함)

        Raises:
            InvalidMovement: 이동 계약 위반
            InvalidKey: 파티션 키 오류
            NegativeStockViolation: 정책상 금지된 음수 재고
            DuplicateVoucher: 이미 전기된 전표
            LockTimeout: 락 대기 시간 초과
        """
        line = PostingLine(
            item=item,
            warehouse=warehouse,
            posting_date=posting_date,
            posting_time=posting_time,
            actual_qty=actual_qty,
            incoming_rate=incoming_rate,
            batch_no=batch_no,
            serial_no=serial_no,
        )
        entries = await self.post_voucher(
            voucher, [line], company=company, owner=owner, timeout=timeout
        )
        return entries[0]

    async def post_voucher(
        self,
        voucher: VoucherRef,
        lines: Sequence[PostingLine],
        company: str = Defaults.COMPANY,
        owner: str = Defaults.OWNER,
        timeout: float | None = None,
    ) -> list[LedgerEntry]:
        """다중 라인 전표 전기

        모든 라인의 파티션을 함께 잠그고 단일 트랜잭션으로 저장.
        한 라인이라도 실패하면 전표 전체가 반영되지 않음.

        Returns:
            라인 순서대로 저장된 항목
        """
        drafts = self._build_drafts(voucher, lines, company, owner)
        keys = {draft.partition for draft in drafts}

        async def plan(timeout: float) -> set[PartitionKey]:
            return keys

        async def mutate(locked: set[PartitionKey]) -> list[LedgerEntry]:
            if await self.index.has_voucher(voucher.voucher_type, voucher.voucher_no):
                raise DuplicateVoucher(voucher.voucher_type, voucher.voucher_no)
            return await self._post_drafts(voucher, drafts)

        entries = await self._execute("post", voucher, plan, mutate, timeout)
        self._posted_count += 1

        logger.info(
            f"Voucher posted: {voucher}",
            extra={
                "voucher_type": voucher.voucher_type,
                "voucher_no": voucher.voucher_no,
                "entries": len(entries),
            },
        )
        return entries

    async def submit(
        self,
        request: StockMovementRequest,
        timeout: float | None = None,
    ) -> LedgerEntry:
        """검증된 요청 DTO 전기"""
        return await self.post(
            request.voucher_ref(),
            item=request.item,
            warehouse=request.warehouse,
            posting_date=request.posting_date,
            posting_time=request.posting_time,
            actual_qty=request.actual_qty,
            incoming_rate=request.incoming_rate,
            batch_no=request.batch_no,
            serial_no=request.serial_no,
            company=request.company,
            owner=request.owner,
            timeout=timeout,
        )

    async def submit_voucher(
        self,
        request: VoucherPostingRequest,
        timeout: float | None = None,
    ) -> list[LedgerEntry]:
        """검증된 다중 라인 요청 DTO 전기"""
        return await self.post_voucher(
            request.voucher_ref(),
            request.to_lines(),
            company=request.company,
            owner=request.owner,
            timeout=timeout,
        )

    async def transfer(
        self,
        voucher: VoucherRef,
        item: str,
        from_warehouse: str,
        to_warehouse: str,
        posting_date: date | str,
        posting_time: time | str | None,
        qty: Decimal | int | str,
        batch_no: str | None = None,
        serial_no: str | None = None,
        company: str = Defaults.COMPANY,
        owner: str = Defaults.OWNER,
        timeout: float | None = None,
    ) -> tuple[LedgerEntry, LedgerEntry]:
        """창고 간 재고 이동

        출고 창고에서 qty만큼 빼고 입고 창고에 같은 수량을 넣음.
        입고 단가는 출고 시점 직전의 출고 창고 이동평균 단가.

        Returns:
            (출고 항목, 입고 항목)
        """
        amount = to_decimal(qty, "qty")
        if amount <= 0:
            raise InvalidMovement("transfer qty must be positive", qty=amount)

        outbound, inbound = self._build_drafts(
            voucher,
            [
                PostingLine(
                    item=item,
                    warehouse=from_warehouse,
                    posting_date=posting_date,
                    posting_time=posting_time,
                    actual_qty=-amount,
                    batch_no=batch_no,
                    serial_no=serial_no,
                ),
                PostingLine(
                    item=item,
                    warehouse=to_warehouse,
                    posting_date=posting_date,
                    posting_time=posting_time,
                    actual_qty=amount,
                    batch_no=batch_no,
                    serial_no=serial_no,
                ),
            ],
            company,
            owner,
        )
        if outbound.partition == inbound.partition:
            raise InvalidMovement(
                "transfer requires different source and target warehouses",
                warehouse=outbound.warehouse,
            )

        async def plan(timeout: float) -> set[PartitionKey]:
            return {outbound.partition, inbound.partition}

        async def mutate(locked: set[PartitionKey]) -> list[LedgerEntry]:
            if await self.index.has_voucher(voucher.voucher_type, voucher.voucher_no):
                raise DuplicateVoucher(voucher.voucher_type, voucher.voucher_no)

            # 같은 시각의 기존 항목은 새 출고보다 앞에 정렬되므로 포함
            source = await self.store.last_entry_on_or_before(
                outbound.partition, outbound.posting_date, outbound.posting_time
            )
            rate = source.valuation_rate if source else ValuationState.empty().rate
            valued_inbound = LedgerEntry(
                partition=inbound.partition,
                posting_date=inbound.posting_date,
                posting_time=inbound.posting_time,
                actual_qty=inbound.actual_qty,
                voucher_type=inbound.voucher_type,
                voucher_no=inbound.voucher_no,
                incoming_rate=rate,
                company=inbound.company,
                owner=inbound.owner,
            )
            return await self._post_drafts(voucher, [outbound, valued_inbound])

        entries = await self._execute("transfer", voucher, plan, mutate, timeout)
        self._posted_count += 1

        logger.info(
            f"Stock transferred: {voucher}",
            extra={
                "voucher_no": voucher.voucher_no,
                "item": outbound.item,
                "from_warehouse": outbound.warehouse,
                "to_warehouse": inbound.warehouse,
                "qty": str(amount),
                "rate": str(entries[1].incoming_rate),
            },
        )
        return entries[0], entries[1]

    # -------------------------------------------------------------------------
    # 취소 / 정정
    # -------------------------------------------------------------------------

    async def cancel(self, voucher: VoucherRef, timeout: float | None = None) -> int:
        """전표 취소

        전표의 모든 항목을 삭제하고 영향받은 파티션을
        가장 이른 삭제 위치부터 재계산.

        Returns:
            삭제된 항목 수

        Raises:
            NotFound: 전기된 항목이 없는 전표
            NegativeStockViolation: 취소 결과 금지된 음수 재고 발생
        """

        async def plan(timeout: float) -> set[PartitionKey]:
            return await self._voucher_partitions(voucher, timeout)

        async def mutate(locked: set[PartitionKey]) -> int:
            removed, starts = await self._detach_voucher(voucher, locked)
            await self._reconcile_partitions(starts)
            return removed

        removed = await self._execute("cancel", voucher, plan, mutate, timeout)
        self._cancelled_count += 1

        logger.info(
            f"Voucher cancelled: {voucher}",
            extra={
                "voucher_type": voucher.voucher_type,
                "voucher_no": voucher.voucher_no,
                "removed": removed,
            },
        )
        return removed

    async def amend(
        self,
        voucher: VoucherRef,
        lines: Sequence[PostingLine],
        company: str = Defaults.COMPANY,
        owner: str = Defaults.OWNER,
        timeout: float | None = None,
    ) -> list[LedgerEntry]:
        """전표 정정 (취소 + 재전기를 단일 트랜잭션으로)

        기존 전표와 새 라인의 파티션을 모두 잠금.
        음수 재고 검사는 취소만 된 중간 상태가 아니라 최종 타임라인 기준.

        Raises:
            NotFound: 전기된 항목이 없는 전표
        """
        drafts = self._build_drafts(voucher, lines, company, owner)
        new_keys = {draft.partition for draft in drafts}

        async def plan(timeout: float) -> set[PartitionKey]:
            return await self._voucher_partitions(voucher, timeout) | new_keys

        async def mutate(locked: set[PartitionKey]) -> list[LedgerEntry]:
            _, starts = await self._detach_voucher(voucher, locked)

            # 새 항목은 계산 없이 저장하고 취소분과 함께 한 번에 재계산
            entry_ids = []
            for draft in drafts:
                entry_id = await self.store.append(draft)
                sort_key = (draft.posting_date, draft.posting_time, entry_id)
                start = starts.get(draft.partition)
                starts[draft.partition] = min(start, sort_key) if start else sort_key
                entry_ids.append(entry_id)

            await self._reconcile_partitions(starts)
            await self.index.record_entries(voucher.voucher_type, voucher.voucher_no, entry_ids)

            by_id = {entry.entry_id: entry for entry in await self.store.get_many(entry_ids)}
            return [by_id[entry_id] for entry_id in entry_ids]

        entries = await self._execute("amend", voucher, plan, mutate, timeout)

        logger.info(
            f"Voucher amended: {voucher}",
            extra={
                "voucher_type": voucher.voucher_type,
                "voucher_no": voucher.voucher_no,
                "entries": len(entries),
            },
        )
        return entries

    # -------------------------------------------------------------------------
    # 조회
    # -------------------------------------------------------------------------

    async def entries_for_partition(
        self,
        item: str,
        warehouse: str,
        batch_no: str | None = None,
        serial_no: str | None = None,
    ) -> list[LedgerEntry]:
        """파티션 타임라인 조회 (진행 중인 트랜잭션은 보이지 않음)"""
        key = PartitionKey.create(item, warehouse, batch_no, serial_no)
        async with self.db.snapshot():
            return await self.store.list_partition(key)

    async def entries_for_voucher(self, voucher: VoucherRef) -> list[LedgerEntry]:
        """전표 항목 조회 (없으면 빈 리스트)"""
        async with self.db.snapshot():
            entry_ids = await self.index.entries_for(voucher.voucher_type, voucher.voucher_no)
            if not entry_ids:
                return []
            return await self.store.get_many(entry_ids)

    async def entries_between(
        self,
        from_date: date | str,
        to_date: date | str,
        item: str | None = None,
        warehouse: str | None = None,
        company: str | None = None,
    ) -> list[LedgerEntry]:
        """기간 내 항목 조회"""
        async with self.db.snapshot():
            return await self.store.entries_between(
                parse_posting_date(from_date),
                parse_posting_date(to_date),
                item=item,
                warehouse=warehouse,
                company=company,
            )

    # -------------------------------------------------------------------------
    # 내부
    # -------------------------------------------------------------------------

    async def _execute(
        self,
        operation: str,
        voucher: VoucherRef,
        plan: Callable[[float], Awaitable[set[PartitionKey]]],
        mutate: Callable[[set[PartitionKey]], Awaitable[T]],
        timeout: float | None,
    ) -> T:
        """락 + 트랜잭션 + 충돌 재시도

        timeout은 호출 전체의 deadline. 대상 파티션 조회, 파티션 락,
        연결 락 대기와 충돌 재시도가 모두 같은 deadline을 공유.
        """
        wait = self.posting.lock_timeout_sec if timeout is None else timeout
        deadline = asyncio.get_running_loop().time() + wait
        attempt = 0

        while True:
            keys: set[PartitionKey] = set()
            try:
                keys = await plan(self._remaining(deadline))
                return await self._locked_mutation(keys, mutate, deadline)
            except DatabaseBusyError:
                names = [key.as_str() for key in sorted(keys)]
                logger.warning(
                    f"연결 락 대기 시간 초과: {operation} {voucher}",
                    extra={"partitions": names, "timeout": wait},
                )
                raise LockTimeout(names, wait) from None
            except ConcurrentReconciliationConflict as e:
                attempt += 1
                if attempt > self.posting.conflict_max_retries:
                    logger.error(
                        f"Conflict retries exhausted: {operation} {voucher}",
                        extra={"partition": e.partition_key, "attempts": attempt},
                    )
                    raise
                self._conflict_retries += 1
                logger.warning(
                    f"Concurrent reconciliation conflict, retrying: {operation} {voucher}",
                    extra={
                        "partition": e.partition_key,
                        "attempt": attempt,
                        "reason": e.reason,
                    },
                )
                await asyncio.sleep(self.posting.conflict_backoff_sec * attempt)

    async def _locked_mutation(
        self,
        keys: set[PartitionKey],
        mutate: Callable[[set[PartitionKey]], Awaitable[T]],
        deadline: float,
    ) -> T:
        async with self.locks.acquire(keys, self._remaining(deadline)) as ordered:
            machines = [self._machine(key) for key in ordered]
            for machine in machines:
                machine.transition(PartitionState.POSTING)
            try:
                async with self.db.transaction(timeout=self._remaining(deadline)):
                    versions = {key: await self.store.get_version(key) for key in ordered}
                    result = await mutate(keys)
                    for key in ordered:
                        await self.store.bump_version(key, versions[key])
                return result
            finally:
                for machine in machines:
                    machine.finish()

    @staticmethod
    def _remaining(deadline: float) -> float:
        return max(deadline - asyncio.get_running_loop().time(), 0.0)

    def _machine(self, key: PartitionKey) -> PartitionStateMachine:
        name = key.as_str()
        machine = self._machines.get(name)
        if machine is None:
            machine = PartitionStateMachine(name)
            self._machines[name] = machine
        return machine

    def _enter_reconciling(self, key: PartitionKey) -> None:
        machine = self._machine(key)
        if not machine.is_reconciling:
            machine.transition(PartitionState.RECONCILING)

    def _build_drafts(
        self,
        voucher: VoucherRef,
        lines: Sequence[PostingLine],
        company: str,
        owner: str,
    ) -> list[LedgerEntry]:
        """라인 검증 및 저장 전 항목 생성

        Raises:
            InvalidMovement: 빈 전표, 수량/단가 오류, 방향 불일치
            InvalidKey: 파티션 키 오류
        """
        if not lines:
            raise InvalidMovement("voucher requires at least one line", voucher=str(voucher))

        drafts: list[LedgerEntry] = []
        for line in lines:
            try:
                posting_date = parse_posting_date(line.posting_date)
                posting_time = parse_posting_time(line.posting_time)
            except (TypeError, ValueError) as e:
                raise InvalidMovement(
                    f"invalid posting timestamp: {e}",
                    posting_date=line.posting_date,
                    posting_time=line.posting_time,
                ) from None

            actual_qty = to_decimal(line.actual_qty, "actual_qty")
            incoming_rate = (
                to_decimal(line.incoming_rate, "incoming_rate")
                if line.incoming_rate is not None
                else None
            )
            self.calculator.validate_movement(
                voucher.voucher_type, Movement(actual_qty, incoming_rate)
            )

            drafts.append(LedgerEntry(
                partition=PartitionKey.create(
                    line.item, line.warehouse, line.batch_no, line.serial_no
                ),
                posting_date=posting_date,
                posting_time=posting_time,
                actual_qty=actual_qty,
                voucher_type=voucher.voucher_type,
                voucher_no=voucher.voucher_no,
                incoming_rate=incoming_rate,
                company=company,
                owner=owner,
            ))
        return drafts

    async def _post_drafts(
        self,
        voucher: VoucherRef,
        drafts: Iterable[LedgerEntry],
    ) -> list[LedgerEntry]:
        entry_ids = [await self._post_entry(draft) for draft in drafts]
        await self.index.record_entries(voucher.voucher_type, voucher.voucher_no, entry_ids)

        # 같은 전표의 뒤 라인이 앞 라인을 재계산했을 수 있으므로 최종 값 조회
        by_id = {entry.entry_id: entry for entry in await self.store.get_many(entry_ids)}
        return [by_id[entry_id] for entry_id in entry_ids]

    async def _post_entry(self, draft: LedgerEntry) -> int:
        key = draft.partition
        last = await self.store.last_entry(key)

        # 같은 시각이면 새 항목이 entry_id tie-break로 뒤에 정렬됨
        if last is None or draft.timestamp_key() >= last.timestamp_key():
            prior = last.computed_state() if last else ValuationState.empty()
            state = self.calculator.apply(prior, Movement.from_entry(draft))
            self.reconciler.check_negative_stock(key, [draft], [state])
            self._append_count += 1
            return await self.store.append(draft.with_computed(state))

        self._enter_reconciling(key)
        self._backdated_count += 1
        entry_id = await self.store.append(draft)
        entries = await self.store.list_partition(key)
        position = next(i for i, entry in enumerate(entries) if entry.entry_id == entry_id)

        logger.info(
            f"Backdated entry, reconciling {key.as_str()}",
            extra={
                "partition": key.as_str(),
                "entry_id": entry_id,
                "position": position,
                "tail": len(entries) - position,
            },
        )
        await self.reconciler.reconcile_from(key, position, entries)
        return entry_id

    async def _voucher_partitions(
        self,
        voucher: VoucherRef,
        timeout: float | None = None,
    ) -> set[PartitionKey]:
        """락 획득 전 전표의 대상 파티션 계산

        Raises:
            NotFound: 전기된 항목이 없는 전표
        """
        async with self.db.snapshot(timeout=timeout):
            entry_ids = await self.index.entries_for(voucher.voucher_type, voucher.voucher_no)
            if not entry_ids:
                raise NotFound("Voucher", str(voucher))
            entries = await self.store.get_many(entry_ids)
        return {entry.partition for entry in entries}

    async def _detach_voucher(
        self,
        voucher: VoucherRef,
        locked: set[PartitionKey],
    ) -> tuple[int, dict[PartitionKey, tuple[date, time, int]]]:
        """전표 항목 삭제 (재계산 없음)

        Returns:
            (삭제된 항목 수, 파티션별 가장 이른 삭제 위치의 sort_key)
        """
        entry_ids = await self.index.entries_for(voucher.voucher_type, voucher.voucher_no)
        if not entry_ids:
            raise NotFound("Voucher", str(voucher))
        entries = await self.store.get_many(entry_ids)

        # 락 대기 중 전표가 다른 파티션으로 정정된 경우
        for entry in entries:
            if entry.partition not in locked:
                raise ConcurrentReconciliationConflict(
                    entry.partition.as_str(),
                    f"voucher {voucher} moved to an unlocked partition",
                )

        starts: dict[PartitionKey, tuple[date, time, int]] = {}
        for entry in entries:
            start = starts.get(entry.partition)
            starts[entry.partition] = min(start, entry.sort_key()) if start else entry.sort_key()
            await self.store.remove(entry.entry_id)

        await self.index.remove_voucher(voucher.voucher_type, voucher.voucher_no)
        return len(entries), starts

    async def _reconcile_partitions(
        self,
        starts: dict[PartitionKey, tuple[date, time, int]],
    ) -> None:
        """파티션별로 start 이후 첫 항목부터 한 번씩 재계산"""
        for key in sorted(starts):
            self._enter_reconciling(key)
            timeline = await self.store.list_partition(key)
            position = next(
                (i for i, entry in enumerate(timeline) if entry.sort_key() >= starts[key]),
                len(timeline),
            )
            await self.reconciler.reconcile_from(key, position, timeline)
