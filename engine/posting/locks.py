"""
Partition Lock Manager

파티션 단위 직렬화. 같은 파티션의 전기/취소/재계산은 한 번에 하나만 실행되고,
서로 다른 파티션은 동시에 진행 가능.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable

from core.ledger.errors import LockTimeout
from core.ledger.types import PartitionKey
from core.utils.locks import acquire_within

logger = logging.getLogger(__name__)


class PartitionLockManager:
    """파티션 락 관리자

    파티션 키 문자열마다 asyncio.Lock 하나.
    여러 파티션은 항상 정렬된 순서로 획득하므로 교착 상태가 생기지 않음.
    대기자가 없는 락은 해제 시 정리.

    사용 예시:
    ```python
    locks = PartitionLockManager()
    async with locks.acquire([key_a, key_b], timeout=5.0):
        ...  # 두 파티션을 배타적으로 보유
    ```
    """

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    def locked(self, key: PartitionKey) -> bool:
        """파티션 락 보유 여부"""
        lock = self._locks.get(key.as_str())
        return lock is not None and lock.locked()

    @property
    def active_count(self) -> int:
        """보유 또는 대기 중인 파티션 수"""
        return len(self._locks)

    @asynccontextmanager
    async def acquire(
        self,
        keys: Iterable[PartitionKey],
        timeout: float,
    ) -> AsyncIterator[list[PartitionKey]]:
        """파티션 락 획득

        하나의 deadline 안에 모든 락을 획득해야 함.
        실패 시 이미 잡은 락을 모두 풀고 LockTimeout (부작용 없음).

        Args:
            keys: 잠글 파티션 키 (중복 허용)
            timeout: 전체 대기 한도 (초)

        Yields:
            정렬된 파티션 키 목록

        Raises:
            LockTimeout: deadline 내 획득 실패
        """
        ordered = sorted(set(keys))
        names = [key.as_str() for key in ordered]

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        acquired: list[str] = []

        for name in names:
            self._holders[name] = self._holders.get(name, 0) + 1
        try:
            for name in names:
                lock = self._locks.setdefault(name, asyncio.Lock())
                try:
                    await acquire_within(lock, deadline - loop.time())
                except asyncio.TimeoutError:
                    logger.warning(
                        "파티션 락 대기 시간 초과",
                        extra={"partitions": names, "timeout": timeout},
                    )
                    raise LockTimeout(names, timeout) from None
                acquired.append(name)

            yield ordered
        finally:
            for name in reversed(acquired):
                self._locks[name].release()
            for name in names:
                self._holders[name] -= 1
                if self._holders[name] == 0:
                    del self._holders[name]
                    self._locks.pop(name, None)
