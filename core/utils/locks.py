"""
asyncio 락 획득 유틸리티
"""

import asyncio


async def acquire_within(lock: asyncio.Lock, timeout: float | None) -> None:
    """timeout 안에 락 획득

    timeout이 None이면 무제한 대기.
    비어 있는 락은 deadline이 이미 지났어도(timeout <= 0) 대기 없이 획득.

    Raises:
        asyncio.TimeoutError: timeout 안에 획득 실패
    """
    if timeout is None:
        await lock.acquire()
        return

    if timeout <= 0:
        if lock.locked():
            raise asyncio.TimeoutError
        await lock.acquire()
        return

    await asyncio.wait_for(lock.acquire(), timeout=timeout)
