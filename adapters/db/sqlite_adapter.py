"""
SQLite 어댑터

WAL 모드로 SQLite 연결 관리.
엔진(writer)과 리포팅(reader)이 동시에 접근 가능하도록 설정.
WAL reader 연결은 커밋된 데이터만 보므로, 재계산 중인 파티션의
중간 상태는 외부에 노출되지 않음.

주의: SQLite alias로 time, count 사용 금지 (예약어)
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

import aiosqlite

from core.constants import PROJECT_ROOT, Paths
from core.utils.locks import acquire_within

logger = logging.getLogger(__name__)


class DatabaseBusyError(TimeoutError):
    """연결 락 대기 시간 초과

    단일 writer 연결을 다른 트랜잭션이 timeout 이상 점유한 경우.
    """

    def __init__(self, db_path: Path, timeout: float | None):
        self.db_path = db_path
        self.timeout = timeout
        super().__init__(f"Database connection busy after {timeout}s: {db_path}")


def get_db_path(path: Path | str | None = None) -> Path:
    """DB 경로 반환

    Args:
        path: DB 파일 경로 (None이면 기본 경로, 상대 경로는 PROJECT_ROOT 기준)

    Returns:
        DB 파일 경로 (Path 타입)
    """
    if path is None:
        return Paths.LEDGER_DB

    db_path = Path(path)
    if not db_path.is_absolute():
        db_path = PROJECT_ROOT / db_path
    return db_path


async def create_connection(
    db_path: Path | str,
    readonly: bool = False,
) -> aiosqlite.Connection:
    """SQLite 연결 생성 (WAL 모드)

    Args:
        db_path: DB 파일 경로
        readonly: 읽기 전용 여부

    Returns:
        aiosqlite 연결 객체
    """
    # pathlib.Path를 문자열로 변환
    db_path_str = str(db_path)

    # 디렉토리가 없으면 생성
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    # 연결 생성
    if readonly:
        # 읽기 전용 모드
        conn = await aiosqlite.connect(f"file:{db_path_str}?mode=ro", uri=True)
    else:
        conn = await aiosqlite.connect(db_path_str)
        # WAL 모드 설정 (읽기 전용 연결은 변경 불가)
        await conn.execute("PRAGMA journal_mode=WAL")

    # 동시 접근 설정
    await conn.execute("PRAGMA busy_timeout=30000")  # 30초 대기

    # 외래 키 제약 활성화
    await conn.execute("PRAGMA foreign_keys=ON")

    logger.info(
        "SQLite 연결 생성",
        extra={"db_path": db_path_str, "readonly": readonly},
    )

    return conn


class SQLiteAdapter:
    """SQLite 어댑터

    WAL 모드로 SQLite 연결 관리.
    트랜잭션 컨텍스트 매니저 제공.

    하나의 연결을 여러 코루틴이 공유하므로, transaction()과 snapshot()은
    같은 asyncio.Lock으로 직렬화됨. 트랜잭션 중간 상태를 같은 연결의
    다른 코루틴이 읽는 일을 막기 위함.

    Args:
        db_path: DB 파일 경로
        readonly: 읽기 전용 여부 (리포팅 조회용)

    사용 예시:
    ```python
    adapter = SQLiteAdapter(db_path)
    await adapter.connect()

    async with adapter.transaction() as conn:
        await conn.execute("INSERT INTO ...")

    await adapter.close()
    ```
    """

    def __init__(self, db_path: Path | str, readonly: bool = False):
        self.db_path = Path(db_path)
        self.readonly = readonly
        self._conn: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        """연결 상태 확인"""
        return self._conn is not None

    @property
    def in_transaction(self) -> bool:
        """트랜잭션 진행 여부"""
        return self._conn is not None and self._conn.in_transaction

    async def connect(self) -> None:
        """연결 생성"""
        if self._conn is not None:
            return

        self._conn = await create_connection(self.db_path, self.readonly)

    async def close(self) -> None:
        """연결 종료"""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info("SQLite 연결 종료")

    async def execute(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> aiosqlite.Cursor:
        """SQL 실행"""
        if self._conn is None:
            raise RuntimeError("Not connected to database")

        if parameters:
            return await self._conn.execute(sql, parameters)
        return await self._conn.execute(sql)

    async def executemany(
        self,
        sql: str,
        parameters: list[tuple[Any, ...]],
    ) -> aiosqlite.Cursor:
        """SQL 다중 실행"""
        if self._conn is None:
            raise RuntimeError("Not connected to database")

        return await self._conn.executemany(sql, parameters)

    async def fetchone(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> tuple[Any, ...] | None:
        """단일 행 조회"""
        cursor = await self.execute(sql, parameters)
        return await cursor.fetchone()

    async def fetchall(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> list[tuple[Any, ...]]:
        """전체 행 조회"""
        cursor = await self.execute(sql, parameters)
        return list(await cursor.fetchall())

    async def commit(self) -> None:
        """커밋"""
        if self._conn is not None:
            await self._conn.commit()

    async def rollback(self) -> None:
        """롤백"""
        if self._conn is not None:
            await self._conn.rollback()

    @asynccontextmanager
    async def transaction(self, timeout: float | None = None) -> AsyncIterator[aiosqlite.Connection]:
        """트랜잭션 컨텍스트 매니저

        BEGIN IMMEDIATE로 시작하여 쓰기 락을 먼저 확보.
        성공 시 자동 커밋, 예외 시 자동 롤백.

        Args:
            timeout: 연결 락 대기 한도 (초, None이면 무제한)

        Raises:
            DatabaseBusyError: timeout 안에 연결 락을 얻지 못함 (아무것도 실행되지 않음)

        사용 예시:
        ```python
        async with adapter.transaction() as conn:
            await conn.execute("INSERT INTO ...")
            # 성공 시 자동 커밋
        ```
        """
        if self._conn is None:
            raise RuntimeError("Not connected to database")

        await self._acquire(timeout)
        try:
            await self._conn.execute("BEGIN IMMEDIATE")
            try:
                yield self._conn
                await self._conn.commit()
            except BaseException:
                await self._conn.rollback()
                raise
        finally:
            self._lock.release()

    @asynccontextmanager
    async def snapshot(self, timeout: float | None = None) -> AsyncIterator[aiosqlite.Connection]:
        """읽기 컨텍스트 매니저

        진행 중인 transaction()이 끝난 뒤에 실행되므로
        커밋된 상태만 읽음 (부분 재계산 상태 노출 없음).

        Raises:
            DatabaseBusyError: timeout 안에 연결 락을 얻지 못함
        """
        if self._conn is None:
            raise RuntimeError("Not connected to database")

        await self._acquire(timeout)
        try:
            yield self._conn
        finally:
            self._lock.release()

    async def _acquire(self, timeout: float | None) -> None:
        try:
            await acquire_within(self._lock, timeout)
        except asyncio.TimeoutError:
            raise DatabaseBusyError(self.db_path, timeout) from None

    # -------------------------------------------------------------------------
    # 컨텍스트 매니저
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "SQLiteAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


async def init_schema(adapter: SQLiteAdapter) -> None:
    """스키마 초기화 (테이블 생성)

    Args:
        adapter: 연결된 SQLiteAdapter

    주의: 엔진 시작 시 또는 별도의 마이그레이션 스크립트에서 호출.
    """
    from core.ledger.schema import init_ledger_schema

    await init_ledger_schema(adapter)

    logger.info("스키마 초기화 완료")
