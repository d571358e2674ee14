"""
SQLite 어댑터

WAL 모드로 SQLite 연결 관리.
여러 프로세스가 동시에 접근 가능하도록 설정.

트랜잭션은 AtomicScope 토큰으로 표현됨.
토큰을 넘겨받은 작업은 같은 트랜잭션에 합류하고,
토큰이 없으면 작업이 자체 트랜잭션을 연다.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, AsyncIterator, Iterable

import aiosqlite

from core.constants import Defaults
from core.errors import StorageError

logger = logging.getLogger(__name__)


async def create_connection(
    db_path: Path | str,
    readonly: bool = False,
    busy_timeout_ms: int = Defaults.BUSY_TIMEOUT_MS,
) -> aiosqlite.Connection:
    """SQLite 연결 생성 (WAL 모드)

    Args:
        db_path: DB 파일 경로 (":memory:" 허용)
        readonly: 읽기 전용 여부
        busy_timeout_ms: 잠금 대기 시간 (밀리초)

    Returns:
        aiosqlite 연결 객체 (row_factory = aiosqlite.Row)
    """
    db_path_str = str(db_path)

    try:
        if db_path_str != ":memory:":
            # 디렉토리가 없으면 생성
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        if readonly:
            conn = await aiosqlite.connect(f"file:{db_path_str}?mode=ro", uri=True)
        else:
            conn = await aiosqlite.connect(db_path_str)

        conn.row_factory = aiosqlite.Row

        await conn.execute("PRAGMA journal_mode=WAL")
        await conn.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
        await conn.execute("PRAGMA foreign_keys=ON")
    except (aiosqlite.Error, OSError) as e:
        raise StorageError(e, operation="connect") from e

    logger.info(
        "SQLite 연결 생성",
        extra={"db_path": db_path_str, "readonly": readonly},
    )

    return conn


@dataclass(eq=False)
class AtomicScope:
    """원자적 작업 범위 토큰

    SQLiteAdapter.transaction()이 발급.
    범위 안의 모든 쓰기는 한 번에 커밋되거나 모두 롤백됨.
    """

    adapter: "SQLiteAdapter"
    active: bool = True


class SQLiteAdapter:
    """SQLite 어댑터

    WAL 모드로 SQLite 연결 관리.
    트랜잭션 컨텍스트 매니저 제공.

    Args:
        db_path: DB 파일 경로
        readonly: 읽기 전용 여부
        busy_timeout_ms: 잠금 대기 시간 (밀리초)

    사용 예시:
    ```python
    adapter = SQLiteAdapter(db_path)
    await adapter.connect()

    async with adapter.transaction() as scope:
        await posting.post_journal(request, scope=scope)
        await posting.void_journal(other_id, "replaced", scope=scope)

    await adapter.close()
    ```
    """

    def __init__(
        self,
        db_path: Path | str,
        readonly: bool = False,
        busy_timeout_ms: int = Defaults.BUSY_TIMEOUT_MS,
    ):
        self.db_path = db_path if str(db_path) == ":memory:" else Path(db_path)
        self.readonly = readonly
        self.busy_timeout_ms = busy_timeout_ms
        self._conn: aiosqlite.Connection | None = None
        # 한 연결에서 트랜잭션이 섞이지 않도록 직렬화
        self._tx_lock = asyncio.Lock()
        self._tx_owner: asyncio.Task | None = None

    @property
    def is_connected(self) -> bool:
        """연결 상태 확인"""
        return self._conn is not None

    async def connect(self) -> None:
        """연결 생성"""
        if self._conn is not None:
            return

        self._conn = await create_connection(
            self.db_path, self.readonly, self.busy_timeout_ms
        )

    async def close(self) -> None:
        """연결 종료"""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info("SQLite 연결 종료")

    def _connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise StorageError(ConnectionError("Not connected to database"))
        return self._conn

    @asynccontextmanager
    async def _exclusive(self) -> AsyncIterator[None]:
        """열린 트랜잭션이 끝날 때까지 다른 태스크의 접근 대기

        트랜잭션을 연 태스크는 그대로 통과.
        커밋 전 변경은 다른 태스크에서 보이지 않음.
        """
        current = asyncio.current_task()
        if self._tx_owner is not None and self._tx_owner is current:
            yield
            return

        async with self._tx_lock:
            yield

    async def _execute(
        self,
        sql: str,
        parameters: Iterable[Any] | None = None,
    ) -> aiosqlite.Cursor:
        conn = self._connection()
        try:
            if parameters:
                return await conn.execute(sql, tuple(parameters))
            return await conn.execute(sql)
        except aiosqlite.Error as e:
            raise StorageError(e, operation=sql.split(None, 1)[0].upper()) from e

    async def execute(
        self,
        sql: str,
        parameters: Iterable[Any] | None = None,
    ) -> aiosqlite.Cursor:
        """SQL 실행

        Raises:
            StorageError: 연결 없음 또는 SQLite 오류
        """
        async with self._exclusive():
            return await self._execute(sql, parameters)

    async def executemany(
        self,
        sql: str,
        parameters: list[tuple[Any, ...]],
    ) -> aiosqlite.Cursor:
        """SQL 다중 실행"""
        async with self._exclusive():
            conn = self._connection()
            try:
                return await conn.executemany(sql, parameters)
            except aiosqlite.Error as e:
                raise StorageError(e, operation=sql.split(None, 1)[0].upper()) from e

    async def fetchone(
        self,
        sql: str,
        parameters: Iterable[Any] | None = None,
    ) -> aiosqlite.Row | None:
        """단일 행 조회"""
        async with self._exclusive():
            cursor = await self._execute(sql, parameters)
            try:
                return await cursor.fetchone()
            except aiosqlite.Error as e:
                raise StorageError(e, operation="SELECT") from e

    async def fetchall(
        self,
        sql: str,
        parameters: Iterable[Any] | None = None,
    ) -> list[aiosqlite.Row]:
        """전체 행 조회"""
        async with self._exclusive():
            cursor = await self._execute(sql, parameters)
            try:
                return list(await cursor.fetchall())
            except aiosqlite.Error as e:
                raise StorageError(e, operation="SELECT") from e

    async def commit(self) -> None:
        """커밋"""
        if self._conn is not None:
            try:
                await self._conn.commit()
            except aiosqlite.Error as e:
                raise StorageError(e, operation="COMMIT") from e

    async def rollback(self) -> None:
        """롤백"""
        if self._conn is not None:
            try:
                await self._conn.rollback()
            except aiosqlite.Error as e:
                raise StorageError(e, operation="ROLLBACK") from e

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AtomicScope]:
        """트랜잭션 컨텍스트 매니저

        성공 시 자동 커밋, 예외 시 자동 롤백.
        BEGIN IMMEDIATE로 쓰기 잠금을 먼저 확보.

        사용 예시:
        ```python
        async with adapter.transaction() as scope:
            await store.insert_journal(..., scope=scope)
            # 성공 시 자동 커밋
        ```
        """
        current = asyncio.current_task()
        if current is not None and self._tx_owner is current:
            # 같은 태스크에서 중첩 시 교착 상태가 되므로 scope 전달 필요
            raise StorageError(RuntimeError("Nested transaction: pass the open AtomicScope instead"))

        async with self._tx_lock:
            self._tx_owner = current
            scope = AtomicScope(adapter=self)
            try:
                await self.execute("BEGIN IMMEDIATE")
                yield scope
                await self.commit()
            except BaseException:
                if self._conn is not None and self._conn.in_transaction:
                    await self.rollback()
                raise
            finally:
                scope.active = False
                self._tx_owner = None

    @asynccontextmanager
    async def atomic(self, scope: AtomicScope | None = None) -> AsyncIterator[AtomicScope]:
        """주어진 범위에 합류하거나 새 트랜잭션 시작

        Args:
            scope: 호출자의 AtomicScope (None이면 새 트랜잭션)
        """
        if scope is None:
            async with self.transaction() as own_scope:
                yield own_scope
            return

        if scope.adapter is not self or not scope.active:
            raise StorageError(RuntimeError("Atomic scope is closed or belongs to another adapter"))
        yield scope

    async def table_exists(self, table_name: str) -> bool:
        """테이블 존재 여부 확인"""
        result = await self.fetchone(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            (table_name,),
        )
        return result is not None

    async def index_names(self, table_name: str) -> list[str]:
        """테이블 인덱스 이름 목록"""
        rows = await self.fetchall(
            "SELECT name FROM sqlite_master WHERE type='index' AND tbl_name=? ORDER BY name",
            (table_name,),
        )
        return [row[0] for row in rows]

    # -------------------------------------------------------------------------
    # 컨텍스트 매니저
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "SQLiteAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
