"""
SQLite 어댑터 테스트

SQLiteAdapter, create_connection, 원자적 작업 범위 테스트.
"""

import asyncio
from pathlib import Path

import pytest
import pytest_asyncio

from adapters.db.sqlite_adapter import (
    AtomicScope,
    SQLiteAdapter,
    create_connection,
)
from core.errors import ErrorKind, StorageError


class TestCreateConnection:
    """create_connection 테스트"""

    @pytest.mark.asyncio
    async def test_create_connection(self, tmp_path: Path) -> None:
        """연결 생성"""
        db_path = tmp_path / "test.db"

        conn = await create_connection(db_path)

        assert conn is not None

        # WAL 모드 확인
        cursor = await conn.execute("PRAGMA journal_mode")
        row = await cursor.fetchone()
        assert row[0].upper() == "WAL"

        # 외래 키 활성화 확인
        cursor = await conn.execute("PRAGMA foreign_keys")
        row = await cursor.fetchone()
        assert row[0] == 1

        await conn.close()

    @pytest.mark.asyncio
    async def test_creates_parent_directory(self, tmp_path: Path) -> None:
        """부모 디렉토리 생성"""
        db_path = tmp_path / "subdir" / "test.db"

        conn = await create_connection(db_path)

        assert db_path.parent.exists()

        await conn.close()

    @pytest.mark.asyncio
    async def test_memory_database(self) -> None:
        """메모리 DB"""
        conn = await create_connection(":memory:")

        cursor = await conn.execute("SELECT 1")
        row = await cursor.fetchone()
        assert row[0] == 1

        await conn.close()


class TestSQLiteAdapter:
    """SQLiteAdapter 테스트"""

    @pytest_asyncio.fixture
    async def adapter(self, tmp_path: Path) -> SQLiteAdapter:
        """어댑터 픽스처"""
        db_path = tmp_path / "test.db"
        adapter = SQLiteAdapter(db_path)
        await adapter.connect()
        yield adapter
        await adapter.close()

    @pytest.mark.asyncio
    async def test_connect_and_close(self, tmp_path: Path) -> None:
        """연결 및 종료"""
        db_path = tmp_path / "test.db"
        adapter = SQLiteAdapter(db_path)

        assert adapter.is_connected is False

        await adapter.connect()
        assert adapter.is_connected is True

        await adapter.close()
        assert adapter.is_connected is False

    @pytest.mark.asyncio
    async def test_execute(self, adapter: SQLiteAdapter) -> None:
        """SQL 실행"""
        await adapter.execute(
            "CREATE TABLE test (id INTEGER PRIMARY KEY, name TEXT)"
        )
        await adapter.execute(
            "INSERT INTO test (name) VALUES (?)",
            ("테스트",),
        )
        await adapter.commit()

        # 이름으로 컬럼 접근 (row_factory)
        row = await adapter.fetchone("SELECT name FROM test WHERE id = 1")
        assert row["name"] == "테스트"

    @pytest.mark.asyncio
    async def test_fetchall(self, adapter: SQLiteAdapter) -> None:
        """전체 조회"""
        await adapter.execute("CREATE TABLE items (value TEXT)")
        await adapter.executemany(
            "INSERT INTO items (value) VALUES (?)",
            [("A",), ("B",), ("C",)],
        )
        await adapter.commit()

        rows = await adapter.fetchall("SELECT value FROM items ORDER BY value")

        assert [row[0] for row in rows] == ["A", "B", "C"]

    @pytest.mark.asyncio
    async def test_sql_error_wrapped(self, adapter: SQLiteAdapter) -> None:
        """SQLite 오류는 StorageError로 변환 (원본 보존)"""
        with pytest.raises(StorageError) as exc_info:
            await adapter.execute("SELECT * FROM missing_table")

        error = exc_info.value
        assert error.kind == ErrorKind.STORAGE
        assert error.context["operation"] == "SELECT"
        assert error.__cause__ is error.original

    @pytest.mark.asyncio
    async def test_not_connected(self, tmp_path: Path) -> None:
        """연결 없이 실행"""
        adapter = SQLiteAdapter(tmp_path / "never.db")

        with pytest.raises(StorageError, match="Not connected"):
            await adapter.execute("SELECT 1")

    @pytest.mark.asyncio
    async def test_transaction_commit(self, adapter: SQLiteAdapter) -> None:
        """트랜잭션 커밋"""
        await adapter.execute("CREATE TABLE tx_test (id INTEGER)")
        await adapter.commit()

        async with adapter.transaction() as scope:
            assert isinstance(scope, AtomicScope)
            await adapter.execute("INSERT INTO tx_test (id) VALUES (1)")
            await adapter.execute("INSERT INTO tx_test (id) VALUES (2)")

        assert scope.active is False
        rows = await adapter.fetchall("SELECT id FROM tx_test")
        assert len(rows) == 2

    @pytest.mark.asyncio
    async def test_transaction_rollback(self, adapter: SQLiteAdapter) -> None:
        """트랜잭션 롤백"""
        await adapter.execute("CREATE TABLE tx_test2 (id INTEGER)")
        await adapter.commit()

        with pytest.raises(ValueError):
            async with adapter.transaction():
                await adapter.execute("INSERT INTO tx_test2 (id) VALUES (1)")
                raise ValueError("의도적 에러")

        rows = await adapter.fetchall("SELECT id FROM tx_test2")
        assert len(rows) == 0

    @pytest.mark.asyncio
    async def test_nested_transaction_rejected(self, adapter: SQLiteAdapter) -> None:
        """같은 태스크에서 중첩 트랜잭션 거부"""
        async with adapter.transaction():
            with pytest.raises(StorageError, match="Nested transaction"):
                async with adapter.transaction():
                    pass

    @pytest.mark.asyncio
    async def test_atomic_joins_scope(self, adapter: SQLiteAdapter) -> None:
        """atomic(scope)는 호출자 트랜잭션에 합류"""
        await adapter.execute("CREATE TABLE joined (id INTEGER)")
        await adapter.commit()

        with pytest.raises(RuntimeError):
            async with adapter.transaction() as scope:
                async with adapter.atomic(scope) as joined:
                    assert joined is scope
                    await adapter.execute("INSERT INTO joined (id) VALUES (1)")
                raise RuntimeError("바깥 범위 실패")

        # 바깥 범위가 롤백되면 합류한 쓰기도 취소
        rows = await adapter.fetchall("SELECT id FROM joined")
        assert rows == []

    @pytest.mark.asyncio
    async def test_atomic_without_scope_commits(self, adapter: SQLiteAdapter) -> None:
        """scope 없으면 자체 트랜잭션으로 커밋"""
        await adapter.execute("CREATE TABLE own (id INTEGER)")
        await adapter.commit()

        async with adapter.atomic():
            await adapter.execute("INSERT INTO own (id) VALUES (1)")

        rows = await adapter.fetchall("SELECT id FROM own")
        assert len(rows) == 1

    @pytest.mark.asyncio
    async def test_closed_scope_rejected(self, adapter: SQLiteAdapter) -> None:
        """종료된 scope 재사용 거부"""
        async with adapter.transaction() as scope:
            pass

        with pytest.raises(StorageError, match="closed"):
            async with adapter.atomic(scope):
                pass

    @pytest.mark.asyncio
    async def test_transactions_serialized(self, adapter: SQLiteAdapter) -> None:
        """동시 트랜잭션은 순서대로 실행"""
        await adapter.execute("CREATE TABLE serial (task TEXT, step INTEGER)")
        await adapter.commit()

        async def worker(name: str) -> None:
            async with adapter.transaction():
                await adapter.execute("INSERT INTO serial VALUES (?, 1)", (name,))
                await asyncio.sleep(0.01)
                await adapter.execute("INSERT INTO serial VALUES (?, 2)", (name,))

        await asyncio.gather(worker("a"), worker("b"))

        rows = await adapter.fetchall("SELECT task FROM serial ORDER BY rowid")
        tasks = [row[0] for row in rows]
        # 각 트랜잭션의 두 쓰기가 섞이지 않음
        assert tasks in (["a", "a", "b", "b"], ["b", "b", "a", "a"])

    @pytest.mark.asyncio
    async def test_reader_waits_for_open_transaction(self, adapter: SQLiteAdapter) -> None:
        """다른 태스크의 조회는 커밋 전 변경을 보지 않음"""
        await adapter.execute("CREATE TABLE isolated (id INTEGER)")
        await adapter.commit()

        async def count() -> int:
            row = await adapter.fetchone("SELECT COUNT(*) FROM isolated")
            return row[0]

        with pytest.raises(RuntimeError):
            async with adapter.transaction():
                await adapter.execute("INSERT INTO isolated (id) VALUES (1)")
                # 트랜잭션을 연 태스크는 자신의 쓰기를 봄
                assert await count() == 1

                reader = asyncio.create_task(count())
                await asyncio.sleep(0.01)
                assert not reader.done()
                raise RuntimeError("롤백")

        assert await reader == 0

    @pytest.mark.asyncio
    async def test_reader_sees_committed_rows(self, adapter: SQLiteAdapter) -> None:
        """트랜잭션 커밋 후 대기하던 조회가 결과를 봄"""
        await adapter.execute("CREATE TABLE committed (id INTEGER)")
        await adapter.commit()

        async with adapter.transaction():
            await adapter.execute("INSERT INTO committed (id) VALUES (1)")
            reader = asyncio.create_task(adapter.fetchall("SELECT id FROM committed"))
            await asyncio.sleep(0.01)
            assert not reader.done()

        rows = await reader
        assert [row[0] for row in rows] == [1]

    @pytest.mark.asyncio
    async def test_table_exists(self, adapter: SQLiteAdapter) -> None:
        """테이블 존재 확인"""
        assert await adapter.table_exists("nonexistent") is False

        await adapter.execute("CREATE TABLE existing (id INTEGER)")
        await adapter.commit()

        assert await adapter.table_exists("existing") is True

    @pytest.mark.asyncio
    async def test_index_names(self, adapter: SQLiteAdapter) -> None:
        """인덱스 목록"""
        await adapter.execute("CREATE TABLE indexed (id INTEGER, code TEXT)")
        await adapter.execute("CREATE UNIQUE INDEX ux_indexed_code ON indexed(code)")
        await adapter.commit()

        assert await adapter.index_names("indexed") == ["ux_indexed_code"]

    @pytest.mark.asyncio
    async def test_context_manager(self, tmp_path: Path) -> None:
        """컨텍스트 매니저"""
        db_path = tmp_path / "ctx_test.db"

        async with SQLiteAdapter(db_path) as adapter:
            assert adapter.is_connected is True
            await adapter.execute("CREATE TABLE ctx (id INTEGER)")

        # 컨텍스트 종료 후 연결 해제 확인
        assert adapter.is_connected is False
