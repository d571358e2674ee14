"""AccountService 통합 테스트"""

import logging

import pytest

from core.errors import AccountNotFoundError, ErrorKind, ValidationError
from core.ledger.accounts import AccountService
from core.ledger.engine import LedgerEngine
from core.ledger.requests import CreateAccountRequest
from core.ledger.types import AccountOrigin, AccountType, ParentGroup


def account(key: str, code: str, parent: str | None = None, **overrides) -> dict:
    """자산 계정 생성 요청"""
    data = {
        "key": key,
        "code": code,
        "name": key.title(),
        "type": "asset",
        "parent_group": "asset",
        "group": "Current Assets",
        "parent_account_key": parent,
    }
    data.update(overrides)
    return data


class TestValidateStructure:
    """계정 구조 검증 테스트"""

    def test_valid(self) -> None:
        """유효 조합"""
        result = AccountService.validate_structure(CreateAccountRequest(**account("CASH", "1000")))

        assert result == (AccountType.ASSET, ParentGroup.ASSET, AccountOrigin.USER_CREATED)

    def test_missing_fields(self) -> None:
        """필수 필드 누락"""
        with pytest.raises(ValidationError, match="Missing required account fields"):
            AccountService.validate_structure(CreateAccountRequest(key="CASH", code="1000"))

    @pytest.mark.parametrize("code", ["10A0", "１０００", "-100", "1.5"])
    def test_non_numeric_code(self, code: str) -> None:
        """숫자가 아닌 코드 (전각 숫자 포함)"""
        with pytest.raises(ValidationError, match="numeric string"):
            AccountService.validate_structure(CreateAccountRequest(**account("CASH", code)))

    def test_invalid_type(self) -> None:
        """알 수 없는 유형"""
        with pytest.raises(ValidationError, match="Invalid account type"):
            AccountService.validate_structure(CreateAccountRequest(**account("X", "1", type="cash")))

    def test_type_group_mismatch(self) -> None:
        """유형과 상위 그룹 불일치"""
        with pytest.raises(ValidationError, match="Income type must have income parent_group"):
            AccountService.validate_structure(
                CreateAccountRequest(**account("X", "1", type="income", parent_group="expense"))
            )

    def test_contra_group(self) -> None:
        """차감 계정은 자산/부채 그룹만"""
        with pytest.raises(ValidationError, match="Contra accounts must belong to asset or liability"):
            AccountService.validate_structure(
                CreateAccountRequest(**account("X", "1", type="contra", parent_group="equity"))
            )

    def test_invalid_origin(self) -> None:
        """알 수 없는 출처"""
        with pytest.raises(ValidationError, match="Invalid account origin"):
            AccountService.validate_structure(CreateAccountRequest(**account("X", "1", origin="imported")))


class TestCreateAccount:
    """create_account 테스트"""

    @pytest.mark.asyncio
    async def test_create(self, ledger: LedgerEngine) -> None:
        """계정 생성 (기본값 채움)"""
        created = await ledger.accounts.create_account(account("CASH", "1000", extra={"bank": "KB"}))

        assert created.key == "CASH"
        assert created.is_active is True
        assert created.origin == "userCreated"
        assert created.extra == {"bank": "KB"}
        assert created.parent_account_key is None
        assert created.id

    @pytest.mark.asyncio
    async def test_duplicate_key_or_code(self, ledger: LedgerEngine) -> None:
        """key 또는 code 중복"""
        await ledger.accounts.create_account(account("CASH", "1000"))

        with pytest.raises(ValidationError, match="already exists"):
            await ledger.accounts.create_account(account("CASH", "1001"))
        with pytest.raises(ValidationError, match="already exists"):
            await ledger.accounts.create_account(account("BANK", "1000"))

    @pytest.mark.asyncio
    async def test_parent_must_exist(self, ledger: LedgerEngine) -> None:
        """존재하지 않는 상위 계정"""
        with pytest.raises(ValidationError, match="Parent account 'GHOST' not found"):
            await ledger.accounts.create_account(account("CASH", "1000", parent="GHOST"))

    @pytest.mark.asyncio
    async def test_none_data(self, ledger: LedgerEngine) -> None:
        """데이터 없음"""
        with pytest.raises(ValidationError, match="Data object is required"):
            await ledger.accounts.create_account(None)

    @pytest.mark.asyncio
    async def test_nothing_written_on_failure(self, ledger: LedgerEngine) -> None:
        """검증 실패 시 저장 없음"""
        with pytest.raises(ValidationError):
            await ledger.accounts.create_account(account("CASH", "1000", type="income"))

        assert await ledger.accounts.list_accounts() == []


class TestUpdateAccount:
    """update_account 테스트"""

    @pytest.mark.asyncio
    async def test_partial_update(self, seeded: LedgerEngine) -> None:
        """지정 필드만 수정"""
        before = await seeded.accounts.get_account_by_key("CASH")

        updated = await seeded.accounts.update_account({"key": "CASH", "name": "Petty Cash"})

        assert updated.name == "Petty Cash"
        assert updated.group == before.group
        assert updated.updated_at >= before.updated_at

    @pytest.mark.asyncio
    async def test_missing_account(self, seeded: LedgerEngine) -> None:
        """없는 계정"""
        with pytest.raises(AccountNotFoundError) as exc_info:
            await seeded.accounts.update_account({"key": "NOPE", "name": "x"})

        assert exc_info.value.kind == ErrorKind.ACCOUNT_NOT_FOUND

    @pytest.mark.asyncio
    async def test_self_parent(self, seeded: LedgerEngine) -> None:
        """자기 자신을 상위 계정으로"""
        with pytest.raises(ValidationError, match="cannot be its own parent"):
            await seeded.accounts.update_account({"key": "CASH", "parent_account_key": "CASH"})

    @pytest.mark.asyncio
    async def test_cycle_rejected(self, ledger: LedgerEngine) -> None:
        """A → B → C 상태에서 A의 상위를 C로 지정하면 순환"""
        await ledger.accounts.create_account(account("A", "1"))
        await ledger.accounts.create_account(account("B", "2", parent="A"))
        await ledger.accounts.create_account(account("C", "3", parent="B"))

        with pytest.raises(ValidationError, match="Circular dependency detected"):
            await ledger.accounts.update_account({"key": "A", "parent_account_key": "C"})

        unchanged = await ledger.accounts.get_account_by_key("A")
        assert unchanged.parent_account_key is None

    @pytest.mark.asyncio
    async def test_reparent_without_cycle(self, ledger: LedgerEngine) -> None:
        """순환이 아닌 상위 계정 변경 허용"""
        await ledger.accounts.create_account(account("A", "1"))
        await ledger.accounts.create_account(account("B", "2", parent="A"))
        await ledger.accounts.create_account(account("C", "3"))

        updated = await ledger.accounts.update_account({"key": "B", "parent_account_key": "C"})

        assert updated.parent_account_key == "C"

    @pytest.mark.asyncio
    async def test_clear_parent(self, ledger: LedgerEngine) -> None:
        """명시적 None은 상위 계정 해제"""
        await ledger.accounts.create_account(account("A", "1"))
        await ledger.accounts.create_account(account("B", "2", parent="A"))

        updated = await ledger.accounts.update_account({"key": "B", "parent_account_key": None})

        assert updated.parent_account_key is None

    @pytest.mark.asyncio
    async def test_unset_parent_untouched(self, ledger: LedgerEngine) -> None:
        """지정하지 않은 상위 계정은 유지"""
        await ledger.accounts.create_account(account("A", "1"))
        await ledger.accounts.create_account(account("B", "2", parent="A"))

        updated = await ledger.accounts.update_account({"key": "B", "name": "Bee"})

        assert updated.parent_account_key == "A"

    @pytest.mark.asyncio
    async def test_deactivate(self, seeded: LedgerEngine) -> None:
        """비활성화"""
        account_ = await seeded.accounts.deactivate_account("RENT")

        assert account_.is_active is False


class TestValidateParent:
    """validate_parent 테스트"""

    @pytest.mark.asyncio
    async def test_depth_cap_stops_walk(self, ledger: LedgerEngine, caplog: pytest.LogCaptureFixture) -> None:
        """탐색 상한에 도달하면 경고 후 중단 (상한 너머의 순환은 발견하지 못함)"""
        # N0 <- N1 <- ... <- N14 (max_parent_depth = 10)
        await ledger.accounts.create_account(account("N0", "100"))
        for i in range(1, 15):
            await ledger.accounts.create_account(account(f"N{i}", str(100 + i), parent=f"N{i - 1}"))

        with caplog.at_level(logging.WARNING, logger="core.ledger.accounts"):
            await ledger.accounts.validate_parent("N0", "N14")

        assert "탐색 상한" in caplog.text

    @pytest.mark.asyncio
    async def test_cycle_within_cap(self, ledger: LedgerEngine) -> None:
        """상한 안의 순환은 발견"""
        await ledger.accounts.create_account(account("N0", "100"))
        for i in range(1, 5):
            await ledger.accounts.create_account(account(f"N{i}", str(100 + i), parent=f"N{i - 1}"))

        with pytest.raises(ValidationError, match="Circular dependency"):
            await ledger.accounts.validate_parent("N0", "N4")

    @pytest.mark.asyncio
    async def test_parent_missing(self, seeded: LedgerEngine) -> None:
        """상위 계정 없음"""
        with pytest.raises(ValidationError, match="Parent account 'GHOST' not found"):
            await seeded.accounts.validate_parent("CASH", "GHOST")


class TestAccountQueries:
    """조회 테스트"""

    @pytest.mark.asyncio
    async def test_list_negative_paging(self, seeded: LedgerEngine) -> None:
        """음수 limit/skip 거부"""
        with pytest.raises(ValidationError):
            await seeded.accounts.list_accounts(limit=-1)

    @pytest.mark.asyncio
    async def test_get_by_code(self, seeded: LedgerEngine) -> None:
        """코드 조회"""
        found = await seeded.accounts.get_account_by_code("4000")

        assert found.key == "SALES"

    @pytest.mark.asyncio
    async def test_hierarchy(self, ledger: LedgerEngine) -> None:
        """계층 조회 / 하위 / 상위 체인"""
        await ledger.accounts.create_account(account("ASSETS", "1"))
        await ledger.accounts.create_account(account("CURRENT", "10", parent="ASSETS"))
        await ledger.accounts.create_account(account("CASH", "100", parent="CURRENT"))
        await ledger.accounts.create_account(account("BANK", "101", parent="CURRENT"))

        roots = await ledger.accounts.get_account_hierarchy()
        children = await ledger.accounts.get_child_accounts("CURRENT")
        parents = await ledger.accounts.get_parent_accounts("CASH")

        assert [root.key for root in roots] == ["ASSETS"]
        assert [child.key for child in roots[0].children[0].children] == ["CASH", "BANK"]
        assert [child.key for child in children] == ["CASH", "BANK"]
        assert [parent.key for parent in parents] == ["CURRENT", "ASSETS"]

    @pytest.mark.asyncio
    async def test_parents_of_missing_account(self, seeded: LedgerEngine) -> None:
        """없는 계정의 상위 체인"""
        with pytest.raises(AccountNotFoundError):
            await seeded.accounts.get_parent_accounts("NOPE")

    @pytest.mark.asyncio
    async def test_validate_hierarchy(self, seeded: LedgerEngine) -> None:
        """정상 계층 진단"""
        report = await seeded.accounts.validate_hierarchy()

        assert report.is_valid
        assert report.account_count == 9

    @pytest.mark.asyncio
    async def test_is_debit_normal(self, seeded: LedgerEngine) -> None:
        """계정별 정상 잔액 방향"""
        cash = await seeded.accounts.get_account_by_key("CASH")
        sales = await seeded.accounts.get_account_by_key("SALES")
        accum = await seeded.accounts.get_account_by_key("ACCUM_DEP")
        discount = await seeded.accounts.get_account_by_key("BOND_DISCOUNT")

        assert AccountService.is_debit_normal(cash) is True
        assert AccountService.is_debit_normal(sales) is False
        assert AccountService.is_debit_normal(accum) is True
        assert AccountService.is_debit_normal(discount) is True


class TestOffsetAccount:
    """기초 잔액 상대 계정 테스트"""

    @pytest.mark.asyncio
    async def test_created_once(self, ledger: LedgerEngine) -> None:
        """기본 상대 계정은 없을 때만 생성"""
        first = await ledger.accounts.ensure_offset_account()
        second = await ledger.accounts.ensure_offset_account()

        assert first == second
        assert first.key == "OPENING_BALANCE_EQUITY"
        assert first.code == "3999"
        assert first.origin == "dynamicSystem"
        assert first.extra == {"system": True}

    @pytest.mark.asyncio
    async def test_explicit_offset_missing(self, ledger: LedgerEngine) -> None:
        """지정한 상대 계정이 없으면 거부"""
        with pytest.raises(ValidationError, match="Offset account 'EQ' not found"):
            await ledger.accounts.ensure_offset_account("EQ")

    @pytest.mark.asyncio
    async def test_code_conflict(self, ledger: LedgerEngine) -> None:
        """기본 상대 계정 코드가 이미 사용 중"""
        await ledger.accounts.create_account(
            account("RESERVE", "3999", type="equity", parent_group="equity")
        )

        with pytest.raises(ValidationError, match="already used by another account"):
            await ledger.accounts.ensure_offset_account()
