"""
계정 계층 (forest)

전체 계정 스냅샷으로 트리 구성 및 진단.
저장소에 접근하지 않는 순수 함수만 포함.
"""

from typing import Iterable

from core.ledger.models import Account, AccountNode, ForestReport


def build_forest(accounts: Iterable[Account]) -> list[AccountNode]:
    """계정 목록을 트리 목록으로 변환

    상위 계정이 없거나 존재하지 않는 key를 가리키면 루트로 취급.
    입력 순서를 형제 순서로 유지.

    Returns:
        루트 노드 목록
    """
    nodes: dict[str, AccountNode] = {}
    for account in accounts:
        nodes[account.key] = AccountNode(account=account)

    roots: list[AccountNode] = []
    for node in nodes.values():
        parent_key = node.account.parent_account_key
        if parent_key and parent_key in nodes:
            nodes[parent_key].children.append(node)
        else:
            roots.append(node)

    return roots


def validate_forest(accounts: Iterable[Account]) -> ForestReport:
    """계정 계층 진단

    상위 계정 포인터를 따라가며 순환과 끊어진 참조를 모두 찾음.
    방문 표시로 각 계정을 한 번만 처리하므로 깊이 제한 없음.

    Returns:
        ForestReport (cycles: 순환 경로 목록, dangling_parents: 없는 상위 key)
    """
    parents: dict[str, str | None] = {
        account.key: account.parent_account_key for account in accounts
    }

    dangling = {
        key: parent for key, parent in parents.items() if parent and parent not in parents
    }
    roots = [key for key, parent in parents.items() if not parent or key in dangling]

    # 0: 미방문, 1: 현재 경로, 2: 완료
    state: dict[str, int] = dict.fromkeys(parents, 0)
    cycles: list[list[str]] = []

    for start in parents:
        if state[start]:
            continue

        path: list[str] = []
        current: str | None = start
        while current is not None and state[current] == 0:
            state[current] = 1
            path.append(current)
            parent = parents[current]
            current = parent if parent in parents else None

        if current is not None and state[current] == 1:
            cycles.append(path[path.index(current):])

        for key in path:
            state[key] = 2

    return ForestReport(
        account_count=len(parents),
        root_keys=roots,
        cycles=cycles,
        dangling_parents=dangling,
    )
