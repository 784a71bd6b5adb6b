# app/core/roles.py

"""
역할 가중치(Role Weight) 기반 권한 판단 모듈입니다.

세 개의 독립적인 역할 계층(시스템, 조직, 작업장)에 속한 각 역할에
정수 가중치를 부여하고, 모든 권한 판단을 정수 비교로 환원합니다.

- has_sufficient_weight: 최소 역할 조건 (>=)
- outranks: 엄격한 상위 여부 (>)
- allowed_roles_at_or_below: 호출자가 볼 수 있는 역할 집합
- check_role_change / check_role_grant / check_can_manage: 역할 부여/변경/해제 시 권한 상승 방지 규칙

시스템 SUPERADMIN의 우회(bypass)는 가중치 테이블에 들어가지 않으며,
호출하는 쪽에서 is_superadmin()으로 먼저 확인해야 합니다.
"""

from enum import Enum
from types import MappingProxyType
from typing import Dict, FrozenSet, Mapping, Type, TypeVar


# =============================================================================
# 1. 역할 계층 Enum
# =============================================================================
class SystemRole(str, Enum):
    """시스템 전역 역할"""
    USER = "USER"
    SUPPORT = "SUPPORT"
    SUPERADMIN = "SUPERADMIN"


class OrgRole(str, Enum):
    """조직(Organization) 내 역할"""
    VIEWER = "VIEWER"
    MEMBER = "MEMBER"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"
    OWNER = "OWNER"


class WorkplaceRole(str, Enum):
    """작업장(Workplace) 내 역할"""
    VISITOR = "VISITOR"
    WORKER = "WORKER"
    SUPERVISOR = "SUPERVISOR"
    WORKPLACE_MANAGER = "WORKPLACE_MANAGER"


RoleT = TypeVar("RoleT", SystemRole, OrgRole, WorkplaceRole)


# =============================================================================
# 2. 예외
# =============================================================================
class RoleHierarchyError(TypeError):
    """다른 계층의 역할(또는 역할이 아닌 값)이 전달된 경우. 호출 측 버그입니다."""


class RoleAuthorizationError(Exception):
    """역할 부여/변경/해제 규칙 위반의 공통 부모 예외 (HTTP 403으로 변환)."""


class InsufficientRankError(RoleAuthorizationError):
    """호출자가 대상의 현재 역할보다 엄격히 높지 않은 경우."""


class RoleEscalationError(RoleAuthorizationError):
    """호출자 자신과 같거나 높은 역할을 부여하려는 경우."""


# =============================================================================
# 3. 가중치 테이블
# =============================================================================
def _build_weights(hierarchy: Type[Enum], weights: Dict[Enum, int]) -> Mapping[Enum, int]:
    """
    가중치 테이블이 해당 Enum의 모든 멤버를 빠짐없이 포함하고,
    가중치가 서로 겹치지 않는지(엄격한 전순서) 모듈 로드 시점에 검증합니다.
    """
    missing = set(hierarchy) - set(weights)
    if missing:
        raise RuntimeError(
            f"Weight table for {hierarchy.__name__} is missing roles: {sorted(m.value for m in missing)}"
        )
    foreign = [role for role in weights if not isinstance(role, hierarchy)]
    if foreign:
        raise RuntimeError(f"Weight table for {hierarchy.__name__} contains foreign roles: {foreign}")
    if len(set(weights.values())) != len(weights):
        raise RuntimeError(f"Weight table for {hierarchy.__name__} has duplicate weights")
    return MappingProxyType(dict(weights))


SYSTEM_ROLE_WEIGHTS = _build_weights(SystemRole, {
    SystemRole.USER: 0,
    SystemRole.SUPPORT: 500,
    SystemRole.SUPERADMIN: 1000,
})

ORG_ROLE_WEIGHTS = _build_weights(OrgRole, {
    OrgRole.VIEWER: 20,
    OrgRole.MEMBER: 40,
    OrgRole.MANAGER: 60,
    OrgRole.ADMIN: 80,
    OrgRole.OWNER: 100,
})

WORKPLACE_ROLE_WEIGHTS = _build_weights(WorkplaceRole, {
    WorkplaceRole.VISITOR: 10,
    WorkplaceRole.WORKER: 20,
    WorkplaceRole.SUPERVISOR: 30,
    WorkplaceRole.WORKPLACE_MANAGER: 40,
})

_WEIGHT_TABLES: Mapping[type, Mapping[Enum, int]] = MappingProxyType({
    SystemRole: SYSTEM_ROLE_WEIGHTS,
    OrgRole: ORG_ROLE_WEIGHTS,
    WorkplaceRole: WORKPLACE_ROLE_WEIGHTS,
})


# =============================================================================
# 4. 기본 비교 함수
# =============================================================================
def weight(hierarchy: Type[RoleT], role: RoleT) -> int:
    """
    주어진 계층에서 역할의 가중치를 반환합니다.
    계층에 속하지 않는 값이 들어오면 RoleHierarchyError를 발생시킵니다.
    """
    table = _WEIGHT_TABLES.get(hierarchy)
    if table is None:
        raise RoleHierarchyError(f"Unknown role hierarchy: {hierarchy!r}")
    if not isinstance(role, hierarchy):
        raise RoleHierarchyError(f"{role!r} is not a member of {hierarchy.__name__}")
    return table[role]


def has_sufficient_weight(hierarchy: Type[RoleT], caller_role: RoleT, required_role: RoleT) -> bool:
    """호출자 역할이 요구 역할 이상인지 (weight(caller) >= weight(required))."""
    return weight(hierarchy, caller_role) >= weight(hierarchy, required_role)


def outranks(hierarchy: Type[RoleT], caller_role: RoleT, target_role: RoleT) -> bool:
    """호출자 역할이 대상 역할보다 엄격히 높은지 (동급은 False)."""
    return weight(hierarchy, caller_role) > weight(hierarchy, target_role)


def allowed_roles_at_or_below(hierarchy: Type[RoleT], caller_role: RoleT) -> FrozenSet[RoleT]:
    """호출자 가중치 이하인 계층 내 모든 역할. 멤버/작업자 목록 필터링에 사용합니다."""
    caller_weight = weight(hierarchy, caller_role)
    return frozenset(role for role in hierarchy if weight(hierarchy, role) <= caller_weight)


def highest_role(hierarchy: Type[RoleT]) -> RoleT:
    """계층 내 최상위 역할 (SUPERADMIN이 해당 계층에서 행사하는 역할)."""
    table = _WEIGHT_TABLES.get(hierarchy)
    if table is None:
        raise RoleHierarchyError(f"Unknown role hierarchy: {hierarchy!r}")
    return max(table, key=table.__getitem__)


def is_superadmin(system_role: SystemRole) -> bool:
    """조직/작업장 가중치 검사 이전에 확인하는 SUPERADMIN 우회 조건."""
    if not isinstance(system_role, SystemRole):
        raise RoleHierarchyError(f"{system_role!r} is not a member of SystemRole")
    return system_role is SystemRole.SUPERADMIN


# =============================================================================
# 5. 역할 부여/변경/해제 규칙
# =============================================================================
def check_can_manage(hierarchy: Type[RoleT], caller_role: RoleT, target_role: RoleT) -> None:
    """호출자가 대상의 현재 역할보다 엄격히 높아야 합니다 (제거/역할 변경 공통 조건)."""
    if not outranks(hierarchy, caller_role, target_role):
        raise InsufficientRankError(
            f"Insufficient rank: {caller_role.value} cannot manage a {target_role.value}."
        )


def check_role_grant(hierarchy: Type[RoleT], caller_role: RoleT, new_role: RoleT) -> None:
    """부여하려는 역할은 호출자 자신의 역할보다 엄격히 낮아야 합니다."""
    if weight(hierarchy, new_role) >= weight(hierarchy, caller_role):
        raise RoleEscalationError(
            f"Role escalation attempt: {caller_role.value} cannot grant {new_role.value}."
        )


def check_role_change(
    hierarchy: Type[RoleT], caller_role: RoleT, target_current_role: RoleT, new_role: RoleT
) -> None:
    """
    대상의 역할을 new_role로 바꿀 수 있는지 검사합니다.

    (a) 호출자가 대상의 현재 역할보다 엄격히 높고,
    (b) new_role의 가중치가 호출자보다 엄격히 낮아야 합니다.
    위반 시 각각 InsufficientRankError / RoleEscalationError를 발생시킵니다.
    """
    check_can_manage(hierarchy, caller_role, target_current_role)
    check_role_grant(hierarchy, caller_role, new_role)
