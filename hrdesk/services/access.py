"""Role-based visibility and mutation rules for todos, leaves, projects, links
and daily reports.

Every rule is a pure function of the acting user and the targeted record (or
the filter the caller asked for). Nothing here touches the database: list
actions return a :class:`RecordFilter` for the caller to execute, record
actions return an allow/deny :class:`AccessDecision`.

Rules live in one table keyed by ``(resource kind, action, role)``. A missing
entry raises ``KeyError`` so a new role or action cannot silently fall through
to "allowed".
"""

from __future__ import annotations

import enum
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from hrdesk.exceptions import ForbiddenError
from hrdesk.models import Role


@dataclass(frozen=True)
class Actor:
    id: int
    role: Role

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> Actor:
        return cls(id=int(claims["sub"]), role=Role(claims["role"]))


class ResourceKind(str, enum.Enum):
    TODO = "todo"
    LEAVE = "leave"
    PROJECT = "project"
    LINK = "link"
    REPORT = "report"


class Action(str, enum.Enum):
    LIST = "list"
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    UPDATE_STATUS = "update_status"
    REVIEW = "review"


class Op(str, enum.Enum):
    EQ = "eq"
    IS_NOT_TRUE = "is_not_true"
    HAS_MEMBER = "has_member"


def _read_field(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


@dataclass(frozen=True)
class Condition:
    field: str
    op: Op
    value: Any = None

    def matches(self, record: Any) -> bool:
        current = _read_field(record, self.field)
        if self.op is Op.EQ:
            return current == self.value
        if self.op is Op.IS_NOT_TRUE:
            return current is not True
        if self.op is Op.HAS_MEMBER:
            members = current or ()
            return any(getattr(member, "id", member) == self.value for member in members)
        raise ValueError(f"Unsupported filter operation: {self.op}")


@dataclass(frozen=True)
class RecordFilter:
    """Conjunction of conditions narrowing a collection."""

    conditions: tuple[Condition, ...] = ()

    def narrow(self, field_name: str, value: Any) -> RecordFilter:
        return RecordFilter(self.conditions + (Condition(field_name, Op.EQ, value),))

    def matches(self, record: Any) -> bool:
        return all(condition.matches(record) for condition in self.conditions)

    @property
    def is_unrestricted(self) -> bool:
        return not self.conditions


UNRESTRICTED = RecordFilter()


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    filter: RecordFilter | None = None
    reason: str | None = None

    @classmethod
    def allow(cls, record_filter: RecordFilter = UNRESTRICTED) -> AccessDecision:
        return cls(allowed=True, filter=record_filter)

    @classmethod
    def deny(cls, reason: str) -> AccessDecision:
        return cls(allowed=False, reason=reason)

    def require(self) -> RecordFilter:
        if not self.allowed:
            raise ForbiddenError(self.reason or "Insufficient permissions.")
        return self.filter or UNRESTRICTED


@dataclass(frozen=True)
class AccessRequest:
    actor: Actor
    resource_kind: ResourceKind
    action: Action
    requested_filter: Mapping[str, Any] = field(default_factory=dict)
    target: Any = None


Rule = Callable[[AccessRequest], AccessDecision]


def _own_todos(actor: Actor) -> RecordFilter:
    return RecordFilter(
        (
            Condition("employee_id", Op.EQ, actor.id),
            Condition("is_hidden_for_employee", Op.IS_NOT_TRUE),
        )
    )


def _assigned_todos(actor: Actor) -> RecordFilter:
    return RecordFilter((Condition("assigned_by", Op.EQ, actor.id),))


def _narrow_requested(base: RecordFilter, request: AccessRequest, *keys: str) -> RecordFilter:
    narrowed = base
    for key in keys:
        value = request.requested_filter.get(key)
        if value is not None and value != "":
            narrowed = narrowed.narrow(key, value)
    return narrowed


def _list_rule(scope: Callable[[Actor], RecordFilter], *passthrough: str) -> Rule:
    def rule(request: AccessRequest) -> AccessDecision:
        return AccessDecision.allow(_narrow_requested(scope(request.actor), request, *passthrough))

    return rule


def _record_rule(scope: Callable[[Actor], RecordFilter], reason: str) -> Rule:
    def rule(request: AccessRequest) -> AccessDecision:
        if scope(request.actor).matches(request.target):
            return AccessDecision.allow()
        return AccessDecision.deny(reason)

    return rule


def _always(request: AccessRequest) -> AccessDecision:
    return AccessDecision.allow()


def _never(reason: str) -> Rule:
    def rule(request: AccessRequest) -> AccessDecision:
        return AccessDecision.deny(reason)

    return rule


def _unrestricted(actor: Actor) -> RecordFilter:
    return UNRESTRICTED


def _owned_by(field_name: str) -> Callable[[Actor], RecordFilter]:
    def scope(actor: Actor) -> RecordFilter:
        return RecordFilter((Condition(field_name, Op.EQ, actor.id),))

    return scope


def _member_of(actor: Actor) -> RecordFilter:
    return RecordFilter((Condition("team_members", Op.HAS_MEMBER, actor.id),))


_TODO, _LEAVE, _PROJECT = ResourceKind.TODO, ResourceKind.LEAVE, ResourceKind.PROJECT
_LINK, _REPORT = ResourceKind.LINK, ResourceKind.REPORT
_EMP, _ADM, _SUP = Role.EMPLOYEE, Role.ADMIN, Role.SUPER_ADMIN

RULES: dict[tuple[ResourceKind, Action, Role], Rule] = {
    # Todos
    (_TODO, Action.LIST, _EMP): _list_rule(_own_todos),
    (_TODO, Action.LIST, _ADM): _list_rule(_assigned_todos, "employee_id"),
    (_TODO, Action.LIST, _SUP): _list_rule(_unrestricted, "employee_id"),
    (_TODO, Action.READ, _EMP): _record_rule(_own_todos, "You can only view your own todos"),
    (_TODO, Action.READ, _ADM): _record_rule(_assigned_todos, "You can only view todos you assigned"),
    (_TODO, Action.READ, _SUP): _always,
    (_TODO, Action.CREATE, _EMP): _never("Employees cannot assign todos"),
    (_TODO, Action.CREATE, _ADM): _always,
    (_TODO, Action.CREATE, _SUP): _always,
    (_TODO, Action.UPDATE, _EMP): _record_rule(_owned_by("employee_id"), "You can only update your own todos"),
    (_TODO, Action.UPDATE, _ADM): _record_rule(_assigned_todos, "You can only update todos you assigned"),
    (_TODO, Action.UPDATE, _SUP): _always,
    (_TODO, Action.DELETE, _EMP): _never("Employees cannot delete todos"),
    (_TODO, Action.DELETE, _ADM): _record_rule(_assigned_todos, "You can only delete todos you assigned"),
    (_TODO, Action.DELETE, _SUP): _always,
    (_TODO, Action.UPDATE_STATUS, _EMP): _record_rule(
        _owned_by("employee_id"), "You can only update your own todos"
    ),
    (_TODO, Action.UPDATE_STATUS, _ADM): _record_rule(_assigned_todos, "You can only update todos you assigned"),
    (_TODO, Action.UPDATE_STATUS, _SUP): _always,
    # Leaves
    (_LEAVE, Action.LIST, _EMP): _list_rule(_owned_by("employee_id")),
    (_LEAVE, Action.LIST, _ADM): _list_rule(_unrestricted, "employee_id"),
    (_LEAVE, Action.LIST, _SUP): _list_rule(_unrestricted, "employee_id"),
    (_LEAVE, Action.READ, _EMP): _record_rule(_owned_by("employee_id"), "You can only view your own leaves"),
    (_LEAVE, Action.READ, _ADM): _always,
    (_LEAVE, Action.READ, _SUP): _always,
    (_LEAVE, Action.CREATE, _EMP): _record_rule(
        _owned_by("employee_id"), "You can only request leave for yourself"
    ),
    (_LEAVE, Action.CREATE, _ADM): _always,
    (_LEAVE, Action.CREATE, _SUP): _always,
    (_LEAVE, Action.UPDATE, _EMP): _record_rule(_owned_by("employee_id"), "You can only update your own leaves"),
    (_LEAVE, Action.UPDATE, _ADM): _always,
    (_LEAVE, Action.UPDATE, _SUP): _always,
    (_LEAVE, Action.DELETE, _EMP): _record_rule(_owned_by("employee_id"), "You can only delete your own leaves"),
    (_LEAVE, Action.DELETE, _ADM): _always,
    (_LEAVE, Action.DELETE, _SUP): _always,
    (_LEAVE, Action.REVIEW, _EMP): _never("Employees cannot approve or reject leaves"),
    (_LEAVE, Action.REVIEW, _ADM): _always,
    (_LEAVE, Action.REVIEW, _SUP): _always,
    # Projects
    (_PROJECT, Action.LIST, _EMP): _list_rule(_member_of),
    (_PROJECT, Action.LIST, _ADM): _list_rule(_unrestricted),
    (_PROJECT, Action.LIST, _SUP): _list_rule(_unrestricted),
    (_PROJECT, Action.READ, _EMP): _record_rule(_member_of, "You are not a member of this project"),
    (_PROJECT, Action.READ, _ADM): _always,
    (_PROJECT, Action.READ, _SUP): _always,
    (_PROJECT, Action.CREATE, _EMP): _never("Employees cannot create projects"),
    (_PROJECT, Action.CREATE, _ADM): _always,
    (_PROJECT, Action.CREATE, _SUP): _always,
    (_PROJECT, Action.UPDATE, _EMP): _never("Employees cannot update projects"),
    (_PROJECT, Action.UPDATE, _ADM): _always,
    (_PROJECT, Action.UPDATE, _SUP): _always,
    (_PROJECT, Action.DELETE, _EMP): _never("Employees cannot delete projects"),
    (_PROJECT, Action.DELETE, _ADM): _always,
    (_PROJECT, Action.DELETE, _SUP): _always,
    # Links
    (_LINK, Action.LIST, _EMP): _list_rule(_unrestricted),
    (_LINK, Action.LIST, _ADM): _list_rule(_unrestricted),
    (_LINK, Action.LIST, _SUP): _list_rule(_unrestricted),
    (_LINK, Action.READ, _EMP): _always,
    (_LINK, Action.READ, _ADM): _always,
    (_LINK, Action.READ, _SUP): _always,
    (_LINK, Action.CREATE, _EMP): _always,
    (_LINK, Action.CREATE, _ADM): _always,
    (_LINK, Action.CREATE, _SUP): _always,
    (_LINK, Action.UPDATE, _EMP): _record_rule(_owned_by("created_by"), "You can only update links you added"),
    (_LINK, Action.UPDATE, _ADM): _always,
    (_LINK, Action.UPDATE, _SUP): _always,
    (_LINK, Action.DELETE, _EMP): _record_rule(_owned_by("created_by"), "You can only delete links you added"),
    (_LINK, Action.DELETE, _ADM): _always,
    (_LINK, Action.DELETE, _SUP): _always,
    # Daily reports
    (_REPORT, Action.LIST, _EMP): _list_rule(_owned_by("employee_id")),
    (_REPORT, Action.LIST, _ADM): _list_rule(_unrestricted, "employee_id"),
    (_REPORT, Action.LIST, _SUP): _list_rule(_unrestricted, "employee_id"),
    (_REPORT, Action.READ, _EMP): _record_rule(_owned_by("employee_id"), "You can only view your own reports"),
    (_REPORT, Action.READ, _ADM): _always,
    (_REPORT, Action.READ, _SUP): _always,
    (_REPORT, Action.CREATE, _EMP): _always,
    (_REPORT, Action.CREATE, _ADM): _always,
    (_REPORT, Action.CREATE, _SUP): _always,
    (_REPORT, Action.UPDATE, _EMP): _record_rule(_owned_by("employee_id"), "You can only update your own reports"),
    (_REPORT, Action.UPDATE, _ADM): _always,
    (_REPORT, Action.UPDATE, _SUP): _always,
}


class AuthorizationFilterBuilder:
    def __init__(self, rules: Mapping[tuple[ResourceKind, Action, Role], Rule] | None = None):
        self._rules = dict(RULES if rules is None else rules)

    def decide(self, request: AccessRequest) -> AccessDecision:
        rule = self._rules[(request.resource_kind, request.action, request.actor.role)]
        return rule(request)

    def _list(self, actor: Actor, kind: ResourceKind, requested: Mapping[str, Any] | None) -> AccessDecision:
        return self.decide(AccessRequest(actor, kind, Action.LIST, requested_filter=dict(requested or {})))

    def _on(self, actor: Actor, kind: ResourceKind, action: Action, target: Any = None) -> AccessDecision:
        return self.decide(AccessRequest(actor, kind, action, target=target))

    # Todos

    def todo_list(self, actor: Actor, *, employee_id: int | None = None) -> AccessDecision:
        return self._list(actor, ResourceKind.TODO, {"employee_id": employee_id})

    def todo_read(self, actor: Actor, todo: Any) -> AccessDecision:
        return self._on(actor, ResourceKind.TODO, Action.READ, todo)

    def todo_create(self, actor: Actor) -> AccessDecision:
        return self._on(actor, ResourceKind.TODO, Action.CREATE)

    def todo_update(self, actor: Actor, todo: Any) -> AccessDecision:
        return self._on(actor, ResourceKind.TODO, Action.UPDATE, todo)

    def todo_delete(self, actor: Actor, todo: Any) -> AccessDecision:
        return self._on(actor, ResourceKind.TODO, Action.DELETE, todo)

    def todo_update_status(self, actor: Actor, todo: Any) -> AccessDecision:
        return self._on(actor, ResourceKind.TODO, Action.UPDATE_STATUS, todo)

    def todo_bulk_update_status(self, actor: Actor, todos: Iterable[Any]) -> AccessDecision:
        """All-or-nothing: the first todo the actor may not touch denies the batch."""
        for todo in todos:
            decision = self.todo_update_status(actor, todo)
            if not decision.allowed:
                return decision
        return AccessDecision.allow()

    # Leaves

    def leave_list(self, actor: Actor, *, employee_id: int | None = None) -> AccessDecision:
        return self._list(actor, ResourceKind.LEAVE, {"employee_id": employee_id})

    def leave_read(self, actor: Actor, leave: Any) -> AccessDecision:
        return self._on(actor, ResourceKind.LEAVE, Action.READ, leave)

    def leave_create(self, actor: Actor, *, employee_id: int) -> AccessDecision:
        return self._on(actor, ResourceKind.LEAVE, Action.CREATE, {"employee_id": employee_id})

    def leave_update(self, actor: Actor, leave: Any) -> AccessDecision:
        return self._on(actor, ResourceKind.LEAVE, Action.UPDATE, leave)

    def leave_delete(self, actor: Actor, leave: Any) -> AccessDecision:
        return self._on(actor, ResourceKind.LEAVE, Action.DELETE, leave)

    def leave_review(self, actor: Actor, leave: Any) -> AccessDecision:
        return self._on(actor, ResourceKind.LEAVE, Action.REVIEW, leave)

    # Projects

    def project_list(self, actor: Actor) -> AccessDecision:
        return self._list(actor, ResourceKind.PROJECT, None)

    def project_read(self, actor: Actor, project: Any) -> AccessDecision:
        return self._on(actor, ResourceKind.PROJECT, Action.READ, project)

    def project_create(self, actor: Actor) -> AccessDecision:
        return self._on(actor, ResourceKind.PROJECT, Action.CREATE)

    def project_update(self, actor: Actor, project: Any) -> AccessDecision:
        return self._on(actor, ResourceKind.PROJECT, Action.UPDATE, project)

    def project_delete(self, actor: Actor, project: Any) -> AccessDecision:
        return self._on(actor, ResourceKind.PROJECT, Action.DELETE, project)

    # Links

    def link_list(self, actor: Actor) -> AccessDecision:
        return self._list(actor, ResourceKind.LINK, None)

    def link_read(self, actor: Actor, link: Any) -> AccessDecision:
        return self._on(actor, ResourceKind.LINK, Action.READ, link)

    def link_create(self, actor: Actor) -> AccessDecision:
        return self._on(actor, ResourceKind.LINK, Action.CREATE)

    def link_update(self, actor: Actor, link: Any) -> AccessDecision:
        return self._on(actor, ResourceKind.LINK, Action.UPDATE, link)

    def link_delete(self, actor: Actor, link: Any) -> AccessDecision:
        return self._on(actor, ResourceKind.LINK, Action.DELETE, link)

    # Daily reports

    def report_list(self, actor: Actor, *, employee_id: int | None = None) -> AccessDecision:
        return self._list(actor, ResourceKind.REPORT, {"employee_id": employee_id})

    def report_read(self, actor: Actor, report: Any) -> AccessDecision:
        return self._on(actor, ResourceKind.REPORT, Action.READ, report)

    def report_create(self, actor: Actor) -> AccessDecision:
        return self._on(actor, ResourceKind.REPORT, Action.CREATE)

    def report_update(self, actor: Actor, report: Any) -> AccessDecision:
        return self._on(actor, ResourceKind.REPORT, Action.UPDATE, report)


authorization = AuthorizationFilterBuilder()
