from __future__ import annotations

from typing import Any

from sqlalchemy import Select, or_
from sqlalchemy.orm import RelationshipProperty

from hrdesk.services.access import Op, RecordFilter


def _condition_clause(model: type[Any], field_name: str, op: Op, value: Any):
    attribute = getattr(model, field_name)
    if op is Op.EQ:
        return attribute == value
    if op is Op.IS_NOT_TRUE:
        return attribute.is_not(True)
    if op is Op.HAS_MEMBER:
        prop = attribute.property
        if not isinstance(prop, RelationshipProperty):
            raise TypeError(f"{model.__name__}.{field_name} is not a relationship")
        return attribute.any(prop.mapper.class_.id == value)
    raise ValueError(f"Unsupported filter operation: {op}")


def apply_record_filter(stmt: Select, model: type[Any], record_filter: RecordFilter) -> Select:
    for condition in record_filter.conditions:
        stmt = stmt.where(_condition_clause(model, condition.field, condition.op, condition.value))
    return stmt


def apply_search(stmt: Select, search: str | None, *columns: Any) -> Select:
    term = (search or "").strip()
    if not term:
        return stmt
    pattern = f"%{term}%"
    return stmt.where(or_(*(column.ilike(pattern) for column in columns)))
