"""Partial-update statements built from closed, static column whitelists.

Payload keys are only ever used to look up a ``Column``; the column names that
end up in SQL always come from the ``Table`` definitions in this module.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from common.codec import FieldShape, encode_field

from chambita.errors import NoFieldsToUpdate


class FieldKind(str, Enum):
    TEXT = "text"
    FLOAT = "float"
    BOOL = "bool"
    DATETIME = "datetime"
    JSON_LIST = "json_list"
    JSON_OBJECT = "json_object"

    @property
    def shape(self) -> FieldShape | None:
        if self is FieldKind.JSON_LIST:
            return FieldShape.LIST
        if self is FieldKind.JSON_OBJECT:
            return FieldShape.OBJECT
        return None


@dataclass(frozen=True)
class Column:
    name: str
    kind: FieldKind = FieldKind.TEXT


@dataclass(frozen=True)
class Table:
    name: str
    columns: tuple[Column, ...]
    owner_column: str | None = None
    tracks_updates: bool = True
    read_only_columns: tuple[Column, ...] = ()

    @property
    def structured_columns(self) -> tuple[Column, ...]:
        return tuple(
            column
            for column in (*self.columns, *self.read_only_columns)
            if column.kind.shape is not None
        )


def _text_columns(*names: str) -> tuple[Column, ...]:
    return tuple(Column(name) for name in names)


USERS = Table(
    name="users",
    read_only_columns=(Column("reviews", FieldKind.JSON_LIST),),
    columns=(
        *_text_columns("name", "phone_intl", "city", "career", "specialty", "summary"),
        Column("languages", FieldKind.JSON_LIST),
        Column("certificates", FieldKind.JSON_LIST),
        Column("skills", FieldKind.JSON_LIST),
        Column("experiences", FieldKind.JSON_LIST),
        Column("service_categories", FieldKind.JSON_LIST),
        Column("is_profile_public", FieldKind.BOOL),
        Column("previous_works", FieldKind.JSON_LIST),
        *_text_columns("company_name", "tax_id"),
    ),
)

COMPANIES = Table(
    name="companies",
    columns=_text_columns(
        "name",
        "region",
        "department",
        "city",
        "address",
        "sector",
        "phone",
        "email",
        "website",
        "description",
        "employee_count",
        "founded_year",
    ),
)

JOB_POSTS = Table(
    name="job_posts",
    columns=(
        *_text_columns("title", "description", "city", "type", "modality"),
        Column("requirements", FieldKind.JSON_LIST),
        Column("obligations", FieldKind.JSON_LIST),
    ),
    owner_column="employer_id",
)

JOB_OPPORTUNITIES = Table(
    name="job_opportunities",
    columns=(
        *_text_columns(
            "department",
            "sector",
            "company_name",
            "position",
            "city",
            "address",
            "phone",
            "email",
            "website",
            "description",
            "requirements",
            "salary",
            "schedule",
            "contract_type",
            "benefits",
            "experience",
            "contact_person",
        ),
        Column("additional_data", FieldKind.JSON_OBJECT),
    ),
)

EMPLOYEES = Table(
    name="employees",
    columns=(
        *_text_columns("name", "position", "email", "phone", "department"),
        Column("salary", FieldKind.FLOAT),
        *_text_columns("status", "photo_url", "address"),
        Column("hire_date", FieldKind.DATETIME),
    ),
)

MEMORANDUMS = Table(name="memorandums", columns=(), tracks_updates=False)
RECOGNITIONS = Table(name="recognitions", columns=(), tracks_updates=False)

EMPRENDIMIENTOS = Table(
    name="emprendimientos",
    columns=(
        *_text_columns("name", "description"),
        Column("products", FieldKind.JSON_LIST),
        *_text_columns("phone", "image1_url", "image2_url"),
    ),
    owner_column="owner_id",
)


def to_storage(column: Column, value: Any) -> Any:
    if value is None:
        return None
    if column.kind.shape is not None:
        return encode_field(value)
    if column.kind is FieldKind.BOOL:
        return int(bool(value))
    if column.kind is FieldKind.FLOAT:
        return float(value)
    if column.kind is FieldKind.DATETIME:
        return str(value)
    return value


@dataclass(frozen=True)
class UpdateStatement:
    sql: str
    params: tuple[Any, ...]
    columns: tuple[str, ...]


def build_update(
    table: Table,
    changes: Mapping[str, Any],
    *,
    row_id: str,
    updated_at: str,
    owner_id: str | None = None,
) -> UpdateStatement:
    """Build an UPDATE for the whitelisted fields present in ``changes``.

    Keys absent from ``changes`` are left untouched; a present ``None`` clears
    the column. With ``owner_id`` the statement only matches rows owned by it.
    """
    assignments: list[str] = []
    params: list[Any] = []
    touched: list[str] = []
    for column in table.columns:
        if column.name not in changes:
            continue
        assignments.append(f"{column.name} = ?")
        params.append(to_storage(column, changes[column.name]))
        touched.append(column.name)

    if not assignments:
        raise NoFieldsToUpdate()

    if table.tracks_updates:
        assignments.append("updated_at = ?")
        params.append(updated_at)

    where = "id = ?"
    params.append(row_id)
    if owner_id is not None:
        if table.owner_column is None:
            raise ValueError(f"Table {table.name} has no owner column")
        where += f" AND {table.owner_column} = ?"
        params.append(owner_id)

    sql = f"UPDATE {table.name} SET {', '.join(assignments)} WHERE {where}"
    return UpdateStatement(sql=sql, params=tuple(params), columns=tuple(touched))
