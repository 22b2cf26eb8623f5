from __future__ import annotations

import logging
import os
import re
import sqlite3
import tempfile
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Any, TypeVar

from common.codec import FieldShape, decode_or_default, encode_field
from common.utils import generate_id, now_utc_iso
from pydantic import BaseModel

from chambita.errors import ApiError, Conflict, Forbidden, InternalError, NotFound
from chambita.models import (
    Company,
    CompanyCreateRequest,
    Employee,
    EmployeeCreateRequest,
    EmployeeDetail,
    Emprendimiento,
    EmprendimientoCreateRequest,
    JobOpportunity,
    JobOpportunityCreateRequest,
    JobPost,
    JobPostCreateRequest,
    Memorandum,
    MemorandumCreateRequest,
    Recognition,
    RecognitionCreateRequest,
    RegisterRequest,
    UserProfile,
)
from chambita.updates import (
    COMPANIES,
    EMPLOYEES,
    EMPRENDIMIENTOS,
    JOB_OPPORTUNITIES,
    JOB_POSTS,
    MEMORANDUMS,
    RECOGNITIONS,
    USERS,
    Table,
    build_update,
    to_storage,
)

LOGGER = logging.getLogger("chambita.repository")
DEFAULT_DB_PATH = os.path.join(tempfile.gettempdir(), "chambita", "chambita.sqlite3")
ANONYMOUS_AUTHOR = "Anonymous"
LIKE_SPECIAL = re.compile(r"[\\%_]")

ModelT = TypeVar("ModelT", bound=BaseModel)

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    role TEXT NOT NULL CHECK (role IN ('seeker', 'serviceSeeker', 'employer')),
    name TEXT NOT NULL,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    phone_intl TEXT,
    city TEXT,
    career TEXT,
    specialty TEXT,
    summary TEXT,
    languages TEXT,
    certificates TEXT,
    skills TEXT,
    experiences TEXT,
    service_categories TEXT,
    is_profile_public INTEGER NOT NULL DEFAULT 1,
    previous_works TEXT,
    reviews TEXT,
    rating REAL,
    company_name TEXT,
    tax_id TEXT,
    is_employer_verified INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS companies (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    region TEXT,
    department TEXT,
    city TEXT,
    address TEXT,
    sector TEXT,
    phone TEXT,
    email TEXT,
    website TEXT,
    description TEXT,
    employee_count TEXT,
    founded_year TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS job_posts (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    description TEXT NOT NULL,
    city TEXT NOT NULL,
    employer_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    type TEXT NOT NULL CHECK (type IN ('fullTime', 'partTime')),
    modality TEXT NOT NULL CHECK (modality IN ('onsite', 'remote', 'hybrid')),
    requirements TEXT,
    obligations TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_job_posts_employer ON job_posts (employer_id);

CREATE TABLE IF NOT EXISTS job_opportunities (
    id TEXT PRIMARY KEY,
    department TEXT NOT NULL,
    sector TEXT NOT NULL,
    company_name TEXT NOT NULL,
    position TEXT,
    city TEXT,
    address TEXT,
    phone TEXT,
    email TEXT,
    website TEXT,
    description TEXT,
    requirements TEXT,
    salary TEXT,
    schedule TEXT,
    contract_type TEXT,
    benefits TEXT,
    experience TEXT,
    contact_person TEXT,
    additional_data TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS employees (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    position TEXT NOT NULL,
    email TEXT NOT NULL,
    phone TEXT,
    hire_date TEXT NOT NULL,
    department TEXT NOT NULL,
    salary REAL NOT NULL CHECK (salary >= 0),
    status TEXT NOT NULL DEFAULT 'active'
        CHECK (status IN ('active', 'inactive', 'suspended')),
    photo_url TEXT,
    address TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS memorandums (
    id TEXT PRIMARY KEY,
    employee_id TEXT NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    description TEXT NOT NULL,
    date TEXT NOT NULL,
    severity TEXT NOT NULL CHECK (severity IN ('leve', 'grave', 'muy_grave')),
    issued_by TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_memorandums_employee ON memorandums (employee_id);

CREATE TABLE IF NOT EXISTS recognitions (
    id TEXT PRIMARY KEY,
    employee_id TEXT NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    description TEXT NOT NULL,
    date TEXT NOT NULL,
    type TEXT NOT NULL,
    issued_by TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_recognitions_employee ON recognitions (employee_id);

CREATE TABLE IF NOT EXISTS emprendimientos (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT,
    products TEXT,
    phone TEXT,
    owner_id TEXT REFERENCES users(id) ON DELETE SET NULL,
    image1_url TEXT,
    image2_url TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_emprendimientos_owner ON emprendimientos (owner_id);
"""


def _translate_integrity_error(exc: sqlite3.IntegrityError) -> ApiError:
    message = str(exc)
    if "UNIQUE" in message:
        return Conflict("Resource already exists", details=message)
    if "FOREIGN KEY" in message:
        return NotFound("Referenced resource not found", details=message)
    return InternalError(details=message)


class Filters:
    """Accumulates ``AND`` clauses for list queries over fixed column names."""

    def __init__(self) -> None:
        self.clauses: list[str] = []
        self.params: list[Any] = []

    def equals(self, column: str, value: Any) -> Filters:
        if value is not None and value != "":
            self.clauses.append(f"{column} = ?")
            self.params.append(value)
        return self

    def search(self, columns: tuple[str, ...], term: str | None) -> Filters:
        if term:
            like = " OR ".join(f"{column} LIKE ? ESCAPE '\\'" for column in columns)
            self.clauses.append(f"({like})")
            pattern = "%" + LIKE_SPECIAL.sub(r"\\\g<0>", term) + "%"
            self.params.extend(pattern for _ in columns)
        return self

    @property
    def where(self) -> str:
        if not self.clauses:
            return ""
        return " WHERE " + " AND ".join(self.clauses)


class MarketplaceRepository:
    def __init__(self, database_path: str) -> None:
        self.database_path = Path(database_path)
        self._connection: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    @property
    def connection(self) -> sqlite3.Connection:
        if self._connection is None:
            raise RuntimeError("Database connection is not initialized")
        return self._connection

    def connect(self) -> None:
        with self._lock:
            if self._connection is not None:
                return
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
            self._connection = sqlite3.connect(self.database_path, check_same_thread=False)
            self._connection.row_factory = sqlite3.Row
            self._connection.execute("PRAGMA foreign_keys=ON")
            self._connection.executescript(SCHEMA)
            self._connection.commit()
            LOGGER.info("connected to %s", self.database_path)

    def close(self) -> None:
        with self._lock:
            if self._connection is None:
                return
            self._connection.close()
            self._connection = None
            LOGGER.info("closed connection to %s", self.database_path)

    def ping(self) -> bool:
        with self._lock:
            try:
                self.connection.execute("SELECT 1").fetchone()
            except (RuntimeError, sqlite3.Error):
                return False
            return True

    # Generic row helpers

    @staticmethod
    def _decode_row(table: Table, row: sqlite3.Row | Mapping[str, Any]) -> dict[str, Any]:
        data = dict(row)
        for column in table.structured_columns:
            if column.name in data:
                data[column.name] = decode_or_default(data[column.name], column.kind.shape)
        return data

    def _fetch_row(self, table: Table, row_id: str) -> sqlite3.Row | None:
        return self.connection.execute(
            f"SELECT * FROM {table.name} WHERE id = ?",
            (row_id,),
        ).fetchone()

    def _fetch_model(self, table: Table, model: type[ModelT], row_id: str) -> ModelT | None:
        with self._lock:
            row = self._fetch_row(table, row_id)
        if row is None:
            return None
        return model(**self._decode_row(table, row))

    def _list_models(
        self,
        table: Table,
        model: type[ModelT],
        filters: Filters,
        order_by: str,
    ) -> list[ModelT]:
        with self._lock:
            rows = self.connection.execute(
                f"SELECT * FROM {table.name}{filters.where} ORDER BY {order_by}",
                tuple(filters.params),
            ).fetchall()
        return [model(**self._decode_row(table, row)) for row in rows]

    def _insert(
        self,
        table: Table,
        data: Mapping[str, Any],
        extra: Mapping[str, Any],
    ) -> str:
        row_id = generate_id()
        now = now_utc_iso()
        values: dict[str, Any] = {"id": row_id}
        for column in table.columns:
            if column.name in data:
                values[column.name] = to_storage(column, data[column.name])
        values.update(extra)
        values["created_at"] = now
        if table.tracks_updates:
            values["updated_at"] = now

        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        with self._lock:
            try:
                with self.connection:
                    self.connection.execute(
                        f"INSERT INTO {table.name} ({columns}) VALUES ({placeholders})",
                        tuple(values.values()),
                    )
            except sqlite3.IntegrityError as exc:
                raise _translate_integrity_error(exc) from exc
        return row_id

    def check_owner(self, table: Table, row_id: str, subject_id: str) -> None:
        if table.owner_column is None:
            raise ValueError(f"Table {table.name} has no owner column")
        with self._lock:
            row = self.connection.execute(
                f"SELECT {table.owner_column} AS owner FROM {table.name} WHERE id = ?",
                (row_id,),
            ).fetchone()
        if row is None:
            raise NotFound()
        if row["owner"] != subject_id:
            raise Forbidden()

    def update_row(self, table: Table, row_id: str, changes: Mapping[str, Any]) -> None:
        statement = build_update(table, changes, row_id=row_id, updated_at=now_utc_iso())
        with self._lock:
            self._execute_update(statement.sql, statement.params)

    def update_owned(
        self,
        table: Table,
        row_id: str,
        subject_id: str,
        changes: Mapping[str, Any],
    ) -> None:
        statement = build_update(
            table,
            changes,
            row_id=row_id,
            updated_at=now_utc_iso(),
            owner_id=subject_id,
        )
        with self._lock:
            self.check_owner(table, row_id, subject_id)
            self._execute_update(statement.sql, statement.params)

    def _execute_update(self, sql: str, params: tuple[Any, ...]) -> None:
        try:
            with self.connection:
                cursor = self.connection.execute(sql, params)
        except sqlite3.IntegrityError as exc:
            raise _translate_integrity_error(exc) from exc
        if cursor.rowcount == 0:
            raise NotFound()

    def delete_row(self, table: Table, row_id: str) -> bool:
        with self._lock, self.connection:
            cursor = self.connection.execute(f"DELETE FROM {table.name} WHERE id = ?", (row_id,))
        return cursor.rowcount > 0

    def delete_owned(self, table: Table, row_id: str, subject_id: str) -> None:
        with self._lock:
            self.check_owner(table, row_id, subject_id)
            with self.connection:
                cursor = self.connection.execute(
                    f"DELETE FROM {table.name} WHERE id = ? AND {table.owner_column} = ?",
                    (row_id, subject_id),
                )
            if cursor.rowcount == 0:
                raise NotFound()

    # Users

    def email_exists(self, email: str) -> bool:
        with self._lock:
            row = self.connection.execute(
                "SELECT 1 FROM users WHERE email = ?",
                (email,),
            ).fetchone()
        return row is not None

    def create_user(self, payload: RegisterRequest, password_hash: str) -> UserProfile:
        user_id = self._insert(
            USERS,
            payload.model_dump(exclude={"email", "password", "role"}),
            {"role": payload.role, "email": payload.email, "password_hash": password_hash},
        )
        user = self.get_user(user_id)
        if user is None:
            raise InternalError("User vanished after creation")
        return user

    def get_user(self, user_id: str) -> UserProfile | None:
        return self._fetch_model(USERS, UserProfile, user_id)

    def get_user_credentials(self, email: str) -> tuple[UserProfile, str] | None:
        with self._lock:
            row = self.connection.execute(
                "SELECT * FROM users WHERE email = ?",
                (email,),
            ).fetchone()
        if row is None:
            return None
        data = self._decode_row(USERS, row)
        password_hash = data.pop("password_hash")
        return UserProfile(**data), password_hash

    def get_password_hash(self, user_id: str) -> str | None:
        with self._lock:
            row = self.connection.execute(
                "SELECT password_hash FROM users WHERE id = ?",
                (user_id,),
            ).fetchone()
        return row["password_hash"] if row else None

    def set_password_hash(self, user_id: str, password_hash: str) -> bool:
        with self._lock, self.connection:
            cursor = self.connection.execute(
                "UPDATE users SET password_hash = ?, updated_at = ? WHERE id = ?",
                (password_hash, now_utc_iso(), user_id),
            )
        return cursor.rowcount > 0

    def list_users(
        self,
        *,
        role: str | None = None,
        city: str | None = None,
        is_profile_public: bool | None = None,
        search: str | None = None,
    ) -> list[UserProfile]:
        public_flag = None if is_profile_public is None else int(is_profile_public)
        filters = (
            Filters()
            .equals("role", role)
            .equals("city", city)
            .equals("is_profile_public", public_flag)
            .search(("name", "email", "career", "specialty"), search)
        )
        return self._list_models(USERS, UserProfile, filters, "created_at ASC, id ASC")

    def add_review(
        self,
        user_id: str,
        *,
        author_id: str,
        comment: str,
        rating: float,
    ) -> float:
        with self._lock:
            target = self.connection.execute(
                "SELECT reviews FROM users WHERE id = ?",
                (user_id,),
            ).fetchone()
            if target is None:
                raise NotFound("User not found")
            author = self.connection.execute(
                "SELECT name FROM users WHERE id = ?",
                (author_id,),
            ).fetchone()

            reviews = decode_or_default(target["reviews"], FieldShape.LIST)
            reviews.append(
                {
                    "author": author["name"] if author else ANONYMOUS_AUTHOR,
                    "comment": comment,
                    "rating": rating,
                    "date": now_utc_iso(),
                }
            )
            average = sum(_review_rating(review) for review in reviews) / len(reviews)

            with self.connection:
                self.connection.execute(
                    "UPDATE users SET reviews = ?, rating = ?, updated_at = ? WHERE id = ?",
                    (encode_field(reviews), average, now_utc_iso(), user_id),
                )
        return average

    # Companies

    def create_company(self, payload: CompanyCreateRequest) -> str:
        return self._insert(COMPANIES, payload.model_dump(), {})

    def get_company(self, company_id: str) -> Company | None:
        return self._fetch_model(COMPANIES, Company, company_id)

    def list_companies(
        self,
        *,
        department: str | None = None,
        city: str | None = None,
        sector: str | None = None,
        region: str | None = None,
        search: str | None = None,
    ) -> list[Company]:
        filters = (
            Filters()
            .equals("department", department)
            .equals("city", city)
            .equals("sector", sector)
            .equals("region", region)
            .search(("name", "description", "sector"), search)
        )
        return self._list_models(COMPANIES, Company, filters, "name ASC")

    # Job posts

    def create_job_post(self, payload: JobPostCreateRequest, employer_id: str) -> str:
        return self._insert(JOB_POSTS, payload.model_dump(), {"employer_id": employer_id})

    def get_job_post(self, post_id: str) -> JobPost | None:
        return self._fetch_model(JOB_POSTS, JobPost, post_id)

    def list_job_posts(
        self,
        *,
        city: str | None = None,
        job_type: str | None = None,
        modality: str | None = None,
        employer_id: str | None = None,
    ) -> list[JobPost]:
        filters = (
            Filters()
            .equals("city", city)
            .equals("type", job_type)
            .equals("modality", modality)
            .equals("employer_id", employer_id)
        )
        return self._list_models(JOB_POSTS, JobPost, filters, "created_at DESC, id DESC")

    # Job opportunities

    def create_job_opportunity(self, payload: JobOpportunityCreateRequest) -> str:
        return self._insert(JOB_OPPORTUNITIES, payload.model_dump(), {})

    def get_job_opportunity(self, opportunity_id: str) -> JobOpportunity | None:
        return self._fetch_model(JOB_OPPORTUNITIES, JobOpportunity, opportunity_id)

    def list_job_opportunities(
        self,
        *,
        department: str | None = None,
        sector: str | None = None,
        city: str | None = None,
        search: str | None = None,
    ) -> list[JobOpportunity]:
        filters = (
            Filters()
            .equals("department", department)
            .equals("sector", sector)
            .equals("city", city)
            .search(("company_name", "position", "description"), search)
        )
        return self._list_models(
            JOB_OPPORTUNITIES,
            JobOpportunity,
            filters,
            "created_at DESC, id DESC",
        )

    # Employees

    def create_employee(self, payload: EmployeeCreateRequest) -> str:
        return self._insert(EMPLOYEES, payload.model_dump(), {})

    def get_employee(self, employee_id: str) -> Employee | None:
        return self._fetch_model(EMPLOYEES, Employee, employee_id)

    def get_employee_detail(self, employee_id: str) -> EmployeeDetail | None:
        with self._lock:
            row = self._fetch_row(EMPLOYEES, employee_id)
            if row is None:
                return None
            memorandums = self.list_memorandums(employee_id)
            recognitions = self.list_recognitions(employee_id)
        return EmployeeDetail(
            **self._decode_row(EMPLOYEES, row),
            memorandums=memorandums,
            recognitions=recognitions,
        )

    def list_employees(
        self,
        *,
        department: str | None = None,
        status: str | None = None,
        search: str | None = None,
    ) -> list[Employee]:
        filters = (
            Filters()
            .equals("department", department)
            .equals("status", status)
            .search(("name", "email", "position"), search)
        )
        return self._list_models(EMPLOYEES, Employee, filters, "name ASC")

    def _require_employee(self, employee_id: str) -> None:
        if self._fetch_row(EMPLOYEES, employee_id) is None:
            raise NotFound("Employee not found")

    def create_memorandum(self, employee_id: str, payload: MemorandumCreateRequest) -> str:
        with self._lock:
            self._require_employee(employee_id)
            return self._insert_child(MEMORANDUMS, employee_id, payload.model_dump())

    def create_recognition(self, employee_id: str, payload: RecognitionCreateRequest) -> str:
        with self._lock:
            self._require_employee(employee_id)
            return self._insert_child(RECOGNITIONS, employee_id, payload.model_dump())

    def _insert_child(self, table: Table, employee_id: str, data: Mapping[str, Any]) -> str:
        # Child tables have no mutable columns, so every payload field is passed explicitly.
        extra = {
            "employee_id": employee_id,
            "title": data["title"],
            "description": data["description"],
            "date": data["date"],
            "issued_by": data["issued_by"],
        }
        if table is MEMORANDUMS:
            extra["severity"] = data["severity"]
        else:
            extra["type"] = data["type"]
        return self._insert(table, {}, extra)

    def list_memorandums(self, employee_id: str) -> list[Memorandum]:
        filters = Filters().equals("employee_id", employee_id)
        return self._list_models(MEMORANDUMS, Memorandum, filters, "date DESC, id DESC")

    def list_recognitions(self, employee_id: str) -> list[Recognition]:
        filters = Filters().equals("employee_id", employee_id)
        return self._list_models(RECOGNITIONS, Recognition, filters, "date DESC, id DESC")

    def delete_child(self, table: Table, employee_id: str, record_id: str) -> bool:
        with self._lock, self.connection:
            cursor = self.connection.execute(
                f"DELETE FROM {table.name} WHERE id = ? AND employee_id = ?",
                (record_id, employee_id),
            )
        return cursor.rowcount > 0

    # Emprendimientos

    def create_emprendimiento(self, payload: EmprendimientoCreateRequest, owner_id: str) -> str:
        return self._insert(EMPRENDIMIENTOS, payload.model_dump(), {"owner_id": owner_id})

    def get_emprendimiento(self, emprendimiento_id: str) -> Emprendimiento | None:
        return self._fetch_model(EMPRENDIMIENTOS, Emprendimiento, emprendimiento_id)

    def list_emprendimientos(
        self,
        *,
        owner_id: str | None = None,
        search: str | None = None,
    ) -> list[Emprendimiento]:
        filters = (
            Filters().equals("owner_id", owner_id).search(("name", "description"), search)
        )
        return self._list_models(
            EMPRENDIMIENTOS,
            Emprendimiento,
            filters,
            "created_at DESC, id DESC",
        )


def _review_rating(review: Any) -> float:
    if not isinstance(review, dict):
        return 0.0
    try:
        return float(review.get("rating", 0))
    except (TypeError, ValueError):
        return 0.0
