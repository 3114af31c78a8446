"""In-memory stand-in for the supabase-py client used across the test suite."""

from __future__ import annotations

import uuid
from types import SimpleNamespace
from typing import Any

import pytest


class FakeQuery:
    def __init__(self, client: "FakeSupabase", table: str) -> None:
        self.client = client
        self.table = table
        self.op = "select"
        self.payload: Any = None
        self.on_conflict = "id"
        self.filters: list[tuple[str, Any]] = []
        self.order_by: tuple[str, bool] | None = None
        self.row_limit: int | None = None
        self.single_mode: str | None = None

    def select(self, columns: str = "*", **kwargs) -> "FakeQuery":
        return self

    def insert(self, payload: dict) -> "FakeQuery":
        self.op, self.payload = "insert", payload
        return self

    def upsert(self, payload: dict, on_conflict: str = "id", **kwargs) -> "FakeQuery":
        self.op, self.payload, self.on_conflict = "upsert", payload, on_conflict
        return self

    def update(self, payload: dict) -> "FakeQuery":
        self.op, self.payload = "update", payload
        return self

    def delete(self) -> "FakeQuery":
        self.op = "delete"
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append((column, value))
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self.order_by = (column, desc)
        return self

    def limit(self, count: int) -> "FakeQuery":
        self.row_limit = count
        return self

    def maybe_single(self) -> "FakeQuery":
        self.single_mode = "maybe"
        return self

    def _matches(self, row: dict) -> bool:
        return all(row.get(column) == value for column, value in self.filters)

    def execute(self):
        self.client.calls.append((self.table, self.op, self.payload, list(self.filters)))
        failure = self.client.failures.get((self.table, self.op))
        if failure is not None:
            raise failure

        rows = self.client.tables.setdefault(self.table, [])

        if self.op == "select":
            found = [dict(row) for row in rows if self._matches(row)]
            if self.order_by:
                column, desc = self.order_by
                found.sort(key=lambda row: row.get(column) or "", reverse=desc)
            if self.row_limit is not None:
                found = found[: self.row_limit]
            if self.single_mode == "maybe":
                # supabase-py returns no response at all for an empty maybe_single()
                return SimpleNamespace(data=found[0]) if found else None
            return SimpleNamespace(data=found)

        if self.op == "insert":
            row = dict(self.payload)
            row.setdefault("id", str(uuid.uuid4()))
            rows.append(row)
            return SimpleNamespace(data=[dict(row)])

        if self.op == "upsert":
            columns = [column.strip() for column in self.on_conflict.split(",")]
            for row in rows:
                if all(row.get(column) == self.payload[column] for column in columns):
                    row.update(self.payload)
                    return SimpleNamespace(data=[dict(row)])
            row = dict(self.payload)
            row.setdefault("id", str(uuid.uuid4()))
            rows.append(row)
            return SimpleNamespace(data=[dict(row)])

        if self.op == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(self.payload)
                    updated.append(dict(row))
            return SimpleNamespace(data=updated)

        if self.op == "delete":
            removed = [row for row in rows if self._matches(row)]
            self.client.tables[self.table] = [row for row in rows if not self._matches(row)]
            return SimpleNamespace(data=removed)

        raise AssertionError(f"unsupported op {self.op}")


class FakeAuth:
    def __init__(self) -> None:
        self.user = None
        self.error: Exception | None = None

    def get_user(self, jwt: str | None = None):
        if self.error is not None:
            raise self.error
        if self.user is None:
            return None
        return SimpleNamespace(user=self.user)


class FakePostgrest:
    def __init__(self) -> None:
        self.token: str | None = None

    def auth(self, token: str) -> None:
        self.token = token


class FakeSupabase:
    def __init__(self) -> None:
        self.tables: dict[str, list[dict]] = {}
        self.failures: dict[tuple[str, str], Exception] = {}
        self.calls: list[tuple[str, str, Any, list]] = []
        self.auth = FakeAuth()
        self.postgrest = FakePostgrest()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    from_ = table

    def sign_in(self, user_id: str = "user-1", email: str | None = "student@thi.de", full_name: str | None = None):
        self.auth.user = SimpleNamespace(
            id=user_id,
            email=email,
            user_metadata={"full_name": full_name} if full_name else {},
        )
        return self.auth.user

    def row(self, table: str, row_id: str) -> dict | None:
        return next((row for row in self.tables.get(table, []) if row.get("id") == row_id), None)


@pytest.fixture()
def supabase() -> FakeSupabase:
    return FakeSupabase()
