"""Shared fakes: an in-memory Supabase client and a scripted AI provider."""

import copy
import itertools

import pytest
from postgrest.exceptions import APIError

from financetracker.providers.base import BaseProvider


class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Records the fluent PostgREST calls and replays them over in-memory rows."""

    _ops = {
        "eq": lambda a, b: a == b,
        "gt": lambda a, b: a is not None and a > b,
        "gte": lambda a, b: a is not None and a >= b,
        "lt": lambda a, b: a is not None and a < b,
        "lte": lambda a, b: a is not None and a <= b,
    }

    def __init__(self, db, table, action, payload=None):
        self.db = db
        self.table = table
        self.action = action
        self.payload = payload
        self.filters = []
        self.order_by = None
        self.limit_to = None
        self.want_single = False
        db.queries.append(self)

    def select(self, columns="*"):
        self.columns = columns
        return self

    def _filter(self, op, column, value):
        self.filters.append((op, column, value))
        return self

    def eq(self, column, value):
        return self._filter("eq", column, value)

    def gt(self, column, value):
        return self._filter("gt", column, value)

    def gte(self, column, value):
        return self._filter("gte", column, value)

    def lt(self, column, value):
        return self._filter("lt", column, value)

    def lte(self, column, value):
        return self._filter("lte", column, value)

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, n):
        self.limit_to = n
        return self

    def single(self):
        self.want_single = True
        return self

    def _matches(self, row):
        return all(self._ops[op](_comparable(row.get(col)), _comparable(val)) for op, col, val in self.filters)

    def execute(self):
        if self.table in self.db.errors:
            raise self.db.errors[self.table]

        rows = self.db.tables.setdefault(self.table, [])
        if self.action == "insert":
            record = {"id": str(next(self.db.ids)), **self.payload}
            rows.append(record)
            return FakeResponse([copy.deepcopy(record)])

        matched = [r for r in rows if self._matches(r)]
        if self.action == "update":
            for r in matched:
                r.update(self.payload)
            return FakeResponse(copy.deepcopy(matched))
        if self.action == "delete":
            self.db.tables[self.table] = [r for r in rows if r not in matched]
            return FakeResponse(copy.deepcopy(matched))

        if self.order_by:
            column, desc = self.order_by
            matched = sorted(matched, key=lambda r: str(r.get(column) or ""), reverse=desc)
        if self.limit_to is not None:
            matched = matched[: self.limit_to]
        if self.want_single:
            if len(matched) != 1:
                raise APIError({
                    "message": "JSON object requested, multiple (or no) rows returned",
                    "code": "PGRST116",
                    "hint": None,
                    "details": f"The result contains {len(matched)} rows",
                })
            return FakeResponse(copy.deepcopy(matched[0]))
        return FakeResponse(copy.deepcopy(matched))


def _comparable(value):
    return str(value) if value is not None and not isinstance(value, (int, float, bool)) else value


class FakeTable:
    def __init__(self, db, name):
        self.db = db
        self.name = name

    def select(self, columns="*"):
        return FakeQuery(self.db, self.name, "select").select(columns)

    def insert(self, payload):
        return FakeQuery(self.db, self.name, "insert", payload)

    def update(self, payload):
        return FakeQuery(self.db, self.name, "update", payload)

    def delete(self):
        return FakeQuery(self.db, self.name, "delete")


class FakeBucket:
    def __init__(self, storage, name):
        self.storage = storage
        self.name = name

    def upload(self, path, content, file_options=None):
        self.storage.uploads.append({"bucket": self.name, "path": path, "content": content, "options": file_options})
        return {"Key": f"{self.name}/{path}"}

    def get_public_url(self, path):
        return f"https://example.supabase.co/storage/v1/object/public/{self.name}/{path}"


class FakeStorage:
    def __init__(self):
        self.uploads = []

    def from_(self, bucket):
        return FakeBucket(self, bucket)


class FakeSupabase:
    def __init__(self, tables=None):
        self.tables = copy.deepcopy(tables or {})
        self.errors = {}
        self.queries = []
        self.ids = itertools.count(1000)
        self.storage = FakeStorage()

    def table(self, name):
        return FakeTable(self, name)


class FakeProvider(BaseProvider):
    """Replies with a fixed text (or failure) and remembers every request."""

    def __init__(self, text="", status="success", error=None):
        self.text = text
        self.status = status
        self.error = error
        self.calls = []

    @property
    def name(self) -> str:
        return "fake"

    async def generate(self, prompt, attachments=None, model=None) -> dict:
        self.calls.append({"prompt": prompt, "attachments": attachments, "model": model})
        if self.status != "success":
            return self._result(model, error=self.error or "upstream failure")
        return self._result(model, text=self.text)


@pytest.fixture
def fake_db():
    return FakeSupabase()


@pytest.fixture
def fake_provider():
    return FakeProvider()
