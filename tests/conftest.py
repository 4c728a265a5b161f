import os
import uuid
from datetime import datetime, timezone
from typing import Generator, Dict, Any, List, Optional, Tuple
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from postgrest.types import ReturnMethod

# Désactive l'init fastapi-limiter (évite toute connexion Redis pendant les tests)
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

from partyhub.app import app as fastapi_app
from partyhub.auth.models import AuthContext
from partyhub.utils.security import require_user, require_admin

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)

# --- Fake Supabase (PostgREST en mémoire) ---

# (table, ressource embarquée) -> (colonne locale, colonne distante, plusieurs lignes?)
RELATIONS: Dict[Tuple[str, str], Tuple[str, str, bool]] = {
    ("bookings", "service_packages"): ("package_id", "id", False),
    ("bookings", "profiles"): ("user_id", "id", False),
    ("bookings", "payments"): ("id", "booking_id", True),
    ("service_packages", "package_features"): ("id", "package_id", True),
}

UNIQUE: Dict[str, List[str]] = {
    "payments": ["transaction_id", "booking_id"],
    "profiles": ["id"],
}

# Tables sans policy SELECT pour le client anonyme (RLS): insert autorisé, relecture refusée
ANON_WRITE_ONLY = {"contact_submissions"}

# on delete cascade: table parente -> [(table enfant, colonne de référence)]
CASCADES: Dict[str, List[Tuple[str, str]]] = {
    "service_packages": [("package_features", "package_id")],
}

class FakeResponse:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count

def _split_columns(columns: str) -> List[str]:
    parts, depth, current = [], 0, ""
    for ch in columns:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append(current.strip())
            current = ""
        else:
            current += ch
    if current.strip():
        parts.append(current.strip())
    return parts

def _matches(value, expected) -> bool:
    return value == expected or (value is not None and str(value) == str(expected))

class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str, kind: str):
        self.db = db
        self.table_name = table
        self.kind = kind
        self.op = "select"
        self.columns = "*"
        self.count_mode = None
        self.filters: List[Tuple[str, str, Any]] = []
        self.order_by: Optional[Tuple[str, bool]] = None
        self.limit_n: Optional[int] = None
        self.payload: Any = None
        self.on_conflict: Optional[str] = None
        self.returning = ReturnMethod.representation

    # builder
    def select(self, columns: str = "*", count: Optional[str] = None):
        self.columns = columns
        self.count_mode = count
        return self

    def eq(self, col, value):
        self.filters.append(("eq", col, value))
        return self

    def in_(self, col, values):
        self.filters.append(("in", col, list(values)))
        return self

    def order(self, col, desc: bool = False):
        self.order_by = (col, desc)
        return self

    def limit(self, n: int):
        self.limit_n = n
        return self

    def insert(self, payload, returning: ReturnMethod = ReturnMethod.representation):
        self.op, self.payload, self.returning = "insert", payload, returning
        return self

    def update(self, payload):
        self.op, self.payload = "update", payload
        return self

    def delete(self):
        self.op = "delete"
        return self

    def upsert(self, payload, on_conflict: Optional[str] = None):
        self.op, self.payload, self.on_conflict = "upsert", payload, on_conflict
        return self

    # exécution
    def _rows(self) -> List[dict]:
        return self.db.tables.setdefault(self.table_name, [])

    def _filtered(self) -> List[dict]:
        out = []
        for row in self._rows():
            ok = True
            for kind, col, value in self.filters:
                if kind == "eq" and not _matches(row.get(col), value):
                    ok = False
                elif kind == "in" and not any(_matches(row.get(col), v) for v in value):
                    ok = False
            if ok:
                out.append(row)
        return out

    def _check_unique(self, row: dict, ignore: Optional[dict] = None):
        for col in UNIQUE.get(self.table_name, []):
            if row.get(col) is None:
                continue
            for other in self._rows():
                if other is not ignore and _matches(other.get(col), row.get(col)):
                    raise Exception(f'duplicate key value violates unique constraint "{self.table_name}_{col}_key"')

    def _new_row(self, payload: dict) -> dict:
        row = dict(payload)
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        self._check_unique(row)
        self._rows().append(row)
        return row

    def _embed(self, row: dict, name: str, cols: str):
        local, remote, many = RELATIONS[(self.table_name, name)]
        related = [r for r in self.db.tables.get(name, []) if _matches(r.get(remote), row.get(local))]
        wanted = [c.strip() for c in cols.split(",") if c.strip()]
        project = (lambda r: dict(r)) if wanted == ["*"] else (lambda r: {c: r.get(c) for c in wanted})
        if many:
            return [project(r) for r in related]
        return project(related[0]) if related else None

    def _project(self, row: dict) -> dict:
        out: Dict[str, Any] = {}
        for item in _split_columns(self.columns):
            if "(" in item:
                name, cols = item.split("(", 1)
                out[name.strip()] = self._embed(row, name.strip(), cols.rstrip(")"))
            elif item == "*":
                out.update(row)
            else:
                out[item] = row.get(item)
        return out

    def execute(self) -> FakeResponse:
        self.db.calls.append((self.kind, self.table_name, self.op))
        if (self.table_name, self.op) in self.db.fail_on:
            raise Exception(f"simulated failure on {self.table_name}.{self.op}")

        if self.op == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            wants_rows = self.returning == ReturnMethod.representation
            if wants_rows and self.kind == "anon" and self.table_name in ANON_WRITE_ONLY:
                raise Exception(f'new row violates row-level security policy for table "{self.table_name}" (42501)')
            rows = [dict(self._new_row(p)) for p in items]
            return FakeResponse(rows if wants_rows else [])

        if self.op == "update":
            rows = self._filtered()
            for row in rows:
                row.update(self.payload)
            return FakeResponse([dict(r) for r in rows])

        if self.op == "delete":
            rows = self._filtered()
            self.db.tables[self.table_name] = [r for r in self._rows() if r not in rows]
            for child, ref in CASCADES.get(self.table_name, []):
                ids = [r.get("id") for r in rows]
                self.db.tables[child] = [c for c in self.db.tables.get(child, []) if c.get(ref) not in ids]
            return FakeResponse([dict(r) for r in rows])

        if self.op == "upsert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            keys = [k.strip() for k in (self.on_conflict or "id").split(",")]
            out = []
            for p in items:
                existing = next(
                    (r for r in self._rows() if all(_matches(r.get(k), p.get(k)) for k in keys)),
                    None,
                )
                if existing is not None:
                    merged = dict(existing, **p)
                    self._check_unique(merged, ignore=existing)
                    existing.update(p)
                    out.append(dict(existing))
                else:
                    out.append(dict(self._new_row(p)))
            return FakeResponse(out)

        rows = self._filtered()
        total = len(rows)
        if self.order_by:
            col, desc = self.order_by
            rows = sorted(
                rows,
                key=lambda r: (r.get(col) is None, r.get(col) if r.get(col) is not None else 0),
                reverse=desc,
            )
        if self.limit_n is not None:
            rows = rows[: self.limit_n]
        return FakeResponse([self._project(r) for r in rows], count=total if self.count_mode else None)

class FakeClient:
    def __init__(self, db: "FakeSupabase", kind: str):
        self.db = db
        self.kind = kind
        self.auth = db.auth

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self.db, name, self.kind)

class FakeSupabase:
    """Base en mémoire partagée par les clients anon / user / service."""
    def __init__(self):
        self.tables: Dict[str, List[dict]] = {}
        self.calls: List[Tuple[str, str, str]] = []
        self.fail_on: set = set()
        self.auth = MagicMock()

    def seed(self, table: str, *rows: dict) -> List[dict]:
        stored = []
        for r in rows:
            row = dict(r)
            row.setdefault("id", str(uuid.uuid4()))
            row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
            self.tables.setdefault(table, []).append(row)
            stored.append(row)
        return stored

    def rows(self, table: str) -> List[dict]:
        return self.tables.get(table, [])

    def writes(self, table: Optional[str] = None) -> List[Tuple[str, str, str]]:
        return [c for c in self.calls if c[2] != "select" and (table is None or c[1] == table)]

@pytest.fixture
def fake_db(monkeypatch) -> FakeSupabase:
    db = FakeSupabase()
    import partyhub.infra.supabase_client as supabase_client
    monkeypatch.setattr(supabase_client, "get_supabase", lambda: FakeClient(db, "anon"))
    monkeypatch.setattr(supabase_client, "get_service_supabase", lambda: FakeClient(db, "service"))
    monkeypatch.setattr(supabase_client, "get_user_supabase", lambda token: FakeClient(db, f"user:{token}"))
    return db

# --- Application / identités ---

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

@pytest.fixture
def user_ctx() -> AuthContext:
    return AuthContext("user-1", email="user1@example.com", role="user", token="user-token")

@pytest.fixture
def admin_ctx() -> AuthContext:
    return AuthContext("admin-1", email="admin@example.com", role="admin", token="admin-token")

@pytest.fixture
def as_user(app, user_ctx):
    """Authentifie les requêtes en tant que user_ctx (override de require_user)."""
    app.dependency_overrides[require_user] = lambda: user_ctx
    yield user_ctx
    app.dependency_overrides.pop(require_user, None)

@pytest.fixture
def as_admin(app, admin_ctx):
    app.dependency_overrides[require_admin] = lambda: admin_ctx
    yield admin_ctx
    app.dependency_overrides.pop(require_admin, None)

@pytest.fixture
def seeded(fake_db) -> Dict[str, Any]:
    """Catalogue minimal: une offre active à 299, une inactive, et le profil de user-1."""
    active, inactive = fake_db.seed(
        "service_packages",
        {"id": "pkg-active", "title": "Premium Party", "price": 299, "capacity": 20, "is_active": True},
        {"id": "pkg-inactive", "title": "Retired Party", "price": 150, "capacity": 10, "is_active": False},
    )
    fake_db.seed(
        "package_features",
        {"package_id": "pkg-active", "feature_text": "DJ", "is_included": True},
        {"package_id": "pkg-active", "feature_text": "Fireworks", "is_included": False},
    )
    fake_db.seed("profiles", {"id": "user-1", "first_name": "Ada", "last_name": "Lovelace", "phone": "555-0100"})
    return {"active": active, "inactive": inactive}
