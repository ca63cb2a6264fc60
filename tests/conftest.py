import os

# Settings are read at import time; set them before any app import
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")
os.environ.setdefault("BILLING_CRON_SECRET", "test-cron-secret")
os.environ.setdefault("RESEND_API_KEY", "re_test_key")

import copy
import itertools
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Dict, List
from unittest.mock import MagicMock

import pytest

from app.features.billing.repositories import BillingRepositories
from app.infra.gateways import GatewayPayment

BASE_TIME = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeQuery:
    """Mimics the subset of the postgrest query builder the repositories use"""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.op = "select"
        self.payload: Any = None
        self.filters: List = []
        self.order_by = None
        self.limit_n = None

    def select(self, *args, **kwargs):
        self.op = "select"
        return self

    def insert(self, payload):
        self.op = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.op = "update"
        self.payload = payload
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        self.filters.append(lambda row: row.get(column) in list(values))
        return self

    def is_(self, column, value):
        assert value == "null"
        self.filters.append(lambda row: row.get(column) is None)
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, n):
        self.limit_n = n
        return self

    def _matches(self, row) -> bool:
        return all(check(row) for check in self.filters)

    def execute(self):
        if self.table in self.db.failing_tables:
            raise RuntimeError(f"table {self.table} unavailable")

        rows = self.db.tables.setdefault(self.table, [])

        if self.op == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for item in items:
                row = dict(item)
                row.setdefault("id", str(uuid.uuid4()))
                row.setdefault("created_at", self.db.next_timestamp())
                rows.append(row)
                inserted.append(copy.deepcopy(row))
            self.db.writes.append((self.table, "insert", len(inserted)))
            return SimpleNamespace(data=inserted)

        if self.op == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(copy.deepcopy(self.payload))
                    updated.append(copy.deepcopy(row))
            self.db.writes.append((self.table, "update", len(updated)))
            return SimpleNamespace(data=updated)

        result = [copy.deepcopy(row) for row in rows if self._matches(row)]
        if self.order_by:
            column, desc = self.order_by
            result.sort(key=lambda row: (row.get(column) is not None, str(row.get(column) or "")), reverse=desc)
        if self.limit_n is not None:
            result = result[: self.limit_n]
        return SimpleNamespace(data=result)


class FakeSupabase:
    """In-memory stand-in for supabase.Client"""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.writes: List = []
        self.failing_tables = set()
        self._clock = itertools.count(1)
        self.auth = MagicMock()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def next_timestamp(self) -> str:
        return (BASE_TIME + timedelta(seconds=next(self._clock))).isoformat()

    def seed(self, table: str, **row) -> Dict[str, Any]:
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", self.next_timestamp())
        self.tables.setdefault(table, []).append(row)
        return row

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.get(table, [])

    def row(self, table: str, row_id: str) -> Dict[str, Any]:
        return next(row for row in self.rows(table) if row["id"] == row_id)


@pytest.fixture
def fake_db() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def repos(fake_db) -> BillingRepositories:
    return BillingRepositories(fake_db)


@pytest.fixture
def now() -> datetime:
    return BASE_TIME + timedelta(days=1)


@pytest.fixture
def gateway_credentials(fake_db):
    return fake_db.seed(
        "master_payment_gateways",
        gateway_name="mercadopago",
        is_active=True,
        is_default=True,
        mercadopago_access_token="APP_USR-test-token",
        pagbank_token="pagbank-test-token",
        pagbank_email="billing@storefront.com.br",
    )


@pytest.fixture
def make_subscription(fake_db):
    def _make(**overrides):
        row = {
            "user_id": "user-1",
            "plan_id": "pro",
            "billing_cycle": "monthly",
            "status": "pending",
            "gateway": "mercadopago",
            "monthly_price": 49.9,
            "total_amount": 49.9,
            "retry_count": 0,
            "no_charge": False,
            "requires_card_update": False,
        }
        row.update(overrides)
        return fake_db.seed("master_subscriptions", **row)
    return _make


@pytest.fixture
def make_payment(fake_db):
    def _make(subscription, **overrides):
        row = {
            "subscription_id": subscription["id"],
            "user_id": subscription["user_id"],
            "gateway": "mercadopago",
            "gateway_payment_id": "mp-1001",
            "status": "pending",
            "payment_method": "credit_card",
            "amount": 49.9,
        }
        row.update(overrides)
        return fake_db.seed("master_subscription_payments", **row)
    return _make


def gateway_payment(status: str, status_detail: str = None, payment_id: str = "mp-1001", **raw) -> GatewayPayment:
    return GatewayPayment(
        id=payment_id,
        status=status,
        status_detail=status_detail,
        raw={"id": payment_id, "status": status, "status_detail": status_detail, **raw},
    )


@pytest.fixture
def make_gateway_payment():
    return gateway_payment
