import os

# Avant l’import de l’app: pas de Redis en tests
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")
os.environ.pop("LOCAL_RATE_LIMIT_FALLBACK", None)

import itertools
import pytest
from typing import Generator, Dict, Any, List, Optional
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from storefront.app import app as fastapi_app
from storefront.payments import mercado_pago
from storefront.payments.repository import PaymentStorageError
from storefront.photos.repository import PhotoStorageError
from storefront.utils.security import require_user, require_admin

# Doubles de test: stockage en mémoire (repositories) et passerelle Mercado Pago

class FakeStore:
    def __init__(self):
        self.photos: Dict[str, Dict[str, Any]] = {}
        self.payments: Dict[str, Dict[str, Any]] = {}
        # clé naturelle (user_id, photo_id): un seul droit par couple
        self.purchases: Dict[tuple, Dict[str, Any]] = {}
        self.calls: List[str] = []
        self.fail_photos = False
        self.fail_upsert = False
        self.fail_link = False
        # jetons reçus par list_purchased_photo_ids
        self.purchase_tokens: List[str] = []
        self._ids = itertools.count(1)

    def add_photo(self, photo_id: str, price: float, **extra) -> Dict[str, Any]:
        row = {
            "id": photo_id,
            "filename": f"{photo_id}.jpg",
            "original_name": f"IMG_{photo_id}.jpg",
            "storage_path": f"events/e1/{photo_id}.jpg",
            "price": price,
            "event_id": "e1",
            **extra,
        }
        self.photos[photo_id] = row
        return row

    # --- photos.repository ---

    def fetch_photos_by_ids(self, ids):
        self.calls.append("fetch_photos")
        if self.fail_photos:
            raise PhotoStorageError("db down")
        return [dict(self.photos[i]) for i in ids if i in self.photos]

    def list_purchased_photo_ids(self, user_id, user_token):
        self.purchase_tokens.append(user_token)
        return [p for (u, p) in self.purchases if u == user_id]

    # --- payments.repository ---

    def insert_pending_payment(self, *, user_id, photo_ids, total_amount):
        self.calls.append("insert_payment")
        pid = f"pay-{next(self._ids)}"
        row = {
            "id": pid,
            "user_id": user_id,
            "photo_ids": list(photo_ids),
            "total_amount": total_amount,
            "status": "pending",
            "mercado_pago_preference_id": None,
            "mercado_pago_payment_id": None,
            "approved_at": None,
            "created_at": "2020-01-01T00:00:00+00:00",
        }
        self.payments[pid] = row
        return dict(row)

    def set_preference_id(self, payment_id, preference_id):
        self.calls.append("set_preference")
        if self.fail_link or payment_id not in self.payments:
            raise PaymentStorageError(f"payment {payment_id} not linked")
        self.payments[payment_id]["mercado_pago_preference_id"] = preference_id

    def update_payment_status(self, payment_id, *, status, mercado_pago_payment_id, approved_at):
        self.calls.append("update_status")
        row = self.payments.get(payment_id)
        if row is None:
            return None
        row.update({
            "status": status.value,
            "mercado_pago_payment_id": mercado_pago_payment_id,
            "approved_at": approved_at,
        })
        return dict(row)

    def get_payment(self, payment_id):
        row = self.payments.get(payment_id)
        return dict(row) if row else None

    def upsert_photo_purchases(self, rows):
        self.calls.append("upsert_purchases")
        if self.fail_upsert:
            raise PaymentStorageError("db down")
        for r in rows:
            self.purchases[(r["user_id"], r["photo_id"])] = dict(r)
        return len(rows)

    def delete_dangling_payments(self, created_before):
        doomed = [
            p for p in self.payments.values()
            if p["status"] == "pending" and not p["mercado_pago_preference_id"] and p["created_at"] < created_before
        ]
        for p in doomed:
            del self.payments[p["id"]]
        return doomed

    def install(self, monkeypatch) -> None:
        for name in ("fetch_photos_by_ids", "list_purchased_photo_ids"):
            monkeypatch.setattr(f"storefront.photos.repository.{name}", getattr(self, name))
        for name in (
            "insert_pending_payment",
            "set_preference_id",
            "update_payment_status",
            "get_payment",
            "upsert_photo_purchases",
            "delete_dangling_payments",
        ):
            monkeypatch.setattr(f"storefront.payments.repository.{name}", getattr(self, name))

class FakeGateway:
    def __init__(self):
        self.preferences: List[Dict[str, Any]] = []
        self.payments: Dict[str, Dict[str, Any]] = {}
        self.fail_create: Optional[int] = None
        self.fail_get: Optional[int] = None
        self.get_calls: List[str] = []

    def create_preference(self, preference, idempotency_key=None):
        if self.fail_create is not None:
            raise mercado_pago.MercadoPagoError("refused", status_code=self.fail_create)
        pref_id = f"pref-{len(self.preferences) + 1}"
        self.preferences.append(preference)
        return {"id": pref_id, "init_point": f"https://www.mercadopago.test/checkout?pref_id={pref_id}"}

    def get_payment(self, payment_id):
        self.get_calls.append(payment_id)
        if self.fail_get is not None:
            raise mercado_pago.MercadoPagoError("unavailable", status_code=self.fail_get)
        if payment_id not in self.payments:
            raise mercado_pago.MercadoPagoError("not found", status_code=404)
        return dict(self.payments[payment_id])

    def settle(self, mp_payment_id: str, external_reference: Optional[str], status: str) -> None:
        """Enregistre un paiement côté passerelle, tel que GET /v1/payments/{id} le renverra."""
        self.payments[mp_payment_id] = {
            "id": mp_payment_id,
            "status": status,
            "external_reference": external_reference,
        }

    def install(self, monkeypatch) -> None:
        monkeypatch.setattr(mercado_pago, "create_preference", self.create_preference)
        monkeypatch.setattr(mercado_pago, "get_payment", self.get_payment)

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)
        elif "tests/functional/" in nodeid:
            item.add_marker(pytest.mark.functional)

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

TEST_USER: Dict[str, Any] = {
    "id": "test-user",
    "email": "test@example.com",
    "role": "user",
    "metadata": {"full_name": "Test User"},
    "token": "fake-token",
}

# Simuler un utilisateur authentifié pour les endpoints protégés
@pytest.fixture(autouse=True)
def _override_require_user(app):
    app.dependency_overrides[require_user] = lambda: dict(TEST_USER)
    try:
        yield
    finally:
        app.dependency_overrides.pop(require_user, None)

@pytest.fixture
def admin_client(app, client):
    app.dependency_overrides[require_admin] = lambda: {"id": "admin-user-id", "role": "admin", "email": "admin@example.com"}
    yield client
    app.dependency_overrides.pop(require_admin, None)

# Aucun accès réseau à Supabase pendant les tests
@pytest.fixture(autouse=True)
def mock_supabase_clients(monkeypatch):
    monkeypatch.setattr("storefront.infra.supabase_client.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("storefront.infra.supabase_client.get_service_supabase", lambda: MagicMock())
    monkeypatch.setattr("storefront.infra.supabase_client.get_user_supabase", lambda token: MagicMock())
    monkeypatch.setattr("storefront.health.service.health_supabase_info", lambda: {"connect_ok": True})

@pytest.fixture
def fake_store(monkeypatch) -> FakeStore:
    """Tables photos / payments / photo_purchases en mémoire, branchées à la place des repositories."""
    store = FakeStore()
    store.install(monkeypatch)
    return store

@pytest.fixture
def fake_gateway(monkeypatch) -> FakeGateway:
    """Mercado Pago simulé: préférences créées et paiements consultables par id."""
    gateway = FakeGateway()
    gateway.install(monkeypatch)
    return gateway
