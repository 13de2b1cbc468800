from unittest.mock import MagicMock

def test_get_photos_by_ids(client, fake_store):
    fake_store.add_photo("p1", "10.50")
    r = client.get("/api/v1/photos", params={"ids": "p1, gone"})
    assert r.status_code == 200
    data = r.json()
    assert data["missing"] == ["gone"]
    assert data["photos"] == [{
        "id": "p1",
        "filename": "p1.jpg",
        "original_name": "IMG_p1.jpg",
        "storage_path": "events/e1/p1.jpg",
        "price": 10.5,
        "event_id": "e1",
    }]

def test_get_photos_storage_down(client, fake_store):
    fake_store.fail_photos = True
    r = client.get("/api/v1/photos", params={"ids": "p1"})
    assert r.status_code == 503
    assert "detail" in r.json()

def test_my_purchases(client, fake_store):
    fake_store.purchases[("test-user", "p1")] = {"payment_id": "pay", "photo_id": "p1", "user_id": "test-user"}
    fake_store.purchases[("other", "p2")] = {"payment_id": "pay", "photo_id": "p2", "user_id": "other"}
    r = client.get("/api/v1/photos/purchases")
    assert r.status_code == 200
    assert r.json() == {"photo_ids": ["p1"]}
    assert fake_store.purchase_tokens == ["fake-token"]

def test_my_purchases_reads_through_user_scoped_client(client, monkeypatch):
    tokens = []
    user_client = MagicMock()
    user_client.table.return_value.select.return_value.eq.return_value.execute.return_value.data = [{"photo_id": "p9"}]

    def fake_user_supabase(token):
        tokens.append(token)
        return user_client

    anon = MagicMock()
    monkeypatch.setattr("storefront.infra.supabase_client.get_user_supabase", fake_user_supabase)
    monkeypatch.setattr("storefront.infra.supabase_client.get_supabase", lambda: anon)
    r = client.get("/api/v1/photos/purchases")
    assert r.status_code == 200
    assert r.json() == {"photo_ids": ["p9"]}
    assert tokens == ["fake-token"]
    anon.table.assert_not_called()

def test_health(client):
    assert client.get("/health").json() == {"ok": True}
    assert client.get("/health/supabase").json() == {"connect_ok": True}
    assert client.get("/health/rate-limit").status_code == 200

def test_security_headers(client):
    r = client.get("/health")
    assert r.headers.get("X-Content-Type-Options") == "nosniff"
    assert "Content-Security-Policy" in r.headers
