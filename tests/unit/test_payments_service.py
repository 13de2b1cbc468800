import pytest
from fastapi import HTTPException

from storefront.payments import service

BASE = "https://shop.test"

def _create(ids, user_id="u1"):
    return service.create_payment_preference(photo_ids=ids, user_id=user_id, base_url=BASE)

# --- create_payment_preference ---

def test_empty_selection_writes_nothing(fake_store, fake_gateway):
    with pytest.raises(HTTPException) as exc:
        _create([])
    assert exc.value.status_code == 400
    assert fake_store.payments == {}
    assert fake_gateway.preferences == []

def test_zero_total_is_rejected_before_insert(fake_store, fake_gateway):
    fake_store.add_photo("p1", 0)
    with pytest.raises(HTTPException) as exc:
        _create(["p1"])
    assert exc.value.status_code == 400
    assert fake_store.payments == {}

def test_price_comes_from_store_only(fake_store, fake_gateway):
    fake_store.add_photo("p1", 10)
    fake_store.add_photo("p2", 0)
    res = _create(["p1", "p2", "unknown"])
    payment = fake_store.payments[res["payment_id"]]
    assert payment["total_amount"] == 10.0
    assert payment["photo_ids"] == ["p1", "p2"]
    assert payment["status"] == "pending"
    pref = fake_gateway.preferences[0]
    assert pref["items"][0]["unit_price"] == 10.0
    assert pref["items"][0]["title"] == "Fotos (2 fotos)"
    assert pref["external_reference"] == res["payment_id"]

def test_payment_row_inserted_before_gateway(fake_store, fake_gateway):
    fake_store.add_photo("p1", 10)
    res = _create(["p1"])
    assert fake_store.calls == ["fetch_photos", "insert_payment", "set_preference"]
    assert fake_store.payments[res["payment_id"]]["mercado_pago_preference_id"] == res["preference_id"]
    assert res["init_point"].startswith("https://")

def test_gateway_failure_leaves_pending_row(fake_store, fake_gateway):
    fake_store.add_photo("p1", 10)
    fake_gateway.fail_create = 400
    with pytest.raises(HTTPException) as exc:
        _create(["p1"])
    assert exc.value.status_code == 500
    [payment] = fake_store.payments.values()
    assert payment["status"] == "pending"
    assert payment["mercado_pago_preference_id"] is None

def test_preference_link_failure_is_500(fake_store, fake_gateway):
    fake_store.add_photo("p1", 10)
    fake_store.fail_link = True
    with pytest.raises(HTTPException) as exc:
        _create(["p1"])
    assert exc.value.status_code == 500
    # la préférence existe chez Mercado Pago mais son init_point n’est jamais rendu
    assert len(fake_gateway.preferences) == 1
    [payment] = fake_store.payments.values()
    assert payment["mercado_pago_preference_id"] is None

def test_photo_storage_failure_is_500(fake_store, fake_gateway):
    fake_store.fail_photos = True
    with pytest.raises(HTTPException) as exc:
        _create(["p1"])
    assert exc.value.status_code == 500
    assert fake_store.payments == {}

def test_each_call_creates_new_payment(fake_store, fake_gateway):
    fake_store.add_photo("p1", 10)
    a = _create(["p1"])
    b = _create(["p1"])
    assert a["payment_id"] != b["payment_id"]
    assert len(fake_store.payments) == 2

# --- reconcile_notification ---

def _approved_payment(fake_store, fake_gateway, status="approved"):
    fake_store.add_photo("p1", 10)
    fake_store.add_photo("p2", 0)
    res = _create(["p1", "p2"])
    fake_gateway.settle("mp-1", res["payment_id"], status)
    return res["payment_id"]

def test_non_payment_type_is_ignored(fake_store, fake_gateway):
    assert service.reconcile_notification("merchant_order", "1") == {"status": "ignored"}
    assert fake_gateway.get_calls == []
    assert fake_store.calls == []

def test_approved_grants_every_photo(fake_store, fake_gateway):
    payment_id = _approved_payment(fake_store, fake_gateway)
    res = service.reconcile_notification("payment", "mp-1")
    assert res["payment_status"] == "approved"
    assert res["entitled"] == 2
    payment = fake_store.payments[payment_id]
    assert payment["status"] == "approved"
    assert payment["mercado_pago_payment_id"] == "mp-1"
    assert payment["approved_at"]
    assert set(fake_store.purchases) == {("u1", "p1"), ("u1", "p2")}
    # statut écrit avant les droits
    assert fake_store.calls.index("update_status") < fake_store.calls.index("upsert_purchases")

def test_replayed_approval_keeps_one_row_per_photo(fake_store, fake_gateway):
    _approved_payment(fake_store, fake_gateway)
    service.reconcile_notification("payment", "mp-1")
    service.reconcile_notification("payment", "mp-1")
    assert len(fake_store.purchases) == 2

def test_rejected_grants_nothing(fake_store, fake_gateway):
    payment_id = _approved_payment(fake_store, fake_gateway, status="rejected")
    res = service.reconcile_notification("payment", "mp-1")
    assert res["payment_status"] == "rejected"
    assert fake_store.payments[payment_id]["approved_at"] is None
    assert fake_store.purchases == {}

def test_in_process_maps_to_pending(fake_store, fake_gateway):
    payment_id = _approved_payment(fake_store, fake_gateway, status="in_process")
    service.reconcile_notification("payment", "mp-1")
    assert fake_store.payments[payment_id]["status"] == "pending"
    assert fake_store.purchases == {}

def test_missing_external_reference_is_400(fake_store, fake_gateway):
    fake_gateway.settle("mp-9", None, "approved")
    with pytest.raises(HTTPException) as exc:
        service.reconcile_notification("payment", "mp-9")
    assert exc.value.status_code == 400
    assert "update_status" not in fake_store.calls

def test_unknown_external_reference_is_400(fake_store, fake_gateway):
    fake_gateway.settle("mp-9", "pay-404", "approved")
    with pytest.raises(HTTPException) as exc:
        service.reconcile_notification("payment", "mp-9")
    assert exc.value.status_code == 400
    assert fake_store.purchases == {}

def test_missing_data_id_is_400(fake_store, fake_gateway):
    with pytest.raises(HTTPException) as exc:
        service.reconcile_notification("payment", None)
    assert exc.value.status_code == 400

def test_gateway_lookup_failure_is_500(fake_store, fake_gateway):
    _approved_payment(fake_store, fake_gateway)
    fake_gateway.fail_get = 503
    with pytest.raises(HTTPException) as exc:
        service.reconcile_notification("payment", "mp-1")
    assert exc.value.status_code == 500
    assert fake_store.purchases == {}

def test_entitlement_failure_is_500_then_replay_recovers(fake_store, fake_gateway):
    payment_id = _approved_payment(fake_store, fake_gateway)
    fake_store.fail_upsert = True
    with pytest.raises(HTTPException) as exc:
        service.reconcile_notification("payment", "mp-1")
    assert exc.value.status_code == 500
    assert fake_store.payments[payment_id]["status"] == "approved"
    fake_store.fail_upsert = False
    service.reconcile_notification("payment", "mp-1")
    assert len(fake_store.purchases) == 2

def test_approval_then_late_rejection_keeps_entitlements(fake_store, fake_gateway):
    payment_id = _approved_payment(fake_store, fake_gateway)
    service.reconcile_notification("payment", "mp-1")
    fake_gateway.settle("mp-1", payment_id, "rejected")
    service.reconcile_notification("payment", "mp-1")
    assert fake_store.payments[payment_id]["status"] == "rejected"
    # aucune révocation: les droits existants restent
    assert len(fake_store.purchases) == 2

# --- purge ---

def test_purge_only_dangling_rows(fake_store, fake_gateway):
    fake_store.add_photo("p1", 10)
    linked = _create(["p1"])
    fake_gateway.fail_create = 500
    with pytest.raises(HTTPException):
        _create(["p1"])
    assert service.purge_dangling_payments(0) == 1
    assert list(fake_store.payments) == [linked["payment_id"]]

def test_link_failure_then_purge_keeps_every_payable_row(fake_store, fake_gateway):
    fake_store.add_photo("p1", 10)
    linked = _create(["p1"])
    fake_store.fail_link = True
    with pytest.raises(HTTPException):
        _create(["p1"])
    fake_store.fail_link = False

    assert service.purge_dangling_payments(0) == 1
    assert list(fake_store.payments) == [linked["payment_id"]]

    # le seul paiement dont l’acheteur a reçu l’init_point reste réconciliable
    fake_gateway.settle("mp-1", linked["payment_id"], "approved")
    res = service.reconcile_notification("payment", "mp-1")
    assert res["payment_status"] == "approved"
    assert set(fake_store.purchases) == {("u1", "p1")}
