from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest

from marketplace.core.constants import ORDERS_STORAGE_KEY
from marketplace.core.exceptions import InvalidTransition, OrderNotFoundException, ValidationException
from marketplace.domain.order import Order, OrderStatus
from marketplace.stores.orders import OrderStore


def _order_data(**overrides):
    data = {
        "service_id": "svc_1",
        "service_title": "Limpieza",
        "provider_name": "Juan",
        "provider_id": "prov_1",
        "total": 100.0,
        "payment_method": "yape",
        "address": "Calle 1",
        "contact_info": {"name": "Ana", "phone": "999", "email": "a@a.com"},
    }
    data.update(overrides)
    return data


def _remote(order_id: str, **overrides) -> Order:
    fields = {
        "id": order_id,
        "service_id": "svc_1",
        "service_title": "Limpieza",
        "provider_name": "Juan",
        "provider_id": "prov_1",
        "total": 50.0,
        "payment_method": "bank",
    }
    fields.update(overrides)
    return Order(**fields)


def test_add_order_generates_unique_ids_and_prepends(store: OrderStore) -> None:
    ids = [store.add_order(_order_data()) for _ in range(50)]

    assert len(set(ids)) == 50
    assert store.orders[0].id == ids[-1]
    assert all(order_id.startswith("order_") for order_id in ids)


def test_add_order_stamps_created_at_and_defaults_status(store: OrderStore) -> None:
    order_id = store.add_order(_order_data(created_at="1999-01-01", id="forced"))
    order = store.get_order_by_id(order_id)

    assert order is not None
    assert order.id == order_id
    assert order.created_at != "1999-01-01"
    assert order.status == OrderStatus.PENDING


def test_add_order_rejects_negative_total(store: OrderStore) -> None:
    with pytest.raises(ValidationException):
        store.add_order(_order_data(total=-1))
    assert store.orders == []


def test_booking_scenario_end_to_end(store: OrderStore, booking_data) -> None:
    order_id = store.create_booking_from_service("svc_1", "Limpieza", "Juan", "prov_1", booking_data)

    order = store.get_order_by_id(order_id)
    assert order is not None
    assert store.orders_count() == 1
    assert order.status == OrderStatus.PENDING
    assert order.total == 150
    assert order.currency == "USD"
    assert order.address == "Av. X 123"
    assert order.scheduled_date == "2024-01-01"
    assert order.scheduled_time == "10:00"
    assert order.contact_info.name == "Ana"

    store.update_order(order_id, {"status": "confirmed", "transactionId": "mp_123"})

    updated = store.get_order_by_id(order_id)
    assert updated.status == "confirmed"
    assert updated.transaction_id == "mp_123"


def test_booking_with_mercado_pago_transaction_starts_confirmed(store: OrderStore, booking_data) -> None:
    booking_data.update({"paymentMethod": "mercado_pago", "transactionId": "txn_1"})
    order_id = store.create_booking_from_service("svc_1", "Limpieza", "Juan", "prov_1", booking_data)

    assert store.get_order_by_id(order_id).status == OrderStatus.CONFIRMED


def test_booking_with_bank_and_no_transaction_starts_pending(store: OrderStore, booking_data) -> None:
    booking_data.update({"paymentMethod": "bank"})
    order_id = store.create_booking_from_service("svc_1", "Limpieza", "Juan", "prov_1", booking_data)

    assert store.get_order_by_id(order_id).status == OrderStatus.PENDING


def test_booking_requires_explicit_schedule(store: OrderStore, booking_data) -> None:
    booking_data["date"] = ""

    with pytest.raises(ValidationException) as exc_info:
        store.create_booking_from_service("svc_1", "Limpieza", "Juan", "prov_1", booking_data)

    assert "date" in exc_info.value.errors
    assert store.orders == []


def test_update_order_merges_only_given_keys(store: OrderStore) -> None:
    order_id = store.add_order(_order_data(notes="old"))
    before = store.get_order_by_id(order_id)

    store.update_order(order_id, {"notes": "new", "address": "Calle 2"})
    after = store.get_order_by_id(order_id)

    assert after.notes == "new"
    assert after.address == "Calle 2"
    assert after.service_title == before.service_title
    assert after.total == before.total
    assert after.status == before.status
    assert after.contact_info == before.contact_info
    assert after.created_at == before.created_at
    assert after.version == before.version + 1


def test_update_order_never_rewrites_identity(store: OrderStore) -> None:
    order_id = store.add_order(_order_data())
    created_at = store.get_order_by_id(order_id).created_at

    store.update_order(order_id, {"id": "other", "createdAt": "2000-01-01"})

    order = store.get_order_by_id(order_id)
    assert order is not None
    assert order.created_at == created_at


def test_update_unknown_order_is_a_noop(store: OrderStore) -> None:
    store.add_order(_order_data())
    before = store.orders

    result = store.update_order("nonexistent", {"status": "cancelled"})

    assert result is None
    assert store.orders == before


def test_update_order_rejects_illegal_transition(store: OrderStore) -> None:
    order_id = store.add_order(_order_data())

    with pytest.raises(InvalidTransition) as exc_info:
        store.update_order(order_id, {"status": "completed"})

    assert exc_info.value.current == "pending"
    assert exc_info.value.target == "completed"
    assert store.get_order_by_id(order_id).status == OrderStatus.PENDING


def test_unenforced_store_accepts_any_status(persistence) -> None:
    store = OrderStore(persistence, enforce_transitions=False)
    order_id = store.add_order(_order_data())

    store.update_order(order_id, {"status": "completed"})

    assert store.get_order_by_id(order_id).status == OrderStatus.COMPLETED


def test_transition_order_walks_the_lifecycle(store: OrderStore) -> None:
    order_id = store.add_order(_order_data())

    store.transition_order(order_id, OrderStatus.CONFIRMED, transaction_id="tx")
    store.transition_order(order_id, OrderStatus.IN_PROGRESS)
    done = store.transition_order(order_id, OrderStatus.COMPLETED)

    assert done.status == OrderStatus.COMPLETED
    assert done.transaction_id == "tx"
    with pytest.raises(InvalidTransition):
        store.transition_order(order_id, OrderStatus.CANCELLED)


def test_transition_unknown_order_raises(store: OrderStore) -> None:
    with pytest.raises(OrderNotFoundException):
        store.transition_order("missing", OrderStatus.CONFIRMED)


def test_remove_and_query_by_status(store: OrderStore) -> None:
    first = store.add_order(_order_data())
    second = store.add_order(_order_data())
    store.transition_order(second, OrderStatus.CANCELLED)

    assert [o.id for o in store.get_orders_by_status(OrderStatus.PENDING)] == [first]
    assert [o.id for o in store.pending_orders()] == [first]

    store.remove_order(first)

    assert store.get_order_by_id(first) is None
    assert store.orders_count() == 1


def test_set_orders_is_idempotent(store: OrderStore) -> None:
    remote = [_remote("a"), _remote("b")]

    store.set_orders(remote)
    once = store.orders
    store.set_orders(remote)

    assert store.orders == once


def test_clear_orders_wipes_everything(store: OrderStore, kv) -> None:
    store.add_order(_order_data())
    store.clear_orders()

    assert store.orders == []
    assert json.loads(kv.get(ORDERS_STORAGE_KEY))["state"]["orders"] == []


def test_loading_and_error_flags(store: OrderStore) -> None:
    store.set_loading(True)
    store.set_error("boom")
    assert store.loading is True
    assert store.error == "boom"

    store.add_order(_order_data())
    assert store.error is None


def test_recent_orders_sorted_without_mutating_store(store: OrderStore) -> None:
    store.set_orders(
        [
            _remote("old", created_at="2024-01-01T00:00:00+00:00"),
            _remote("new", created_at="2024-03-01T00:00:00+00:00"),
            _remote("mid", created_at="2024-02-01T00:00:00+00:00"),
        ]
    )

    assert [o.id for o in store.recent_orders(limit=2)] == ["new", "mid"]
    assert [o.id for o in store.orders] == ["old", "new", "mid"]


def test_orders_persist_and_hydrate(persistence, kv) -> None:
    store = OrderStore(persistence)
    order_id = store.add_order(_order_data())

    payload = json.loads(kv.get(ORDERS_STORAGE_KEY))
    assert payload["version"] == 1
    assert payload["state"]["orders"][0]["serviceId"] == "svc_1"

    restored = OrderStore(persistence)
    assert restored.hydrate() == 1
    assert restored.get_order_by_id(order_id) == store.get_order_by_id(order_id)
    assert restored.is_hydrated


def test_hydrate_ignores_corrupt_or_foreign_payloads(persistence, kv) -> None:
    kv.set(ORDERS_STORAGE_KEY, "{not json")
    store = OrderStore(persistence)
    assert store.hydrate() == 0

    kv.set(ORDERS_STORAGE_KEY, json.dumps({"state": {"orders": [{"id": "x"}]}, "version": 7}))
    assert store.hydrate() == 0

    kv.set(
        ORDERS_STORAGE_KEY,
        json.dumps({"state": {"orders": [{"no_id": True}, {"id": "ok", "total": 3}]}, "version": 1}),
    )
    assert store.hydrate() == 1
    assert store.get_order_by_id("ok").total == 3


def test_store_keeps_working_when_storage_is_broken(broken_kv) -> None:
    from marketplace.core.persistence import JsonPersistence

    store = OrderStore(JsonPersistence(broken_kv))
    assert store.hydrate() == 0

    order_id = store.add_order(_order_data())

    assert store.get_order_by_id(order_id) is not None


def test_listeners_are_notified(store: OrderStore) -> None:
    seen: list[int] = []
    unsubscribe = store.subscribe(lambda s: seen.append(s.orders_count()))

    store.add_order(_order_data())
    unsubscribe()
    store.add_order(_order_data())

    assert seen == [1]


def test_reservation_is_replaced_by_server_record(store: OrderStore) -> None:
    older = store.add_order(_order_data())
    reserved = store.reserve_order(_order_data())
    store.add_order(_order_data())  # list position of the reservation shifts

    confirmed = store.confirm_reservation(reserved.client_reference, _remote("srv_1"))

    assert confirmed is not None
    assert confirmed.id == "srv_1"
    assert store.get_order_by_id(reserved.id) is None
    assert store.get_order_by_id("srv_1").client_reference == reserved.client_reference
    assert store.get_order_by_id(older) is not None
    assert store.orders_count() == 3
    assert not store.has_pending_reservation(reserved.client_reference)


def test_confirm_reservation_drops_duplicate_server_record(store: OrderStore) -> None:
    reserved = store.reserve_order(_order_data())
    store.apply_remote(_remote("srv_1"))

    store.confirm_reservation(reserved.client_reference, _remote("srv_1"))

    assert [o.id for o in store.orders].count("srv_1") == 1


def test_release_reservation_rolls_back(store: OrderStore) -> None:
    reserved = store.reserve_order(_order_data())

    assert store.release_reservation(reserved.client_reference) is True
    assert store.orders == []
    assert store.release_reservation(reserved.client_reference) is False


def test_reconcile_adopts_server_state(store: OrderStore) -> None:
    store.set_orders([_remote("a", status="pending"), _remote("gone")])

    store.reconcile_orders([_remote("a", status="completed"), _remote("b")])

    assert [o.id for o in store.orders] == ["a", "b"]
    assert store.get_order_by_id("a").status == OrderStatus.COMPLETED


def test_reconcile_keeps_local_edit_newer_than_server(store: OrderStore) -> None:
    past = (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()
    store.set_orders([_remote("a", updated_at=past)])
    store.update_order("a", {"notes": "edited offline"})

    store.reconcile_orders([_remote("a", notes="server", updated_at=past)])

    assert store.get_order_by_id("a").notes == "edited offline"


def test_reconcile_keeps_edits_made_while_fetch_in_flight(store: OrderStore) -> None:
    store.set_orders([_remote("a")])
    started = datetime.now(timezone.utc) - timedelta(seconds=5)
    store.update_order("a", {"status": "cancelled"})

    store.reconcile_orders([_remote("a", status="pending")], fetch_started_at=started)

    assert store.get_order_by_id("a").status == OrderStatus.CANCELLED


def test_reconcile_keeps_pending_reservations(store: OrderStore) -> None:
    reserved = store.reserve_order(_order_data())

    store.reconcile_orders([_remote("a")])

    assert [o.id for o in store.orders] == [reserved.id, "a"]


@pytest.mark.parametrize("bad_total", [-5, "abc"])
def test_update_order_rejects_invalid_total_without_changing_store(store: OrderStore, kv, bad_total) -> None:
    order_id = store.add_order(_order_data())
    before = store.get_order_by_id(order_id)
    persisted = kv.get(ORDERS_STORAGE_KEY)

    with pytest.raises(ValidationException):
        store.update_order(order_id, {"total": bad_total})

    assert store.get_order_by_id(order_id) == before
    assert kv.get(ORDERS_STORAGE_KEY) == persisted


def test_hydrate_clamps_non_finite_totals(persistence, kv) -> None:
    kv.set(
        ORDERS_STORAGE_KEY,
        json.dumps(
            {
                "state": {
                    "orders": [
                        {"id": "nan", "total": float("nan")},
                        {"id": "neg", "total": -3},
                        {"id": "text", "total": "abc"},
                    ]
                },
                "version": 1,
            }
        ),
    )
    store = OrderStore(persistence)

    assert store.hydrate() == 3
    assert [o.total for o in store.orders] == [0, 0, 0]
