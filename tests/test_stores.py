from datetime import datetime, timedelta

import pytest

from conftest import UnreachableCollection, reject
from database import BackendError
from notifications import DESTRUCTIVE
from stores import EquipmentStore, InvalidInputError, RequestState, SupportTicketStore, changed_fields

PRINTER = {"name": "Printer-01", "type": "impressora", "brand": "HP", "location": "Room 3"}


def test_fetch_all_orders_newest_first(db, equipment_store, user):
    base = datetime(2024, 1, 1)
    collection = db.collection("equipments")
    for days, name in [(2, "middle"), (5, "newest"), (0, "oldest")]:
        collection.insert({"name": name, "type": "desktop", "created_by": user.id,
                           "created_at": base + timedelta(days=days)})

    result = equipment_store.fetch_all()

    assert [e.name for e in result] == ["newest", "middle", "oldest"]
    assert equipment_store.items == result
    assert equipment_store.state == RequestState.SUCCESS


def test_fetch_all_without_identity_is_a_noop(db, notifier):
    store = EquipmentStore(db, notifier)
    store.collection = UnreachableCollection()

    assert store.fetch_all() is None
    assert store.items == []
    assert not notifier.history
    assert store.state == RequestState.IDLE


def test_fetch_all_failure_keeps_previous_records(equipment_store, notifier, monkeypatch):
    equipment_store.create(PRINTER)
    before = equipment_store.items
    monkeypatch.setattr(equipment_store.collection, "select_all", reject)

    assert equipment_store.fetch_all() is None
    assert equipment_store.items == before
    assert equipment_store.state == RequestState.ERROR
    assert notifier.history[-1].title == "Error loading equipment"
    assert notifier.history[-1].variant == DESTRUCTIVE


def test_fetch_all_malformed_row_sets_error_state(equipment_store, notifier, monkeypatch):
    equipment_store.create(PRINTER)
    before = equipment_store.items
    monkeypatch.setattr(equipment_store.collection, "select_all", lambda: [{"id": "x", "name": "no type"}])

    assert equipment_store.fetch_all() is None
    assert equipment_store.items == before
    assert equipment_store.state == RequestState.ERROR
    assert notifier.history[-1].title == "Error loading equipment"
    assert notifier.history[-1].description.startswith("Malformed equipments row")


def test_create_malformed_response_sets_error_state(equipment_store, notifier, monkeypatch):
    monkeypatch.setattr(equipment_store.collection, "insert", lambda values: {"id": "x"})

    with pytest.raises(BackendError):
        equipment_store.create(PRINTER)

    assert equipment_store.items == []
    assert equipment_store.state == RequestState.ERROR
    assert notifier.history[-1].title == "Error creating equipment"


def test_create_prepends_and_injects_creator(equipment_store, notifier, user):
    first = equipment_store.create(PRINTER)
    second = equipment_store.create({"name": "Notebook-02", "type": "notebook"})

    assert equipment_store.items == [second, first]
    assert second.created_by == user.id
    assert second.status == "ativo"
    assert notifier.history[-1].title == "Equipment created"


def test_create_is_not_idempotent(equipment_store):
    a = equipment_store.create(PRINTER)
    b = equipment_store.create(PRINTER)

    assert a.id != b.id
    assert len(equipment_store.items) == 2


def test_create_support_ticket_scenario(ticket_store, user):
    ticket = ticket_store.create({"title": "Printer jam", "description": "Paper stuck in tray 2",
                                  "category": "Hardware", "priority": "media"})

    assert ticket.status == "pendente"
    assert ticket.created_by == user.id
    assert ticket_store.items[0] == ticket


def test_create_maintenance_sets_requester(maintenance_store, user):
    record = maintenance_store.create({"title": "RAM upgrade", "type": "upgrade", "cost": 120.5})

    assert record.requested_by == user.id
    assert record.status == "pendente"
    assert record.priority == "media"
    assert record.cost == 120.5


def test_create_failure_leaves_collection_untouched(equipment_store, notifier, monkeypatch):
    equipment_store.create(PRINTER)
    before = equipment_store.items
    monkeypatch.setattr(equipment_store.collection, "insert", reject)

    with pytest.raises(BackendError):
        equipment_store.create({"name": "Server-01", "type": "servidor"})

    assert equipment_store.items == before
    assert notifier.history[-1].title == "Error creating equipment"
    assert notifier.history[-1].description == "permission denied for table"


def test_malformed_input_never_reaches_backend(db, notifier, user):
    store = SupportTicketStore(db, notifier, user)
    store.collection = UnreachableCollection()

    with pytest.raises(InvalidInputError):
        store.create({"title": "   ", "category": "Hardware"})
    with pytest.raises(InvalidInputError):
        store.create({"title": "No category"})
    with pytest.raises(InvalidInputError):
        store.update("any-id", {"status": "resolvido"})

    assert store.items == []
    assert [n.title for n in notifier.history] == ["Validation error"] * 3


def test_patch_cannot_change_creator(equipment_store, user):
    record = equipment_store.create(PRINTER)

    with pytest.raises(InvalidInputError):
        equipment_store.update(record.id, {"created_by": "someone-else"})

    assert equipment_store.get(record.id).created_by == user.id


def test_create_without_identity_is_a_noop(db, notifier):
    store = SupportTicketStore(db, notifier)
    store.collection = UnreachableCollection()

    assert store.create({"title": "x", "category": "Rede"}) is None
    assert store.update("id", {"status": "finalizado"}) is None
    assert not notifier.history


def test_update_ticket_scenario(ticket_store):
    ticket = ticket_store.create({"title": "Printer jam", "category": "Hardware", "priority": "media"})
    other = ticket_store.create({"title": "VPN down", "category": "Rede"})

    updated = ticket_store.update(ticket.id, {"status": "finalizado"})

    assert updated.status == "finalizado"
    assert updated.title == "Printer jam"
    assert updated.category == "Hardware"
    assert updated.updated_at > ticket.updated_at
    assert ticket_store.get(ticket.id) == updated
    assert ticket_store.get(other.id) == other
    assert len(ticket_store.items) == 2


def test_update_only_changes_requested_fields(equipment_store):
    record = equipment_store.create(PRINTER)

    updated = equipment_store.update(record.id, {"status": "manutencao"})

    before = record.model_dump(exclude={"status", "updated_at"})
    after = updated.model_dump(exclude={"status", "updated_at"})
    assert before == after
    assert updated.status == "manutencao"


def test_update_twice_converges(equipment_store):
    record = equipment_store.create(PRINTER)

    first = equipment_store.update(record.id, {"location": "Room 9"})
    second = equipment_store.update(record.id, {"location": "Room 9"})

    assert first.model_dump(exclude={"updated_at"}) == second.model_dump(exclude={"updated_at"})


def test_update_unknown_id_is_rejected(equipment_store, notifier):
    equipment_store.create(PRINTER)
    before = equipment_store.items

    with pytest.raises(BackendError):
        equipment_store.update("missing", {"status": "inativo"})

    assert equipment_store.items == before
    assert notifier.history[-1].title == "Error updating equipment"


def test_any_status_transition_is_allowed(maintenance_store):
    record = maintenance_store.create({"title": "Clean fans", "type": "preventiva"})

    maintenance_store.update(record.id, {"status": "concluida"})
    reopened = maintenance_store.update(record.id, {"status": "pendente"})

    assert reopened.status == "pendente"


def test_delete_removes_equipment(equipment_store, db, notifier):
    keep = equipment_store.create(PRINTER)
    gone = equipment_store.create({"name": "Monitor-07", "type": "monitor"})

    assert equipment_store.delete(gone.id) is True

    assert equipment_store.items == [keep]
    assert [r["id"] for r in db.collection("equipments").select_all()] == [keep.id]
    assert notifier.history[-1].title == "Equipment deleted"


def test_delete_nonexistent_equipment(equipment_store, notifier):
    equipment_store.create(PRINTER)
    before = equipment_store.items

    with pytest.raises(BackendError):
        equipment_store.delete("does-not-exist")

    assert equipment_store.items == before
    assert notifier.history[-1].title == "Error deleting equipment"
    assert notifier.history[-1].variant == DESTRUCTIVE


def test_ticket_history_records_tracked_fields(ticket_store):
    ticket = ticket_store.create({"title": "Email bounce", "category": "Email"})
    ticket_store.update(ticket.id, {"status": "em_andamento"})
    ticket_store.update(ticket.id, {"priority": "alta", "description": "Only external mail"})

    history = ticket_store.fetch_history(ticket.id)

    assert [h.field_changed for h in history] == ["priority", "status"]
    assert history[1].old_value == "pendente"
    assert history[1].new_value == "em_andamento"
    assert history[0].user_name == "Test User"
    assert all(h.record_id == ticket.id for h in history)


def test_maintenance_history_tracks_technician(maintenance_store, user):
    record = maintenance_store.create({"title": "Replace PSU", "type": "corretiva"})
    maintenance_store.update(record.id, {"technician_id": user.id})

    [entry] = maintenance_store.fetch_history(record.id)

    assert entry.field_changed == "technician_id"
    assert entry.old_value is None
    assert entry.new_value == user.id
    assert entry.changed_by == user.id


def test_equipment_movements(equipment_store, user):
    record = equipment_store.create(PRINTER)
    equipment_store.update(record.id, {"location": "Room 5"})
    equipment_store.update(record.id, {"user_id": user.id})

    movements = equipment_store.fetch_movements(record.id)

    assert [m.movement_type for m in movements] == ["assignment", "location"]
    assert movements[1].from_location == "Room 3"
    assert movements[1].to_location == "Room 5"
    assert movements[0].to_user_id == user.id


def test_set_identity_to_none_clears_records(equipment_store):
    equipment_store.create(PRINTER)

    equipment_store.set_identity(None)

    assert equipment_store.items == []
    assert equipment_store.fetch_all() is None


def test_changed_fields_sends_only_edits(equipment_store, user):
    record = equipment_store.create({"name": "Desktop-010", "type": "desktop", "location": "Room 1",
                                     "user_id": user.id})
    form = {"name": "Desktop-010", "type": "desktop", "brand": None, "status": "ativo", "location": "Room 2"}

    changes = changed_fields(record, form)
    assert changes == {"location": "Room 2"}

    equipment_store.update(record.id, changes)
    assert equipment_store.get(record.id).user_id == user.id
    assert [m.movement_type for m in equipment_store.fetch_movements(record.id)] == ["location"]
    assert changed_fields(equipment_store.get(record.id), form) == {}
