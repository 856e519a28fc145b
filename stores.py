"""
Data-access stores, one per entity.

A store mirrors one backend collection in memory, newest record first, and is
the only code that writes to that list. Every operation needs an identity; a
store without one does nothing and contacts nobody. Failed operations leave
the list exactly as it was, tell the user through the notifier, and (for
mutations) re-raise so the caller can keep its form open.
"""
import enum
from contextlib import contextmanager
from typing import List, Optional

import structlog
from pydantic import ValidationError

from database import BackendError
from schemas import (
    ChangeLogEntry, Equipment, EquipmentInsert, EquipmentPatch, Identity,
    Maintenance, MaintenanceInsert, MaintenancePatch, Movement,
    SupportTicket, SupportTicketInsert, SupportTicketPatch, describe_validation,
)

log = structlog.get_logger(__name__)


class RequestState(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class InvalidInputError(Exception):
    pass


def changed_fields(record, values):
    """The subset of `values` that differs from what `record` holds."""
    return {k: v for k, v in values.items() if getattr(record, k, None) != v}


class EntityStore:
    table = None
    record_model = None
    insert_model = None
    patch_model = None
    owner_field = "created_by"
    messages = {}

    def __init__(self, db, notifier, identity: Optional[Identity] = None):
        self.db = db
        self.collection = db.collection(self.table)
        self.notifier = notifier
        self.identity = identity
        self.state = RequestState.IDLE
        self._records = []

    @property
    def items(self) -> list:
        return list(self._records)

    @property
    def loading(self) -> bool:
        return self.state == RequestState.LOADING

    def get(self, record_id):
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def set_identity(self, identity: Optional[Identity]) -> None:
        if identity != self.identity:
            self.clear()
        self.identity = identity

    def clear(self) -> None:
        self._records = []
        self.state = RequestState.IDLE

    @contextmanager
    def _request(self):
        self.state = RequestState.LOADING
        try:
            yield
        except Exception:
            self.state = RequestState.ERROR
            raise
        self.state = RequestState.SUCCESS

    def _report(self, key, error):
        log.error(f"{self.table}_{key}", error=error.message)
        self.notifier.error(self.messages[key], error.message)

    def _validate(self, model, data):
        if isinstance(data, model):
            return data
        try:
            return model.model_validate(data)
        except ValidationError as e:
            detail = describe_validation(e)
            self.notifier.error("Validation error", detail)
            raise InvalidInputError(detail) from e

    def _parse(self, row):
        try:
            return self.record_model.model_validate(row)
        except ValidationError as e:
            raise BackendError(f"Malformed {self.table} row: {describe_validation(e)}") from e

    def fetch_all(self):
        if self.identity is None:
            return None
        try:
            with self._request():
                records = [self._parse(r) for r in self.collection.select_all()]
        except BackendError as e:
            self._report("fetch_error", e)
            return None
        self._records = records
        log.info(f"{self.table}_fetched", count=len(self._records))
        return self.items

    def create(self, data):
        if self.identity is None:
            return None
        payload = self._validate(self.insert_model, data)
        values = payload.model_dump(exclude_unset=True)
        values[self.owner_field] = self.identity.id
        try:
            with self._request():
                record = self._parse(self.collection.insert(values))
        except BackendError as e:
            self._report("create_error", e)
            raise
        self._records = [record] + self._records
        self.notifier.success(*self.messages["created"])
        return record

    def update(self, record_id, changes):
        if self.identity is None:
            return None
        patch = self._validate(self.patch_model, changes)
        values = patch.model_dump(exclude_unset=True)
        try:
            with self._request():
                record = self._parse(self.collection.update(record_id, values, actor_id=self.identity.id))
        except BackendError as e:
            self._report("update_error", e)
            raise
        self._records = [record if r.id == record_id else r for r in self._records]
        self.notifier.success(*self.messages["updated"])
        return record


class HistoryMixin:
    def fetch_history(self, record_id) -> List[ChangeLogEntry]:
        """Change log of one record, newest first. Not kept in the store."""
        if self.identity is None:
            return []
        try:
            rows = self.collection.history(record_id)
        except BackendError as e:
            self._report("history_error", e)
            return []
        return [ChangeLogEntry.model_validate(r) for r in rows]


class EquipmentStore(EntityStore):
    table = "equipments"
    record_model = Equipment
    insert_model = EquipmentInsert
    patch_model = EquipmentPatch
    messages = {
        "fetch_error": "Error loading equipment",
        "create_error": "Error creating equipment",
        "update_error": "Error updating equipment",
        "delete_error": "Error deleting equipment",
        "history_error": "Error loading movements",
        "created": ("Equipment created", "Equipment added successfully"),
        "updated": ("Equipment updated", "Equipment changed successfully"),
        "deleted": ("Equipment deleted", "Equipment removed successfully"),
    }

    def delete(self, record_id):
        if self.identity is None:
            return None
        try:
            with self._request():
                self.collection.delete(record_id)
        except BackendError as e:
            self._report("delete_error", e)
            raise
        self._records = [r for r in self._records if r.id != record_id]
        self.notifier.success(*self.messages["deleted"])
        return True

    def fetch_movements(self, equipment_id) -> List[Movement]:
        if self.identity is None:
            return []
        try:
            rows = self.db.get_movements(equipment_id)
        except BackendError as e:
            self._report("history_error", e)
            return []
        return [Movement.model_validate(r) for r in rows]


class MaintenanceStore(HistoryMixin, EntityStore):
    table = "maintenances"
    record_model = Maintenance
    insert_model = MaintenanceInsert
    patch_model = MaintenancePatch
    owner_field = "requested_by"
    messages = {
        "fetch_error": "Error loading maintenances",
        "create_error": "Error creating maintenance",
        "update_error": "Error updating maintenance",
        "history_error": "Error loading maintenance history",
        "created": ("Maintenance scheduled", "Maintenance created successfully"),
        "updated": ("Maintenance updated", "Maintenance changed successfully"),
    }


class SupportTicketStore(HistoryMixin, EntityStore):
    table = "support_tickets"
    record_model = SupportTicket
    insert_model = SupportTicketInsert
    patch_model = SupportTicketPatch
    messages = {
        "fetch_error": "Error loading tickets",
        "create_error": "Error creating ticket",
        "update_error": "Error updating ticket",
        "history_error": "Error loading ticket history",
        "created": ("Ticket created", "Support ticket created successfully"),
        "updated": ("Ticket updated", "Support ticket changed successfully"),
    }
