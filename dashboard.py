from dataclasses import dataclass, field
from typing import Dict, List

import structlog

from auth import SIGNED_IN, SIGNED_OUT
from stores import EquipmentStore, MaintenanceStore, RequestState, SupportTicketStore

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AggregateStatus:
    states: Dict[str, RequestState] = field(default_factory=dict)

    @property
    def loading_resources(self) -> List[str]:
        return [name for name, state in self.states.items() if state == RequestState.LOADING]

    @property
    def failed_resources(self) -> List[str]:
        return [name for name, state in self.states.items() if state == RequestState.ERROR]

    @property
    def loading(self) -> bool:
        return bool(self.loading_resources)


class DashboardData:
    """One entry point to every entity store for the page views."""

    def __init__(self, db, notifier, identity=None):
        self.equipment_store = EquipmentStore(db, notifier, identity)
        self.maintenance_store = MaintenanceStore(db, notifier, identity)
        self.ticket_store = SupportTicketStore(db, notifier, identity)
        self.notifier = notifier
        self._unsubscribe = None

    @property
    def stores(self):
        return {
            "equipments": self.equipment_store,
            "maintenances": self.maintenance_store,
            "support_tickets": self.ticket_store,
        }

    @property
    def status(self) -> AggregateStatus:
        return AggregateStatus({name: store.state for name, store in self.stores.items()})

    @property
    def loading(self) -> bool:
        return self.status.loading

    # --- IDENTITY ---
    def set_identity(self, identity):
        for store in self.stores.values():
            store.set_identity(identity)

    def attach(self, auth):
        """Follow sign-in/sign-out of `auth`, fetching everything on sign-in."""
        self.detach()
        self.set_identity(auth.get_current_identity())
        self._unsubscribe = auth.subscribe(self._on_auth_change)

    def detach(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_auth_change(self, event, identity):
        log.info("auth_changed", auth_event=event, email=identity.email if identity else None)
        self.set_identity(identity)
        if event == SIGNED_IN:
            self.refresh()
        elif event == SIGNED_OUT:
            for store in self.stores.values():
                store.clear()
            self.notifier.clear()

    def refresh(self):
        for store in self.stores.values():
            store.fetch_all()

    # --- EQUIPMENT ---
    @property
    def equipments(self):
        return self.equipment_store.items

    def fetch_equipments(self):
        return self.equipment_store.fetch_all()

    def create_equipment(self, data):
        return self.equipment_store.create(data)

    def update_equipment(self, record_id, changes):
        return self.equipment_store.update(record_id, changes)

    def delete_equipment(self, record_id):
        return self.equipment_store.delete(record_id)

    def fetch_movements(self, equipment_id):
        return self.equipment_store.fetch_movements(equipment_id)

    # --- SUPPORT TICKETS ---
    @property
    def support_tickets(self):
        return self.ticket_store.items

    def fetch_support_tickets(self):
        return self.ticket_store.fetch_all()

    def create_support_ticket(self, data):
        return self.ticket_store.create(data)

    def update_support_ticket(self, record_id, changes):
        return self.ticket_store.update(record_id, changes)

    def fetch_ticket_history(self, record_id):
        return self.ticket_store.fetch_history(record_id)

    # --- MAINTENANCES ---
    @property
    def maintenances(self):
        return self.maintenance_store.items

    def fetch_maintenances(self):
        return self.maintenance_store.fetch_all()

    def create_maintenance(self, data):
        return self.maintenance_store.create(data)

    def update_maintenance(self, record_id, changes):
        return self.maintenance_store.update(record_id, changes)

    def fetch_maintenance_history(self, record_id):
        return self.maintenance_store.fetch_history(record_id)
