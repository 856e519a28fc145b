import time
from datetime import datetime

import pandas as pd
import streamlit as st

import config
from database import BackendError
from permissions import is_admin
from schemas import (
    EquipmentStatus, EquipmentType, MaintenanceStatus, MaintenanceType,
    Priority, TicketStatus,
)
from stores import InvalidInputError, changed_fields

OPEN_TICKET = (TicketStatus.PENDING.value, TicketStatus.IN_PROGRESS.value)
OPEN_MAINTENANCE = (MaintenanceStatus.PENDING.value, MaintenanceStatus.IN_PROGRESS.value)


def _options(enum_cls):
    return [e.value for e in enum_cls]


# --- HELPER: RUN A STORE MUTATION ---
def attempt(action, *args):
    """Run a store call. Failures were already notified; keep the form open."""
    try:
        return action(*args)
    except (InvalidInputError, BackendError):
        return None


def to_frame(records, columns):
    if not records:
        return pd.DataFrame(columns=["id"] + columns)
    df = pd.DataFrame([r.model_dump() for r in records])
    return df[["id"] + [c for c in columns if c in df.columns]]


def _equipment_labels(data):
    return {e.id: f"{e.name} ({e.serial_number or 'no serial'})" for e in data.equipments}


def show_history(entries):
    if not entries:
        st.info("No changes recorded.")
        return
    for entry in entries:
        st.write(f"**{entry.field_changed}**: {entry.old_value or 'Not set'} → {entry.new_value or 'Not set'}")
        st.caption(f"{entry.user_name} · {entry.created_at:%Y-%m-%d %H:%M}")


# --- COMPONENT: EQUIPMENT DETAILS POPUP ---
@st.dialog("Equipment Details")
def show_equipment_dialog(equipment, data):
    st.header(equipment.name)
    st.caption(f"Serial: {equipment.serial_number or '-'} | ID: {equipment.id}")

    d_tab1, d_tab2 = st.tabs(["✏️ Edit", "🚚 Movements"])
    with d_tab1:
        with st.form(f"edit_eq_{equipment.id}"):
            c1, c2 = st.columns(2)
            name = c1.text_input("Name *", value=equipment.name)
            eq_type = c2.selectbox("Type", _options(EquipmentType), index=_options(EquipmentType).index(equipment.type))
            brand = c1.text_input("Brand", value=equipment.brand or "")
            model = c2.text_input("Model", value=equipment.model or "")
            serial = c1.text_input("Serial Number", value=equipment.serial_number or "")
            status = c2.selectbox("Status", _options(EquipmentStatus), index=_options(EquipmentStatus).index(equipment.status))
            location = c1.text_input("Location", value=equipment.location or "")
            if st.form_submit_button("Save", type="primary"):
                form = {"name": name, "type": eq_type, "brand": brand or None, "model": model or None,
                        "serial_number": serial or None, "status": status, "location": location or None}
                changes = changed_fields(equipment, form)
                if changes and attempt(data.update_equipment, equipment.id, changes):
                    st.rerun()

        st.divider()
        if st.button("🗑️ Delete Equipment", key=f"del_{equipment.id}", type="secondary"):
            if attempt(data.delete_equipment, equipment.id):
                st.rerun()

    with d_tab2:
        movements = data.fetch_movements(equipment.id)
        if movements:
            for m in movements:
                st.write(f"**{m.movement_type}**: {m.from_location or '-'} → {m.to_location or '-'}")
                st.caption(f"{m.created_at:%Y-%m-%d %H:%M}")
        else:
            st.info("No movements recorded.")


# --- VIEW 1: DASHBOARD ---
def show_dashboard(data, identity):
    st.title("📊 Command Center")
    equipments, tickets, maintenances = data.equipments, data.support_tickets, data.maintenances

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Equipment", len(equipments))
    c2.metric("Active", len([e for e in equipments if e.status == EquipmentStatus.ACTIVE.value]))
    c3.metric("Open Maintenances", len([m for m in maintenances if m.status in OPEN_MAINTENANCE]))
    c4.metric("Open Tickets", len([t for t in tickets if t.status in OPEN_TICKET]))
    st.markdown("---")

    t1, t2 = st.tabs(["🎫 Recent Tickets", "🔧 Recent Maintenances"])
    with t1:
        if tickets:
            st.dataframe(to_frame(tickets[:10], config.TICKET_COLUMNS), use_container_width=True, hide_index=True,
                         column_config={"id": None})
        else:
            st.info("No data available.")
    with t2:
        if maintenances:
            st.dataframe(to_frame(maintenances[:10], config.MAINTENANCE_COLUMNS), use_container_width=True,
                         hide_index=True, column_config={"id": None})
        else:
            st.info("No data available.")


# --- VIEW 2: EQUIPMENT ---
def show_equipment(data, identity):
    st.title("💻 Equipment")
    tab1, tab2 = st.tabs(["📋 Inventory", "➕ Add Equipment"])

    with tab1:
        c_search, c_filter = st.columns([2, 1])
        search = c_search.text_input("🔍 Search", placeholder="Name, serial, model...")
        status_f = c_filter.selectbox("Status", ["All"] + _options(EquipmentStatus))

        records = data.equipments
        if status_f != "All":
            records = [e for e in records if e.status == status_f]
        if search:
            term = search.lower()
            records = [e for e in records
                       if any(term in (v or "").lower() for v in (e.name, e.serial_number, e.model, e.brand))]

        if records:
            event = st.dataframe(to_frame(records, config.EQUIPMENT_COLUMNS), on_select="rerun",
                                 selection_mode="single-row", use_container_width=True, hide_index=True,
                                 column_config={"id": None})
            rows = event.selection.rows
            if len(rows) == 1:
                show_equipment_dialog(records[rows[0]], data)
        else:
            st.warning("No results.")

    with tab2:
        st.caption("Fields marked with * are required.")
        with st.form("new_equipment", clear_on_submit=False):
            c1, c2, c3 = st.columns(3)
            name = c1.text_input("Name *", placeholder="e.g., Desktop-001")
            eq_type = c2.selectbox("Type *", _options(EquipmentType))
            status = c3.selectbox("Status", _options(EquipmentStatus))
            brand = c1.text_input("Brand", placeholder="e.g., Dell")
            model = c2.text_input("Model", placeholder="e.g., OptiPlex 7090")
            serial = c3.text_input("Serial Number", placeholder="SN-12345")
            location = c1.text_input("Location", placeholder="e.g., Room 101")
            if st.form_submit_button("Save Equipment", type="primary", use_container_width=True):
                payload = {"name": name, "type": eq_type, "status": status, "brand": brand or None,
                           "model": model or None, "serial_number": serial or None, "location": location or None}
                if attempt(data.create_equipment, payload):
                    time.sleep(1); st.rerun()


# --- VIEW 3: MAINTENANCE ---
def show_maintenance(data, identity):
    st.title("🔧 Maintenance")
    labels = _equipment_labels(data)
    tab1, tab2 = st.tabs(["📋 Work Orders", "➕ Schedule"])

    with tab1:
        records = data.maintenances
        if not records:
            st.info("No maintenances yet.")
        for m in records:
            with st.expander(f"{m.title} · {m.status} · {m.priority}"):
                st.write(f"**Type:** {m.type}")
                st.write(f"**Equipment:** {labels.get(m.equipment_id, m.equipment_id or '-')}")
                if m.description:
                    st.write(m.description)
                c1, c2, c3 = st.columns(3)
                new_status = c1.selectbox("Status", _options(MaintenanceStatus),
                                          index=_options(MaintenanceStatus).index(m.status), key=f"ms_{m.id}")
                new_priority = c2.selectbox("Priority", _options(Priority),
                                            index=_options(Priority).index(m.priority), key=f"mp_{m.id}")
                if c3.button("Update", key=f"mu_{m.id}"):
                    changes = {}
                    if new_status != m.status:
                        changes["status"] = new_status
                        if new_status == MaintenanceStatus.IN_PROGRESS.value and not m.started_at:
                            changes["started_at"] = datetime.now()
                        if new_status == MaintenanceStatus.COMPLETED.value:
                            changes["completed_at"] = datetime.now()
                    if new_priority != m.priority:
                        changes["priority"] = new_priority
                    if changes and attempt(data.update_maintenance, m.id, changes):
                        st.rerun()
                if st.toggle("History", key=f"mh_{m.id}"):
                    show_history(data.fetch_maintenance_history(m.id))

    with tab2:
        with st.form("new_maintenance"):
            title = st.text_input("Title *")
            c1, c2, c3 = st.columns(3)
            m_type = c1.selectbox("Type *", _options(MaintenanceType), index=1)
            priority = c2.selectbox("Priority", _options(Priority), index=1)
            equipment_id = c3.selectbox("Equipment", [""] + list(labels), format_func=lambda i: labels.get(i, "None"))
            scheduled = st.date_input("Scheduled Date", value=None)
            cost = st.number_input("Estimated Cost", min_value=0.0, step=0.01, format="%.2f")
            description = st.text_area("Description")
            if st.form_submit_button("Schedule", type="primary"):
                payload = {"title": title, "type": m_type, "priority": priority,
                           "equipment_id": equipment_id or None, "description": description or None,
                           "cost": cost or None}
                if scheduled:
                    payload["scheduled_date"] = datetime.combine(scheduled, datetime.min.time())
                if attempt(data.create_maintenance, payload):
                    time.sleep(1); st.rerun()


# --- VIEW 4: SUPPORT TICKETS ---
def show_tickets(data, identity):
    st.title("🎫 Support Tickets")
    labels = _equipment_labels(data)
    tab1, tab2 = st.tabs(["📋 Tickets", "➕ New Ticket"])

    with tab1:
        status_f = st.selectbox("Status", ["All"] + _options(TicketStatus))
        records = data.support_tickets
        if status_f != "All":
            records = [t for t in records if t.status == status_f]
        if not records:
            st.info("No tickets.")
        for t in records:
            with st.expander(f"{t.title} · {t.category} · {t.status}"):
                if t.description:
                    st.write(t.description)
                st.caption(f"Opened {t.created_at:%Y-%m-%d %H:%M}")
                c1, c2, c3 = st.columns(3)
                new_status = c1.selectbox("Status", _options(TicketStatus),
                                          index=_options(TicketStatus).index(t.status), key=f"ts_{t.id}")
                new_priority = c2.selectbox("Priority", _options(Priority),
                                            index=_options(Priority).index(t.priority), key=f"tp_{t.id}")
                if c3.button("Update", key=f"tu_{t.id}"):
                    changes = {}
                    if new_status != t.status:
                        changes["status"] = new_status
                        if new_status == TicketStatus.FINALIZED.value:
                            changes["completed_at"] = datetime.now()
                    if new_priority != t.priority:
                        changes["priority"] = new_priority
                    if changes and attempt(data.update_support_ticket, t.id, changes):
                        st.rerun()
                if st.toggle("History", key=f"th_{t.id}"):
                    show_history(data.fetch_ticket_history(t.id))

    with tab2:
        with st.form("new_ticket"):
            title = st.text_input("Title *")
            description = st.text_area("Description *")
            c1, c2, c3 = st.columns(3)
            category = c1.selectbox("Category *", [""] + config.TICKET_CATEGORIES)
            priority = c2.selectbox("Priority", _options(Priority), index=1)
            equipment_id = c3.selectbox("Equipment", [""] + list(labels), format_func=lambda i: labels.get(i, "None"))
            if st.form_submit_button("Open Ticket", type="primary"):
                if not title.strip() or not description.strip() or not category:
                    st.error("Please fill in all required fields")
                else:
                    payload = {"title": title, "description": description, "category": category,
                               "priority": priority, "equipment_id": equipment_id or None}
                    if attempt(data.create_support_ticket, payload):
                        time.sleep(1); st.rerun()


# --- VIEW 5: ADMIN ---
def show_admin(auth, identity):
    st.title("🛡️ Admin Panel")
    if not is_admin(identity): st.error("Denied: Admin Access Required"); return

    u_tab1, u_tab2 = st.tabs(["Create User", "Manage Existing Users"])
    with u_tab1:
        with st.form("new_u"):
            c1, c2, c3 = st.columns(3)
            email = c1.text_input("Email")
            full_name = c2.text_input("Full Name")
            password = c3.text_input("Password", type="password")
            if st.form_submit_button("Create User"):
                error = auth.sign_up(email, password, full_name)
                if error: st.error(error)
                else: st.success(f"User '{email}' Created"); time.sleep(1); st.rerun()

    with u_tab2:
        users = auth.list_users()
        user_map = {f"{u.email} ({u.role})": u for u in users}
        selected_label = st.selectbox("Select User to Manage", [""] + list(user_map.keys()))
        if selected_label:
            user = user_map[selected_label]
            c_role, c_pass, c_del = st.columns(3)
            with c_role:
                new_role = st.selectbox("New Role", config.ROLES, key=f"r_{user.id}")
                if st.button("Update Role", key=f"btn_r_{user.id}"):
                    auth.update_role(user.id, new_role); st.success("Updated!"); st.rerun()
            with c_pass:
                new_pass = st.text_input("New Password", type="password", key=f"p_{user.id}")
                if st.button("Update Password", key=f"btn_p_{user.id}"):
                    if auth.update_password(user.id, new_pass): st.success("Updated!")
            with c_del:
                st.write("Danger Zone")
                if st.button("🗑️ Delete User", key=f"del_{user.id}", type="primary"):
                    if user.id == identity.id: st.error("You cannot delete yourself.")
                    elif auth.delete_user(user.id): st.success(f"Deleted {user.email}"); st.rerun()
