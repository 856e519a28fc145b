import streamlit as st

import config
import views
from auth import AuthProvider
from dashboard import DashboardData
from database import Database
from logger import setup_logging
from notifications import DESTRUCTIVE, Notifier
from permissions import is_admin

# Page Configuration
st.set_page_config(
    page_title="IT Asset Dashboard",
    page_icon="🖥️",
    layout="wide",
    initial_sidebar_state="expanded"
)


@st.cache_resource
def get_database():
    setup_logging()
    return Database()


def streamlit_sink(note):
    icon = "⚠️" if note.variant == DESTRUCTIVE else "✅"
    st.toast(f"**{note.title}**: {note.description}", icon=icon)


# Initialize Database
db = get_database()

# --- SESSION STATE MANAGEMENT ---
if 'auth' not in st.session_state:
    st.session_state.auth = AuthProvider(db)
if 'data' not in st.session_state:
    st.session_state.data = DashboardData(db, Notifier([streamlit_sink]))
    st.session_state.data.attach(st.session_state.auth)

auth = st.session_state.auth
data = st.session_state.data
identity = auth.get_current_identity()

# --- AUTHENTICATION FLOW ---
if identity is None:
    col1, col2, col3 = st.columns([1, 1, 1])
    with col2:
        st.header("IT Assets Login")
        t_in, t_up = st.tabs(["Sign In", "Sign Up"])
        with t_in:
            email = st.text_input("Email", placeholder="Email address or 'admin'")
            password = st.text_input("Password", type="password")
            if st.button("Login", type="primary", use_container_width=True):
                error = auth.sign_in(email, password)
                if error: st.error(error)
                else: st.rerun()
        with t_up:
            new_name = st.text_input("Full Name")
            new_email = st.text_input("Email", key="signup_email")
            new_password = st.text_input("Password", type="password", key="signup_password")
            if st.button("Create Account", use_container_width=True):
                error = auth.sign_up(new_email, new_password, new_name)
                if error: st.error(error)
                else: st.success("Account created. You can sign in now.")
else:
    # --- MAIN APP LAYOUT ---
    st.sidebar.title("🖥️ IT Assets")
    st.sidebar.caption(f"Version {config.APP_VERSION}")
    st.sidebar.info(f"User: **{identity.full_name or identity.email}**\n{identity.email}")
    st.sidebar.divider()

    options = ["Dashboard", "Equipment", "Maintenance", "Support Tickets"]
    if is_admin(identity): options.append("Admin")

    choice = st.sidebar.radio("Navigation", options)
    st.sidebar.markdown("---")

    if st.sidebar.button("🔄 Refresh"):
        data.refresh()
    if st.sidebar.button("Logout", type="secondary"):
        auth.sign_out()
        st.rerun()

    if data.loading:
        st.sidebar.caption(f"Loading: {', '.join(data.status.loading_resources)}")

    if choice == "Dashboard": views.show_dashboard(data, identity)
    elif choice == "Equipment": views.show_equipment(data, identity)
    elif choice == "Maintenance": views.show_maintenance(data, identity)
    elif choice == "Support Tickets": views.show_tickets(data, identity)
    elif choice == "Admin": views.show_admin(auth, identity)
