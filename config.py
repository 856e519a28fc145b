# config.py
import os

APP_VERSION = "1.4 IT Assets"

# Database
DB_NAME = os.environ.get("DB_NAME", "it_assets.db")
DATABASE_URL = os.environ.get("DATABASE_URL", f"sqlite:///{DB_NAME}")

# Default administrator (seeded on first start)
ADMIN_EMAIL = os.environ.get("ADMIN_EMAIL", "admin@admin.com")
ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "admin")
ADMIN_LOGIN_ALIAS = "admin"

# Identities allowed into the user-management view
ADMIN_IDENTIFIERS = frozenset(
    ident.strip().lower()
    for ident in os.environ.get("ADMIN_IDENTIFIERS", "admin@admin.com,admin").split(",")
    if ident.strip()
)

# Roles stored on profiles
ROLE_ADMIN = "admin"
ROLE_TECHNICIAN = "technician"
ROLE_USER = "user"
ROLES = [ROLE_USER, ROLE_TECHNICIAN, ROLE_ADMIN]

# Support ticket categories offered by the ticket form
TICKET_CATEGORIES = [
    "Hardware", "Software", "Rede", "Email", "Impressora",
    "Sistema Operacional", "Segurança", "Backup", "Outro",
]

UNKNOWN_USER = "Unknown user"

# Column headers for the list views
EQUIPMENT_COLUMNS = [
    "name", "brand", "model", "serial_number", "type", "status",
    "location", "user_id", "created_at",
]
MAINTENANCE_COLUMNS = [
    "title", "type", "status", "priority", "equipment_id",
    "technician_id", "scheduled_date", "cost", "created_at",
]
TICKET_COLUMNS = [
    "title", "category", "status", "priority", "equipment_id",
    "assigned_to", "created_at",
]
