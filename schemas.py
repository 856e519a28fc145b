"""
Data-transfer shapes for the dashboard.

Every entity has a full record (what the backend returns), an insert shape
that omits server-managed fields, and a patch shape where every field is
optional. Insert and patch shapes reject unknown fields.
"""
import enum
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationError, field_validator


class EquipmentType(str, enum.Enum):
    DESKTOP = "desktop"
    NOTEBOOK = "notebook"
    SERVER = "servidor"
    PRINTER = "impressora"
    MONITOR = "monitor"
    OTHER = "outro"


class EquipmentStatus(str, enum.Enum):
    ACTIVE = "ativo"
    INACTIVE = "inativo"
    MAINTENANCE = "manutencao"
    DISCARDED = "descartado"


class MaintenanceType(str, enum.Enum):
    PREVENTIVE = "preventiva"
    CORRECTIVE = "corretiva"
    UPGRADE = "upgrade"


class MaintenanceStatus(str, enum.Enum):
    PENDING = "pendente"
    IN_PROGRESS = "em_andamento"
    COMPLETED = "concluida"
    CANCELLED = "cancelada"


class Priority(str, enum.Enum):
    LOW = "baixa"
    MEDIUM = "media"
    HIGH = "alta"
    CRITICAL = "critica"


class TicketStatus(str, enum.Enum):
    PENDING = "pendente"
    IN_PROGRESS = "em_andamento"
    FINALIZED = "finalizado"
    CANCELLED = "cancelado"


def describe_validation(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        field = ".".join(str(p) for p in err.get("loc", ())) or "input"
        parts.append(f"{field}: {err.get('msg')}")
    return "; ".join(parts)


class Identity(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    full_name: Optional[str] = None
    role: Optional[str] = None


class SignUp(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)
    full_name: str = Field(min_length=1)

    @field_validator("email", mode="after")
    @classmethod
    def lowercase_email(cls, v):
        return v.lower()


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True, use_enum_values=True)


class _Input(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, use_enum_values=True)


# --- EQUIPMENT ---
class Equipment(_Record):
    id: str
    name: str
    brand: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    type: EquipmentType
    status: EquipmentStatus = EquipmentStatus.ACTIVE
    location: Optional[str] = None
    user_id: Optional[str] = None
    created_by: str
    created_at: datetime
    updated_at: datetime


class EquipmentInsert(_Input):
    name: str = Field(min_length=1)
    type: EquipmentType
    brand: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    status: EquipmentStatus = EquipmentStatus.ACTIVE
    location: Optional[str] = None
    user_id: Optional[str] = None


class EquipmentPatch(_Input):
    name: Optional[str] = Field(default=None, min_length=1)
    type: Optional[EquipmentType] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    status: Optional[EquipmentStatus] = None
    location: Optional[str] = None
    user_id: Optional[str] = None


# --- MAINTENANCE ---
class Maintenance(_Record):
    id: str
    title: str
    description: Optional[str] = None
    type: MaintenanceType
    status: MaintenanceStatus = MaintenanceStatus.PENDING
    priority: Priority = Priority.MEDIUM
    equipment_id: Optional[str] = None
    requested_by: str
    technician_id: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cost: Optional[float] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class MaintenanceInsert(_Input):
    title: str = Field(min_length=1)
    type: MaintenanceType
    description: Optional[str] = None
    status: MaintenanceStatus = MaintenanceStatus.PENDING
    priority: Priority = Priority.MEDIUM
    equipment_id: Optional[str] = None
    technician_id: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cost: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None


class MaintenancePatch(_Input):
    title: Optional[str] = Field(default=None, min_length=1)
    type: Optional[MaintenanceType] = None
    description: Optional[str] = None
    status: Optional[MaintenanceStatus] = None
    priority: Optional[Priority] = None
    equipment_id: Optional[str] = None
    technician_id: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cost: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None


# --- SUPPORT TICKETS ---
class SupportTicket(_Record):
    id: str
    title: str
    description: Optional[str] = None
    status: TicketStatus = TicketStatus.PENDING
    priority: Priority = Priority.MEDIUM
    category: str
    equipment_id: Optional[str] = None
    created_by: str
    assigned_to: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class SupportTicketInsert(_Input):
    title: str = Field(min_length=1)
    category: str = Field(min_length=1)
    description: Optional[str] = None
    status: TicketStatus = TicketStatus.PENDING
    priority: Priority = Priority.MEDIUM
    equipment_id: Optional[str] = None
    assigned_to: Optional[str] = None


class SupportTicketPatch(_Input):
    title: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    status: Optional[TicketStatus] = None
    priority: Optional[Priority] = None
    equipment_id: Optional[str] = None
    assigned_to: Optional[str] = None
    completed_at: Optional[datetime] = None


# --- READ-ONLY HISTORY ---
class ChangeLogEntry(_Record):
    id: str
    record_id: str
    field_changed: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    changed_by: Optional[str] = None
    user_name: str
    created_at: datetime


class Movement(_Record):
    id: str
    equipment_id: str
    movement_type: str
    from_location: Optional[str] = None
    to_location: Optional[str] = None
    from_user_id: Optional[str] = None
    to_user_id: Optional[str] = None
    reason: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime
