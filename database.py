import uuid
from datetime import datetime

import bcrypt
import structlog
from sqlalchemy import create_engine, Column, String, Float, Text, ForeignKey, DateTime
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker, scoped_session

import config

log = structlog.get_logger(__name__)

Base = declarative_base()


def new_id():
    return str(uuid.uuid4())


def hash_password(password):
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


class BackendError(Exception):
    """Raised when the backend rejects a request."""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class RowMixin:
    # Columns hidden from to_dict()
    __private__ = ()

    def to_dict(self):
        return {c.name: getattr(self, c.name) for c in self.__table__.columns if c.name not in self.__private__}

    def track_changes(self, changes, actor_id):
        """Rows to persist alongside an update. `changes` maps field -> (old, new)."""
        return []


def _as_text(value):
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


# --- MODELS ---
class User(RowMixin, Base):
    __tablename__ = 'users'
    __private__ = ('password_hash',)
    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String, unique=True, nullable=False)
    password_hash = Column(String, nullable=False)
    full_name = Column(String)
    role = Column(String, default=config.ROLE_USER)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, nullable=False)


class Movement(RowMixin, Base):
    __tablename__ = 'movements'
    id = Column(String(36), primary_key=True, default=new_id)
    equipment_id = Column(String(36), ForeignKey('equipments.id', ondelete='CASCADE'), nullable=False)
    movement_type = Column(String, nullable=False)
    from_location = Column(String)
    to_location = Column(String)
    from_user_id = Column(String(36))
    to_user_id = Column(String(36))
    reason = Column(Text)
    created_by = Column(String(36), ForeignKey('users.id'))
    created_at = Column(DateTime, default=datetime.now, nullable=False)


class Equipment(RowMixin, Base):
    __tablename__ = 'equipments'
    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    brand = Column(String)
    model = Column(String)
    serial_number = Column(String)
    type = Column(String, nullable=False)
    status = Column(String, default='ativo', nullable=False)
    location = Column(String)
    user_id = Column(String(36), ForeignKey('users.id'))
    created_by = Column(String(36), ForeignKey('users.id'), nullable=False)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, nullable=False)

    def track_changes(self, changes, actor_id):
        moved = 'location' in changes
        reassigned = 'user_id' in changes
        if not (moved or reassigned):
            return []
        if moved and reassigned:
            kind = 'transfer'
        elif moved:
            kind = 'location'
        else:
            kind = 'assignment'
        old_loc, new_loc = changes.get('location', (self.location, self.location))
        old_user, new_user = changes.get('user_id', (self.user_id, self.user_id))
        return [Movement(
            equipment_id=self.id, movement_type=kind,
            from_location=old_loc, to_location=new_loc,
            from_user_id=old_user, to_user_id=new_user,
            created_by=actor_id,
        )]


class MaintenanceLog(RowMixin, Base):
    __tablename__ = 'maintenance_logs'
    id = Column(String(36), primary_key=True, default=new_id)
    maintenance_id = Column(String(36), ForeignKey('maintenances.id', ondelete='CASCADE'), nullable=False)
    field_changed = Column(String, nullable=False)
    old_value = Column(Text)
    new_value = Column(Text)
    changed_by = Column(String(36), ForeignKey('users.id'))
    created_at = Column(DateTime, default=datetime.now, nullable=False)

    @property
    def record_id(self):
        return self.maintenance_id


class SupportTicketLog(RowMixin, Base):
    __tablename__ = 'support_ticket_logs'
    id = Column(String(36), primary_key=True, default=new_id)
    ticket_id = Column(String(36), ForeignKey('support_tickets.id', ondelete='CASCADE'), nullable=False)
    field_changed = Column(String, nullable=False)
    old_value = Column(Text)
    new_value = Column(Text)
    changed_by = Column(String(36), ForeignKey('users.id'))
    created_at = Column(DateTime, default=datetime.now, nullable=False)

    @property
    def record_id(self):
        return self.ticket_id


class Maintenance(RowMixin, Base):
    __tablename__ = 'maintenances'
    __log_model__ = MaintenanceLog
    __log_key__ = 'maintenance_id'
    __tracked__ = ('status', 'priority', 'technician_id')
    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String, nullable=False)
    description = Column(Text)
    type = Column(String, nullable=False)
    status = Column(String, default='pendente', nullable=False)
    priority = Column(String, default='media', nullable=False)
    equipment_id = Column(String(36), ForeignKey('equipments.id', ondelete='SET NULL'))
    requested_by = Column(String(36), ForeignKey('users.id'), nullable=False)
    technician_id = Column(String(36), ForeignKey('users.id'))
    scheduled_date = Column(DateTime)
    started_at = Column(DateTime)
    completed_at = Column(DateTime)
    cost = Column(Float)
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, nullable=False)

    def track_changes(self, changes, actor_id):
        return _field_logs(self, changes, actor_id)


class SupportTicket(RowMixin, Base):
    __tablename__ = 'support_tickets'
    __log_model__ = SupportTicketLog
    __log_key__ = 'ticket_id'
    __tracked__ = ('status', 'priority', 'assigned_to')
    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String, nullable=False)
    description = Column(Text)
    status = Column(String, default='pendente', nullable=False)
    priority = Column(String, default='media', nullable=False)
    category = Column(String, nullable=False)
    equipment_id = Column(String(36), ForeignKey('equipments.id', ondelete='SET NULL'))
    created_by = Column(String(36), ForeignKey('users.id'), nullable=False)
    assigned_to = Column(String(36), ForeignKey('users.id'))
    completed_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, nullable=False)

    def track_changes(self, changes, actor_id):
        return _field_logs(self, changes, actor_id)


def _field_logs(row, changes, actor_id):
    entries = []
    for field in row.__tracked__:
        if field not in changes:
            continue
        old, new = changes[field]
        entries.append(row.__log_model__(**{
            row.__log_key__: row.id,
            'field_changed': field,
            'old_value': _as_text(old),
            'new_value': _as_text(new),
            'changed_by': actor_id,
        }))
    return entries


TABLES = {
    'equipments': Equipment,
    'maintenances': Maintenance,
    'support_tickets': SupportTicket,
}

# Never accepted from callers on update.
IMMUTABLE = ('id', 'created_at', 'updated_at', 'created_by', 'requested_by')


# --- COLLECTIONS ---
class Collection:
    """One backend table: select-all, insert-one, update-by-id, delete-by-id."""

    def __init__(self, db, model):
        self.db = db
        self.model = model
        self.name = model.__tablename__

    def _check_columns(self, values):
        columns = self.model.__table__.columns.keys()
        unknown = [k for k in values if k not in columns]
        if unknown:
            raise BackendError(f"Unknown column(s) for {self.name}: {', '.join(sorted(unknown))}")

    def select_all(self):
        session = self.db.get_session()
        try:
            rows = session.query(self.model).order_by(self.model.created_at.desc()).all()
            return [r.to_dict() for r in rows]
        except SQLAlchemyError as e:
            raise BackendError(_describe(e)) from e
        finally:
            session.close()

    def insert(self, values):
        self._check_columns(values)
        session = self.db.get_session()
        try:
            row = self.model(**values)
            session.add(row)
            session.commit()
            log.info("row_inserted", table=self.name, id=row.id)
            return row.to_dict()
        except SQLAlchemyError as e:
            session.rollback()
            raise BackendError(_describe(e)) from e
        finally:
            session.close()

    def update(self, record_id, values, actor_id=None):
        self._check_columns(values)
        fixed = [k for k in values if k in IMMUTABLE]
        if fixed:
            raise BackendError(f"Column(s) cannot be updated: {', '.join(fixed)}")
        session = self.db.get_session()
        try:
            row = session.query(self.model).filter_by(id=record_id).first()
            if row is None:
                raise BackendError(f"No {self.name} record with id {record_id}")

            changes = {}
            for key, value in values.items():
                old = getattr(row, key)
                if old != value:
                    changes[key] = (old, value)
            for extra in row.track_changes(changes, actor_id):
                session.add(extra)
            for key, value in values.items():
                setattr(row, key, value)
            row.updated_at = datetime.now()

            session.commit()
            log.info("row_updated", table=self.name, id=record_id, fields=sorted(changes))
            return row.to_dict()
        except SQLAlchemyError as e:
            session.rollback()
            raise BackendError(_describe(e)) from e
        finally:
            session.close()

    def delete(self, record_id):
        session = self.db.get_session()
        try:
            row = session.query(self.model).filter_by(id=record_id).first()
            if row is None:
                raise BackendError(f"No {self.name} record with id {record_id}")
            session.delete(row)
            session.commit()
            log.info("row_deleted", table=self.name, id=record_id)
        except SQLAlchemyError as e:
            session.rollback()
            raise BackendError(_describe(e)) from e
        finally:
            session.close()

    def history(self, record_id):
        log_model = getattr(self.model, '__log_model__', None)
        if log_model is None:
            raise BackendError(f"{self.name} has no change log")
        key = getattr(log_model, self.model.__log_key__)
        session = self.db.get_session()
        try:
            rows = (session.query(log_model, User.full_name)
                    .outerjoin(User, User.id == log_model.changed_by)
                    .filter(key == record_id)
                    .order_by(log_model.created_at.desc())
                    .all())
            result = []
            for entry, full_name in rows:
                data = entry.to_dict()
                data['record_id'] = entry.record_id
                data['user_name'] = full_name or config.UNKNOWN_USER
                result.append(data)
            return result
        except SQLAlchemyError as e:
            raise BackendError(_describe(e)) from e
        finally:
            session.close()


def _describe(error):
    orig = getattr(error, 'orig', None)
    return str(orig) if orig is not None else str(error)


# --- CONTROLLER ---
class Database:
    def __init__(self, url=None):
        url = url or config.DATABASE_URL
        connect_args = {'check_same_thread': False} if url.startswith('sqlite') else {}
        self.engine = create_engine(url, connect_args=connect_args)
        Base.metadata.create_all(self.engine)
        self.Session = scoped_session(sessionmaker(bind=self.engine))
        self.create_default_admin()

    def get_session(self):
        return self.Session()

    def collection(self, name):
        if name not in TABLES:
            raise KeyError(f"Unknown collection: {name}")
        return Collection(self, TABLES[name])

    def create_default_admin(self):
        session = self.get_session()
        try:
            if session.query(User).count() == 0:
                admin = User(email=config.ADMIN_EMAIL.lower(), password_hash=hash_password(config.ADMIN_PASSWORD),
                             full_name="Administrator", role=config.ROLE_ADMIN)
                session.add(admin)
                session.commit()
                log.info("default_admin_created", email=config.ADMIN_EMAIL)
        finally:
            session.close()

    # --- USERS ---
    def verify_user(self, email, password):
        session = self.get_session()
        try:
            user = session.query(User).filter_by(email=email.strip().lower()).first()
            if user and bcrypt.checkpw(password.encode('utf-8'), user.password_hash.encode('utf-8')):
                return user.to_dict()
            return None
        finally:
            session.close()

    def add_user(self, email, password, full_name=None, role=config.ROLE_USER):
        # emails are stored lowercased so uniqueness ignores case
        email = email.strip().lower()
        session = self.get_session()
        try:
            if session.query(User).filter_by(email=email).first():
                return None
            user = User(email=email, password_hash=hash_password(password), full_name=full_name, role=role)
            session.add(user)
            session.commit()
            return user.to_dict()
        except SQLAlchemyError as e:
            session.rollback()
            raise BackendError(_describe(e)) from e
        finally:
            session.close()

    def get_all_users(self):
        session = self.get_session()
        try:
            return [u.to_dict() for u in session.query(User).order_by(User.created_at.asc()).all()]
        finally:
            session.close()

    def delete_user(self, user_id):
        session = self.get_session()
        try:
            user = session.query(User).filter_by(id=user_id).first()
            if user is None:
                return False
            session.delete(user)
            session.commit()
            return True
        except SQLAlchemyError as e:
            session.rollback()
            raise BackendError(_describe(e)) from e
        finally:
            session.close()

    def update_user(self, user_id, **fields):
        session = self.get_session()
        try:
            user = session.query(User).filter_by(id=user_id).first()
            if user is None:
                return False
            if 'password' in fields:
                user.password_hash = hash_password(fields.pop('password'))
            for key, value in fields.items():
                setattr(user, key, value)
            user.updated_at = datetime.now()
            session.commit()
            return True
        except SQLAlchemyError as e:
            session.rollback()
            raise BackendError(_describe(e)) from e
        finally:
            session.close()

    # --- MOVEMENTS ---
    def get_movements(self, equipment_id):
        session = self.get_session()
        try:
            rows = (session.query(Movement)
                    .filter_by(equipment_id=equipment_id)
                    .order_by(Movement.created_at.desc())
                    .all())
            return [m.to_dict() for m in rows]
        except SQLAlchemyError as e:
            raise BackendError(_describe(e)) from e
        finally:
            session.close()
