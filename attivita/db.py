"""
Database abstraction for SQL backends and an in-memory test implementation.
"""

from __future__ import annotations

import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Dict, Iterator, Optional, Protocol

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
    delete,
    event,
    select,
    update,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from attivita.errors import ConcurrencyError, StorageError


class DbClient(Protocol):
    """Interface for database access."""

    def create_user(self, email: str, password_hash: str) -> "UserRecord":
        ...

    def get_user(self, user_id: str) -> Optional["UserRecord"]:
        ...

    def find_user_by_email(self, email: str) -> Optional["UserRecord"]:
        ...

    def user_exists(self, user_id: str) -> bool:
        ...

    def list_activities_for_owner(self, owner_id: str) -> list["ActivityRecord"]:
        ...

    def get_activity(self, activity_id: int) -> Optional["ActivityRecord"]:
        ...

    def create_activity(self, draft: "ActivityDraft") -> "ActivityRecord":
        ...

    def update_activity(self, record: "ActivityRecord") -> "ActivityRecord":
        ...

    def delete_activity(self, activity_id: int) -> bool:
        ...

    def delete_activity_for_owner(self, activity_id: int, owner_id: str) -> bool:
        ...


@dataclass
class UserRecord:
    id: str
    email: str
    password_hash: str

    def as_dict(self) -> dict:
        # The hash stays server-side.
        return {"id": self.id, "email": self.email}


@dataclass
class ActivityDraft:
    """Mutable fields of an activity, as supplied by a caller."""

    title: str
    description: str
    due: datetime
    status: Optional[str]
    owner_id: Optional[str]


@dataclass
class ActivityRecord:
    id: int
    title: str
    description: str
    due: datetime
    status: Optional[str]
    owner_id: str
    version: int = 1

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "due": self.due,
            "status": self.status,
            "owner_id": self.owner_id,
        }


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.users: Dict[str, UserRecord] = {}
        self.activities: Dict[int, ActivityRecord] = {}
        self._next_activity_id = 1
        self._lock = threading.Lock()

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.users.clear()
            self.activities.clear()
            self._next_activity_id = 1

    def create_user(self, email: str, password_hash: str) -> UserRecord:
        record = UserRecord(
            id=str(uuid.uuid4()), email=email, password_hash=password_hash
        )
        with self._lock:
            self.users[record.id] = record
        return replace(record)

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        user = self.users.get(user_id)
        return replace(user) if user else None

    def find_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self._lock:
            for user in self.users.values():
                if user.email == email:
                    return replace(user)
        return None

    def user_exists(self, user_id: str) -> bool:
        return user_id in self.users

    def list_activities_for_owner(self, owner_id: str) -> list[ActivityRecord]:
        with self._lock:
            return [
                replace(activity)
                for activity in self.activities.values()
                if activity.owner_id == owner_id
            ]

    def get_activity(self, activity_id: int) -> Optional[ActivityRecord]:
        activity = self.activities.get(activity_id)
        return replace(activity) if activity else None

    def create_activity(self, draft: ActivityDraft) -> ActivityRecord:
        with self._lock:
            record = ActivityRecord(
                id=self._next_activity_id,
                title=draft.title,
                description=draft.description,
                due=draft.due,
                status=draft.status,
                owner_id=draft.owner_id or "",
            )
            self._next_activity_id += 1
            self.activities[record.id] = record
            return replace(record)

    def update_activity(self, record: ActivityRecord) -> ActivityRecord:
        with self._lock:
            stored = self.activities.get(record.id)
            if stored is None or stored.version != record.version:
                raise ConcurrencyError(
                    f"Activity {record.id} was modified or deleted concurrently"
                )
            updated = replace(record, version=record.version + 1)
            self.activities[record.id] = updated
            return replace(updated)

    def delete_activity(self, activity_id: int) -> bool:
        with self._lock:
            return self.activities.pop(activity_id, None) is not None

    def delete_activity_for_owner(self, activity_id: int, owner_id: str) -> bool:
        with self._lock:
            activity = self.activities.get(activity_id)
            if activity is None or activity.owner_id != owner_id:
                return False
            del self.activities[activity_id]
            return True


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., MySQL, Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        engine_kwargs: dict = {"future": True, "pool_pre_ping": True}
        if database_url.startswith("sqlite"):
            # SQLite connections are shared across the request threadpool.
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in database_url or database_url.endswith("://"):
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["pool_recycle"] = 1800
        self.engine = create_engine(database_url, **engine_kwargs)
        if database_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not initialize schema: {exc}") from exc

    @contextmanager
    def _session(self) -> Iterator[Session]:
        """Yield a session; SQLAlchemy failures surface as StorageError."""
        session = self.Session()
        try:
            yield session
        except SQLAlchemyError as exc:
            session.rollback()
            raise StorageError(str(exc)) from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _to_user_record(self, row: "UserRow") -> UserRecord:
        return UserRecord(id=row.id, email=row.email, password_hash=row.password_hash)

    def _to_activity_record(self, row: "ActivityRow") -> ActivityRecord:
        return ActivityRecord(
            id=row.id,
            title=row.title,
            description=row.description,
            due=row.due,
            status=row.status,
            owner_id=row.owner_id,
            version=row.version,
        )

    def create_user(self, email: str, password_hash: str) -> UserRecord:
        with self._session() as session:
            row = UserRow(id=str(uuid.uuid4()), email=email, password_hash=password_hash)
            session.add(row)
            session.commit()
            return self._to_user_record(row)

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        with self._session() as session:
            row = session.get(UserRow, user_id)
            return self._to_user_record(row) if row else None

    def find_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self._session() as session:
            stmt = select(UserRow).where(UserRow.email == email).limit(1)
            row = session.execute(stmt).scalar_one_or_none()
            return self._to_user_record(row) if row else None

    def user_exists(self, user_id: str) -> bool:
        with self._session() as session:
            stmt = select(UserRow.id).where(UserRow.id == user_id)
            return session.execute(stmt).first() is not None

    def list_activities_for_owner(self, owner_id: str) -> list[ActivityRecord]:
        with self._session() as session:
            stmt = select(ActivityRow).where(ActivityRow.owner_id == owner_id)
            rows = session.execute(stmt).scalars().all()
            return [self._to_activity_record(row) for row in rows]

    def get_activity(self, activity_id: int) -> Optional[ActivityRecord]:
        with self._session() as session:
            row = session.get(ActivityRow, activity_id)
            return self._to_activity_record(row) if row else None

    def create_activity(self, draft: ActivityDraft) -> ActivityRecord:
        with self._session() as session:
            row = ActivityRow(
                title=draft.title,
                description=draft.description,
                due=draft.due,
                status=draft.status,
                owner_id=draft.owner_id,
                version=1,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_activity_record(row)

    def update_activity(self, record: ActivityRecord) -> ActivityRecord:
        with self._session() as session:
            stmt = (
                update(ActivityRow)
                .where(
                    ActivityRow.id == record.id,
                    ActivityRow.version == record.version,
                )
                .values(
                    {
                        ActivityRow.title: record.title,
                        ActivityRow.description: record.description,
                        ActivityRow.due: record.due,
                        ActivityRow.status: record.status,
                        ActivityRow.owner_id: record.owner_id,
                        ActivityRow.version: record.version + 1,
                    }
                )
                .execution_options(synchronize_session=False)
            )
            result = session.execute(stmt)
            if result.rowcount == 0:
                raise ConcurrencyError(
                    f"Activity {record.id} was modified or deleted concurrently"
                )
            session.commit()
            return replace(record, version=record.version + 1)

    def delete_activity(self, activity_id: int) -> bool:
        with self._session() as session:
            result = session.execute(
                delete(ActivityRow)
                .where(ActivityRow.id == activity_id)
                .execution_options(synchronize_session=False)
            )
            session.commit()
            return bool(result.rowcount)

    def delete_activity_for_owner(self, activity_id: int, owner_id: str) -> bool:
        with self._session() as session:
            result = session.execute(
                delete(ActivityRow)
                .where(
                    ActivityRow.id == activity_id,
                    ActivityRow.owner_id == owner_id,
                )
                .execution_options(synchronize_session=False)
            )
            session.commit()
            return bool(result.rowcount)


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "User"

    id = Column(String(36), primary_key=True)
    email = Column(String(256), nullable=False, index=True)
    password_hash = Column("passwordHash", String(128), nullable=False)


class ActivityRow(Base):
    __tablename__ = "Attivita"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column("titolo", String(256), nullable=False, default="")
    description = Column("descrizione", Text, nullable=False, default="")
    due = Column("scadenza", DateTime, nullable=False)
    status = Column("stato", String(64), nullable=True)
    owner_id = Column(
        "idUser", String(36), ForeignKey("User.id"), nullable=False, index=True
    )
    version = Column(Integer, nullable=False, default=1)
