"""
Local record store.
Embedded SQLite persistence for operation and personnel records; the source of
truth while the device is offline. Every call is its own transaction and is
committed before it returns.
"""
import threading
from typing import List, Optional

import structlog
from sqlalchemy import update, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ..models.models import LocalBurn, Person
from ..schemas.burns import OperationRecord, PersonRecord


logger = structlog.get_logger()


class LocalStoreError(RuntimeError):
    """The embedded store could not complete a read or write."""


class LocalRecordStore:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory
        # One writer at a time from this process
        self._write_lock = threading.RLock()

    def _write(self, action: str, fn):
        with self._write_lock:
            db = self._session_factory()
            try:
                result = fn(db)
                db.commit()
                return result
            except SQLAlchemyError as e:
                db.rollback()
                logger.error("local_store_write_failed", action=action, error=str(e))
                raise LocalStoreError(f"Local store {action} failed: {e}") from e
            finally:
                db.close()

    def _read(self, action: str, fn):
        db = self._session_factory()
        try:
            return fn(db)
        except SQLAlchemyError as e:
            logger.error("local_store_read_failed", action=action, error=str(e))
            raise LocalStoreError(f"Local store {action} failed: {e}") from e
        finally:
            db.close()

    # Operations

    def insert_operation(self, record: OperationRecord) -> None:
        """Persist every field; the caller owns id uniqueness."""
        def _do(db):
            db.add(LocalBurn(**record.to_local_columns()))
        self._write("insert_operation", _do)

    def query_unsynced_operations(self) -> List[OperationRecord]:
        def _do(db):
            rows = db.execute(select(LocalBurn).where(LocalBurn.synced.is_(False))).scalars().all()
            return [OperationRecord.from_local(r) for r in rows]
        return self._read("query_unsynced_operations", _do)

    def mark_synced(self, burn_id: str) -> bool:
        """Flip one record to synced. Returns False when the id is unknown or already synced."""
        def _do(db):
            res = db.execute(
                update(LocalBurn)
                .where(LocalBurn.id == burn_id, LocalBurn.synced.is_(False))
                .values(synced=True)
            )
            return res.rowcount > 0
        return self._write("mark_synced", _do)

    def list_all_operations(self) -> List[OperationRecord]:
        def _do(db):
            rows = db.execute(select(LocalBurn).order_by(LocalBurn.created_at.desc())).scalars().all()
            return [OperationRecord.from_local(r) for r in rows]
        return self._read("list_all_operations", _do)

    def get_operation(self, burn_id: str) -> Optional[OperationRecord]:
        def _do(db):
            row = db.get(LocalBurn, burn_id)
            return OperationRecord.from_local(row) if row else None
        return self._read("get_operation", _do)

    def delete_operation(self, burn_id: str) -> bool:
        def _do(db):
            row = db.get(LocalBurn, burn_id)
            if row is None:
                return False
            db.delete(row)
            return True
        return self._write("delete_operation", _do)

    # Personnel

    def insert_person(self, person: PersonRecord) -> None:
        def _do(db):
            db.add(Person(id=person.id, name=person.name, role=person.role.value))
        self._write("insert_person", _do)

    def list_personnel(self) -> List[PersonRecord]:
        def _do(db):
            rows = db.execute(select(Person).order_by(Person.name)).scalars().all()
            return [PersonRecord(id=r.id, name=r.name, role=r.role) for r in rows]
        return self._read("list_personnel", _do)

    def delete_person(self, person_id: str) -> bool:
        def _do(db):
            row = db.get(Person, person_id)
            if row is None:
                return False
            db.delete(row)
            return True
        return self._write("delete_person", _do)
