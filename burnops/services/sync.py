"""
Sync coordinator.

Decides, per save, between the remote store and the local fallback, and pushes
the local backlog once connectivity returns. A record that could not reach the
remote store is always written locally with ``synced=False``; only a failure of
that local write is fatal.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Set, Tuple

import anyio
import structlog

from ..auth.session import SessionGate, Credentials
from ..remote.provider import RemoteStore, RemoteStoreError, RemoteAuthError
from ..schemas.burns import OperationRecord
from .connectivity import ConnectivitySignal, SignalEvent, SignalMessage
from .local_store import LocalRecordStore, LocalStoreError


logger = structlog.get_logger()


class SaveState(str, Enum):
    IDLE = "idle"
    ATTEMPTING_REMOTE = "attempting_remote"
    FALLING_BACK_LOCAL = "falling_back_local"
    DONE = "done"


class FallbackReason(str, Enum):
    OFFLINE = "offline"
    ANONYMOUS = "anonymous"
    REMOTE_UNCONFIGURED = "remote_unconfigured"
    REMOTE_ERROR = "remote_error"
    REMOTE_AUTH = "remote_auth"


_FALLBACK_MESSAGES = {
    FallbackReason.OFFLINE: "Nessuna connessione. Report salvato in locale, verrà inviato appena sarai online.",
    FallbackReason.ANONYMOUS: "Utente non loggato. Report salvato in locale.",
    FallbackReason.REMOTE_UNCONFIGURED: "Archivio centrale non configurato. Report salvato in locale.",
    FallbackReason.REMOTE_ERROR: "Errore server. Report salvato in locale.",
    FallbackReason.REMOTE_AUTH: "Sessione scaduta. Report salvato in locale.",
}


@dataclass
class SaveResult:
    record: OperationRecord
    destination: str  # remote|local
    states: List[SaveState]
    reason: Optional[FallbackReason] = None

    @property
    def synced(self) -> bool:
        return self.destination == "remote"

    @property
    def message(self) -> str:
        if self.reason is None:
            return "Report salvato su cloud (archivio centrale)."
        return _FALLBACK_MESSAGES[self.reason]


@dataclass
class SweepResult:
    attempted: int = 0
    synced: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    aborted: Optional[str] = None


class SyncCoordinator:
    def __init__(
        self,
        store: LocalRecordStore,
        remote: Optional[RemoteStore],
        session: SessionGate,
        signal: ConnectivitySignal,
    ) -> None:
        self.store = store
        self.remote = remote
        self.session = session
        self.signal = signal
        # Ids currently being pushed by some sweep
        self._in_flight: Set[str] = set()
        self._unsubscribe: Optional[Callable[[], None]] = None

    def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self.signal.subscribe(self._on_signal)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def _on_signal(self, message: SignalMessage) -> None:
        if message.event is SignalEvent.ONLINE:
            result = await self.reconcile()
            logger.info(
                "sync_on_reconnect",
                synced=len(result.synced),
                failed=len(result.failed),
                aborted=result.aborted,
            )

    async def _local(self, fn, *args):
        # The embedded store is blocking I/O; keep the event loop free
        return await anyio.to_thread.run_sync(fn, *args)

    async def _credentials(self) -> Optional[Credentials]:
        return await self.session.current_credentials()

    # Save path

    async def save_operation(self, record: OperationRecord) -> SaveResult:
        states = [SaveState.IDLE]
        if not self.signal.online:
            return await self._fall_back(record, states, FallbackReason.OFFLINE)
        if self.remote is None:
            return await self._fall_back(record, states, FallbackReason.REMOTE_UNCONFIGURED)

        creds = await self._credentials()
        if creds is None:
            return await self._fall_back(record, states, FallbackReason.ANONYMOUS)

        owned = record.model_copy(update={"owner_id": creds.identity.id})
        states.append(SaveState.ATTEMPTING_REMOTE)
        try:
            await self.remote.insert(owned.to_remote_row(creds.identity.id), creds.access_token)
        except RemoteAuthError as e:
            logger.warning("burn_remote_auth_rejected", burn_id=record.id, error=str(e))
            self.session.invalidate("remote store rejected credentials", creds.access_token)
            return await self._fall_back(owned, states, FallbackReason.REMOTE_AUTH)
        except RemoteStoreError as e:
            logger.warning("burn_remote_insert_failed", burn_id=record.id, error=str(e))
            return await self._fall_back(owned, states, FallbackReason.REMOTE_ERROR)
        except Exception as e:
            # Any remote failure falls back locally
            logger.error("burn_remote_insert_unexpected", burn_id=record.id, error=str(e))
            return await self._fall_back(owned, states, FallbackReason.REMOTE_ERROR)

        states.append(SaveState.DONE)
        logger.info("burn_saved_remote", burn_id=record.id, user_id=creds.identity.id)
        return SaveResult(
            record=owned.model_copy(update={"synced": True}),
            destination="remote",
            states=states,
        )

    async def _fall_back(self, record: OperationRecord, states: List[SaveState], reason: FallbackReason) -> SaveResult:
        states.append(SaveState.FALLING_BACK_LOCAL)
        local = record.model_copy(update={"synced": False})
        try:
            await self._local(self.store.insert_operation, local)
        except LocalStoreError:
            logger.error("burn_local_write_failed", burn_id=record.id, reason=reason.value)
            raise
        states.append(SaveState.DONE)
        logger.info("burn_saved_local", burn_id=record.id, reason=reason.value, owner=local.owner_id)
        return SaveResult(record=local, destination="local", states=states, reason=reason)

    # Reconciliation

    async def reconcile(self) -> SweepResult:
        result = SweepResult()
        pending = await self._local(self.store.query_unsynced_operations)
        if not pending:
            return result
        if self.remote is None:
            result.aborted = FallbackReason.REMOTE_UNCONFIGURED.value
            return result
        if not self.signal.online:
            result.aborted = FallbackReason.OFFLINE.value
            return result
        creds = await self._credentials()
        if creds is None:
            result.aborted = "no_identity"
            logger.info("sync_sweep_aborted", reason="no_identity", pending=len(pending))
            return result

        for record in pending:
            outcome = await self._push_one(record, creds)
            if outcome == "synced":
                result.attempted += 1
                result.synced.append(record.id)
            elif outcome in ("failed", "auth_rejected"):
                result.attempted += 1
                result.failed.append(record.id)
                if outcome == "auth_rejected":
                    # The token is dead for every remaining record too
                    result.aborted = FallbackReason.REMOTE_AUTH.value
                    break
            else:
                result.skipped.append(record.id)

        logger.info(
            "sync_sweep_finished",
            attempted=result.attempted,
            synced=len(result.synced),
            failed=len(result.failed),
            skipped=len(result.skipped),
            aborted=result.aborted,
        )
        return result

    async def _push_one(self, record: OperationRecord, creds: Credentials) -> str:
        if record.id in self._in_flight:
            return "skipped"
        if record.owner_id and record.owner_id != creds.identity.id:
            # Another operator's backlog
            logger.info("sync_skip_foreign_owner", burn_id=record.id)
            return "skipped"
        self._in_flight.add(record.id)
        try:
            try:
                current = await self._local(self.store.get_operation, record.id)
            except LocalStoreError as e:
                logger.error("sync_reread_failed", burn_id=record.id, error=str(e))
                return "failed"
            if current is None or current.synced:
                return "skipped"
            try:
                # created_at travels with the row: the original capture time, not now
                await self.remote.insert(record.to_remote_row(creds.identity.id), creds.access_token)
            except RemoteAuthError as e:
                logger.warning("sync_push_auth_rejected", burn_id=record.id, error=str(e))
                self.session.invalidate("remote store rejected credentials", creds.access_token)
                return "auth_rejected"
            except RemoteStoreError as e:
                logger.warning("sync_push_failed", burn_id=record.id, error=str(e))
                return "failed"
            except Exception as e:
                logger.error("sync_push_unexpected", burn_id=record.id, error=str(e))
                return "failed"
            try:
                await self._local(self.store.mark_synced, record.id)
            except LocalStoreError as e:
                # Row is remote but still flagged locally; the next sweep re-sends
                # it and the remote ignores the duplicate id
                logger.error("sync_mark_failed", burn_id=record.id, error=str(e))
                return "failed"
            return "synced"
        finally:
            self._in_flight.discard(record.id)

    # Registry

    async def list_registry(self) -> Tuple[List[OperationRecord], bool]:
        """Unsynced local records first, then the operator's remote records.

        Returns ``(records, remote_available)``. Without the remote, local
        copies of already-synced records stand in for it.
        """
        local = await self._local(self.store.list_all_operations)
        unsynced = [r for r in local if not r.synced]
        remote_records: List[OperationRecord] = []
        remote_ok = False
        if self.remote is not None and self.signal.online:
            creds = await self._credentials()
            if creds is not None:
                try:
                    rows = await self.remote.select_for_owner(creds.identity.id, creds.access_token)
                    remote_ok = True
                except RemoteStoreError as e:
                    logger.warning("registry_remote_read_failed", error=str(e))
                    rows = []
                for row in rows:
                    try:
                        remote_records.append(OperationRecord.from_remote_row(row))
                    except (ValueError, KeyError, TypeError) as e:
                        logger.warning("registry_row_rejected", row_id=row.get("id") if isinstance(row, dict) else None, error=str(e))
        if not remote_ok:
            remote_records = [r for r in local if r.synced]
        seen = {r.id for r in unsynced}
        return unsynced + [r for r in remote_records if r.id not in seen], remote_ok

    async def get_operation(self, burn_id: str) -> Optional[OperationRecord]:
        record = await self._local(self.store.get_operation, burn_id)
        if record is not None:
            return record
        records, _ = await self.list_registry()
        return next((r for r in records if r.id == burn_id), None)

    async def delete_operation(self, burn_id: str, synced: bool) -> bool:
        """Delete remotely for synced records (plus any local copy), locally otherwise."""
        if not synced:
            return await self._local(self.store.delete_operation, burn_id)
        if self.remote is None or not self.signal.online:
            raise RemoteStoreError("remote store unavailable")
        creds = await self._credentials()
        if creds is None:
            raise RemoteAuthError("not authenticated")
        await self.remote.delete(burn_id, creds.access_token)
        await self._local(self.store.delete_operation, burn_id)
        logger.info("burn_deleted_remote", burn_id=burn_id)
        return True
