from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Request
from sqlalchemy.orm import sessionmaker

from ..auth.provider import AuthProvider, GoTrueAuthProvider
from ..auth.session import SessionGate
from ..config import settings
from ..remote.provider import RemoteStore
from ..remote.rest_provider import RestRemoteStore
from .analysis import AnalysisClient
from .connectivity import ConnectivitySignal
from .local_store import LocalRecordStore
from .lookups import LookupClient
from .sync import SyncCoordinator
from .workspace import BurnWorkspace, bind_position_events


@dataclass
class AppServices:
    store: LocalRecordStore
    signal: ConnectivitySignal
    session: SessionGate
    coordinator: SyncCoordinator
    workspace: BurnWorkspace
    analysis: AnalysisClient
    lookups: LookupClient
    _unbind_position: Optional[Callable[[], None]] = None

    def start(self) -> None:
        self.coordinator.start()
        if self._unbind_position is None:
            self._unbind_position = bind_position_events(self.workspace, self.signal, self.lookups)

    def stop(self) -> None:
        self.coordinator.stop()
        if self._unbind_position is not None:
            self._unbind_position()
            self._unbind_position = None


def build_services(
    session_factory: Optional[sessionmaker] = None,
    remote: Optional[RemoteStore] = None,
    auth_provider: Optional[AuthProvider] = None,
    analysis: Optional[AnalysisClient] = None,
    lookups: Optional[LookupClient] = None,
    online: Optional[bool] = None,
) -> AppServices:
    if session_factory is None:
        from ..db import SessionLocal
        session_factory = SessionLocal
    if remote is None and settings.remote_url:
        remote = RestRemoteStore()
    if auth_provider is None and settings.remote_url:
        auth_provider = GoTrueAuthProvider()

    store = LocalRecordStore(session_factory)
    signal = ConnectivitySignal(online=settings.start_online if online is None else online)
    session = SessionGate(auth_provider)
    return AppServices(
        store=store,
        signal=signal,
        session=session,
        coordinator=SyncCoordinator(store, remote, session, signal),
        workspace=BurnWorkspace(),
        analysis=analysis or AnalysisClient(),
        lookups=lookups or LookupClient(),
    )


def get_services(request: Request) -> AppServices:
    return request.app.state.services
