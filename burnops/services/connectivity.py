"""
Connectivity and position signal.
Subscribe/unsubscribe source of discrete platform events. Online/offline only
fire on a transition; position events fire every time they are published.
"""
import inspect
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import structlog


logger = structlog.get_logger()


class SignalEvent(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    POSITION_AVAILABLE = "position_available"
    POSITION_FAILED = "position_failed"


@dataclass(frozen=True)
class SignalMessage:
    event: SignalEvent
    data: Dict[str, Any] = field(default_factory=dict)


Listener = Callable[[SignalMessage], Union[None, Awaitable[None]]]


class ConnectivitySignal:
    def __init__(self, online: bool = True) -> None:
        self._online = online
        self._listeners: List[Listener] = []

    @property
    def online(self) -> bool:
        return self._online

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns the matching unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def _emit(self, message: SignalMessage) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(message)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                # Remaining listeners still get the event
                logger.error("signal_listener_failed", signal_event=message.event.value, error=str(e))

    async def set_online(self, online: bool) -> bool:
        """Report the platform's connectivity. Returns True when it was a transition."""
        if online == self._online:
            return False
        self._online = online
        event = SignalEvent.ONLINE if online else SignalEvent.OFFLINE
        logger.info("connectivity_changed", online=online)
        await self._emit(SignalMessage(event=event))
        return True

    async def publish_position(self, lat: float, lon: float, accuracy_m: Optional[float] = None) -> None:
        await self._emit(SignalMessage(
            event=SignalEvent.POSITION_AVAILABLE,
            data={"lat": lat, "lon": lon, "accuracy_m": accuracy_m},
        ))

    async def publish_position_failed(self, reason: str) -> None:
        await self._emit(SignalMessage(event=SignalEvent.POSITION_FAILED, data={"reason": reason}))
