from typing import Any, Dict, List, Optional


class RemoteStoreError(RuntimeError):
    """Any failed call to the remote store. Always retryable from the core's view."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RemoteAuthError(RemoteStoreError):
    """The remote store rejected the caller's credentials (expired or invalid)."""


class RemoteStore:
    """Authoritative cloud store for operation rows, scoped to the caller's identity."""

    async def insert(self, row: Dict[str, Any], access_token: str) -> None:
        """Insert one row keyed by ``row["id"]``; a duplicate id is a no-op."""
        raise NotImplementedError

    async def select_for_owner(self, owner_id: str, access_token: str) -> List[Dict[str, Any]]:
        raise NotImplementedError

    async def delete(self, burn_id: str, access_token: str) -> None:
        raise NotImplementedError
