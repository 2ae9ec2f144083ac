from pydantic import BaseModel, EmailStr, ConfigDict
from typing import Optional, Any, Dict


class Identity(BaseModel):
    """Authenticated operator as far as the core cares: an id and an email."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: Optional[str] = None

    @classmethod
    def from_provider(cls, payload: Dict[str, Any]) -> "Identity":
        """Adapt a raw auth-provider user object; raises ValueError on junk."""
        if not isinstance(payload, dict):
            raise ValueError("user payload is not an object")
        user = payload.get("user") if isinstance(payload.get("user"), dict) else payload
        user_id = user.get("id") or user.get("sub")
        if not user_id:
            raise ValueError("user payload has no id")
        email = user.get("email")
        return cls(id=str(user_id), email=str(email) if email else None)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class MeResponse(BaseModel):
    authenticated: bool
    id: Optional[str] = None
    email: Optional[str] = None
