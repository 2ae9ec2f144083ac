from fastapi import APIRouter, Depends, HTTPException, status

from ..schemas.auth import LoginRequest, MeResponse
from ..services.container import AppServices, get_services
from .provider import AuthSessionInvalid, AuthUnavailable


router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=MeResponse)
async def login(req: LoginRequest, services: AppServices = Depends(get_services)):
    try:
        identity = await services.session.sign_in(req.email, req.password)
    except AuthSessionInvalid:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    except AuthUnavailable as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=f"Auth provider unavailable: {e}")
    except ValueError:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Malformed auth provider response")
    return MeResponse(authenticated=True, id=identity.id, email=identity.email)


@router.post("/logout")
async def logout(services: AppServices = Depends(get_services)):
    await services.session.sign_out()
    return {"status": "ok"}


@router.get("/me", response_model=MeResponse)
async def me(services: AppServices = Depends(get_services)):
    identity = await services.session.get_current_identity()
    if identity is None:
        return MeResponse(authenticated=False)
    return MeResponse(authenticated=True, id=identity.id, email=identity.email)
