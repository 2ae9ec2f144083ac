from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from .config import settings
from .db import init_db
from .logging import setup_logging, RequestIdMiddleware
from .services.container import AppServices, build_services
from .services.local_store import LocalStoreError
from .auth.router import router as auth_router
from .routes.burns import router as burns_router
from .routes.personnel import router as personnel_router
from .routes.geometry import router as geometry_router
from .routes.analysis import router as analysis_router
from .routes.lookups import router as lookups_router
from .routes.workspace import router as workspace_router
from .routes.connectivity import router as connectivity_router
from .routes.checklists import router as checklists_router


logger = structlog.get_logger()


def create_app(services: Optional[AppServices] = None) -> FastAPI:
    setup_logging()
    app = FastAPI(title=settings.app_name)
    # Injected services bring their own store; only the default one is created here
    owns_store = services is None
    app.state.services = services or build_services()

    # Middlewares
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, lambda r, e: JSONResponse(status_code=429, content={"detail": "Rate limit exceeded"}))
    app.add_middleware(SlowAPIMiddleware)

    @app.exception_handler(LocalStoreError)
    async def _local_store_failed(request: Request, exc: LocalStoreError):
        # Nothing was saved anywhere
        return JSONResponse(
            status_code=507,
            content={"detail": "Errore salvataggio locale: il report NON è stato salvato.", "error": str(exc)},
        )

    # Routers
    app.include_router(auth_router)
    app.include_router(burns_router)
    app.include_router(personnel_router)
    app.include_router(geometry_router)
    app.include_router(analysis_router)
    app.include_router(lookups_router)
    app.include_router(workspace_router)
    app.include_router(connectivity_router)
    app.include_router(checklists_router)

    # Metrics
    Instrumentator().instrument(app).expose(app)

    @app.get("/health")
    def health():
        return {"status": "ok", "online": app.state.services.signal.online}

    @app.on_event("startup")
    def _startup():
        if owns_store and settings.auto_create_db:
            init_db()
            logger.info("local_store_ready", database_url=settings.database_url)
        app.state.services.start()
        logger.info("startup_complete", environment=settings.environment)

    @app.on_event("shutdown")
    def _shutdown():
        app.state.services.stop()

    return app


app = create_app()
