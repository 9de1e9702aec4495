from contextlib import asynccontextmanager
from typing import Optional
import logging
import time

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from homedash_core.config import Settings
from homedash_core.errors import HomedashError, MissingParameterError, ValidationError
from homedash_core.init_db import init_db
from homedash_core.logging_config import configure_logging
from homedash_core.probe import ProbeAdapter
from homedash_core.store import ConfigStore
from .routes import backups, integrations, settings as settings_routes

logger = logging.getLogger("homedash_api")


def request_error(exc: RequestValidationError) -> HomedashError:
    """Map a request-parsing failure onto the error taxonomy.

    Rejected input values are left out so credentials never bounce back.
    """
    problems = exc.errors()
    names = [".".join(str(p) for p in e.get("loc", ()) if p != "body") or "body" for e in problems]
    if problems and all(e.get("type") == "missing" for e in problems):
        return MissingParameterError(names)
    messages = [f"{name}: {e.get('msg', 'invalid value')}" for name, e in zip(names, problems)]
    return ValidationError("Invalid request: " + "; ".join(messages), messages)


def create_app(store: Optional[ConfigStore] = None, probe: Optional[ProbeAdapter] = None,
               settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(app.state.store, seed=settings.seed_on_startup)
        logger.info("api.start version=%s", app.version)
        yield
        logger.info("api.stop")

    app = FastAPI(title="Homedash API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store or ConfigStore.from_url(settings.effective_database_url())
    app.state.probe = probe or ProbeAdapter(timeout=settings.probe_timeout)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    @app.middleware("http")
    async def request_logger(request, call_next):  # type: ignore
        start = time.time()
        path = request.url.path
        if path.startswith("/health") or path.startswith("/api/health"):
            return await call_next(request)
        response = await call_next(request)
        duration_ms = int((time.time() - start) * 1000)
        logger.info("http %s %s -> %s (%dms)", request.method, path, response.status_code, duration_ms)
        return response

    @app.exception_handler(HomedashError)
    async def homedash_error(request: Request, exc: HomedashError):
        logger.warning("http.error %s %s kind=%s status=%s", request.method, request.url.path, exc.kind, exc.status_code)
        return JSONResponse(exc.to_dict(), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        error = request_error(exc)
        logger.warning("http.error %s %s kind=%s status=%s", request.method, request.url.path, error.kind, error.status_code)
        return JSONResponse(error.to_dict(), status_code=error.status_code)

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.exception("http.unhandled %s %s", request.method, request.url.path)
        return JSONResponse({"error": "Internal server error", "code": "internal_error"}, status_code=500)

    # Group API routes under /api for frontend expectation, while keeping root mounting for direct calls/scripts.
    api_router = APIRouter(prefix="/api")
    for module in (settings_routes, backups, integrations):
        api_router.include_router(module.router)
    app.include_router(api_router)
    for module in (settings_routes, backups, integrations):
        app.include_router(module.router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/api/health")
    async def api_health():
        return {"backend": "ok", "version": app.version}

    return app


def build_app() -> FastAPI:
    """Process entry point: load env, configure logging, build the app."""
    settings = Settings()
    settings.load_backend_env()
    configure_logging()
    settings = Settings()  # re-read with the env file applied
    settings.debug_print()
    return create_app(settings=settings)


__all__ = ["create_app", "build_app"]
