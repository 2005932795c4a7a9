from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ingestion.settings import Settings, get_settings
from ingestion.utils.logging import configure_logging

from .auth import UnauthorizedError
from .cron_routes import router as cron_router
from .database import init_db
from .routes import router

# Load the project-root .env before settings are first read
load_dotenv(Path(__file__).parent.parent / ".env")

VALUE_ERROR_PREFIX = "Value error, "


def _validation_details(exc: RequestValidationError) -> dict[str, list[str]]:
    details: dict[str, list[str]] = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        field = loc[-1] if loc else "body"
        message = str(error.get("msg", "Invalid value"))
        if message.startswith(VALUE_ERROR_PREFIX):
            message = message[len(VALUE_ERROR_PREFIX):]
        details.setdefault(field, []).append(message)
    return details


def create_app(settings: Settings | None = None) -> FastAPI:
    config = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if config.app_env != "test":
            configure_logging(config.log_level, json_enabled=config.log_json)
        init_db(config)
        yield

    app = FastAPI(title="Alak Oil & Gas Site API", version="0.1.0", lifespan=lifespan)
    if settings is not None:
        app.dependency_overrides[get_settings] = lambda: settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )

    @app.exception_handler(UnauthorizedError)
    async def unauthorized_handler(request: Request, exc: UnauthorizedError) -> JSONResponse:
        return JSONResponse(status_code=401, content={"success": False, "error": "Unauthorized"})

    @app.exception_handler(RequestValidationError)
    async def validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"error": "Validation failed", "details": _validation_details(exc)},
        )

    app.include_router(router)
    app.include_router(cron_router)

    @app.get("/healthz", tags=["system"])
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
