# ticketing/main.py
import logging
import random
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from ticketing.core.config import Settings, get_settings
from ticketing.core.database import Base, build_engine, build_session_factory
from ticketing.core.errors import (
    MalformedInputError,
    MalformedTokenError,
    PersistenceError,
    SimulatedFailureError,
)
from ticketing.core.logging_utils import configure_logging
from ticketing.report.routes import router as report_router
from ticketing.report.services import ReportLog
from ticketing.ticket.ledger import CsvTicketLedger
from ticketing.ticket.routes import router as ticket_router
from ticketing.ticket.services import TicketAuthority, random_fault_hook

logger = logging.getLogger("ticketing.authority")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "malformed request body"


def create_app(settings: Settings | None = None, authority: TicketAuthority | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    engine = build_engine(settings.DATABASE_URL)
    if authority is None:
        fault_hook = None
        if settings.VALIDATION_FAILURE_RATE > 0:
            fault_hook = random_fault_hook(
                settings.VALIDATION_FAILURE_RATE, random.Random(settings.VALIDATION_FAILURE_SEED)
            )
        authority = TicketAuthority(CsvTicketLedger(settings.LEDGER_PATH), fault_hook=fault_hook)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        Base.metadata.create_all(bind=engine)
        loaded = authority.ledger.load()
        logger.info("Authority ready: %s tickets loaded", loaded)
        yield
        engine.dispose()

    app = FastAPI(
        title=settings.APP_NAME,
        description=settings.APP_DESC,
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.authority = authority
    app.state.report_log = ReportLog(build_session_factory(engine))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def _malformed_body(request: Request, exc: RequestValidationError):
        logger.warning("Malformed request to %s: %s", request.url.path, exc.errors())
        return _error(400, _validation_message(exc))

    @app.exception_handler(MalformedInputError)
    async def _malformed_input(request: Request, exc: MalformedInputError):
        logger.warning("Malformed input to %s: %s", request.url.path, exc)
        return _error(400, str(exc))

    @app.exception_handler(MalformedTokenError)
    async def _malformed_token(request: Request, exc: MalformedTokenError):
        logger.warning("Undecodable ticket at %s: %s", request.url.path, exc)
        return _error(500, str(exc))

    @app.exception_handler(PersistenceError)
    async def _persistence(request: Request, exc: PersistenceError):
        return _error(500, str(exc))

    @app.exception_handler(SimulatedFailureError)
    async def _simulated(request: Request, exc: SimulatedFailureError):
        logger.warning("Injected failure at %s", request.url.path)
        return _error(500, str(exc))

    # Routers
    app.include_router(ticket_router)
    app.include_router(report_router)

    @app.get("/health", tags=["Health"], response_class=PlainTextResponse)
    def health():
        return "OK"

    return app


app = create_app()
