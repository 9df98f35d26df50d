# printnearby/main.py
# Application factory: loads the ZIP gazetteer once at startup, wires the
# printer store into the search service and maps search errors to HTTP.

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import uuid

import structlog

# Local imports
from printnearby.core.config import Settings, settings
from printnearby.core.exceptions import (
    DependencyFailureError,
    InvalidArgumentError,
    NearbySearchError,
    ZipNotFoundError,
)
from printnearby.api.routes import router as api_router
from printnearby.logging import configure_logging
from printnearby.middleware.logging import RequestLoggingMiddleware
from printnearby.models.dto import ErrorResponse
from printnearby.services.gazetteer import Gazetteer
from printnearby.services.nearby_search import NearbySearchService
from printnearby.services.record_store import FirestorePrinterStore, InMemoryPrinterStore

logger = structlog.get_logger(__name__)

ERROR_STATUS = {
    InvalidArgumentError: status.HTTP_400_BAD_REQUEST,
    ZipNotFoundError: status.HTTP_404_NOT_FOUND,
    DependencyFailureError: status.HTTP_503_SERVICE_UNAVAILABLE,
}

def build_printer_store(app_settings: Settings):
    if app_settings.PRINTER_STORE_BACKEND == "firestore":
        return FirestorePrinterStore(
            project_id=app_settings.FIRESTORE_PROJECT_ID,
            collection=app_settings.PRINTERS_COLLECTION,
            database=app_settings.FIRESTORE_DATABASE,
            access_token=app_settings.FIRESTORE_ACCESS_TOKEN,
            emulator_host=app_settings.FIRESTORE_EMULATOR_HOST,
            timeout=app_settings.FIRESTORE_TIMEOUT,
        )
    if app_settings.PRINTER_SEED_PATH:
        return InMemoryPrinterStore.from_json_file(app_settings.PRINTER_SEED_PATH)
    return InMemoryPrinterStore()

def create_app(app_settings: Settings = settings) -> FastAPI:
    # --- Application Lifecycle Management ---
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("application_startup", version=app_settings.VERSION)
        try:
            gazetteer = Gazetteer.load(app_settings.ZIP_DATASET_PATH)
        except NearbySearchError as e:
            # Without the gazetteer no search can be answered; refuse to start
            logger.critical("gazetteer_load_failed", error=str(e))
            raise

        printer_store = build_printer_store(app_settings)
        app.state.gazetteer = gazetteer
        app.state.printer_store = printer_store
        app.state.search_service = NearbySearchService(
            gazetteer,
            printer_store,
            average_speed_mph=app_settings.AVERAGE_DRIVE_SPEED_MPH,
        )
        logger.info(
            "application_ready",
            zip_codes=len(gazetteer),
            printer_store=app_settings.PRINTER_STORE_BACKEND,
        )

        yield

        logger.info("application_shutdown")
        if isinstance(printer_store, FirestorePrinterStore):
            await printer_store.aclose()

    app = FastAPI(
        title=app_settings.PROJECT_NAME,
        version=app_settings.VERSION,
        description=app_settings.BRIEF_DESCRIPTION,
        lifespan=lifespan,
    )
    app.add_middleware(RequestLoggingMiddleware)

    # --- API Routes ---
    app.include_router(api_router, prefix="/api")

    # --- Health Check Endpoint ---
    @app.get("/health", status_code=status.HTTP_200_OK)
    async def health_check(request: Request):
        return {
            "status": "ok",
            "zip_codes": len(request.app.state.gazetteer),
            "printer_store": app_settings.PRINTER_STORE_BACKEND,
        }

    # --- Search error mapping ---
    @app.exception_handler(NearbySearchError)
    async def search_error_handler(request: Request, exc: NearbySearchError):
        status_code = next(
            (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)),
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
        if status_code >= 500:
            logger.error("search_failed", error=str(exc), error_code=exc.error_code)
        return JSONResponse(
            status_code=status_code,
            content={"detail": ErrorResponse(error=exc.error_code, detail=str(exc)).model_dump(exclude_none=True)},
        )

    # --- Global Exception Handler (for unhandled errors) ---
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        error_id = str(uuid.uuid4())
        logger.error("unhandled_exception", error_id=error_id, error=str(exc), exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": ErrorResponse(
                    error="INTERNAL_SERVER_ERROR",
                    detail="An unexpected error occurred. Please report this error ID.",
                    error_id=error_id,
                ).model_dump()
            },
        )

    return app

configure_logging()
app = create_app()
