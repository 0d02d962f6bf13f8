# impactwrap/api/main.py
"""
HTTP API for organizations, donor uploads and public impact pages.

Run with:
    uvicorn impactwrap.api.main:app
or:
    python -m impactwrap serve
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool

from .. import __version__
from ..core.db import init_schema
from ..core.errors import ImpactWrapError, OrganizationNotFoundError, StorageError, UploadTooLargeError
from ..core.helpers import public_donor_view
from ..core.log_config import get_logger
from ..core.models import OrganizationProfile
from ..core.settings import Settings, settings as get_settings
from ..donor_ingest.fetcher import decode_csv_bytes
from ..donor_ingest.orchestrator import UploadResult, run_donor_upload
from ..donor_ingest.template import TEMPLATE_FILENAME, render_template
from ..impact import CoefficientOverrides, impact_for_donor, meals_per_dollar
from ..storage import DonorStore, SqlDonorStore, build_store
from .middleware import RequestContextMiddleware
from .schemas import DonorUploadRequest, OrganizationCreate, OrganizationUpdate

logger = get_logger(__name__)

UPLOAD_FAILED_MESSAGE = "Failed to process donor data"
INTERNAL_ERROR_MESSAGE = "Internal server error"


def _message(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message, **extra})


def _upload_response(result: UploadResult) -> JSONResponse:
    logger.info(
        "Donor upload finished",
        organization_id=result.organization_id,
        outcome=result.outcome,
        total_processed=result.total_processed,
        duplicates=len(result.duplicates),
    )
    return JSONResponse(status_code=result.status_code, content=result.to_response())


def create_app(store: Optional[DonorStore] = None, config: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        store: Donor store (defaults to build_store() from settings)
        config: Settings (defaults to application settings)
    """
    config = config or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if isinstance(app.state.store, SqlDonorStore):
            init_schema(app.state.store.engine)
        logger.info(
            "API starting",
            service_name=config.service_name,
            version=__version__,
            environment=config.environment,
            store=type(app.state.store).__name__,
        )
        yield
        logger.info("API stopped")

    app = FastAPI(title="Impact Wrapped API", version=__version__, lifespan=lifespan)
    app.state.config = config
    app.state.store = store if store is not None else build_store(config)

    app.add_middleware(RequestContextMiddleware)

    # ── Error handlers

    @app.exception_handler(RequestValidationError)
    async def validation_error(_: Request, exc: RequestValidationError):
        return _message(
            status.HTTP_400_BAD_REQUEST,
            "Invalid request",
            errors=jsonable_encoder(exc.errors(), custom_encoder={Exception: str}),
        )

    @app.exception_handler(OrganizationNotFoundError)
    async def organization_not_found(_: Request, exc: OrganizationNotFoundError):
        return _message(status.HTTP_404_NOT_FOUND, "Organization not found")

    @app.exception_handler(UploadTooLargeError)
    async def upload_too_large(_: Request, exc: UploadTooLargeError):
        return _message(status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, str(exc))

    @app.exception_handler(StorageError)
    async def storage_error(request: Request, exc: StorageError):
        logger.error("Storage failure", path=request.url.path, error=str(exc))
        return _message(status.HTTP_500_INTERNAL_SERVER_ERROR, UPLOAD_FAILED_MESSAGE)

    @app.exception_handler(ImpactWrapError)
    async def service_error(request: Request, exc: ImpactWrapError):
        logger.error("Service failure", path=request.url.path, error=str(exc), error_type=type(exc).__name__)
        return _message(status.HTTP_500_INTERNAL_SERVER_ERROR, UPLOAD_FAILED_MESSAGE)

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error", path=request.url.path, error_type=type(exc).__name__)
        return _message(status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE)

    # ── Routes

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.post("/api/organizations", status_code=status.HTTP_201_CREATED)
    def create_organization(body: OrganizationCreate):
        created = app.state.store.create_organization(OrganizationProfile(**body.changes()))
        logger.info("Organization created", organization_id=created.id)
        return created.to_dict()

    @app.get("/api/organizations/{organization_id}")
    def get_organization(organization_id: int):
        organization = app.state.store.get_organization(organization_id)
        if organization is None:
            raise OrganizationNotFoundError(organization_id)
        return organization.to_dict()

    @app.post("/api/organizations/{organization_id}")
    def update_organization(organization_id: int, body: OrganizationUpdate):
        updated = app.state.store.update_organization(organization_id, body.changes())
        if updated is None:
            raise OrganizationNotFoundError(organization_id)
        logger.info("Organization updated", organization_id=organization_id)
        return updated.to_dict()

    @app.get("/api/organizations/{organization_id}/donors")
    def list_donors(organization_id: int):
        store = app.state.store
        if store.get_organization(organization_id) is None:
            raise OrganizationNotFoundError(organization_id)
        return [donor.to_dict() for donor in store.get_all_for_org(organization_id)]

    @app.post("/api/donors/upload")
    def upload_donors(body: DonorUploadRequest):
        if not isinstance(body.donors, list) or not body.donors:
            return _message(status.HTTP_400_BAD_REQUEST, "Invalid donor data format")

        result = run_donor_upload(
            app.state.store,
            body.organization_id,
            rows=body.donors,
            config=app.state.config,
        )
        return _upload_response(result)

    @app.post("/api/organizations/{organization_id}/donors/csv")
    async def upload_donor_csv(organization_id: int, request: Request):
        csv_text = decode_csv_bytes(await request.body())
        result = await run_in_threadpool(
            run_donor_upload,
            app.state.store,
            organization_id,
            csv_text=csv_text,
            config=app.state.config,
        )
        return _upload_response(result)

    @app.get("/api/impact/{token}")
    def get_impact(token: str):
        store = app.state.store
        donor = store.get_by_token(token)
        if donor is None:
            return _message(status.HTTP_404_NOT_FOUND, "Donor not found")

        organization = store.get_organization(donor.organization_id)
        if organization is None:
            raise OrganizationNotFoundError(donor.organization_id)

        return {
            "donor": public_donor_view(donor, organization),
            "organization": {
                **organization.to_dict(),
                "mealsPerDollar": meals_per_dollar(CoefficientOverrides.from_organization(organization)),
            },
            "impact": impact_for_donor(donor, organization).to_dict(),
        }

    @app.get("/api/donors/template")
    def download_template():
        return Response(
            content=render_template(),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{TEMPLATE_FILENAME}"'},
        )

    return app


# Module-level app instance for `uvicorn impactwrap.api.main:app`
app = create_app()
