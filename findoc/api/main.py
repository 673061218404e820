"""FastAPI application for financial document ingestion.

Production-ready API with:
- Health and readiness checks for Kubernetes
- PDF upload with background analysis
- Status, retrieval and deletion of invoices and purchase orders
- Structured error responses
- Prometheus metrics for monitoring

Based on FastAPI best practices:
https://fastapi.tiangolo.com/
"""

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, File, Form, Header, Query, Request, Response, UploadFile, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from findoc.api import metrics
from findoc.api.container import ServiceContainer, build_container
from findoc.db.session import create_schema
from findoc.deletion.orchestrator import DeletionOutcome
from findoc.documents.models import DocumentType
from findoc.documents.query import DocumentStatusView
from findoc.ingestion.orchestrator import SubmissionResult
from findoc.shared.config import get_settings
from findoc.shared.errors import DocumentServiceError
from findoc.shared.logging import configure_logging

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_logging(settings)
    container = await build_container(settings)
    if settings.database_url.startswith("sqlite"):
        await create_schema(container.engine)
    app.state.container = container
    logger.info(f"{settings.service_name} {settings.service_version} started ({settings.environment})")
    yield
    await container.close()


app = FastAPI(
    title="Financial Document Service",
    description="Invoice and purchase order ingestion with asynchronous analysis",
    version=settings.service_version,
    lifespan=lifespan,
)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Middleware to collect request metrics.

    Tracks:
    - Request count by method, endpoint, and status
    - Request duration by method and endpoint
    """
    # Skip metrics for /metrics endpoint itself
    if request.url.path == "/metrics":
        return await call_next(request)

    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    # Route template, not the concrete path
    route = request.scope.get("route")
    endpoint = getattr(route, "path", request.url.path)

    metrics.http_requests_total.labels(
        method=request.method,
        endpoint=endpoint,
        status=response.status_code,
    ).inc()

    metrics.http_request_duration_seconds.labels(
        method=request.method,
        endpoint=endpoint,
    ).observe(duration)

    return response


@app.exception_handler(DocumentServiceError)
async def service_error_handler(request: Request, exc: DocumentServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} ({exc.detail})")
    body: dict[str, Any] = {"message": exc.message}
    if exc.detail is not None:
        body["error"] = exc.detail
    return JSONResponse(status_code=exc.status_code, content=body)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    service: str


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool
    database: bool
    storage: bool


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


async def get_partner_id(
    client_id: str | None = Header(None, convert_underscores=False),
    client_secret: str | None = Header(None, convert_underscores=False),
    container: ServiceContainer = Depends(get_container),  # noqa: B008
) -> str:
    """Authenticate the ``client_id`` / ``client_secret`` headers."""
    return await container.authenticator.authenticate(client_id, client_secret)


@app.get("/health", response_model=HealthResponse, tags=["Health"])
def health_check() -> HealthResponse:
    """Health check endpoint for liveness probe."""
    return HealthResponse(status="healthy", version=settings.service_version, service=settings.service_name)


@app.get("/ready", response_model=ReadinessResponse, tags=["Health"])
async def readiness_check(
    response: Response,
    container: ServiceContainer = Depends(get_container),  # noqa: B008
) -> ReadinessResponse:
    """Readiness check endpoint for Kubernetes readiness probe.

    Ready when the database answers and the storage bucket can be queried.
    """
    database = await container.check_database()
    storage = await asyncio.to_thread(container.storage.health_check)
    ready = database and storage
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ReadinessResponse(ready=ready, database=database, storage=storage)


@app.get("/metrics", tags=["Monitoring"])
def get_metrics() -> Response:
    """Prometheus metrics endpoint.

    Returns:
        Prometheus metrics in text format
    """
    metrics_data, content_type = metrics.get_metrics()
    return Response(content=metrics_data, media_type=content_type)


def document_router(document_type: DocumentType) -> APIRouter:
    """Upload, status, read and delete routes for one document kind."""
    router = APIRouter(prefix=f"/api/v1/{document_type.storage_prefix}", tags=[document_type.label])

    @router.post("/upload", response_model=SubmissionResult, status_code=status.HTTP_202_ACCEPTED)
    async def upload_document(
        file: UploadFile | None = File(None, description="PDF document"),  # noqa: B008
        password: str | None = Form(None, description="Password for an encrypted PDF"),  # noqa: B008
        partner_id: str = Depends(get_partner_id),  # noqa: B008
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> SubmissionResult:
        """Upload a PDF for analysis.

        Returns 202 with the document id as soon as the file is stored and
        the record exists. Poll the status endpoint for the outcome.

        ## Error Handling

        - 400 invalid, empty, encrypted or page-limit violating PDF
        - 401 missing or invalid credentials
        - 413 file larger than the upload limit
        - 415 not a PDF
        - 504 submission exceeded its time budget, outcome unknown
        """
        content = None
        filename = None
        content_type = None
        if file is not None:
            # One byte past the limit is enough to reject the upload
            content = await file.read(settings.max_upload_bytes + 1)
            filename = file.filename
            content_type = file.content_type

        return await container.ingestion.submit(
            content, filename, content_type, partner_id, document_type, password
        )

    @router.get("/{document_id}/status", response_model=DocumentStatusView)
    async def get_document_status(
        document_id: str,
        partner_id: str = Depends(get_partner_id),  # noqa: B008
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> DocumentStatusView:
        return await container.queries.get_status(partner_id, document_id, document_type)

    @router.get("/{document_id}")
    async def get_document(
        document_id: str,
        include_download_url: bool = Query(False, description="Add a presigned URL for the stored file"),
        partner_id: str = Depends(get_partner_id),  # noqa: B008
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> dict[str, Any]:
        return await container.queries.get_document(
            partner_id, document_id, document_type, include_download_url=include_download_url
        )

    @router.delete("/{document_id}", response_model=DeletionOutcome)
    async def delete_document(
        document_id: str,
        permanent: bool = Query(False, description="Remove the record instead of soft deleting it"),
        partner_id: str = Depends(get_partner_id),  # noqa: B008
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> DeletionOutcome:
        return await container.deletion.delete_document(
            partner_id, document_id, document_type, permanent=permanent
        )

    return router


for _document_type in DocumentType:
    app.include_router(document_router(_document_type))
