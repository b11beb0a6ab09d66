import logging
import os
import structlog
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Depends, Request, status, Query
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from ipfs_resolver import __version__, config
from ipfs_resolver.core.cid import extract_identifier, identifier_version
from ipfs_resolver.core.errors import ConfigurationError
from ipfs_resolver.core.gateways import GatewayUrlBuilder
from ipfs_resolver.models.content import (
    ResolverSettings, NormalizeResponse, GatewayUrlsResponse, ResolveResponse,
    ProbeResponse, ErrorResponse, HealthResponse
)
from ipfs_resolver.services.probe import LivenessProber
from ipfs_resolver.services.resolver import ContentResolver

# Configure structured logging
logging.basicConfig(format="%(message)s", level=config.LOG_LEVEL.upper())

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


def create_resolver(settings: Optional[ResolverSettings] = None) -> ContentResolver:
    """Build a resolver from validated settings."""
    if settings is None:
        try:
            settings = ResolverSettings()
        except ValidationError as e:
            raise ConfigurationError(f"Invalid resolver settings: {e}") from e

    return ContentResolver(
        builder=GatewayUrlBuilder(settings.gateways),
        prober=LivenessProber(default_timeout_ms=settings.probe_timeout_ms),
        default_timeout_ms=settings.resolve_timeout_ms,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info("Starting Proof9 IPFS resolver API")
    try:
        app.state.resolver = create_resolver()
        logger.info("Content resolver initialized",
                    gateway_count=len(app.state.resolver.builder),
                    probe_timeout_ms=app.state.resolver.prober.default_timeout_ms,
                    resolve_timeout_ms=app.state.resolver.default_timeout_ms)
    except Exception as e:
        logger.error("Failed to initialize application", error=str(e))
        raise

    yield

    logger.info("Shutting down Proof9 IPFS resolver API")
    app.state.resolver.close()


app = FastAPI(
    title="Proof9 IPFS Resolver API",
    description="Resolves IPFS content references to reachable gateway URLs",
    version=__version__,
    lifespan=lifespan,
    responses={
        400: {"model": ErrorResponse, "description": "Validation Error"},
        500: {"model": ErrorResponse, "description": "Internal Server Error"},
    }
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in config.CORS_ORIGINS.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_resolver(request: Request) -> ContentResolver:
    return request.app.state.resolver


@app.get("/health", response_model=HealthResponse)
async def health_check(resolver: ContentResolver = Depends(get_resolver)):
    return HealthResponse(
        status="healthy",
        version=__version__,
        components={
            "gateways": {
                "count": len(resolver.builder),
                "primary": resolver.builder.gateways[0],
            },
        },
    )


@app.get("/ipfs/normalize", response_model=NormalizeResponse)
async def normalize_reference(
    reference: str = Query(..., min_length=1, description="Stored content reference"),
    resolver: ContentResolver = Depends(get_resolver)
):
    """Map a reference to the primary gateway without probing."""
    return NormalizeResponse(reference=reference, url=resolver.normalize_reference(reference))


@app.get("/ipfs/urls", response_model=GatewayUrlsResponse)
async def get_gateway_urls(
    reference: str = Query(..., min_length=1, description="Stored content reference"),
    resolver: ContentResolver = Depends(get_resolver)
):
    """List every candidate gateway URL for a reference."""
    cid = extract_identifier(reference)
    if cid is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No IPFS content identifier found in reference"
        )
    return GatewayUrlsResponse(
        reference=reference,
        cid=cid,
        version=identifier_version(cid),
        urls=resolver.build_all_urls(reference),
    )


@app.get("/ipfs/resolve", response_model=ResolveResponse)
async def resolve_reference(
    reference: str = Query(..., min_length=1, description="Stored content reference"),
    timeout_ms: Optional[int] = Query(default=None, ge=1, le=60000, description="Per-gateway timeout"),
    concurrent: bool = Query(default=False, description="Probe all gateways at once"),
    resolver: ContentResolver = Depends(get_resolver)
):
    """Return the first reachable gateway URL in priority order."""
    if extract_identifier(reference) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No IPFS content identifier found in reference"
        )

    if concurrent:
        url = await resolver.resolve_working_url_concurrent(reference, timeout_ms)
    else:
        url = await resolver.resolve_working_url(reference, timeout_ms)

    if url is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No working IPFS gateway found"
        )
    return ResolveResponse(reference=reference, url=url)


@app.get("/ipfs/probe", response_model=ProbeResponse)
async def probe_url(
    url: str = Query(..., pattern=r"^https?://", description="URL to probe"),
    timeout_ms: Optional[int] = Query(default=None, ge=1, le=60000, description="Probe timeout"),
    resolver: ContentResolver = Depends(get_resolver)
):
    """Check whether a single URL currently serves content."""
    return ProbeResponse(url=url, available=await resolver.probe(url, timeout_ms))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.warning("HTTP error", url=str(request.url), status_code=exc.status_code, error=exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    logger.warning("Validation error", url=str(request.url), details=details)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "error": "Validation failed", "details": details},
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception",
                 url=str(request.url), method=request.method, error=str(exc), exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": "Internal server error"},
    )


if __name__ == "__main__":
    uvicorn.run(
        "ipfs_resolver.main:app",
        host=config.API_HOST,
        port=config.API_PORT,
        reload=os.getenv("DEBUG", "false").lower() == "true",
        log_config=None,  # We handle logging with structlog
    )
