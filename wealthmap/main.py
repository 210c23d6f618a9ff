import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from wealthmap.config import settings
from wealthmap.core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    StorageException,
    UnauthorizedException,
    ValidationException,
    WealthMapException,
)
from wealthmap.database import Database
from wealthmap.logging_config import configure_logging
from wealthmap.routes import (
    auth_routes,
    company_routes,
    invitation_routes,
    mfa_routes,
    owner_routes,
    profile_routes,
    property_routes,
    report_routes,
    search_routes,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL)
    database = getattr(app.state, "database", None)
    if database is None:
        database = Database(
            settings.DATABASE_URL,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            echo=settings.DEBUG,
        )
        app.state.database = database
    database.open()
    logger.info("%s %s started", settings.APP_NAME, settings.APP_VERSION)
    try:
        yield
    finally:
        database.close()
        logger.info("%s stopped", settings.APP_NAME)


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,  # Disable in production
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# CORS middleware
cors_origins = settings.cors_origins_list
if cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def _error(status_code: int, exc: WealthMapException, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "reason": exc.reason},
        headers=headers,
    )


# Exception handlers
@app.exception_handler(UnauthorizedException)
async def unauthorized_exception_handler(request: Request, exc: UnauthorizedException):
    return _error(status.HTTP_401_UNAUTHORIZED, exc, headers={"WWW-Authenticate": "Bearer"})


@app.exception_handler(ForbiddenException)
async def forbidden_exception_handler(request: Request, exc: ForbiddenException):
    return _error(status.HTTP_403_FORBIDDEN, exc)


@app.exception_handler(NotFoundException)
async def not_found_exception_handler(request: Request, exc: NotFoundException):
    return _error(status.HTTP_404_NOT_FOUND, exc)


@app.exception_handler(ConflictException)
async def conflict_exception_handler(request: Request, exc: ConflictException):
    return _error(status.HTTP_409_CONFLICT, exc)


@app.exception_handler(ValidationException)
async def validation_exception_handler(request: Request, exc: ValidationException):
    return _error(status.HTTP_400_BAD_REQUEST, exc)


@app.exception_handler(StorageException)
async def storage_exception_handler(request: Request, exc: StorageException):
    return _error(status.HTTP_503_SERVICE_UNAVAILABLE, exc)


# Health check endpoint
@app.get("/health")
async def health_check():
    return {"status": "healthy", "version": settings.APP_VERSION}


# Root endpoint
@app.get("/")
async def root():
    return {
        "message": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs" if settings.DEBUG else "Documentation disabled in production",
    }


# Include routers
app.include_router(auth_routes.router, prefix="/api/auth", tags=["Auth"])
app.include_router(company_routes.router, prefix="/api/companies", tags=["Companies"])
app.include_router(invitation_routes.router, prefix="/api/invitations", tags=["Invitations"])
app.include_router(property_routes.router, prefix="/api/properties", tags=["Properties"])
app.include_router(owner_routes.router, prefix="/api/owners", tags=["Owners"])
app.include_router(search_routes.router, prefix="/api/search", tags=["Search"])
app.include_router(report_routes.router, prefix="/api/reports", tags=["Reports"])
app.include_router(profile_routes.router, prefix="/api/profile", tags=["Profile"])
app.include_router(mfa_routes.router, prefix="/api/mfa", tags=["MFA"])
