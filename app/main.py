import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

# Import models for table creation
from app.core import models  # noqa: F401
from app.core.config import settings
from app.domains.art.router import router as art_router
from app.domains.auth.router import router as auth_router
from app.domains.chat.router import router as chat_router
from app.domains.credits.router import router as credits_router
from app.domains.generation.router import router as generation_router
from app.domains.marketplace.router import router as marketplace_router
from app.domains.nfts.router import router as nft_router
from app.domains.users.router import router as users_router
from app.shared.database.connection import Base, engine, get_db
from app.shared.errors import AppError

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

HTTP_ERROR_KINDS = {
    status.HTTP_400_BAD_REQUEST: "validation_error",
    status.HTTP_401_UNAUTHORIZED: "authentication_error",
    status.HTTP_403_FORBIDDEN: "forbidden",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_409_CONFLICT: "conflict",
}


def _envelope(status_code: int, kind: str, message: str, details=None) -> JSONResponse:
    body = {"kind": kind, "message": message}
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.auto_create_tables:
        Base.metadata.create_all(bind=engine)
    logger.info("%s %s started", settings.app_name, settings.app_version)
    yield


def register_exception_handlers(application: FastAPI) -> None:
    @application.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @application.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
            for err in exc.errors()
        ]
        return _envelope(
            status.HTTP_400_BAD_REQUEST, "validation_error", "Invalid request", details
        )

    @application.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        kind = HTTP_ERROR_KINDS.get(exc.status_code, "http_error")
        return _envelope(exc.status_code, kind, str(exc.detail))

    @application.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _envelope(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error", "Internal server error"
        )


def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.app_name,
        description=settings.app_description,
        version=settings.app_version,
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(application)

    # Include routers
    for router in (
        auth_router,
        users_router,
        credits_router,
        art_router,
        generation_router,
        chat_router,
        nft_router,
        marketplace_router,
    ):
        application.include_router(router, prefix="/api")

    @application.get("/")
    async def root() -> dict[str, str]:
        return {"message": f"Welcome to {settings.app_name}"}

    @application.get("/health")
    def health_check(db: Session = Depends(get_db)) -> dict[str, str]:
        try:
            db.execute(text("SELECT 1"))
            return {"status": "healthy", "database": "connected"}
        except SQLAlchemyError as e:
            logger.error("Health check failed: %s", e)
            return {
                "status": "unhealthy",
                "database": "disconnected",
                "error": str(e),
            }

    return application


app = create_app()
