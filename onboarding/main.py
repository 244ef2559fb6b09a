# =====================================================
# FILE: onboarding/main.py
# FastAPI application
# =====================================================

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
import logging

from onboarding.api.api_v1 import api_router
from onboarding.core.config import settings
from onboarding.core.database import check_connection, get_db
from onboarding.core.exceptions import EngineError

logger = logging.getLogger(__name__)


async def engine_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render engine errors as a structured payload with their HTTP status"""
    if not isinstance(exc, EngineError):
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": {"code": "internal_error", "message": "Internal server error"}},
        )

    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{exc.code} on {request.url.path}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.to_dict()},
    )


async def validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Malformed request bodies are reported as validation errors (400)"""
    details = []
    if isinstance(exc, RequestValidationError):
        details = [
            {
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
            }
            for error in exc.errors()
        ]

    logger.warning(f"Validation error on {request.url.path}: {details}")

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "error": {"code": "validation_error", "message": "Validation error", "details": details},
        },
    )


def create_app() -> FastAPI:
    app = FastAPI(title=settings.PROJECT_NAME)

    app.add_exception_handler(EngineError, engine_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.include_router(api_router, prefix=settings.API_V1_STR)

    @app.get("/health")
    async def health(db: Session = Depends(get_db)):
        """Liveness plus a database round trip"""
        if not check_connection(db):
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "unhealthy", "database": "disconnected"},
            )
        return {"status": "healthy", "database": "connected"}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting {settings.PROJECT_NAME}")
    uvicorn.run(
        "onboarding.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
