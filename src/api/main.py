"""
FastAPI application for the Question Bank Analyzer.
"""
import time
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.config.settings import settings
from src.utils.exceptions import (
    AnalysisAlreadyRunningError,
    DataValidationError,
    NotFoundError,
    QuestionBankError,
)
from src.utils.logger import setup_logging, get_logger
from src.api.routes import router
from src.api.dependencies import cleanup_services
from src.api.middleware import request_logging_middleware, security_headers_middleware

ERROR_STATUS_CODES = {
    NotFoundError: 404,
    AnalysisAlreadyRunningError: 409,
    DataValidationError: 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger = get_logger("startup")

    Path(settings.storage_path).mkdir(parents=True, exist_ok=True)
    logger.info(
        "Question Bank Analyzer starting",
        version=settings.app_version,
        storage_path=settings.storage_path,
        analysis_model=settings.analysis_model_name if settings.analysis_api_key else None
    )

    yield

    logger.info("Question Bank Analyzer stopping, cancelling running analyses")
    await cleanup_services()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Builds a question bank from paginated course documents",
    debug=settings.debug,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api/v1")

app.middleware("http")(security_headers_middleware)
app.middleware("http")(request_logging_middleware)


@app.get("/")
async def root():
    return {
        "message": "Welcome to Question Bank Analyzer API",
        "version": settings.app_version,
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """Health check with storage and model configuration status."""
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "version": settings.app_version,
        "storage_available": Path(settings.storage_path).is_dir(),
        "analysis_model_configured": bool(settings.analysis_api_key)
    }


@app.exception_handler(QuestionBankError)
async def question_bank_exception_handler(request: Request, exc: QuestionBankError):
    """Map domain errors that escape a route to HTTP responses."""
    status_code = next(
        (code for error_type, code in ERROR_STATUS_CODES.items() if isinstance(exc, error_type)),
        500
    )
    get_logger("error").warning(
        "Domain error",
        error_type=type(exc).__name__,
        error_message=str(exc),
        path=request.url.path,
        status_code=status_code
    )
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "message": str(exc)}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    get_logger("error").error(
        "Unhandled exception",
        error_type=type(exc).__name__,
        error_message=str(exc),
        url=str(request.url),
        method=request.method
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": str(exc) if settings.debug else "An error occurred"
        }
    )


def main():
    import uvicorn
    uvicorn.run(
        "src.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    main()
