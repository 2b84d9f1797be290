"""
FastAPI Backend for Exam Reader
Answer sheet parsing, grading and exam analytics over REST
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from exam_reader.routes import grading, config as config_routes
from exam_reader.config import settings
from exam_reader.core import (
    BaseAPIException,
    ExamNotConfiguredError,
    InvalidAnswerKeyError,
    OperationCancelledError,
    SheetReadError,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events"""
    # Startup
    logger.info("Starting Exam Reader API...")
    logger.info(f"Environment: {'development' if settings.DEBUG else 'production'}")

    settings.ensure_directories()

    yield

    # Shutdown
    logger.info("Shutting down Exam Reader API...")


app = FastAPI(
    title="Exam Reader API",
    description="Answer sheet parsing, grading and psychometric analytics",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(status_code: int, error: str, error_code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": error,
            "error_code": error_code
        }
    )


# Global exception handlers
@app.exception_handler(BaseAPIException)
async def api_exception_handler(request: Request, exc: BaseAPIException):
    """Handle custom API exceptions"""
    return _error_response(exc.status_code, exc.detail, exc.error_code)


@app.exception_handler(InvalidAnswerKeyError)
async def invalid_answer_key_handler(request: Request, exc: InvalidAnswerKeyError):
    return _error_response(status.HTTP_400_BAD_REQUEST, str(exc), "INVALID_ANSWER_KEY")


@app.exception_handler(ExamNotConfiguredError)
async def exam_not_configured_handler(request: Request, exc: ExamNotConfiguredError):
    return _error_response(status.HTTP_409_CONFLICT, str(exc), "EXAM_NOT_CONFIGURED")


@app.exception_handler(SheetReadError)
async def sheet_read_handler(request: Request, exc: SheetReadError):
    return _error_response(status.HTTP_400_BAD_REQUEST, str(exc), "SHEET_UNREADABLE")


@app.exception_handler(OperationCancelledError)
async def cancelled_handler(request: Request, exc: OperationCancelledError):
    logger.warning(f"Request cancelled: {request.url.path}")
    return _error_response(499, str(exc), "CANCELLED")


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions"""
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred",
        "INTERNAL_ERROR"
    )


# Include routers
app.include_router(grading.router, prefix="/api/grading", tags=["Grading"])
app.include_router(config_routes.router, prefix="/api/config", tags=["Configuration"])


@app.get("/")
async def root():
    """API root endpoint"""
    return {
        "name": "Exam Reader API",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring"""
    return {
        "status": "healthy",
        "version": "1.0.0"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "exam_reader.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
