import logging
import sys
import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request

from api.shared.dtos import HealthCheckResponse
from api.shared.exceptions import ChatAPIException
from di.container import ApplicationContainer as DependencyContainer
from core.settings import SETTINGS

# Configure logging
logging.basicConfig(
    level=SETTINGS.APP.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger("chat")


class CustomFastAPI(FastAPI):
    container: DependencyContainer


@asynccontextmanager
async def lifespan(_app: CustomFastAPI):
    logger.info("Starting application initialization...")
    start_time = time.time()

    try:
        logger.info("Initializing database connection...")
        db_start = time.time()
        db_resource = _app.container.infrastructure.database()
        await db_resource.init()
        async with db_resource.engine.begin() as _conn:
            await _conn.execute(text("SELECT 1"))
        logger.info(
            f"Database connection established in {time.time() - db_start:.2f}s"
        )

        logger.info("Initializing completion provider...")
        completion_resource = _app.container.infrastructure.completion_provider()
        await completion_resource.init()
        logger.info(
            f"Completion provider ready (model={completion_resource.model})"
        )

        logger.info(
            f"Application startup completed in {time.time() - start_time:.2f}s"
        )
    except Exception as e:
        logger.exception(f"Failed to initialize application: {str(e)}")
        raise

    yield

    try:
        completion_resource = _app.container.infrastructure.completion_provider()
        if completion_resource:
            await completion_resource.shutdown()
        db_resource = _app.container.infrastructure.database()
        if db_resource:
            await db_resource.shutdown()
        logger.info("Application shutdown complete")
    except Exception:
        logger.exception("Error during shutdown")


def create_fastapi_app() -> CustomFastAPI:
    _app = CustomFastAPI(
        title="Support Chat API",
        description="Chat-support backend: persisted conversations answered by a language model",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Initialize dependency container
    _app.container = DependencyContainer()
    _app.container.init_resources()

    _app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from api.features.chat.router import router as chat_router

    _app.include_router(chat_router, prefix="/chat", tags=["Chat"])

    return _app


app = create_fastapi_app()


@app.get("/")
async def root():
    return {"message": "Support Chat API is running", "status": "ok"}


@app.get("/health", response_model=HealthCheckResponse)
async def health():
    return HealthCheckResponse(status="ok")


# Exception handlers
@app.exception_handler(ChatAPIException)
async def chat_exception_handler(request: Request, exc: ChatAPIException):
    logger.warning(
        f"{request.method} {request.url.path} failed: {exc.error_code} {exc.message}"
    )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.info(f"Rejected request body on {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception")
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


def run() -> None:
    uvicorn.run(
        "api.main:app",
        host=SETTINGS.APP.HOST,
        port=SETTINGS.APP.PORT,
        log_level=SETTINGS.APP.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
