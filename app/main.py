import logging
from contextlib import asynccontextmanager

uvicorn_logger = logging.getLogger("uvicorn")

app_logger = logging.getLogger("app")
app_logger.setLevel(logging.DEBUG)
app_logger.handlers = uvicorn_logger.handlers
app_logger.propagate = False

for logger_name in ["app.core.catalog_client", "app.services.sync", "app.services.batch"]:
    module_logger = logging.getLogger(logger_name)
    module_logger.setLevel(logging.DEBUG)
    module_logger.handlers = uvicorn_logger.handlers
    module_logger.propagate = False

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.catalog_client import catalog_client
from app.core.config import settings
from app.core.exceptions import StoreError
from app.api.v1.sync import router as sync_router
from app.api.v1.products import router as products_router
from app.api.v1.purchases import router as purchases_router
from app.api.v1.suppliers import router as suppliers_router

logger = logging.getLogger(__name__)
logger.info("Application startup - logging configured")


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await catalog_client.close()


app = FastAPI(
    title=settings.APP_NAME,
    description="Store catalog mirror with purchase tracking and order batches",
    version="1.0.0",
    openapi_url="/api/openapi.json",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    lifespan=lifespan,
)

app.include_router(sync_router)
app.include_router(products_router)
app.include_router(purchases_router)
app.include_router(suppliers_router)


@app.get("/health")
async def health_check():
    return {"status": "ok"}


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"success": False, "detail": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.warning(f"{request.method} {request.url.path} failed: {exc.__class__.__name__}: {str(exc)}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": str(exc)},
    )
