import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorClient

from shoppr.core.cache import CacheSweeper
from shoppr.core.config import settings
from shoppr.core.dependencies import build_services
from shoppr.core.errors import ShopprError
from shoppr.core.kv_store import MongoKeyValueStore
from shoppr.core.logging_config import setup_logging
from shoppr.routers.search import router as search_router
from shoppr.routers.system import router as system_router
from shoppr.routers.users import router as users_router
from shoppr.services.language_model import get_language_model_client

# Setup logging (must be done before any other imports that use logging)
setup_logging(log_level=settings.LOG_LEVEL)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    mongo_client = AsyncIOMotorClient(settings.MONGO_URL)
    logger.info(f"Using MongoDB key-value store: {settings.MONGO_DB_NAME}.{settings.KV_COLLECTION}")
    http_client = httpx.AsyncClient()
    services = build_services(
        kv_store=MongoKeyValueStore(mongo_client[settings.MONGO_DB_NAME], settings.KV_COLLECTION),
        http_client=http_client,
        llm=get_language_model_client(),
    )
    app.state.services = services
    sweeper = CacheSweeper(services.ai_cache, settings.AI_CACHE_SWEEP_INTERVAL)
    sweeper.start()
    yield
    # Shutdown
    await sweeper.stop()
    await http_client.aclose()
    mongo_client.close()
    logger.info("MongoDB connection closed")


app = FastAPI(
    title=settings.APP_NAME,
    description="Personalized product search, users and shopping surveys",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.exception_handler(ShopprError)
async def shoppr_error_handler(request: Request, exc: ShopprError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'][1:]) or 'body'}: {error['msg']}" for error in exc.errors()
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request", "details": problems},
    )


app.include_router(search_router, prefix=settings.API_PREFIX)
app.include_router(users_router, prefix=settings.API_PREFIX)
app.include_router(system_router, prefix=settings.API_PREFIX)


@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.APP_NAME}", "docs": "/docs"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
