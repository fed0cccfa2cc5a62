import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi_cache import FastAPICache
from fastapi_cache.backends.redis import RedisBackend
from redis import asyncio as aioredis
from sqlalchemy.exc import SQLAlchemyError

from analytics.router import router as analytics_router
from analytics.visitor import close_geo_reader, open_geo_reader
from auth.schemas import UserCreate, UserRead
from auth.users import auth_backend, fastapi_users
from config import LOG_LEVEL, REDIS_HOST
from database import create_db_and_tables, dispose_engine
from errors import ShortLinkError, StoreError
from links.router import redirect_router
from links.router import router as links_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    open_geo_reader()
    redis = aioredis.from_url(f"redis://{REDIS_HOST}")
    FastAPICache.init(RedisBackend(redis), prefix="fastapi-cache")
    await create_db_and_tables()
    logger.info("Database ready, cache backend at redis://%s", REDIS_HOST)
    yield
    await redis.aclose()
    close_geo_reader()
    await dispose_engine()


app = FastAPI(title="Short Links", lifespan=lifespan)


@app.exception_handler(ShortLinkError)
async def short_link_error_handler(_: Request, exc: ShortLinkError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s: %s", type(exc).__name__, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Store error on %s %s", request.method, request.url.path)
    return await short_link_error_handler(request, StoreError())


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(
    _: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid request", "errors": jsonable_encoder(exc.errors())},
    )


app.include_router(
    fastapi_users.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"]
)
# Include authentication and user management routes
app.include_router(
    fastapi_users.get_register_router(UserRead, UserCreate),
    prefix="/auth",
    tags=["auth"],
)
app.include_router(links_router)
app.include_router(analytics_router)
# Catch-all /{short_code} must stay last
app.include_router(redirect_router)


if __name__ == "__main__":
    uvicorn.run("main:app", reload=True, host="0.0.0.0", log_level="info")
