import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.adapter.services.redis_client import create_redis_client
from src.adapter.services.redis_counter_store import RedisCounterStore
from src.adapter.services.redis_mail_queue import RedisMailQueue
from src.api.middlewares.rate_limit import RateLimitMiddleware, build_route_limits
from src.api.utils.logging import configure_logging
from src.app.services.rate_limiter import RateLimiter, build_policies
from .error import ClientError, ServerError

logger = logging.getLogger(__name__)


async def handle_client_error(request: Request, exc: ClientError):
    error_dict = {
        "code": exc.base_error.code,
        "message": exc.base_error.message,
        **exc.base_error.details,
    }
    logger.warning(f"Client error: {exc.base_error.code} on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=exc.status_code, content={"error": error_dict}, headers=exc.headers
    )


async def handle_server_error(request: Request, exc: ServerError):
    error_dict = {"code": exc.base_error.code, "message": "Internal server error"}
    logger.error(f"Server error: {exc.base_error.code}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": error_dict}
    )


def build_lifespan(ApplicationConfig):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        from src.depends import init_db

        await init_db()

        redis_client = create_redis_client(ApplicationConfig)
        counter_store = RedisCounterStore(redis_client, key_prefix=ApplicationConfig.REDIS_KEY_PREFIX)
        app.state.counter_store = counter_store
        app.state.rate_limiter = RateLimiter(
            counter_store,
            build_policies(ApplicationConfig.ENVIRONMENT, ApplicationConfig.RATE_LIMITS),
            fail_open=ApplicationConfig.RATE_LIMIT_FAIL_OPEN,
        )
        app.state.mail_queue = RedisMailQueue(
            redis_client,
            queue_name=ApplicationConfig.MAIL_QUEUE_NAME,
            attempts=ApplicationConfig.MAIL_JOB_ATTEMPTS,
        )
        logger.info(f"Rate limiter ready ({ApplicationConfig.ENVIRONMENT} policies)")

        try:
            yield
        finally:
            await counter_store.close()
            logger.info("Counter store connection closed")

    return lifespan


def create_app(ApplicationConfig) -> FastAPI:
    configure_logging(ApplicationConfig.LOG_LEVEL)

    # Fail at startup on invalid policy configuration
    build_policies(ApplicationConfig.ENVIRONMENT, ApplicationConfig.RATE_LIMITS)

    app = FastAPI(
        title=ApplicationConfig.APP_NAME,
        version="0.1.0",
        lifespan=build_lifespan(ApplicationConfig),
    )

    app.add_middleware(
        RateLimitMiddleware,
        route_limits=build_route_limits(ApplicationConfig.RATE_LIMIT_ROUTES),
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ApplicationConfig.CORS_ORIGINS,
        allow_credentials=ApplicationConfig.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Retry-After", "X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset"],
    )

    from src.api.routes import auth, health_check, rate_limit

    app.include_router(health_check.router, tags=["Health"])
    app.include_router(auth.router, tags=["Authentication"])
    app.include_router(rate_limit.router, tags=["Rate Limit"])

    app.add_exception_handler(ClientError, handle_client_error)
    app.add_exception_handler(ServerError, handle_server_error)

    return app
