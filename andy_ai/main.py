import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from andy_ai.config import settings
from andy_ai.database import SessionLocal, init_db
from andy_ai.exceptions import AppException, app_exception_handler
from andy_ai.auth.session_auth import auth_router, ensure_demo_user
from andy_ai.chat_api import chat_router
from andy_ai.onboarding_api import onboarding_router
from andy_ai.credit_api import credit_router
from andy_ai.transactions_api import transactions_router, subscriptions_router
from andy_ai.banking_api import plaid_router
from andy_ai.disputes_api import disputes_router
from andy_ai.services.uploads import init_upload_dir
from andy_ai.utils.helpers import rate_limiter
from andy_ai.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

RATE_LIMITED_PREFIXES = ("/api/chat", "/api/onboarding")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    init_db()
    init_upload_dir()

    if settings.SEED_DEMO_USER:
        db = SessionLocal()
        try:
            ensure_demo_user(db)
        finally:
            db.close()

    scheduler = None
    if settings.ENABLE_PLAID_SYNC:
        from andy_ai.services.plaid_service import get_plaid_service
        from andy_ai.services.sync_scheduler import SyncScheduler

        scheduler = SyncScheduler(
            get_plaid_service(),
            SessionLocal,
            hour=settings.PLAID_SYNC_HOUR,
            timezone=settings.PLAID_SYNC_TIMEZONE
        )
        scheduler.start()

    yield

    # Shutdown
    logger.info("Shutting down application")
    if scheduler:
        scheduler.shutdown()


app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    lifespan=lifespan
)

app.add_exception_handler(AppException, app_exception_handler)


# Rate limiting for the endpoints that call the model
@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    if settings.RATE_LIMIT_ENABLED and request.url.path.startswith(RATE_LIMITED_PREFIXES):
        client_ip = request.client.host if request.client else "unknown"
        if not rate_limiter.is_allowed(client_ip, max_requests=settings.RATE_LIMIT_PER_HOUR):
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Please try again later."}
            )
    return await call_next(request)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    logger.info(f"{request.method} {request.url.path} {response.status_code} {duration_ms:.1f}ms")
    return response


app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SECRET_KEY,
    session_cookie="andy_session",
    max_age=settings.SESSION_MAX_AGE,
    https_only=settings.SESSION_HTTPS_ONLY,
    same_site="lax"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router)
app.include_router(chat_router)
app.include_router(onboarding_router)
app.include_router(credit_router)
app.include_router(transactions_router)
app.include_router(subscriptions_router)
app.include_router(plaid_router)
app.include_router(disputes_router)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running"
    }


@app.get("/api/health")
async def health_check():
    return {"status": "ok"}


def run():
    uvicorn.run(
        "andy_ai.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD
    )


if __name__ == "__main__":
    logger.info("Starting FastAPI server...")
    run()
