# main.py
import logging
import os

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from config.logging_config import configure_logging

configure_logging()

from database import init_db
from middleware.first_run import admin_bootstrap
from middleware.rate_limit import limiter
from middleware.request_logging import RequestLoggingMiddleware
from routers.auth_routes import router as auth_router
from routers.coin_routes import router as coin_router
from routers.dashboard_routes import router as dashboard_router
from routers.data_routes import router as data_router
from routers.debug_routes import router as debug_router
from routers.favorite_routes import router as favorite_router
from routers.liquidity_routes import router as liquidity_router
from routers.metric_routes import router as metric_router
from services.errors import DashboardError, NotFoundError

logger = logging.getLogger(__name__)

app = FastAPI(title="Crypto Metrics Dashboard API")

origins = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if o.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(RequestLoggingMiddleware)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(DashboardError)
async def dashboard_error_handler(request: Request, exc: DashboardError):
    # errors that escaped a route's own translation
    status_code = 404 if isinstance(exc, NotFoundError) else 500
    logger.error("unhandled %s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


# Include routers
app.include_router(auth_router, prefix="/api/auth")
app.include_router(data_router, prefix="/api/data")
app.include_router(coin_router, prefix="/api/coins")
app.include_router(metric_router, prefix="/api/metrics")
app.include_router(liquidity_router, prefix="/api/liquidity")
app.include_router(dashboard_router, prefix="/api/dashboard")
app.include_router(favorite_router, prefix="/api/favorites")
app.include_router(debug_router, prefix="/api/debug")


# prometheus scrape endpoint (extraction and ingestion counters)
app.mount("/metrics", make_asgi_app())


@app.get("/health")
def health():
    return {"status": "ok"}


@app.on_event("startup")
def on_startup():
    init_db()
    admin_bootstrap.ensure_admin()
    logger.info("startup complete")
