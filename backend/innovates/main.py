"""
America Innovates - Backend API
Magazine submissions, newsletters, marketplace and payments
"""
import time
import logging
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables before settings are read
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(env_path)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from innovates.api import (
    ai, articles, emails, marketplace, newsletters, payments, security, seo, submissions, vendors,
)
from innovates.core.config import settings
from innovates.core.database import get_db_connection_with_retry
from innovates.core.rate_limit import RateLimitMiddleware
from innovates.core.security import SecurityHeadersMiddleware

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


app = FastAPI(
    title=settings.API_TITLE,
    version=settings.API_VERSION,
    description=settings.API_DESCRIPTION,
)

# Middleware order: the last added runs first, so CORS wraps the rate limiter
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "Retry-After"],
)

# Include API routers
app.include_router(security.router, prefix="/api/v1/security", tags=["Security"])
app.include_router(submissions.router, prefix="/api/v1/submissions", tags=["Submissions"])
app.include_router(articles.router, prefix="/api/v1/articles", tags=["Articles"])
app.include_router(ai.router, prefix="/api/v1/ai", tags=["AI"])
app.include_router(vendors.router, prefix="/api/v1/vendors", tags=["Vendors"])
app.include_router(marketplace.router, prefix="/api/v1/marketplace", tags=["Marketplace"])
app.include_router(payments.router, prefix="/api/v1/payments", tags=["Payments"])
app.include_router(newsletters.router, prefix="/api/v1/newsletters", tags=["Newsletters"])
app.include_router(emails.router, prefix="/api/v1/emails", tags=["Emails"])

# sitemap.xml, robots.txt, ads.txt and /article/{slug} live at the site root
app.include_router(seo.router, tags=["SEO"])


@app.get("/")
async def root():
    return {
        "message": "America Innovates API",
        "status": "online",
        "version": settings.API_VERSION,
    }


@app.get("/health")
async def health():
    """Health check endpoint for monitoring - tests database connectivity"""
    start_time = time.time()

    db_status = "unknown"
    db_latency_ms = None
    db_error = None

    try:
        conn = get_db_connection_with_retry(max_retries=2, retry_delay=0.5)
        cursor = conn.cursor()

        db_start = time.time()
        cursor.execute("SELECT 1")
        cursor.fetchone()
        db_latency_ms = round((time.time() - db_start) * 1000, 2)

        cursor.close()
        conn.close()
        db_status = "connected"
    except Exception as e:
        logger.warning(f"Health check database failure: {e}")
        db_status = "disconnected"
        db_error = str(e)

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "service": "america-innovates-api",
        "version": settings.API_VERSION,
        "database": {
            "status": db_status,
            "latency_ms": db_latency_ms,
            "error": db_error,
        },
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("innovates.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.API_DEBUG)
