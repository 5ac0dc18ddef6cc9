"""
Organization Billing - Main FastAPI Application
Multi-tenant organizations with Stripe subscriptions
"""

from fastapi import FastAPI, Depends, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from sqlalchemy.ext.asyncio import AsyncSession
import os
import logging
from contextlib import asynccontextmanager
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Import API routers
from app.api import billing, organizations, stripe_webhook
from app.services.billing_helpers import InvalidLookupKeyError
from app.utils.database import engine, create_tables, get_db, check_database_connection

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    await create_tables()
    yield
    # Shutdown
    await engine.dispose()

# Initialize FastAPI app
app = FastAPI(
    title="Organization Billing",
    description="Organizations, seats and Stripe subscriptions",
    version="1.0.0",
    docs_url="/api/docs" if os.getenv("DEBUG", "false").lower() == "true" else None,
    lifespan=lifespan
)

# Middleware
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API Routes
app.include_router(organizations.router, prefix="/api/v1/organizations", tags=["organizations"])
app.include_router(billing.router, prefix="/api/v1/organizations", tags=["billing"])
app.include_router(stripe_webhook.router, prefix="/api/v1", tags=["stripe"])


@app.exception_handler(InvalidLookupKeyError)
async def invalid_lookup_key_handler(request: Request, exc: InvalidLookupKeyError):
    """A Stripe price outside the billing catalog is a configuration problem"""
    logger.error(f"{exc} (path: {request.url.path})")
    return JSONResponse(status_code=500, content={"detail": "Billing catalog misconfigured"})


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "org-billing-api"}


@app.get("/api/v1/health")
async def api_health(db: AsyncSession = Depends(get_db)):
    """API health check, including the database connection"""
    database = "connected" if await check_database_connection(db) else "unavailable"
    return {"status": "healthy", "version": "1.0.0", "database": database}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8011")),
        reload=os.getenv("DEBUG", "false").lower() == "true"
    )
