from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from shortlink.config import settings, setup_logging
from shortlink.database.connection import init_db
from shortlink.dependencies import close_clients
from shortlink.api.v1 import urls, redirect

# Import models to ensure they're registered with their Base
from shortlink.models import UrlMapping, Click

setup_logging()

# Create database tables
init_db()


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Shutdown
    await close_clients()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="URL shortener with cached redirects and asynchronous click analytics",
    debug=settings.debug,
    lifespan=lifespan
)

# The dashboard UI calls the API from another origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.get("/")
def read_root():
    """Root endpoint with API information"""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "environment": settings.environment}


######## Include routers
app.include_router(urls.router, prefix="/api/v1")
# Catch-all /{short_code} goes last
app.include_router(redirect.router)
