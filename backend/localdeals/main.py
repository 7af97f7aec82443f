"""LocalDeals API - Main FastAPI application."""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from localdeals.api import deals, favorites, locations, restaurants
from localdeals.config import get_settings
from localdeals.errors import LocalDealsError

logger = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(
    title=settings.app_name,
    description="Local restaurant deals, searchable by location",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register API routers
app.include_router(locations.router, prefix="/api/v1")
app.include_router(restaurants.router, prefix="/api/v1")
app.include_router(deals.router, prefix="/api/v1")
app.include_router(favorites.router, prefix="/api/v1")


@app.exception_handler(LocalDealsError)
async def localdeals_error_handler(request: Request, exc: LocalDealsError):
    logger.info(
        "%s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.message
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/")
async def root():
    return {
        "app": "LocalDeals",
        "version": "1.0.0",
        "docs": "/docs",
    }
