"""REST API module for the riff marketplace.

This module provides HTTP endpoints for:
- User profiles, avatars and staking defaults
- Uploading, browsing and minting riffs
- Collections, genres and tags
- Staking on riffs and claiming royalties
- Tips and tipping tiers
- Favorites and activity feeds
- Marketplace listings and sales
- System health monitoring
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from config import settings_conf
from database import close as db_close
from .errors import install_error_handlers

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings_conf['log_level'].upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

API_PREFIX = "/api"

# Lifecycle management
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    logger.info("Initializing API...")
    # The pool is created lazily by the first request, or by __main__.py
    yield
    logger.info("Shutting down API...")
    await db_close()

# Create FastAPI app
app = FastAPI(
    title="Riff Marketplace API",
    description="REST API for uploading, minting, staking on and tipping music riffs",
    version="1.0.0",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)

# Locally stored uploads are served as static files
app.mount(
    "/uploads",
    StaticFiles(directory=settings_conf['upload_dir'], check_dir=False),
    name="uploads"
)

@app.get("/")
async def root():
    """Root endpoint."""
    return {'message': 'Riff Marketplace API', 'docs': '/docs'}

# Import and include all routers
from .users import router as users_router
from .riffs import router as riffs_router
from .collections import router as collections_router
from .stakes import router as stakes_router
from .tipping import tiers_router, tips_router
from .market import router as market_router
from .catalog import genres_router, tags_router
from .favorites import router as favorites_router
from .activity import router as activity_router
from .uploads import router as uploads_router
from .system import router as system_router

# Include all routers
for router in (
    users_router,
    riffs_router,
    collections_router,
    stakes_router,
    tiers_router,
    tips_router,
    market_router,
    genres_router,
    tags_router,
    favorites_router,
    activity_router,
    uploads_router,
    system_router
):
    app.include_router(router, prefix=API_PREFIX)
