"""CORS configuration for the web client + FastAPI integration."""
from fastapi.middleware.cors import CORSMiddleware

from app.config import ENVIRONMENT, FRONTEND_URL
from app.utils.logger import get_logger

logger = get_logger("workspace-tasks.cors")

# Base allowed origins for development
ALLOWED_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]

# Add production frontend URL if provided
if FRONTEND_URL and FRONTEND_URL not in ALLOWED_ORIGINS:
    ALLOWED_ORIGINS.append(FRONTEND_URL)


def add_cors_middleware(app):
    """Add CORS middleware to the FastAPI application."""
    if ENVIRONMENT == "production":
        # Only the configured frontend is trusted in production
        origins = [FRONTEND_URL]
    else:
        origins = ALLOWED_ORIGINS

    logger.info("configuring CORS", environment=ENVIRONMENT, allowed_origins=origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
