"""Main FastAPI application for the Workspace Task Recurrence service."""
from fastapi import FastAPI

from app.db.init import init_db
from app.middleware.cors import add_cors_middleware
from app.routers import recurrences_router, tasks_router
from app.utils.logger import get_logger

logger = get_logger("workspace-tasks.app")

# Create FastAPI application
app = FastAPI(
    title="Workspace Tasks API",
    description="Workspace task management with recurring task series",
    version="1.0.0",
)

# Add CORS middleware
add_cors_middleware(app)


@app.on_event("startup")
async def startup_event():
    """Initialize database on startup."""
    try:
        init_db()
        logger.info("Database tables initialized successfully")
    except Exception as e:
        logger.exception(
            "Database initialization failed; database operations may fail",
            error=str(e),
        )


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


@app.get("/")
async def root():
    """Root endpoint - API welcome message."""
    return {
        "message": "Welcome to the Workspace Tasks API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }


app.include_router(tasks_router, prefix="/api")  # /api/workspaces/{id}/tasks, /api/tasks/{id}
app.include_router(recurrences_router, prefix="/api")  # /api/task-recurrences/{id}, /api/recurrence/preview


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
