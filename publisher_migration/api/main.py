"""FastAPI application entry point."""

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .dependencies import ServiceContainer, get_container
from .routes import migrations, rollback

app = FastAPI(
    title="Publisher Migration API",
    description="API for migrating legacy websites into publisher accounts",
    version="1.0.0",
)

# CORS middleware for the admin frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(migrations.router, prefix="/api/migrations", tags=["migrations"])
app.include_router(rollback.router, prefix="/api/rollback", tags=["rollback"])


@app.get("/api/health")
def health_check(container: ServiceContainer = Depends(get_container)):
    """Health check endpoint; 503 when the store is unreachable."""
    if container.store.check_connection():
        return {"status": "healthy", "store": "connected"}
    return JSONResponse(status_code=503, content={"status": "unhealthy", "store": "unreachable"})
