"""
Health check endpoints.
Used for monitoring, deployment readiness checks, and basic connectivity tests.
"""

from fastapi import APIRouter, HTTPException
from app.config.firebase import get_db
from app.core.settings import settings
from app.stores.memory_store import MockDatabase
from datetime import datetime, timezone


router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
def health_check():
    """
    Basic health check endpoint.
    Returns 200 if service is running.
    """
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.get("/db")
def database_health():
    """
    Database connectivity check.
    Lists collections, which needs a working connection but no data.
    """
    try:
        db = get_db()
        if isinstance(db, MockDatabase):
            backend = "mock"
            collections_count = len(db.collection_names())
        else:
            backend = "firestore"
            collections_count = len(list(db.collections()))

        return {
            "status": "healthy",
            "database": backend,
            "connected": True,
            "collections_count": collections_count,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }
    except Exception as e:
        raise HTTPException(
            status_code=503,
            detail=f"Database connection failed: {str(e)}"
        )
