"""
Core settings and environment variables for the Civic Issue Tracker.
Uses pydantic-settings for type-safe environment variable loading.
"""

from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Create a .env file in the root directory to configure these.
    """

    # Application
    APP_NAME: str = "Civic Issue Tracker"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - Frontend URLs allowed to access this API
    CORS_ORIGINS: str = "http://localhost:5173,http://127.0.0.1:5173"

    # Firebase/Firestore
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None  # Path to service account JSON
    FIREBASE_STORAGE_BUCKET: Optional[str] = None

    # Mock DB mode for local development without Firebase credentials.
    # An empty MOCK_DB_PATH keeps the mock database purely in memory.
    USE_MOCK_DB: bool = False
    MOCK_DB_PATH: str = "./mock_db.json"

    # Issue categorization
    AI_ENABLED: bool = True  # If False, the rule-based classifier is used
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.5-flash"
    AI_TIMEOUT_SECONDS: float = 10.0

    # Photo uploads
    PHOTO_UPLOAD_TIMEOUT_SECONDS: float = 30.0
    MAX_PHOTOS_PER_ISSUE: int = 5
    MAX_PHOTO_BYTES: int = 5 * 1024 * 1024
    PLACEHOLDER_PHOTO_URL: str = "https://placehold.co/600x400/cccccc/ffffff/png?text=No+Image"

    # Identity credentials are issued by an external service; we only verify them
    IDENTITY_TOKEN_SECRET: str = "dev-only-identity-secret-change-in-production"
    IDENTITY_TOKEN_ALGORITHM: str = "HS256"

    # Seeded when the user directory is empty
    DEFAULT_ADMIN_EMAIL: str = "admin@test.com"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"


def cors_origins_list() -> List[str]:
    raw = settings.CORS_ORIGINS or ""
    return [x.strip().rstrip("/") for x in raw.split(",") if x.strip()]


# Global settings instance
settings = Settings()
