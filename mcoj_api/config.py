"""
Configuration management for the MC OJ site API.
Uses Pydantic Settings for environment variable management.
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    API_TITLE: str = "MC OJ Site API"
    API_VERSION: str = "0.1.0"
    API_DESCRIPTION: str = "Backend API for the MC OJ website and admin back-office"

    # CORS Configuration
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:8000",
        "http://127.0.0.1:8000",
    ]

    # Database Configuration
    # Empty means a local SQLite file (see database.py)
    DATABASE_URL: str = ""

    # Object store configuration: "local" or "cloudinary"
    STORAGE_BACKEND: str = "local"
    MEDIA_ROOT: str = "media"
    MEDIA_URL: str = "/media"

    CLOUDINARY_CLOUD_NAME: str = ""
    CLOUDINARY_API_KEY: str = ""
    CLOUDINARY_API_SECRET: str = ""

    # Admin Password, bcrypt hashed (generate with: python manage.py --hash-password)
    ADMIN_PASSWORD_HASH: str = ""

    # JWT Configuration
    # SECRET_KEY should be a long random string (e.g., generated with: openssl rand -hex 32)
    JWT_SECRET_KEY: str = "change-this-in-production-use-openssl-rand-hex-32"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Gallery
    GALLERY_SIZE: int = 8
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024
    GALLERY_IMAGE_WIDTH: int = 1200
    GALLERY_IMAGE_HEIGHT: int = 800
    GALLERY_MANIFEST_PATH: str = "public/data/gallery-manifest.json"

    # One-time JSON migration sources
    MIGRATION_DATA_DIR: str = "public/data"
    MIGRATION_PUBLIC_DIR: str = "public"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings


# Global settings instance
settings = Settings()
