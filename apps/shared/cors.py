"""Shared CORS configuration for the API services."""

import os
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware


# Development origins (only outside production)
DEV_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:3000",
    "http://localhost:8080",
]


def get_allowed_origins() -> list[str]:
    """Build the list of allowed CORS origins from the environment."""
    origins = []

    # Comma-separated list, e.g. "https://blog.example.com,https://admin.example.com"
    for origin in os.getenv("CORS_ORIGINS", "").split(","):
        origin = origin.strip().rstrip("/")
        if origin and origin not in origins:
            origins.append(origin)

    frontend_url = os.getenv("FRONTEND_URL")
    if frontend_url:
        clean_url = frontend_url.rstrip("/")
        if clean_url not in origins:
            origins.append(clean_url)

    env = os.getenv("ENVIRONMENT", "development")
    if env != "production":
        origins.extend(o for o in DEV_ORIGINS if o not in origins)

    return origins


def setup_cors(app: FastAPI) -> None:
    """Add the CORS middleware to a FastAPI app."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
