"""
Posts API

CRUD endpoints for blog posts backed by a relational database.
"""
import os
import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from apps.shared.database import (
    ConfigurationError,
    check_db_connection,
    configure_database,
    dispose_database,
    get_db,
    init_schema,
)
from apps.shared.cors import setup_cors
from apps.shared.errors import register_error_handlers
from apps.posts.repository import PostRepository
from apps.posts.schemas import HealthResponse, PostResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect to the database and create tables before serving requests."""
    try:
        engine = configure_database()
        init_schema(engine)
    except ConfigurationError as exc:
        logger.critical(f"Cannot start: {exc}")
        raise
    except SQLAlchemyError:
        logger.critical("Cannot start: database connection or schema setup failed", exc_info=True)
        dispose_database()
        raise

    logger.info("Posts service ready")
    yield
    dispose_database()


app = FastAPI(
    title="Posts API",
    version="1.0.0",
    description="Blog post management",
    lifespan=lifespan,
)

setup_cors(app)
register_error_handlers(app)

router = APIRouter(prefix="/posts", tags=["posts"])


async def read_body(request: Request) -> bytes:
    """Raw request body; decoding is left to the operation."""
    return await request.body()


def get_post_repository(db: Session = Depends(get_db)) -> PostRepository:
    return PostRepository(db)


@app.get("/health", response_model=HealthResponse)
def health():
    """Health check endpoint."""
    db_connected = check_db_connection()
    return {
        "status": "ok" if db_connected else "degraded",
        "service": "posts",
        "database": "connected" if db_connected else "disconnected",
    }


@router.post("", response_model=PostResponse, status_code=201)
def create_post(
    body: bytes = Depends(read_body),
    posts: PostRepository = Depends(get_post_repository),
):
    """Create a new post. title, content and category are required."""
    return posts.create(body)


@router.get("", response_model=list[PostResponse])
def list_posts(
    term: Optional[str] = None,
    posts: PostRepository = Depends(get_post_repository),
):
    """
    List all posts.
    With ?term=, only posts whose title, content or category contains it.
    """
    return posts.search(term)


@router.get("/{post_id}", response_model=PostResponse)
def get_post(post_id: str, posts: PostRepository = Depends(get_post_repository)):
    """Get a single post by id."""
    return posts.get(post_id)


@router.put("/{post_id}", response_model=PostResponse)
def update_post(
    post_id: str,
    body: bytes = Depends(read_body),
    posts: PostRepository = Depends(get_post_repository),
):
    """Replace an existing post."""
    return posts.update(post_id, body)


@router.delete("/{post_id}", status_code=204)
def delete_post(post_id: str, posts: PostRepository = Depends(get_post_repository)):
    """Delete a post. Deleting a post that does not exist still succeeds."""
    posts.delete(post_id)


app.include_router(router)


def run() -> None:
    """Serve the API with uvicorn (console entry point)."""
    load_dotenv()
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        app,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8080")),
    )


if __name__ == "__main__":
    run()
