"""
Post repository operations

Each operation validates its input, performs exactly one logical database
operation through the injected session, and either returns the entity or
raises one of the ApiError subclasses from apps.shared.errors.
"""
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from apps.posts.models import BlogPost
from apps.posts.schemas import PostCreate, PostUpdate
from apps.shared.errors import (
    DecodeError,
    InvalidIdentifier,
    NotFound,
    ValidationError,
    storage_error,
)

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)

_ID_PATTERN = re.compile(r"[+-]?[0-9]+")
MAX_POST_ID = 2**63 - 1
LIKE_ESCAPE = "\\"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_post_id(raw_id: str) -> int:
    """Parse a path segment into a post id, or raise InvalidIdentifier."""
    if not _ID_PATTERN.fullmatch(raw_id or ""):
        raise InvalidIdentifier()
    post_id = int(raw_id)
    if abs(post_id) > MAX_POST_ID:
        raise InvalidIdentifier()
    return post_id


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally."""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def decode_payload(body: bytes, schema: Type[SchemaT]) -> SchemaT:
    """
    Decode a JSON request body into a write schema.

    Raises:
        DecodeError: body is not valid JSON (an empty body included)
        ValidationError: a required field is missing, empty or mistyped,
            or the body is not a JSON object
    """
    try:
        return schema.model_validate_json(body)
    except PydanticValidationError as exc:
        errors = exc.errors()

        invalid_json = [e for e in errors if e["type"] == "json_invalid"]
        if invalid_json:
            raise DecodeError(f"Malformed JSON body: {invalid_json[0]['msg']}") from exc

        missing = []
        problems = []
        for err in errors:
            field = ".".join(str(part) for part in err["loc"])
            # An explicit null counts as missing, like an absent key
            is_missing = err["type"] in ("missing", "string_too_short") or err.get("input", "") is None
            if len(err["loc"]) == 1 and is_missing:
                missing.append(field)
            else:
                problems.append(f"{field or 'body'}: {err['msg']}")

        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}") from exc
        raise ValidationError("Invalid fields: " + "; ".join(problems)) from exc


class PostRepository:
    """The five post operations, bound to one database session."""

    def __init__(self, db: Session):
        self.db = db

    def _find(self, post_id: int, context: str) -> BlogPost:
        try:
            post = self.db.query(BlogPost).filter(BlogPost.id == post_id).first()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise storage_error(exc, context) from exc
        if not post:
            raise NotFound()
        return post

    def create(self, body: bytes) -> BlogPost:
        data = decode_payload(body, PostCreate)

        now = utcnow()
        post = BlogPost(**data.model_dump(), created_at=now, updated_at=now)
        try:
            self.db.add(post)
            self.db.commit()
            self.db.refresh(post)
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise storage_error(exc, "Create post") from exc

        logger.info(f"Created post {post.id}")
        return post

    def get(self, raw_id: str) -> BlogPost:
        return self._find(parse_post_id(raw_id), "Get post")

    def search(self, term: Optional[str] = None) -> list[BlogPost]:
        """
        List every post, or only those whose title, content or category
        contains the term (case-insensitive). No limit is applied.
        """
        try:
            query = self.db.query(BlogPost)
            if term:
                pattern = f"%{escape_like(term)}%"
                query = query.filter(
                    or_(
                        BlogPost.title.ilike(pattern, escape=LIKE_ESCAPE),
                        BlogPost.content.ilike(pattern, escape=LIKE_ESCAPE),
                        BlogPost.category.ilike(pattern, escape=LIKE_ESCAPE),
                    )
                )
            return query.all()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise storage_error(exc, "List posts") from exc

    def update(self, raw_id: str, body: bytes) -> BlogPost:
        """
        Replace title, content, category and tags of an existing post.

        Existence is checked before the body is decoded, so a missing post
        is reported as NotFound even when the payload is also bad.
        """
        post = self._find(parse_post_id(raw_id), "Update post")
        data = decode_payload(body, PostUpdate)

        now = utcnow()
        previous = as_utc(post.updated_at)
        if now <= previous:
            now = previous + timedelta(microseconds=1)

        post.title = data.title
        post.content = data.content
        post.category = data.category
        post.tags = list(data.tags)
        post.updated_at = now
        try:
            self.db.commit()
            self.db.refresh(post)
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise storage_error(exc, "Update post") from exc

        logger.info(f"Updated post {post.id}")
        return post

    def delete(self, raw_id: str) -> None:
        """Delete without checking existence; a missing post is not an error."""
        post_id = parse_post_id(raw_id)
        try:
            deleted = (
                self.db.query(BlogPost)
                .filter(BlogPost.id == post_id)
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise storage_error(exc, "Delete post") from exc

        logger.info(f"Deleted post {post_id} ({deleted} row(s))")
