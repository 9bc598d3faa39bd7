"""Tests for the post repository operations and their helpers."""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from apps.posts import repository as repository_module
from apps.posts.models import BlogPost
from apps.posts.repository import (
    PostRepository,
    as_utc,
    decode_payload,
    escape_like,
    parse_post_id,
)
from apps.posts.schemas import PostCreate
from apps.shared.errors import (
    DecodeError,
    InvalidIdentifier,
    NotFound,
    StorageError,
    ValidationError,
)


def encode(payload) -> bytes:
    return json.dumps(payload).encode()


class TestParsePostId:

    @pytest.mark.parametrize("raw, expected", [("1", 1), ("0042", 42), ("+7", 7), ("-3", -3)])
    def test_accepts_integers(self, raw, expected):
        assert parse_post_id(raw) == expected

    @pytest.mark.parametrize("raw", ["", "abc", "1.0", " 1", "1_000", "１２", "5\n", "\n5"])
    def test_rejects_everything_else(self, raw):
        with pytest.raises(InvalidIdentifier):
            parse_post_id(raw)

    def test_rejects_out_of_range(self):
        with pytest.raises(InvalidIdentifier):
            parse_post_id(str(2**63))


class TestDecodePayload:

    def test_valid_payload(self):
        data = decode_payload(
            encode({"title": "t", "content": "c", "category": "k", "tags": ["a"]}),
            PostCreate,
        )

        assert data.title == "t"
        assert data.tags == ["a"]

    def test_null_tags_become_empty(self):
        data = decode_payload(
            encode({"title": "t", "content": "c", "category": "k", "tags": None}),
            PostCreate,
        )

        assert data.tags == []

    def test_invalid_json(self):
        with pytest.raises(DecodeError):
            decode_payload(b"{nope", PostCreate)

    def test_lists_all_missing_fields(self):
        with pytest.raises(ValidationError) as exc_info:
            decode_payload(encode({"title": "", "content": None}), PostCreate)

        assert exc_info.value.message == "Missing required fields: title, content, category"

    def test_wrong_type_is_validation_error(self):
        with pytest.raises(ValidationError) as exc_info:
            decode_payload(
                encode({"title": "t", "content": "c", "category": "k", "tags": "a,b"}),
                PostCreate,
            )

        assert "tags" in exc_info.value.message


def test_escape_like():
    assert escape_like("50%_off\\") == "50\\%\\_off\\\\"


class TestPostRepository:

    def test_create_sets_matching_timestamps(self, repository):
        post = repository.create(encode({"title": "t", "content": "c", "category": "k"}))

        assert post.id is not None
        assert post.created_at == post.updated_at
        assert post.tags == []

    def test_get_missing_post(self, repository):
        with pytest.raises(NotFound):
            repository.get("1")

    def test_update_advances_updated_at_even_if_clock_stalls(self, repository, monkeypatch):
        post = repository.create(encode({"title": "t", "content": "c", "category": "k"}))
        created_at = as_utc(post.created_at)
        monkeypatch.setattr(repository_module, "utcnow", lambda: created_at)

        updated = repository.update(
            str(post.id), encode({"title": "t2", "content": "c2", "category": "k2"})
        )

        assert as_utc(updated.updated_at) == created_at + timedelta(microseconds=1)
        assert as_utc(updated.created_at) == created_at

    def test_update_checks_existence_first(self, repository):
        with pytest.raises(NotFound):
            repository.update("5", b"garbage")

    def test_search_matches_any_of_three_fields(self, repository):
        repository.create(encode({"title": "Alpha", "content": "x", "category": "y"}))
        repository.create(encode({"title": "x", "content": "ALPHABET", "category": "y"}))
        repository.create(encode({"title": "x", "content": "y", "category": "alpha-beta"}))
        repository.create(encode({"title": "Beta", "content": "y", "category": "z"}))

        assert len(repository.search("alpha")) == 3
        assert len(repository.search(None)) == 4
        assert len(repository.search("")) == 4

    def test_delete_missing_post_is_not_an_error(self, repository):
        repository.delete("12345")

    def test_delete_removes_row(self, repository, db):
        post = repository.create(encode({"title": "t", "content": "c", "category": "k"}))

        repository.delete(str(post.id))

        assert db.query(BlogPost).count() == 0


class TestStorageErrors:

    @pytest.fixture
    def session(self):
        session = MagicMock()
        session.commit.side_effect = OperationalError("UPDATE", {}, Exception("server closed"))
        return session

    def test_create_rolls_back_and_raises(self, session):
        repo = PostRepository(session)

        with pytest.raises(StorageError) as exc_info:
            repo.create(encode({"title": "t", "content": "c", "category": "k"}))

        session.rollback.assert_called_once()
        assert exc_info.value.error_id in exc_info.value.message

    def test_update_failure_rolls_back(self, session):
        existing = BlogPost(
            id=1, title="t", content="c", category="k", tags=[],
            created_at=repository_module.utcnow(), updated_at=repository_module.utcnow(),
        )
        session.query.return_value.filter.return_value.first.return_value = existing
        repo = PostRepository(session)

        with pytest.raises(StorageError):
            repo.update("1", encode({"title": "t2", "content": "c2", "category": "k2"}))

        session.rollback.assert_called_once()

    def test_lookup_failure(self):
        session = MagicMock()
        session.query.side_effect = OperationalError("SELECT", {}, Exception("timeout"))

        with pytest.raises(StorageError):
            PostRepository(session).get("1")


def test_as_utc_handles_naive_and_aware():
    naive = datetime(2024, 1, 1, 12, 0)
    aware = datetime(2024, 1, 1, 13, 0, tzinfo=timezone(timedelta(hours=1)))

    assert as_utc(naive) == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert as_utc(aware) == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
