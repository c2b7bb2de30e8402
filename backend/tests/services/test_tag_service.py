"""Tests for tag service."""
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from schemas.tag import TagListParams, TagSuggestionParams
from services import tag_service
from services.exceptions import TagExistsError, TagInUseError, TagNotFoundError


class TestCreateTag:
    async def test__create_tag__slug_and_zero_count(self, db_session: AsyncSession) -> None:
        tag = await tag_service.create_tag(db_session, "Machine_Learning")
        assert tag["name"] == "Machine_Learning"
        assert tag["slug"] == "machine-learning"
        assert tag["noteCount"] == 0

    async def test__create_tag__case_insensitive_duplicate(
        self, db_session: AsyncSession, make_tag,
    ) -> None:
        await make_tag("Python")
        with pytest.raises(TagExistsError):
            await tag_service.create_tag(db_session, "python")


class TestBulkCreateTags:
    async def test__bulk_create__skips_existing_and_repeats(
        self, db_session: AsyncSession, make_tag,
    ) -> None:
        await make_tag("python")

        result = await tag_service.bulk_create_tags(
            db_session, ["python", "rust", "Rust", "go"],
        )

        assert [t["name"] for t in result["created"]] == ["rust", "go"]
        assert result["skipped"] == [{"name": "python", "reason": "Already exists"}]
        assert result["summary"] == {"totalRequested": 3, "created": 2, "skipped": 1}


class TestListTags:
    async def test__list_tags__ordered_by_published_usage(
        self, db_session: AsyncSession, owner, make_category, make_tag, make_note,
    ) -> None:
        category = await make_category()
        common, rare, unused = await make_tag("common"), await make_tag("rare"), await make_tag("aaa")
        await make_note(owner, category, tags=[common, rare])
        await make_note(owner, category, tags=[common])
        await make_note(owner, category, tags=[rare, unused], published=False)

        page = await tag_service.list_tags(db_session, TagListParams())

        assert [(t["name"], t["noteCount"]) for t in page["data"]] == [
            ("common", 2), ("rare", 1), ("aaa", 0),
        ]
        assert page["total"] == 3

    async def test__list_tags__search(self, db_session: AsyncSession, make_tag) -> None:
        await make_tag("python")
        await make_tag("pytest")
        await make_tag("rust")

        page = await tag_service.list_tags(db_session, TagListParams(search="PY"))

        assert {t["name"] for t in page["data"]} == {"python", "pytest"}

    async def test__suggest_tags__blank_query(self, db_session: AsyncSession, make_tag) -> None:
        await make_tag("python")
        assert await tag_service.suggest_tags(db_session, TagSuggestionParams(q="")) == []

    async def test__suggest_tags__limit(self, db_session: AsyncSession, make_tag) -> None:
        for name in ("web", "webdev", "webhooks"):
            await make_tag(name)

        tags = await tag_service.suggest_tags(db_session, TagSuggestionParams(q="web", limit=2))

        assert [t["name"] for t in tags] == ["web", "webdev"]


class TestUpdateDeleteTag:
    async def test__update_tag__rename_conflict(self, db_session: AsyncSession, make_tag) -> None:
        await make_tag("python")
        other = await make_tag("rust")
        with pytest.raises(TagExistsError):
            await tag_service.update_tag(db_session, other.id, "PYTHON")

    async def test__update_tag__rename(self, db_session: AsyncSession, make_tag) -> None:
        tag = await make_tag("js")
        updated = await tag_service.update_tag(db_session, tag.id, "javascript")
        assert updated["slug"] == "javascript"

    async def test__delete_tag__in_use_by_any_note(
        self, db_session: AsyncSession, owner, make_category, make_tag, make_note,
    ) -> None:
        category = await make_category()
        tag = await make_tag("draft-only")
        await make_note(owner, category, tags=[tag], published=False)

        with pytest.raises(TagInUseError) as exc_info:
            await tag_service.delete_tag(db_session, tag.id)

        assert exc_info.value.code == "TAG_IN_USE"

    async def test__delete_tag__missing(self, db_session: AsyncSession) -> None:
        with pytest.raises(TagNotFoundError):
            await tag_service.delete_tag(db_session, uuid4())
