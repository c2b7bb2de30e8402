"""Tests for request schema validation and input sanitization."""
from uuid import uuid4

import pytest
from pydantic import ValidationError

from schemas.category import CategoryCreate, CategoryUpdate
from schemas.comment import CommentCreate
from schemas.note import NoteCreate, NoteListParams, NoteUpdate
from schemas.tag import TagBulkCreate, TagCreate, TagListParams, TagSuggestionParams
from schemas.user import LoginRequest, RegisterRequest


def _error_fields(exc_info: pytest.ExceptionInfo[ValidationError]) -> set[str]:
    return {".".join(str(p) for p in err["loc"]) for err in exc_info.value.errors()}


class TestRegisterRequest:
    def test__register__normalizes_email_and_name(self) -> None:
        data = RegisterRequest(name="  Ada Lovelace ", email=" ADA@Example.com", password="abc12345")
        assert data.name == "Ada Lovelace"
        assert data.email == "ada@example.com"

    @pytest.mark.parametrize(
        "password",
        ["short1", "lettersonly", "12345678"],
    )
    def test__register__weak_passwords(self, password: str) -> None:
        with pytest.raises(ValidationError) as exc_info:
            RegisterRequest(name="Ada Lovelace", email="ada@example.com", password=password)
        assert _error_fields(exc_info) == {"password"}

    def test__register__password_over_bcrypt_limit(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(name="Ada Lovelace", email="ada@example.com", password="a1" * 40)

    def test__register__reports_every_invalid_field(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            RegisterRequest(name="R2-D2", email="not-an-email", password="x")
        assert _error_fields(exc_info) == {"name", "email", "password"}

    def test__login__lowercases_without_shape_check(self) -> None:
        data = LoginRequest(email=" Who@Where ", password="x")
        assert data.email == "who@where"


class TestNoteSchemas:
    def test__note_create__sanitizes_title_and_content(self) -> None:
        data = NoteCreate(
            title="<script>alert(1)</script>Hello <b>there</b>",
            content='<p onclick="x()">Body with <em>style</em> and <img src=x></p>',
            categoryId=str(uuid4()),
        )
        assert data.title == "Hello there"
        assert data.content == "<p>Body with <em>style</em> and </p>"

    def test__note_create__length_measured_after_sanitizing(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            NoteCreate(title="<i>ab</i>", content="long enough content", category_id=uuid4())
        assert _error_fields(exc_info) == {"title"}

    def test__note_create__dedupes_tags(self) -> None:
        tag = uuid4()
        data = NoteCreate(
            title="Title", content="long enough content", category_id=uuid4(), tag_ids=[tag, tag],
        )
        assert data.tag_ids == [tag]

    def test__note_update__tracks_supplied_fields(self) -> None:
        data = NoteUpdate(published=False)
        assert data.model_fields_set == {"published"}

    def test__note_list_params__comma_separated_tags(self) -> None:
        a, b = uuid4(), uuid4()
        params = NoteListParams(tagIds=f"{a}, {b},{a}")
        assert params.tag_ids == [a, b]

    def test__note_list_params__blank_values(self) -> None:
        params = NoteListParams(search="   ", categoryId="")
        assert params.search is None
        assert params.category_id is None

    def test__note_list_params__limit_bounds(self) -> None:
        with pytest.raises(ValidationError):
            NoteListParams(limit=101)


class TestTagSchemas:
    @pytest.mark.parametrize("name", ["web-dev", "python_3", "AI"])
    def test__tag_create__valid_names(self, name: str) -> None:
        assert TagCreate(name=name).name == name

    @pytest.mark.parametrize("name", ["has space", "dot.net", "a", "x" * 31])
    def test__tag_create__invalid_names(self, name: str) -> None:
        with pytest.raises(ValidationError):
            TagCreate(name=name)

    def test__bulk_create__limits(self) -> None:
        with pytest.raises(ValidationError):
            TagBulkCreate(names=[])
        with pytest.raises(ValidationError):
            TagBulkCreate(names=[f"tag{i}" for i in range(21)])

    def test__bulk_create__rejects_bad_member(self) -> None:
        with pytest.raises(ValidationError):
            TagBulkCreate(names=["good", "bad name"])

    def test__tag_params__search_normalized(self) -> None:
        assert TagListParams(search="  py   thon ").search == "py thon"
        assert TagSuggestionParams(q=None).q == ""


class TestCategoryAndCommentSchemas:
    def test__category__color_uppercased(self) -> None:
        assert CategoryCreate(name="Tech", color="#aabbcc").color == "#AABBCC"

    @pytest.mark.parametrize("color", ["red", "#abc", "#GGGGGG", "aabbcc"])
    def test__category__invalid_color(self, color: str) -> None:
        with pytest.raises(ValidationError):
            CategoryCreate(name="Tech", color=color)

    def test__category_update__color_optional(self) -> None:
        assert CategoryUpdate(name="Tech").color is None

    def test__comment__too_short_after_trim(self) -> None:
        with pytest.raises(ValidationError):
            CommentCreate(content="  hi  ")

    def test__comment__camel_case_parent(self) -> None:
        parent = uuid4()
        assert CommentCreate(content="Nice one", parentId=str(parent)).parent_id == parent
