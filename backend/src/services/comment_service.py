"""Service layer for comments and replies."""
import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models.comment import Comment
from models.note import Note
from schemas.base import dump
from schemas.comment import CommentCreate, CommentResponse, CommentUpdate, ReplyResponse
from services.exceptions import (
    CommentNotFoundError,
    InvalidParentCommentError,
    NoteNotFoundError,
    ParentCommentNotFoundError,
)

logger = logging.getLogger(__name__)


def serialize_comment(comment: Comment, with_replies: bool = True) -> dict:
    """Serialize a comment; top-level comments include replies oldest first."""
    if not with_replies:
        return dump(ReplyResponse.model_validate(comment))
    replies = sorted(comment.replies, key=lambda r: (r.created_at, r.id))
    return dump(
        CommentResponse(
            **ReplyResponse.model_validate(comment).model_dump(),
            replies=[ReplyResponse.model_validate(r) for r in replies],
        ),
    )


async def list_note_comments(db: AsyncSession, note_id: UUID) -> list[dict]:
    """Top-level comments on a note, newest first, each with its replies."""
    result = await db.execute(
        select(Comment)
        .options(
            selectinload(Comment.author),
            selectinload(Comment.replies).selectinload(Comment.author),
        )
        .where(Comment.note_id == note_id, Comment.parent_id.is_(None))
        .order_by(Comment.created_at.desc(), Comment.id.desc()),
    )
    return [serialize_comment(c) for c in result.scalars().all()]


async def get_comment_author_id(db: AsyncSession, comment_id: UUID) -> UUID | None:
    """Return the comment's author id, or None if the comment does not exist."""
    result = await db.execute(select(Comment.author_id).where(Comment.id == comment_id))
    return result.scalar_one_or_none()


async def _get_comment(db: AsyncSession, comment_id: UUID) -> Comment:
    result = await db.execute(
        select(Comment)
        .options(
            selectinload(Comment.author),
            selectinload(Comment.replies).selectinload(Comment.author),
        )
        .where(Comment.id == comment_id),
    )
    comment = result.scalar_one_or_none()
    if comment is None:
        raise CommentNotFoundError()
    return comment


async def create_comment(
    db: AsyncSession,
    note_id: UUID,
    author_id: UUID,
    data: CommentCreate,
) -> dict:
    """
    Add a comment, or a reply when `parent_id` is given.

    Raises:
        NoteNotFoundError: If the note does not exist.
        ParentCommentNotFoundError: If the parent comment does not exist.
        InvalidParentCommentError: If the parent belongs to another note.
    """
    note_exists = await db.scalar(select(Note.id).where(Note.id == note_id))
    if note_exists is None:
        raise NoteNotFoundError()

    if data.parent_id is not None:
        parent_note_id = await db.scalar(
            select(Comment.note_id).where(Comment.id == data.parent_id),
        )
        if parent_note_id is None:
            raise ParentCommentNotFoundError()
        if parent_note_id != note_id:
            raise InvalidParentCommentError()

    comment = Comment(
        content=data.content,
        note_id=note_id,
        author_id=author_id,
        parent_id=data.parent_id,
    )
    db.add(comment)
    await db.flush()
    logger.info("comment_created", extra={"note_id": str(note_id), "comment_id": str(comment.id)})
    return serialize_comment(await _get_comment(db, comment.id))


async def update_comment(db: AsyncSession, comment_id: UUID, data: CommentUpdate) -> dict:
    comment = await _get_comment(db, comment_id)
    comment.content = data.content
    await db.flush()
    await db.refresh(comment, attribute_names=["updated_at"])
    return serialize_comment(comment, with_replies=comment.parent_id is None)


async def delete_comment(db: AsyncSession, comment_id: UUID) -> None:
    """Delete a comment and its replies."""
    comment = await _get_comment(db, comment_id)
    await db.delete(comment)
    await db.flush()
