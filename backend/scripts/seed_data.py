"""Create the schema and populate a database with an owner account and sample content.

Usage:
    PYTHONPATH=backend/src python backend/scripts/seed_data.py init
    PYTHONPATH=backend/src python backend/scripts/seed_data.py populate \
        --owner-email owner@example.com --owner-password 'Secret123'
    PYTHONPATH=backend/src python backend/scripts/seed_data.py populate --force ...
    PYTHONPATH=backend/src python backend/scripts/seed_data.py clear
"""

import argparse
import asyncio
import logging

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from core.config import get_settings
from core.security import hash_password, is_valid_email, is_valid_password
from db.session import build_engine
from models import Base, Category, Comment, Like, Note, Tag, User, UserRole
from models.tag import note_tags
from models.user import AuthProvider
from schemas.category import CategoryCreate
from schemas.note import NoteCreate
from services import category_service, note_service, tag_service

CATEGORIES = [
    {'name': 'Technology', 'description': 'Software, tools and the craft of building them.', 'color': '#3B82F6'},
    {'name': 'Personal', 'description': 'Notes from everyday life.', 'color': '#10B981'},
    {'name': 'Tutorials', 'description': 'Step-by-step guides.', 'color': '#F59E0B'},
]

TAG_NAMES = ['python', 'fastapi', 'redis', 'postgres', 'testing', 'career', 'reading']

NOTES = [
    {
        'title': 'Caching API responses with Redis',
        'category': 'Technology',
        'tags': ['redis', 'fastapi'],
        'content': (
            '## Why cache\n\n'
            'Most read endpoints return the same data for minutes at a time. '
            'Storing the **serialized response** under a canonical key avoids '
            'repeating the same queries.\n\n'
            'Writes invalidate every key matching a glob such as `notes:*` '
            'after the transaction commits.'
        ),
    },
    {
        'title': 'Getting started with async SQLAlchemy',
        'category': 'Tutorials',
        'tags': ['python', 'postgres'],
        'content': (
            'SQLAlchemy 2.0 ships a first-class asyncio extension. Create an '
            '`AsyncEngine`, open an `AsyncSession` per request, and use '
            '`selectinload` for relationships you need in the response.'
        ),
    },
    {
        'title': 'Writing tests that read like scenarios',
        'category': 'Technology',
        'tags': ['python', 'testing'],
        'content': (
            'Good API tests describe what a client does: register, log in, '
            'create a note, comment on it, and check that the listing changes. '
            'Each step asserts on the response envelope.'
        ),
    },
    {
        'title': 'Books I read this year',
        'category': 'Personal',
        'tags': ['reading'],
        'content': (
            'A short list of books that changed how I think about work, '
            'with a sentence or two on why each one stuck with me.'
        ),
    },
    {
        'title': 'Draft: lessons from my first year as an engineer',
        'category': 'Personal',
        'tags': ['career'],
        'published': False,
        'content': (
            'Still collecting thoughts on this one. Ask questions early, '
            'write things down, and review your own pull requests first.'
        ),
    },
]


def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_schema(engine: AsyncEngine) -> None:
    """Create every table that does not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print('Schema created.')


async def get_or_create_owner(session: AsyncSession, email: str, password: str) -> User:
    """Find the owner account by email, promoting it if needed, or create it."""
    settings = get_settings()
    email = email.strip().lower()
    result = await session.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user is None:
        user = User(
            email=email,
            name='Site Owner',
            password_hash=hash_password(password, settings.bcrypt_rounds),
            role=UserRole.OWNER,
            provider=AuthProvider.EMAIL,
        )
        session.add(user)
        await session.flush()
        print(f'  Created owner: {user.email}')
    else:
        user.role = UserRole.OWNER
        await session.flush()
        print(f'  Found owner: {user.email}')
    return user


async def create_categories(session: AsyncSession) -> dict[str, str]:
    category_ids = {}
    for data in CATEGORIES:
        category = await category_service.create_category(session, CategoryCreate(**data))
        category_ids[category['name']] = category['id']
    print(f'  Created {len(category_ids)} categories')
    return category_ids


async def create_tags(session: AsyncSession) -> dict[str, str]:
    result = await tag_service.bulk_create_tags(session, TAG_NAMES)
    tag_ids = {tag['name']: tag['id'] for tag in result['created']}
    print(f'  Created {len(tag_ids)} tags')
    return tag_ids


async def create_notes(
    session: AsyncSession,
    owner: User,
    category_ids: dict[str, str],
    tag_ids: dict[str, str],
) -> None:
    for data in NOTES:
        await note_service.create_note(
            session,
            owner.id,
            NoteCreate(
                title=data['title'],
                content=data['content'],
                category_id=category_ids[data['category']],
                tag_ids=[tag_ids[name] for name in data['tags']],
                published=data.get('published', True),
            ),
        )
    print(f'  Created {len(NOTES)} notes')


async def clear_data(session: AsyncSession) -> None:
    """Delete all content rows. User accounts are kept."""
    note_count = (await session.execute(select(func.count()).select_from(Note))).scalar()
    category_count = (await session.execute(select(func.count()).select_from(Category))).scalar()
    tag_count = (await session.execute(select(func.count()).select_from(Tag))).scalar()

    # Children first; the bulk deletes bypass ORM cascades.
    await session.execute(delete(Like))
    await session.execute(delete(Comment))
    await session.execute(delete(note_tags))
    await session.execute(delete(Note))
    await session.execute(delete(Tag))
    await session.execute(delete(Category))
    await session.flush()

    print(f'  Deleted {note_count} notes, {category_count} categories, {tag_count} tags')


async def populate(owner_email: str, owner_password: str, force: bool = False) -> None:
    """Populate the database with an owner and sample content."""
    engine = build_engine(get_settings())
    async with session_factory(engine)() as session:
        try:
            owner = await get_or_create_owner(session, owner_email, owner_password)

            category_count = (await session.execute(
                select(func.count()).select_from(Category)
            )).scalar()
            if category_count:
                if not force:
                    print(
                        f'Data already exists ({category_count} categories). '
                        f'Use --force to clear and re-seed.'
                    )
                    await session.commit()
                    return
                print('Existing data found, clearing first (--force)...')
                await clear_data(session)

            print('Populating seed data...')
            category_ids = await create_categories(session)
            tag_ids = await create_tags(session)
            await create_notes(session, owner, category_ids, tag_ids)
            await session.commit()
            print('Seed data created successfully.')
        except Exception:
            await session.rollback()
            raise
        finally:
            await engine.dispose()


async def clear() -> None:
    engine = build_engine(get_settings())
    async with session_factory(engine)() as session:
        try:
            await clear_data(session)
            await session.commit()
            print('Clear complete.')
        except Exception:
            await session.rollback()
            raise
        finally:
            await engine.dispose()


async def init() -> None:
    engine = build_engine(get_settings())
    try:
        await init_schema(engine)
    finally:
        await engine.dispose()


def main() -> None:
    """CLI entry point."""
    logging.basicConfig(
        level=logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    parser = argparse.ArgumentParser(description='Create the schema and seed sample data.')
    subparsers = parser.add_subparsers(dest='command', required=True)

    subparsers.add_parser('init', help='Create database tables')

    populate_parser = subparsers.add_parser('populate', help='Create the owner and sample content')
    populate_parser.add_argument('--owner-email', required=True)
    populate_parser.add_argument('--owner-password', required=True)
    populate_parser.add_argument(
        '--force', action='store_true',
        help='Clear existing content before populating',
    )

    subparsers.add_parser('clear', help='Remove all notes, comments, likes, categories and tags')

    args = parser.parse_args()

    if args.command == 'init':
        asyncio.run(init())
    elif args.command == 'populate':
        if not is_valid_email(args.owner_email.strip()):
            parser.error('--owner-email is not a valid email address')
        if not is_valid_password(args.owner_password):
            parser.error(
                '--owner-password needs at least 8 characters with a letter and a digit',
            )
        asyncio.run(populate(args.owner_email, args.owner_password, force=args.force))
    elif args.command == 'clear':
        asyncio.run(clear())


if __name__ == '__main__':
    main()
