from __future__ import annotations

import logging
import math
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import event, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session, select

from . import image_codec
from .config import get_settings
from .errors import InternalError, NotFound
from .models import Image, Post, utcnow
from .resources import post_resource
from .schemas import validate_create, validate_update

logger = logging.getLogger(__name__)

ENGINE = None  # created lazily

DEFAULT_PER_PAGE = 15
MIN_PER_PAGE = 5
MAX_PER_PAGE = 50


def _enable_sqlite_fks(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _create_engine(url: str | None = None):
    url = url or get_settings().database_url
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, echo=False, **kwargs)
        event.listen(engine, "connect", _enable_sqlite_fks)
        return engine
    return create_engine(url, echo=False, pool_pre_ping=True)


def get_engine():
    global ENGINE
    if ENGINE is None:
        ENGINE = _create_engine()
    return ENGINE


def reset_engine_for_tests():
    """Drop the cached engine, e.g. after DATABASE_URL changed."""
    global ENGINE
    ENGINE = None


def init_db():
    SQLModel.metadata.create_all(get_engine())


@contextmanager
def transaction() -> Iterator[Session]:
    """
    Scoped write transaction.

    Commits when the block exits normally and rolls back on any exception,
    so a write never leaves a post without its image or an image without
    its post.
    """
    with Session(get_engine()) as session:
        with session.begin():
            yield session


def clamp_per_page(value: int | None) -> int:
    if value is None:
        return DEFAULT_PER_PAGE
    return max(MIN_PER_PAGE, min(MAX_PER_PAGE, int(value)))


def _get_or_404(session: Session, post_id: int) -> Post:
    post = session.get(Post, post_id)
    if post is None:
        raise NotFound(post_id)
    return post


def _store_image(session: Session, data: bytes) -> Image:
    image = Image(imagem=data)
    session.add(image)
    session.flush()
    return image


def _decode_image(imagem: str | None) -> bytes | None:
    # empty or missing input means "no image", not an error
    if not imagem:
        return None
    return image_codec.decode(imagem)


def add_post(fields: dict, imagem: str | None = None) -> dict:
    fields = validate_create(fields)
    data = _decode_image(imagem)

    try:
        with transaction() as session:
            post = Post(**fields)
            if data is not None:
                post.imagem = _store_image(session, data)
            session.add(post)
            session.flush()
            session.refresh(post)
            created = post_resource(post)
    except SQLAlchemyError as exc:
        logger.exception("Could not create post")
        raise InternalError("Erro ao criar post") from exc

    logger.info("Created post id=%s", created["id"])
    return created


def get_post(post_id: int) -> dict:
    with Session(get_engine()) as session:
        return post_resource(_get_or_404(session, post_id))


def update_post(post_id: int, fields: dict, imagem: str | None = None) -> dict:
    changes = validate_update(fields)
    data = _decode_image(imagem)

    try:
        with transaction() as session:
            post = _get_or_404(session, post_id)

            for key, value in changes.items():
                setattr(post, key, value)

            if data is not None:
                previous = post.imagem
                post.imagem = _store_image(session, data)
                session.add(post)
                session.flush()
                if previous is not None:
                    session.delete(previous)

            post.updated_at = utcnow()
            session.add(post)
            session.flush()
            session.refresh(post)
            updated = post_resource(post)
    except SQLAlchemyError as exc:
        logger.exception("Could not update post id=%s", post_id)
        raise InternalError("Erro ao atualizar post") from exc

    logger.info("Updated post id=%s", post_id)
    return updated


def delete_post(post_id: int) -> None:
    try:
        with transaction() as session:
            post = _get_or_404(session, post_id)
            image = post.imagem
            session.delete(post)
            session.flush()
            if image is not None:
                session.delete(image)
    except SQLAlchemyError as exc:
        logger.exception("Could not delete post id=%s", post_id)
        raise InternalError("Erro ao excluir post") from exc

    logger.info("Deleted post id=%s", post_id)


def list_posts(page: int = 1, per_page: int | None = None) -> dict:
    per_page = clamp_per_page(per_page)
    page = max(1, int(page))

    with Session(get_engine()) as session:
        total = session.exec(select(func.count()).select_from(Post)).one()
        stmt = (
            select(Post)
            .order_by(Post.created_at.desc(), Post.id.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        posts = [post_resource(p) for p in session.exec(stmt).all()]

    last_page = max(1, math.ceil(total / per_page))
    return {
        "data": posts,
        "meta": {
            "current_page": page,
            "last_page": last_page,
            "per_page": per_page,
            "total": total,
        },
        "has_more": page < last_page,
    }
