from __future__ import annotations

from datetime import datetime, timezone

from . import image_codec
from .models import Post


def isoformat(value: datetime | None) -> str | None:
    if value is None:
        return None
    # SQLite hands the value back without tzinfo; it was written as UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def post_resource(post: Post) -> dict:
    """External JSON shape of a post; the image goes out as a data URL or None."""
    image = post.imagem
    return {
        "id": post.id,
        "autor": post.autor,
        "categoria": post.categoria,
        "publicacao": post.publicacao,
        "imagem": image_codec.encode(image.imagem) if image is not None else None,
        "created_at": isoformat(post.created_at),
        "updated_at": isoformat(post.updated_at),
    }
