from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import Column, DateTime, LargeBinary, Text
from sqlmodel import SQLModel, Field, Relationship


class Categoria(str, Enum):
    POST = "post"
    ARTIGO = "artigo"
    GRUPO = "grupo"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Image(SQLModel, table=True):
    """Raw image payload. No MIME column, the type is sniffed on read."""

    __tablename__ = "imagens"

    id: int | None = Field(default=None, primary_key=True)
    imagem: bytes = Field(sa_column=Column(LargeBinary, nullable=False))

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class Post(SQLModel, table=True):
    __tablename__ = "posts"

    id: int | None = Field(default=None, primary_key=True)

    autor: str = Field(max_length=60)
    categoria: str = Field(max_length=10)
    publicacao: str = Field(sa_column=Column(Text, nullable=False))

    # one image per post, the post owns it
    imagem_id: int | None = Field(default=None, foreign_key="imagens.id")
    imagem: Optional[Image] = Relationship()

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True), index=True)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
