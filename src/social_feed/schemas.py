from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, StringConstraints, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .models import Categoria

AUTOR_MAX_LENGTH = 60

AutorStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=AUTOR_MAX_LENGTH)]
PublicacaoStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class PostIn(BaseModel):
    """Create payload: autor, categoria and publicacao are required and not blank."""

    model_config = ConfigDict(extra="ignore")

    autor: AutorStr
    categoria: Categoria
    publicacao: PublicacaoStr
    imagem: str | None = None

    def fields(self) -> dict:
        return {
            "autor": self.autor,
            "categoria": self.categoria.value,
            "publicacao": self.publicacao,
        }


class PostPatch(BaseModel):
    """Update payload: every field is optional, absent fields keep their value."""

    model_config = ConfigDict(extra="ignore")

    autor: AutorStr | None = None
    categoria: Categoria | None = None
    publicacao: PublicacaoStr | None = None
    imagem: str | None = None

    @field_validator("autor", "categoria", "publicacao", mode="before")
    @classmethod
    def reject_explicit_null(cls, v):
        # "sometimes": may be left out, but not sent as null
        if v is None:
            raise ValueError("O campo não pode ser nulo.")
        return v

    def fields(self) -> dict:
        data = self.model_dump(include={"autor", "categoria", "publicacao"}, exclude_unset=True)
        if "categoria" in data:
            data["categoria"] = Categoria(data["categoria"]).value
        return data


class PostOut(BaseModel):
    id: int
    autor: str
    categoria: Categoria
    publicacao: str
    imagem: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class PageMeta(BaseModel):
    current_page: int
    last_page: int
    per_page: int
    total: int


class PostPage(BaseModel):
    data: list[PostOut]
    meta: PageMeta


def error_bag(errors) -> dict[str, list[str]]:
    """pydantic error list -> {field: [messages]}"""
    bag: dict[str, list[str]] = {}
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        field = ".".join(loc) or "body"
        bag.setdefault(field, []).append(err.get("msg", "Valor inválido."))
    return bag


def _validated(model: type[BaseModel], fields: dict):
    try:
        return model.model_validate(fields)
    except PydanticValidationError as exc:
        bag = error_bag(exc.errors())
        field, messages = next(iter(bag.items()))
        raise ValidationError(field, messages[0], errors=bag) from exc


def validate_create(fields: dict) -> dict:
    return _validated(PostIn, fields).fields()


def validate_update(fields: dict) -> dict:
    return _validated(PostPatch, fields).fields()
