from __future__ import annotations


class PostError(Exception):
    """Base class for everything the post store raises."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PostError):
    """Bad field shape, bad category, or an image the codec refuses (HTTP 422)."""

    status_code = 422

    def __init__(self, field: str, message: str, errors: dict[str, list[str]] | None = None):
        super().__init__(message)
        self.field = field
        self._errors = errors

    @property
    def errors(self) -> dict[str, list[str]]:
        return self._errors or {self.field: [self.message]}


class InvalidEncoding(ValidationError):
    def __init__(self, field: str = "imagem"):
        super().__init__(field, "Imagem em base64 inválida.")


class PayloadTooLarge(ValidationError):
    def __init__(self, field: str = "imagem"):
        super().__init__(field, "Imagem muito grande. Tamanho máximo: 10MB.")


class UnsupportedFormat(ValidationError):
    def __init__(self, field: str = "imagem"):
        super().__init__(field, "Formato de imagem não suportado. Envie apenas JPG ou PNG.")


class NotFound(PostError):
    status_code = 404

    def __init__(self, post_id: int | str | None = None):
        super().__init__("Post não encontrado.")
        self.post_id = post_id


class InternalError(PostError):
    """Storage/transaction failure. The transaction has already been rolled back."""

    status_code = 500
