from __future__ import annotations

from datetime import datetime, timezone

MESES = [
    "Janeiro", "Fevereiro", "Março", "Abril", "Maio", "Junho",
    "Julho", "Agosto", "Setembro", "Outubro", "Novembro", "Dezembro",
]


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def formatar_data_publicacao(value: str | datetime | None, tz=None) -> str:
    """
    Feed caption for a post timestamp, e.g.
    "Publicado em 12 de Setembro de 2022 às 16:00".

    Aware timestamps are shown in ``tz`` (local time when None); naive ones
    are taken as they are. Unparseable input gives an empty string.
    """
    d = parse_timestamp(value)
    if d is None:
        return ""
    if d.tzinfo is not None:
        d = d.astimezone(tz)
    return f"Publicado em {d.day} de {MESES[d.month - 1]} de {d.year} às {d.hour:02d}:{d.minute:02d}"


def now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")
