"""
Client side feed with optimistic writes.

The feed keeps the server-confirmed items plus one pending entry per
in-flight write:

- ``PendingCreate(temp_item)``: a placeholder shown ahead of everything;
- ``PendingUpdate(original, overlay)``: the edited version shown in place
  of the confirmed item until the server answers.

An item with nothing in flight is ``Idle``. Each write is split in
begin/confirm/fail steps driven by a ``Ticket``, so an async UI can call
them itself; ``create``/``update``/``delete`` run the whole round trip
against ``PostsApi``. ``reset`` bumps a generation counter and every ticket
or page response from an older generation is dropped.
"""
from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Any, Union

import requests

from .client import PostsApi
from .dates import formatar_data_publicacao, now_iso

logger = logging.getLogger(__name__)

TEMP_PREFIX = "temp-"
SCROLL_MARGIN = 100
MAX_PREVIEW = 280

REQUIRED_FIELDS = ("autor", "categoria", "publicacao")

CATEGORIA_LABELS = {
    "post": "Post",
    "artigo": "Artigo",
    "grupo": "Grupo",
}

_temp_ids = itertools.count(1)


class FeedError(Exception):
    """A create/update that was refused or failed; any optimistic state is already rolled back."""


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class PendingCreate:
    temp_item: dict


@dataclass(frozen=True)
class PendingUpdate:
    original: dict
    overlay: dict


PendingState = Union[Idle, PendingCreate, PendingUpdate]


@dataclass(frozen=True, eq=False)
class Ticket:
    key: str
    generation: int
    entry: PendingCreate | PendingUpdate


def same_id(a: Any, b: Any) -> bool:
    # server ids are ints, ids coming back from forms are often strings
    return a == b or str(a) == str(b)


def is_temp_id(item_id: Any) -> bool:
    return str(item_id).startswith(TEMP_PREFIX)


def _unwrap(res: Any) -> Any:
    if isinstance(res, dict) and "data" in res and "id" not in res:
        return res["data"]
    return res


def _clean(fields: dict, partial: bool = False) -> dict:
    """Trim the text fields; required ones must not be blank (only the sent ones when ``partial``)."""
    data = {}
    for key in REQUIRED_FIELDS:
        if key in fields and fields[key] is not None:
            value = fields[key]
            data[key] = value.strip() if isinstance(value, str) else value
    if fields.get("imagem"):
        data["imagem"] = fields["imagem"]

    blank = [k for k in REQUIRED_FIELDS if (k in data or not partial) and not data.get(k)]
    if blank:
        raise FeedError("Preencha autor, categoria e publicação.")
    return data


def published_caption(item: dict, tz=None) -> str:
    return formatar_data_publicacao(item.get("created_at"), tz=tz)


def needs_expand(item: dict) -> bool:
    return len((item.get("publicacao") or "").strip()) > MAX_PREVIEW


def preview_text(item: dict, expanded: bool = False) -> str:
    """Body as shown on the card: cut at MAX_PREVIEW chars until "Leia mais…" is clicked."""
    text = (item.get("publicacao") or "").strip()
    if expanded or len(text) <= MAX_PREVIEW:
        return text
    return text[:MAX_PREVIEW]


def categoria_label(item: dict) -> str:
    categoria = item.get("categoria") or "post"
    return CATEGORIA_LABELS.get(categoria, categoria)


class Feed:
    def __init__(self, api: PostsApi | None = None, per_page: int = 15, scroll_margin: int = SCROLL_MARGIN):
        self.api = api if api is not None else PostsApi()
        self.per_page = per_page
        self.scroll_margin = scroll_margin
        self.generation = 0
        self.reset()

    def reset(self) -> None:
        self.generation += 1
        self._confirmed: list[dict] = []
        self._pending: dict[str, PendingCreate | PendingUpdate] = {}
        self.page = 0
        self.has_more = True
        self.loading = False

    # ------------------------------------------------------------------
    # What gets rendered
    # ------------------------------------------------------------------
    @property
    def confirmed(self) -> list[dict]:
        return list(self._confirmed)

    @property
    def items(self) -> list[dict]:
        placeholders = [
            entry.temp_item
            for entry in reversed(list(self._pending.values()))
            if isinstance(entry, PendingCreate) and self._index(entry.temp_item["id"]) is None
        ]
        merged = []
        for item in self._confirmed:
            entry = self._pending.get(str(item["id"]))
            merged.append(entry.overlay if isinstance(entry, PendingUpdate) else item)
        return placeholders + merged

    def state_of(self, item_id: Any) -> PendingState:
        return self._pending.get(str(item_id), Idle())

    @property
    def idle(self) -> bool:
        return not self._pending

    def _index(self, item_id: Any) -> int | None:
        for i, item in enumerate(self._confirmed):
            if same_id(item.get("id"), item_id):
                return i
        return None

    def _is_current(self, ticket: Ticket) -> bool:
        return ticket.generation == self.generation and self._pending.get(ticket.key) is ticket.entry

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------
    def begin_create(self, fields: dict) -> Ticket:
        temp_item = {"imagem": None, **fields}
        temp_item["id"] = f"{TEMP_PREFIX}{next(_temp_ids)}"
        temp_item["created_at"] = now_iso()
        entry = PendingCreate(temp_item)
        self._pending[temp_item["id"]] = entry
        return Ticket(temp_item["id"], self.generation, entry)

    def confirm_create(self, ticket: Ticket, item: dict | None) -> bool:
        if not self._is_current(ticket):
            return False
        del self._pending[ticket.key]
        if item and self._index(item["id"]) is None:
            self._confirmed.insert(0, item)
        return True

    def fail_create(self, ticket: Ticket) -> bool:
        if not self._is_current(ticket):
            return False
        del self._pending[ticket.key]
        return True

    def create(self, fields: dict) -> dict | None:
        payload = _clean(fields)
        ticket = self.begin_create(payload)
        try:
            item = _unwrap(self.api.create_post(payload))
        except requests.RequestException as exc:
            self.fail_create(ticket)
            raise FeedError("Erro ao criar post. Tente novamente.") from exc
        self.confirm_create(ticket, item)
        return item

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------
    def begin_update(self, item_id: Any, fields: dict) -> Ticket:
        index = self._index(item_id)
        if index is None:
            raise FeedError(f"Post {item_id} não está no feed.")
        original = self._confirmed[index]

        overlay = {**original, **fields}
        overlay["id"] = original["id"]
        overlay["created_at"] = original.get("created_at")
        overlay["updated_at"] = now_iso()
        if not fields.get("imagem"):
            overlay["imagem"] = original.get("imagem")

        key = str(original["id"])
        entry = PendingUpdate(original=original, overlay=overlay)
        self._pending[key] = entry
        return Ticket(key, self.generation, entry)

    def confirm_update(self, ticket: Ticket, item: dict | None) -> bool:
        if ticket.generation != self.generation:
            return False
        if item:
            index = self._index(item["id"])
            if index is not None:
                self._confirmed[index] = item
        # a newer edit of the same post keeps its own overlay
        if self._pending.get(ticket.key) is ticket.entry:
            del self._pending[ticket.key]
        return True

    def fail_update(self, ticket: Ticket) -> bool:
        if not self._is_current(ticket):
            return False
        original = ticket.entry.original
        index = self._index(original["id"])
        if index is not None:
            self._confirmed[index] = original
        del self._pending[ticket.key]
        return True

    def update(self, item_id: Any, fields: dict) -> dict | None:
        payload = _clean(fields, partial=True)
        ticket = self.begin_update(item_id, payload)
        try:
            item = _unwrap(self.api.update_post(ticket.entry.original["id"], payload))
        except requests.RequestException as exc:
            self.fail_update(ticket)
            raise FeedError("Erro ao atualizar post. Tente novamente.") from exc
        self.confirm_update(ticket, item)
        return item

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------
    def remove(self, item_id: Any) -> None:
        self._confirmed = [p for p in self._confirmed if not same_id(p.get("id"), item_id)]
        self._pending.pop(str(item_id), None)

    def delete(self, item_id: Any) -> bool:
        """Remove right away; a failed request is only logged, the item stays gone."""
        self.remove(item_id)
        if is_temp_id(item_id):
            return True
        try:
            self.api.delete_post(item_id)
        except requests.RequestException as exc:
            logger.warning("Delete of post %s failed on the server, removed locally: %s", item_id, exc)
            return False
        return True

    # ------------------------------------------------------------------
    # Paging
    # ------------------------------------------------------------------
    def load_more(self) -> bool:
        if self.loading or not self.has_more:
            return False

        generation = self.generation
        page = self.page + 1
        self.loading = True
        try:
            res = self.api.get_posts(page, self.per_page)
        except requests.RequestException as exc:
            if generation == self.generation:
                self.has_more = False
            logger.warning("Could not load page %s: %s", page, exc)
            return False
        finally:
            if generation == self.generation:
                self.loading = False

        if generation != self.generation:
            return False
        self._apply_page(page, res)
        return True

    def _apply_page(self, page: int, res: Any) -> None:
        items = _unwrap(res)
        items = list(items or [])

        for item in items:
            if self._index(item.get("id")) is None:
                self._confirmed.append(item)
        self.page = page

        meta = res.get("meta") if isinstance(res, dict) else None
        last_page = meta.get("last_page") if isinstance(meta, dict) else None
        if isinstance(last_page, int):
            current_page = meta.get("current_page", page)
            self.has_more = current_page < last_page
        else:
            self.has_more = len(items) >= self.per_page

    def on_scroll(self, distance_to_end: float) -> bool:
        """Load the next page once the end of the list is within ``scroll_margin``."""
        if distance_to_end > self.scroll_margin:
            return False
        return self.load_more()

    def refresh(self) -> bool:
        self.reset()
        return self.load_more()
