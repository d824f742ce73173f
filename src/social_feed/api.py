from __future__ import annotations

import re
from contextlib import asynccontextmanager

from fastapi import FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .db import (
    DEFAULT_PER_PAGE,
    init_db,
    add_post,
    get_post as get_post_from_db,
    update_post as update_post_in_db,
    delete_post as delete_post_from_db,
    list_posts as list_posts_from_db,
)
from .errors import InternalError, NotFound, ValidationError
from .schemas import PostIn, PostOut, PostPage, PostPatch, error_bag


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(
    title="Social Feed",
    description="Posts with an optional embedded JPG/PNG image.",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(get_settings().cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -----------------------------------------------------------------------------
# Error mapping
# -----------------------------------------------------------------------------
@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"message": exc.message, "errors": exc.errors})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = error_bag(exc.errors())
    first = next(iter(errors.values()))[0] if errors else "Dados inválidos."
    return JSONResponse(status_code=422, content={"message": first, "errors": errors})


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"message": exc.message})


@app.exception_handler(InternalError)
async def internal_error_handler(request: Request, exc: InternalError):
    return JSONResponse(status_code=500, content={"error": exc.message})


_LEADING_INT = re.compile(r"^\s*[+-]?\d+")


def query_int(value: str | None, default: int) -> int:
    """Lenient integer query param: missing -> default, leading digits or 0 otherwise."""
    if value is None or value == "":
        return default
    match = _LEADING_INT.match(value)
    return int(match.group()) if match else 0


# -----------------------------------------------------------------------------
# Routes
# -----------------------------------------------------------------------------
@app.get("/posts", response_model=PostPage, summary="List posts, newest first")
def list_posts(
    page: str | None = Query(None),
    per_page: str | None = Query(None),
):
    result = list_posts_from_db(
        page=max(1, query_int(page, 1)),
        per_page=query_int(per_page, DEFAULT_PER_PAGE),
    )
    return {"data": result["data"], "meta": result["meta"]}


@app.post("/posts", response_model=PostOut, status_code=201, summary="Create a new post")
def create_post(payload: PostIn):
    return add_post(payload.fields(), imagem=payload.imagem)


@app.get("/posts/{post_id}", response_model=PostOut, summary="Get post by ID")
def get_post(post_id: int):
    return get_post_from_db(post_id)


@app.api_route(
    "/posts/{post_id}",
    methods=["PUT", "PATCH"],
    response_model=PostOut,
    summary="Update some or all fields of a post",
)
def update_post(post_id: int, payload: PostPatch):
    return update_post_in_db(post_id, payload.fields(), imagem=payload.imagem)


@app.delete("/posts/{post_id}", status_code=204, summary="Delete post by ID")
def delete_post(post_id: int):
    delete_post_from_db(post_id)
    return Response(status_code=204)
