# tests/conftest.py
import base64
from io import BytesIO

import pytest
from PIL import Image
from sqlmodel import SQLModel

import social_feed.db as db


# ----------------------------
# Images
# ----------------------------

def make_image_bytes(fmt: str = "PNG", size=(16, 16), color=(255, 0, 0)) -> bytes:
    img = Image.new("RGB", size, color)
    buf = BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def data_url(raw: bytes, mime: str = "image/png") -> str:
    return f"data:{mime};base64,{base64.b64encode(raw).decode('ascii')}"


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes("PNG")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes("JPEG", color=(0, 0, 255))


# ----------------------------
# Database: in-memory SQLite per test
# ----------------------------

@pytest.fixture(autouse=True)
def memory_db():
    db.ENGINE = db._create_engine("sqlite://")
    db.init_db()

    yield db.ENGINE

    SQLModel.metadata.drop_all(db.ENGINE)
    db.ENGINE.dispose()
    db.reset_engine_for_tests()
