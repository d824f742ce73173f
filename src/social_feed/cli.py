import base64
import logging
from io import BytesIO
from pathlib import Path

import uvicorn
from PIL import Image

from .config import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _configure_logging():
    logging.basicConfig(level=get_settings().log_level, format=LOG_FORMAT)


def _demo_image(color, fmt: str) -> str:
    img = Image.new("RGB", (64, 64), color)
    buf = BytesIO()
    img.save(buf, format=fmt)
    mime = "image/png" if fmt == "PNG" else "image/jpeg"
    return f"data:{mime};base64,{base64.b64encode(buf.getvalue()).decode('ascii')}"


def seed():
    _configure_logging()
    from .db import init_db, add_post

    init_db()
    add_post(
        {"autor": "Ana", "categoria": "post", "publicacao": "Primeiro post do feed!"},
        imagem=_demo_image((200, 80, 60), "PNG"),
    )
    add_post(
        {"autor": "Bruno", "categoria": "artigo", "publicacao": "Um artigo curto sobre cafe."},
        imagem=_demo_image((40, 120, 200), "JPEG"),
    )
    add_post({"autor": "Carla", "categoria": "grupo", "publicacao": "Quem topa um grupo de estudos?"})
    logging.getLogger(__name__).info("Seeded 3 posts.")


def start_api():
    _configure_logging()
    settings = get_settings()

    src_dir = Path(__file__).resolve().parents[1]  # .../src
    uvicorn.run(
        "social_feed.api:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        reload_dirs=[str(src_dir)],
    )


def main():
    _configure_logging()
    settings = get_settings()
    uvicorn.run("social_feed.api:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    seed()
