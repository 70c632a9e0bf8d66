from __future__ import annotations

import json
from io import BytesIO
from types import SimpleNamespace
from typing import Any, Callable

import pytest
from PIL import Image

from product_ads.config import Settings
from product_ads.encoding import encode_bytes
from product_ads.providers.base import AdIdea


def png_bytes(color: tuple[int, int, int] = (200, 30, 30)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", (8, 8), color).save(buf, format="PNG")
    return buf.getvalue()


def image_response(data: bytes, mime_type: str = "image/png") -> Any:
    part = SimpleNamespace(inline_data=SimpleNamespace(data=data, mime_type=mime_type), text=None)
    cand = SimpleNamespace(content=SimpleNamespace(parts=[part]), finish_reason="STOP")
    return SimpleNamespace(candidates=[cand], prompt_feedback=None)


def blocked_response(finish_reason: str = "IMAGE_SAFETY") -> Any:
    cand = SimpleNamespace(content=SimpleNamespace(parts=[]), finish_reason=finish_reason)
    return SimpleNamespace(candidates=[cand], prompt_feedback=None)


def text_response(text: str) -> Any:
    return SimpleNamespace(text=text, candidates=[], prompt_feedback=None)


def concepts_json(count: int) -> str:
    return json.dumps(
        {
            "ideas": [
                {
                    "title": f"Title {i}",
                    "description": f"Copy {i}",
                    "image_prompt": f"scene {i}",
                }
                for i in range(1, count + 1)
            ]
        }
    )


def make_ideas(count: int) -> list[AdIdea]:
    return [AdIdea(title=f"Title {i}", description=f"Copy {i}", image_prompt=f"scene {i}") for i in range(1, count + 1)]


class FakeModels:
    """Stands in for `client.aio.models`; `handler(model, contents, config)` returns the response."""

    def __init__(self, handler: Callable[[str, list[Any], Any], Any]) -> None:
        self.handler = handler
        self.calls: list[dict[str, Any]] = []

    async def generate_content(self, *, model: str, contents: list[Any], config: Any = None) -> Any:
        self.calls.append({"model": model, "contents": contents, "config": config})
        result = self.handler(model, contents, config)
        if hasattr(result, "__await__"):
            result = await result
        if isinstance(result, Exception):
            raise result
        return result


class FakeClient:
    def __init__(self, handler: Callable[[str, list[Any], Any], Any]) -> None:
        self.models = FakeModels(handler)
        self.aio = SimpleNamespace(models=self.models)


class StaticKeyProvider:
    def __init__(self, key: str = "test-key") -> None:
        self.key = key
        self.calls = 0

    async def get_api_key(self) -> str:
        self.calls += 1
        return self.key


class FakeUpload:
    def __init__(self, content: bytes, content_type: str | None, filename: str = "product.jpg") -> None:
        self._content = content
        self.content_type = content_type
        self.filename = filename

    async def read(self) -> bytes:
        return self._content


@pytest.fixture
def config() -> Settings:
    return Settings(_env_file=None, gemini_api_key="test-key", idea_count=6, image_timeout_s=5.0)


@pytest.fixture
def product_png() -> bytes:
    return png_bytes()


@pytest.fixture
def encoded(product_png: bytes):
    return encode_bytes(product_png, "image/png")
