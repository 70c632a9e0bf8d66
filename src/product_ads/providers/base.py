from __future__ import annotations

import base64
import enum
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class EncodedImage:
    data: str  # base64 of the raw bytes, no data-URL prefix
    mime_type: str

    def raw(self) -> bytes:
        return base64.b64decode(self.data)

    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


@dataclass(frozen=True)
class AdIdea:
    title: str
    description: str
    image_prompt: str


@dataclass(frozen=True)
class AdImage:
    src: str  # data:<mime>;base64,<bytes>
    prompt: str


@dataclass(frozen=True)
class ImageAttemptFailure:
    index: int
    prompt: str
    reason: str


class RunStage(str, enum.Enum):
    IDLE = "idle"
    ENCODING = "encoding"
    CONCEPTS_PENDING = "concepts_pending"
    IMAGES_PENDING = "images_pending"
    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    FAILED = "failed"


@dataclass(frozen=True)
class GenerationResult:
    images: list[AdImage]
    ideas: list[AdIdea]
    status: RunStage
    product_src: str = ""  # the uploaded photo, as a data URL


class ConceptProvider(Protocol):
    name: str

    async def generate_concepts(self, image: EncodedImage, count: int) -> list[AdIdea]: ...


class ImageProvider(Protocol):
    name: str

    async def generate_image(self, image: EncodedImage, prompt: str) -> AdImage: ...
