from __future__ import annotations

import base64
import logging
from typing import Any

from pydantic import BaseModel, ValidationError, field_validator

from product_ads.config import Settings, settings
from product_ads.errors import GenerationError
from product_ads.providers.base import AdIdea, AdImage, EncodedImage

logger = logging.getLogger(__name__)


class NoImageReturned(Exception):
    """The image model answered without any inline image data (safety block, empty candidates)."""


class _ConceptItem(BaseModel):
    title: str
    description: str
    image_prompt: str

    @field_validator("title", "description", "image_prompt")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class _ConceptBatch(BaseModel):
    ideas: list[_ConceptItem]


def build_concept_prompt(count: int, language: str) -> str:
    return (
        "You are an expert creative director. Analyze this product photo and propose "
        f"{count} innovative, unique advertising campaign concepts.\n"
        "Every concept must be completely different from the others and cover a different scenario "
        "(for example luxury, everyday use, abstract art, nature, lifestyle, studio minimalism).\n"
        "For each concept return:\n"
        f"- title: a short catchy campaign title in {language}\n"
        f"- description: persuasive ad copy for the campaign in {language}, two or three sentences\n"
        "- image_prompt: an English prompt for an image model that places THIS product in the scene. "
        "Describe the visual scene only: setting, lighting, composition, mood. "
        "The image must contain no text, no logos, no watermarks.\n"
    )


class GeminiProvider:
    name = "gemini"

    def __init__(self, client: Any, config: Settings | None = None) -> None:
        self.client = client
        self.config = config or settings

    def _image_part(self, image: EncodedImage) -> Any:
        from google.genai import types  # type: ignore

        return types.Part.from_bytes(data=image.raw(), mime_type=image.mime_type)

    async def generate_concepts(self, image: EncodedImage, count: int) -> list[AdIdea]:
        """
        One structured-output call: the model must answer JSON matching `_ConceptBatch`.
        All-or-nothing; any failure surfaces as GenerationError.
        """
        from google.genai import types  # type: ignore

        model = self.config.gemini_text_model
        prompt = build_concept_prompt(count, self.config.copy_language)
        try:
            resp = await self.client.aio.models.generate_content(
                model=model,
                contents=[self._image_part(image), prompt],
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=_ConceptBatch,
                ),
            )
        except Exception as exc:
            raise GenerationError(f"concept request to {model} failed: {exc}") from exc

        raw_text: str | None = getattr(resp, "text", None)
        if not raw_text:
            raise GenerationError(f"{model} returned no concept text")
        try:
            batch = _ConceptBatch.model_validate_json(_strip_code_fences(raw_text))
        except ValidationError as exc:
            raise GenerationError(f"concept response does not match schema: {exc}") from exc

        ideas = [AdIdea(title=i.title, description=i.description, image_prompt=i.image_prompt) for i in batch.ideas]
        if not ideas:
            raise GenerationError(f"{model} returned zero concepts")
        if len(ideas) > count:
            logger.info("Model returned %d concepts, keeping the first %d", len(ideas), count)
            ideas = ideas[:count]
        return ideas

    async def generate_image(self, image: EncodedImage, prompt: str) -> AdImage:
        from google.genai import types  # type: ignore

        resp = await self.client.aio.models.generate_content(
            model=self.config.gemini_image_model,
            contents=[self._image_part(image), prompt],
            config=types.GenerateContentConfig(response_modalities=["IMAGE"]),
        )

        found = _first_inline_image(resp)
        if found is None:
            raise NoImageReturned(_describe_missing_image(resp))
        data_b64, mime = found
        return AdImage(src=f"data:{mime};base64,{data_b64}", prompt=prompt)


def _strip_code_fences(text: str) -> str:
    s = text.strip()
    if s.startswith("```"):
        # Remove leading fence line
        first_nl = s.find("\n")
        if first_nl != -1:
            s = s[first_nl + 1 :]
        # Remove trailing fence
        if s.rstrip().endswith("```"):
            s = s.rstrip()[:-3]
    return s.strip()


def _first_inline_image(resp: Any) -> tuple[str, str] | None:
    """Return (base64 data, mime type) of the first image part of the first candidate."""
    candidates = getattr(resp, "candidates", None) or []
    if not candidates:
        return None
    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []
    for part in parts:
        inline = getattr(part, "inline_data", None)
        if not inline:
            continue
        data = getattr(inline, "data", None)
        if not data:
            continue
        mime = getattr(inline, "mime_type", None) or "image/png"
        if not mime.startswith("image/"):
            continue
        # The SDK hands back raw bytes; a str is already base64.
        if isinstance(data, str):
            return data, mime
        return base64.b64encode(data).decode("ascii"), mime
    return None


def _describe_missing_image(resp: Any) -> str:
    details: list[str] = []
    feedback = getattr(resp, "prompt_feedback", None)
    block_reason = getattr(feedback, "block_reason", None)
    if block_reason:
        details.append(f"block_reason={block_reason}")

    candidates = getattr(resp, "candidates", None) or []
    if not candidates:
        details.append("no candidates")
    else:
        cand = candidates[0]
        finish_reason = getattr(cand, "finish_reason", None)
        if finish_reason:
            details.append(f"finish_reason={finish_reason}")
        parts = getattr(getattr(cand, "content", None), "parts", None) or []
        texts = [t for t in (getattr(p, "text", None) for p in parts) if t]
        if texts:
            details.append(f"text={' '.join(texts)[:200]!r}")
    return "no image data in response" + (f" ({', '.join(details)})" if details else "")
