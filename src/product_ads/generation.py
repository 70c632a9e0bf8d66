from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable

from product_ads.client import ClientFactory
from product_ads.config import Settings, settings
from product_ads.encoding import encode_path, encode_upload
from product_ads.errors import AllAttemptsFailedError, GenerationError
from product_ads.providers.base import (
    AdIdea,
    AdImage,
    ConceptProvider,
    EncodedImage,
    GenerationResult,
    ImageAttemptFailure,
    ImageProvider,
    RunStage,
)
from product_ads.providers.gemini_provider import GeminiProvider

logger = logging.getLogger(__name__)

StageCallback = Callable[[RunStage], None]


class AdGenerator:
    """
    Product photo -> ad concepts -> one image per concept.

    The concept stage is all-or-nothing. The image stage is best-effort: every idea
    gets exactly one independent attempt, and the run fails only if none succeed.
    """

    def __init__(
        self,
        client_factory: ClientFactory | None = None,
        config: Settings | None = None,
        provider_factory: Callable[[Any, Settings], Any] = GeminiProvider,
    ) -> None:
        self.config = config or settings
        self.client_factory = client_factory or ClientFactory()
        self._provider_factory = provider_factory

    async def provider(self) -> Any:
        client = await self.client_factory.get_client()
        return self._provider_factory(client, self.config)

    async def generate_concepts(self, image: EncodedImage, provider: ConceptProvider | None = None) -> list[AdIdea]:
        provider = provider or await self.provider()
        ideas = await provider.generate_concepts(image, self.config.idea_count)
        if not ideas:
            raise GenerationError("concept stage returned zero ideas")
        logger.info("Generated %d ad concepts", len(ideas))
        return ideas

    async def _attempt(
        self,
        provider: ImageProvider,
        image: EncodedImage,
        index: int,
        idea: AdIdea,
    ) -> AdImage | ImageAttemptFailure:
        prompt = idea.image_prompt
        try:
            return await asyncio.wait_for(
                provider.generate_image(image, prompt),
                timeout=self.config.image_timeout_s,
            )
        except asyncio.TimeoutError:
            reason = f"timed out after {self.config.image_timeout_s}s"
        except Exception as exc:
            reason = str(exc) or type(exc).__name__
        logger.warning("Image attempt %d failed for prompt %r: %s", index + 1, prompt, reason)
        return ImageAttemptFailure(index=index, prompt=prompt, reason=reason)

    async def generate_images(
        self,
        image: EncodedImage,
        ideas: list[AdIdea],
        provider: ImageProvider | None = None,
    ) -> list[AdImage | ImageAttemptFailure]:
        """Launch one attempt per idea, join them all. Output matches `ideas` in length and order."""
        provider = provider or await self.provider()
        tasks = [self._attempt(provider, image, i, idea) for i, idea in enumerate(ideas)]
        return list(await asyncio.gather(*tasks))

    async def run(self, file: Any, on_stage: StageCallback | None = None) -> GenerationResult:
        """
        `file` is an UploadFile-like object (async read(), content_type) or a Path.
        """

        def enter(stage: RunStage) -> None:
            logger.info("Ad generation stage: %s", stage.value)
            if on_stage is not None:
                on_stage(stage)

        enter(RunStage.IDLE)
        try:
            enter(RunStage.ENCODING)
            if isinstance(file, (str, Path)):
                image = encode_path(Path(file))
            else:
                image = await encode_upload(file)

            provider = await self.provider()

            enter(RunStage.CONCEPTS_PENDING)
            ideas = await self.generate_concepts(image, provider)

            enter(RunStage.IMAGES_PENDING)
            outcomes = await self.generate_images(image, ideas, provider)
            images = [o for o in outcomes if isinstance(o, AdImage)]
            if not images:
                raise AllAttemptsFailedError(f"all {len(ideas)} image generation attempts failed")
        except Exception:
            enter(RunStage.FAILED)
            raise

        status = RunStage.SUCCESS if len(images) == len(ideas) else RunStage.PARTIAL_SUCCESS
        logger.info("Generated %d of %d ad images", len(images), len(ideas))
        enter(status)
        return GenerationResult(images=images, ideas=ideas, status=status, product_src=image.data_url())
