from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Protocol

from product_ads.config import Settings, settings
from product_ads.errors import ConfigurationError

logger = logging.getLogger(__name__)


class KeyProvider(Protocol):
    async def get_api_key(self) -> str: ...


class SettingsKeyProvider:
    """Reads the Gemini key from local configuration (env or .env)."""

    def __init__(self, config: Settings | None = None) -> None:
        self.config = config or settings

    async def get_api_key(self) -> str:
        key = (self.config.gemini_api_key or "").strip()
        if not key:
            raise ConfigurationError("GEMINI_API_KEY is not set")
        return key


def _build_genai_client(api_key: str) -> Any:
    # Imported lazily so the app can start without the dependency installed.
    from google import genai  # type: ignore

    return genai.Client(api_key=api_key)


class ClientFactory:
    """
    Lazily builds one generative client and hands the same instance to every caller.

    Initialization is single-flight: callers that arrive while the first build is
    in progress wait on the lock and then reuse its result, so the key provider
    is consulted at most once per successful build. A failed build is not cached.
    """

    def __init__(
        self,
        key_provider: KeyProvider | None = None,
        build: Callable[[str], Any] = _build_genai_client,
    ) -> None:
        self.key_provider = key_provider or SettingsKeyProvider()
        self._build = build
        self._client: Any = None
        self._lock = asyncio.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._client is not None

    async def get_client(self) -> Any:
        if self._client is not None:
            return self._client

        async with self._lock:
            if self._client is not None:
                return self._client
            try:
                api_key = await self.key_provider.get_api_key()
            except ConfigurationError:
                logger.error("Gemini API key is not configured")
                raise
            except Exception as exc:
                logger.exception("Failed to obtain Gemini API key")
                raise ConfigurationError(f"failed to obtain API key: {exc}") from exc
            if not api_key:
                raise ConfigurationError("API key provider returned an empty key")

            try:
                self._client = self._build(api_key)
            except Exception as exc:
                logger.exception("Failed to initialize Gemini client")
                raise ConfigurationError(f"failed to initialize client: {exc}") from exc
            logger.info("Gemini client initialized")
            return self._client
