"""
Voice manager: detects voice providers and routes speech to one of them.

The manager constructs every known provider, runs detection once, and
selects a single active provider:

  1. the first available native provider, in construction order;
  2. otherwise the first available cloud provider;
  3. otherwise none (voice is disabled, which is not an error until
     someone actually tries to speak).

An operator can override the choice with ``set_provider``. A failed
``speak`` never deactivates the provider and never falls back to
another one; the error goes to the caller.
"""

import asyncio
import logging
from typing import Callable, Optional, Sequence

from pai_server.errors import (
    NoVoiceProviderError,
    UnknownProviderError,
    VoiceTimeoutError,
)

from .process import CommandRunner
from .providers import Voice, VoiceOptions, VoiceProvider, default_providers

logger = logging.getLogger("pai-server.voice.manager")

ProviderFactory = Callable[[], Sequence[VoiceProvider]]


class VoiceManager:
    """Owns the voice providers and the single active-provider pointer.

    Usage:
        manager = VoiceManager(elevenlabs_api_key=key)
        await manager.initialize()
        await manager.speak("Good morning!")

    Args:
        elevenlabs_api_key: Key for the cloud fallback provider.
        provider_factory: Builds the ordered provider list. Defaults to
            all known providers.
        runner: Command runner shared by the default providers.
        detect_timeout: Optional bound in seconds on each provider's
            detection; a timeout counts as unavailable.
        speak_timeout: Optional bound in seconds on ``speak``.
        parallel_detection: Run provider detection concurrently. The
            selected provider is the same either way.
    """

    def __init__(
        self,
        elevenlabs_api_key: Optional[str] = None,
        *,
        provider_factory: Optional[ProviderFactory] = None,
        runner: Optional[CommandRunner] = None,
        detect_timeout: Optional[float] = None,
        speak_timeout: Optional[float] = None,
        parallel_detection: bool = False,
    ) -> None:
        if provider_factory is None:
            def provider_factory() -> Sequence[VoiceProvider]:
                return default_providers(elevenlabs_api_key, runner)

        self._provider_factory = provider_factory
        self._providers: list[VoiceProvider] = []
        self._available: list[VoiceProvider] = []
        self._active: Optional[VoiceProvider] = None
        self._initialized = False
        self._init_lock = asyncio.Lock()
        self.detect_timeout = detect_timeout
        self.speak_timeout = speak_timeout
        self.parallel_detection = parallel_detection

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def active_provider(self) -> Optional[VoiceProvider]:
        return self._active

    # ------------------------------------------------------------------
    # Detection and selection
    # ------------------------------------------------------------------

    async def _detect(self, provider: VoiceProvider) -> None:
        """Initialize one provider; any failure leaves it unavailable."""
        try:
            if self.detect_timeout is not None:
                await asyncio.wait_for(provider.initialize(), self.detect_timeout)
            else:
                await provider.initialize()
        except asyncio.TimeoutError:
            provider.available = False
            logger.warning(
                "Detection for voice provider '%s' timed out after %.1fs",
                provider.name,
                self.detect_timeout,
            )
        except Exception as exc:
            provider.available = False
            logger.warning("Failed to initialize %s provider: %s", provider.name, exc)

    async def initialize(self, force: bool = False) -> None:
        """Detect providers and select the active one.

        No-op once initialized unless ``force`` is set, which re-runs
        detection on the existing providers and re-applies the policy.
        Never raises. Concurrent callers share one detection run.
        """
        if self._initialized and not force:
            return

        async with self._init_lock:
            if self._initialized and not force:
                return
            await self._run_detection()

    async def _run_detection(self) -> None:
        if not self._providers:
            self._providers = list(self._provider_factory())

        if self.parallel_detection:
            await asyncio.gather(*(self._detect(p) for p in self._providers))
        else:
            for provider in self._providers:
                await self._detect(provider)

        # Construction order, not completion order
        self._available = [p for p in self._providers if p.available]
        for provider in self._available:
            logger.info("Voice provider available: %s", provider.name)

        self._active = self._select(self._available)
        self._initialized = True

        if self._active:
            logger.info("Active voice provider: %s", self._active.name)
        else:
            logger.warning("No voice providers available, voice output disabled")

    @staticmethod
    def _select(available: Sequence[VoiceProvider]) -> Optional[VoiceProvider]:
        """Prefer natives over cloud; first in construction order wins."""
        for provider in available:
            if provider.native:
                return provider
        for provider in available:
            if not provider.native:
                return provider
        return None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def speak(self, text: str, options: Optional[VoiceOptions] = None) -> None:
        """Speak text with the active provider.

        Raises:
            NoVoiceProviderError: If no provider is active.
            VoiceTimeoutError: If ``speak_timeout`` is set and exceeded.
            VoiceError: Whatever the active provider raises.
        """
        if not self._initialized:
            await self.initialize()

        provider = self._active
        if provider is None:
            raise NoVoiceProviderError()

        if self.speak_timeout is None:
            await provider.speak(text, options)
            return

        try:
            await asyncio.wait_for(provider.speak(text, options), self.speak_timeout)
        except asyncio.TimeoutError:
            raise VoiceTimeoutError(
                f"{provider.name} did not finish speaking within {self.speak_timeout}s"
            ) from None

    async def get_voices(self) -> list[Voice]:
        """Voices of the active provider; [] when none is active."""
        if not self._initialized:
            await self.initialize()

        if self._active is None:
            return []

        try:
            return await self._active.get_voices()
        except Exception as exc:
            logger.warning("Listing voices for %s failed: %s", self._active.name, exc)
            return []

    def get_providers(self) -> list[VoiceProvider]:
        """All constructed providers, including unavailable ones."""
        return list(self._providers)

    def get_available_providers(self) -> list[VoiceProvider]:
        """Providers that passed detection, in construction order."""
        return list(self._available)

    def get_active_provider_name(self) -> Optional[str]:
        return self._active.name if self._active else None

    def set_provider(self, name: str) -> None:
        """Make the named provider active (case-insensitive).

        The operator's choice wins over the preference policy.

        Raises:
            UnknownProviderError: If no available provider has that name.
        """
        wanted = name.lower().strip()
        for provider in self._available:
            if provider.name.lower() == wanted:
                self._active = provider
                logger.info("Switched to voice provider: %s", provider.name)
                return
        raise UnknownProviderError(f'Provider "{name}" not available')

    def is_available(self) -> bool:
        """Whether a provider is active."""
        return self._active is not None

    def get_status(self) -> dict[str, object]:
        """Status summary for diagnostics endpoints."""
        return {
            "initialized": self._initialized,
            "active": self.get_active_provider_name(),
            "providers": [
                {
                    "name": p.name,
                    "available": p.available,
                    "native": p.native,
                }
                for p in self._providers
            ],
        }
