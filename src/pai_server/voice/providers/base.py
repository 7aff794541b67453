"""
Abstract base class for voice providers.

All provider implementations (macOS, Windows, Android, ElevenLabs)
implement this interface, allowing the VoiceManager to treat them
uniformly. Text sanitization is a shared free function, not inherited
state; each provider calls ``clean_text`` itself before dispatch.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Optional

from pai_server.errors import EmptyTextError, ProviderUnavailableError
from pai_server.voice.process import CommandRunner
from pai_server.voice.sanitize import clean_text


class VoiceQuality(Enum):
    """Voice quality tiers."""

    STANDARD = "standard"
    ENHANCED = "enhanced"
    PREMIUM = "premium"


class VoiceGender(Enum):
    """Voice gender as reported by a backend."""

    MALE = "male"
    FEMALE = "female"
    NEUTRAL = "neutral"


@dataclass
class VoiceOptions:
    """Per-request speech options.

    Each provider interprets these against its own numeric range and
    clamps out-of-range values rather than rejecting them.

    Attributes:
        voice: Provider-specific voice identifier.
        rate: Speaking rate in words per minute.
        pitch: Pitch multiplier (1.0 = normal).
        volume: Volume from 0.0 to 1.0.
    """

    voice: Optional[str] = None
    rate: Optional[float] = None
    pitch: Optional[float] = None
    volume: Optional[float] = None


@dataclass
class Voice:
    """Descriptor for a voice offered by a provider.

    Attributes:
        id: Identifier passed back as ``VoiceOptions.voice``.
        name: Display name.
        language: BCP 47 language tag (e.g. "en-US").
        gender: Optional gender.
        quality: Optional quality tier.
    """

    id: str
    name: str
    language: str
    gender: Optional[VoiceGender] = None
    quality: Optional[VoiceQuality] = None

    def to_dict(self) -> dict[str, object]:
        data = asdict(self)
        data["gender"] = self.gender.value if self.gender else None
        data["quality"] = self.quality.value if self.quality else None
        return data


def clamp(value: float, low: float, high: float) -> float:
    """Clamp ``value`` into the inclusive range [low, high]."""
    return max(low, min(high, value))


class VoiceProvider(ABC):
    """Abstract base class for text-to-speech providers.

    Subclasses must implement:
    - name: A stable display name.
    - is_available(): Detect whether the backend is usable on this host.
    - speak(): Vocalize text.
    - get_voices(): Enumerate voices (best effort).

    ``available`` starts False and is only set by ``initialize()``.
    """

    #: Native providers shell out to a local command; cloud ones call an API.
    native: bool = True

    def __init__(self, runner: Optional[CommandRunner] = None) -> None:
        self.runner = runner or CommandRunner()
        self.available = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Stable provider name."""
        ...

    @abstractmethod
    async def is_available(self) -> bool:
        """Check if this provider's backend can be used.

        Must not raise: a failing check is reported as False.

        Returns:
            True if the provider can be used, False otherwise.
        """
        ...

    @abstractmethod
    async def speak(self, text: str, options: Optional[VoiceOptions] = None) -> None:
        """Speak text through the backend.

        Args:
            text: Raw text; sanitized before dispatch.
            options: Optional voice, rate, pitch and volume.

        Raises:
            ProviderUnavailableError: If the provider is not available.
            EmptyTextError: If nothing is left after sanitization.
            VoiceDispatchError: If the backend reports failure.
        """
        ...

    @abstractmethod
    async def get_voices(self) -> list[Voice]:
        """Return the voices this provider offers, or [] on failure."""
        ...

    async def initialize(self) -> None:
        """Run detection and cache the result in ``available``."""
        self.available = await self.is_available()

    def _prepare(self, text: str) -> str:
        """Check availability and sanitize text ahead of dispatch."""
        if not self.available:
            raise ProviderUnavailableError(f"{self.name} voice provider not available")

        cleaned = clean_text(text)
        if not cleaned:
            raise EmptyTextError("Nothing to speak after sanitization")
        return cleaned

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r} available={self.available}>"
