"""
Voice provider implementations.

Each provider implements the VoiceProvider interface. Construction never
fails, even on a platform where the backend makes no sense; only
``initialize()`` decides whether a provider is usable.
"""

from typing import Optional

from pai_server.voice.process import CommandRunner

from .android import AndroidVoiceProvider
from .base import (
    Voice,
    VoiceGender,
    VoiceOptions,
    VoiceProvider,
    VoiceQuality,
)
from .elevenlabs import ElevenLabsVoiceProvider
from .macos import MacOSVoiceProvider
from .windows import WindowsVoiceProvider


def default_providers(
    elevenlabs_api_key: Optional[str] = None,
    runner: Optional[CommandRunner] = None,
) -> list[VoiceProvider]:
    """Build one instance of every known provider, natives first.

    The order of the returned list is the selection tie-break order.
    """
    runner = runner or CommandRunner()
    return [
        MacOSVoiceProvider(runner),
        WindowsVoiceProvider(runner),
        AndroidVoiceProvider(runner),
        ElevenLabsVoiceProvider(elevenlabs_api_key, runner),
    ]


__all__ = [
    "VoiceProvider",
    "VoiceOptions",
    "Voice",
    "VoiceGender",
    "VoiceQuality",
    "MacOSVoiceProvider",
    "WindowsVoiceProvider",
    "AndroidVoiceProvider",
    "ElevenLabsVoiceProvider",
    "default_providers",
]
