"""
Voice subsystem for pai-server.

Detects which text-to-speech backends the host offers and routes
speech to one of them:
- macOS: native ``say`` command
- Windows: SAPI through PowerShell
- Android: Termux ``termux-tts-speak``
- ElevenLabs: cloud fallback when no native backend is available

VoiceManager picks the active provider (native before cloud, then
construction order) and exposes speak / list-voices / switch.
"""

from .hardware import get_hardware_info, is_mac, is_windows
from .manager import VoiceManager
from .process import CommandResult, CommandRunner
from .providers import (
    AndroidVoiceProvider,
    ElevenLabsVoiceProvider,
    MacOSVoiceProvider,
    Voice,
    VoiceGender,
    VoiceOptions,
    VoiceProvider,
    VoiceQuality,
    WindowsVoiceProvider,
    default_providers,
)
from .sanitize import clean_text

__all__ = [
    # Manager
    "VoiceManager",
    # Provider interface
    "VoiceProvider",
    "VoiceOptions",
    "Voice",
    "VoiceGender",
    "VoiceQuality",
    "default_providers",
    # Providers
    "MacOSVoiceProvider",
    "WindowsVoiceProvider",
    "AndroidVoiceProvider",
    "ElevenLabsVoiceProvider",
    # Process port
    "CommandRunner",
    "CommandResult",
    # Utilities
    "clean_text",
    "is_mac",
    "is_windows",
    "get_hardware_info",
]
