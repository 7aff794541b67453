"""
macOS voice provider using the native ``say`` command.

``say`` has no enumeration API at the level we care about, so the voice
list is a fixed catalogue of the Premium/Enhanced voices shipped with
recent macOS releases.
"""

import logging
from typing import Optional

from pai_server.errors import VoiceDispatchError
from pai_server.voice.hardware import is_mac

from .base import Voice, VoiceGender, VoiceOptions, VoiceProvider, VoiceQuality, clamp

logger = logging.getLogger("pai-server.voice.macos")

_SAY_COMMAND = "say"

# Words per minute accepted for ``say -r``
_MIN_RATE = 50
_MAX_RATE = 500

_CATALOGUE: tuple[Voice, ...] = (
    Voice("Jamie", "Jamie (Premium)", "en-GB", VoiceGender.MALE, VoiceQuality.PREMIUM),
    Voice("Ava", "Ava (Premium)", "en-US", VoiceGender.FEMALE, VoiceQuality.PREMIUM),
    Voice("Tom", "Tom (Enhanced)", "en-US", VoiceGender.MALE, VoiceQuality.ENHANCED),
    Voice("Serena", "Serena (Premium)", "en-GB", VoiceGender.FEMALE, VoiceQuality.PREMIUM),
    Voice("Isha", "Isha (Premium)", "en-IN", VoiceGender.FEMALE, VoiceQuality.PREMIUM),
    Voice("Oliver", "Oliver (Enhanced)", "en-GB", VoiceGender.MALE, VoiceQuality.ENHANCED),
    Voice("Samantha", "Samantha (Enhanced)", "en-US", VoiceGender.FEMALE, VoiceQuality.ENHANCED),
)


class MacOSVoiceProvider(VoiceProvider):
    """Speaks through ``say``, available on Darwin hosts only."""

    @property
    def name(self) -> str:
        return "macOS"

    async def is_available(self) -> bool:
        if not is_mac():
            return False
        try:
            return self.runner.which(_SAY_COMMAND) is not None
        except Exception as exc:
            logger.debug("say detection failed: %s", exc)
            return False

    def build_args(self, text: str, options: Optional[VoiceOptions] = None) -> list[str]:
        """Build the ``say`` argument vector for already-sanitized text."""
        args = [_SAY_COMMAND]
        if options and options.voice:
            args += ["-v", options.voice]
        if options and options.rate is not None:
            rate = int(round(clamp(options.rate, _MIN_RATE, _MAX_RATE)))
            args += ["-r", str(rate)]
        # Text may start with "-" (markdown list items)
        args += ["--", text]
        return args

    async def speak(self, text: str, options: Optional[VoiceOptions] = None) -> None:
        cleaned = self._prepare(text)
        args = self.build_args(cleaned, options)

        try:
            result = await self.runner.run(*args)
        except OSError as exc:
            raise VoiceDispatchError(f"Failed to start say: {exc}") from exc

        if not result.ok:
            raise VoiceDispatchError(
                f"say command exited with code {result.returncode}",
                exit_code=result.returncode,
                detail=result.stderr.strip(),
            )

    async def get_voices(self) -> list[Voice]:
        if not self.available:
            return []
        return list(_CATALOGUE)
