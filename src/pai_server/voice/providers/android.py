"""
Android voice provider using Termux TTS.

Requires the ``termux-tts-speak`` command from the Termux:API package.
The tool exposes no voice enumeration, so a single placeholder voice is
reported.
"""

import logging
from typing import Optional

from pai_server.errors import VoiceDispatchError

from .base import Voice, VoiceOptions, VoiceProvider, VoiceQuality, clamp

logger = logging.getLogger("pai-server.voice.android")

_TERMUX_SPEAK = "termux-tts-speak"

# termux-tts-speak accepts rate and pitch multipliers in 0.1..2.0
_BASELINE_WPM = 175
_MIN_FACTOR = 0.1
_MAX_FACTOR = 2.0


def build_args(text: str, options: Optional[VoiceOptions] = None) -> list[str]:
    """Build the ``termux-tts-speak`` argument vector for sanitized text."""
    args = [_TERMUX_SPEAK]
    if options and options.rate is not None:
        rate = clamp(options.rate / _BASELINE_WPM, _MIN_FACTOR, _MAX_FACTOR)
        args += ["-r", f"{rate:.2f}"]
    if options and options.pitch is not None:
        pitch = clamp(options.pitch, _MIN_FACTOR, _MAX_FACTOR)
        args += ["-p", f"{pitch:.2f}"]
    args += ["--", text]
    return args


class AndroidVoiceProvider(VoiceProvider):
    """Speaks through Termux on Android devices."""

    @property
    def name(self) -> str:
        return "Android"

    async def is_available(self) -> bool:
        try:
            return self.runner.which(_TERMUX_SPEAK) is not None
        except Exception as exc:
            logger.debug("termux-tts-speak detection failed: %s", exc)
            return False

    async def speak(self, text: str, options: Optional[VoiceOptions] = None) -> None:
        cleaned = self._prepare(text)

        try:
            result = await self.runner.run(*build_args(cleaned, options))
        except OSError as exc:
            raise VoiceDispatchError(f"Failed to start {_TERMUX_SPEAK}: {exc}") from exc

        if not result.ok:
            raise VoiceDispatchError(
                f"{_TERMUX_SPEAK} exited with code {result.returncode}",
                exit_code=result.returncode,
                detail=result.stderr.strip(),
            )

    async def get_voices(self) -> list[Voice]:
        if not self.available:
            return []
        return [
            Voice(
                id="default",
                name="Android TTS",
                language="en-US",
                quality=VoiceQuality.STANDARD,
            )
        ]
