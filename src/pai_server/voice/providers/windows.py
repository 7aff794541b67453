"""
Windows voice provider using SAPI through PowerShell.

Each call generates a small PowerShell script that loads the
``System.Speech`` assembly and drives ``SpeechSynthesizer``.
"""

import logging
import math
from typing import Optional

from pai_server.errors import VoiceDispatchError
from pai_server.voice.hardware import is_windows

from .base import Voice, VoiceGender, VoiceOptions, VoiceProvider, VoiceQuality, clamp

logger = logging.getLogger("pai-server.voice.windows")

_POWERSHELL = "powershell"

# SAPI: -10 (slow) .. 10 (fast); 0 is roughly 180 words per minute
_SAPI_BASE_WPM = 180
_SAPI_WPM_PER_STEP = 20

_LIST_VOICES_SCRIPT = """
Add-Type -AssemblyName System.Speech
$synth = New-Object System.Speech.Synthesis.SpeechSynthesizer
$synth.GetInstalledVoices() | ForEach-Object {
  $voice = $_.VoiceInfo
  Write-Output "$($voice.Name)|$($voice.Culture.Name)|$($voice.Gender)"
}
$synth.Dispose()
"""


def normalize_rate(wpm: float) -> int:
    """Convert words per minute to the SAPI -10..10 rate scale.

    Rounds half up so 190 wpm maps to 1, not 0.
    """
    steps = math.floor((wpm - _SAPI_BASE_WPM) / _SAPI_WPM_PER_STEP + 0.5)
    return int(clamp(steps, -10, 10))


# PowerShell treats typographic single quotes as quote characters too
_SINGLE_QUOTES = ("'", "\u2018", "\u2019", "\u201a", "\u201b")


def escape_powershell(text: str) -> str:
    """Escape text for a single-quoted PowerShell string literal.

    Single-quoted literals are never expanded, so ``$var`` and ``$(...)``
    in spoken text stay literal. Each quote character is doubled.
    """
    for quote in _SINGLE_QUOTES:
        text = text.replace(quote, quote * 2)
    return text


def build_speak_script(text: str, options: Optional[VoiceOptions] = None) -> str:
    """Build the PowerShell script that speaks already-sanitized text."""
    lines = [
        "Add-Type -AssemblyName System.Speech",
        "$synth = New-Object System.Speech.Synthesis.SpeechSynthesizer",
    ]
    if options and options.voice:
        lines.append(f"$synth.SelectVoice('{escape_powershell(options.voice)}')")
    if options and options.rate is not None:
        lines.append(f"$synth.Rate = {normalize_rate(options.rate)}")
    if options and options.volume is not None:
        lines.append(f"$synth.Volume = {int(round(clamp(options.volume, 0.0, 1.0) * 100))}")
    lines.append(f"$synth.Speak('{escape_powershell(text)}')")
    lines.append("$synth.Dispose()")
    return "\n".join(lines)


def parse_voice_lines(output: str) -> list[Voice]:
    """Parse ``name|culture|gender`` lines printed by the listing script."""
    voices: list[Voice] = []
    for line in output.strip().splitlines():
        if "|" not in line:
            continue
        name, _, rest = line.strip().partition("|")
        language, _, gender_raw = rest.partition("|")
        try:
            gender: Optional[VoiceGender] = VoiceGender(gender_raw.strip().lower())
        except ValueError:
            gender = None
        voices.append(
            Voice(
                id=name,
                name=name,
                language=language.strip(),
                gender=gender,
                quality=VoiceQuality.STANDARD,
            )
        )
    return voices


class WindowsVoiceProvider(VoiceProvider):
    """Speaks through SAPI, available on Windows hosts with PowerShell."""

    @property
    def name(self) -> str:
        return "Windows"

    async def is_available(self) -> bool:
        if not is_windows():
            return False
        try:
            result = await self.runner.run(_POWERSHELL, "-Command", "Get-Command Add-Type")
            return result.ok
        except Exception as exc:
            logger.debug("PowerShell detection failed: %s", exc)
            return False

    async def speak(self, text: str, options: Optional[VoiceOptions] = None) -> None:
        cleaned = self._prepare(text)
        script = build_speak_script(cleaned, options)

        try:
            result = await self.runner.run(_POWERSHELL, "-Command", script)
        except OSError as exc:
            raise VoiceDispatchError(f"Failed to start PowerShell: {exc}") from exc

        if not result.ok:
            stderr = result.stderr.strip()
            raise VoiceDispatchError(
                f"PowerShell exited with code {result.returncode}: {stderr}",
                exit_code=result.returncode,
                detail=stderr,
            )

    async def get_voices(self) -> list[Voice]:
        if not self.available:
            return []

        try:
            result = await self.runner.run(_POWERSHELL, "-Command", _LIST_VOICES_SCRIPT)
        except Exception as exc:
            logger.warning("Failed to list SAPI voices: %s", exc)
            return []

        if not result.ok:
            logger.warning(
                "Listing SAPI voices exited with code %s: %s",
                result.returncode,
                result.stderr.strip(),
            )
            return []

        return parse_voice_lines(result.stdout)
