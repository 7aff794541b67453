"""
ElevenLabs voice provider (premium, cloud-based).

Fallback for hosts without a native TTS command. Synthesized MP3 audio
is written to a temporary file and played with the first local audio
player found on PATH; the file is removed once the player exits.

Availability only checks that an API key is configured; no network
round trip happens at detection time.
"""

import logging
import tempfile
from pathlib import Path
from typing import Optional

import httpx

from pai_server.errors import VoiceDispatchError
from pai_server.voice.process import CommandRunner

from .base import Voice, VoiceOptions, VoiceProvider, VoiceQuality
from .windows import escape_powershell

logger = logging.getLogger("pai-server.voice.elevenlabs")

API_BASE_URL = "https://api.elevenlabs.io"
DEFAULT_VOICE_ID = "s3TPKV1kjDlVtZbl4Ksh"
DEFAULT_MODEL_ID = "eleven_monolingual_v1"
DEFAULT_TIMEOUT = 30.0

_WINDOWS_PLAY_SCRIPT = (
    "$player = New-Object -ComObject WMPlayer.OCX; "
    "$player.URL = '{path}'; "
    "$player.controls.play(); "
    "Start-Sleep -Milliseconds 300; "
    "while ($player.playState -eq 3 -or $player.playState -eq 6 -or $player.playState -eq 9) "
    "{{ Start-Sleep -Milliseconds 100 }}; "
    "$player.close()"
)


def _player_args(player: str, path: str) -> list[str]:
    """Argument vector for playing ``path`` with a detected player."""
    if player == "ffplay":
        return [player, "-nodisp", "-autoexit", "-loglevel", "quiet", path]
    if player == "mpg123":
        return [player, "-q", path]
    if player == "powershell":
        return [player, "-Command", _WINDOWS_PLAY_SCRIPT.format(path=escape_powershell(path))]
    return [player, path]


# Probed in order; the first one on PATH wins
AUDIO_PLAYERS: tuple[str, ...] = ("afplay", "mpg123", "ffplay", "powershell")


class ElevenLabsVoiceProvider(VoiceProvider):
    """Cloud TTS through the ElevenLabs REST API.

    Args:
        api_key: ElevenLabs API key. Without it the provider is unavailable.
        runner: Command runner used to probe for and spawn the audio player.
        base_url: API base URL.
        default_voice_id: Voice used when the request names none.
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``).
    """

    native = False

    def __init__(
        self,
        api_key: Optional[str] = None,
        runner: Optional[CommandRunner] = None,
        *,
        base_url: str = API_BASE_URL,
        default_voice_id: str = DEFAULT_VOICE_ID,
        model_id: str = DEFAULT_MODEL_ID,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(runner)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.default_voice_id = default_voice_id
        self.model_id = model_id
        self._transport = transport

    @property
    def name(self) -> str:
        return "ElevenLabs"

    async def is_available(self) -> bool:
        return bool(self.api_key)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=DEFAULT_TIMEOUT,
            transport=self._transport,
        )

    async def speak(self, text: str, options: Optional[VoiceOptions] = None) -> None:
        cleaned = self._prepare(text)
        voice_id = (options.voice if options else None) or self.default_voice_id

        payload = {
            "text": cleaned,
            "model_id": self.model_id,
            "voice_settings": {
                "stability": 0.5,
                "similarity_boost": 0.5,
            },
        }
        headers = {
            "Accept": "audio/mpeg",
            "xi-api-key": self.api_key or "",
        }

        try:
            async with self._client() as client:
                response = await client.post(
                    f"/v1/text-to-speech/{voice_id}",
                    json=payload,
                    headers=headers,
                )
        except httpx.RequestError as exc:
            raise VoiceDispatchError(f"Failed to reach ElevenLabs: {exc}") from exc

        if not response.is_success:
            raise VoiceDispatchError(
                f"ElevenLabs API error: {response.status_code} - {response.text}",
                status_code=response.status_code,
                detail=response.text,
            )

        await self.play_audio(response.content)

    def detect_audio_player(self) -> Optional[str]:
        """Return the first available audio player, or None."""
        for player in AUDIO_PLAYERS:
            if self.runner.which(player):
                return player
        return None

    async def play_audio(self, audio: bytes) -> None:
        """Persist ``audio`` to a temp file and play it with a local player.

        The temp file is removed when the player exits, whatever its
        exit code.

        Raises:
            VoiceDispatchError: If no player is found or it exits non-zero.
        """
        with tempfile.NamedTemporaryFile(prefix="voice-", suffix=".mp3", delete=False) as fh:
            fh.write(audio)
            temp_path = Path(fh.name)

        try:
            player = self.detect_audio_player()
            if player is None:
                raise VoiceDispatchError("No audio player found")

            try:
                result = await self.runner.run(*_player_args(player, str(temp_path)))
            except OSError as exc:
                raise VoiceDispatchError(f"Failed to start {player}: {exc}") from exc

            if not result.ok:
                raise VoiceDispatchError(
                    f"Audio player exited with code {result.returncode}",
                    exit_code=result.returncode,
                    detail=result.stderr.strip(),
                )
        finally:
            try:
                temp_path.unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("Failed to remove temp audio file %s: %s", temp_path, exc)

    async def get_voices(self) -> list[Voice]:
        if not self.available or not self.api_key:
            return []

        try:
            async with self._client() as client:
                response = await client.get(
                    "/v1/voices",
                    headers={"xi-api-key": self.api_key},
                )
            if not response.is_success:
                logger.warning("ElevenLabs voice listing returned %s", response.status_code)
                return []
            data = response.json()
            return [
                Voice(
                    id=v["voice_id"],
                    name=v["name"],
                    language="en-US",
                    quality=VoiceQuality.PREMIUM,
                )
                for v in data.get("voices", [])
            ]
        except Exception as exc:
            logger.warning("Failed to list ElevenLabs voices: %s", exc)
            return []
