"""
Tests for the ElevenLabs cloud provider.

HTTP goes through ``httpx.MockTransport``; audio playback goes through a
FakeRunner, so nothing reaches the network or the speakers.
"""

import json
from pathlib import Path

import httpx
import pytest

from pai_server.errors import VoiceDispatchError
from pai_server.voice.process import CommandResult
from pai_server.voice.providers import ElevenLabsVoiceProvider, VoiceOptions, VoiceQuality
from pai_server.voice.providers.elevenlabs import AUDIO_PLAYERS


def _audio_handler(seen: list[httpx.Request], status: int = 200, body: bytes = b"ID3fake"):
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(status, content=body)

    return handler


def _make_provider(runner, handler, api_key: str = "xi-test") -> ElevenLabsVoiceProvider:
    provider = ElevenLabsVoiceProvider(
        api_key,
        runner,
        transport=httpx.MockTransport(handler),
    )
    provider.available = bool(api_key)
    return provider


class TestDetection:
    """Availability only depends on the API key."""

    @pytest.mark.asyncio
    async def test_available_with_key(self) -> None:
        provider = ElevenLabsVoiceProvider("xi-test")
        await provider.initialize()
        assert provider.available is True
        assert provider.native is False
        assert provider.name == "ElevenLabs"

    @pytest.mark.asyncio
    async def test_unavailable_without_key(self) -> None:
        provider = ElevenLabsVoiceProvider(None)
        await provider.initialize()
        assert provider.available is False

    @pytest.mark.asyncio
    async def test_empty_key_is_unavailable(self) -> None:
        provider = ElevenLabsVoiceProvider("")
        await provider.initialize()
        assert provider.available is False


class TestSpeak:
    """Tests for synthesis request and playback."""

    @pytest.mark.asyncio
    async def test_request_shape(self, fake_runner_cls) -> None:
        seen: list[httpx.Request] = []
        runner = fake_runner_cls(installed=("afplay",))
        provider = _make_provider(runner, _audio_handler(seen))

        await provider.speak("**Hello** there")

        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/v1/text-to-speech/s3TPKV1kjDlVtZbl4Ksh"
        assert request.headers["xi-api-key"] == "xi-test"
        assert request.headers["accept"] == "audio/mpeg"
        payload = json.loads(request.content)
        assert payload == {
            "text": "Hello there",
            "model_id": "eleven_monolingual_v1",
            "voice_settings": {"stability": 0.5, "similarity_boost": 0.5},
        }

    @pytest.mark.asyncio
    async def test_voice_option_selects_voice_id(self, fake_runner_cls) -> None:
        seen: list[httpx.Request] = []
        provider = _make_provider(fake_runner_cls(installed=("afplay",)), _audio_handler(seen))
        await provider.speak("Hi", VoiceOptions(voice="abc123"))
        assert seen[0].url.path == "/v1/text-to-speech/abc123"

    @pytest.mark.asyncio
    async def test_api_error_includes_status_and_body(self, fake_runner_cls) -> None:
        seen: list[httpx.Request] = []
        runner = fake_runner_cls(installed=("afplay",))
        provider = _make_provider(
            runner, _audio_handler(seen, status=401, body=b'{"detail":"invalid key"}')
        )

        with pytest.raises(VoiceDispatchError, match="ElevenLabs API error: 401") as exc_info:
            await provider.speak("Hi")

        assert "invalid key" in str(exc_info.value)
        assert exc_info.value.status_code == 401
        assert runner.calls == []

    @pytest.mark.asyncio
    async def test_transport_failure(self, fake_runner_cls) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        provider = _make_provider(fake_runner_cls(installed=("afplay",)), handler)
        with pytest.raises(VoiceDispatchError, match="Failed to reach ElevenLabs"):
            await provider.speak("Hi")

    @pytest.mark.asyncio
    async def test_plays_and_removes_temp_file(self, fake_runner_cls) -> None:
        played: list[Path] = []

        def capture(args: tuple[str, ...]) -> None:
            path = Path(args[-1])
            assert path.read_bytes() == b"ID3fake"
            played.append(path)

        runner = fake_runner_cls(installed=("afplay",), on_run=capture)
        provider = _make_provider(runner, _audio_handler([]))

        await provider.speak("Hi")

        assert runner.calls[0][0] == "afplay"
        assert played[0].name.startswith("voice-")
        assert played[0].suffix == ".mp3"
        assert not played[0].exists()

    @pytest.mark.asyncio
    async def test_player_failure_still_removes_temp_file(self, fake_runner_cls) -> None:
        played: list[Path] = []
        runner = fake_runner_cls(
            installed=("mpg123",),
            results={"mpg123": CommandResult(returncode=1, stderr="bad frame")},
            on_run=lambda args: played.append(Path(args[-1])),
        )
        provider = _make_provider(runner, _audio_handler([]))

        with pytest.raises(VoiceDispatchError, match="Audio player exited with code 1"):
            await provider.speak("Hi")

        assert runner.calls[0][:2] == ("mpg123", "-q")
        assert not played[0].exists()

    @pytest.mark.asyncio
    async def test_no_player(self, fake_runner_cls) -> None:
        provider = _make_provider(fake_runner_cls(), _audio_handler([]))
        with pytest.raises(VoiceDispatchError, match="No audio player found"):
            await provider.speak("Hi")


class TestAudioPlayerDetection:
    """Tests for the player probe order."""

    def test_probe_order(self) -> None:
        assert AUDIO_PLAYERS == ("afplay", "mpg123", "ffplay", "powershell")

    def test_first_installed_wins(self, fake_runner_cls) -> None:
        provider = ElevenLabsVoiceProvider("k", fake_runner_cls(installed=("ffplay", "mpg123")))
        assert provider.detect_audio_player() == "mpg123"

    def test_none_installed(self, fake_runner_cls) -> None:
        provider = ElevenLabsVoiceProvider("k", fake_runner_cls())
        assert provider.detect_audio_player() is None

    @pytest.mark.asyncio
    async def test_ffplay_args(self, fake_runner_cls) -> None:
        runner = fake_runner_cls(installed=("ffplay",))
        provider = _make_provider(runner, _audio_handler([]))
        await provider.speak("Hi")
        assert runner.calls[0][:5] == ("ffplay", "-nodisp", "-autoexit", "-loglevel", "quiet")


class TestVoices:
    """Tests for voice listing."""

    @pytest.mark.asyncio
    async def test_lists_voices(self, fake_runner_cls) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v1/voices"
            return httpx.Response(
                200,
                json={"voices": [{"voice_id": "v1", "name": "Rachel"}, {"voice_id": "v2", "name": "Adam"}]},
            )

        provider = _make_provider(fake_runner_cls(), handler)
        voices = await provider.get_voices()
        assert [(v.id, v.name) for v in voices] == [("v1", "Rachel"), ("v2", "Adam")]
        assert all(v.quality == VoiceQuality.PREMIUM for v in voices)

    @pytest.mark.asyncio
    async def test_http_error_is_empty(self, fake_runner_cls) -> None:
        provider = _make_provider(fake_runner_cls(), lambda r: httpx.Response(500))
        assert await provider.get_voices() == []

    @pytest.mark.asyncio
    async def test_malformed_body_is_empty(self, fake_runner_cls) -> None:
        provider = _make_provider(fake_runner_cls(), lambda r: httpx.Response(200, content=b"not json"))
        assert await provider.get_voices() == []

    @pytest.mark.asyncio
    async def test_unavailable_is_empty(self) -> None:
        provider = ElevenLabsVoiceProvider(None)
        assert await provider.get_voices() == []
