"""
Tests for the pai-server command-line entry point.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from pai_server.__main__ import main
from pai_server.voice import VoiceManager


@pytest.fixture
def isolated_env(tmp_path: Path):
    with patch.dict(os.environ):
        for name in ("ELEVENLABS_API_KEY", "ANTHROPIC_API_KEY", "PAI_SERVER_PORT", "LOG_LEVEL"):
            os.environ.pop(name, None)
        yield tmp_path


class TestListVoices:
    """Tests for --list-voices."""

    def test_prints_providers_and_voices(self, isolated_env: Path, make_provider, capsys) -> None:
        providers = [make_provider("macOS"), make_provider("ElevenLabs", native=False)]

        def fake_manager(*args, **kwargs) -> VoiceManager:
            return VoiceManager(provider_factory=lambda: providers)

        with patch("pai_server.__main__.VoiceManager", side_effect=fake_manager):
            code = main(["--pai-dir", str(isolated_env), "--list-voices"])

        out = capsys.readouterr().out
        assert code == 0
        assert "* macOS" in out
        assert "ElevenLabs" in out
        assert "macOS-1" in out

    def test_no_provider_exit_code(self, isolated_env: Path, make_provider, capsys) -> None:
        providers = [make_provider("macOS", available=False)]

        with patch(
            "pai_server.__main__.VoiceManager",
            side_effect=lambda *a, **kw: VoiceManager(provider_factory=lambda: providers),
        ):
            code = main(["--pai-dir", str(isolated_env), "--list-voices"])

        assert code == 1
        assert "No voices available" in capsys.readouterr().out


class TestServe:
    """Tests for the default serve mode."""

    def test_cli_overrides_reach_server(self, isolated_env: Path) -> None:
        with patch("pai_server.gateway.run_server") as run_server:
            code = main([
                "--pai-dir", str(isolated_env),
                "--host", "127.0.0.1",
                "--port", "8765",
                "--log-level", "warning",
            ])

        assert code == 0
        settings = run_server.call_args.args[0]
        assert settings.pai_dir == isolated_env
        assert settings.host == "127.0.0.1"
        assert settings.port == 8765
        assert settings.log_level == "warning"

    def test_invalid_log_level_rejected(self, isolated_env: Path) -> None:
        with pytest.raises(SystemExit):
            main(["--log-level", "chatty"])

    @pytest.mark.parametrize("port", ["0", "70000"])
    def test_out_of_range_port_rejected(self, isolated_env: Path, port: str) -> None:
        with patch("pai_server.gateway.run_server") as run_server:
            with pytest.raises(SystemExit) as exc_info:
                main(["--pai-dir", str(isolated_env), "--port", port])

        assert exc_info.value.code == 2
        run_server.assert_not_called()
