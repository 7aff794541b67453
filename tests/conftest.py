"""
Pytest configuration and fixtures for pai-server tests.

Shared fakes: a command runner that never touches the OS and a
configurable voice provider.
"""

import asyncio
import sys
from pathlib import Path
from typing import Callable, Optional

import pytest

# Add src directory to Python path to allow importing pai_server
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from pai_server.errors import VoiceDispatchError  # noqa: E402
from pai_server.voice.process import CommandResult, CommandRunner  # noqa: E402
from pai_server.voice.providers.base import Voice, VoiceOptions, VoiceProvider  # noqa: E402


# Configure anyio to only use asyncio (not trio)
@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def pai_dir(tmp_path: Path) -> Path:
    """A PAI directory with two skills and two agents."""
    skills = tmp_path / "skills"
    (skills / "weather").mkdir(parents=True)
    (skills / "weather" / "SKILL.md").write_text(
        "---\n"
        "description: Current conditions and forecasts\n"
        "triggers:\n"
        "  - weather\n"
        "  - forecast\n"
        "mcp_servers:\n"
        "  - open-meteo\n"
        "---\n"
        "# Weather\n"
    )
    (skills / "notes").mkdir()
    (skills / "notes" / "SKILL.md").write_text(
        "---\ndescription: Take notes\ntriggers: [note]\n---\nBody\n"
    )

    agents = tmp_path / "agents"
    agents.mkdir()
    (agents / "researcher.md").write_text(
        "---\n"
        "description: Finds and summarizes sources\n"
        "model: opus\n"
        "voiceId: Serena\n"
        "permissions:\n"
        "  allow:\n"
        "    - web\n"
        "    - files\n"
        "---\n"
        "You are a researcher.\n"
    )
    (agents / "scratch.md").write_text("no front matter here\n")
    return tmp_path


class FakeRunner(CommandRunner):
    """Records spawned argument vectors and returns canned results.

    Args:
        installed: Executables that ``which`` reports as present.
        results: Map of program name -> CommandResult (default: exit 0).
        on_run: Optional hook called with the argv before returning.
    """

    def __init__(
        self,
        installed: tuple[str, ...] = (),
        results: Optional[dict[str, CommandResult]] = None,
        on_run: Optional[Callable[[tuple[str, ...]], None]] = None,
    ) -> None:
        self.installed = set(installed)
        self.results = results or {}
        self.on_run = on_run
        self.calls: list[tuple[str, ...]] = []

    def which(self, command: str) -> Optional[str]:
        return f"/usr/bin/{command}" if command in self.installed else None

    async def run(self, *args: str) -> CommandResult:
        self.calls.append(args)
        if self.on_run:
            self.on_run(args)
        return self.results.get(args[0], CommandResult(returncode=0))


class FakeProvider(VoiceProvider):
    """Provider whose detection outcome, latency and speak result are scripted."""

    def __init__(
        self,
        name: str,
        available: bool = True,
        native: bool = True,
        delay: float = 0.0,
        fail_detection: bool = False,
        fail_speak: bool = False,
        voices: Optional[list[Voice]] = None,
    ) -> None:
        super().__init__(FakeRunner())
        self._name = name
        self._detects_as = available
        self.native = native
        self.delay = delay
        self.fail_detection = fail_detection
        self.fail_speak = fail_speak
        self.voices = voices if voices is not None else [Voice(f"{name}-1", name, "en-US")]
        self.spoken: list[tuple[str, Optional[VoiceOptions]]] = []
        self.init_calls = 0

    @property
    def name(self) -> str:
        return self._name

    async def is_available(self) -> bool:
        if self.delay:
            await asyncio.sleep(self.delay)
        return self._detects_as

    async def initialize(self) -> None:
        self.init_calls += 1
        if self.fail_detection:
            raise RuntimeError(f"{self._name} exploded during detection")
        await super().initialize()

    async def speak(self, text: str, options: Optional[VoiceOptions] = None) -> None:
        cleaned = self._prepare(text)
        if self.fail_speak:
            raise VoiceDispatchError(f"{self._name} exited with code 1", exit_code=1)
        self.spoken.append((cleaned, options))

    async def get_voices(self) -> list[Voice]:
        return list(self.voices) if self.available else []


@pytest.fixture
def fake_runner_cls() -> type[FakeRunner]:
    return FakeRunner


@pytest.fixture
def make_provider() -> Callable[..., FakeProvider]:
    return FakeProvider
