"""
Tests for skill and agent loading from the PAI directory.
"""

from pathlib import Path

import pytest
import yaml

from pai_server.core.registry import load_agents, load_skills, parse_front_matter


class TestParseFrontMatter:
    """Tests for YAML front-matter extraction."""

    def test_basic(self) -> None:
        assert parse_front_matter("---\na: 1\nb: [x, y]\n---\nbody") == {"a": 1, "b": ["x", "y"]}

    def test_crlf(self) -> None:
        assert parse_front_matter("---\r\na: 1\r\n---\r\nbody") == {"a": 1}

    def test_missing(self) -> None:
        assert parse_front_matter("# just markdown") is None

    def test_not_a_mapping(self) -> None:
        assert parse_front_matter("---\n- a\n- b\n---\n") is None

    def test_invalid_yaml_raises(self) -> None:
        with pytest.raises(yaml.YAMLError):
            parse_front_matter("---\na: [unclosed\n---\n")


class TestLoadSkills:
    """Tests for load_skills."""

    def test_loads_skills(self, pai_dir: Path) -> None:
        skills = load_skills(pai_dir / "skills")

        assert list(skills) == ["notes", "weather"]
        weather = skills["weather"]
        assert weather.description == "Current conditions and forecasts"
        assert weather.triggers == ["weather", "forecast"]
        assert weather.mcp_servers == ["open-meteo"]
        assert weather.active is True

    def test_missing_directory(self, tmp_path: Path) -> None:
        assert load_skills(tmp_path / "nope") == {}

    def test_skips_dirs_without_skill_file(self, pai_dir: Path) -> None:
        (pai_dir / "skills" / "empty").mkdir()
        assert "empty" not in load_skills(pai_dir / "skills")

    def test_skips_broken_yaml(self, pai_dir: Path) -> None:
        broken = pai_dir / "skills" / "broken"
        broken.mkdir()
        (broken / "SKILL.md").write_text("---\ntriggers: [oops\n---\n")

        skills = load_skills(pai_dir / "skills")

        assert "broken" not in skills
        assert "weather" in skills

    def test_alias_dump(self, pai_dir: Path) -> None:
        dumped = load_skills(pai_dir / "skills")["weather"].model_dump(by_alias=True)
        assert dumped["mcpServers"] == ["open-meteo"]


class TestLoadAgents:
    """Tests for load_agents."""

    def test_loads_agents_and_default(self, pai_dir: Path) -> None:
        agents = load_agents(pai_dir / "agents")

        assert set(agents) == {"researcher", "kai"}
        researcher = agents["researcher"]
        assert researcher.model == "opus"
        assert researcher.voice_id == "Serena"
        assert researcher.permissions == ["web", "files"]

    def test_default_agent(self, tmp_path: Path) -> None:
        agents = load_agents(tmp_path / "missing")
        kai = agents["kai"]
        assert kai.description == "Your personal AI assistant"
        assert kai.model == "sonnet"
        assert kai.permissions == ["*"]

    def test_defined_kai_wins(self, tmp_path: Path) -> None:
        agents_dir = tmp_path / "agents"
        agents_dir.mkdir()
        (agents_dir / "kai.md").write_text("---\ndescription: Custom Kai\nmodel: haiku\n---\n")

        kai = load_agents(agents_dir)["kai"]

        assert kai.description == "Custom Kai"
        assert kai.model == "haiku"

    def test_dotted_permissions_key(self, tmp_path: Path) -> None:
        agents_dir = tmp_path / "agents"
        agents_dir.mkdir()
        (agents_dir / "ops.md").write_text("---\npermissions.allow: [shell]\n---\n")

        ops = load_agents(agents_dir)["ops"]

        assert ops.permissions == ["shell"]
        assert ops.model == "sonnet"
        assert ops.voice_id is None
