"""
Skill and agent loading from the PAI directory.

Skills live in ``<pai_dir>/skills/<name>/SKILL.md`` and agents in
``<pai_dir>/agents/<name>.md``. Each file starts with a YAML front-matter
block delimited by ``---`` lines; the body is ignored here.
"""

import logging
import re
from pathlib import Path
from typing import Any, Optional

import yaml

from .models import AgentInfo, SkillInfo

logger = logging.getLogger("pai-server.core.registry")

_FRONT_MATTER = re.compile(r"^---\r?\n(.*?)\r?\n---", re.DOTALL)

DEFAULT_AGENT = AgentInfo(
    name="kai",
    description="Your personal AI assistant",
    model="sonnet",
    permissions=["*"],
)


def parse_front_matter(content: str) -> Optional[dict[str, Any]]:
    """Extract the YAML front matter of a markdown document.

    Args:
        content: Full file text.

    Returns:
        The parsed mapping, or None if the document has no front matter.

    Raises:
        yaml.YAMLError: If the front matter is not valid YAML.
    """
    match = _FRONT_MATTER.match(content)
    if not match:
        return None
    data = yaml.safe_load(match.group(1))
    return data if isinstance(data, dict) else None


def _str_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def _permissions(meta: dict[str, Any]) -> list[str]:
    # Either nested (permissions: {allow: [...]}) or a dotted key
    perms = meta.get("permissions")
    if isinstance(perms, dict):
        return _str_list(perms.get("allow"))
    return _str_list(meta.get("permissions.allow"))


def load_skills(skills_dir: Path) -> dict[str, SkillInfo]:
    """Load every ``<skills_dir>/<name>/SKILL.md`` with front matter."""
    skills: dict[str, SkillInfo] = {}
    if not skills_dir.is_dir():
        logger.warning("Skills directory not found: %s", skills_dir)
        return skills

    for skill_dir in sorted(p for p in skills_dir.iterdir() if p.is_dir()):
        skill_file = skill_dir / "SKILL.md"
        try:
            meta = parse_front_matter(skill_file.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Failed to load skill %s: %s", skill_dir.name, exc)
            continue
        if meta is None:
            continue

        skills[skill_dir.name] = SkillInfo(
            name=skill_dir.name,
            description=str(meta.get("description") or ""),
            triggers=_str_list(meta.get("triggers")),
            mcp_servers=_str_list(meta.get("mcp_servers")),
        )
    return skills


def load_agents(agents_dir: Path) -> dict[str, AgentInfo]:
    """Load every ``<agents_dir>/*.md`` with front matter.

    A default ``kai`` agent is added when none is defined.
    """
    agents: dict[str, AgentInfo] = {}
    if agents_dir.is_dir():
        for agent_file in sorted(agents_dir.glob("*.md")):
            try:
                meta = parse_front_matter(agent_file.read_text(encoding="utf-8"))
            except (OSError, yaml.YAMLError) as exc:
                logger.warning("Failed to load agent %s: %s", agent_file.name, exc)
                continue
            if meta is None:
                continue

            voice_id = meta.get("voiceId")
            agents[agent_file.stem] = AgentInfo(
                name=agent_file.stem,
                description=str(meta.get("description") or ""),
                model=str(meta.get("model") or "sonnet"),
                voice_id=str(voice_id) if voice_id else None,
                permissions=_permissions(meta),
            )
    else:
        logger.warning("Agents directory not found: %s", agents_dir)

    if DEFAULT_AGENT.name not in agents:
        agents[DEFAULT_AGENT.name] = DEFAULT_AGENT.model_copy(deep=True)
    return agents
