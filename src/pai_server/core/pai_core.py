"""
Assistant core: bridges the HTTP API to skills, agents and the LLM.
"""

import logging
import re
from pathlib import Path
from typing import Optional, Protocol

from shortuuid import random as shortuuid_random

from pai_server.errors import LLMConfigurationError, RegistryError

from .models import AgentInfo, ChatRequest, ChatResponse, SkillInfo
from .registry import load_agents, load_skills

logger = logging.getLogger("pai-server.core")

DEFAULT_AGENT_NAME = "kai"

# Agent front matter uses short model names
_MODEL_ALIASES: dict[str, str] = {
    "sonnet": "claude-sonnet-4-5-20250929",
    "opus": "claude-opus-4-1-20250805",
    "haiku": "claude-3-5-haiku-20241022",
}


class ChatClient(Protocol):
    """Anything that can turn a prompt into a reply."""

    async def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        model: Optional[str] = None,
    ) -> str: ...


def _generate_session_id() -> str:
    return f"sess_{shortuuid_random(length=12)}"


class PAICore:
    """Loads skills and agents and answers chat messages.

    Args:
        pai_dir: Directory holding ``skills/`` and ``agents/``.
        llm: Chat client. Without one, ``chat`` raises
            LLMConfigurationError.
    """

    def __init__(self, pai_dir: Path, llm: Optional[ChatClient] = None) -> None:
        self.pai_dir = pai_dir
        self.llm = llm
        self._skills: dict[str, SkillInfo] = {}
        self._agents: dict[str, AgentInfo] = {}
        logger.info(f"PAI directory: {self.pai_dir}")

    def initialize(self) -> None:
        """(Re)load skills and agents from disk."""
        self._skills = load_skills(self.pai_dir / "skills")
        self._agents = load_agents(self.pai_dir / "agents")
        logger.info(
            f"PAI core initialized: {len(self._skills)} skills, {len(self._agents)} agents"
        )

    def get_skills(self) -> list[SkillInfo]:
        return list(self._skills.values())

    def get_agents(self) -> list[AgentInfo]:
        return list(self._agents.values())

    def get_skill(self, name: str) -> Optional[SkillInfo]:
        return self._skills.get(name)

    def get_agent(self, name: str) -> Optional[AgentInfo]:
        return self._agents.get(name)

    def match_skills(self, message: str) -> list[str]:
        """Names of active skills with a trigger word present in ``message``."""
        lowered = message.lower()
        matched = []
        for skill in self._skills.values():
            if not skill.active:
                continue
            for trigger in skill.triggers:
                if re.search(rf"\b{re.escape(trigger.lower())}\b", lowered):
                    matched.append(skill.name)
                    break
        return matched

    async def chat(self, request: ChatRequest) -> ChatResponse:
        """Answer one chat message with the requested agent.

        Raises:
            RegistryError: If the agent does not exist.
            LLMConfigurationError: If no chat client is configured.
            LLMAPIError: If the LLM call fails.
        """
        agent_name = request.agent_type or DEFAULT_AGENT_NAME
        agent = self._agents.get(agent_name)
        if agent is None:
            raise RegistryError(f'Agent "{agent_name}" not found')

        if self.llm is None:
            raise LLMConfigurationError("No LLM client configured (set ANTHROPIC_API_KEY)")

        skills = self.match_skills(request.message)
        system = agent.description or None
        if skills:
            system = f"{system or ''}\nActive skills: {', '.join(skills)}".strip()

        reply = await self.llm.generate(
            request.message,
            system=system,
            model=_MODEL_ALIASES.get(agent.model, agent.model),
        )

        return ChatResponse(
            session_id=request.session_id or _generate_session_id(),
            message=reply,
            agent_used=agent_name,
            skills_activated=skills,
        )
