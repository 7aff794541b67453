"""
Assistant core for the PAI server: skills, agents and chat.
"""

from .llm_client import AnthropicChatClient
from .models import AgentInfo, ChatRequest, ChatResponse, SkillInfo
from .pai_core import PAICore
from .registry import load_agents, load_skills, parse_front_matter

__all__ = [
    "PAICore",
    "AnthropicChatClient",
    "AgentInfo",
    "SkillInfo",
    "ChatRequest",
    "ChatResponse",
    "load_agents",
    "load_skills",
    "parse_front_matter",
]
