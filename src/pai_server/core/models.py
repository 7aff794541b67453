"""
Data models for the assistant core.

Request/response bodies use the camelCase keys the client apps send;
Python code uses the snake_case field names.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class SkillInfo(BaseModel):
    """A skill loaded from ``skills/<name>/SKILL.md``."""

    model_config = {"populate_by_name": True}

    name: str
    description: str = ""
    triggers: list[str] = Field(default_factory=list)
    mcp_servers: list[str] = Field(default_factory=list, alias="mcpServers")
    active: bool = True


class AgentInfo(BaseModel):
    """An agent loaded from ``agents/<name>.md``."""

    model_config = {"populate_by_name": True}

    name: str
    description: str = ""
    model: str = "sonnet"
    voice_id: Optional[str] = Field(default=None, alias="voiceId")
    permissions: list[str] = Field(default_factory=list)


class ChatRequest(BaseModel):
    """Incoming chat message from a device."""

    model_config = {"populate_by_name": True}

    message: str = Field(min_length=1)
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    agent_type: Optional[str] = Field(default=None, alias="agentType")
    voice_enabled: bool = Field(default=False, alias="voiceEnabled")


class ChatResponse(BaseModel):
    """Reply returned to the device."""

    model_config = {"populate_by_name": True}

    session_id: str = Field(alias="sessionId")
    message: str
    agent_used: str = Field(alias="agentUsed")
    skills_activated: list[str] = Field(default_factory=list, alias="skillsActivated")
    timestamp: datetime = Field(default_factory=datetime.now)
