"""
PAI server: a personal-assistant gateway for home-network devices.

Fronts a hosted LLM, a multi-provider text-to-speech layer and a
lightweight device authentication scheme behind one REST/WebSocket API.
"""

__version__ = "0.1.0"
