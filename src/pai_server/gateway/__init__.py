"""
HTTP/WebSocket gateway for the PAI server.

Public API:
- PAIServer: Starlette app wiring core, voice and device auth
- build_server(): construct a PAIServer from Settings
- run_server(): serve it with Uvicorn
"""

from .server import PAIServer, build_server, run_server

__all__ = [
    "PAIServer",
    "build_server",
    "run_server",
]
