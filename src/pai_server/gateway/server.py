"""
HTTP/WebSocket gateway for the PAI server.

A Starlette application served by Uvicorn. Client devices authenticate
with the bearer token issued at registration; only the health check and
registration itself are public.

Routes:
- GET    /health                    - Health check (public)
- POST   /api/devices/register      - Register a device (public)
- GET    /api/devices               - List trusted devices
- DELETE /api/devices/{fingerprint} - Revoke a device
- POST   /api/chat                  - Send a chat message
- GET    /api/skills                - List skills
- GET    /api/agents                - List agents
- GET    /api/voices                - List voices of the active provider
- POST   /api/voice/test            - Speak a test phrase
- GET    /api/voice/providers       - List voice providers
- POST   /api/voice/provider        - Switch voice provider
- WS     /ws/chat?token=xxx         - Real-time chat
"""

from __future__ import annotations

import asyncio
import contextlib
import functools
import logging
from datetime import datetime
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

import uvicorn
from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route, WebSocketRoute
from starlette.websockets import WebSocket, WebSocketDisconnect

from pai_server.auth import DeviceAuthManager, extract_bearer_token
from pai_server.config import Settings
from pai_server.core import AnthropicChatClient, ChatRequest, ChatResponse, PAICore
from pai_server.errors import (
    AuthError,
    EmptyTextError,
    LLMAPIError,
    LLMConfigurationError,
    NoVoiceProviderError,
    RegistryError,
    UnknownProviderError,
    VoiceError,
)
from pai_server.voice import VoiceManager, VoiceOptions

logger = logging.getLogger("pai-server.gateway")

Handler = Callable[[Any, Request], Awaitable[Response]]


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def requires_device(handler: Handler) -> Handler:
    """Reject requests without a valid device token (401 missing, 403 invalid)."""

    @functools.wraps(handler)
    async def wrapper(self: PAIServer, request: Request) -> Response:
        header = request.headers.get("Authorization")
        if not header:
            return _error("Missing authorization header", 401)

        token = extract_bearer_token(header)
        if not token:
            return _error("Invalid authorization header", 401)

        device = self.device_auth.verify_device(token)
        if device is None:
            return _error("Invalid or revoked device token", 403)

        request.state.device = device
        return await handler(self, request)

    return wrapper


async def _json_body(request: Request) -> Optional[dict]:
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _chat_error_status(exc: Exception) -> int:
    if isinstance(exc, RegistryError):
        return 404
    if isinstance(exc, LLMConfigurationError):
        return 503
    if isinstance(exc, LLMAPIError):
        return 502
    return 500


class PAIServer:
    """
    PAI gateway: wires the assistant core, voice manager and device auth
    into a Starlette app.

    Attributes:
        core: Skills/agents/chat
        voice: Voice provider manager
        device_auth: Device registry and token verification
        app: The Starlette application
    """

    def __init__(
        self,
        core: PAICore,
        voice: VoiceManager,
        device_auth: DeviceAuthManager,
    ) -> None:
        self.core = core
        self.voice = voice
        self.device_auth = device_auth
        self.start_time = datetime.now()
        self._speech_tasks: set[asyncio.Task] = set()
        self.app = self._build_app()

    def _build_app(self) -> Starlette:
        routes = [
            Route("/health", self.get_health, methods=["GET"]),
            Route("/api/devices/register", self.post_register_device, methods=["POST"]),
            Route("/api/devices", self.get_devices, methods=["GET"]),
            Route("/api/devices/{fingerprint}", self.delete_device, methods=["DELETE"]),
            Route("/api/chat", self.post_chat, methods=["POST"]),
            Route("/api/skills", self.get_skills, methods=["GET"]),
            Route("/api/agents", self.get_agents, methods=["GET"]),
            Route("/api/voices", self.get_voices, methods=["GET"]),
            Route("/api/voice/test", self.post_voice_test, methods=["POST"]),
            Route("/api/voice/providers", self.get_voice_providers, methods=["GET"]),
            Route("/api/voice/provider", self.post_voice_provider, methods=["POST"]),
            WebSocketRoute("/ws/chat", self.websocket_chat),
        ]
        middleware = [
            Middleware(
                CORSMiddleware,
                allow_origins=["*"],
                allow_methods=["*"],
                allow_headers=["*"],
            ),
        ]
        return Starlette(
            debug=False,
            routes=routes,
            middleware=middleware,
            lifespan=self._lifespan,
        )

    @contextlib.asynccontextmanager
    async def _lifespan(self, app: Starlette) -> AsyncIterator[None]:
        self.core.initialize()
        await self.voice.initialize()
        self.device_auth.load_devices()
        logger.info(
            f"PAI server ready: voice={self.voice.get_active_provider_name() or 'None'}, "
            f"devices={len(self.device_auth.get_trusted_devices())} trusted"
        )
        try:
            yield
        finally:
            self.device_auth.save_devices()
            logger.info("PAI server stopped")

    # ------------------------------------------------------------------
    # Voice side effects
    # ------------------------------------------------------------------

    def speak_in_background(self, text: str, agent_type: Optional[str]) -> Optional[asyncio.Task]:
        """Speak a chat reply without blocking the response.

        Uses the agent's voice when it defines one. Failures are logged.
        """
        if not self.voice.is_available():
            return None

        agent = self.core.get_agent(agent_type or "kai")
        options = VoiceOptions(voice=agent.voice_id) if agent and agent.voice_id else None

        task = asyncio.create_task(self.voice.speak(text, options))
        self._speech_tasks.add(task)
        task.add_done_callback(self._on_speech_done)
        return task

    def _on_speech_done(self, task: asyncio.Task) -> None:
        self._speech_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Voice synthesis failed: {exc}")

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def get_health(self, request: Request) -> Response:
        return JSONResponse({
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
            "uptime_seconds": (datetime.now() - self.start_time).total_seconds(),
            "voice": {
                "available": self.voice.is_available(),
                "provider": self.voice.get_active_provider_name(),
            },
            "pai": {
                "skills": len(self.core.get_skills()),
                "agents": len(self.core.get_agents()),
            },
        })

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------

    async def post_register_device(self, request: Request) -> Response:
        body = await _json_body(request)
        if body is None:
            return _error("Invalid request body", 400)

        try:
            device, token = self.device_auth.register_device(
                name=body.get("name", ""),
                type=body.get("type", ""),
                platform=body.get("platform", ""),
            )
        except AuthError as e:
            return _error(str(e), 400)

        self.device_auth.save_devices()
        return JSONResponse({
            "device": device.model_dump(mode="json"),
            "token": token,
            "message": "Device registered successfully",
        })

    @requires_device
    async def get_devices(self, request: Request) -> Response:
        devices = self.device_auth.get_trusted_devices()
        return JSONResponse({"devices": [d.model_dump(mode="json") for d in devices]})

    @requires_device
    async def delete_device(self, request: Request) -> Response:
        fingerprint = request.path_params["fingerprint"]
        if not self.device_auth.revoke_device(fingerprint):
            return _error("Device not found", 404)

        self.device_auth.save_devices()
        return JSONResponse({"message": "Device revoked successfully"})

    # ------------------------------------------------------------------
    # Chat, skills, agents
    # ------------------------------------------------------------------

    @requires_device
    async def post_chat(self, request: Request) -> Response:
        body = await _json_body(request)
        if body is None:
            return _error("Invalid request body", 400)

        try:
            chat_request = ChatRequest.model_validate(body)
        except ValidationError as e:
            return _error(f"Invalid chat request: {e.errors()[0]['msg']}", 400)

        try:
            response = await self.core.chat(chat_request)
        except Exception as e:
            logger.error(f"Chat failed: {e}")
            return _error(str(e), _chat_error_status(e))

        if chat_request.voice_enabled:
            self.speak_in_background(response.message, chat_request.agent_type)

        return JSONResponse(response.model_dump(mode="json", by_alias=True))

    @requires_device
    async def get_skills(self, request: Request) -> Response:
        return JSONResponse({
            "skills": [s.model_dump(mode="json", by_alias=True) for s in self.core.get_skills()],
        })

    @requires_device
    async def get_agents(self, request: Request) -> Response:
        return JSONResponse({
            "agents": [a.model_dump(mode="json", by_alias=True) for a in self.core.get_agents()],
        })

    # ------------------------------------------------------------------
    # Voice
    # ------------------------------------------------------------------

    @requires_device
    async def get_voices(self, request: Request) -> Response:
        voices = await self.voice.get_voices()
        return JSONResponse({
            "provider": self.voice.get_active_provider_name(),
            "voices": [v.to_dict() for v in voices],
        })

    @requires_device
    async def post_voice_test(self, request: Request) -> Response:
        body = await _json_body(request)
        if body is None or not isinstance(body.get("text"), str):
            return _error("Field 'text' is required", 400)

        voice_id = body.get("voice")
        if voice_id is not None and not isinstance(voice_id, str):
            return _error("Field 'voice' must be a string", 400)
        options = VoiceOptions(voice=voice_id) if voice_id else None
        try:
            await self.voice.speak(body["text"], options)
        except NoVoiceProviderError as e:
            return _error(str(e), 503)
        except EmptyTextError as e:
            return _error(str(e), 400)
        except VoiceError as e:
            logger.error(f"Voice test failed: {e}")
            return _error(str(e), 500)

        return JSONResponse({"message": "Voice test successful"})

    @requires_device
    async def get_voice_providers(self, request: Request) -> Response:
        return JSONResponse({
            "active": self.voice.get_active_provider_name(),
            "available": [
                {"name": p.name, "available": p.available}
                for p in self.voice.get_providers()
            ],
        })

    @requires_device
    async def post_voice_provider(self, request: Request) -> Response:
        body = await _json_body(request)
        name = body.get("provider") if body else None
        if not isinstance(name, str) or not name:
            return _error("Field 'provider' is required", 400)

        if not self.voice.initialized:
            await self.voice.initialize()
        try:
            self.voice.set_provider(name)
        except UnknownProviderError as e:
            return _error(str(e), 400)

        return JSONResponse({"message": f"Switched to {self.voice.get_active_provider_name()}"})

    # ------------------------------------------------------------------
    # WebSocket
    # ------------------------------------------------------------------

    async def websocket_chat(self, websocket: WebSocket) -> None:
        """
        Real-time chat over WebSocket.

        Each incoming JSON message is a chat request; each reply is a chat
        response or ``{"error": ...}``. The connection stays open after
        errors.
        """
        token = websocket.query_params.get("token") or extract_bearer_token(
            websocket.headers.get("Authorization")
        )
        if not token:
            await websocket.close(code=1008, reason="Missing token")
            return

        device = self.device_auth.verify_device(token)
        if device is None:
            await websocket.close(code=1008, reason="Invalid token")
            return

        await websocket.accept()
        logger.info(f"WebSocket connected: {device.name}")

        try:
            while True:
                try:
                    data = await websocket.receive_json()
                except ValueError:
                    await websocket.send_json({"error": "Invalid JSON"})
                    continue

                reply = await self._handle_ws_message(data)
                await websocket.send_json(reply)
        except WebSocketDisconnect:
            logger.info(f"WebSocket disconnected: {device.name}")

    async def _handle_ws_message(self, data: Any) -> dict:
        try:
            chat_request = ChatRequest.model_validate(data)
        except ValidationError as e:
            return {"error": f"Invalid chat request: {e.errors()[0]['msg']}"}

        try:
            response: ChatResponse = await self.core.chat(chat_request)
        except Exception as e:
            logger.error(f"WebSocket chat failed: {e}")
            return {"error": str(e)}

        if chat_request.voice_enabled:
            self.speak_in_background(response.message, chat_request.agent_type)
        return response.model_dump(mode="json", by_alias=True)


def build_server(settings: Settings) -> PAIServer:
    """Wire a PAIServer from settings."""
    llm = None
    if settings.anthropic_api_key:
        llm = AnthropicChatClient(
            settings.anthropic_api_key,
            model=settings.llm_model,
            max_tokens=settings.llm_max_tokens,
        )
    else:
        logger.warning("ANTHROPIC_API_KEY not set; chat endpoints will return 503")

    return PAIServer(
        core=PAICore(settings.pai_dir, llm=llm),
        voice=VoiceManager(
            settings.elevenlabs_api_key,
            detect_timeout=settings.voice_detect_timeout,
            speak_timeout=settings.voice_speak_timeout,
            parallel_detection=settings.voice_parallel_detection,
        ),
        device_auth=DeviceAuthManager(settings.devices_path),
    )


def run_server(settings: Settings) -> None:
    """Serve the gateway with Uvicorn until interrupted."""
    server = build_server(settings)
    host_label = "localhost" if settings.host == "0.0.0.0" else settings.host
    logger.info(f"HTTP API:  http://{host_label}:{settings.port}")
    logger.info(f"WebSocket: ws://{host_label}:{settings.port}/ws/chat")
    uvicorn.run(
        server.app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )


__all__ = [
    "PAIServer",
    "build_server",
    "run_server",
    "requires_device",
]
