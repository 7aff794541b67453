#!/usr/bin/env python3
"""
Command-line entry point for the PAI server.

Usage:
    pai-server --port 3000
    pai-server --list-voices
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from pai_server.config import Settings
from pai_server.voice import VoiceManager, get_hardware_info

logger = logging.getLogger("pai-server")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pai-server",
        description="Personal AI gateway: chat, voice and device auth over REST/WebSocket",
    )
    parser.add_argument("--pai-dir", type=Path, help="PAI directory (default: $PAI_DIR or ~/.pai)")
    parser.add_argument("--host", help="Bind address (default: $PAI_SERVER_HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, help="Bind port (default: $PAI_SERVER_PORT or 3000)")
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: $LOG_LEVEL or info)",
    )
    parser.add_argument(
        "--list-voices",
        action="store_true",
        help="Detect voice providers, print them with their voices, and exit",
    )
    return parser


async def _list_voices(settings: Settings) -> int:
    manager = VoiceManager(
        settings.elevenlabs_api_key,
        detect_timeout=settings.voice_detect_timeout,
        parallel_detection=settings.voice_parallel_detection,
    )
    await manager.initialize()

    host = get_hardware_info()
    print(f"Host: {host['platform']} ({host['machine']})")
    for provider in manager.get_providers():
        marker = "*" if provider.name == manager.get_active_provider_name() else " "
        state = "available" if provider.available else "unavailable"
        print(f" {marker} {provider.name:<12} {state}")

    voices = await manager.get_voices()
    if not voices:
        print("No voices available")
        return 1 if not manager.is_available() else 0

    print(f"Voices ({manager.get_active_provider_name()}):")
    for voice in voices:
        quality = f" [{voice.quality.value}]" if voice.quality else ""
        print(f"   {voice.id:<24} {voice.name} ({voice.language}){quality}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    settings = Settings.from_env(args.pai_dir)
    overrides = {
        key: value
        for key, value in {
            "host": args.host,
            "port": args.port,
            "log_level": args.log_level,
        }.items()
        if value is not None
    }
    if overrides:
        try:
            settings = Settings.model_validate({**settings.model_dump(), **overrides})
        except ValidationError as e:
            parser.error(f"invalid option value: {e.errors()[0]['msg']}")

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )

    if args.list_voices:
        return asyncio.run(_list_voices(settings))

    from pai_server.gateway import run_server

    logger.info(f"Starting PAI server (PAI directory: {settings.pai_dir})")
    run_server(settings)
    return 0


if __name__ == "__main__":
    sys.exit(main())
