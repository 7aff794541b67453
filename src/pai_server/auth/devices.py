"""
Device authentication for the PAI server.

Client devices (phone, tablet, desktop) register once and receive a
bearer token. The server keeps a flat token -> device map persisted as
JSON next to the PAI configuration.

Key components:
- Device: pydantic record for a registered device
- DeviceAuthManager: registration, verification, revocation, persistence
- extract_bearer_token: parse an ``Authorization`` header
"""

import hashlib
import json
import logging
import re
import secrets
from datetime import datetime
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from pai_server.errors import AuthError

logger = logging.getLogger("pai-server.auth")

DeviceType = Literal["mobile", "desktop", "tablet", "watch"]
DevicePlatform = Literal["ios", "android", "macos", "windows", "linux"]

_BEARER = re.compile(r"^Bearer\s+", re.IGNORECASE)


class Device(BaseModel):
    """A registered client device."""

    id: str = Field(description="Server-assigned device id (dev_<hex>)")
    name: str = Field(min_length=1, description="Human-readable device name")
    type: DeviceType = Field(description="Device form factor")
    platform: DevicePlatform = Field(description="Device operating system")
    fingerprint: str = Field(description="Stable key used for revocation")
    last_seen: datetime = Field(default_factory=datetime.now)
    trusted: bool = True


class DeviceRegistration(BaseModel):
    """Body of a device registration request."""

    name: str = Field(min_length=1)
    type: DeviceType
    platform: DevicePlatform


def extract_bearer_token(header: Optional[str]) -> str:
    """Strip the ``Bearer`` prefix from an Authorization header value."""
    if not header:
        return ""
    return _BEARER.sub("", header).strip()


class DeviceAuthManager:
    """
    Manages trusted devices and their bearer tokens.

    Attributes:
        path: JSON file used by load_devices()/save_devices(), or None
            for an in-memory store.
        _devices: Dict mapping fingerprint -> Device
        _tokens: Dict mapping token -> fingerprint
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path
        self._devices: dict[str, Device] = {}
        self._tokens: dict[str, str] = {}

    def register_device(
        self,
        name: str,
        type: DeviceType,
        platform: DevicePlatform,
    ) -> tuple[Device, str]:
        """
        Register a new trusted device and issue its token.

        Args:
            name: Device name shown in listings
            type: Device form factor
            platform: Device operating system

        Returns:
            The stored Device and its bearer token

        Raises:
            AuthError: If the registration data is invalid
        """
        try:
            registration = DeviceRegistration(name=name, type=type, platform=platform)
        except ValidationError as e:
            raise AuthError(f"Invalid device registration: {e}") from e

        now = datetime.now()
        fingerprint = hashlib.sha256(
            f"{registration.name}|{registration.type}|{registration.platform}|{now.timestamp()}".encode()
        ).hexdigest()

        device = Device(
            id=f"dev_{secrets.token_hex(16)}",
            name=registration.name,
            type=registration.type,
            platform=registration.platform,
            fingerprint=fingerprint,
            last_seen=now,
        )
        token = secrets.token_urlsafe(32)

        self._devices[fingerprint] = device
        self._tokens[token] = fingerprint

        logger.info(f"Registered device: {device.name} ({device.type}/{device.platform})")
        return device, token

    def verify_device(self, token: str) -> Optional[Device]:
        """
        Resolve a token to its trusted device, updating ``last_seen``.

        Args:
            token: Bearer token presented by a client

        Returns:
            The Device if the token is valid and the device trusted, None otherwise
        """
        fingerprint = self._tokens.get(token) if token else None
        device = self._devices.get(fingerprint) if fingerprint else None
        if device is None or not device.trusted:
            if token:
                logger.warning(f"Invalid device token presented: {token[:4]}...")
            return None

        device.last_seen = datetime.now()
        return device

    def revoke_device(self, fingerprint: str) -> bool:
        """
        Revoke a device's access.

        Args:
            fingerprint: Fingerprint of the device to revoke

        Returns:
            True if the device existed, False otherwise
        """
        device = self._devices.get(fingerprint)
        if device is None:
            return False

        device.trusted = False
        for token in [t for t, fp in self._tokens.items() if fp == fingerprint]:
            del self._tokens[token]

        logger.info(f"Revoked device: {device.name}")
        return True

    def get_trusted_devices(self) -> list[Device]:
        """List all devices that are still trusted."""
        return [d for d in self._devices.values() if d.trusted]

    def get_device(self, fingerprint: str) -> Optional[Device]:
        """Look up a device by fingerprint."""
        return self._devices.get(fingerprint)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load_devices(self) -> int:
        """
        Load devices and tokens from the JSON store.

        A missing file is an empty store. An unreadable or malformed file
        is logged and leaves the in-memory store untouched.

        Returns:
            Number of devices loaded
        """
        if self.path is None or not self.path.exists():
            logger.debug("No device store to load")
            return 0

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            devices = {
                fp: Device.model_validate(raw)
                for fp, raw in data.get("devices", {}).items()
            }
            tokens = {str(t): str(fp) for t, fp in data.get("tokens", {}).items()}
        except (OSError, ValueError, AttributeError) as e:
            logger.error(f"Failed to load device store {self.path}: {e}")
            return 0

        self._devices = devices
        self._tokens = {t: fp for t, fp in tokens.items() if fp in devices}
        logger.info(f"Loaded {len(devices)} devices from {self.path}")
        return len(devices)

    def save_devices(self) -> None:
        """Write devices and tokens to the JSON store."""
        if self.path is None:
            return

        data = {
            "devices": {
                fp: device.model_dump(mode="json")
                for fp, device in self._devices.items()
            },
            "tokens": dict(self._tokens),
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        logger.info(f"Saved {len(self._devices)} devices to {self.path}")


__all__ = [
    "Device",
    "DeviceRegistration",
    "DeviceAuthManager",
    "extract_bearer_token",
]
