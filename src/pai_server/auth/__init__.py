"""
Device authentication for the PAI server.

Each client device registers once and then presents its bearer token on
every request. Tokens map to device records persisted as JSON.

Public API:
- DeviceAuthManager: register, verify, revoke, load/save devices
- Device: registered device record
- extract_bearer_token(): parse an Authorization header
"""

from .devices import (
    Device,
    DeviceAuthManager,
    DeviceRegistration,
    extract_bearer_token,
)

__all__ = [
    "Device",
    "DeviceAuthManager",
    "DeviceRegistration",
    "extract_bearer_token",
]
