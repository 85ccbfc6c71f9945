"""Stable public API for building tooling on top of razerctl.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

from razerctl.core.errors import (
    DeviceSelectionError,
    DeviceUnavailableError,
    InvalidArgumentError,
    ProfileLoadError,
    ProfileValidationError,
    RazerctlError,
    TransportError,
    TransportOpenError,
    WriteFailureError,
)
from razerctl.core.model import (
    ChangeResolved,
    ConnectionMode,
    Device,
    DeviceProfile,
    DpiChanged,
    Field,
    HidInterface,
    PendingChange,
    PendingState,
    Role,
    SessionState,
    StateChanged,
    UnknownReport,
)
from razerctl.core.service import RazerService
from razerctl.core.session import DeviceSession
from razerctl.transports.base import HidTransport

__all__ = [
    "RazerctlError",
    "DeviceSelectionError",
    "DeviceUnavailableError",
    "InvalidArgumentError",
    "ProfileLoadError",
    "ProfileValidationError",
    "TransportError",
    "TransportOpenError",
    "WriteFailureError",
    "ChangeResolved",
    "ConnectionMode",
    "Device",
    "DeviceProfile",
    "DpiChanged",
    "Field",
    "HidInterface",
    "PendingChange",
    "PendingState",
    "Role",
    "SessionState",
    "StateChanged",
    "UnknownReport",
    "DeviceSession",
    "HidTransport",
    "Client",
]


class Client:
    """Public client for interacting with razerctl core capabilities.

    A `Client` instance wraps profile loading, HID device discovery/matching,
    and session creation behind a stable API intended for third-party tools
    (menu-bar apps, TUIs, scripts).
    """

    def __init__(self, *, transport: HidTransport | None = None) -> None:
        self._service = RazerService(transport=transport)

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self._service.load_warnings

    def list_profiles(self) -> list[DeviceProfile]:
        return self._service.list_profiles()

    def list_devices(self) -> list[tuple[Device, DeviceProfile]]:
        return self._service.list_devices()

    def open_session(
        self,
        *,
        profile_id: str | None = None,
        device_hint: str | None = None,
    ) -> DeviceSession:
        """Connect to the resolved device and return its session.

        Callers own the session's execution context and must call
        `DeviceSession.pump()` from it to receive hardware confirmations.
        """
        return self._service.open_session(profile_id=profile_id, device_hint=device_hint)

    def close(self) -> None:
        self._service.close()
