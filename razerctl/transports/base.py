"""Transport interfaces."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from razerctl.core.model import ConnectionEvent, HidInterface, RawReport, ReportType

InputHandler = Callable[[RawReport], None]
ConnectionHandler = Callable[[ConnectionEvent], None]


class HidTransport(Protocol):
    def enumerate_interfaces(self, vendor_id: int, product_id: int) -> list[HidInterface]:
        """Return every HID interface exposed by the matching device."""

    def register_input_callback(self, interface: HidInterface, handler: InputHandler) -> None:
        """Deliver input reports from the interface to handler on a transport-owned thread."""

    def write_report(
        self,
        interface: HidInterface,
        report_type: ReportType,
        report_id: int,
        data: bytes,
    ) -> bool:
        """Write an output or feature report, returning whether the device accepted it."""

    def read_property(self, interface: HidInterface, key: str) -> object | None:
        """Read a named device property, or None when it is unavailable."""

    def write_property(self, interface: HidInterface, key: str, value: int) -> bool:
        """Set a named device property, returning whether it was accepted."""

    def subscribe_connections(self, handler: ConnectionHandler) -> None:
        """Notify handler of device arrival and removal."""

    def close(self) -> None:
        """Stop input delivery and release open interfaces."""
