"""HID transport implementation using the hidapi bindings."""

from __future__ import annotations

import logging
import threading
from typing import Any

import hid

from razerctl.core.descriptor import report_sizes
from razerctl.core.errors import TransportOpenError
from razerctl.core.model import (
    Device,
    DeviceArrived,
    DeviceRemoved,
    HidInterface,
    RawReport,
    ReportType,
)
from razerctl.transports.base import ConnectionHandler, InputHandler

LOGGER = logging.getLogger(__name__)

READ_SIZE = 64
READ_TIMEOUT_MS = 100
DESCRIPTOR_MAX = 4096

_BUS_TYPES = {1: "USB", 2: "Bluetooth", 3: "I2C", 4: "SPI"}
_STRING_PROPERTIES = {
    "Product": "product_string",
    "Manufacturer": "manufacturer_string",
    "SerialNumber": "serial_number",
}


def _path_bytes(path: Any) -> bytes:
    return path if isinstance(path, bytes) else str(path).encode()


class HidapiTransport:
    def __init__(self) -> None:
        self._handles: dict[bytes, Any] = {}
        self._info: dict[bytes, dict[str, Any]] = {}
        self._readers: list[threading.Thread] = []
        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._connection_handlers: list[ConnectionHandler] = []
        self._present: dict[tuple[int, int], Device] = {}

    def enumerate_interfaces(self, vendor_id: int, product_id: int) -> list[HidInterface]:
        interfaces: list[HidInterface] = []
        seen: set[bytes] = set()
        for item in hid.enumerate(vendor_id, product_id):
            path = _path_bytes(item["path"])
            if path in seen:
                continue
            seen.add(path)
            self._info[path] = item
            sizes = self._descriptor_sizes(path)
            interfaces.append(
                HidInterface(
                    index=len(interfaces),
                    path=path,
                    usage_page=item.get("usage_page") or 0,
                    usage=item.get("usage") or 0,
                    max_input_report_size=sizes.input,
                    max_output_report_size=sizes.output,
                    max_feature_report_size=sizes.feature,
                    interface_number=item.get("interface_number", -1),
                )
            )
        return interfaces

    def enumerate_devices(self, vendor_id: int, product_id: int) -> list[Device]:
        """Group matching interfaces into one Device per vendor/product pair."""
        grouped: dict[tuple[int, int], str] = {}
        for item in hid.enumerate(vendor_id, product_id):
            key = (item["vendor_id"], item["product_id"])
            grouped.setdefault(key, item.get("product_string") or "<unknown-device>")
        return [
            Device(
                vendor_id=vid,
                product_id=pid,
                display_name=name,
                interfaces=tuple(self.enumerate_interfaces(vid, pid)),
            )
            for (vid, pid), name in sorted(grouped.items())
        ]

    def register_input_callback(self, interface: HidInterface, handler: InputHandler) -> None:
        handle = self._open(interface.path)
        thread = threading.Thread(
            target=self._read_loop,
            args=(interface, handle, handler),
            name=f"hid-reader-{interface.index}",
            daemon=True,
        )
        self._readers.append(thread)
        thread.start()

    def write_report(
        self,
        interface: HidInterface,
        report_type: ReportType,
        report_id: int,
        data: bytes,
    ) -> bool:
        if not data:
            return False
        payload = data if data[0] == report_id else bytes([report_id]) + data
        try:
            handle = self._open(interface.path)
            with self._lock:
                if report_type is ReportType.FEATURE:
                    written = handle.send_feature_report(payload)
                else:
                    written = handle.write(payload)
        except (OSError, ValueError, TransportOpenError) as exc:
            LOGGER.warning("HID %s write to %s failed: %s", report_type.value, interface.describe(), exc)
            return False
        return written is None or written >= 0

    def read_property(self, interface: HidInterface, key: str) -> object | None:
        info = self._info.get(interface.path)
        if info is None:
            return None
        if key == "Transport":
            return _BUS_TYPES.get(info.get("bus_type", 0))
        field_name = _STRING_PROPERTIES.get(key)
        return info.get(field_name) if field_name else None

    def write_property(self, interface: HidInterface, key: str, value: int) -> bool:
        LOGGER.debug("hidapi has no property channel; %s=%d not applied", key, value)
        return False

    def subscribe_connections(self, handler: ConnectionHandler) -> None:
        self._connection_handlers.append(handler)

    def poll_connections(self, vendor_id: int, product_id: int) -> None:
        """Diff the current enumeration against the last one and notify subscribers."""
        current = {(d.vendor_id, d.product_id): d for d in self.enumerate_devices(vendor_id, product_id)}
        for key in self._present.keys() - current.keys():
            for interface in self._present[key].interfaces:
                self._forget(interface.path)
            self._emit(DeviceRemoved(vendor_id=key[0], product_id=key[1]))
        for key in current.keys() - self._present.keys():
            self._emit(DeviceArrived(device=current[key]))
        self._present = current

    def close(self) -> None:
        self._stop.set()
        for thread in self._readers:
            thread.join(timeout=1.0)
        self._readers.clear()
        with self._lock:
            for handle in self._handles.values():
                handle.close()
            self._handles.clear()
        self._stop.clear()

    def _emit(self, event: DeviceArrived | DeviceRemoved) -> None:
        for handler in list(self._connection_handlers):
            handler(event)

    def _open(self, path: bytes) -> Any:
        with self._lock:
            handle = self._handles.get(path)
            if handle is not None:
                return handle
            handle = hid.device()
            try:
                handle.open_path(path)
            except (OSError, ValueError) as exc:
                raise TransportOpenError(f"Could not open HID path {path!r}: {exc}") from exc
            self._handles[path] = handle
            return handle

    def _forget(self, path: bytes) -> None:
        """Close and drop the cached handle and enumeration record of a removed path."""
        self._drop_handle(path)
        self._info.pop(path, None)

    def _drop_handle(self, path: bytes) -> None:
        with self._lock:
            handle = self._handles.pop(path, None)
        if handle is not None:
            try:
                handle.close()
            except (OSError, ValueError) as exc:
                LOGGER.debug("Closing stale handle for %r failed: %s", path, exc)

    def _descriptor_sizes(self, path: bytes):
        # A cached handle may belong to a device that was unplugged and replugged
        # at the same path; retry once on a fresh handle.
        attempts = 2 if path in self._handles else 1
        for _ in range(attempts):
            try:
                descriptor = bytes(self._open(path).get_report_descriptor(DESCRIPTOR_MAX))
            except (OSError, ValueError, AttributeError, TransportOpenError) as exc:
                LOGGER.debug("No report descriptor for %r: %s", path, exc)
                self._drop_handle(path)
                continue
            return report_sizes(descriptor)
        return report_sizes(b"")

    def _read_loop(self, interface: HidInterface, handle: Any, handler: InputHandler) -> None:
        while not self._stop.is_set():
            try:
                data = handle.read(READ_SIZE, timeout_ms=READ_TIMEOUT_MS)
            except (OSError, ValueError) as exc:
                LOGGER.warning("Input reader for %s stopped: %s", interface.describe(), exc)
                return
            if data:
                payload = bytes(data)
                handler(RawReport(report_id=payload[0], payload=payload))
