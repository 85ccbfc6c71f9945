from __future__ import annotations

from types import SimpleNamespace

import pytest

from razerctl.core.model import DeviceArrived, DeviceRemoved, HidInterface, ReportType
from razerctl.transports import hidapi
from razerctl.transports.hidapi import HidapiTransport

VENDOR_DESCRIPTOR = bytes.fromhex("0659ff0901a101" "8505" "7508" "950f" "8102" "8506" "7508" "9501" "9102" "c0")


class FakeHandle:
    def __init__(self, registry: dict) -> None:
        self.registry = registry
        self.path = None
        self.sent: list[tuple[str, bytes]] = []
        self.closed = False
        self.dead = False

    def open_path(self, path):
        if path not in self.registry["descriptors"]:
            raise OSError("open failed")
        self.path = path
        self.registry["handles"].append(self)

    def get_report_descriptor(self, size):
        if self.dead:
            raise OSError("device disconnected")
        return list(self.registry["descriptors"][self.path])

    def send_feature_report(self, data):
        self.sent.append(("feature", bytes(data)))
        return len(data)

    def write(self, data):
        if self.registry.get("fail_writes"):
            raise OSError("write failed")
        self.sent.append(("output", bytes(data)))
        return len(data)

    def read(self, size, timeout_ms=0):
        return []

    def close(self):
        self.closed = True


@pytest.fixture
def fake_hid(monkeypatch: pytest.MonkeyPatch):
    registry = {
        "devices": [
            {
                "path": b"/dev/hidraw0",
                "vendor_id": 0x1532,
                "product_id": 0x009C,
                "usage_page": 0x01,
                "usage": 0x02,
                "interface_number": 0,
                "product_string": "Razer DeathAdder V2 X HyperSpeed",
                "bus_type": 1,
            },
            {
                "path": b"/dev/hidraw1",
                "vendor_id": 0x1532,
                "product_id": 0x009C,
                "usage_page": 0x59,
                "usage": 0x01,
                "interface_number": 1,
                "product_string": "Razer DeathAdder V2 X HyperSpeed",
                "bus_type": 1,
            },
        ],
        "descriptors": {b"/dev/hidraw0": b"", b"/dev/hidraw1": VENDOR_DESCRIPTOR},
        "handles": [],
    }
    module = SimpleNamespace(
        enumerate=lambda vid=0, pid=0: [dict(d) for d in registry["devices"]],
        device=lambda: FakeHandle(registry),
    )
    monkeypatch.setattr(hidapi, "hid", module)
    return registry


def test_enumerate_interfaces_reads_descriptor_sizes(fake_hid) -> None:
    interfaces = HidapiTransport().enumerate_interfaces(0x1532, 0x009C)
    assert [i.index for i in interfaces] == [0, 1]
    vendor = interfaces[1]
    assert (vendor.usage_page, vendor.usage) == (0x59, 0x01)
    assert vendor.max_input_report_size == 16
    assert vendor.max_output_report_size == 2
    assert interfaces[0].max_output_report_size == 0


def test_read_property_uses_enumeration_info(fake_hid) -> None:
    transport = HidapiTransport()
    interface = transport.enumerate_interfaces(0x1532, 0x009C)[0]
    assert transport.read_property(interface, "Product") == "Razer DeathAdder V2 X HyperSpeed"
    assert transport.read_property(interface, "Transport") == "USB"
    assert transport.read_property(interface, "BatteryPercent") is None


def test_write_report_prefixes_report_id(fake_hid) -> None:
    transport = HidapiTransport()
    interface = transport.enumerate_interfaces(0x1532, 0x009C)[1]
    assert transport.write_report(interface, ReportType.OUTPUT, 0x05, b"\x05")
    assert transport.write_report(interface, ReportType.FEATURE, 0, b"\x1f\x00")
    handle = fake_hid["handles"][-1]
    assert handle.sent == [("output", b"\x05"), ("feature", b"\x00\x1f\x00")]


def test_write_report_failure_returns_false(fake_hid) -> None:
    transport = HidapiTransport()
    fake_hid["fail_writes"] = True
    interface = transport.enumerate_interfaces(0x1532, 0x009C)[1]
    assert transport.write_report(interface, ReportType.OUTPUT, 0x05, b"\x05") is False

    missing = HidInterface(index=9, path=b"/dev/missing")
    assert transport.write_report(missing, ReportType.FEATURE, 0, b"\x00") is False


def test_property_writes_are_not_supported(fake_hid) -> None:
    transport = HidapiTransport()
    interface = transport.enumerate_interfaces(0x1532, 0x009C)[0]
    assert transport.write_property(interface, "DPI", 800) is False


def test_poll_connections_reports_arrival_and_removal(fake_hid) -> None:
    transport = HidapiTransport()
    events = []
    transport.subscribe_connections(events.append)

    transport.poll_connections(0x1532, 0x009C)
    transport.poll_connections(0x1532, 0x009C)
    fake_hid["devices"].clear()
    transport.poll_connections(0x1532, 0x009C)

    assert isinstance(events[0], DeviceArrived)
    assert len(events[0].device.interfaces) == 2
    assert events[1:] == [DeviceRemoved(vendor_id=0x1532, product_id=0x009C)]


def test_close_releases_handles(fake_hid) -> None:
    transport = HidapiTransport()
    transport.enumerate_interfaces(0x1532, 0x009C)
    transport.close()
    assert all(handle.closed for handle in fake_hid["handles"])


def test_stale_handle_is_reopened_for_descriptor(fake_hid) -> None:
    transport = HidapiTransport()
    transport.enumerate_interfaces(0x1532, 0x009C)
    stale = list(fake_hid["handles"])
    for handle in stale:
        handle.dead = True

    vendor = transport.enumerate_interfaces(0x1532, 0x009C)[1]
    assert vendor.max_input_report_size == 16
    assert vendor.max_output_report_size == 2
    assert all(handle.closed for handle in stale)


def test_replug_at_same_path_uses_fresh_handles(fake_hid) -> None:
    transport = HidapiTransport()
    events = []
    transport.subscribe_connections(events.append)
    transport.poll_connections(0x1532, 0x009C)
    first = list(fake_hid["handles"])

    devices = list(fake_hid["devices"])
    fake_hid["devices"].clear()
    for handle in first:
        handle.dead = True
    transport.poll_connections(0x1532, 0x009C)
    assert all(handle.closed for handle in first)

    fake_hid["devices"].extend(devices)
    transport.poll_connections(0x1532, 0x009C)
    arrived = events[-1]
    assert isinstance(arrived, DeviceArrived)
    assert arrived.device.interfaces[1].max_input_report_size == 16
    assert not any(handle.dead for handle in fake_hid["handles"][len(first):])
    assert transport.read_property(arrived.device.interfaces[0], "Product") == "Razer DeathAdder V2 X HyperSpeed"
