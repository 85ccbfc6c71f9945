from __future__ import annotations

import pytest

from razerctl.core.model import (
    Device,
    DeviceProfile,
    HidInterface,
    PollingRate,
    RawReport,
    ReportType,
)

DPI_VALUES = (400, 800, 1200, 1600, 1800, 2400, 3200, 4000, 5000, 6400, 8000, 8500, 10000, 12000, 14000, 16000, 20000)


class FakeClock:
    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    def __init__(self, clock: FakeClock | None = None) -> None:
        self.calls: list[float] = []
        self.clock = clock

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self.clock is not None:
            self.clock.advance(seconds)


class FakeTransport:
    def __init__(self, interfaces: list[HidInterface] | None = None) -> None:
        self.interfaces = interfaces or []
        self.writes: list[tuple[int, ReportType, int, bytes]] = []
        self.property_writes: list[tuple[int, str, int]] = []
        self.callbacks: dict[int, list] = {}
        self.connection_handlers: list = []
        self.properties: dict[str, object] = {}
        self.reject = False
        self.closed = False

    def enumerate_interfaces(self, vendor_id: int, product_id: int) -> list[HidInterface]:
        return list(self.interfaces)

    def register_input_callback(self, interface, handler) -> None:
        self.callbacks.setdefault(interface.index, []).append(handler)

    def write_report(self, interface, report_type, report_id, data) -> bool:
        self.writes.append((interface.index, report_type, report_id, bytes(data)))
        return not self.reject

    def read_property(self, interface, key):
        return self.properties.get(key)

    def write_property(self, interface, key, value) -> bool:
        self.property_writes.append((interface.index, key, value))
        return False

    def subscribe_connections(self, handler) -> None:
        self.connection_handlers.append(handler)

    def close(self) -> None:
        self.closed = True

    def emit(self, index: int, payload: bytes) -> None:
        for handler in self.callbacks.get(index, []):
            handler(RawReport(report_id=payload[0], payload=payload))

    @property
    def io_count(self) -> int:
        return len(self.writes) + len(self.property_writes)


def dpi_report(value: int) -> bytes:
    return bytes([0x05, 0x00, value >> 8, value & 0xFF, 0x00, 0x00])


def make_interfaces() -> list[HidInterface]:
    return [
        HidInterface(index=0, path=b"mouse", usage_page=0x01, usage=0x02,
                     max_input_report_size=8, max_output_report_size=0, max_feature_report_size=90),
        HidInterface(index=1, path=b"vendor", usage_page=0x59, usage=0x01,
                     max_input_report_size=16, max_output_report_size=1, max_feature_report_size=0),
        HidInterface(index=2, path=b"keyboard", usage_page=0x01, usage=0x06,
                     max_input_report_size=8, max_output_report_size=2, max_feature_report_size=0),
    ]


@pytest.fixture
def profile() -> DeviceProfile:
    return DeviceProfile(
        id="deathadder_v2x_hyperspeed",
        name="Razer DeathAdder V2 X HyperSpeed",
        vendor_id=0x1532,
        product_id=0x009C,
        vendor_usage_page=0x59,
        vendor_usage=0x01,
        dpi_values=DPI_VALUES,
        default_dpi=1800,
        polling_rates=(PollingRate(125, 0x08), PollingRate(500, 0x02), PollingRate(1000, 0x01)),
        default_polling_rate=1000,
        property_keys=("DPI", "Resolution"),
    )


@pytest.fixture
def interfaces() -> list[HidInterface]:
    return make_interfaces()


@pytest.fixture
def device(interfaces) -> Device:
    return Device(
        vendor_id=0x1532,
        product_id=0x009C,
        display_name="Razer DeathAdder V2 X HyperSpeed",
        interfaces=tuple(interfaces),
    )


@pytest.fixture
def transport(interfaces) -> FakeTransport:
    return FakeTransport(interfaces)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep(clock) -> RecordingSleep:
    return RecordingSleep(clock)
