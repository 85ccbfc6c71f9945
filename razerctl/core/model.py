"""Core data models used across loader, codec, probe engine, session, and CLI."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


class Role(enum.Enum):
    PRIMARY_COMMAND = "primary-command"
    INPUT_REPORT = "input-report"
    FEATURE_CAPABLE = "feature-capable"


class ReportType(enum.Enum):
    OUTPUT = "output"
    FEATURE = "feature"
    PROPERTY = "property"


class Field(enum.Enum):
    DPI = "dpi"
    POLLING_RATE = "polling_rate"


class PendingState(enum.Enum):
    ARMED = "armed"
    CONFIRMED = "confirmed"
    EXPIRED = "expired"


class ConnectionMode(enum.Enum):
    UNKNOWN = "unknown"
    WIRED = "wired"
    WIRELESS_2_4GHZ = "wireless-2.4ghz"
    BLUETOOTH = "bluetooth"


@dataclass(frozen=True)
class PollingRate:
    rate: int
    code: int


@dataclass(frozen=True)
class DeviceProfile:
    id: str
    name: str
    vendor_id: int
    product_id: int
    vendor_usage_page: int
    vendor_usage: int
    dpi_values: tuple[int, ...]
    default_dpi: int
    polling_rates: tuple[PollingRate, ...]
    default_polling_rate: int
    wired_product_ids: tuple[int, ...] = ()
    dpi_report_id: int = 5
    confirm_timeout_s: float = 2.0
    property_keys: tuple[str, ...] = ()

    @property
    def rate_values(self) -> tuple[int, ...]:
        return tuple(p.rate for p in self.polling_rates)

    def polling_code(self, rate: int) -> int | None:
        for polling in self.polling_rates:
            if polling.rate == rate:
                return polling.code
        return None

    def legal_values(self, which: Field) -> tuple[int, ...]:
        if which is Field.DPI:
            return self.dpi_values
        return self.rate_values


@dataclass(frozen=True)
class HidInterface:
    index: int
    path: bytes
    usage_page: int = 0
    usage: int = 0
    max_input_report_size: int = 0
    max_output_report_size: int = 0
    max_feature_report_size: int = 0
    interface_number: int = -1

    def max_size(self, report_type: ReportType) -> int:
        if report_type is ReportType.OUTPUT:
            return self.max_output_report_size
        if report_type is ReportType.FEATURE:
            return self.max_feature_report_size
        return 0

    def describe(self) -> str:
        return (
            f"#{self.index} 0x{self.usage_page:02x}/0x{self.usage:02x} "
            f"(in={self.max_input_report_size}, out={self.max_output_report_size}, "
            f"feat={self.max_feature_report_size})"
        )


@dataclass(frozen=True)
class ClassifiedInterface:
    interface: HidInterface
    roles: frozenset[Role]

    def has(self, role: Role) -> bool:
        return role in self.roles


@dataclass(frozen=True)
class Device:
    vendor_id: int
    product_id: int
    display_name: str
    interfaces: tuple[HidInterface, ...]


@dataclass(frozen=True)
class RawReport:
    report_id: int
    payload: bytes


@dataclass(frozen=True)
class DpiChanged:
    value: int


@dataclass(frozen=True)
class UnknownReport:
    report_id: int
    payload: bytes


DecodedEvent = DpiChanged | UnknownReport


@dataclass(frozen=True)
class SetDpi:
    value: int


@dataclass(frozen=True)
class SetPollingRate:
    rate: int
    code: int


OutboundCommand = SetDpi | SetPollingRate


@dataclass(frozen=True)
class CandidateFrame:
    strategy: str
    interface: HidInterface
    report_type: ReportType
    data: bytes
    report_id: int = 0
    delay_s: float = 0.0
    property_key: str | None = None
    property_value: int | None = None
    description: str = ""


@dataclass
class PendingChange:
    field: Field
    target_value: int
    requested_at: float
    deadline: float
    state: PendingState = PendingState.ARMED

    @property
    def armed(self) -> bool:
        return self.state is PendingState.ARMED


@dataclass(frozen=True)
class ProbeReport:
    attempted: int
    written: int
    failures: tuple[CandidateFrame, ...] = ()


@dataclass(frozen=True)
class SessionState:
    connected: bool
    dpi: int
    polling_rate: int
    battery_level: int | None
    connection_mode: ConnectionMode
    pending: tuple[PendingChange, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class StateChanged:
    state: SessionState


@dataclass(frozen=True)
class ChangeResolved:
    change: PendingChange


SessionNotification = StateChanged | ChangeResolved


@dataclass(frozen=True)
class DeviceArrived:
    device: Device


@dataclass(frozen=True)
class DeviceRemoved:
    vendor_id: int
    product_id: int


ConnectionEvent = DeviceArrived | DeviceRemoved
