"""Device session: the single owner of connection and observed device state."""

from __future__ import annotations

import dataclasses
import logging
import queue
import time
from collections.abc import Callable, Sequence

from razerctl.core import codec
from razerctl.core.classifier import classify_device, input_interfaces, primary_interface
from razerctl.core.errors import DeviceUnavailableError, InvalidArgumentError
from razerctl.core.model import (
    CandidateFrame,
    ChangeResolved,
    ClassifiedInterface,
    ConnectionEvent,
    ConnectionMode,
    DecodedEvent,
    Device,
    DeviceArrived,
    DeviceRemoved,
    DeviceProfile,
    Field,
    PendingChange,
    ProbeReport,
    RawReport,
    SessionNotification,
    SessionState,
    SetDpi,
    SetPollingRate,
    StateChanged,
)
from razerctl.core.probe import ProbeEngine
from razerctl.core.strategies import FeatureReportStrategy, FrameStrategy, default_strategies
from razerctl.core.tracker import PendingChangeTracker
from razerctl.transports.base import HidTransport

LOGGER = logging.getLogger(__name__)

TRANSPORT_PROPERTY = "Transport"
BATTERY_PROPERTY = "BatteryPercent"

Listener = Callable[[SessionNotification], None]


class DeviceSession:
    """Wires classification, probing, and confirmation tracking for one device.

    Transport threads only decode reports and put them on the session's
    channel; every state mutation happens in methods invoked by the owner,
    with `pump()` draining the channel.
    """

    def __init__(
        self,
        transport: HidTransport,
        profile: DeviceProfile,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        strategies: Sequence[FrameStrategy] | None = None,
    ) -> None:
        self.transport = transport
        self.profile = profile
        self._clock = clock
        self._sleep = sleep
        self.engine = ProbeEngine(
            transport,
            strategies if strategies is not None else default_strategies(profile.property_keys),
            sleep=sleep,
        )
        self.tracker = PendingChangeTracker(
            clock,
            timeout_s=profile.confirm_timeout_s,
            observed={Field.DPI: profile.default_dpi, Field.POLLING_RATE: profile.default_polling_rate},
        )
        self._events: queue.Queue[tuple[int, DecodedEvent] | ConnectionEvent] = queue.Queue()
        self._listeners: list[Listener] = []
        self._generation = 0
        self.device: Device | None = None
        self.interfaces: tuple[ClassifiedInterface, ...] = ()
        self.connection_mode = ConnectionMode.UNKNOWN
        self.battery_level: int | None = None

    @property
    def connected(self) -> bool:
        return self.device is not None

    @property
    def available_dpi(self) -> tuple[int, ...]:
        return self.profile.dpi_values

    @property
    def available_polling_rates(self) -> tuple[int, ...]:
        return self.profile.rate_values

    @property
    def state(self) -> SessionState:
        return SessionState(
            connected=self.connected,
            dpi=self.tracker.observed(Field.DPI) or self.profile.default_dpi,
            polling_rate=self.tracker.observed(Field.POLLING_RATE) or self.profile.default_polling_rate,
            battery_level=self.battery_level,
            connection_mode=self.connection_mode,
            pending=tuple(dataclasses.replace(c) for c in self.tracker.all_pending()),
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def connect(self, device: Device) -> tuple[ClassifiedInterface, ...]:
        if self.connected:
            self.disconnect()
        self._generation += 1
        self.device = device
        self.interfaces = classify_device(device, self.profile)
        for item in self.interfaces:
            LOGGER.debug("%s roles=%s", item.interface.describe(), sorted(r.value for r in item.roles))
        self.connection_mode = self._detect_connection_mode(device)
        self.battery_level = self._read_battery_level()
        self.tracker.set_observed(Field.DPI, self.profile.default_dpi)
        self.tracker.set_observed(Field.POLLING_RATE, self.profile.default_polling_rate)

        generation = self._generation
        for interface in input_interfaces(self.interfaces):
            LOGGER.info("Monitoring input reports on %s", interface.describe())
            self.transport.register_input_callback(
                interface,
                lambda report, generation=generation: self._on_input_report(generation, report),
            )
        LOGGER.info("Connected to %s (%s)", device.display_name, self.connection_mode.value)
        self._publish_state()
        return self.interfaces

    def disconnect(self) -> None:
        if not self.connected:
            return
        self._generation += 1
        cancelled = self.tracker.cancel_all()
        self.device = None
        self.interfaces = ()
        self.connection_mode = ConnectionMode.UNKNOWN
        self.battery_level = None
        LOGGER.info("Device disconnected")
        for change in cancelled:
            self._notify(ChangeResolved(change=change))
        self._publish_state()

    def set_dpi(self, value: int) -> PendingChange:
        self._validate_dpi(value)
        self._require_connected()
        report = self.engine.probe(SetDpi(value=value), self.interfaces)
        LOGGER.info(
            "DPI %d probe sent %d/%d frames; awaiting hardware confirmation",
            value,
            report.written,
            report.attempted,
        )
        return self._arm(Field.DPI, value)

    def set_polling_rate(self, rate: int) -> PendingChange:
        code = self.profile.polling_code(rate)
        if code is None:
            raise InvalidArgumentError(
                f"Polling rate {rate} is not supported. Allowed: {', '.join(map(str, self.profile.rate_values))}"
            )
        self._require_connected()
        primary = primary_interface(self.interfaces)
        frames = (
            FeatureReportStrategy().frames(SetPollingRate(rate=rate, code=code), primary)
            if primary is not None
            else []
        )
        if not frames:
            raise DeviceUnavailableError("No feature-capable mouse interface found for polling rate")
        self._send_single(frames[0])
        return self._arm(Field.POLLING_RATE, rate)

    def reset_to_default(self) -> tuple[PendingChange, PendingChange]:
        return (
            self.set_dpi(self.profile.default_dpi),
            self.set_polling_rate(self.profile.default_polling_rate),
        )

    def handshake(self, value: int) -> ProbeReport:
        self._validate_dpi(value)
        self._require_connected()
        return self.engine.handshake(value, self.interfaces)

    def sweep(self, value: int) -> ProbeReport:
        self._validate_dpi(value)
        self._require_connected()
        return self.engine.sweep(value, self.interfaces)

    def pump(self) -> list[DecodedEvent]:
        """Drain queued input events, reconcile pending changes, and publish."""
        drained: list[DecodedEvent] = []
        resolved: list[PendingChange] = []
        before = self.state
        while True:
            try:
                item = self._events.get_nowait()
            except queue.Empty:
                break
            if isinstance(item, (DeviceArrived, DeviceRemoved)):
                self._apply_connection_event(item)
                continue
            generation, event = item
            if generation != self._generation:
                continue
            drained.append(event)
            confirmed = self.tracker.observe(event)
            if confirmed is not None:
                resolved.append(confirmed)
        resolved.extend(self.tracker.expire_due())

        for change in resolved:
            self._notify(ChangeResolved(change=change))
        if resolved or self.state != before:
            self._publish_state()
        return drained

    def wait_for(self, change: PendingChange, *, poll_interval_s: float = 0.05) -> PendingChange:
        """Pump until the change leaves the Armed state."""
        while change.armed and self.tracker.pending(change.field) is change:
            self.pump()
            if change.armed:
                self._sleep(poll_interval_s)
        return change

    def watch_connections(self) -> None:
        """Queue transport arrival/removal notifications for the next `pump()`."""
        self.transport.subscribe_connections(self._events.put)

    def _apply_connection_event(self, event: ConnectionEvent) -> None:
        if isinstance(event, DeviceRemoved):
            device = self.device
            if device is not None and (device.vendor_id, device.product_id) == (
                event.vendor_id,
                event.product_id,
            ):
                self.disconnect()
        elif self.connected:
            return
        elif event.device.vendor_id == self.profile.vendor_id and (
            event.device.product_id == self.profile.product_id
            or event.device.product_id in self.profile.wired_product_ids
        ):
            self.connect(event.device)

    def _arm(self, field: Field, value: int) -> PendingChange:
        change = self.tracker.arm(field, value, self.profile.legal_values(field))
        self._publish_state()
        return change

    def _send_single(self, frame: CandidateFrame) -> None:
        LOGGER.debug("Polling-rate feature report: %s", codec.hexdump(frame.data))
        if not self.engine.send(frame):
            LOGGER.warning("Polling-rate command was not accepted by %s", frame.interface.describe())

    def _on_input_report(self, generation: int, report: RawReport) -> None:
        event = codec.decode(report, self.profile)
        LOGGER.debug("Input report %d: %s -> %s", report.report_id, codec.hexdump(report.payload), event)
        self._events.put((generation, event))

    def _detect_connection_mode(self, device: Device) -> ConnectionMode:
        primary = primary_interface(self.interfaces)
        if primary is not None:
            transport_name = self.transport.read_property(primary, TRANSPORT_PROPERTY)
            if isinstance(transport_name, str) and "bluetooth" in transport_name.lower():
                return ConnectionMode.BLUETOOTH
        if device.product_id in self.profile.wired_product_ids:
            return ConnectionMode.WIRED
        # Default until receiver and cable can be told apart.
        return ConnectionMode.WIRELESS_2_4GHZ

    def _read_battery_level(self) -> int | None:
        primary = primary_interface(self.interfaces)
        if primary is None or self.connection_mode is ConnectionMode.WIRED:
            return None
        value = self.transport.read_property(primary, BATTERY_PROPERTY)
        if isinstance(value, int) and 0 <= value <= 100:
            return value
        return None

    def _validate_dpi(self, value: int) -> None:
        if value not in self.profile.dpi_values:
            raise InvalidArgumentError(
                f"DPI {value} is not supported. Allowed: {', '.join(map(str, self.profile.dpi_values))}"
            )

    def _require_connected(self) -> None:
        if not self.connected or not self.interfaces:
            raise DeviceUnavailableError("No device connected")

    def _publish_state(self) -> None:
        self._notify(StateChanged(state=self.state))

    def _notify(self, notification: SessionNotification) -> None:
        for listener in list(self._listeners):
            listener(notification)
