"""Probe engine: sequences candidate frames across interfaces with pacing delays."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence

from razerctl.core import codec
from razerctl.core.classifier import best_probe_interface
from razerctl.core.errors import DeviceUnavailableError, TransportError
from razerctl.core.model import (
    CandidateFrame,
    ClassifiedInterface,
    HidInterface,
    OutboundCommand,
    ProbeReport,
    RawReport,
    ReportType,
)
from razerctl.core.strategies import FrameStrategy, default_strategies
from razerctl.transports.base import HidTransport

LOGGER = logging.getLogger(__name__)

INTER_INTERFACE_DELAY_S = 0.2
HANDSHAKE_STEP_DELAY_S = 0.1
SWEEP_FRAME_DELAY_S = 0.05
SWEEP_MARKERS = (0x05, 0x01, 0x02, 0x03)


class ProbeEngine:
    """Sends every applicable candidate frame to every classified interface.

    Delays block the calling thread; the device is not trusted with
    overlapping writes.
    """

    def __init__(
        self,
        transport: HidTransport,
        strategies: Sequence[FrameStrategy] | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        inter_interface_delay_s: float = INTER_INTERFACE_DELAY_S,
    ) -> None:
        self.transport = transport
        self.strategies = list(strategies) if strategies is not None else default_strategies()
        self._sleep = sleep
        self.inter_interface_delay_s = inter_interface_delay_s

    def candidate_frames(
        self,
        command: OutboundCommand,
        interface: HidInterface,
    ) -> list[CandidateFrame]:
        frames: list[CandidateFrame] = []
        for strategy in self.strategies:
            frames.extend(strategy.frames(command, interface))
        return frames

    def probe(
        self,
        command: OutboundCommand,
        interfaces: Sequence[ClassifiedInterface],
    ) -> ProbeReport:
        frames: list[CandidateFrame] = []
        for item in interfaces:
            candidates = self.candidate_frames(command, item.interface)
            if candidates:
                LOGGER.debug("Probing %s with %d frames", item.interface.describe(), len(candidates))
            frames.extend(candidates)
        return self._run(frames, pace_interfaces=True)

    def send(self, frame: CandidateFrame) -> bool:
        interface = frame.interface
        try:
            if frame.report_type is ReportType.PROPERTY:
                if frame.property_key is None or frame.property_value is None:
                    return False
                LOGGER.debug(
                    "[%s] %s set property %s=%d",
                    frame.strategy,
                    interface.describe(),
                    frame.property_key,
                    frame.property_value,
                )
                ok = self.transport.write_property(interface, frame.property_key, frame.property_value)
            else:
                LOGGER.debug(
                    "[%s] %s %s: %s",
                    frame.strategy,
                    interface.describe(),
                    frame.report_type.value,
                    codec.hexdump(frame.data),
                )
                ok = self.transport.write_report(interface, frame.report_type, frame.report_id, frame.data)
        except TransportError as exc:
            LOGGER.warning("Write failed on %s: %s", interface.describe(), exc)
            return False
        if not ok:
            LOGGER.warning(
                "Device rejected %s frame (%s) on %s",
                frame.strategy,
                frame.description or frame.report_type.value,
                interface.describe(),
            )
        return ok

    def handshake(self, value: int, interfaces: Sequence[ClassifiedInterface]) -> ProbeReport:
        """Run wake, init, command and confirm frames on the best single interface."""
        interface = best_probe_interface(tuple(interfaces))
        if interface is None:
            raise DeviceUnavailableError("No suitable interface found for the handshake sequence")
        size = interface.max_output_report_size
        if size <= 0:
            raise DeviceUnavailableError(f"{interface.describe()} accepts no output reports")
        steps = [
            (codec.WAKE_FRAME, "wake"),
            (codec.INIT_FRAME, "init"),
            (codec.dpi_command(value), "command"),
            (codec.CONFIRM_FRAME, "confirm"),
        ]
        frames: list[CandidateFrame] = []
        for data, label in steps:
            # Steps longer than the output report go out in order as fragments.
            chunks = codec.fragment(data, size)
            frames.extend(
                CandidateFrame(
                    strategy="handshake",
                    interface=interface,
                    report_type=ReportType.OUTPUT,
                    report_id=chunk[0],
                    data=chunk,
                    delay_s=HANDSHAKE_STEP_DELAY_S,
                    description=label if len(chunks) == 1 else f"{label} {step}/{len(chunks)}",
                )
                for step, chunk in enumerate(chunks, start=1)
            )
        return self._run(frames)

    def sweep(self, value: int, interfaces: Sequence[ClassifiedInterface]) -> ProbeReport:
        """Send full-length output and feature DPI variants to every interface."""
        frames: list[CandidateFrame] = []
        for item in interfaces:
            interface = item.interface
            for marker in SWEEP_MARKERS:
                data = codec.dpi_command(value, marker=marker)
                if 0 < len(data) <= interface.max_output_report_size:
                    frames.append(
                        CandidateFrame(
                            strategy="sweep",
                            interface=interface,
                            report_type=ReportType.OUTPUT,
                            report_id=data[0],
                            data=data,
                            delay_s=SWEEP_FRAME_DELAY_S,
                            description=f"output marker 0x{marker:02x}",
                        )
                    )
            size = interface.max_feature_report_size
            if size > 0:
                for logical in (codec.feature_dpi_command(value), codec.extended_feature_dpi_command(value)):
                    data = codec.pad_feature_report(logical, size)
                    if len(data) > size:
                        continue
                    frames.append(
                        CandidateFrame(
                            strategy="sweep",
                            interface=interface,
                            report_type=ReportType.FEATURE,
                            data=data,
                            delay_s=SWEEP_FRAME_DELAY_S,
                            description="feature variant",
                        )
                    )
        return self._run(frames, pace_interfaces=True)

    def listen_all(
        self,
        interfaces: Sequence[HidInterface],
        handler: Callable[[HidInterface, RawReport], None],
    ) -> None:
        """Register input monitoring on every interface to observe which one reports.

        Used to discover classification constants; sessions do not use it.
        """
        for interface in interfaces:
            LOGGER.info("Monitoring %s", interface.describe())
            self.transport.register_input_callback(
                interface,
                lambda report, interface=interface: handler(interface, report),
            )

    def _run(self, frames: list[CandidateFrame], *, pace_interfaces: bool = False) -> ProbeReport:
        written = 0
        failures: list[CandidateFrame] = []
        previous: HidInterface | None = None
        for frame in frames:
            if pace_interfaces and previous is not None and frame.interface != previous:
                self._pause(self.inter_interface_delay_s)
            previous = frame.interface
            if self.send(frame):
                written += 1
            else:
                failures.append(frame)
            self._pause(frame.delay_s)
        return ProbeReport(attempted=len(frames), written=written, failures=tuple(failures))

    def _pause(self, seconds: float) -> None:
        if seconds > 0:
            self._sleep(seconds)
