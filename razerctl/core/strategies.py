"""Pluggable candidate-frame generators for the probe engine."""

from __future__ import annotations

import logging
from typing import Protocol

from razerctl.core import codec
from razerctl.core.classifier import MIN_FEATURE_REPORT_SIZE
from razerctl.core.model import (
    CandidateFrame,
    HidInterface,
    OutboundCommand,
    ReportType,
    SetDpi,
    SetPollingRate,
)

LOGGER = logging.getLogger(__name__)

ONE_BYTE_FRAME_DELAY_S = 0.05
TWO_BYTE_FRAME_DELAY_S = 0.1
SHORT_COMMAND_DELAY_S = 0.05
FEATURE_FRAME_DELAY_S = 0.2
PROPERTY_DELAY_S = 0.05

DEFAULT_PROPERTY_KEYS = (
    "DPI",
    "Resolution",
    "MouseDPI",
    "RazerDPI",
    "SensorDPI",
    "HIDPointerResolution",
)


class FrameStrategy(Protocol):
    name: str

    def frames(self, command: OutboundCommand, interface: HidInterface) -> list[CandidateFrame]:
        """Return the candidate frames this strategy would send to the interface."""


class FragmentationStrategy:
    name = "fragmentation"

    def frames(self, command: OutboundCommand, interface: HidInterface) -> list[CandidateFrame]:
        if not isinstance(command, SetDpi):
            return []
        size = interface.max_output_report_size
        if size not in (1, 2):
            return []
        delay = ONE_BYTE_FRAME_DELAY_S if size == 1 else TWO_BYTE_FRAME_DELAY_S
        chunks = codec.fragment(codec.dpi_command(command.value), size)
        return [
            CandidateFrame(
                strategy=self.name,
                interface=interface,
                report_type=ReportType.OUTPUT,
                report_id=chunk[0],
                data=chunk,
                delay_s=delay,
                description=f"fragment {step}/{len(chunks)}",
            )
            for step, chunk in enumerate(chunks, start=1)
        ]


class ShortCommandStrategy:
    name = "short-command"

    def frames(self, command: OutboundCommand, interface: HidInterface) -> list[CandidateFrame]:
        if not isinstance(command, SetDpi):
            return []
        return [
            CandidateFrame(
                strategy=self.name,
                interface=interface,
                report_type=ReportType.OUTPUT,
                report_id=data[0],
                data=data,
                delay_s=SHORT_COMMAND_DELAY_S,
                description=description,
            )
            for data, description in codec.short_commands(command.value)
            if len(data) <= interface.max_output_report_size
        ]


class FeatureReportStrategy:
    name = "feature-report"

    def frames(self, command: OutboundCommand, interface: HidInterface) -> list[CandidateFrame]:
        size = interface.max_feature_report_size
        if size < MIN_FEATURE_REPORT_SIZE:
            return []
        if isinstance(command, SetDpi):
            logical = codec.feature_dpi_command(command.value)
        elif isinstance(command, SetPollingRate):
            logical = codec.polling_rate_command(command.code)
        else:
            return []
        padded = codec.pad_feature_report(logical, size)
        if len(padded) > size:
            LOGGER.debug(
                "Skipping %d-byte feature frame for %s (max %d)",
                len(padded),
                interface.describe(),
                size,
            )
            return []
        return [
            CandidateFrame(
                strategy=self.name,
                interface=interface,
                report_type=ReportType.FEATURE,
                report_id=0,
                data=padded,
                delay_s=FEATURE_FRAME_DELAY_S,
                description=f"feature command padded to {len(padded)} bytes",
            )
        ]


class PropertySimulationStrategy:
    name = "property-simulation"

    def __init__(self, keys: tuple[str, ...] = DEFAULT_PROPERTY_KEYS) -> None:
        self.keys = keys

    def frames(self, command: OutboundCommand, interface: HidInterface) -> list[CandidateFrame]:
        if not isinstance(command, SetDpi):
            return []
        return [
            CandidateFrame(
                strategy=self.name,
                interface=interface,
                report_type=ReportType.PROPERTY,
                data=b"",
                delay_s=PROPERTY_DELAY_S,
                property_key=key,
                property_value=command.value,
                description=f"property {key}={command.value}",
            )
            for key in self.keys
        ]


def default_strategies(property_keys: tuple[str, ...] = ()) -> list[FrameStrategy]:
    return [
        FragmentationStrategy(),
        ShortCommandStrategy(),
        FeatureReportStrategy(),
        PropertySimulationStrategy(property_keys or DEFAULT_PROPERTY_KEYS),
    ]
