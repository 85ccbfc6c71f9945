from __future__ import annotations

from razerctl.core import codec
from razerctl.core.model import HidInterface, ReportType, SetDpi, SetPollingRate
from razerctl.core.strategies import (
    FeatureReportStrategy,
    FragmentationStrategy,
    PropertySimulationStrategy,
    ShortCommandStrategy,
    default_strategies,
)


def _iface(out: int = 0, feat: int = 0) -> HidInterface:
    return HidInterface(index=0, path=b"p", max_output_report_size=out, max_feature_report_size=feat)


def test_fragmentation_one_byte_interface() -> None:
    frames = FragmentationStrategy().frames(SetDpi(1800), _iface(out=1))
    assert [f.data for f in frames] == [bytes([b]) for b in codec.dpi_command(1800)]
    assert all(f.report_type is ReportType.OUTPUT and f.delay_s == 0.05 for f in frames)


def test_fragmentation_two_byte_interface() -> None:
    frames = FragmentationStrategy().frames(SetDpi(1800), _iface(out=2))
    assert [f.data.hex() for f in frames] == ["0502", "0708", "0708"]
    assert all(f.delay_s == 0.1 for f in frames)


def test_fragmentation_skips_other_sizes() -> None:
    assert FragmentationStrategy().frames(SetDpi(1800), _iface(out=0)) == []
    assert FragmentationStrategy().frames(SetDpi(1800), _iface(out=8)) == []


def test_short_commands_respect_output_size() -> None:
    frames = ShortCommandStrategy().frames(SetDpi(1800), _iface(out=1))
    assert frames
    assert all(len(f.data) == 1 for f in frames)
    assert len(ShortCommandStrategy().frames(SetDpi(1800), _iface(out=2))) == len(codec.short_commands(1800))


def test_feature_frame_padded_to_interface_size() -> None:
    [frame] = FeatureReportStrategy().frames(SetDpi(3200), _iface(feat=90))
    assert frame.report_type is ReportType.FEATURE
    assert frame.report_id == 0
    assert len(frame.data) == 90
    assert frame.data[:7] == codec.feature_dpi_command(3200)


def test_feature_frame_never_exceeds_declared_size() -> None:
    assert FeatureReportStrategy().frames(SetDpi(3200), _iface(feat=6)) == []
    assert FeatureReportStrategy().frames(SetDpi(3200), _iface(feat=0)) == []
    [frame] = FeatureReportStrategy().frames(SetDpi(3200), _iface(feat=8))
    assert len(frame.data) == 8


def test_polling_rate_only_uses_feature_strategy() -> None:
    command = SetPollingRate(rate=500, code=0x02)
    iface = _iface(out=2, feat=90)
    assert FragmentationStrategy().frames(command, iface) == []
    assert ShortCommandStrategy().frames(command, iface) == []
    assert PropertySimulationStrategy().frames(command, iface) == []
    [frame] = FeatureReportStrategy().frames(command, iface)
    assert frame.data[:9].hex() == "001f00000104000102"


def test_property_simulation_frames() -> None:
    frames = PropertySimulationStrategy(("DPI", "SensorDPI")).frames(SetDpi(800), _iface())
    assert [(f.property_key, f.property_value) for f in frames] == [("DPI", 800), ("SensorDPI", 800)]
    assert all(f.report_type is ReportType.PROPERTY for f in frames)


def test_default_strategy_order() -> None:
    assert [s.name for s in default_strategies()] == [
        "fragmentation",
        "short-command",
        "feature-report",
        "property-simulation",
    ]
