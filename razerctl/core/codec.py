"""Input report decoding and outbound command framing."""

from __future__ import annotations

from functools import reduce

from razerctl.core.model import DecodedEvent, DeviceProfile, DpiChanged, RawReport, UnknownReport

DPI_MARKER = 0x05
DPI_OPCODE = 0x02
CHECKSUMMED_FEATURE_SIZE = 90
CHECKSUM_BODY_SIZE = 88
MAX_PLAIN_FEATURE_SIZE = 64

# The sequence below is a best guess; nothing confirms it is the real handshake.
WAKE_FRAME = bytes([0x01, 0x00, 0x00, 0x00])
INIT_FRAME = bytes([0x05, 0x01, 0x00, 0x00, 0x00, 0x00])
CONFIRM_FRAME = bytes([0x05, 0x03, 0x00, 0x00, 0x00, 0x00])


def hexdump(data: bytes) -> str:
    return " ".join(f"{b:02X}" for b in data)


def decode(report: RawReport, profile: DeviceProfile) -> DecodedEvent:
    payload = report.payload
    if report.report_id == profile.dpi_report_id and len(payload) >= 4:
        value = payload[2] << 8 | payload[3]
        if value in profile.dpi_values:
            return DpiChanged(value=value)
    return UnknownReport(report_id=report.report_id, payload=bytes(payload))


def split_dpi(value: int) -> tuple[int, int]:
    return (value >> 8) & 0xFF, value & 0xFF


def dpi_command(value: int, marker: int = DPI_MARKER) -> bytes:
    """Logical six-byte DPI command: marker, opcode, then X and Y DPI big-endian."""
    high, low = split_dpi(value)
    return bytes([marker, DPI_OPCODE, high, low, high, low])


def feature_dpi_command(value: int) -> bytes:
    return b"\x00" + dpi_command(value)


def extended_feature_dpi_command(value: int) -> bytes:
    high, low = split_dpi(value)
    return bytes([0x00, 0x1F, 0x04, 0x07, 0x04, 0x01, 0x00, high, low])


def polling_rate_command(code: int) -> bytes:
    return bytes([0x00, 0x1F, 0x00, 0x00, 0x01, 0x04, 0x00, 0x01, code & 0xFF])


def fragment(command: bytes, size: int) -> list[bytes]:
    if size <= 0:
        raise ValueError("fragment size must be positive")
    return [command[i : i + size] for i in range(0, len(command), size)]


def short_commands(value: int) -> list[tuple[bytes, str]]:
    high, low = split_dpi(value)
    return [
        (bytes([DPI_MARKER]), "DPI command marker"),
        (bytes([DPI_OPCODE]), "Command type"),
        (bytes([high]), "DPI high byte"),
        (bytes([low]), "DPI low byte"),
        (bytes([DPI_MARKER, DPI_OPCODE]), "Command header"),
        (bytes([DPI_MARKER, high]), "Command + DPI high"),
        (bytes([DPI_MARKER, low]), "Command + DPI low"),
        (bytes([high, low]), "DPI bytes only"),
        (bytes([DPI_OPCODE, high]), "Type + DPI high"),
        (bytes([DPI_OPCODE, low]), "Type + DPI low"),
        (bytes([0x01]), "Alternative command 1"),
        (bytes([0x03]), "Alternative command 3"),
        (bytes([0x04]), "Alternative command 4"),
        (bytes([0x01, 0x02]), "Alt header 1"),
        (bytes([0x03, 0x04]), "Alt header 2"),
    ]


def xor_checksum(data: bytes) -> int:
    return reduce(lambda acc, b: acc ^ b, data, 0)


def pad_feature_report(command: bytes, size: int) -> bytes:
    """Pad a feature command to the interface's declared feature report size.

    90-byte reports carry an XOR checksum of bytes 2..87 at offset 88 and a
    trailing zero. Other sizes are zero padded up to 64 bytes. Commands longer
    than the target are returned unchanged.
    """
    if size == CHECKSUMMED_FEATURE_SIZE:
        body = command.ljust(CHECKSUM_BODY_SIZE, b"\x00")
        return body + bytes([xor_checksum(body[2:CHECKSUM_BODY_SIZE]), 0x00])
    return command.ljust(min(size, MAX_PLAIN_FEATURE_SIZE), b"\x00")
