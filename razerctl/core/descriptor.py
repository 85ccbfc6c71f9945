"""Minimal HID report descriptor parser for deriving max report sizes."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass

_MAIN = 0
_GLOBAL = 1

_TAG_INPUT = 0x8
_TAG_OUTPUT = 0x9
_TAG_FEATURE = 0xB

_TAG_REPORT_SIZE = 0x7
_TAG_REPORT_ID = 0x8
_TAG_REPORT_COUNT = 0x9
_TAG_PUSH = 0xA
_TAG_POP = 0xB

_LONG_ITEM = 0xFE

_MAIN_REPORT_TYPES = {
    _TAG_INPUT: "input",
    _TAG_OUTPUT: "output",
    _TAG_FEATURE: "feature",
}


@dataclass(frozen=True)
class ReportSizes:
    input: int = 0
    output: int = 0
    feature: int = 0


def _items(descriptor: bytes):
    pos = 0
    while pos < len(descriptor):
        prefix = descriptor[pos]
        if prefix == _LONG_ITEM:
            if pos + 1 >= len(descriptor):
                return
            pos += 3 + descriptor[pos + 1]
            continue
        size = (0, 1, 2, 4)[prefix & 0x03]
        data = descriptor[pos + 1 : pos + 1 + size]
        yield (prefix >> 2) & 0x03, prefix >> 4, int.from_bytes(data, "little")
        pos += 1 + size


def report_sizes(descriptor: bytes) -> ReportSizes:
    """Return the largest input/output/feature report, in bytes.

    When the descriptor declares report IDs the size includes the leading
    report-ID byte, matching what the OS reports as the max report size.
    """
    bits: dict[tuple[str, int], int] = defaultdict(int)
    state = {"size": 0, "count": 0, "id": 0}
    stack: list[dict[str, int]] = []
    uses_ids = False

    for item_type, tag, value in _items(descriptor):
        if item_type == _GLOBAL:
            if tag == _TAG_REPORT_SIZE:
                state["size"] = value
            elif tag == _TAG_REPORT_COUNT:
                state["count"] = value
            elif tag == _TAG_REPORT_ID:
                state["id"] = value
                uses_ids = True
            elif tag == _TAG_PUSH:
                stack.append(dict(state))
            elif tag == _TAG_POP and stack:
                state = stack.pop()
        elif item_type == _MAIN and tag in _MAIN_REPORT_TYPES:
            bits[(_MAIN_REPORT_TYPES[tag], state["id"])] += state["size"] * state["count"]

    extra = 1 if uses_ids else 0
    largest = {"input": 0, "output": 0, "feature": 0}
    for (kind, _), total in bits.items():
        largest[kind] = max(largest[kind], (total + 7) // 8 + extra)
    return ReportSizes(**largest)
