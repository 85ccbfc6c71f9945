"""Interface role classification from HID usage and report-size metadata."""

from __future__ import annotations

from razerctl.core.model import ClassifiedInterface, Device, DeviceProfile, HidInterface, Role

GENERIC_DESKTOP_PAGE = 0x01
MOUSE_USAGE = 0x02
MIN_FEATURE_REPORT_SIZE = 6
PROBE_FEATURE_REPORT_SIZE = 90


def _is_mouse_collection(interface: HidInterface) -> bool:
    return interface.usage_page == GENERIC_DESKTOP_PAGE and interface.usage == MOUSE_USAGE


def _is_vendor_input(interface: HidInterface, profile: DeviceProfile) -> bool:
    return (
        interface.usage_page == profile.vendor_usage_page
        and interface.usage == profile.vendor_usage
        and interface.max_input_report_size >= 2
        and interface.max_output_report_size >= 1
    )


def classify(interface: HidInterface, profile: DeviceProfile) -> frozenset[Role]:
    roles: set[Role] = set()
    if _is_mouse_collection(interface):
        roles.add(Role.PRIMARY_COMMAND)
    elif _is_vendor_input(interface, profile):
        roles.add(Role.INPUT_REPORT)
    if interface.max_feature_report_size >= MIN_FEATURE_REPORT_SIZE:
        roles.add(Role.FEATURE_CAPABLE)
    return frozenset(roles)


def classify_device(device: Device, profile: DeviceProfile) -> tuple[ClassifiedInterface, ...]:
    """Classify every interface, keeping at most one primary and one input interface.

    The first interface in enumeration order claims an exclusive role; later
    matches keep only their remaining capabilities.
    """
    claimed: set[Role] = set()
    classified: list[ClassifiedInterface] = []
    for interface in device.interfaces:
        roles = set(classify(interface, profile))
        for exclusive in (Role.PRIMARY_COMMAND, Role.INPUT_REPORT):
            if exclusive in roles:
                if exclusive in claimed:
                    roles.discard(exclusive)
                else:
                    claimed.add(exclusive)
        classified.append(ClassifiedInterface(interface=interface, roles=frozenset(roles)))
    return tuple(classified)


def primary_interface(classified: tuple[ClassifiedInterface, ...]) -> HidInterface | None:
    for item in classified:
        if item.has(Role.PRIMARY_COMMAND):
            return item.interface
    return None


def input_interfaces(classified: tuple[ClassifiedInterface, ...]) -> list[HidInterface]:
    return [item.interface for item in classified if item.has(Role.INPUT_REPORT)]


def feature_interfaces(classified: tuple[ClassifiedInterface, ...]) -> list[HidInterface]:
    return [item.interface for item in classified if item.has(Role.FEATURE_CAPABLE)]


def best_probe_interface(classified: tuple[ClassifiedInterface, ...]) -> HidInterface | None:
    """Prefer the interface that delivers DPI reports, else the 90-byte mouse interface."""
    inputs = input_interfaces(classified)
    if inputs:
        return inputs[0]
    primary = primary_interface(classified)
    if primary is not None and primary.max_feature_report_size == PROBE_FEATURE_REPORT_SIZE:
        return primary
    return None
