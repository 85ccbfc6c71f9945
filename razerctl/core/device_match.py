"""Device-to-profile matching logic."""

from __future__ import annotations

from razerctl.core.model import DeviceProfile


def match_score(vendor_id: int, product_id: int, profile: DeviceProfile) -> int:
    if vendor_id != profile.vendor_id:
        return 0
    if product_id == profile.product_id:
        return 2
    if product_id in profile.wired_product_ids:
        return 1
    return 0


def best_profile_for_device(
    vendor_id: int,
    product_id: int,
    profiles: dict[str, DeviceProfile],
) -> DeviceProfile | None:
    best: DeviceProfile | None = None
    best_score = 0
    for profile in profiles.values():
        score = match_score(vendor_id, product_id, profile)
        if score > best_score:
            best = profile
            best_score = score
    return best
