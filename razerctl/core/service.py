"""Service layer used by CLI and future UI frontends."""

from __future__ import annotations

from collections.abc import Callable

from razerctl.core.device_match import best_profile_for_device
from razerctl.core.errors import DeviceSelectionError
from razerctl.core.model import Device, DeviceProfile
from razerctl.core.profile_loader import load_profiles
from razerctl.core.session import DeviceSession
from razerctl.transports.base import HidTransport
from razerctl.transports.hidapi import HidapiTransport


class RazerService:
    def __init__(
        self,
        *,
        transport: HidTransport | None = None,
        session_factory: Callable[..., DeviceSession] = DeviceSession,
    ) -> None:
        loaded = load_profiles()
        self.profiles = loaded.profiles
        self.load_warnings = loaded.warnings
        self.transport = transport if transport is not None else HidapiTransport()
        self._session_factory = session_factory

    def list_profiles(self) -> list[DeviceProfile]:
        return sorted(self.profiles.values(), key=lambda p: p.id)

    def list_devices(self) -> list[tuple[Device, DeviceProfile]]:
        found: list[tuple[Device, DeviceProfile]] = []
        for profile in self.list_profiles():
            for product_id in (profile.product_id, *profile.wired_product_ids):
                interfaces = self.transport.enumerate_interfaces(profile.vendor_id, product_id)
                if not interfaces:
                    continue
                if best_profile_for_device(profile.vendor_id, product_id, self.profiles) is not profile:
                    continue
                name = self.transport.read_property(interfaces[0], "Product")
                found.append(
                    (
                        Device(
                            vendor_id=profile.vendor_id,
                            product_id=product_id,
                            display_name=name if isinstance(name, str) and name else profile.name,
                            interfaces=tuple(interfaces),
                        ),
                        profile,
                    )
                )
        return found

    def resolve_target(
        self,
        profile_id: str | None = None,
        device_hint: str | None = None,
    ) -> tuple[Device, DeviceProfile]:
        if profile_id and profile_id not in self.profiles:
            raise DeviceSelectionError(
                f"Unknown profile '{profile_id}'. Use 'razerctl profiles' to inspect available profiles."
            )

        candidates = self.list_devices()
        if not candidates:
            raise DeviceSelectionError("No supported Razer device found. Ensure the mouse or its receiver is plugged in.")

        if profile_id:
            candidates = [c for c in candidates if c[1].id == profile_id]
            if not candidates:
                raise DeviceSelectionError(f"No connected device matched profile '{profile_id}'.")

        if device_hint:
            hint = device_hint.lower()
            candidates = [
                c
                for c in candidates
                if hint in c[0].display_name.lower()
                or hint in c[1].id.lower()
                or hint == f"{c[0].vendor_id:04x}:{c[0].product_id:04x}"
            ]
            if not candidates:
                raise DeviceSelectionError(f"No device found matching '{device_hint}'")

        if len(candidates) > 1:
            desc = ", ".join(
                f"{d.vendor_id:04x}:{d.product_id:04x} ({d.display_name})" for d, _ in candidates
            )
            raise DeviceSelectionError(f"Multiple candidate devices found: {desc}. Use --device to choose one.")

        return candidates[0]

    def open_session(
        self,
        profile_id: str | None = None,
        device_hint: str | None = None,
    ) -> DeviceSession:
        device, profile = self.resolve_target(profile_id=profile_id, device_hint=device_hint)
        session = self._session_factory(self.transport, profile)
        session.connect(device)
        return session

    def close(self) -> None:
        """Stop input readers and release every open interface."""
        self.transport.close()
