"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
import queue
import time
from collections.abc import Iterator
from contextlib import contextmanager

import typer

from razerctl.core.classifier import classify_device
from razerctl.core.codec import hexdump
from razerctl.core.errors import RazerctlError
from razerctl.core.model import DpiChanged, Field, HidInterface, PendingChange, PendingState, RawReport
from razerctl.core.service import RazerService
from razerctl.core.session import DeviceSession

app = typer.Typer(help="Razer mouse control by probing its undocumented HID protocol")

DeviceOption = typer.Option(None, "--device", help="Product name, profile ID, or VID:PID")
ProfileOption = typer.Option(None, "--profile", help="Profile ID")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every frame sent and received"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _build_service() -> RazerService:
    service = RazerService()
    for warning in getattr(service, "load_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return service


@contextmanager
def _open(device: str | None, profile: str | None) -> Iterator[DeviceSession]:
    service = _build_service()
    try:
        session = service.open_session(profile_id=profile, device_hint=device)
        typer.echo(
            f"Connected: {session.device.display_name if session.device else '?'} "
            f"({session.state.connection_mode.value})"
        )
        yield session
    finally:
        service.close()


def _report_change(session: DeviceSession, change: PendingChange, wait: bool) -> None:
    label = change.field.value.replace("_", " ")
    if not wait:
        typer.echo(f"Requested {label}={change.target_value}; not waiting for confirmation")
        return
    session.wait_for(change)
    if change.state is PendingState.CONFIRMED:
        typer.echo(f"Confirmed {label}={change.target_value}")
    else:
        current = session.state
        observed = current.dpi if change.field is Field.DPI else current.polling_rate
        typer.echo(f"Unconfirmed {label}={change.target_value}; device still reports {observed}")


@app.command("profiles")
def list_profiles() -> None:
    """List device profiles and their supported values."""
    try:
        service = _build_service()
        profiles = service.list_profiles()
        if not profiles:
            typer.echo("No profiles loaded")
            raise typer.Exit(code=1)

        for profile in profiles:
            typer.echo(f"{profile.id}: {profile.name} ({profile.vendor_id:04x}:{profile.product_id:04x})")
            typer.echo(f"  dpi: {', '.join(map(str, profile.dpi_values))}")
            typer.echo(f"  polling: {', '.join(map(str, profile.rate_values))}")
    except RazerctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("devices")
def list_devices() -> None:
    """List connected supported devices and the role of each HID interface."""
    try:
        service = _build_service()
        try:
            devices = service.list_devices()
        finally:
            service.close()
        if not devices:
            typer.echo("No supported devices found")
            return

        for device, profile in devices:
            typer.echo(f"{device.vendor_id:04x}:{device.product_id:04x} {device.display_name} -> {profile.id}")
            for item in classify_device(device, profile):
                roles = ", ".join(sorted(r.value for r in item.roles)) or "unclassified"
                typer.echo(f"  {item.interface.describe()}: {roles}")
    except RazerctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("set-dpi")
def set_dpi(
    value: int,
    wait: bool = typer.Option(True, "--wait/--no-wait", help="Wait for hardware confirmation"),
    device: str | None = DeviceOption,
    profile: str | None = ProfileOption,
) -> None:
    """Probe the device with every candidate DPI command."""
    try:
        with _open(device, profile) as session:
            _report_change(session, session.set_dpi(value), wait)
    except RazerctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("set-polling")
def set_polling(
    rate: int,
    wait: bool = typer.Option(True, "--wait/--no-wait", help="Wait for hardware confirmation"),
    device: str | None = DeviceOption,
    profile: str | None = ProfileOption,
) -> None:
    """Send the polling-rate feature report."""
    try:
        with _open(device, profile) as session:
            _report_change(session, session.set_polling_rate(rate), wait)
    except RazerctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("reset")
def reset(
    device: str | None = DeviceOption,
    profile: str | None = ProfileOption,
) -> None:
    """Request the profile's default DPI and polling rate."""
    try:
        with _open(device, profile) as session:
            for change in session.reset_to_default():
                _report_change(session, change, True)
    except RazerctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("listen")
def listen(
    seconds: float = typer.Option(10.0, "--seconds", help="How long to listen"),
    all_interfaces: bool = typer.Option(
        False, "--all", help="Monitor every interface to find which one reports"
    ),
    device: str | None = DeviceOption,
    profile: str | None = ProfileOption,
) -> None:
    """Print input reports; press the DPI button on the mouse while listening."""
    try:
        with _open(device, profile) as session:
            raw: queue.Queue[tuple[HidInterface, RawReport]] = queue.Queue()
            if all_interfaces:
                session.engine.listen_all(
                    [item.interface for item in session.interfaces],
                    lambda interface, report: raw.put((interface, report)),
                )
            session.watch_connections()
            poll = getattr(session.transport, "poll_connections", None)

            deadline = time.monotonic() + seconds
            while time.monotonic() < deadline:
                if poll is not None:
                    poll(session.profile.vendor_id, session.profile.product_id)
                for event in session.pump():
                    if isinstance(event, DpiChanged):
                        typer.echo(f"DPI changed: {event.value}")
                    elif not all_interfaces:
                        typer.echo(f"Report {event.report_id}: {hexdump(event.payload)}")
                while not raw.empty():
                    interface, report = raw.get_nowait()
                    typer.echo(f"[interface {interface.index}] report {report.report_id}: {hexdump(report.payload)}")
                time.sleep(0.05)
    except RazerctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("handshake")
def handshake(
    value: int,
    device: str | None = DeviceOption,
    profile: str | None = ProfileOption,
) -> None:
    """Diagnostic: run the wake/init/command/confirm sequence on the best interface."""
    try:
        with _open(device, profile) as session:
            report = session.handshake(value)
            typer.echo(f"Handshake wrote {report.written}/{report.attempted} frames")
    except RazerctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("sweep")
def sweep(
    value: int,
    device: str | None = DeviceOption,
    profile: str | None = ProfileOption,
) -> None:
    """Diagnostic: send full-length DPI variants to every interface."""
    try:
        with _open(device, profile) as session:
            report = session.sweep(value)
            typer.echo(f"Sweep wrote {report.written}/{report.attempted} frames")
    except RazerctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
