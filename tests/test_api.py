from __future__ import annotations

from pathlib import Path

import pytest

from razerctl import api
from razerctl.api import Client, DeviceSession, InvalidArgumentError, PendingState

from conftest import FakeClock, FakeTransport, RecordingSleep, dpi_report, make_interfaces


@pytest.fixture(autouse=True)
def isolated_profiles(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))


def test_public_client_list_profiles() -> None:
    client = Client(transport=FakeTransport())
    profiles = client.list_profiles()
    assert any(p.id == "deathadder_v2x_hyperspeed" for p in profiles)
    assert client.load_warnings == ()


def test_public_client_session_confirms_dpi() -> None:
    transport = FakeTransport(make_interfaces())
    client = Client(transport=transport)
    clock = FakeClock()
    client._service._session_factory = lambda t, p: DeviceSession(
        t, p, clock=clock, sleep=RecordingSleep(clock)
    )

    session = client.open_session(device_hint="deathadder")
    change = session.set_dpi(3200)
    transport.emit(1, dpi_report(3200))
    session.pump()

    assert change.state is PendingState.CONFIRMED
    assert session.state.dpi == 3200


def test_public_client_rejects_unsupported_dpi() -> None:
    transport = FakeTransport(make_interfaces())
    session = Client(transport=transport).open_session()
    with pytest.raises(InvalidArgumentError):
        session.set_dpi(1234)


def test_public_names_are_exported() -> None:
    for name in api.__all__:
        assert hasattr(api, name)
