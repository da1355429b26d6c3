from __future__ import annotations

import pytest

from printbridge.printer import Device, DeviceRegistry, NotFound, TransportKind


def _usb(device_id: str = "04b8:0e15", handle: object | None = None) -> Device:
    return Device(id=device_id, name="EPSON-TM20", transport_kind=TransportKind.USB,
                  connected=True, handle=handle or object())


def _system(name: str) -> Device:
    return Device(id=name, name=name, transport_kind=TransportKind.SYSTEM, connected=True)


def test_select_unknown_id_raises_and_keeps_selection() -> None:
    registry = DeviceRegistry()
    registry.set_discovered([_usb(), _system("Office")])
    registry.select("Office")

    with pytest.raises(NotFound) as excinfo:
        registry.select("does-not-exist")

    assert excinfo.value.device_id == "does-not-exist"
    assert registry.current().id == "Office"


def test_select_before_any_discovery_raises() -> None:
    registry = DeviceRegistry()
    with pytest.raises(NotFound):
        registry.select("04b8:0e15")
    assert registry.current() is None


def test_rediscovery_without_selected_device_clears_selection() -> None:
    registry = DeviceRegistry()
    registry.set_discovered([_usb(), _system("Office")])
    registry.select("04b8:0e15")

    registry.set_discovered([_system("Office")])

    assert registry.current() is None
    assert [d.id for d in registry.devices()] == ["Office"]


def test_rediscovery_repoints_selection_to_fresh_instance() -> None:
    registry = DeviceRegistry()
    old_handle, new_handle = object(), object()
    registry.set_discovered([_usb(handle=old_handle)])
    registry.select("04b8:0e15")

    registry.set_discovered([_usb(handle=new_handle)])

    assert registry.current().handle is new_handle


def test_snapshot_is_replaced_not_merged() -> None:
    registry = DeviceRegistry()
    registry.set_discovered([_system("A"), _system("B")])
    registry.set_discovered([_system("C")])

    assert [d.id for d in registry.devices()] == ["C"]
    assert registry.get("A") is None
    assert len(registry) == 1


def test_device_to_dict_omits_handle() -> None:
    assert _usb().to_dict() == {
        "id": "04b8:0e15",
        "name": "EPSON-TM20",
        "transport": "usb",
        "connected": True,
    }


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("usb", TransportKind.USB),
        (" SERIAL ", TransportKind.SERIAL),
        (TransportKind.USB, TransportKind.USB),
        (None, TransportKind.SYSTEM),
        ("bluetooth", TransportKind.SYSTEM),
        (42, TransportKind.SYSTEM),
    ],
)
def test_transport_kind_parse(value, expected) -> None:
    assert TransportKind.parse(value) is expected
