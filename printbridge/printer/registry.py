"""In-memory store of discovered devices and the current selection."""
from typing import Iterable, Optional, Tuple

from printbridge.printer.errors import NotFound
from printbridge.printer.models import Device


class DeviceRegistry:
    """Holds the latest discovery snapshot and at most one selected device.

    Pure bookkeeping: no hardware access happens here. Snapshots are replaced
    wholesale, never merged with earlier results.
    """

    def __init__(self):
        self._devices: Tuple[Device, ...] = ()
        self._selected: Optional[Device] = None

    def set_discovered(self, devices: Iterable[Device]) -> None:
        """Replace the snapshot, dropping a selection that no longer exists."""
        snapshot = tuple(devices)
        by_id = {device.id: device for device in snapshot}
        selected = None
        if self._selected is not None:
            # Re-point to the fresh instance so the old handle is never used
            selected = by_id.get(self._selected.id)
        self._devices, self._selected = snapshot, selected

    def devices(self) -> Tuple[Device, ...]:
        return self._devices

    def get(self, device_id: str) -> Optional[Device]:
        for device in self._devices:
            if device.id == device_id:
                return device
        return None

    def select(self, device_id: str) -> Device:
        """Select a device from the current snapshot.

        Raises:
            NotFound: if the id is absent; the selection is left unchanged.
        """
        device = self.get(device_id)
        if device is None:
            raise NotFound(device_id)
        self._selected = device
        return device

    def current(self) -> Optional[Device]:
        return self._selected

    def clear_selection(self) -> None:
        self._selected = None

    def __len__(self):
        return len(self._devices)

    def __repr__(self):
        selected = self._selected.id if self._selected else None
        return f"DeviceRegistry(devices={len(self._devices)}, selected={selected!r})"
