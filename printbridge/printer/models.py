"""Printer data models."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


class TransportKind(Enum):
    """Channel used to reach a printer."""
    USB = "usb"
    SERIAL = "serial"
    SYSTEM = "system"

    @classmethod
    def parse(cls, value: Union["TransportKind", str, None]) -> "TransportKind":
        """Map a kind, its string value or None to a member.

        Omitted or unrecognized values map to SYSTEM, the fallback transport.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                return cls.SYSTEM
        return cls.SYSTEM


@dataclass
class Device:
    """A discovered printing endpoint."""
    id: str
    name: str
    transport_kind: TransportKind
    connected: bool = False
    handle: Optional[Any] = field(default=None, repr=False, compare=False)

    def to_dict(self):
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "name": self.name,
            "transport": self.transport_kind.value,
            "connected": self.connected,
        }


@dataclass(frozen=True)
class PrintResult:
    """Outcome of a print attempt, always carrying a user-facing message."""
    success: bool
    message: str

    @classmethod
    def ok(cls, message: str) -> "PrintResult":
        return cls(success=True, message=message)

    @classmethod
    def failed(cls, message: str) -> "PrintResult":
        return cls(success=False, message=message)

    def to_dict(self):
        return {"success": self.success, "message": self.message}
