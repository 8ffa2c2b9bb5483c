"""Records parsed from the monitor and the state of the selection dialog."""

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, PositiveInt


class StrictBaseModel(BaseModel):
    """Base model with strict validation - no extra fields allowed."""

    model_config = ConfigDict(extra="forbid")


class DeviceRecord(StrictBaseModel):
    """Immutable record built from one monitor response."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class HostDevice(DeviceRecord):
    """A USB device visible to the hypervisor host (``info usbhost``)."""

    bus: PositiveInt | None = None
    port: str = ""
    speed: str = ""
    vendor_id: str = ""
    product_id: str = ""
    description: str = ""

    @property
    def vid_pid(self) -> str:
        if self.vendor_id and self.product_id:
            return f"{self.vendor_id}:{self.product_id}"
        return ""


class GuestDevice(DeviceRecord):
    """A USB device attached to the guest (``info usb``)."""

    id: str = ""
    speed: str = ""
    description: str = ""


class VirtualMachine(StrictBaseModel):
    """One row of the hypervisor's VM list."""

    vmid: int
    name: str
    status: str = ""

    @property
    def running(self) -> bool:
        return self.status == "running"


class Mode(str, Enum):
    """Which inventory the dialog is browsing."""

    ATTACH = "attach"
    DETACH = "detach"

    def toggled(self) -> "Mode":
        return Mode.DETACH if self is Mode.ATTACH else Mode.ATTACH


VM_LIST_HELP = """
Enter  Choose VM
Ctrl+R Refresh list
Esc    Exit
"""

ATTACH_HELP = """
TAB    Switch to detach dialog
Enter  Attach device
Ctrl+R Refresh list
Esc    Show VM list
"""

DETACH_HELP = """
TAB    Switch to attach dialog
Enter  Detach device
Ctrl+R Refresh list
Esc    Show VM list
"""


@dataclass
class DialogState:
    """
    The running selection context, threaded through the dialog loop.

    A ``vmid`` of None means no VM has been chosen yet and the dialog must
    show the VM list. ``mode`` only matters once a VM is chosen.
    """

    vmid: int | None = None
    vm_name: str = ""
    mode: Mode = Mode.DETACH

    @property
    def help_text(self) -> str:
        if self.vmid is None:
            return VM_LIST_HELP
        return ATTACH_HELP if self.mode is Mode.ATTACH else DETACH_HELP

    @property
    def prompt(self) -> str:
        if self.vmid is None:
            return "Choose VM: "
        if self.mode is Mode.ATTACH:
            return f"Attach to VM {self.vmid} ({self.vm_name}): "
        return f"Detach from VM {self.vmid} ({self.vm_name}): "

    def choose_vm(self, vm: VirtualMachine) -> None:
        """Enter the device dialog for ``vm``, starting with its attached devices."""
        self.vmid = vm.vmid
        self.vm_name = vm.name
        self.mode = Mode.DETACH

    def clear_vm(self) -> None:
        self.vmid = None
        self.vm_name = ""


class PickerAction(str, Enum):
    SELECTED = "selected"
    SWITCH_MODE = "switch_mode"
    CANCELLED = "cancelled"


class PickerResult(StrictBaseModel):
    """Outcome of one picker invocation: a chosen line, a mode switch or nothing."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    action: PickerAction
    line: str = ""

    @classmethod
    def selected(cls, line: str) -> "PickerResult":
        return cls(action=PickerAction.SELECTED, line=line)

    @classmethod
    def switch_mode(cls) -> "PickerResult":
        return cls(action=PickerAction.SWITCH_MODE)

    @classmethod
    def cancelled(cls) -> "PickerResult":
        return cls(action=PickerAction.CANCELLED)


class Listing(str, Enum):
    """The listings the program can print on its own for the picker's reload."""

    VMS = "vms"
    HOST = "host"
    GUEST = "guest"

    @classmethod
    def for_mode(cls, mode: Mode) -> "Listing":
        return cls.HOST if mode is Mode.ATTACH else cls.GUEST
