"""The interactive attach/detach dialog."""

import logging
from typing import Protocol

from .config import UsbAttachConfig
from .devices import attach_device, detach_device
from .errors import MonitorError
from .inventory import (
    GUEST_HEADER,
    HOST_HEADER,
    MonitorRunner,
    guest_listing,
    host_listing,
    parse_guest_line,
    parse_host_line,
)
from .models import DialogState, Listing, Mode, PickerAction, PickerResult
from .picker import reload_command
from .vms import parse_vm_line, vm_listing

logger = logging.getLogger(__name__)


class PickerRunner(Protocol):
    def pick(
        self,
        listing: str,
        prompt: str,
        header: str,
        reload: str,
        switch_key: str | None = None,
    ) -> PickerResult: ...


class DialogController:
    """
    Drives the dialog between choosing a VM and browsing its USB devices.

    While no VM is chosen the running VMs are listed; Esc there ends the
    dialog. Once a VM is chosen the host devices (attach mode) or the
    guest's devices (detach mode) are listed, the switch key toggles the
    mode and Esc goes back to the VM list. Every listing is fetched again on
    each iteration so the result of an attach or detach shows up at once.
    """

    def __init__(
        self,
        monitor: MonitorRunner,
        picker: PickerRunner,
        config: UsbAttachConfig | None = None,
    ):
        self.monitor = monitor
        self.picker = picker
        self.config = config or UsbAttachConfig()

    def run(self, state: DialogState) -> None:
        """Run the dialog until the user leaves the VM list."""
        while self.step(state):
            pass
        logger.debug("Dialog finished")

    def step(self, state: DialogState) -> bool:
        """
        Run one picker interaction and apply its result to ``state``.

        Returns:
            False when the dialog should end, True otherwise.
        """
        if state.vmid is None:
            return self.choose_vm(state)
        self.browse(state, state.vmid)
        return True

    def choose_vm(self, state: DialogState) -> bool:
        result = self.picker.pick(
            vm_listing(self.config),
            state.prompt,
            state.help_text,
            reload_command(Listing.VMS),
        )

        match result.action:
            case PickerAction.SELECTED:
                vm = parse_vm_line(result.line)
                if vm is None:
                    logger.warning(f"Cannot read a VM from {result.line!r}")
                    return True
                state.choose_vm(vm)
                logger.debug(f"Chose VM {vm.vmid} ({vm.name})")
                return True
            case PickerAction.CANCELLED:
                return False
            case _:
                # no switch key is offered on the VM list
                return True

    def device_listing(self, mode: Mode, vmid: int) -> str:
        """Fetch the listing for ``mode``, header only on failure."""
        if mode is Mode.ATTACH:
            fetch, header = host_listing, HOST_HEADER
        else:
            fetch, header = guest_listing, GUEST_HEADER
        try:
            return fetch(self.monitor, vmid)
        except MonitorError as e:
            logger.error(f"Cannot list devices: {e}")
            return header

    def browse(self, state: DialogState, vmid: int) -> None:
        result = self.picker.pick(
            self.device_listing(state.mode, vmid),
            state.prompt,
            state.help_text,
            reload_command(Listing.for_mode(state.mode), vmid),
            switch_key=self.config.switch_key,
        )

        match result.action:
            case PickerAction.SELECTED:
                self.apply(state.mode, vmid, result.line)
            case PickerAction.SWITCH_MODE:
                state.mode = state.mode.toggled()
                logger.debug(f"Switched to {state.mode.value} mode")
            case PickerAction.CANCELLED:
                logger.debug(f"Leaving VM {vmid}")
                state.clear_vm()

    def apply(self, mode: Mode, vmid: int, line: str) -> None:
        """Attach or detach the device shown on ``line``."""
        try:
            match mode:
                case Mode.ATTACH:
                    host_device = parse_host_line(line)
                    response = attach_device(
                        self.monitor, vmid, host_device.bus, host_device.port
                    )
                case Mode.DETACH:
                    guest_device = parse_guest_line(line)
                    response = detach_device(self.monitor, vmid, guest_device.id)
        except MonitorError as e:
            logger.error(f"Cannot {mode.value} device: {e}")
            return

        if response and response.strip():
            logger.info(f"Monitor: {response.strip()}")
