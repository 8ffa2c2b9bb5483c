"""
Module for listing the hypervisor's virtual machines.

``qm list`` prints a header followed by one row per VM::

          VMID NAME                 STATUS     MEM(MB)    BOOTDISK(GB) PID
           100 debian               running    2048              32.00 4242
           101 windows              stopped    8192              64.00 0
"""

import logging
import textwrap

from .config import UsbAttachConfig
from .models import VirtualMachine
from .utility import run_command

logger = logging.getLogger(__name__)


def parse_vm_line(line: str) -> VirtualMachine | None:
    """Parse one VM row: id, name and status are the first three fields."""
    fields = line.split()
    if len(fields) < 2 or not fields[0].isdigit():
        return None
    status = fields[2] if len(fields) > 2 else ""
    return VirtualMachine(vmid=int(fields[0]), name=fields[1], status=status)


def parse_vm_list(text: str) -> list[VirtualMachine]:
    """Parse every VM row, skipping the header and anything unrecognised."""
    vms = []
    for line in text.splitlines()[1:]:
        vm = parse_vm_line(line)
        if vm is None:
            if line.strip():
                logger.debug(f"Skipping unrecognised VM list line: {line!r}")
            continue
        vms.append(vm)
    return vms


def running_vm_listing(text: str) -> str:
    """
    Reduce a VM list to its header and the running VMs.

    The common leading whitespace of the remaining lines is removed so the
    listing starts at the first column.
    """
    lines = text.splitlines()
    if not lines:
        return ""
    header, rows = lines[0], lines[1:]
    running = []
    for row in rows:
        vm = parse_vm_line(row)
        if vm is not None and vm.running:
            running.append(row)
    return textwrap.dedent("\n".join([header, *running]))


def get_vm_list(config: UsbAttachConfig) -> str:
    """Run the hypervisor's VM list command and return its output."""
    return run_command(config.vm_list_command).stdout


def vm_listing(config: UsbAttachConfig) -> str:
    return running_vm_listing(get_vm_list(config))


def running_vms(config: UsbAttachConfig) -> list[VirtualMachine]:
    return [vm for vm in parse_vm_list(get_vm_list(config)) if vm.running]


def find_running_vm(vmid: int, config: UsbAttachConfig) -> VirtualMachine | None:
    """Return the running VM with id ``vmid``, or None if it is not running."""
    for vm in running_vms(config):
        if vm.vmid == vmid:
            return vm
    logger.debug(f"VM {vmid} is not running")
    return None
