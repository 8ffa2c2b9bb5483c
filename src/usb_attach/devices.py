"""Monitor commands that attach host USB devices to a VM and detach them."""

import logging

from .inventory import MonitorRunner

logger = logging.getLogger(__name__)


def host_device_id(bus: str | int, port: str) -> str:
    """
    The device id used when attaching host device ``bus``/``port``.

    The id only depends on the host location so attaching the same device
    twice gives the same id, and ``info usb`` reports it for detach.
    """
    return f"usb{bus}_{port}"


def attach_device(
    monitor: MonitorRunner, vmid: int, bus: str | int | None, port: str
) -> str | None:
    """
    Pass a host USB device through to a VM.

    Args:
        monitor: Runner for the VM's monitor
        vmid: The VM to attach to
        bus: Host bus number
        port: Host port path e.g. "3.3"

    Returns:
        The monitor's response, or None when bus or port is empty and no
        command was sent.
    """
    bus = "" if bus is None else str(bus)
    if not bus or not port:
        logger.debug(f"Not attaching to VM {vmid}: bus={bus!r} port={port!r}")
        return None

    device_id = host_device_id(bus, port)
    logger.info(f"Attaching host device {bus}-{port} to VM {vmid} as {device_id}")
    return monitor.run(
        vmid, f"device_add usb-host,hostbus={bus},hostport={port},id={device_id}"
    )


def detach_device(monitor: MonitorRunner, vmid: int, id: str) -> str | None:
    """
    Remove a USB device from a VM.

    Args:
        monitor: Runner for the VM's monitor
        vmid: The VM to detach from
        id: The device id reported by 'info usb'

    Returns:
        The monitor's response, or None when id is empty and no command was
        sent.
    """
    if not id:
        logger.debug(f"Not detaching from VM {vmid}: device has no id")
        return None

    logger.info(f"Detaching device {id} from VM {vmid}")
    return monitor.run(vmid, f"device_del {id}")
