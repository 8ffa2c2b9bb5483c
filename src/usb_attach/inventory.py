"""
Parsing and display of the monitor's USB inventories.

``info usbhost`` lists the devices on the host, two lines per device::

      Bus 2, Addr 5, Port 3.3, Speed 480 Mb/s
        Class 00: USB device 1234:5678, Generic USB Device

``info usb`` lists the devices attached to the guest, one line per device::

      Device 0.2, Port 1, Speed 480 Mb/s, Product Generic USB Device, ID: usb2_3.3

The monitor output format depends on the QEMU version, so every field is
extracted on its own and a field that cannot be found is left empty instead
of failing the whole parse.

The same token patterns are used to read fields from the monitor output and
to read them back from a rendered listing line, which is all the picker
returns to us.
"""

import logging
import re
from collections.abc import Iterable
from typing import Protocol

from .models import GuestDevice, HostDevice

logger = logging.getLogger(__name__)

HOST_INVENTORY_COMMAND = "info usbhost"
GUEST_INVENTORY_COMMAND = "info usb"

# rendered in place of an empty field so that every column holds a token
EMPTY = "-"

# token shapes shared by the monitor parsers and the listing parsers
BUS = r"\d+"
PORT = r"\d+(?:\.\d+)*"
SPEED = r"\d+(?:\.\d+)? [^\s,]+"
HEX4 = r"[0-9a-fA-F]{4}"

# fields of an 'info usbhost' record (a header and a description line joined)
re_host_bus = re.compile(rf"^\s*Bus\s+(?P<bus>{BUS})\b")
re_host_port = re.compile(rf",\s*Port\s+(?P<port>{PORT})")
re_speed = re.compile(rf",\s*Speed\s+(?P<speed>{SPEED})")
re_host_usb_id = re.compile(
    rf"USB device\s+(?P<vendor_id>{HEX4}):(?P<product_id>{HEX4})"
    r"(?:,\s*(?P<description>.*?))?\s*$"
)

# fields of an 'info usb' line
re_guest_product = re.compile(
    r"\bProduct\s+(?P<description>.*?)\s*(?=,\s*(?:Speed\s|Port\s|Device\s|ID:)|$)"
)
re_guest_id = re.compile(r"(?:^|,)\s*ID:\s*(?P<id>\S+)")

# rendered listing lines, see format_host_listing and format_guest_listing
re_host_line = re.compile(
    rf"^\s*(?P<bus>{BUS}|{EMPTY})"
    rf"\s+(?P<port>{PORT}|{EMPTY})"
    rf"\s+(?P<speed>{SPEED}|{EMPTY})"
    rf"\s+(?:(?P<vendor_id>{HEX4}):(?P<product_id>{HEX4})|{EMPTY})"
    r"\s+(?P<description>.*?)\s*$"
)
re_guest_line = re.compile(
    rf"^\s*(?P<id>\S+)\s+(?P<speed>{SPEED}|{EMPTY})\s+(?P<description>.*?)\s*$"
)

HOST_HEADER = f"{'Bus':>3} {'Port':>7} {'Speed':>11} {'VID&PID':>12}    Device"
GUEST_HEADER = f"{'ID':<8} {'Speed':>11}    Device"


class MonitorRunner(Protocol):
    def run(self, vmid: int, command: str) -> str: ...


def _group(match: re.Match | None, name: str) -> str:
    if match is None:
        return ""
    return (match.group(name) or "").strip()


def _field(value: str | None) -> str:
    """Map a rendered column back to its value, the placeholder means empty."""
    if value is None or value == EMPTY:
        return ""
    return value.strip()


def _pair_lines(text: str) -> list[str]:
    """Join every two non-blank lines into one logical record."""
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    return [" ".join(lines[i : i + 2]) for i in range(0, len(lines), 2)]


def _bus(value: str) -> int | None:
    """Bus numbers start at 1, anything else is treated as missing."""
    if value and int(value) > 0:
        return int(value)
    return None


def parse_host_record(record: str) -> HostDevice:
    """Extract a HostDevice from one joined 'info usbhost' record."""
    bus = _group(re_host_bus.search(record), "bus")
    usb_id = re_host_usb_id.search(record)
    device = HostDevice(
        bus=_bus(bus),
        port=_group(re_host_port.search(record), "port"),
        speed=_group(re_speed.search(record), "speed"),
        vendor_id=_group(usb_id, "vendor_id").lower(),
        product_id=_group(usb_id, "product_id").lower(),
        description=_group(usb_id, "description"),
    )
    if device.bus is None or not device.port:
        logger.debug(f"Incomplete host device record: {record!r}")
    return device


def parse_host_inventory(text: str) -> list[HostDevice]:
    """
    Parse the response of 'info usbhost'.

    Args:
        text: The monitor response, two lines per device

    Returns:
        One HostDevice per record in the order the host reported them.
    """
    devices = [parse_host_record(record) for record in _pair_lines(text)]
    logger.debug(f"Parsed {len(devices)} host devices")
    return devices


def parse_guest_record(line: str) -> GuestDevice:
    """Extract a GuestDevice from one 'info usb' line."""
    device = GuestDevice(
        id=_group(re_guest_id.search(line), "id"),
        speed=_group(re_speed.search(line), "speed"),
        description=_group(re_guest_product.search(line), "description"),
    )
    if not device.description:
        logger.debug(f"Incomplete guest device record: {line!r}")
    return device


def parse_guest_inventory(text: str) -> list[GuestDevice]:
    """
    Parse the response of 'info usb'.

    Args:
        text: The monitor response, one line per device

    Returns:
        One GuestDevice per non-blank line, in order.
    """
    devices = [
        parse_guest_record(line.strip()) for line in text.splitlines() if line.strip()
    ]
    logger.debug(f"Parsed {len(devices)} guest devices")
    return devices


def format_host_device(device: HostDevice) -> str:
    bus = str(device.bus) if device.bus is not None else EMPTY
    return (
        f"{bus:>3} {device.port or EMPTY:>7} {device.speed or EMPTY:>11} "
        f"{device.vid_pid or EMPTY:>12}    {device.description or EMPTY}"
    )


def format_guest_device(device: GuestDevice) -> str:
    return (
        f"{device.id or EMPTY:<8} {device.speed or EMPTY:>11}    "
        f"{device.description or EMPTY}"
    )


def format_host_listing(devices: Iterable[HostDevice]) -> str:
    """Render host devices as a fixed width table, header first."""
    return "\n".join([HOST_HEADER, *(format_host_device(d) for d in devices)])


def format_guest_listing(devices: Iterable[GuestDevice]) -> str:
    """Render guest devices as a fixed width table, header first."""
    return "\n".join([GUEST_HEADER, *(format_guest_device(d) for d in devices)])


def parse_host_line(line: str) -> HostDevice:
    """
    Read a HostDevice back from a line of format_host_listing.

    A line that does not have the listing's shape (including the header)
    gives a HostDevice with every field empty.
    """
    match = re_host_line.match(line)
    if match is None:
        logger.debug(f"Unrecognised host listing line: {line!r}")
        return HostDevice()
    bus = _field(match.group("bus"))
    return HostDevice(
        bus=_bus(bus),
        port=_field(match.group("port")),
        speed=_field(match.group("speed")),
        vendor_id=_field(match.group("vendor_id")).lower(),
        product_id=_field(match.group("product_id")).lower(),
        description=_field(match.group("description")),
    )


def parse_guest_line(line: str) -> GuestDevice:
    """Read a GuestDevice back from a line of format_guest_listing."""
    match = re_guest_line.match(line)
    if match is None:
        logger.debug(f"Unrecognised guest listing line: {line!r}")
        return GuestDevice()
    return GuestDevice(
        id=_field(match.group("id")),
        speed=_field(match.group("speed")),
        description=_field(match.group("description")),
    )


def get_host_devices(monitor: MonitorRunner, vmid: int) -> list[HostDevice]:
    """List the USB devices of the host that runs ``vmid``."""
    return parse_host_inventory(monitor.run(vmid, HOST_INVENTORY_COMMAND))


def get_guest_devices(monitor: MonitorRunner, vmid: int) -> list[GuestDevice]:
    """List the USB devices attached to ``vmid``."""
    return parse_guest_inventory(monitor.run(vmid, GUEST_INVENTORY_COMMAND))


def host_listing(monitor: MonitorRunner, vmid: int) -> str:
    return format_host_listing(get_host_devices(monitor, vmid))


def guest_listing(monitor: MonitorRunner, vmid: int) -> str:
    return format_guest_listing(get_guest_devices(monitor, vmid))
