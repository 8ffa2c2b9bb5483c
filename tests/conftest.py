"""Shared fixtures: canned monitor output and fakes for the monitor and picker."""

import pytest

from usb_attach.models import PickerResult

HOST_OUTPUT = """\
  Bus 2, Addr 5, Port 3.3, Speed 480 Mb/s
    Class 00: USB device 1234:5678, Generic USB Device
  Bus 1, Addr 3, Port 1.2, Speed 12 Mb/s
    Class 03: USB device 046D:C52B, Logitech USB Receiver, Unifying
  Bus 3, Addr 2, Port 4, Speed 5000 Mb/s
    Class 00: USB device 0781:5581
"""

GUEST_OUTPUT = """\
  Device 0.1, Port 1, Speed 12 Mb/s, Product QEMU USB Tablet, ID: tablet
  Device 0.2, Port 2, Speed 480 Mb/s, Product Generic USB Device, ID: usb2_3.3
  Device 1.0, Port 1, Speed 12 Mb/s, Product USB Host Device
"""

QM_LIST = """\
      VMID NAME                 STATUS     MEM(MB)    BOOTDISK(GB) PID
       100 debian               running    2048              32.00 4242
       101 windows              stopped    8192              64.00 0
       102 router               running    512                8.00 4343
"""


class FakeMonitor:
    """Records monitor commands and answers from a table of canned responses."""

    def __init__(self, responses: dict[str, str | Exception] | None = None):
        self.responses = responses or {}
        self.calls: list[tuple[int, str]] = []

    def run(self, vmid: int, command: str) -> str:
        self.calls.append((vmid, command))
        response = self.responses.get(command, "")
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def commands(self) -> list[str]:
        return [command for _, command in self.calls]


class FakePicker:
    """Returns scripted results and records what it was shown."""

    def __init__(self, results: list[PickerResult]):
        self.results = list(results)
        self.calls: list[dict] = []

    def pick(self, listing, prompt, header, reload, switch_key=None):
        self.calls.append(
            {
                "listing": listing,
                "prompt": prompt,
                "header": header,
                "reload": reload,
                "switch_key": switch_key,
            }
        )
        return self.results.pop(0)


@pytest.fixture
def monitor():
    """A monitor that knows both USB inventories."""
    return FakeMonitor({"info usbhost": HOST_OUTPUT, "info usb": GUEST_OUTPUT})
