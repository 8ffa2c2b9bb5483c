"""Unit tests for the attach/detach dialog state machine."""

from unittest.mock import patch

import pytest
from conftest import QM_LIST, FakeMonitor, FakePicker

from usb_attach.dialog import DialogController
from usb_attach.errors import MonitorError
from usb_attach.inventory import GUEST_HEADER, HOST_HEADER, guest_listing, host_listing
from usb_attach.models import DialogState, Mode, PickerResult
from usb_attach.vms import running_vm_listing

VM_LISTING = running_vm_listing(QM_LIST)
DEBIAN_LINE = VM_LISTING.splitlines()[1]


@pytest.fixture(autouse=True)
def mock_vm_listing():
    """Serve the VM list without running qm."""
    with patch("usb_attach.dialog.vm_listing", return_value=VM_LISTING) as listing:
        yield listing


def browsing(mode=Mode.DETACH):
    return DialogState(vmid=100, vm_name="debian", mode=mode)


def host_line(monitor, index=0):
    line = host_listing(monitor, 100).splitlines()[index + 1]
    monitor.calls.clear()
    return line


def guest_line(monitor, index=0):
    line = guest_listing(monitor, 100).splitlines()[index + 1]
    monitor.calls.clear()
    return line


class TestChoosingVm:
    """Test the VM list."""

    def test_selecting_vm_starts_detach_dialog(self, monitor):
        picker = FakePicker([PickerResult.selected(DEBIAN_LINE)])
        state = DialogState()

        assert DialogController(monitor, picker).step(state) is True

        assert state.vmid == 100
        assert state.vm_name == "debian"
        assert state.mode is Mode.DETACH

    def test_selecting_resets_mode(self, monitor):
        picker = FakePicker([PickerResult.selected(DEBIAN_LINE)])
        state = DialogState(mode=Mode.ATTACH)
        DialogController(monitor, picker).step(state)
        assert state.mode is Mode.DETACH

    def test_cancel_ends_dialog(self, monitor):
        picker = FakePicker([PickerResult.cancelled()])
        state = DialogState()

        assert DialogController(monitor, picker).step(state) is False
        assert state.vmid is None

    def test_vm_list_picker_arguments(self, monitor):
        picker = FakePicker([PickerResult.cancelled()])
        DialogController(monitor, picker).step(DialogState())

        shown = picker.calls[0]
        assert shown["listing"] == VM_LISTING
        assert shown["prompt"] == "Choose VM: "
        assert "Choose VM" in shown["header"]
        assert shown["reload"].endswith("--list vms")
        assert shown["switch_key"] is None
        # no monitor session is needed to choose a VM
        assert monitor.calls == []

    def test_unreadable_selection_stays_on_vm_list(self, monitor):
        picker = FakePicker([PickerResult.selected("garbage")])
        state = DialogState()
        assert DialogController(monitor, picker).step(state) is True
        assert state.vmid is None


class TestBrowsing:
    """Test the attach and detach lists of a chosen VM."""

    def test_detach_lists_guest_devices(self, monitor):
        picker = FakePicker([PickerResult.switch_mode()])
        DialogController(monitor, picker).step(browsing())

        shown = picker.calls[0]
        assert shown["listing"] == guest_listing(FakeMonitor(monitor.responses), 100)
        assert shown["prompt"] == "Detach from VM 100 (debian): "
        assert "Detach device" in shown["header"]
        assert shown["reload"].endswith("--list guest 100")
        assert shown["switch_key"] == "tab"

    def test_attach_lists_host_devices(self, monitor):
        picker = FakePicker([PickerResult.switch_mode()])
        DialogController(monitor, picker).step(browsing(Mode.ATTACH))

        shown = picker.calls[0]
        assert monitor.commands == ["info usbhost"]
        assert shown["prompt"] == "Attach to VM 100 (debian): "
        assert "Attach device" in shown["header"]
        assert shown["reload"].endswith("--list host 100")

    def test_select_detaches_device(self, monitor):
        line = guest_line(monitor, 1)
        picker = FakePicker([PickerResult.selected(line)])
        state = browsing()

        DialogController(monitor, picker).step(state)

        assert monitor.commands == ["info usb", "device_del usb2_3.3"]
        assert state.vmid == 100
        assert state.mode is Mode.DETACH

    def test_select_device_without_id_sends_nothing(self, monitor):
        line = guest_line(monitor, 2)
        picker = FakePicker([PickerResult.selected(line)])

        DialogController(monitor, picker).step(browsing())

        assert monitor.commands == ["info usb"]

    def test_select_attaches_device(self, monitor):
        line = host_line(monitor, 0)
        picker = FakePicker([PickerResult.selected(line)])
        state = browsing(Mode.ATTACH)

        DialogController(monitor, picker).step(state)

        assert monitor.commands == [
            "info usbhost",
            "device_add usb-host,hostbus=2,hostport=3.3,id=usb2_3.3",
        ]
        assert state.mode is Mode.ATTACH

    def test_switch_mode_alternates(self, monitor):
        picker = FakePicker([PickerResult.switch_mode()] * 5)
        state = browsing()
        controller = DialogController(monitor, picker)

        modes = []
        for _ in range(5):
            controller.step(state)
            modes.append(state.mode)

        assert modes == [
            Mode.ATTACH,
            Mode.DETACH,
            Mode.ATTACH,
            Mode.DETACH,
            Mode.ATTACH,
        ]
        assert state.vmid == 100

    def test_cancel_returns_to_vm_list(self, monitor):
        picker = FakePicker([PickerResult.cancelled()])
        state = browsing(Mode.ATTACH)

        assert DialogController(monitor, picker).step(state) is True

        assert state.vmid is None
        assert state.vm_name == ""

    def test_listing_failure_shows_empty_listing(self):
        monitor = FakeMonitor({"info usb": MonitorError("VM 100 not running")})
        picker = FakePicker([PickerResult.cancelled()])

        DialogController(monitor, picker).step(browsing())

        assert picker.calls[0]["listing"] == GUEST_HEADER

    def test_host_listing_failure_shows_empty_listing(self):
        monitor = FakeMonitor({"info usbhost": MonitorError("VM 100 not running")})
        picker = FakePicker([PickerResult.cancelled()])

        DialogController(monitor, picker).step(browsing(Mode.ATTACH))

        assert picker.calls[0]["listing"] == HOST_HEADER

    def test_apply_uses_given_vm(self, monitor):
        line = guest_line(monitor, 0)
        controller = DialogController(monitor, FakePicker([]))

        controller.apply(Mode.DETACH, 101, line)

        assert monitor.calls == [(101, "device_del tablet")]

    def test_device_listing_for_mode(self, monitor):
        controller = DialogController(monitor, FakePicker([]))
        host = controller.device_listing(Mode.ATTACH, 100)
        guest = controller.device_listing(Mode.DETACH, 100)
        assert host.splitlines()[0] == HOST_HEADER
        assert guest.splitlines()[0] == GUEST_HEADER
        assert monitor.calls == [(100, "info usbhost"), (100, "info usb")]

    def test_switch_from_empty_guest_listing(self):
        monitor = FakeMonitor({"info usb": ""})
        picker = FakePicker([PickerResult.switch_mode()])
        state = browsing()

        assert DialogController(monitor, picker).step(state) is True

        assert picker.calls[0]["listing"] == GUEST_HEADER
        assert state.vmid == 100
        assert state.mode is Mode.ATTACH

    def test_mutation_failure_keeps_dialog_running(self, monitor):
        line = guest_line(monitor, 0)
        monitor.responses["device_del tablet"] = MonitorError("session closed")
        picker = FakePicker([PickerResult.selected(line)])
        state = browsing()

        assert DialogController(monitor, picker).step(state) is True
        assert state.vmid == 100


class TestRun:
    """Test complete dialog sessions."""

    def test_full_session(self, monitor):
        line = host_line(monitor, 1)
        picker = FakePicker(
            [
                PickerResult.selected(DEBIAN_LINE),
                PickerResult.switch_mode(),
                PickerResult.selected(line),
                PickerResult.cancelled(),
                PickerResult.cancelled(),
            ]
        )

        DialogController(monitor, picker).run(DialogState())

        assert monitor.calls == [
            (100, "info usb"),
            (100, "info usbhost"),
            (100, "device_add usb-host,hostbus=1,hostport=1.2,id=usb1_1.2"),
            (100, "info usbhost"),
        ]
        assert [call["prompt"] for call in picker.calls] == [
            "Choose VM: ",
            "Detach from VM 100 (debian): ",
            "Attach to VM 100 (debian): ",
            "Attach to VM 100 (debian): ",
            "Choose VM: ",
        ]
        assert picker.results == []

    def test_start_with_vm(self, monitor):
        picker = FakePicker([PickerResult.cancelled(), PickerResult.cancelled()])

        DialogController(monitor, picker).run(browsing())

        assert picker.calls[0]["prompt"] == "Detach from VM 100 (debian): "
        assert picker.calls[1]["prompt"] == "Choose VM: "

    def test_never_browses_without_vm(self, monitor):
        picker = FakePicker(
            [
                PickerResult.selected(DEBIAN_LINE),
                PickerResult.cancelled(),
                PickerResult.cancelled(),
            ]
        )

        DialogController(monitor, picker).run(DialogState())

        for shown in picker.calls:
            if shown["switch_key"] is not None:
                assert "VM 100" in shown["prompt"]
