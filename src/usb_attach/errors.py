"""Exception types raised by usb-attach."""


class UsbAttachError(RuntimeError):
    """Base class for usb-attach failures."""


class ToolMissingError(UsbAttachError):
    """A required external program is not installed."""

    def __init__(self, tool: str):
        self.tool = tool
        super().__init__(f"{tool} not installed")


class MonitorError(UsbAttachError):
    """The monitor session could not be opened or never completed."""


class PickerError(UsbAttachError):
    """The picker failed or returned a result we cannot interpret."""
