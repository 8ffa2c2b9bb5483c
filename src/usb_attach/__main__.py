"""Interface for ``python -m usb_attach``."""

import logging
import sys
from collections.abc import Sequence

import typer

from . import __version__
from .config import UsbAttachConfig, get_config
from .dialog import DialogController
from .errors import MonitorError, ToolMissingError
from .inventory import GUEST_HEADER, HOST_HEADER, guest_listing, host_listing
from .models import DialogState, Listing
from .monitor import Monitor
from .picker import Picker
from .utility import check_tools
from .vms import find_running_vm, vm_listing

__all__ = ["main"]

app = typer.Typer(
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)
logger = logging.getLogger(__name__)

PROG_NAME = "usb-attach"
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def version_callback(value: bool) -> None:
    """Print the program name and version, then stop."""
    if not value:
        return
    typer.echo(f"{PROG_NAME} {__version__}")
    raise typer.Exit()


def setup_logging() -> None:
    """Send debug logging to stderr, stdout carries the listings."""
    logging.basicConfig(
        level=logging.DEBUG,
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )


def print_listing(listing: Listing, vmid: int | None, config: UsbAttachConfig):
    """Print one listing and nothing else, for the picker's reload binding."""
    if listing is Listing.VMS:
        typer.echo(vm_listing(config))
        return

    if vmid is None:
        typer.echo(f"The {listing.value} listing needs a VM id", err=True)
        raise typer.Exit(2)

    if listing is Listing.HOST:
        fetch, header = host_listing, HOST_HEADER
    else:
        fetch, header = guest_listing, GUEST_HEADER
    try:
        text = fetch(Monitor(config), vmid)
    except MonitorError as e:
        logger.error(f"Cannot list devices: {e}")
        text = header
    typer.echo(text)


def initial_state(vmid: int | None, config: UsbAttachConfig) -> DialogState:
    """Start on the given VM's devices if it is running, else on the VM list."""
    state = DialogState()
    if vmid is None:
        return state

    vm = find_running_vm(vmid, config)
    if vm is None:
        typer.echo(f'No VM with id "{vmid}" is running.')
    else:
        state.choose_vm(vm)
    return state


@app.command()
def usb_attach(
    vmid: int | None = typer.Argument(
        None, help="Id of a running VM, shows its attached devices"
    ),
    listing: Listing | None = typer.Option(
        None,
        "--list",
        help="Print a single listing and exit (host and guest need a VM id)",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """Attach and detach host USB devices to running VMs."""
    if debug:
        setup_logging()

    config = get_config()

    if listing is not None:
        print_listing(listing, vmid, config)
        return

    try:
        check_tools(config.required_tools)
    except ToolMissingError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(1) from e

    state = initial_state(vmid, config)
    controller = DialogController(Monitor(config), Picker(config), config)
    controller.run(state)


def main(args: Sequence[str] | None = None) -> None:
    """Argument parser for the CLI."""
    try:
        app(args=args)
    except RuntimeError as e:
        typer.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
