"""
Adapter for the fzf fuzzy finder used as the interactive picker.

fzf gets the listing on stdin and treats its first line as a header. When
``--expect`` is given it prints the key that ended the selection (empty for
Enter) on the first output line and the selected line on the second.
"""

import logging
import shlex
import subprocess
import sys

from .config import UsbAttachConfig
from .errors import PickerError
from .models import Listing, PickerResult

logger = logging.getLogger(__name__)

# fzf exit codes for "no match" and "interrupted with Esc or Ctrl-C"
FZF_NO_MATCH = 1
FZF_INTERRUPTED = 130


def reload_command(listing: Listing, vmid: int | None = None) -> str:
    """
    The shell command the picker runs to refresh its listing.

    It re-invokes this program in listing-only mode with the same interpreter.
    """
    command = [sys.executable, "-m", "usb_attach", "--list", listing.value]
    if vmid is not None:
        command.append(str(vmid))
    return shlex.join(command)


def interpret_output(output: str, switch_key: str | None = None) -> PickerResult:
    """
    Turn fzf's stdout into a PickerResult.

    Raises:
        PickerError: If fzf reports a key other than Enter or the switch key
    """
    if not output.strip():
        return PickerResult.cancelled()

    lines = output.splitlines()
    if switch_key is None:
        return PickerResult.selected(lines[0])

    key = lines[0]
    line = lines[1] if len(lines) > 1 else ""
    if key == switch_key:
        return PickerResult.switch_mode()
    if key:
        raise PickerError(f"Unexpected key from picker: {key!r}")
    if not line:
        return PickerResult.cancelled()
    return PickerResult.selected(line)


class Picker:
    """Runs fzf over a listing and reports what the user chose."""

    def __init__(self, config: UsbAttachConfig | None = None):
        self.config = config or UsbAttachConfig()

    def command(
        self, prompt: str, header: str, reload: str, switch_key: str | None = None
    ) -> list[str]:
        command = [
            self.config.picker_command,
            "--ansi",
            "--no-info",
            "--layout=reverse",
            "--header",
            header,
            "--header-lines",
            "1",
            "--prompt",
            prompt,
            "--bind",
            f"{self.config.refresh_key}:reload({reload})",
        ]
        if switch_key:
            command.append(f"--expect={switch_key}")
        return command

    def pick(
        self,
        listing: str,
        prompt: str,
        header: str,
        reload: str,
        switch_key: str | None = None,
    ) -> PickerResult:
        """
        Show ``listing`` and wait for the user.

        Args:
            listing: Header line followed by one selectable line per record
            prompt: Prompt shown on the input line
            header: Key binding help shown above the listing
            reload: Shell command that prints a fresh listing
            switch_key: Key that asks to switch mode, None to not offer one

        Returns:
            The user's choice.

        Raises:
            PickerError: If fzf fails or reports an unexpected key
        """
        command = self.command(prompt, header, reload, switch_key)
        logger.debug(f"Running picker: {prompt!r}")
        # stdin and stdout are ours, fzf draws on the terminal itself
        result = subprocess.run(
            command,
            input=listing,
            stdout=subprocess.PIPE,
            text=True,
            check=False,
        )

        if result.returncode == FZF_INTERRUPTED:
            logger.debug("Picker interrupted")
            return PickerResult.cancelled()
        # with nothing to select fzf exits 1 but still reports the expected key
        if result.returncode not in (0, FZF_NO_MATCH):
            raise PickerError(
                f"{self.config.picker_command} failed with exit code "
                f"{result.returncode}"
            )

        choice = interpret_output(result.stdout, switch_key)
        logger.debug(f"Picker result: {choice.action.value} {choice.line!r}")
        return choice
