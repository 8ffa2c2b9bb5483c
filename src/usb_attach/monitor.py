"""
Module for running commands on a VM's QEMU human monitor.

Every call opens a fresh ``qm monitor <vmid>`` session, sends one command,
collects everything printed before the next prompt and closes the session.
"""

import logging
import os

import pexpect

from .config import UsbAttachConfig
from .errors import MonitorError

logger = logging.getLogger(__name__)


def clean_response(raw: str) -> str:
    """Drop carriage returns and the echoed command (the first line)."""
    lines = raw.replace("\r", "").split("\n")
    return "\n".join(lines[1:])


class Monitor:
    """Sends single commands to the monitor console of a VM."""

    def __init__(self, config: UsbAttachConfig | None = None):
        self.config = config or UsbAttachConfig()

    def _spawn(self, vmid: int) -> pexpect.spawn:
        command, *args = self.config.monitor_command
        # no TERM so the console does not emit ANSI sequences
        env = dict(os.environ, TERM="")
        return pexpect.spawn(
            command,
            [*args, str(vmid)],
            env=env,
            encoding="utf-8",
            timeout=self.config.timeout,
        )

    def run(self, vmid: int, command: str) -> str:
        """
        Run one monitor command on a VM.

        Args:
            vmid: The VM whose monitor receives the command
            command: The monitor command, e.g. "info usbhost"

        Returns:
            The response text without the echoed command.

        Raises:
            MonitorError: If the session cannot be started or the prompt
                never appears
        """
        prompt = self.config.monitor_prompt
        logger.debug(f"VM {vmid} monitor: {command}")

        try:
            child = self._spawn(vmid)
        except pexpect.ExceptionPexpect as e:
            raise MonitorError(f"Cannot open monitor of VM {vmid}: {e}") from e

        try:
            child.expect_exact(prompt)
            child.sendline(command)
            child.expect_exact(prompt)
            output = child.before or ""
            child.sendline("quit")
        except (pexpect.EOF, pexpect.TIMEOUT) as e:
            raise MonitorError(
                f"Monitor of VM {vmid} did not answer '{command}': {e}"
            ) from e
        finally:
            child.close(force=True)

        response = clean_response(output)
        logger.debug(f"VM {vmid} monitor response:\n{response}")
        return response
