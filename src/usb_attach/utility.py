"""Utility functions for subprocess operations."""

import logging
import shutil
import subprocess
from collections.abc import Iterable

from .errors import ToolMissingError

logger = logging.getLogger(__name__)


def run_command(
    command: list[str],
    capture_output: bool = True,
    text: bool = True,
    check: bool = True,
) -> subprocess.CompletedProcess:
    """
    Run a hypervisor command such as 'qm list' and collect its output.

    Args:
        command: Program and arguments
        capture_output: Capture stdout and stderr instead of inheriting them
        text: Decode the output as text
        check: Treat a non-zero exit code as an error

    Returns:
        The finished process

    Raises:
        RuntimeError: If check=True and the command returns non-zero
    """
    logger.debug(f"Running command: {' '.join(command)}")
    try:
        return subprocess.run(
            command,
            capture_output=capture_output,
            text=text,
            check=check,
        )
    except subprocess.CalledProcessError as e:
        logger.error(
            f"Command '{' '.join(command)}' failed with exit code {e.returncode}"
        )
        logger.debug(f"Stdout: {e.stdout}")
        logger.debug(f"Stderr: {e.stderr}")
        raise RuntimeError(e.stderr) from e


def check_tools(tools: Iterable[str]) -> None:
    """
    Verify that every external program in ``tools`` is on PATH.

    Raises:
        ToolMissingError: For the first program that cannot be found
    """
    for tool in tools:
        if shutil.which(tool) is None:
            raise ToolMissingError(tool)
        logger.debug(f"Found required tool: {tool}")
