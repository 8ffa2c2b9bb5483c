"""Configuration management for usb-attach."""

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "USB_ATTACH_CONFIG"
LOCAL_CONFIG_NAME = ".usb-attach.config"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / "usb-attach" / "usb-attach.config"


class UsbAttachConfig(BaseModel):
    """Settings for the hypervisor commands and the picker."""

    model_config = ConfigDict(extra="forbid")

    # command used to open a monitor session, the VM id is appended
    monitor_command: list[str] = ["qm", "monitor"]
    monitor_prompt: str = "qm> "
    vm_list_command: list[str] = ["qm", "list"]
    picker_command: str = "fzf"
    # seconds to wait for the monitor prompt, None waits forever
    timeout: float | None = None
    refresh_key: str = "ctrl-r"
    switch_key: str = "tab"

    @property
    def required_tools(self) -> list[str]:
        """External programs that must be installed to run the dialog."""
        return [self.picker_command, self.monitor_command[0]]


def config_candidates() -> list[tuple[str, Path]]:
    """Places a config file may live, highest priority first."""
    candidates = []
    env_config = os.environ.get(CONFIG_ENV_VAR)
    if env_config:
        candidates.append((CONFIG_ENV_VAR, Path(env_config).expanduser()))
    candidates.append(("working directory", Path.cwd() / LOCAL_CONFIG_NAME))
    candidates.append(("user config", DEFAULT_CONFIG_PATH))
    return candidates


def discover_config_path() -> Path | None:
    """
    Find the config file.

    Returns:
        The first existing path from config_candidates(), or None.
    """
    for source, path in config_candidates():
        if path.is_file():
            logger.debug(f"Config from {source}: {path}")
            return path
        if source == CONFIG_ENV_VAR:
            logger.warning(f"{CONFIG_ENV_VAR} is set but {path} is not a file")

    logger.debug("No config file found, using defaults")
    return None


def get_config(config_path: Path | None = None) -> UsbAttachConfig:
    """
    Load the configuration file.

    Args:
        config_path: Path to config file. If None, it is discovered with
            discover_config_path().

    Returns:
        The validated configuration. Defaults are returned when no file
        exists or the file cannot be read or validated.
    """
    if config_path is None:
        config_path = discover_config_path()

    if config_path is None:
        return UsbAttachConfig()

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error reading config file {config_path}: {e}")
        return UsbAttachConfig()

    if data is None:
        logger.debug(f"Empty config file: {config_path}")
        return UsbAttachConfig()

    if not isinstance(data, dict):
        logger.warning(f"Invalid config in {config_path}, expected a mapping")
        return UsbAttachConfig()

    try:
        config = UsbAttachConfig.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Invalid config in {config_path}, using defaults: {e}")
        return UsbAttachConfig()

    logger.debug(f"Loaded config from {config_path}")
    return config
