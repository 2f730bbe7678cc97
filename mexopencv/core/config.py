"""This module defines the runtime configuration of the mexopencv bindings.

The `Config` class is a Pydantic model that validates and manages the settings
that influence every adapter call: the identifier tags attached to errors and
warnings, logging behaviour, the default channel order used when images cross
the host boundary, OpenCV threading switches, and the packages scanned for
adapters. Values are read from a TOML file; the packaged ``config.toml`` is
used unless the ``MEXOPENCV_CONFIG`` environment variable points elsewhere.

Classes:
    Config: A Pydantic model for storing and validating configuration parameters.

Functions:
    load_toml: Load and validate a TOML configuration file.
    get_config: Return the process-wide configuration, loading it on first use.
"""

import logging
import os
from pathlib import Path

import toml as tomllib
import typing_extensions
from pydantic import (
    BaseModel,
    ConfigDict,
    StrictBool,
    StrictInt,
    StrictStr,
    model_validator,
)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.toml"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Config(BaseModel):  # type: ignore
    """Configuration model for the mexopencv bindings.

    Attributes:
        error_id: Identifier tag attached to every error, ``component:mnemonic``.
        warning_id: Identifier tag attached to every warning.
        log_level: Name of the logging level used by the command line entry.
        log_file: Whether the command line entry also logs to a per-user file.
        flip_channels: Default of the ``FlipChannels`` option, i.e. whether
            colour images are exchanged in RGB order with the host.
        num_threads: Value passed to ``cv2.setNumThreads``; -1 keeps OpenCV's default.
        use_optimized: Value passed to ``cv2.setUseOptimized``.
        adapter_packages: Packages scanned for adapter modules.
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    # ------------------------------Host error reporting------------------------------
    error_id: StrictStr = "mexopencv:error"
    warning_id: StrictStr = "mexopencv:warning"

    # ------------------------------Logging------------------------------
    log_level: StrictStr = "INFO"
    log_file: StrictBool = False

    # ------------------------------Marshaling------------------------------
    # Host images are RGB, OpenCV images are BGR
    flip_channels: StrictBool = True

    # ------------------------------OpenCV runtime------------------------------
    num_threads: StrictInt = -1
    use_optimized: StrictBool = True

    # ------------------------------Adapter discovery------------------------------
    adapter_packages: list[StrictStr] = ["mexopencv.functions", "mexopencv.classes"]

    @model_validator(mode="after")
    def check_identifiers(self) -> typing_extensions.Self:
        """Validates the identifier tags.

        Both tags must look like ``component:mnemonic`` with non-empty parts.

        Returns:
            Self: The instance itself, for method chaining.
        """
        for tag in (self.error_id, self.warning_id):
            component, _, mnemonic = tag.partition(":")
            if not component or not mnemonic:
                raise ValueError(f"Identifier '{tag}' must have the form component:mnemonic")
        return self

    @model_validator(mode="after")
    def check_log_level(self) -> typing_extensions.Self:
        """Validates that log_level names a standard logging level."""
        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return self

    @model_validator(mode="after")
    def check_num_threads(self) -> typing_extensions.Self:
        """Validates num_threads, which is -1 or a non-negative count."""
        if self.num_threads < -1:
            raise ValueError("num_threads must be -1 or greater")
        return self

    @model_validator(mode="after")
    def check_adapter_packages(self) -> typing_extensions.Self:
        """Validates that at least one adapter package is configured."""
        if not self.adapter_packages:
            raise ValueError("adapter_packages must list at least one package")
        return self


def load_toml(file_path: Path) -> Config:
    """Load configuration parameters from a TOML file.

    Args:
        file_path: The file path of the TOML configuration file.

    Returns:
        The validated configuration.
    """
    toml_data = tomllib.load(file_path)
    return Config(**toml_data)


_config: Config | None = None


def get_config() -> Config:
    """Return the process-wide configuration, loading it on first use."""
    global _config
    if _config is None:
        file_path = Path(os.getenv("MEXOPENCV_CONFIG", DEFAULT_CONFIG_PATH))
        logging.info(f"Loading configuration from: {file_path}")
        _config = load_toml(file_path)
    return _config


def set_config(config: Config | None) -> None:
    """Replace the process-wide configuration; ``None`` forces a reload on next use."""
    global _config
    _config = config
