"""Configuration system for netmon.

This module implements the configuration schema using Pydantic for
validation, with support for environment variable resolution and fail-fast
validation with actionable error messages. Every section has defaults, so
netmon runs without a configuration file.
"""

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Annotated, Final

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from netmon.utils.template import validate_template

# Matches ${VARIABLE_NAME} syntax where VARIABLE_NAME can contain letters, digits, and underscores
ENV_VAR_PATTERN: Final[re.Pattern[str]] = re.compile(r"\$\{([A-Z0-9_]+)\}")

DEFAULT_DATA_FILE: Final[Path] = Path("~/.netmon/metrics.json")


class MonitoringConfig(BaseModel):
    """Configuration for reachability sampling and outage detection.

    Defines the probed host, sampling cadence, probe bounds, data file
    location, retention ceiling and the outage detector thresholds.
    """

    host: Annotated[
        str,
        Field(
            min_length=1,
            description="Host to ping",
        ),
    ] = "8.8.8.8"
    dns_query_host: Annotated[
        str,
        Field(
            min_length=1,
            description="Hostname resolved on every tick to measure DNS health",
        ),
    ] = "google.com"
    interval: Annotated[
        float,
        Field(
            gt=0,
            description="Sampling interval in seconds",
        ),
    ] = 30.0
    ping_count: Annotated[
        int,
        Field(
            ge=1,
            le=100,
            description="Echo requests sent per tick",
        ),
    ] = 5
    probe_timeout: Annotated[
        float,
        Field(
            gt=0,
            description="Upper bound in seconds for each sub-probe",
        ),
    ] = 10.0
    data_file: Annotated[
        Path,
        Field(
            description="Sample document path; outage document and lock file sit beside it",
        ),
    ] = DEFAULT_DATA_FILE
    retention: Annotated[
        int,
        Field(
            ge=1,
            description="Maximum number of samples kept on disk",
        ),
    ] = 100_000
    outage_debounce: Annotated[
        int,
        Field(
            ge=1,
            description="Consecutive outage samples required to open an outage",
        ),
    ] = 2
    outage_packet_loss_threshold: Annotated[
        float,
        Field(
            gt=0,
            le=100,
            description="Packet loss percentage that counts as an outage when DNS also fails",
        ),
    ] = 50.0

    @field_validator("data_file", mode="after")
    @classmethod
    def expand_data_file(cls, v: Path) -> Path:
        """Expand a leading ``~`` in the data file path.

        Args:
            v: Data file path

        Returns:
            Expanded path

        Raises:
            ValueError: If the path names a directory
        """
        expanded = v.expanduser()
        if expanded.is_dir():
            msg = f"Data file path is a directory: {expanded}"
            raise ValueError(msg)
        return expanded


class NotificationsConfig(BaseModel):
    """Configuration for outage notifications."""

    enabled: Annotated[
        bool,
        Field(
            description="Master switch for outage notifications",
        ),
    ] = True
    on_outage_start: Annotated[
        bool,
        Field(
            description="Notify when an outage is detected",
        ),
    ] = True
    on_outage_end: Annotated[
        bool,
        Field(
            description="Notify when connectivity is restored",
        ),
    ] = True
    min_outage_duration: Annotated[
        float,
        Field(
            ge=0,
            description="Suppress recovery notifications for outages shorter than this many seconds",
        ),
    ] = 0.0
    outage_start_template: Annotated[
        str,
        Field(
            min_length=1,
            description="Message sent when an outage is detected",
        ),
    ] = "{outage_type} outage - {host} unreachable"
    outage_end_template: Annotated[
        str,
        Field(
            min_length=1,
            description="Message sent when connectivity is restored",
        ),
    ] = "Connection to {host} restored after {duration}"

    @field_validator("outage_start_template", "outage_end_template", mode="after")
    @classmethod
    def validate_templates(cls, v: str) -> str:
        """Reject templates with unknown placeholders.

        Raises:
            ValueError: If the template uses an unknown placeholder
        """
        return validate_template(v)


class ApplicationConfig(BaseModel):
    """Configuration for application-level settings.

    Defines logging level, syslog integration and an optional log file.
    """

    log_level: Annotated[
        str,
        Field(
            description="Logging level",
            pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        ),
    ] = "INFO"
    syslog_enabled: Annotated[
        bool,
        Field(
            description="Enable syslog integration",
        ),
    ] = False
    log_file: Annotated[
        Path | None,
        Field(
            description="Optional log file (rotated)",
        ),
    ] = None


class MainConfig(BaseModel):
    """Main application configuration schema.

    Top-level configuration container aggregating all configuration sections:
    - monitoring: Sampling, storage and outage detection settings
    - notifications: Outage notification behavior
    - application: Application-level settings
    """

    monitoring: Annotated[
        MonitoringConfig,
        Field(
            description="Reachability monitoring configuration",
        ),
    ] = MonitoringConfig()
    notifications: Annotated[
        NotificationsConfig,
        Field(
            description="Outage notification configuration",
        ),
    ] = NotificationsConfig()
    application: Annotated[
        ApplicationConfig,
        Field(
            description="Application-level configuration",
        ),
    ] = ApplicationConfig()


class EnvironmentVariableError(Exception):
    """Exception raised when environment variable resolution fails."""


class ConfigurationError(Exception):
    """Exception raised when configuration loading or validation fails.

    This exception provides detailed, actionable error messages for configuration
    issues including file not found, YAML parsing errors, and validation failures.
    """


def resolve_env_var(value: str) -> str:
    """Resolve environment variable references in a string value.

    Args:
        value: String potentially containing ${VARIABLE_NAME} references

    Returns:
        String with environment variables resolved

    Raises:
        EnvironmentVariableError: If a referenced environment variable is missing

    Examples:
        >>> os.environ["NETMON_HOST"] = "1.1.1.1"
        >>> resolve_env_var("${NETMON_HOST}")
        '1.1.1.1'
    """

    def replace_match(match: re.Match[str]) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)
        if env_value is None:
            msg = (
                f"Required environment variable '{var_name}' is not set. "
                f"Please set this variable before starting the application."
            )
            raise EnvironmentVariableError(msg)
        return env_value

    return ENV_VAR_PATTERN.sub(replace_match, value)


def resolve_env_vars_in_dict(data: Mapping[str, object]) -> dict[str, object]:
    """Recursively resolve environment variables in a dictionary.

    Traverses nested dictionaries and lists, resolving references in string
    values. Non-string values are preserved as-is.

    Raises:
        EnvironmentVariableError: If a referenced environment variable is missing
    """
    result: dict[str, object] = {}

    for key, value in data.items():
        if isinstance(value, str):
            result[key] = resolve_env_var(value)
        elif isinstance(value, dict):
            # YAML data is untyped at load time; validated by Pydantic after resolution
            result[key] = resolve_env_vars_in_dict(value)  # pyright: ignore[reportUnknownArgumentType]  # YAML boundary
        elif isinstance(value, list):
            resolved_list: list[object] = []
            for item in value:  # pyright: ignore[reportUnknownVariableType]  # YAML list items
                if isinstance(item, str):
                    resolved_list.append(resolve_env_var(item))
                elif isinstance(item, dict):
                    resolved_list.append(resolve_env_vars_in_dict(item))  # pyright: ignore[reportUnknownArgumentType]  # YAML boundary
                else:
                    resolved_list.append(item)  # pyright: ignore[reportUnknownArgumentType]  # YAML primitives
            result[key] = resolved_list
        else:
            result[key] = value

    return result


def format_validation_error(error: ValidationError, config_path: Path) -> str:
    """Render a pydantic validation error as field-level diagnostics."""
    error_lines = ["Configuration validation failed:", ""]
    for item in error.errors():
        field_path = " → ".join(str(loc) for loc in item["loc"])
        error_lines.append(f"  Field: {field_path}")
        error_lines.append(f"  Error: {item['msg']}")
        error_lines.append(f"  Type: {item['type']}")
        error_lines.append("")

    error_lines.append(f"Configuration file: {config_path}")
    error_lines.append("Please fix the above errors and try again.")
    return "\n".join(error_lines)


def load_main_config(config_path: Path) -> MainConfig:
    """Load and validate application configuration from a YAML file.

    Args:
        config_path: Path to the configuration YAML file

    Returns:
        Validated MainConfig instance

    Raises:
        ConfigurationError: If the file cannot be loaded or is invalid

    Examples:
        >>> config = load_main_config(Path("netmon.yaml"))
        >>> print(config.monitoring.host)
        8.8.8.8
    """
    if not config_path.exists():
        msg = (
            f"Configuration file not found: {config_path}\n"
            f"Please create a configuration file at this location."
        )
        raise ConfigurationError(msg)

    try:
        with config_path.open("r") as f:
            raw_data: object = yaml.safe_load(f)  # pyright: ignore[reportAny]  # YAML boundary
    except yaml.YAMLError as e:
        msg = (
            f"Failed to parse YAML configuration file: {config_path}\n"
            f"YAML parsing error: {e}\n"
            f"Please check the file for syntax errors."
        )
        raise ConfigurationError(msg) from e
    except OSError as e:
        msg = f"Failed to read configuration file: {config_path}\nError: {e}\nPlease check file permissions."
        raise ConfigurationError(msg) from e

    # An empty file is a valid "all defaults" configuration
    if raw_data is None:
        raw_data = {}

    if not isinstance(raw_data, dict):
        msg = (
            f"Invalid configuration file format: {config_path}\n"
            f"Expected YAML dictionary at root level, got: {type(raw_data).__name__}\n"
            f"Configuration file must contain key-value pairs."
        )
        raise ConfigurationError(msg)

    try:
        resolved_data = resolve_env_vars_in_dict(raw_data)  # pyright: ignore[reportUnknownArgumentType]  # YAML boundary
    except EnvironmentVariableError as e:
        msg = (
            f"Environment variable resolution failed in: {config_path}\n"
            f"{e}\n"
            f"Set the required environment variable before starting the application."
        )
        raise ConfigurationError(msg) from e

    try:
        config = MainConfig.model_validate(resolved_data)
    except ValidationError as e:
        raise ConfigurationError(format_validation_error(e, config_path)) from e

    return config


def apply_overrides(config: MainConfig, overrides: Mapping[str, object]) -> MainConfig:
    """Return a copy of ``config`` with monitoring overrides applied.

    ``None`` values are ignored so unset CLI options leave configuration as is.

    Raises:
        ConfigurationError: If an override fails validation
    """
    updates = {key: value for key, value in overrides.items() if value is not None}
    if not updates:
        return config

    merged = config.monitoring.model_dump() | updates
    try:
        monitoring = MonitoringConfig.model_validate(merged)
    except ValidationError as e:
        raise ConfigurationError(format_validation_error(e, Path("<command line>"))) from e
    return config.model_copy(update={"monitoring": monitoring})
