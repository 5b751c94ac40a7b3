"""Configuration management with Pydantic.

Settings for walking and exporting graphs can be supplied in code, loaded
from a YAML (or JSON) file, and overridden through ``LEVELDAG_*`` environment
variables. The reserved name of the synthetic root lives here as a constant;
it is not configurable.
"""

import os
import threading
from pathlib import Path
from typing import Literal

import structlog
import yaml
from pydantic import BaseModel, Field, field_validator

logger = structlog.get_logger(__name__)

# Name given to the synthetic root node; rejected as a user object name.
ROOT_NAME = "__ROOT__"

DEFAULT_CONFIG_FILES = ("leveldag.yaml", "leveldag.yml", "leveldag.json")


class WalkConfig(BaseModel):
    """Walk execution settings.

    Attributes:
        max_concurrency: Upper bound on actions in flight within one level.
            ``None`` dispatches every node of a level at once.
    """

    max_concurrency: int | None = Field(
        default=None,
        ge=1,
        description="Maximum concurrent actions per level",
    )


class ExportConfig(BaseModel):
    """Graph description settings.

    Attributes:
        default_format: Format used by ``describe`` when none is requested
        indent: Indentation placed before each statement
    """

    default_format: Literal["dot", "mermaid"] = Field(
        default="dot",
        description="Default visualization format",
    )
    indent: str = Field(
        default="    ",
        description="Statement indentation",
    )

    @field_validator("default_format", mode="before")
    @classmethod
    def normalize_format(cls, v: str) -> str:
        """Accept case-insensitive format names."""
        if isinstance(v, str):
            return v.lower().strip()
        return v

    @field_validator("indent")
    @classmethod
    def validate_indent(cls, v: str) -> str:
        """Only whitespace is allowed as indentation.

        Raises:
            ValueError: If the indent contains visible characters
        """
        if v.strip():
            msg = "Indent must contain only whitespace"
            raise ValueError(msg)
        return v


class LevelDagConfig(BaseModel):
    """Top-level leveldag configuration.

    Attributes:
        walk: Walk execution settings
        export: Graph description settings
        logging_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Render logs as JSON lines instead of console output
    """

    walk: WalkConfig = Field(default_factory=WalkConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    logging_level: str = Field(
        default="INFO",
        description="Logging level",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )
    json_logs: bool = Field(default=True, description="Emit JSON log lines")

    @field_validator("logging_level", mode="before")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        """Upper-case the logging level before pattern validation."""
        if isinstance(v, str):
            return v.upper().strip()
        return v

    @classmethod
    def from_yaml(cls, path: str | Path) -> "LevelDagConfig":
        """Load configuration from a YAML or JSON file.

        Environment overrides are applied on top of the file contents. An
        empty file yields the defaults (plus overrides).

        Args:
            path: Path to the configuration file

        Returns:
            Parsed and validated LevelDagConfig instance

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the file is not valid YAML or not a mapping
            pydantic.ValidationError: If a setting is out of range
        """
        config_path = Path(path)

        if not config_path.exists():
            msg = f"Configuration file not found: {config_path}"
            raise FileNotFoundError(msg)

        logger.info("loading_configuration", path=str(config_path))

        try:
            with config_path.open() as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.exception("yaml_parse_error", error=str(e), path=str(config_path))
            msg = f"Invalid YAML in configuration file: {e}"
            raise ValueError(msg) from e

        if not isinstance(config_data, dict):
            msg = "Configuration file must contain a mapping"
            raise ValueError(msg)

        config = cls(**cls._apply_env_overrides(config_data))

        logger.info(
            "configuration_loaded",
            max_concurrency=config.walk.max_concurrency,
            default_format=config.export.default_format,
            logging_level=config.logging_level,
        )
        return config

    @classmethod
    def from_env(cls) -> "LevelDagConfig":
        """Build a configuration from defaults and environment overrides only."""
        return cls(**cls._apply_env_overrides({}))

    @classmethod
    def _apply_env_overrides(cls, config_data: dict) -> dict:
        """Apply ``LEVELDAG_<SECTION>_<KEY>`` environment overrides.

        Args:
            config_data: Base configuration dictionary

        Returns:
            Configuration dictionary with overrides applied
        """
        env_overrides = {
            ("walk", "max_concurrency"): "LEVELDAG_WALK_MAX_CONCURRENCY",
            ("export", "default_format"): "LEVELDAG_EXPORT_DEFAULT_FORMAT",
            ("export", "indent"): "LEVELDAG_EXPORT_INDENT",
            ("logging_level",): "LEVELDAG_LOGGING_LEVEL",
            ("json_logs",): "LEVELDAG_JSON_LOGS",
        }

        for path, env_var in env_overrides.items():
            value = os.environ.get(env_var)
            if value is None:
                continue

            current = config_data
            for key in path[:-1]:
                current = current.setdefault(key, {})

            if env_var.endswith("_CONCURRENCY"):
                value = int(value) if value.strip() else None
            elif env_var.endswith("_JSON_LOGS"):
                value = value.lower() in ("true", "1", "yes")

            current[path[-1]] = value
            logger.debug(
                "env_override_applied",
                env_var=env_var,
                config_path=".".join(path),
            )

        return config_data


class ConfigManager:
    """Process-wide configuration holder."""

    _instance: LevelDagConfig | None = None
    _init_lock: threading.Lock = threading.Lock()

    @classmethod
    def load_config(cls, config_path: str | Path | None = None) -> LevelDagConfig:
        """Load configuration from a file, or from the environment alone.

        Without ``config_path`` the current directory is searched for
        ``leveldag.yaml``, ``leveldag.yml`` or ``leveldag.json``; if none
        exists the defaults plus environment overrides are used.

        Raises:
            FileNotFoundError: If an explicit ``config_path`` doesn't exist
        """
        if config_path is None:
            for default_name in DEFAULT_CONFIG_FILES:
                default_path = Path(default_name)
                if default_path.exists():
                    return LevelDagConfig.from_yaml(default_path)
            logger.debug("no_configuration_file_found")
            return LevelDagConfig.from_env()

        return LevelDagConfig.from_yaml(config_path)

    @classmethod
    def get_config(
        cls,
        config_path: str | Path | None = None,
        reload: bool = False,
    ) -> LevelDagConfig:
        """Return the shared configuration, loading it on first use."""
        if cls._instance is not None and not reload:
            return cls._instance

        with cls._init_lock:
            if cls._instance is None or reload:
                cls._instance = cls.load_config(config_path)

            return cls._instance

    @classmethod
    def reset_config(cls) -> None:
        """Forget the shared configuration."""
        cls._instance = None


def load_config(config_path: str | Path | None = None) -> LevelDagConfig:
    """Load configuration from file."""
    return ConfigManager.load_config(config_path)


def get_config(config_path: str | Path | None = None, reload: bool = False) -> LevelDagConfig:
    """Get the shared configuration instance."""
    return ConfigManager.get_config(config_path, reload)


def reset_config() -> None:
    """Reset the shared configuration instance."""
    ConfigManager.reset_config()


__all__ = [
    "ROOT_NAME",
    "ConfigManager",
    "ExportConfig",
    "LevelDagConfig",
    "WalkConfig",
    "get_config",
    "load_config",
    "reset_config",
]
