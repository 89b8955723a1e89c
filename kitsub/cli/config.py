"""
User configuration for the Kitsub CLI.

Configuration is read from a YAML file (``--config PATH`` or
``<user config dir>/config.yaml``). Command-line flags override file values,
which override built-in defaults.

Example config.yaml:

    tools:
      prefer_bundled: true
      prefer_path: false
      cache_dir: D:/kitsub-tools
      mkvmerge: C:/Program Files/MKVToolNix/mkvmerge.exe
    startup:
      prompt_enabled: true
      auto_update: true
      prompt_on_startup: true
      check_interval_hours: 24
    logging:
      level: info
      file: kitsub.log
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from kitsub.cli.utils import load_yaml_config
from kitsub.core.directory import get_user_config_dir
from kitsub.core.exceptions import ConfigurationError
from kitsub.tooling.resolution import ResolveOptions, ToolOverrides
from kitsub.tooling.startup import DEFAULT_CHECK_INTERVAL_HOURS, StartupOptions

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.yaml"
LOG_LEVELS = ("debug", "info", "warning", "error")


@dataclass
class ToolsConfig:
    prefer_bundled: bool = True
    prefer_path: bool = False
    cache_dir: Optional[str] = None
    manifest: Optional[str] = None
    ffmpeg: Optional[str] = None
    ffprobe: Optional[str] = None
    mkvmerge: Optional[str] = None
    mkvpropedit: Optional[str] = None


@dataclass
class StartupConfig:
    prompt_enabled: bool = True
    auto_update: bool = False
    prompt_on_startup: bool = True
    check_interval_hours: int = DEFAULT_CHECK_INTERVAL_HOURS


@dataclass
class LoggingConfig:
    level: Optional[str] = None
    file: Optional[str] = None


@dataclass
class AppConfig:
    """
    Effective configuration file contents.

    Attributes:
        path: File the configuration was read from
        found: Whether that file exists
    """

    tools: ToolsConfig = field(default_factory=ToolsConfig)
    startup: StartupConfig = field(default_factory=StartupConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    path: Optional[Path] = None
    found: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppConfig":
        """
        Build configuration from a parsed YAML mapping.

        Raises:
            ConfigurationError: If a section or value has the wrong type
        """
        tools = _section(data, "tools")
        startup = _section(data, "startup")
        log = _section(data, "logging")

        config = cls(
            tools=ToolsConfig(
                prefer_bundled=_bool(tools, "tools.prefer_bundled", True),
                prefer_path=_bool(tools, "tools.prefer_path", False),
                cache_dir=_str(tools, "tools.cache_dir"),
                manifest=_str(tools, "tools.manifest"),
                ffmpeg=_str(tools, "tools.ffmpeg"),
                ffprobe=_str(tools, "tools.ffprobe"),
                mkvmerge=_str(tools, "tools.mkvmerge"),
                mkvpropedit=_str(tools, "tools.mkvpropedit"),
            ),
            startup=StartupConfig(
                prompt_enabled=_bool(startup, "startup.prompt_enabled", True),
                auto_update=_bool(startup, "startup.auto_update", False),
                prompt_on_startup=_bool(startup, "startup.prompt_on_startup", True),
                check_interval_hours=_int(
                    startup, "startup.check_interval_hours", DEFAULT_CHECK_INTERVAL_HOURS
                ),
            ),
            logging=LoggingConfig(
                level=_str(log, "logging.level"),
                file=_str(log, "logging.file"),
            ),
        )

        if config.logging.level and config.logging.level.lower() not in LOG_LEVELS:
            raise ConfigurationError(
                f"logging.level must be one of {', '.join(LOG_LEVELS)}, "
                f"got '{config.logging.level}'"
            )
        return config


def default_config_path() -> Path:
    return get_user_config_dir() / CONFIG_FILE_NAME


def load_app_config(config_file: Optional[Path] = None) -> AppConfig:
    """
    Load the configuration file.

    An explicit path must exist; the default path is optional.

    Raises:
        ConfigurationError: If the file is missing (explicit path only) or invalid
    """
    path = Path(config_file) if config_file else default_config_path()
    data = load_yaml_config(path, required=config_file is not None)

    config = AppConfig.from_dict(data)
    config.path = path
    config.found = path.exists()
    return config


# ============================================================================
# Effective Options
# ============================================================================


def _flag(args, name: str, fallback):
    value = getattr(args, name, None)
    return fallback if value is None else value


def build_overrides(args, config: AppConfig) -> ToolOverrides:
    """Tool overrides from flags, falling back to the config file."""
    return ToolOverrides(
        ffmpeg=_flag(args, "ffmpeg", config.tools.ffmpeg),
        ffprobe=_flag(args, "ffprobe", config.tools.ffprobe),
        mkvmerge=_flag(args, "mkvmerge", config.tools.mkvmerge),
        mkvpropedit=_flag(args, "mkvpropedit", config.tools.mkvpropedit),
    )


def build_resolve_options(
    args, config: AppConfig, allow_provisioning: Optional[bool] = None
) -> ResolveOptions:
    """
    Resolve options from flags, falling back to the config file.

    Provisioning is allowed unless --no-provision is given or the caller
    overrides it.
    """
    if allow_provisioning is None:
        allow_provisioning = not getattr(args, "no_provision", False)

    return ResolveOptions(
        allow_provisioning=allow_provisioning,
        prefer_bundled=_flag(args, "prefer_bundled", config.tools.prefer_bundled),
        prefer_path=_flag(args, "prefer_path", config.tools.prefer_path),
        cache_dir=_flag(args, "tools_cache_dir", config.tools.cache_dir),
        dry_run=getattr(args, "dry_run", False),
        verbose=getattr(args, "verbose", False),
    )


def build_startup_options(args, config: AppConfig) -> StartupOptions:
    return StartupOptions(
        startup_prompt_enabled=config.startup.prompt_enabled,
        auto_update=config.startup.auto_update,
        update_prompt_on_startup=config.startup.prompt_on_startup,
        check_interval_hours=config.startup.check_interval_hours,
        force_update_check=getattr(args, "check_updates", False),
        no_provision=getattr(args, "no_provision", False),
        no_startup_prompt=getattr(args, "no_startup_prompt", False),
        is_help_invocation=not getattr(args, "command", None),
    )


# ============================================================================
# Value Helpers
# ============================================================================


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"Config section '{name}' must be a mapping")
    return section


def _bool(section: Dict[str, Any], key: str, default: bool) -> bool:
    value = section.get(key.split(".")[-1])
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ConfigurationError(f"{key} must be true or false, got {value!r}")
    return value


def _int(section: Dict[str, Any], key: str, default: int) -> int:
    value = section.get(key.split(".")[-1])
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{key} must be an integer, got {value!r}")
    return value


def _str(section: Dict[str, Any], key: str) -> Optional[str]:
    value = section.get(key.split(".")[-1])
    if value is None:
        return None
    if not isinstance(value, (str, int, float)) or isinstance(value, bool):
        raise ConfigurationError(f"{key} must be a string, got {value!r}")
    value = str(value).strip()
    return value or None


__all__ = [
    "AppConfig",
    "CONFIG_FILE_NAME",
    "LoggingConfig",
    "StartupConfig",
    "ToolsConfig",
    "build_overrides",
    "build_resolve_options",
    "build_startup_options",
    "default_config_path",
    "load_app_config",
]
