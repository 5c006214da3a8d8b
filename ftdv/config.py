"""YAML config loading and diff-tool classification.

Reads ``git.paging`` and ``theme`` settings once at startup. Every malformed
entry degrades to its default with a logged warning; only an explicitly
requested config file that cannot be read at all is fatal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import yaml
from platformdirs import user_config_dir

from .theme import Theme, resolve_theme

logger = logging.getLogger(__name__)

APP_NAME = "ftdv"
CONFIG_FILENAME = "config.yaml"
DEFAULT_CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
LEGACY_CONFIG_PATH = Path.home() / ".config" / APP_NAME / CONFIG_FILENAME
CONFIG_PATH = DEFAULT_CONFIG_PATH

DEFAULT_COLOR_ARG = "always"
COLOR_ARGS: tuple[str, ...] = ("always", "never", "auto")
DEFAULT_TIMEOUT_SECONDS = 10.0


class ConfigError(Exception):
    """Raised when a config document cannot be read or parsed."""


@dataclass(frozen=True)
class ExternalDiffTool:
    """Tool invoked with before/after file paths (git external-diff style)."""

    command: str
    color_arg: str = DEFAULT_COLOR_ARG


@dataclass(frozen=True)
class PagerTool:
    """Tool fed ``git diff`` output on stdin."""

    command: str
    color_arg: str = DEFAULT_COLOR_ARG


@dataclass(frozen=True)
class SystemPagerTool:
    """Defer to the pager git itself is configured to use."""

    color_arg: str = DEFAULT_COLOR_ARG


@dataclass(frozen=True)
class BuiltinTool:
    """No tool configured: show plain ``git diff`` text."""


ToolConfig = Union[ExternalDiffTool, PagerTool, SystemPagerTool, BuiltinTool]


@dataclass(frozen=True)
class AppConfig:
    tool: ToolConfig
    theme: Theme
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    warnings: tuple[str, ...] = ()


def _load_config_path() -> Path:
    """Return preferred config path, falling back to legacy location when needed."""
    if CONFIG_PATH.exists():
        return CONFIG_PATH
    if CONFIG_PATH == DEFAULT_CONFIG_PATH and LEGACY_CONFIG_PATH.exists():
        return LEGACY_CONFIG_PATH
    return CONFIG_PATH


def read_config_document(path: Path) -> dict[str, object]:
    """Read and parse one YAML document.

    Raises ``ConfigError`` when the file cannot be read, is not valid YAML, or
    does not hold a top-level mapping. An empty file is an empty mapping.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"cannot read config file {path}: {exc}") from exc
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ConfigError(f"malformed config file {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping at the top level")
    return data


def _section(data: dict[str, object], key: str, prefix: str, warnings: list[str]) -> dict[str, object]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        warnings.append(f"{prefix}{key} must be a mapping; ignoring it")
        return {}
    return value


def _string_setting(section: dict[str, object], key: str, label: str, warnings: list[str]) -> str:
    value = section.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        warnings.append(f"{label} must be a string; ignoring it")
        return ""
    return value.strip()


def _legacy_pager_command(data: dict[str, object]) -> str:
    """Translate the old ``diff_command: {command, args}`` block into a pager command."""
    legacy = data.get("diff_command")
    if not isinstance(legacy, dict):
        return ""
    command = legacy.get("command")
    if not isinstance(command, str) or not command.strip() or command.strip() == "diff":
        return ""
    args = legacy.get("args")
    if isinstance(args, list) and args:
        return " ".join([command.strip(), *(str(arg) for arg in args)])
    return command.strip()


def select_tool(data: dict[str, object], warnings: list[str]) -> ToolConfig:
    """Classify the configured diff tool.

    Precedence: ``externalDiffCommand`` > ``pager`` > ``useConfig`` > builtin.
    """
    git_section = _section(data, "git", "", warnings)
    paging = _section(git_section, "paging", "git.", warnings)

    color_arg = DEFAULT_COLOR_ARG
    raw_color_arg = paging.get("colorArg")
    if raw_color_arg is not None:
        candidate = str(raw_color_arg).strip().lower()
        if candidate in COLOR_ARGS:
            color_arg = candidate
        else:
            warnings.append(
                f"git.paging.colorArg must be one of {', '.join(COLOR_ARGS)}; using {DEFAULT_COLOR_ARG!r}"
            )

    external = _string_setting(paging, "externalDiffCommand", "git.paging.externalDiffCommand", warnings)
    if external:
        return ExternalDiffTool(external, color_arg)
    pager = _string_setting(paging, "pager", "git.paging.pager", warnings)
    if pager:
        return PagerTool(pager, color_arg)

    use_config = paging.get("useConfig", False)
    if not isinstance(use_config, bool):
        warnings.append("git.paging.useConfig must be true or false; using false")
        use_config = False
    if use_config:
        return SystemPagerTool(color_arg)

    legacy = _legacy_pager_command(data)
    if legacy:
        return PagerTool(legacy, color_arg)
    return BuiltinTool()


def _timeout_setting(data: dict[str, object], warnings: list[str]) -> float:
    git_section = data.get("git")
    paging = git_section.get("paging") if isinstance(git_section, dict) else None
    if not isinstance(paging, dict) or paging.get("timeoutSeconds") is None:
        return DEFAULT_TIMEOUT_SECONDS
    value = paging["timeoutSeconds"]
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        warnings.append(f"git.paging.timeoutSeconds must be a positive number; using {DEFAULT_TIMEOUT_SECONDS:g}")
        return DEFAULT_TIMEOUT_SECONDS
    return float(value)


def build_app_config(
    data: dict[str, object],
    *,
    no_color: bool = False,
    theme_name: str | None = None,
) -> AppConfig:
    """Turn a parsed document into an ``AppConfig`` and log each warning once.

    ``theme_name`` (from ``--theme``) takes precedence over ``theme.name``.
    """
    warnings: list[str] = []
    tool = select_tool(data, warnings)
    timeout_seconds = _timeout_setting(data, warnings)
    theme_section = _section(data, "theme", "", warnings)
    theme, theme_warnings = resolve_theme(
        theme_name if theme_name is not None else theme_section.get("name"),
        theme_section.get("colors"),
        no_color=no_color,
    )
    warnings.extend(theme_warnings)
    for message in warnings:
        logger.warning("config: %s", message)
    return AppConfig(tool=tool, theme=theme, timeout_seconds=timeout_seconds, warnings=tuple(warnings))


def load_config(
    path: Path | None = None,
    *,
    no_color: bool = False,
    theme_name: str | None = None,
) -> AppConfig:
    """Load the app config.

    ``path`` is an explicit ``--config`` file: if it cannot be read the
    ``ConfigError`` propagates. Without it the default location is used, and
    a missing file means defaults while an unreadable or malformed one is
    reported as a warning.
    """
    if path is not None:
        data = read_config_document(path)
        return build_app_config(data, no_color=no_color, theme_name=theme_name)

    config_path = _load_config_path()
    if not config_path.exists():
        return build_app_config({}, no_color=no_color, theme_name=theme_name)
    try:
        data = read_config_document(config_path)
    except ConfigError as exc:
        logger.warning("config: %s; using defaults", exc)
        config = build_app_config({}, no_color=no_color, theme_name=theme_name)
        return AppConfig(
            tool=config.tool,
            theme=config.theme,
            timeout_seconds=config.timeout_seconds,
            warnings=(f"{exc}; using defaults", *config.warnings),
        )
    return build_app_config(data, no_color=no_color, theme_name=theme_name)


def describe_tool(tool: ToolConfig) -> str:
    """Short status-bar label for the active diff tool."""
    match tool:
        case ExternalDiffTool(command=command):
            return f"{command.split()[0]} (external)"
        case PagerTool(command=command):
            return f"{command.split()[0]} (pager)"
        case SystemPagerTool():
            return "git pager"
        case BuiltinTool():
            return "git diff"
    raise TypeError(f"unsupported tool config: {tool!r}")
