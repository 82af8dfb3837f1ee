"""Configuration loading with pydantic-settings.

Sources, lowest precedence first:
1. Built-in defaults
2. Global config (~/.config/actionlens/config.yaml)
3. Repo config (<root>/.actionlens/config.yaml)
4. Environment variables (ACTIONLENS__SECTION__KEY)
5. Keyword overrides passed to load_config()

The two YAML layers are merged section by section before pydantic-settings
sees them, so a repo file that only sets bounds.max_concurrent keeps the
other bounds from the global file.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import (
    BaseSettings,
    InitSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from actionlens.config.models import (
    ActionLensConfig,
    FilesConfig,
    LoggingConfig,
    ResolutionBounds,
    ResolverConfig,
)
from actionlens.core.errors import ConfigError

GLOBAL_CONFIG_PATH = Path("~/.config/actionlens/config.yaml").expanduser()
REPO_CONFIG_RELPATH = Path(".actionlens") / "config.yaml"


def read_layer(path: Path) -> dict[str, Any]:
    """One YAML layer as a mapping. A missing or empty file is an empty layer."""
    if not path.is_file():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError.parse_error(str(path), "top-level value must be a mapping")
    return data


def merge_layers(*layers: dict[str, Any]) -> dict[str, Any]:
    """Merge mappings left to right; nested mappings merge, anything else replaces."""
    merged: dict[str, Any] = {}
    for layer in layers:
        for key, value in layer.items():
            current = merged.get(key)
            if isinstance(current, dict) and isinstance(value, dict):
                merged[key] = merge_layers(current, value)
            else:
                merged[key] = value
    return merged


def _settings_for(file_values: dict[str, Any]) -> type[BaseSettings]:
    """Settings class whose lowest-precedence source is file_values."""

    class ActionLensSettings(BaseSettings):
        model_config = SettingsConfigDict(
            env_prefix="ACTIONLENS__",
            env_nested_delimiter="__",
            case_sensitive=False,
        )

        logging: LoggingConfig = LoggingConfig()
        bounds: ResolutionBounds = ResolutionBounds()
        resolver: ResolverConfig = ResolverConfig()
        files: FilesConfig = FilesConfig()

        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
            file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            return (
                init_settings,
                env_settings,
                InitSettingsSource(settings_cls, init_kwargs=file_values),
            )

    return ActionLensSettings


def load_config(repo_root: Path | None = None, **overrides: Any) -> ActionLensConfig:
    """Resolve the configuration for a workspace.

    Args:
        repo_root: Workspace root holding .actionlens/config.yaml.
            Defaults to the current directory.
        **overrides: Section values with the highest precedence

    Raises:
        ConfigError: A YAML layer does not parse, or a value fails validation.
    """
    root = repo_root or Path.cwd()
    file_values = merge_layers(
        read_layer(GLOBAL_CONFIG_PATH),
        read_layer(root / REPO_CONFIG_RELPATH),
    )
    try:
        settings = _settings_for(file_values)(**overrides)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"])
        raise ConfigError.invalid_value(field, first.get("input"), first["msg"]) from e
    return ActionLensConfig.model_validate(settings.model_dump())
