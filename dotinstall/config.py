"""Utilities for reading dotinstall configuration from YAML."""

from pathlib import Path, PurePosixPath
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from dotinstall.logging import get_logger
from dotinstall.models import BackupPolicy

logger = get_logger(__name__)

DEFAULT_CONFIG_FILENAME = 'dotinstall.config.yaml'

MARKER_FILE = '.gitconfig'

DEFAULT_OPTIONAL_DOTFILES = [
    '.bashrc',
    '.bash_profile',
    '.zshrc',
    '.vimrc',
    '.tmux.conf',
]

DEFAULT_EXPECTED_COMMANDS = [
    'init-project',
    'setup-testing',
    'quality-check',
    'deploy-prep',
]


class DotinstallError(RuntimeError):
    """Base class for errors that abort an installer run."""


class DotinstallConfigError(DotinstallError):
    """Raised when dotinstall configuration is invalid."""


def _check_relative(value: str) -> str:
    value = value.strip()
    if not value:
        msg = 'path cannot be empty'
        raise ValueError(msg)
    path = PurePosixPath(value)
    if path.is_absolute() or '..' in path.parts:
        msg = f'path must be relative and stay inside its base directory: {value}'
        raise ValueError(msg)
    return value


class DotinstallConfig(BaseModel):
    """Repository layout and installer behavior."""

    model_config = ConfigDict(extra='forbid')

    optional_dotfiles: list[str] = Field(
        default_factory=lambda: list(DEFAULT_OPTIONAL_DOTFILES),
    )
    prompt_library: str = 'claude'
    global_dir: str = '.dotfiles'
    assistant_dir: str = '.claude'
    commands_dir: str = '.claude/commands'
    template: str = 'templates/CLAUDE.md'
    expected_commands: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXPECTED_COMMANDS),
    )
    backup_suffix: str = '.backup'
    backup_policy: BackupPolicy = BackupPolicy.TIMESTAMP

    @field_validator(
        'prompt_library',
        'global_dir',
        'assistant_dir',
        'commands_dir',
        'template',
    )
    @classmethod
    def validate_relative_path(cls, v: str) -> str:
        """Validate that layout paths are relative."""
        return _check_relative(v)

    @field_validator('optional_dotfiles', 'expected_commands')
    @classmethod
    def validate_relative_names(cls, v: list[str]) -> list[str]:
        """Validate every listed name and drop duplicates, keeping order."""
        return list(dict.fromkeys(_check_relative(item) for item in v))

    @field_validator('backup_suffix')
    @classmethod
    def validate_backup_suffix(cls, v: str) -> str:
        """Validate that the backup suffix is a plain, non-empty name suffix."""
        if not v or '/' in v:
            msg = 'backup_suffix must be a non-empty suffix without "/"'
            raise ValueError(msg)
        return v


def _load_yaml_config(config_path: Path) -> dict[str, Any]:
    logger.debug('loading_config', config=str(config_path))
    try:
        with config_path.open() as fh:
            data = yaml.safe_load(fh) or {}
    except yaml.YAMLError as exc:
        msg = f'failed to parse YAML: {exc}'
        raise DotinstallConfigError(msg) from exc
    except OSError as exc:
        msg = f'failed to read {config_path}: {exc}'
        raise DotinstallConfigError(msg) from exc

    if not isinstance(data, dict):
        msg = f'configuration root must be a mapping in {config_path}'
        raise DotinstallConfigError(msg)

    return data


def load_config(config_path: Path) -> DotinstallConfig:
    """Load dotinstall configuration from YAML."""
    if not config_path.exists():
        msg = f'configuration file not found: {config_path}'
        raise DotinstallConfigError(msg)

    config_data = _load_yaml_config(config_path)

    try:
        return DotinstallConfig.model_validate(config_data)
    except ValidationError as exc:
        logger.error('config_validation_failed', errors=str(exc))
        msg = f'invalid dotinstall configuration in {config_path}'
        raise DotinstallConfigError(msg) from exc


def resolve_config(
    repo_root: Path,
    config_path: Path | None = None,
    *,
    backup_policy: BackupPolicy | None = None,
) -> DotinstallConfig:
    """Load the explicit config file, the repository default, or defaults.

    An explicitly named file must exist; the repository default is optional.
    """
    if config_path is not None:
        config = load_config(config_path)
    elif (repo_root / DEFAULT_CONFIG_FILENAME).is_file():
        config = load_config(repo_root / DEFAULT_CONFIG_FILENAME)
    else:
        logger.debug('using_default_config', repo_root=str(repo_root))
        config = DotinstallConfig()

    if backup_policy is not None:
        config = config.model_copy(update={'backup_policy': backup_policy})
    return config


__all__ = [
    'DEFAULT_CONFIG_FILENAME',
    'DEFAULT_EXPECTED_COMMANDS',
    'DEFAULT_OPTIONAL_DOTFILES',
    'MARKER_FILE',
    'DotinstallConfig',
    'DotinstallConfigError',
    'DotinstallError',
    'load_config',
    'resolve_config',
]
