"""Pydantic models for dotinstall."""

from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class EntryKind(str, Enum):
    """Kinds of repository paths that can be linked."""

    FILE = 'file'
    DIRECTORY = 'directory'


class Phase(str, Enum):
    """Installer phases, in execution order."""

    FIXED_DOTFILES = 'fixed_dotfiles'
    PROMPT_LIBRARY = 'prompt_library'
    PERMISSIONS = 'permissions'


class LinkAction(str, Enum):
    """Outcome recorded for a single entry."""

    LINKED = 'linked'
    BACKED_UP_AND_LINKED = 'backed_up_and_linked'
    SKIPPED_MISSING_SOURCE = 'skipped_missing_source'
    ALREADY_CORRECT = 'already_correct'
    BACKUP_CONFLICT = 'backup_conflict'
    CREATED_DIRECTORY = 'created_directory'
    MADE_EXECUTABLE = 'made_executable'
    ALREADY_EXECUTABLE = 'already_executable'


class BackupPolicy(str, Enum):
    """What to do when the backup path is already taken."""

    TIMESTAMP = 'timestamp'
    OVERWRITE = 'overwrite'
    REFUSE = 'refuse'


class SourceEntry(BaseModel):
    """A repository path that may be installed."""

    relative_path: str
    target_name: str
    kind: EntryKind = EntryKind.FILE
    required: bool = False

    @field_validator('relative_path', 'target_name')
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        """Validate that path components are not empty."""
        if not v.strip():
            msg = 'Entry paths cannot be empty'
            raise ValueError(msg)
        return v.strip()


class TargetLink(BaseModel):
    """A path that should become a symlink to a repository source."""

    target: Path
    source: Path
    backup: Path

    @classmethod
    def for_target(cls, target: Path, source: Path, suffix: str) -> 'TargetLink':
        """Build a target link with the default backup path."""
        return cls(
            target=target,
            source=source,
            backup=target.with_name(f'{target.name}{suffix}'),
        )


class EntryResult(BaseModel):
    """Outcome of one step applied to one path."""

    phase: Phase
    action: LinkAction
    target: Path
    source: Path | None = None
    backup: Path | None = None
    message: str = ''


class ValidationCheck(BaseModel):
    """A single post-install check."""

    name: str
    passed: bool
    detail: str = ''


class InstallationReport(BaseModel):
    """Aggregate outcome of one installer run."""

    results: list[EntryResult] = Field(default_factory=list)
    checks: list[ValidationCheck] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        """Whether validation ran and every check passed."""
        return bool(self.checks) and all(check.passed for check in self.checks)

    @property
    def state(self) -> Literal['validation_passed', 'validation_failed']:
        return 'validation_passed' if self.passed else 'validation_failed'

    def results_for(self, phase: Phase) -> list[EntryResult]:
        """Return the results recorded by one phase."""
        return [result for result in self.results if result.phase == phase]

    def failed_checks(self) -> list[ValidationCheck]:
        return [check for check in self.checks if not check.passed]


class InstallPaths(BaseModel):
    """The two roots every installer path is derived from."""

    repo_root: Path
    home: Path

    @field_validator('repo_root', 'home')
    @classmethod
    def validate_absolute(cls, v: Path) -> Path:
        """Resolve roots to absolute paths."""
        return v.expanduser().resolve()
