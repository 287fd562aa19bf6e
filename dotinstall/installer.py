"""The dotfiles installer pipeline.

A run is strictly sequential: resolve the repository root, link the
fixed dotfiles, link the prompt library, normalize command permissions,
hint about PATH, and validate. Only a missing marker file or a missing
prompt library abort a run; every other problem is collected on the
report and the final validation decides success.
"""

import os
from pathlib import Path

from dotinstall.config import MARKER_FILE, DotinstallConfig, DotinstallError
from dotinstall.logging import get_logger
from dotinstall.models import (
    EntryKind,
    EntryResult,
    InstallationReport,
    InstallPaths,
    LinkAction,
    Phase,
    SourceEntry,
    TargetLink,
    ValidationCheck,
)
from dotinstall.symlinks import (
    BackupConflictError,
    backup_target,
    create_symlink,
    is_executable,
    is_link_to,
    iter_regular_files,
    make_executable,
    path_present,
)

logger = get_logger(__name__)


def _resolve_quietly(path: Path) -> Path:
    try:
        return path.resolve()
    except (OSError, RuntimeError):
        return path.absolute()


class RepositoryRootError(DotinstallError):
    """Raised when the repository root does not contain the marker file."""


class PromptLibraryMissingError(DotinstallError):
    """Raised when the prompt library directory is missing from the repository."""


class Installer:
    """Links a dotfiles repository into a home directory."""

    def __init__(
        self,
        paths: InstallPaths,
        config: DotinstallConfig | None = None,
        *,
        search_path: str | None = None,
    ) -> None:
        self.paths = paths
        self.config = config or DotinstallConfig()
        self.search_path = os.environ.get('PATH', '') if search_path is None else search_path
        self.report = InstallationReport()

    @property
    def repo_root(self) -> Path:
        return self.paths.repo_root

    @property
    def home(self) -> Path:
        return self.paths.home

    @property
    def prompt_library_source(self) -> Path:
        return self.repo_root / self.config.prompt_library

    @property
    def global_dir(self) -> Path:
        return self.home / self.config.global_dir

    @property
    def prompt_library_link(self) -> Path:
        return self.global_dir / Path(self.config.prompt_library).name

    @property
    def commands_source(self) -> Path:
        return self.prompt_library_source / self.config.commands_dir

    @property
    def commands_link(self) -> Path:
        return self.prompt_library_link / self.config.commands_dir

    def _record(
        self,
        phase: Phase,
        action: LinkAction,
        target: Path,
        **fields: object,
    ) -> EntryResult:
        result = EntryResult(phase=phase, action=action, target=target, **fields)
        self.report.results.append(result)
        return result

    def _warn(self, event: str, message: str, **context: object) -> None:
        logger.warning(event, **context)
        self.report.warnings.append(message)

    def resolve_repository_root(self) -> Path:
        """Confirm the installer is pointed at a dotfiles repository."""
        marker = self.repo_root / MARKER_FILE
        logger.info('resolving_repository_root', repo_root=str(self.repo_root))
        if not marker.is_file():
            logger.error('marker_file_missing', expected=str(marker))
            msg = f"This doesn't appear to be the dotfiles directory: expected {MARKER_FILE} in {self.repo_root}"
            raise RepositoryRootError(msg)
        return self.repo_root

    def discover_source_entries(self) -> list[SourceEntry]:
        """Enumerate the dotfiles to link: the marker file plus the optional ones present."""
        entries = [SourceEntry(relative_path=MARKER_FILE, target_name=MARKER_FILE, required=True)]
        for name in self.config.optional_dotfiles:
            if name == MARKER_FILE:
                continue
            source = self.repo_root / name
            if source.is_file():
                entries.append(SourceEntry(relative_path=name, target_name=name))
            elif source.is_dir():
                entries.append(
                    SourceEntry(relative_path=name, target_name=name, kind=EntryKind.DIRECTORY),
                )
            else:
                logger.debug('optional_dotfile_absent', name=name)
        return entries

    def backup(self, target_path: Path) -> Path | None:
        """Move an existing target to its backup path, per the backup policy."""
        suffix = self.config.backup_suffix
        backup = target_path.with_name(f'{target_path.name}{suffix}')
        replacing = path_present(target_path) and path_present(backup)

        moved = backup_target(
            target_path,
            suffix=suffix,
            policy=self.config.backup_policy,
        )
        if moved is None:
            return None
        if replacing and moved == backup:
            self.report.warnings.append(f'Overwrote previous backup {backup}')
        self.report.warnings.append(f'Backed up existing {target_path} to {moved}')
        return moved

    def link(
        self,
        source_relative_path: str,
        target_name: str,
        *,
        destination: Path | None = None,
        phase: Phase = Phase.FIXED_DOTFILES,
    ) -> EntryResult:
        """Link a repository path to destination/target_name (home by default)."""
        planned = TargetLink.for_target(
            (destination or self.home) / target_name,
            self.repo_root / source_relative_path,
            self.config.backup_suffix,
        )
        target, source = planned.target, planned.source

        if not source.exists():
            message = f'Source file not found: {source_relative_path}'
            self._warn('source_not_found', message, source=str(source))
            return self._record(
                phase,
                LinkAction.SKIPPED_MISSING_SOURCE,
                target,
                source=source,
                message=message,
            )

        if is_link_to(target, source):
            logger.info('already_linked', target=str(target))
            return self._record(
                phase,
                LinkAction.ALREADY_CORRECT,
                target,
                source=source,
                message=f'Already linked to {source_relative_path}',
            )

        try:
            backup = self.backup(target)
        except BackupConflictError:
            message = f'Not linking {target}: backup {planned.backup} already exists'
            self._warn(
                'backup_conflict',
                message,
                target=str(target),
                backup=str(planned.backup),
            )
            return self._record(
                phase,
                LinkAction.BACKUP_CONFLICT,
                target,
                source=source,
                backup=planned.backup,
                message=message,
            )

        target.parent.mkdir(parents=True, exist_ok=True)
        create_symlink(source, target)
        logger.info('linked', source=source_relative_path, target=str(target))

        if backup is None:
            action, message = LinkAction.LINKED, f'Linked {source_relative_path}'
        else:
            action = LinkAction.BACKED_UP_AND_LINKED
            message = f'Linked {source_relative_path}, previous entry moved to {backup.name}'
        return self._record(phase, action, target, source=source, backup=backup, message=message)

    def install_fixed_dotfiles(self) -> list[EntryResult]:
        """Link the Git config and every conventional dotfile present in the repository."""
        logger.info('installing_dotfiles')
        return [
            self.link(entry.relative_path, entry.target_name)
            for entry in self.discover_source_entries()
        ]

    def _ensure_directory(self, path: Path, phase: Phase) -> EntryResult | None:
        if path.is_dir():
            return None
        path.mkdir(parents=True)
        logger.info('created_directory', path=str(path))
        return self._record(phase, LinkAction.CREATED_DIRECTORY, path, message='Created directory')

    def install_prompt_library(self) -> list[EntryResult]:
        """Link the whole prompt library directory into the global directory."""
        logger.info('installing_prompt_library', source=str(self.prompt_library_source))
        if not self.prompt_library_source.is_dir():
            logger.error('prompt_library_missing', expected=str(self.prompt_library_source))
            msg = f'Prompt library directory not found in dotfiles: {self.prompt_library_source}'
            raise PromptLibraryMissingError(msg)

        results = []
        for directory in (self.home / self.config.assistant_dir, self.global_dir):
            created = self._ensure_directory(directory, Phase.PROMPT_LIBRARY)
            if created is not None:
                results.append(created)

        results.append(
            self.link(
                self.config.prompt_library,
                self.prompt_library_link.name,
                destination=self.global_dir,
                phase=Phase.PROMPT_LIBRARY,
            ),
        )
        return results

    def normalize_permissions(self) -> list[EntryResult]:
        """Mark every regular file under the commands directory executable."""
        results = []
        for path in iter_regular_files(self.commands_source):
            if make_executable(path):
                logger.debug('made_executable', path=str(path))
                action = LinkAction.MADE_EXECUTABLE
            else:
                action = LinkAction.ALREADY_EXECUTABLE
            mode = oct(path.stat().st_mode & 0o777)
            results.append(self._record(Phase.PERMISSIONS, action, path, message=f'mode {mode}'))
        logger.info('normalized_permissions', files=len(results))
        return results

    def check_command_path(self, search_path: str | None = None) -> bool:
        """Check whether the linked commands directory is on PATH.

        Records a warning with the line to add to a shell profile when it is not.
        """
        search_path = self.search_path if search_path is None else search_path
        wanted = _resolve_quietly(self.commands_link)
        for entry in search_path.split(os.pathsep):
            if entry and _resolve_quietly(Path(entry).expanduser()) == wanted:
                return True
        self._warn(
            'commands_not_on_path',
            f'Commands are not in PATH. Add to your shell profile: export PATH="$PATH:{self.commands_link}"',
            directory=str(self.commands_link),
        )
        return False

    def _check(self, name: str, passed: bool, detail: str) -> ValidationCheck:
        if passed:
            logger.info('check_passed', check=name)
        else:
            logger.error('check_failed', check=name, detail=detail)
        return ValidationCheck(name=name, passed=passed, detail=detail)

    def validate(self) -> InstallationReport:
        """Re-check the installed state and store the checks on the report."""
        logger.info('validating_installation')
        gitconfig = self.home / MARKER_FILE
        template = self.prompt_library_link / self.config.template

        checks = [
            self._check('gitconfig_linked', gitconfig.is_symlink(), str(gitconfig)),
            self._check(
                'prompt_library_linked',
                self.prompt_library_link.is_symlink(),
                str(self.prompt_library_link),
            ),
            self._check('template_available', template.is_file(), str(template)),
        ]
        for command in self.config.expected_commands:
            path = self.commands_link / command
            checks.append(self._check(f'command_executable:{command}', is_executable(path), str(path)))

        self.report.checks = checks
        return self.report

    def run(self) -> InstallationReport:
        """Run every phase in order and return the report.

        Raises DotinstallError subclasses for conditions that abort the run.
        """
        self.report = InstallationReport()
        logger.info(
            'starting_install',
            repo_root=str(self.repo_root),
            home=str(self.home),
            _verbose_config=self.config.model_dump(mode='json'),
        )

        self.resolve_repository_root()
        self.install_fixed_dotfiles()
        self.install_prompt_library()
        self.normalize_permissions()
        self.check_command_path()
        self.validate()

        logger.info('install_finished', state=self.report.state, warnings=len(self.report.warnings))
        return self.report


def install(
    repo_root: Path,
    home: Path,
    config: DotinstallConfig | None = None,
    *,
    search_path: str | None = None,
) -> InstallationReport:
    """Convenience wrapper to run the installer for a repository and home."""
    paths = InstallPaths(repo_root=repo_root, home=home)
    return Installer(paths, config, search_path=search_path).run()
