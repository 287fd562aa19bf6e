from dataclasses import dataclass
from pathlib import Path

import pytest

from dotinstall.config import DotinstallConfig
from dotinstall.models import InstallPaths

COMMANDS = ['init-project', 'setup-testing', 'quality-check', 'deploy-prep']


@dataclass
class Workspace:
    repo: Path
    home: Path

    @property
    def paths(self) -> InstallPaths:
        return InstallPaths(repo_root=self.repo, home=self.home)


def build_repo(
    repo: Path,
    *,
    commands: list[str] | None = None,
    dotfiles: list[str] | None = None,
    with_template: bool = True,
) -> Path:
    """Create a dotfiles repository fixture."""
    repo.mkdir(parents=True, exist_ok=True)
    (repo / '.gitconfig').write_text('[user]\n\tname = Test User\n')
    for name in dotfiles or []:
        (repo / name).write_text(f'# {name}\n')

    library = repo / 'claude'
    (library / 'templates').mkdir(parents=True)
    (library / 'prompts').mkdir()
    (library / 'prompts' / 'review.md').write_text('# Review\n')
    if with_template:
        (library / 'templates' / 'CLAUDE.md').write_text('# Project context\n')

    commands_dir = library / '.claude' / 'commands'
    commands_dir.mkdir(parents=True)
    for command in COMMANDS if commands is None else commands:
        script = commands_dir / command
        script.write_text('#!/bin/sh\necho ok\n')
        script.chmod(0o644)
    return repo


@pytest.fixture()
def workspace(tmp_path: Path) -> Workspace:
    """A full repository and an empty home directory."""
    home = tmp_path / 'home'
    home.mkdir()
    repo = build_repo(tmp_path / 'dotfiles', dotfiles=['.bashrc', '.vimrc'])
    return Workspace(repo=repo, home=home)


@pytest.fixture()
def config() -> DotinstallConfig:
    return DotinstallConfig()


@pytest.fixture()
def repo_factory():
    """Expose build_repo to tests that need a custom repository layout."""
    return build_repo
