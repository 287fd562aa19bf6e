"""Main CLI entry point for dotinstall."""

import argparse
import sys
from pathlib import Path

from dotinstall.config import DotinstallError, resolve_config
from dotinstall.installer import Installer
from dotinstall.logging import configure_logging, get_logger
from dotinstall.models import BackupPolicy, InstallPaths
from dotinstall.reporting import render_report

logger = get_logger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog='dotinstall',
        description='Link a dotfiles repository and its prompt library into your home directory',
    )
    parser.add_argument(
        '--repo',
        type=Path,
        default=None,
        help='Dotfiles repository root (default: current directory)',
    )
    parser.add_argument(
        '--home',
        type=Path,
        default=None,
        help='Home directory to install into (default: your home directory)',
    )
    parser.add_argument(
        '--config',
        type=Path,
        default=None,
        help='Configuration file (default: dotinstall.config.yaml in the repository, if present)',
    )
    parser.add_argument(
        '--backup-policy',
        choices=[policy.value for policy in BackupPolicy],
        default=None,
        help='What to do when a backup already exists (default: timestamp)',
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging',
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the dotinstall CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=args.verbose)

    paths = InstallPaths(
        repo_root=args.repo or Path.cwd(),
        home=args.home or Path.home(),
    )
    logger.info(
        'starting_dotinstall',
        repo_root=str(paths.repo_root),
        home=str(paths.home),
    )

    try:
        config = resolve_config(
            paths.repo_root,
            args.config,
            backup_policy=BackupPolicy(args.backup_policy) if args.backup_policy else None,
        )
        report = Installer(paths, config).run()
    except DotinstallError as e:
        logger.error('install_aborted', error=str(e))
        sys.stderr.write(f'Error: {e}\n')
        return 1
    except OSError as e:
        logger.exception('install_failed', error=str(e))
        sys.stderr.write(f'Error: {e}\n')
        return 1

    render_report(report)
    return 0 if report.passed else 1


if __name__ == '__main__':
    sys.exit(main())
