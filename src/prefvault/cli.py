"""
Command-line interface for prefvault.

Provides commands to back up and restore settings, inspect backup state,
manage the installation identity, fix storage permissions and watch the
preference directory for changes.

Uses Python's argparse module (no external CLI libraries).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import NoReturn

from prefvault import __version__
from prefvault.backup import BackupLayout, SettingsManager
from prefvault.config.settings import (
    ConfigurationError,
    Settings,
    get_config_path,
    load_config,
    save_config,
)
from prefvault.identity import IDENTITY_KEY
from prefvault.notify import MessageKind
from prefvault.paths import AppPaths
from prefvault.store.preferences import PreferenceStore, PreferenceStoreError

# Set up logging
logger = logging.getLogger(__name__)

# Global verbosity settings (set during main() based on args)
_quiet_mode = False
_verbose_level = 0


def set_output_mode(quiet: bool = False, verbose: int = 0) -> None:
    """
    Set the output mode for the CLI.

    Args:
        quiet: If True, suppress non-essential output.
        verbose: Verbosity level (0=normal, 1+=verbose).
    """
    global _quiet_mode, _verbose_level
    _quiet_mode = quiet
    _verbose_level = verbose


def output(message: str = "", force: bool = False) -> None:
    """
    Print a message to stdout, respecting quiet mode.

    Args:
        message: The message to print.
        force: If True, print even in quiet mode (for essential output like JSON).
    """
    if force or not _quiet_mode:
        print(message)


def output_verbose(message: str, level: int = 1) -> None:
    """
    Print a verbose message only if verbosity is high enough.

    Args:
        message: The message to print.
        level: Required verbosity level to show this message.
    """
    if _verbose_level >= level and not _quiet_mode:
        print(message)


def output_error(message: str) -> None:
    """Print an error message (always shown, even in quiet mode)."""
    print(message, file=sys.stderr)


class ConsoleNotifier:
    """Prints backup and restore outcome messages."""

    def show(self, kind: MessageKind) -> None:
        if kind.is_error:
            output_error(kind.text)
        else:
            output(kind.text)


class ConsoleListener:
    """Prints preference directory change events."""

    def on_file_updated(self, path: str | None) -> None:
        output(f"updated     {path or '.'}", force=True)

    def on_file_attributes_changed(self, path: str | None) -> None:
        output(f"attributes  {path or '.'}", force=True)


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the prefvault CLI."""
    parser = argparse.ArgumentParser(
        prog="prefvault",
        description="Back up and restore application preference files",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"prefvault {__version__}",
    )

    parser.add_argument(
        "--config",
        metavar="PATH",
        help="Override config file location (default: ~/.prefvault/config.yaml)",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase output verbosity (can be repeated)",
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress non-essential output",
    )

    subparsers = parser.add_subparsers(
        title="commands",
        dest="command",
        metavar="<command>",
    )

    # init command
    init_parser = subparsers.add_parser(
        "init",
        help="Write a default configuration file",
        description="Create the configuration file with default settings.",
    )
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing configuration file",
    )
    init_parser.set_defaults(func=cmd_init)

    # info command
    info_parser = subparsers.add_parser(
        "info",
        help="Show configuration and storage locations",
    )
    info_parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )
    info_parser.set_defaults(func=cmd_info)

    # status command
    status_parser = subparsers.add_parser(
        "status",
        help="Show backup status",
        description="Report whether a valid or obsolete backup exists.",
    )
    status_parser.add_argument(
        "--format",
        choices=["table", "json"],
        default="table",
        help="Output format (default: table)",
    )
    status_parser.set_defaults(func=cmd_status)

    # backup command
    backup_parser = subparsers.add_parser(
        "backup",
        help="Back up settings",
        description="Copy preference files and private files to the backup root.",
    )
    backup_parser.set_defaults(func=cmd_backup)

    # restore command
    restore_parser = subparsers.add_parser(
        "restore",
        help="Restore settings from the backup",
        description="Copy the last valid backup back into the live preference folder.",
    )
    restore_parser.add_argument(
        "--force",
        action="store_true",
        help="Skip confirmation prompt",
    )
    restore_parser.set_defaults(func=cmd_restore)

    # identity command
    identity_parser = subparsers.add_parser(
        "identity",
        help="Show or reset the settings identity",
    )
    identity_group = identity_parser.add_mutually_exclusive_group()
    identity_group.add_argument(
        "--reset",
        action="store_true",
        help="Clear the identity so a new one is generated on next use",
    )
    identity_group.add_argument(
        "--set",
        metavar="VALUE",
        dest="identity_value",
        help="Overwrite the identity with VALUE",
    )
    identity_parser.set_defaults(func=cmd_identity)

    # fix-permissions command
    fix_parser = subparsers.add_parser(
        "fix-permissions",
        help="Grant read/execute access across private storage",
    )
    fix_parser.set_defaults(func=cmd_fix_permissions)

    # watch command
    watch_parser = subparsers.add_parser(
        "watch",
        help="Print preference folder change events",
        description="Watch the preference folder until interrupted.",
    )
    watch_parser.set_defaults(func=cmd_watch)

    return parser


def setup_logging(verbose: int, quiet: bool) -> None:
    """Configure logging based on verbosity level."""
    if quiet:
        level = logging.WARNING
    elif verbose == 0:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _config_path(args: argparse.Namespace) -> Path:
    return Path(args.config) if args.config else get_config_path()


def _load_settings(args: argparse.Namespace) -> Settings:
    return load_config(_config_path(args))


def _build_manager(settings: Settings) -> SettingsManager:
    return SettingsManager(settings, notifier=ConsoleNotifier())


def _inspect(settings: Settings) -> tuple[AppPaths, BackupLayout]:
    """Locations for read-only commands; nothing is created on disk."""
    return AppPaths.from_settings(settings), BackupLayout.from_settings(settings)


def cmd_init(args: argparse.Namespace) -> int:
    """Write the default configuration file."""
    config_path = _config_path(args)

    if config_path.exists() and not args.force:
        output(f"Configuration already exists: {config_path}")
        output("Use --force to overwrite it.")
        return 0

    save_config(Settings(), config_path)
    output(f"Configuration written to {config_path}")
    return 0


def cmd_info(args: argparse.Namespace) -> int:
    """Show configuration and storage locations."""
    settings = _load_settings(args)
    paths, layout = _inspect(settings)

    info = {
        "version": __version__,
        "config_file": str(_config_path(args)),
        "package_name": settings.package_name,
        "data_dir": str(paths.data_dir),
        "preference_dir": str(paths.preferences_dir),
        "files_dir": str(paths.files_dir),
        "backup_root": str(layout.root),
        "legacy_preference_files": list(settings.restore.legacy_preference_files),
    }

    if args.json:
        output(json.dumps(info, indent=2), force=True)
        return 0

    output("prefvault Information")
    output("=" * 50)
    for key, value in info.items():
        if isinstance(value, list):
            value = ", ".join(value) or "-"
        output(f"  {key.replace('_', ' ').capitalize():<26} {value}")
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    """Show whether a valid or obsolete backup exists."""
    settings = _load_settings(args)
    paths, layout = _inspect(settings)
    main_preferences = PreferenceStore.open(
        paths.preferences_dir, f"{settings.package_name}_preferences"
    )

    status = {
        "backup_root": str(layout.root),
        "backup_available": layout.is_backup_available(),
        "backup_obsolete": layout.is_backup_obsolete(),
        "identity": main_preferences.get_string(IDENTITY_KEY),
    }

    if args.format == "json":
        output(json.dumps(status, indent=2), force=True)
        return 0

    output("Backup Status")
    output("=" * 50)
    output(f"  Backup root:       {status['backup_root']}")
    output(f"  Backup available:  {'yes' if status['backup_available'] else 'no'}")
    if status["backup_obsolete"]:
        output("  Backup obsolete:   yes (made by an older release, back up again)")
    output(f"  Identity:          {status['identity'] or '(not created)'}")
    return 0


def cmd_backup(args: argparse.Namespace) -> int:
    """Back up settings to the backup root."""
    settings = _load_settings(args)
    manager = _build_manager(settings)

    output(f"Backing up {manager.preference_dir} to {manager.layout.root}...")
    output_verbose(f"  Private files: {manager.paths.files_dir}")
    names = ", ".join(artifact.name for artifact in manager.layout.manifest)
    output_verbose(f"  Artifacts: {names}", level=2)
    return 0 if manager.backup() else 1


def cmd_restore(args: argparse.Namespace) -> int:
    """Restore settings from the backup root."""
    settings = _load_settings(args)
    manager = _build_manager(settings)

    if manager.is_backup_obsolete():
        output("Note: only a backup made by an older release was found.")

    if not args.force and manager.is_backup_available():
        output("WARNING: This will overwrite the current settings.")
        response = input("Proceed with restore? [y/N]: ").strip().lower()
        if response not in ("y", "yes"):
            output("Restore cancelled.")
            return 0

    output(f"Restoring from {manager.layout.root}...")
    output_verbose(f"  Preference folder: {manager.preference_dir}")
    return 0 if manager.restore() else 1


def cmd_identity(args: argparse.Namespace) -> int:
    """Show, set or reset the settings identity."""
    settings = _load_settings(args)
    manager = _build_manager(settings)

    if args.reset:
        manager.reset_identity(None)
        output("Identity cleared.")
        return 0

    if args.identity_value is not None:
        manager.reset_identity(args.identity_value)
        output(f"Identity set to {args.identity_value}")
        return 0

    output(manager.get_or_create_identity(), force=True)
    return 0


def cmd_fix_permissions(args: argparse.Namespace) -> int:
    """Schedule a permission normalization pass."""
    settings = _load_settings(args)
    manager = _build_manager(settings)

    manager.fix_permissions_async()
    output(f"Fixing permissions under {manager.paths.data_dir}")
    return 0


def cmd_watch(args: argparse.Namespace) -> int:
    """Print change events from the preference folder until interrupted."""
    settings = _load_settings(args)
    manager = _build_manager(settings)

    manager.register_listener(ConsoleListener())
    manager.start_watching()
    output(f"Watching {manager.preference_dir} (Ctrl+C to stop)")
    try:
        while True:
            time.sleep(1)
    finally:
        manager.stop_watching()


def main() -> NoReturn:
    """Main entry point for the prefvault CLI."""
    parser = create_parser()
    args = parser.parse_args()

    # Set up logging and output mode
    setup_logging(args.verbose, args.quiet)
    set_output_mode(args.quiet, args.verbose)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    try:
        exit_code = args.func(args)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        output("\nOperation cancelled.")
        sys.exit(130)
    except ConfigurationError as e:
        output_error(f"Configuration error: {e}")
        sys.exit(2)
    except PreferenceStoreError as e:
        output_error(f"Preference file error: {e}")
        sys.exit(1)
    except Exception as e:
        if args.verbose > 0:
            raise
        output_error(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
