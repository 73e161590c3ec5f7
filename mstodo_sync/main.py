#!/usr/bin/env python3
"""
mstodo-sync - Obsidian ↔ Microsoft To Do task synchronization.
"""

import argparse
import logging
import sys
import traceback

from mstodo_sync.core.config import get_default_config_path, get_log_path, load_config, save_config
from mstodo_sync.commands import AuthCommand, ListsCommand, StatusCommand, SyncCommand

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(verbose: bool = False, log_file: bool = False) -> None:
    """Set up root logging: DEBUG with --verbose, WARNING otherwise."""
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(get_log_path(), encoding="utf-8"))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        handlers=handlers,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mstodo-sync",
        description="Bidirectional task sync between Obsidian and Microsoft To Do",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  mstodo-sync auth --client-id <id>      # Store your Azure application ID
  mstodo-sync auth                       # Show sign-in instructions
  mstodo-sync auth --token '<URL>'       # Save the token from the redirect URL
  mstodo-sync sync --dry-run             # Preview changes
  mstodo-sync sync                       # Run one sync pass
  mstodo-sync watch --interval 120       # Keep syncing every two minutes
        """
    )

    default_config = get_default_config_path()

    parser.add_argument(
        '--config',
        help=f'Path to configuration file (default: {default_config})',
        default=None
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Verbose output'
    )
    parser.add_argument(
        '--log-file',
        action='store_true',
        help='Also write log output to the log directory'
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    sync_parser = subparsers.add_parser('sync', help='Run one sync pass')
    sync_parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Show what would be done without making changes'
    )

    watch_parser = subparsers.add_parser('watch', help='Sync repeatedly until interrupted')
    watch_parser.add_argument(
        '--interval',
        type=int,
        help='Seconds between passes (default: sync.sync_interval from config)'
    )

    auth_parser = subparsers.add_parser('auth', help='Sign in to Microsoft To Do')
    auth_group = auth_parser.add_mutually_exclusive_group()
    auth_group.add_argument(
        '--token',
        help='Access token, or the full redirect URL after signing in'
    )
    auth_group.add_argument(
        '--clear',
        action='store_true',
        help='Forget the stored access token'
    )
    auth_parser.add_argument(
        '--client-id',
        help='Azure application (client) ID'
    )

    subparsers.add_parser('status', help='Show authentication and sync status')
    subparsers.add_parser('lists', help='Show Microsoft To Do lists')

    return parser


def main(argv=None):
    """Main entry point for mstodo-sync."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=args.verbose, log_file=args.log_file)

    if not args.command:
        parser.print_help()
        return 1

    config = load_config(args.config)

    if args.verbose:
        print(f"Using config: {args.config or get_default_config_path()}")

    try:
        if args.command == 'sync':
            cmd = SyncCommand(config, verbose=args.verbose, config_path=args.config)
            success = cmd.run(dry_run=args.dry_run)

        elif args.command == 'watch':
            cmd = SyncCommand(config, verbose=args.verbose, config_path=args.config)
            success = cmd.watch(interval=args.interval)

        elif args.command == 'auth':
            cmd = AuthCommand(config, verbose=args.verbose)
            success = cmd.run(token=args.token, clear=args.clear, client_id=args.client_id)
            if cmd.changed:
                save_config(config, args.config)

        elif args.command == 'status':
            cmd = StatusCommand(config, verbose=args.verbose, config_path=args.config)
            success = cmd.run()

        elif args.command == 'lists':
            cmd = ListsCommand(config, verbose=args.verbose)
            success = cmd.run()

        else:
            print(f"Unknown command '{args.command}'.")
            return 1

        return 0 if success else 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user.")
        return 130
    except Exception as e:
        print(f"Error: {e}")
        if not args.verbose:
            print("Re-run with --verbose for more detail.")
        else:
            traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
