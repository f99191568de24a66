"""
Administrative CLI for hostca

- Apply database migrations
- Print the known_hosts export
- Look up a stored identity mapping
- Run the GitHub identity sync once
"""

import argparse
import logging
import sys

from hostca import config
from hostca.db import get_storage
from hostca.exceptions import HostCAError


def cmd_migrate(args):
    storage = get_storage()
    storage.migrate(args.migrations_dir)
    print("Database schema is up to date")


def cmd_known_hosts(args):
    storage = get_storage()
    for hostname, pubkey in storage.query_host_keys():
        print(f"{hostname} {pubkey}")


def cmd_mapping(args):
    storage = get_storage()
    print(storage.query_identity_mapping(args.identity))


def cmd_sync_github(args):
    from hostca.jobs.github_sync import build_github_client
    from hostca.services.github import sync_identity_mappings

    count = sync_identity_mappings(get_storage(), build_github_client())
    print(f"Synchronized {count} identity mappings")


def main(argv=None):
    parser = argparse.ArgumentParser(description="hostca administration")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    migrate_parser = subparsers.add_parser("migrate", help="Apply pending database migrations")
    migrate_parser.add_argument("--migrations-dir", help="Alembic script directory (defaults to the bundled one)")
    migrate_parser.set_defaults(func=cmd_migrate)

    known_hosts_parser = subparsers.add_parser("known-hosts", help="Print recorded host keys")
    known_hosts_parser.set_defaults(func=cmd_known_hosts)

    mapping_parser = subparsers.add_parser("mapping", help="Look up the GitHub username for an SSO identity")
    mapping_parser.add_argument("identity", help="SSO identity")
    mapping_parser.set_defaults(func=cmd_mapping)

    sync_parser = subparsers.add_parser("sync-github", help="Synchronize GitHub identity mappings now")
    sync_parser.set_defaults(func=cmd_sync_github)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if not logging.getLogger().hasHandlers():
        logging.basicConfig(level=logging.DEBUG if config.DEBUG else logging.INFO,
                            format='%(levelname)s:%(name)s:%(message)s')

    try:
        args.func(args)
    except HostCAError as e:
        print(f"Error: {e.detail}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
