#!/usr/bin/env python3
"""
Short Sileo CLI

Command-line interface for managing repository sources and browsing,
installing and removing packages.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from common.exceptions import (
    InvalidConfigError,
    PackageNotFoundError,
    SourceNotFoundError,
    StoreError,
)
from common.logging_config import get_logger, setup_logging
from store.config import StoreConfig
from store.installer import InstallState
from store.service import StoreService

logger = get_logger("cli")


def load_config(args) -> StoreConfig:
    """Load settings, applying command-line overrides."""
    try:
        config = StoreConfig.load(getattr(args, "config", None))
    except InvalidConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    if getattr(args, "no_open", False):
        config.open_links = False
    return config


def get_service(args) -> StoreService:
    """Build the store service for a command."""
    config = getattr(args, "settings", None) or load_config(args)
    return StoreService(config)


def _find_package(service: StoreService, package_id: str):
    try:
        return service.get_package(package_id)
    except PackageNotFoundError:
        print(f"Package not found: {package_id}", file=sys.stderr)
        return None


def cmd_sources(args):
    """List repository sources."""
    service = get_service(args)
    sources = service.catalog.sources

    if not sources:
        print("No sources configured.")
        return 0

    print(f"Sources ({len(sources)}):\n")
    for source in sources:
        origin = source.url or "Local Source"
        print(f"  {source.id}")
        print(f"    {source.name} - {origin} - {source.package_count} package(s)")
    return 0


def cmd_add_source(args):
    """Add a repository source from a URL or pasted JSON."""
    service = get_service(args)

    try:
        if args.url:
            source = service.add_source_from_url(args.url)
        else:
            text = sys.stdin.read() if args.json == "-" else args.json
            source = service.add_source_from_json(text)
    except StoreError as e:
        print(f"Error adding repository: {e}", file=sys.stderr)
        return 1

    print(f"Added {source.name} ({source.package_count} package(s))")
    print(f"  id: {source.id}")
    return 0


def _confirm_removal(source) -> bool:
    prompt = (
        f"Remove '{source.name}' and its {source.package_count} package(s)? "
        "This cannot be undone. [y/N] "
    )
    try:
        answer = input(prompt)
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def cmd_remove_source(args):
    """Remove a repository source."""
    service = get_service(args)

    try:
        source = service.get_source(args.source_id)
    except SourceNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    confirm = (lambda _source: True) if args.yes else _confirm_removal
    if service.remove_source(source.id, confirm):
        print(f"Removed {source.name}")
    else:
        print("Cancelled.")
    return 0


def _print_package_line(service: StoreService, pkg) -> None:
    state = service.package_state(pkg.id)
    marker = " [installed]" if state is InstallState.INSTALLED else ""
    print(f"  {pkg.id}")
    print(f"    {pkg.name} {pkg.version} ({pkg.repo_name}){marker}")


def cmd_search(args):
    """Search packages by name or source name."""
    service = get_service(args)
    results = service.search(args.query or "", installed_only=args.installed)

    if not results:
        print(f"No packages found for: {args.query or '(all)'}")
        return 0

    print(f"Found {len(results)} package(s):\n")
    for pkg in results:
        _print_package_line(service, pkg)
    return 0


def cmd_info(args):
    """Show package details."""
    service = get_service(args)
    pkg = _find_package(service, args.package_id)
    if pkg is None:
        return 1

    print(f"Name:          {pkg.name}")
    print(f"ID:            {pkg.id}")
    print(f"Version:       {pkg.version}")
    print(f"Source:        {pkg.repo_name}")
    print(f"Size:          {pkg.size}")
    print(f"Compatibility: {pkg.compatibility}")
    print(f"Description:   {pkg.description}")
    if pkg.has_link:
        print(f"Link:          {pkg.url}")
    print(f"Status:        {service.package_state(pkg.id).value}")
    return 0


async def _run_install(service: StoreService, pkg) -> None:
    finished = asyncio.Event()

    def on_change(package_id, state, percent):
        if package_id != pkg.id:
            return
        if state is InstallState.INSTALLING:
            print(f"  [{percent}%] Downloading {pkg.name}")
        elif state is InstallState.INSTALLED:
            finished.set()

    service.installs.add_listener(on_change)
    try:
        if service.installs.start_install(pkg):
            await finished.wait()
    finally:
        service.installs.remove_listener(on_change)


def cmd_install(args):
    """Install a package."""
    service = get_service(args)
    pkg = _find_package(service, args.package_id)
    if pkg is None:
        return 1

    if service.package_state(pkg.id) is InstallState.INSTALLED:
        print(f"{pkg.name} is already installed.")
        return 0

    print(f"Installing {pkg.name} {pkg.version}...")
    asyncio.run(_run_install(service, pkg))
    print(f"Successfully installed {pkg.name}")
    return 0


def cmd_uninstall(args):
    """Uninstall a package."""
    service = get_service(args)

    # ids whose source is gone can still be uninstalled
    pkg = service.catalog.get_package(args.package_id)
    name = pkg.name if pkg else args.package_id

    if not service.uninstall(args.package_id):
        print(f"{name} is not installed.")
        return 0

    print(f"Successfully uninstalled {name}")
    return 0


def cmd_list(args):
    """List installed packages."""
    service = get_service(args)
    installed = service.installed_packages()

    if not installed:
        print("No packages installed.")
        return 0

    print(f"Installed packages ({len(installed)}):\n")
    for pkg in installed:
        print(f"  {pkg.id}: {pkg.name} {pkg.version} ({pkg.repo_name})")
    return 0


def cmd_open(args):
    """Open a package's link."""
    service = get_service(args)
    pkg = _find_package(service, args.package_id)
    if pkg is None:
        return 1

    if not pkg.has_link:
        print(f"{pkg.name} has no link.")
        return 0

    if service.open(pkg.id):
        print(f"Opened {pkg.url}")
    else:
        print(f"Could not open {pkg.url}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="short-sileo",
        description="Short Sileo package catalog",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose output"
    )
    parser.add_argument("--config", type=Path, help="Path to config.json")
    parser.add_argument("--log-file", type=Path, help="Write a debug log to this file")
    parser.add_argument(
        "--json-logs", action="store_true", help="Write the log file as JSON lines"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # sources
    sources_p = subparsers.add_parser("sources", help="List repository sources")
    sources_p.set_defaults(func=cmd_sources)

    # add-source
    add_p = subparsers.add_parser("add-source", help="Add a repository source")
    origin = add_p.add_mutually_exclusive_group(required=True)
    origin.add_argument("--url", help="Catalog URL")
    origin.add_argument("--json", help="Catalog JSON text, or - to read stdin")
    add_p.set_defaults(func=cmd_add_source)

    # remove-source
    remove_p = subparsers.add_parser("remove-source", help="Remove a repository source")
    remove_p.add_argument("source_id", help="Source ID")
    remove_p.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
    remove_p.set_defaults(func=cmd_remove_source)

    # search
    search_p = subparsers.add_parser("search", help="Search packages")
    search_p.add_argument("query", nargs="?", default="", help="Search query")
    search_p.add_argument(
        "-i", "--installed", action="store_true", help="Only search installed packages"
    )
    search_p.set_defaults(func=cmd_search)

    # info
    info_p = subparsers.add_parser("info", help="Show package details")
    info_p.add_argument("package_id", help="Package ID")
    info_p.set_defaults(func=cmd_info)

    # install
    install_p = subparsers.add_parser("install", help="Install a package")
    install_p.add_argument("package_id", help="Package ID")
    install_p.add_argument(
        "--no-open", action="store_true", help="Do not open the package link"
    )
    install_p.set_defaults(func=cmd_install)

    # uninstall
    uninstall_p = subparsers.add_parser("uninstall", help="Uninstall a package")
    uninstall_p.add_argument("package_id", help="Package ID")
    uninstall_p.set_defaults(func=cmd_uninstall)

    # list
    list_p = subparsers.add_parser("list", help="List installed packages")
    list_p.set_defaults(func=cmd_list)

    # open
    open_p = subparsers.add_parser("open", help="Open a package's link")
    open_p.add_argument("package_id", help="Package ID")
    open_p.set_defaults(func=cmd_open)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    args.settings = load_config(args)
    setup_logging(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        log_file=args.log_file or args.settings.log_file,
        json_logs=args.json_logs or args.settings.json_logs,
    )
    logger.debug(f"Running {args.command}")

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
