#!/usr/bin/env python3
"""
CLI script to inspect and manage newly installed apps.

Usage:
    python run_audit.py                          # List pending sideloaded installs
    python run_audit.py --add com.example.app    # Add a package to the registry
    python run_audit.py --observe com.example.app  # Register it only if sideloaded
    python run_audit.py --clear                  # Clear the registry
    python run_audit.py --scan                   # Audit every installed app
    python run_audit.py --check com.example.app  # Show installer and verdict
"""

import argparse
import json
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.detector import NewAppsDetector
from core.state_manager import StateError
from handlers.base_handler import PackageSourceError
from utils.logger import setup_logging_from_settings
from utils.settings import load_settings


def print_records(records, as_json: bool) -> None:
    if as_json:
        print(json.dumps([record.to_dict() for record in records], indent=2))
        return

    if not records:
        print("No sideloaded apps found")
        return

    print("-" * 70)
    for record in records:
        print(f"  {record}")
    print(f"\n{len(records)} sideloaded app(s)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Sideguard - Sideloaded App Detection'
    )
    action = parser.add_mutually_exclusive_group()
    action.add_argument(
        '--pending',
        action='store_true',
        help='List pending sideloaded installs (default)'
    )
    action.add_argument(
        '--add',
        metavar='PACKAGE',
        help='Add a package to the newly installed registry'
    )
    action.add_argument(
        '--observe',
        metavar='PACKAGE',
        help='Report a fresh install; it is registered only if sideloaded'
    )
    action.add_argument(
        '--clear',
        action='store_true',
        help='Clear the newly installed registry'
    )
    action.add_argument(
        '--scan',
        action='store_true',
        help='Audit every installed non-system app'
    )
    action.add_argument(
        '--check',
        metavar='PACKAGE',
        help='Show the installer and verdict for one package'
    )
    parser.add_argument(
        '--settings',
        type=str,
        help='Path to settings.yaml'
    )
    parser.add_argument(
        '--state-file',
        type=str,
        help='Path to the registry state file'
    )
    parser.add_argument(
        '--output',
        type=str,
        help='Also export listed apps to this CSV file'
    )
    parser.add_argument(
        '--json',
        action='store_true',
        help='Print results as JSON'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    settings = load_settings(args.settings)
    setup_logging_from_settings(settings, level='DEBUG' if args.verbose else None)

    try:
        detector = NewAppsDetector(settings=settings, state_file=args.state_file)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if args.add is not None:
        success = detector.manually_add_package(args.add)
        print(f"Added {args.add}" if success else f"Failed to add {args.add}")
        return 0 if success else 1

    if args.observe is not None:
        registered = detector.on_package_added(args.observe)
        print(f"Registered {args.observe}" if registered else f"Not registered: {args.observe}")
        return 0

    if args.clear:
        success = detector.clear_newly_installed_apps()
        print("Registry cleared" if success else "Failed to clear registry")
        return 0 if success else 1

    if args.check is not None:
        report = detector.check_package(args.check)
        if args.json:
            print(json.dumps(report, indent=2))
        else:
            print(f"Package:   {report['package_id']}")
            print(f"Installer: {report['installer'] or 'N/A'}")
            if report['error']:
                print(f"Error:     {report['error']}")
            print(f"Verdict:   {report['verdict'].upper()}")
        return 0

    try:
        if args.scan:
            records = detector.get_all_sideloaded_apps()
        else:
            records = detector.get_newly_installed_apps()
    except (StateError, PackageSourceError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print_records(records, args.json)

    if args.output:
        output_path = detector.export_to_csv(records, args.output)
        if not args.json:
            print(f"\nResults exported to: {output_path}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
