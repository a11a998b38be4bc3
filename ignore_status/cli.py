#!/usr/bin/env python3
"""
ignore-status command line interface

Commands:
- check: report whether paths are ignored
- kinds: list the supported rule file kinds
- watch: print a line whenever file statuses change
"""

import argparse
import json
import os
import sys
import time
from pathlib import Path
from typing import List, Optional

from ignore_status import __version__
from ignore_status.ignore import (
    IgnoreFileRegistry, IgnoreManager, IgnoreSettings, RuleFileIndex, RuleKind
)
from ignore_status.ignore.constants import ANCHOR_STRATEGIES, RULE_FILENAMES
from ignore_status.utils import configure_logging, get_logger

logger = get_logger("ignore-status")


class IgnoreStatusCLI:
    """Command line front end for the ignore manager"""

    def __init__(self, argv: Optional[List[str]] = None):
        self.argv = argv

    def parse_args(self) -> argparse.Namespace:
        parser = argparse.ArgumentParser(
            prog='ignore-status',
            description='Resolve gitignore-style ignore status for project files',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
        parser.add_argument('--log-level', help='Log level (TRACE, DEBUG, INFO, WARNING, ERROR)')
        parser.add_argument('--log-file', help='Also write logs to this file')

        subparsers = parser.add_subparsers(dest='command', required=True)

        def add_project_options(sub):
            sub.add_argument('--root', default='.',
                             help='Project root (default: current directory)')
            sub.add_argument('--disable-kind', action='append', default=[],
                             choices=[k.value for k in RuleKind],
                             help='Ignore rule files of this kind (repeatable)')
            sub.add_argument('--extra-rules', action='append', default=[], metavar='FILE',
                             help='Rule file outside the project that also applies (repeatable)')

        check_parser = subparsers.add_parser('check', help='Check whether paths are ignored')
        check_parser.add_argument('paths', nargs='+', help='Paths to check')
        check_parser.add_argument('--dir', action='store_true',
                                  help='Treat every path as a directory')
        check_parser.add_argument('--json', action='store_true', help='Output JSON')
        check_parser.add_argument('-v', '--verbose', action='store_true',
                                  help='Show the rule files behind each decision')
        add_project_options(check_parser)

        subparsers.add_parser('kinds', help='List rule file kinds')

        watch_parser = subparsers.add_parser('watch', help='Print file status change notifications')
        add_project_options(watch_parser)

        return parser.parse_args(self.argv)

    def build_manager(self, args: argparse.Namespace):
        root = Path(os.path.abspath(args.root))
        settings = IgnoreSettings.from_env()
        for name in args.disable_kind:
            settings.set_kind_enabled(RuleKind(name), False)

        registry = IgnoreFileRegistry()
        extra_files = [(Path(os.path.abspath(p)), RuleKind.GITIGNORE) for p in args.extra_rules]
        index = RuleFileIndex(root, registry, extra_files=extra_files)
        manager = IgnoreManager(root, registry=registry, settings=settings)
        manager.project_opened()
        if not manager.working:
            logger.warning("Ignore status is disabled (IGNORE_STATUS_ENABLED); nothing is ignored")
        return manager, index

    def cmd_check(self, args: argparse.Namespace) -> int:
        manager, _ = self.build_manager(args)
        results = []
        try:
            for raw_path in args.paths:
                path = Path(os.path.abspath(raw_path))
                is_dir = True if args.dir else None
                ignored, decisions = manager.explain(path, is_dir=is_dir)
                results.append({
                    'path': raw_path,
                    'ignored': ignored,
                    'decisions': [
                        {
                            'level': str(d.path),
                            'source': str(d.source),
                            'kind': d.kind.value,
                            'relative_path': d.relative_path,
                            'verdict': d.verdict,
                        }
                        for d in decisions
                    ],
                })
        finally:
            manager.close()

        if args.json:
            if not args.verbose:
                for result in results:
                    del result['decisions']
            print(json.dumps(results, indent=2))
            return 0

        for result in results:
            status = 'ignored' if result['ignored'] else 'not ignored'
            print(f"{status}\t{result['path']}")
            if args.verbose:
                for decision in result['decisions']:
                    verdict = {None: 'no match', True: 'ignore', False: 'include'}[decision['verdict']]
                    print(f"    {decision['source']} [{decision['kind']}] "
                          f"'{decision['relative_path']}': {verdict}")
        return 0

    def cmd_kinds(self, args: argparse.Namespace) -> int:
        settings = IgnoreSettings.from_env()
        for kind in RuleKind:
            enabled = 'enabled' if settings.is_kind_enabled(kind) else 'disabled'
            print(f"{kind.value:<14} {RULE_FILENAMES[kind]:<20} "
                  f"{ANCHOR_STRATEGIES[kind].value:<18} {enabled}")
        return 0

    def cmd_watch(self, args: argparse.Namespace) -> int:
        from ignore_status.watchdog_monitor import WatchdogMonitor

        manager, index = self.build_manager(args)
        subscription = manager.status_changed_channel.subscribe(
            lambda event: print(f"file statuses changed (#{event.sequence})", flush=True)
        )
        monitor = WatchdogMonitor(manager, index)
        try:
            monitor.start()
            print(f"Watching {manager.root_path} for rule file changes. Press Ctrl+C to stop",
                  file=sys.stderr)
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            print("\nStopping monitor...", file=sys.stderr)
        finally:
            if monitor.is_running():
                monitor.stop()
            subscription.close()
            manager.close()
        return 0

    def run(self) -> int:
        args = self.parse_args()
        configure_logging(log_level=args.log_level, log_file=args.log_file)
        handler = getattr(self, f"cmd_{args.command}")
        return handler(args)


def main(argv: Optional[List[str]] = None) -> int:
    return IgnoreStatusCLI(argv).run()


if __name__ == '__main__':
    sys.exit(main())
