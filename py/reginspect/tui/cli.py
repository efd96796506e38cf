"""Command-line interface for reginspect-tui."""

from __future__ import annotations

import argparse
import logging
import sys

from reginspect.cli import EXIT_CONFIG, add_target_args, make_target
from reginspect.errors import ConfigError


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog='reginspect-tui',
        description='Interactive register map inspector',
    )
    parser.add_argument('-c', '--config', required=True, metavar='YML_FILE',
                        help='Register map to inspect')
    parser.add_argument('-j', '--jobs', type=int, default=1, help='Parallel reads (default: 1)')
    parser.add_argument('--log', metavar='FILE', help='Write debug log to FILE')

    add_target_args(parser)

    return parser.parse_args(argv)


def describe_target(args: argparse.Namespace) -> str:
    if args.mode == 'mmap':
        return f'mmap:{args.device_path}'
    if args.mode == 'mock':
        return f'mock:{args.values_file}'
    return f'tool:{args.command}'


def main(argv: list[str] | None = None):
    args = parse_args(argv)

    # The terminal belongs to the UI, so logs only go to a file
    if args.log:
        logging.basicConfig(filename=args.log, level=logging.DEBUG,
                            format='%(asctime)s [%(levelname)s] %(name)s: %(message)s')
    else:
        logging.getLogger().addHandler(logging.NullHandler())

    try:
        target = make_target(args)
    except ConfigError as e:
        print(f'Error: {e}', file=sys.stderr)
        sys.exit(EXIT_CONFIG)

    from .app import ReginspectTuiApp

    app = ReginspectTuiApp(
        config_path=args.config,
        target=target,
        target_str=describe_target(args),
        jobs=args.jobs,
    )
    app.run()


if __name__ == '__main__':
    main()
