"""Command-line interface for reginspect."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from . import codec
from .enums import Endianness, ValueFormat
from .errors import ConfigError, ConfigParseError, ProbeError
from .mmaptarget import MMapTarget
from .mocktarget import MockTarget
from .probe import probe
from .report import report, report_legacy
from .target import Target
from .tooltarget import DEFAULT_TOOL, ToolTarget

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_BAD = 1
EXIT_CONFIG = 2
EXIT_READ_FAILED = 3


def setup_logging(level: str = 'WARNING', quiet: bool = False) -> None:
    root = logging.getLogger()
    root.handlers.clear()

    lvl = getattr(logging, level.upper(), logging.WARNING)
    root.setLevel(lvl)

    # stdout carries the report
    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(lvl)
    fmt = '[%(levelname)s] %(name)s: %(message)s' if not quiet else '%(message)s'
    ch.setFormatter(logging.Formatter(fmt))
    root.addHandler(ch)


def _int(s: str) -> int:
    return int(s, 0)


def add_target_args(parser: argparse.ArgumentParser) -> None:
    """Target selection, shared with reginspect-tui."""
    subparsers = parser.add_subparsers(dest='mode')
    parser.set_defaults(mode='tool', command=DEFAULT_TOOL, timeout=None)

    tool_parser = subparsers.add_parser('tool', help='Read through an external utility (default)')
    tool_parser.add_argument('--command', default=DEFAULT_TOOL,
                             help=f'Read utility command line (default: {DEFAULT_TOOL})')
    tool_parser.add_argument('--timeout', type=float, default=None, metavar='SECONDS',
                             help='Per-read timeout')

    mmap_parser = subparsers.add_parser('mmap', help='Memory-mapped PCI BAR resource files')
    mmap_parser.add_argument('device_path', help='Device directory, e.g. /sys/bus/pci/devices/0000:01:00.0')
    mmap_parser.add_argument('--endianness', choices=[e.name.lower() for e in Endianness],
                             default='default', help='Data endianness (default: host)')

    mock_parser = subparsers.add_parser('mock', help='Values from a YAML file, for dry runs')
    mock_parser.add_argument('values_file', help='YAML mapping of addr -> value or bar -> addr -> value')
    mock_parser.add_argument('--default', type=_int, default=None,
                             help='Value for addresses missing from the file')


def make_target(args: argparse.Namespace) -> Target:
    if args.mode == 'mmap':
        return MMapTarget(args.device_path, Endianness[args.endianness.capitalize()])

    if args.mode == 'mock':
        try:
            text = Path(args.values_file).read_text(encoding='utf-8')
        except OSError as exc:
            raise ConfigParseError(f'Failed to read mock values {args.values_file}: {exc}') from exc
        return MockTarget.from_yaml(text, default=args.default)

    return ToolTarget(args.command, timeout=args.timeout)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog='reginspect',
        description='Read the registers found in a register map and report anomalies',
    )
    parser.add_argument('-c', '--config', required=True, metavar='YML_FILE',
                        help='Input register map to read')
    parser.add_argument('-o', '--output', default='-', metavar='FILE',
                        help='Report output file (default: stdout)')
    parser.add_argument('--outconfig', metavar='FILE', help='Write the register map back to FILE')
    parser.add_argument('--values', action='store_true', help='Include probed values in --outconfig')
    parser.add_argument('--only-bad', action='store_true', help='Report only anomalous entries')
    parser.add_argument('--legacy', action='store_true', help='Free text report layout')
    parser.add_argument('--format', choices=[f.value for f in ValueFormat], default='hex',
                        help='Value format (default: hex)')
    parser.add_argument('-j', '--jobs', type=int, default=1, help='Parallel reads (default: 1)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    parser.add_argument('-q', '--quiet', action='store_true', help='Log warnings and errors only')

    add_target_args(parser)

    return parser.parse_args(argv)


def _write_output(path: str, text: str) -> None:
    if path == '-':
        sys.stdout.write(text)
        return
    Path(path).write_text(text, encoding='utf-8')


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    if args.verbose:
        setup_logging('DEBUG')
    elif args.quiet:
        setup_logging('WARNING', quiet=True)
    else:
        setup_logging('INFO')

    try:
        root = codec.load(args.config)
        target = make_target(args)
    except ConfigError as e:
        logger.error('%s', e)
        return EXIT_CONFIG

    read_failed = False

    with target:
        try:
            probe(target, root, jobs=args.jobs)
        except ProbeError as e:
            logger.error('%s', e)
            read_failed = True

    if args.legacy:
        text = report_legacy(root)
    else:
        text = report(root, only_bad=args.only_bad, fmt=ValueFormat(args.format))

    _write_output(args.output, text)

    if args.outconfig:
        codec.save(root, args.outconfig, values=args.values)

    if read_failed:
        return EXIT_READ_FAILED

    return EXIT_BAD if root.is_bad() else EXIT_OK


if __name__ == '__main__':
    sys.exit(main())
