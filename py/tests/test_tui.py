"""Tests for reginspect-tui."""

from __future__ import annotations

import os
import tempfile
import unittest
from unittest import mock

import pytest

from reginspect.enums import ValueFormat
from reginspect.mocktarget import MockTarget
from reginspect.regmap import Block, Field, Register

MAP = '''
name: DEV
regs:
  - addr: 0x0
    name: STATUS
    good: 0x5
    fields:
      - bits: [1, 0]
        name: STATE
      - width: 4
        name: MODE
  - addr: 0x8
    name: CONFIG
'''


def _create_test_map_path() -> str:
    """Create a temporary register map file and return its path."""
    fd, path = tempfile.mkstemp(suffix='.yml')
    with os.fdopen(fd, 'w') as f:
        f.write(MAP)
    return path


class CliTests(unittest.TestCase):
    def test_parse_args_default_target(self):
        from reginspect.tui.cli import describe_target, parse_args

        args = parse_args(['-c', 'map.yml'])
        self.assertEqual(args.config, 'map.yml')
        self.assertEqual(args.mode, 'tool')
        self.assertEqual(describe_target(args), 'tool:efh_tool')

    def test_parse_args_mmap(self):
        from reginspect.tui.cli import describe_target, parse_args

        args = parse_args(['-c', 'map.yml', '-j', '4', 'mmap', '/sys/bus/pci/devices/0000:01:00.0'])
        self.assertEqual(args.jobs, 4)
        self.assertEqual(describe_target(args), 'mmap:/sys/bus/pci/devices/0000:01:00.0')

    def test_parse_args_mock(self):
        from reginspect.tui.cli import describe_target, parse_args

        args = parse_args(['-c', 'map.yml', 'mock', 'values.yml'])
        self.assertEqual(describe_target(args), 'mock:values.yml')


class LabelTests(unittest.TestCase):
    def test_register_label(self):
        from reginspect.tui.types import node_label

        reg = Register(0x10, 'STATUS', good=0x5, size=1)
        self.assertIn('?', node_label(reg, ValueFormat.HEX))

        reg.resolve(0x5)
        label = node_label(reg, ValueFormat.HEX)
        self.assertIn('STATUS @ 0x10 = 0x05', label)
        self.assertNotIn('*', label)

        reg.resolve(0x7)
        self.assertIn('* STATUS', node_label(reg, ValueFormat.HEX))
        self.assertIn('= 7', node_label(reg, ValueFormat.DEC))

    def test_field_label(self):
        from reginspect.tui.types import node_label

        f = Field('STATE', bits=[1, 0])
        reg = Register(0x10, 'R', fields=[f])
        reg.resolve(0b10)
        self.assertIn('STATE [1,0] = 0b01', node_label(f, ValueFormat.BIN))

    def test_error_value(self):
        from reginspect.errors import DeviceReadError
        from reginspect.tui.types import format_node_value

        reg = Register(0x10, 'R')
        self.assertEqual(format_node_value(reg, ValueFormat.HEX), '[dim]-[/dim]')
        reg.fail(DeviceReadError('gone'))
        self.assertEqual(format_node_value(reg, ValueFormat.HEX), '[red]ERR[/red]')

    def test_block_label(self):
        from reginspect.tui.types import node_label

        self.assertEqual(node_label(Block(), ValueFormat.HEX), '  <unnamed>')


class BitDiagramTests(unittest.TestCase):
    def test_rows(self):
        from reginspect.tui.detail import bit_diagram

        reg = Register(0x0, 'R', size=4, fields=[Field('LOW', width=8)])
        reg.resolve(0x1)
        lines = bit_diagram(reg)
        # two rows of 16 bits, four lines each
        self.assertEqual(len(lines), 8)
        self.assertIn('31', lines[0])
        self.assertIn('LOW', lines[6])


@pytest.mark.asyncio
async def test_app_starts_without_map():
    from reginspect.tui.app import ReginspectTuiApp

    app = ReginspectTuiApp(config_path=None, target=MockTarget(default=0))
    async with app.run_test() as _pilot:
        tree = app.query_one('#reg-tree')
        assert tree is not None
        assert app.state.root is None


@pytest.mark.asyncio
async def test_app_bad_map_path():
    from reginspect.tui.app import ReginspectTuiApp

    app = ReginspectTuiApp(config_path='/nonexistent/map.yml', target=MockTarget(default=0))
    async with app.run_test() as _pilot:
        assert app.state.root is None
        assert app.state.probe_count == 0


@pytest.mark.asyncio
async def test_app_probes_on_start():
    from reginspect.tui.app import ReginspectTuiApp

    path = _create_test_map_path()
    try:
        target = MockTarget({0x0: 0x5, 0x8: 0x1})
        app = ReginspectTuiApp(config_path=path, target=target, target_str='mock')
        async with app.run_test() as _pilot:
            assert app.state.root is not None
            assert app.state.root.name == 'DEV'
            assert app.state.probe_count == 1
            assert app.state.num_failures == 0
            assert len(target.reads) == 2
            assert not app.state.root.is_bad()
    finally:
        os.unlink(path)


@pytest.mark.asyncio
async def test_reprobe_and_failures():
    from reginspect.tui.app import ReginspectTuiApp

    path = _create_test_map_path()
    try:
        target = MockTarget({0x0: 0x7})
        app = ReginspectTuiApp(config_path=path, target=target)
        async with app.run_test() as pilot:
            assert app.state.num_failures == 1
            assert app.state.root.is_bad()

            target.values[0x8] = 0x1
            target.values[0x0] = 0x5
            await pilot.press('r')
            assert app.state.probe_count == 2
            assert app.state.num_failures == 0
            assert not app.state.root.is_bad()
    finally:
        os.unlink(path)


@pytest.mark.asyncio
async def test_format_cycling():
    from reginspect.tui.app import ReginspectTuiApp

    app = ReginspectTuiApp(config_path=None, target=MockTarget(default=0))
    async with app.run_test() as pilot:
        assert app.state.value_format == ValueFormat.HEX
        await pilot.press('f')
        assert app.state.value_format == ValueFormat.DEC
        await pilot.press('f')
        assert app.state.value_format == ValueFormat.BIN
        await pilot.press('f')
        assert app.state.value_format == ValueFormat.HEX


@pytest.mark.asyncio
async def test_field_detail_follows_format():
    from reginspect.tui import detail
    from reginspect.tui.app import ReginspectTuiApp

    path = _create_test_map_path()
    try:
        app = ReginspectTuiApp(config_path=path, target=MockTarget({0x0: 0x5, 0x8: 0x1}))
        async with app.run_test() as pilot:
            field = app.state.root.registers[0].fields[0]
            with mock.patch.object(detail, '_expected_line', wraps=detail._expected_line) as expected:
                app._selected = field
                app._refresh_detail()
                assert expected.call_args.args[:2] == (field, ValueFormat.HEX)

                await pilot.press('f')
                assert expected.call_args.args[:2] == (field, ValueFormat.DEC)
    finally:
        os.unlink(path)


@pytest.mark.asyncio
async def test_toggle_bad_only():
    from reginspect.tui.app import ReginspectTuiApp
    from reginspect.tui.tree import RegisterTree

    path = _create_test_map_path()
    try:
        app = ReginspectTuiApp(config_path=path, target=MockTarget({0x0: 0x7, 0x8: 0x1}))
        async with app.run_test() as pilot:
            tree = app.query_one(RegisterTree)
            # STATUS, its two fields, CONFIG
            assert len(tree._node_pairs) == 4

            await pilot.press('b')
            assert app.state.only_bad
            assert [n.name for n, _ in tree._node_pairs] == ['STATUS']

            await pilot.press('b')
            assert not app.state.only_bad
            assert len(tree._node_pairs) == 4
    finally:
        os.unlink(path)


if __name__ == '__main__':
    unittest.main()
