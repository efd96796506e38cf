#!/usr/bin/env python3

import os
import subprocess
import tempfile
import unittest
from unittest import mock

import yaml

from reginspect import cli
from reginspect.mmaptarget import MMapTarget
from reginspect.mocktarget import MockTarget
from reginspect.tooltarget import ToolTarget

EXAMPLES_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), '..', 'examples')

MAP = '''
name: DEV
regs:
  - addr: 0x0
    name: ID
    good: 0x1234
  - addr: 0x8
    name: COUNT
'''

SHIFT_MAP = '''
regs:
  - addr: 0x0
    name: SHIFT
  - addr: 0x8
    name: STATUS
    goodexpr: '(%s >> (SHIFT - 4)) & 1 == 1'
'''


class ParseArgsTests(unittest.TestCase):
    def test_defaults(self):
        args = cli.parse_args(['-c', 'map.yml'])
        self.assertEqual(args.config, 'map.yml')
        self.assertEqual(args.output, '-')
        self.assertIsNone(args.outconfig)
        self.assertEqual(args.mode, 'tool')
        self.assertEqual(args.command, 'efh_tool')
        self.assertEqual(args.jobs, 1)
        self.assertEqual(args.format, 'hex')

    def test_config_required(self):
        with mock.patch('sys.stderr'):
            with self.assertRaises(SystemExit):
                cli.parse_args([])

    def test_tool(self):
        args = cli.parse_args(['-c', 'map.yml', 'tool', '--command', 'sudo efh_tool', '--timeout', '5'])
        self.assertEqual(args.mode, 'tool')
        self.assertEqual(args.command, 'sudo efh_tool')
        self.assertEqual(args.timeout, 5.0)
        self.assertIsInstance(cli.make_target(args), ToolTarget)

    def test_mmap(self):
        args = cli.parse_args(['-c', 'map.yml', 'mmap', '/sys/bus/pci/devices/0000:01:00.0',
                               '--endianness', 'big'])
        self.assertEqual(args.mode, 'mmap')
        self.assertEqual(args.device_path, '/sys/bus/pci/devices/0000:01:00.0')
        t = cli.make_target(args)
        self.assertIsInstance(t, MMapTarget)
        t.close()

    def test_mock_default(self):
        args = cli.parse_args(['-c', 'map.yml', 'mock', 'values.yml', '--default', '0x10'])
        self.assertEqual(args.values_file, 'values.yml')
        self.assertEqual(args.default, 0x10)


class MainTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.config = self._write('map.yml', MAP)
        self.output = os.path.join(self.tmpdir.name, 'report.txt')

        # main() installs its own handlers on the root logger
        patcher = mock.patch.object(cli, 'setup_logging')
        patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self):
        self.tmpdir.cleanup()

    def _write(self, name, text):
        path = os.path.join(self.tmpdir.name, name)
        with open(path, 'w') as f:
            f.write(text)
        return path

    def _main(self, values, *extra):
        values_file = self._write('values.yml', values)
        return cli.main(['-c', self.config, '-o', self.output, *extra, 'mock', values_file])

    def _report(self):
        with open(self.output) as f:
            return f.read()

    def test_all_good(self):
        self.assertEqual(self._main('0x0: 0x1234\n0x8: 3\n'), cli.EXIT_OK)
        self.assertIn('2 registers, 0 bad, 0 unresolved', self._report())

    def test_anomaly(self):
        self.assertEqual(self._main('0x0: 0x1\n0x8: 3\n'), cli.EXIT_BAD)
        self.assertIn('2 registers, 1 bad, 0 unresolved', self._report())

    def test_read_failure(self):
        self.assertEqual(self._main('0x0: 0x1234\n'), cli.EXIT_READ_FAILED)
        # the report is still written
        self.assertIn('2 registers, 1 bad, 1 unresolved', self._report())

    def test_config_errors(self):
        self.config = self._write('broken.yml', 'regs:\n  - name: NOADDR\n')
        self.assertEqual(self._main('{}\n'), cli.EXIT_CONFIG)

        self.config = os.path.join(self.tmpdir.name, 'missing.yml')
        self.assertEqual(self._main('{}\n'), cli.EXIT_CONFIG)

    def test_bad_values_file(self):
        self.assertEqual(self._main('- not a mapping\n'), cli.EXIT_CONFIG)

    def test_failing_goodexpr_still_reports(self):
        self.config = self._write('shift.yml', SHIFT_MAP)
        self.assertEqual(self._main('0x0: 0\n0x8: 1\n'), cli.EXIT_BAD)
        self.assertIn('2 registers, 1 bad, 0 unresolved', self._report())

    def test_legacy(self):
        self._main('0x0: 0x1234\n0x8: 3\n', '--legacy')
        self.assertIn('**      DEV      **', self._report())

    def test_outconfig(self):
        outconfig = os.path.join(self.tmpdir.name, 'out.yml')
        self._main('0x0: 0x1234\n0x8: 3\n', '--outconfig', outconfig, '--values')

        with open(outconfig) as f:
            doc = yaml.safe_load(f)
        self.assertEqual(doc['name'], 'DEV')
        self.assertEqual(doc['regs'][0]['value'], 0x1234)
        self.assertEqual(doc['regs'][1]['value'], 3)

    def test_tool_mode(self):
        with mock.patch('reginspect.tooltarget.subprocess.run') as run:
            run.return_value = subprocess.CompletedProcess([], 0, stdout='0x1234\n', stderr='')
            ret = cli.main(['-c', self.config, '-o', self.output])

        self.assertEqual(ret, cli.EXIT_OK)
        self.assertEqual(run.call_count, 2)


class ExampleMapTests(unittest.TestCase):
    def setUp(self):
        patcher = mock.patch.object(cli, 'setup_logging')
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_example(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            output = os.path.join(tmpdir, 'report.txt')
            ret = cli.main(['-c', os.path.join(EXAMPLES_PATH, 'nic.yml'), '-o', output,
                            '--only-bad', 'mock', os.path.join(EXAMPLES_PATH, 'nic-values.yml')])
            with open(output) as f:
                text = f.read()

        # ENGINE reads back as 0b110
        self.assertEqual(ret, cli.EXIT_BAD)
        self.assertIn('ENGINE', text)
        self.assertNotIn('RX_DROPS', text)
        self.assertIn('5 registers, 1 bad, 0 unresolved', text)


class MakeTargetTests(unittest.TestCase):
    def test_mock_missing_file(self):
        args = cli.parse_args(['-c', 'map.yml', 'mock', '/nonexistent/values.yml'])
        with self.assertRaises(cli.ConfigParseError):
            cli.make_target(args)

    def test_mock(self):
        with tempfile.NamedTemporaryFile('w', suffix='.yml', delete=False) as f:
            f.write('0x10: 5\n')
        try:
            args = cli.parse_args(['-c', 'map.yml', 'mock', f.name])
            t = cli.make_target(args)
            self.assertIsInstance(t, MockTarget)
            self.assertEqual(t.read_register(4, 0x10, 8), 5)
        finally:
            os.unlink(f.name)


if __name__ == '__main__':
    unittest.main()
