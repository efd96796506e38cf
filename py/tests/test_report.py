#!/usr/bin/env python3

import unittest

import reginspect as ri
from reginspect import codec
from reginspect.report import MARK_BAD, MARK_GOOD, MARK_UNRESOLVED, marker

MAP = '''
name: DEV
desc: Test device
regs:
  - addr: 0x0
    name: A
    desc: Must be one
    good: 0x1
  - addr: 0x8
    name: B
  - addr: 0x10
    name: C
    fields:
      - width: 4
        name: C_LOW
        good: 0x5
'''


def _probed(text=MAP, values=None):
    root = codec.parse(text)
    if values is None:
        values = {0x0: 0x2, 0x10: 0x15}
    try:
        ri.probe(ri.MockTarget(values), root)
    except ri.ProbeError:
        pass
    return root


def _row(text, name):
    for line in text.splitlines():
        if name in line.split():
            return line
    return None


class MarkerTests(unittest.TestCase):
    def test_markers(self):
        root = _probed()
        a, b, c = root.registers
        self.assertEqual(marker(a), MARK_BAD)
        self.assertEqual(marker(b), MARK_UNRESOLVED)
        self.assertEqual(marker(c), MARK_GOOD)
        self.assertEqual(marker(c.fields[0]), MARK_GOOD)
        self.assertEqual(marker(root), MARK_BAD)

    def test_unprobed_field(self):
        root = codec.parse(MAP)
        self.assertEqual(marker(root.registers[2].fields[0]), MARK_UNRESOLVED)


class ReportTests(unittest.TestCase):
    def test_rows(self):
        text = ri.report(_probed())

        a = _row(text, 'A')
        self.assertTrue(a.lstrip().startswith(MARK_BAD))
        self.assertIn('0x0000000000000002', a)
        self.assertIn('0x0000000000000000', a)
        self.assertIn('Must be one', a)
        self.assertIn('0x0000000000000001', a)

        b = _row(text, 'B')
        self.assertTrue(b.lstrip().startswith(MARK_UNRESOLVED))
        self.assertIn('ERR', b)

        c = _row(text, 'C')
        self.assertNotIn(MARK_BAD, c)
        self.assertNotIn(MARK_UNRESOLVED, c)
        self.assertIn('0x0000000000000015', c)

        low = _row(text, 'C_LOW')
        self.assertIn('0x0000000000000010[3:0]', low)
        self.assertEqual(low.split().count('0x5'), 2)

        self.assertTrue(_row(text, 'DEV').lstrip().startswith(MARK_BAD))

    def test_declared_order(self):
        text = ri.report(_probed())
        order = [text.index(f' {name} ') for name in ('DEV', 'A', 'B', 'C', 'C_LOW')]
        self.assertEqual(order, sorted(order))

    def test_summary(self):
        text = ri.report(_probed())
        self.assertTrue(text.endswith('3 registers, 2 bad, 1 unresolved\n'))

    def test_only_bad(self):
        text = ri.report(_probed(), only_bad=True)
        self.assertIsNotNone(_row(text, 'A'))
        self.assertIsNotNone(_row(text, 'B'))
        self.assertIsNone(_row(text, 'C'))
        self.assertIsNone(_row(text, 'C_LOW'))

    def test_only_bad_all_good(self):
        root = _probed(values={0x0: 0x1, 0x8: 0, 0x10: 0x5})
        text = ri.report(root, only_bad=True)
        self.assertEqual(text, '3 registers, 0 bad, 0 unresolved\n')

    def test_formats(self):
        root = _probed()
        self.assertIn('2', _row(ri.report(root, fmt=ri.ValueFormat.DEC), 'A').split())
        self.assertIn('0b0101', _row(ri.report(root, fmt=ri.ValueFormat.BIN), 'C_LOW').split())

    def test_unprobed(self):
        text = ri.report(codec.parse(MAP))
        self.assertTrue(_row(text, 'C').lstrip().startswith(MARK_UNRESOLVED))
        self.assertIn('-', _row(text, 'C').split())
        # A and C_LOW carry checks that cannot pass without a value
        self.assertTrue(text.endswith('3 registers, 2 bad, 3 unresolved\n'))

    def test_list_root_and_unnamed(self):
        text = '''
- name: FIRST
  regs:
    - addr: 0x0
- name: SECOND
'''
        out = ri.report(_probed(text, {0x0: 0}))
        lines = out.splitlines()
        self.assertTrue(lines[1].rstrip().endswith('FIRST'))
        self.assertIn('<unnamed>', out)
        self.assertIn('SECOND', out)


class LegacyReportTests(unittest.TestCase):
    def test_layout(self):
        text = ri.report_legacy(_probed())

        self.assertTrue(text.startswith('\n**      DEV      **\nTest device\n'))
        self.assertIn('A 0x0000000000000000 value: 0x0000000000000002 EXPECTED: 0x0000000000000001', text)
        self.assertIn('B 0x0000000000000008 value: UNRESOLVED', text)
        self.assertIn('C 0x0000000000000010 value: 0x0000000000000015     \n', text)
        self.assertIn('C_LOW: 0x5 5     \n', text)

    def test_bad_field(self):
        text = ri.report_legacy(_probed(values={0x0: 0x1, 0x8: 0, 0x10: 0x17}))
        self.assertIn('C_LOW: 0x7 7 EXPECTED: 0x5 5', text)


if __name__ == '__main__':
    unittest.main()
