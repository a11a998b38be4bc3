#!/usr/bin/env python3
"""
Tests for the ignore-status command line interface
"""

import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import patch
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from ignore_status.cli import main

CLEAN_ENV = {k: v for k, v in os.environ.items() if not k.startswith('IGNORE_STATUS_')}


@patch.dict(os.environ, CLEAN_ENV, clear=True)
class TestCLI(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        (self.root / ".gitignore").write_text("*.log\n!keep.log\nbuild/\n")
        (self.root / "build").mkdir()
        (self.root / "a.log").write_text("")
        (self.root / "keep.log").write_text("")

    def tearDown(self):
        self.temp_dir.cleanup()

    def run_cli(self, *argv):
        output = io.StringIO()
        with redirect_stdout(output):
            code = main(list(argv))
        return code, output.getvalue()

    def test_check(self):
        code, output = self.run_cli(
            'check', '--root', str(self.root),
            str(self.root / "a.log"), str(self.root / "keep.log"), str(self.root / "build")
        )
        self.assertEqual(code, 0)
        lines = output.splitlines()
        self.assertEqual(lines[0], f"ignored\t{self.root / 'a.log'}")
        self.assertEqual(lines[1], f"not ignored\t{self.root / 'keep.log'}")
        self.assertEqual(lines[2], f"ignored\t{self.root / 'build'}")

    def test_check_json_verbose(self):
        code, output = self.run_cli(
            'check', '--root', str(self.root), '--json', '-v', str(self.root / "keep.log")
        )
        self.assertEqual(code, 0)
        results = json.loads(output)
        self.assertFalse(results[0]['ignored'])
        self.assertEqual(results[0]['decisions'][0]['verdict'], False)
        self.assertEqual(results[0]['decisions'][0]['kind'], 'gitignore')

    def test_disable_kind(self):
        code, output = self.run_cli(
            'check', '--root', str(self.root), '--json',
            '--disable-kind', 'gitignore', str(self.root / "a.log")
        )
        self.assertEqual(json.loads(output), [{'path': str(self.root / "a.log"), 'ignored': False}])

    def test_extra_rules(self):
        with tempfile.TemporaryDirectory() as other:
            extra = Path(other) / "excludes"
            extra.write_text("*.bak\n")
            code, output = self.run_cli(
                'check', '--root', str(self.root), '--extra-rules', str(extra),
                str(self.root / "x.bak")
            )
        self.assertEqual(output, f"ignored\t{self.root / 'x.bak'}\n")

    def test_disabled_by_environment(self):
        with patch.dict(os.environ, {'IGNORE_STATUS_ENABLED': 'false'}):
            code, output = self.run_cli('check', '--root', str(self.root), str(self.root / "a.log"))
        self.assertEqual(output, f"not ignored\t{self.root / 'a.log'}\n")

    def test_kinds(self):
        code, output = self.run_cli('kinds')
        self.assertEqual(code, 0)
        lines = output.splitlines()
        self.assertEqual(len(lines), 5)
        self.assertTrue(lines[0].startswith('git-exclude'))
        self.assertIn('working-directory', lines[0])
        self.assertIn('.gitignore', lines[1])


if __name__ == "__main__":
    unittest.main()
