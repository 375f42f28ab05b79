#!/usr/bin/env python3
"""
Tests for the ChisqFX command line interface.
"""

import io
import logging
import shutil
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

import pandas as pd

from chisqfx.cli import build_config, create_parser, main
from test_pipeline import FakeEngine, write_manifest


class TestCommandLine(unittest.TestCase):

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.work_dir = self.temp_dir / "results"
        self.manifest = self.temp_dir / "samples.tsv"

    def tearDown(self):
        root = logging.getLogger()
        for handler in list(root.handlers):
            handler.close()
            root.removeHandler(handler)
        shutil.rmtree(self.temp_dir)

    def run_main(self, argv, engine=None):
        stdout, stderr = io.StringIO(), io.StringIO()
        with redirect_stdout(stdout), redirect_stderr(stderr):
            code = main(argv, runner=engine)
        return code, stdout.getvalue(), stderr.getvalue()

    def base_args(self):
        return ["-k", "21", "-i", str(self.manifest), "-n", "50", "-w", str(self.work_dir),
                "--contigs-helper", "graph2contigs.py"]

    def test_parser_defaults(self):
        args = create_parser().parse_args([])
        self.assertIsNone(args.k)
        self.assertIsNone(args.bad_frequency)
        self.assertFalse(args.skip_graph)

    def test_version(self):
        with redirect_stdout(io.StringIO()):
            with self.assertRaises(SystemExit) as ctx:
                create_parser().parse_args(["--version"])
        self.assertEqual(ctx.exception.code, 0)

    def test_flags_override_config_file(self):
        config_file = self.temp_dir / "chisqfx.json"
        config_file.write_text('{"engine": {"k": 25, "memory": "8G"}, "selection": {"num_kmers": 10}}')
        write_manifest(self.manifest, {"a": 1, "b": 1})

        args = create_parser().parse_args(
            ["--config", str(config_file), "-k", "19", "-i", str(self.manifest), "--depth", "2"]
        )
        config = build_config(args)

        self.assertEqual(config.engine.k, 19)
        self.assertEqual(config.engine.memory, "8G")
        self.assertEqual(config.selection.num_kmers, 10)
        self.assertEqual(config.graph.depth, 2)

    def test_missing_mandatory_parameter(self):
        write_manifest(self.manifest, {"a": 1, "b": 1})
        engine = FakeEngine()
        code, _, stderr = self.run_main(["-i", str(self.manifest), "-n", "50"], engine)

        self.assertEqual(code, 1)
        self.assertIn("k-mer size", stderr)
        self.assertEqual(engine.calls, [])

    def test_k_out_of_range(self):
        write_manifest(self.manifest, {"a": 1, "b": 1})
        code, _, _ = self.run_main(["-k", "40", "-i", str(self.manifest), "-n", "50"], FakeEngine())
        self.assertEqual(code, 1)

    def test_invalid_flag_value(self):
        write_manifest(self.manifest, {"a": 1, "b": 1})
        for argv in (["-k", "abc", "-i", str(self.manifest), "-n", "50"],
                     ["-k", "21", "-i", str(self.manifest), "-n", "x"]):
            stderr = io.StringIO()
            with redirect_stderr(stderr):
                with self.assertRaises(SystemExit) as ctx:
                    main(argv, runner=FakeEngine())
            self.assertEqual(ctx.exception.code, 1)
            self.assertIn("invalid int value", stderr.getvalue())

    def test_successful_run(self):
        write_manifest(self.manifest, {"healthy": 2, "disease": 2})
        engine = FakeEngine(components=2)
        code, stdout, _ = self.run_main(self.base_args() + ["-t", "4"], engine)

        self.assertEqual(code, 0)
        self.assertIn("4 samples x 2 features", stdout)
        self.assertEqual(len(engine.calls), 6)
        self.assertIn("-p", engine.calls[0])

        table = pd.read_csv(self.work_dir / "feature_table.tsv", sep="\t", index_col=0)
        self.assertEqual(list(table.index), ["healthy_1", "healthy_2", "disease_1", "disease_2"])
        self.assertTrue((self.work_dir / "chisqfx.log").exists())

    def test_single_category_fails(self):
        write_manifest(self.manifest, {"healthy": 3})
        code, _, stderr = self.run_main(self.base_args() + ["--skip-graph"], FakeEngine())

        self.assertEqual(code, 1)
        self.assertIn("at least 2 categories", stderr)
        self.assertFalse((self.work_dir / "feature_table.tsv").exists())


if __name__ == "__main__":
    unittest.main()
