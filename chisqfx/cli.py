"""
ChisqFX Command Line Interface

Supervised feature extraction using top significant k-mers by chi-squared test.
"""

import argparse
import sys
import time
from typing import List, Optional

from . import __version__
from .config import ChisqConfig, load_config_from_env
from .pipeline import run_pipeline
from .utils import setup_logging


class ChisqArgumentParser(argparse.ArgumentParser):
    """Argument parser reporting invalid values with exit status 1."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def create_parser() -> argparse.ArgumentParser:
    """Create command-line argument parser."""
    parser = ChisqArgumentParser(
        prog="chisqfx",
        description="ChisqFX: supervised feature extraction using top significant k-mers by chi-squared test",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Two or three categories, counting k-mers from scratch
  chisqfx -k 21 -i samples.tsv -n 50 -w results/

  # Reuse k-mers counted by an earlier run and skip graph export
  chisqfx -k 21 -i samples.tsv -n 50 --kmers-dir results/kmers/kmers --skip-graph

  # Limit engine resources
  chisqfx -k 31 -i samples.tsv -n 100 -t 8 -m 16G

The reads file is tab-separated with two values per row: <path_to_file>\\t<category>
        """,
    )

    launch_group = parser.add_argument_group("Launch options")
    launch_group.add_argument(
        "-t", "--threads", type=int,
        help="Number of threads to use (default: all)",
    )
    launch_group.add_argument(
        "-m", "--memory",
        help="Memory to use, values with suffix: 1500M, 4G, etc. (default: 90%% of free RAM)",
    )
    launch_group.add_argument(
        "-w", "--work-dir", dest="work_dir",
        help="Working directory (default: workDir)",
    )
    launch_group.add_argument(
        "--config",
        help="JSON or YAML configuration file; command-line flags take precedence",
    )
    launch_group.add_argument(
        "--engine",
        help="K-mer engine command (default: metafast.sh)",
    )
    launch_group.add_argument(
        "--contigs-helper", dest="contigs_helper",
        help="Graph-to-contigs helper command (default: graph2contigs.py)",
    )
    launch_group.add_argument(
        "--unit-workers", dest="unit_workers", type=int,
        help="Categories processed concurrently when there are 4 or more (default: 1)",
    )
    launch_group.add_argument(
        "-v", "--verbose", action="store_true",
        help="Verbose logging",
    )
    launch_group.add_argument(
        "--version", action="version", version=f"ChisqFX {__version__}",
    )

    input_group = parser.add_argument_group("Input parameters")
    input_group.add_argument(
        "-k", "--k", dest="k", type=int,
        help="k-mer size in nucleotides, maximum value is 31 [mandatory]",
    )
    input_group.add_argument(
        "-i", "--reads-file", dest="reads_file",
        help="Tab-separated file with 2 values in each row: <path_to_file>\\t<category> [mandatory]",
    )
    input_group.add_argument(
        "-n", "--num-kmers", dest="num_kmers", type=int,
        help="Number of most specific k-mers to be extracted [mandatory]",
    )
    input_group.add_argument(
        "-b", "--bad-frequency", dest="bad_frequency", type=int,
        help="Maximal frequency for a k-mer to be assumed erroneous (default: 1)",
    )
    input_group.add_argument(
        "--depth", type=int,
        help="Depth of de Bruijn graph traversal from pivot k-mers in number of branches (default: 1)",
    )
    input_group.add_argument(
        "--kmers-dir", dest="kmers_dir",
        help="Directory with pre-computed k-mers for samples in binary format",
    )
    input_group.add_argument(
        "--skip-graph", dest="skip_graph", action="store_true",
        help="Skip de Bruijn graph and fasta construction from components",
    )

    return parser


def build_config(args) -> ChisqConfig:
    """Combine config file, environment and command-line values."""
    config = ChisqConfig(args.config) if args.config else ChisqConfig()
    config = load_config_from_env(config)
    config.update_from_args(args)
    config.validate()
    return config


def main(argv: Optional[List[str]] = None, runner=None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
    except ValueError as e:
        print(f"❌ {e}", file=sys.stderr)
        print("Run 'chisqfx --help' for usage.", file=sys.stderr)
        return 1

    config.work_dir.mkdir(parents=True, exist_ok=True)
    setup_logging(config.output.verbose, config.log_path)

    print(f"🧬 ChisqFX {__version__}: chi-squared k-mer feature extraction")
    print("=" * 80)
    print(config.get_summary())
    print()

    start_time = time.time()
    result = run_pipeline(config, runner=runner)
    elapsed = time.time() - start_time

    print()
    print("=" * 80)
    if result.ok:
        print(f"🎉 ChisqFX finished successfully in {elapsed:.1f}s")
        if result.feature_table is not None:
            n_samples, n_features = result.feature_table.shape
            print(f"   • Comparison mode: {result.branch_mode.value}")
            print(f"   • Feature table: {n_samples} samples x {n_features} features")
        print(f"📁 Results saved to: {config.work_dir}")
    else:
        print(f"❌ ChisqFX aborted: {result.error}", file=sys.stderr)
        for stage in result.stages:
            print(f"   Step {stage.number}: {stage.status.value}")

    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
