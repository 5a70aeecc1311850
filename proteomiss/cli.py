"""Command line interface.

Usage::

    proteomiss missingness data.tsv
    proteomiss mcar data.tsv --threshold 0.2
    proteomiss run data.tsv --config pipeline.yaml --output ensemble.npz \\
        --completed completed.npz --completed-csv completed.tsv
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence

from proteomiss.config import load_config
from proteomiss.core.exceptions import ProteomissError
from proteomiss.io import read_matrix, save_completed, save_ensemble, write_matrix
from proteomiss.pipeline import run_pipeline
from proteomiss.qc import compute_missingness, filter_proteins_missing, mcar_test


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="proteomiss",
        description="Sparsity analysis and multiple imputation of proteomics abundance matrices",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_miss = sub.add_parser("missingness", help="Print the missing rate of every protein")
    p_miss.add_argument("input", help="Delimited proteins x samples table")
    p_miss.add_argument("--id-column", default=None, help="Protein identifier column")

    p_mcar = sub.add_parser("mcar", help="Run Little's MCAR test after threshold filtering")
    p_mcar.add_argument("input", help="Delimited proteins x samples table")
    p_mcar.add_argument("--id-column", default=None, help="Protein identifier column")
    p_mcar.add_argument("--threshold", type=float, default=0.20, help="Maximum missingness")

    p_run = sub.add_parser("run", help="Run the full pipeline")
    p_run.add_argument("input", help="Delimited proteins x samples table")
    p_run.add_argument("--id-column", default=None, help="Protein identifier column")
    p_run.add_argument("--config", "-c", default=None, help="YAML pipeline configuration")
    p_run.add_argument("--output", "-o", required=True, help="Output .npz for the ensemble")
    p_run.add_argument("--completed", default=None, help="Output .npz for the completed matrix")
    p_run.add_argument(
        "--completed-csv", default=None, help="Output table for the completed matrix"
    )

    return parser.parse_args(argv)


def _cmd_missingness(args: argparse.Namespace) -> None:
    matrix = read_matrix(args.input, id_column=args.id_column)
    print(compute_missingness(matrix).to_frame().write_csv(separator="\t"), end="")


def _cmd_mcar(args: argparse.Namespace) -> None:
    matrix = read_matrix(args.input, id_column=args.id_column)
    filtered = filter_proteins_missing(matrix, args.threshold)
    result = mcar_test(filtered)
    verdict = "reject MCAR" if result.rejects_mcar() else "consistent with MCAR"
    print(f"statistic\t{result.statistic:.6g}")
    print(f"df\t{result.df}")
    print(f"p_value\t{result.p_value:.6g}")
    print(f"conclusion\t{verdict}")


def _cmd_run(args: argparse.Namespace) -> None:
    matrix = read_matrix(args.input, id_column=args.id_column)
    config = load_config(args.config) if args.config else None
    result = run_pipeline(matrix, config)

    save_ensemble(result.ensemble, args.output)
    if args.completed:
        save_completed(result.completed, args.completed)
    if args.completed_csv:
        write_matrix(result.completed.matrix, args.completed_csv)

    print(
        f"Kept {result.filtered.n_proteins} of {matrix.n_proteins} proteins; "
        f"imputed {result.filtered.n_missing} cell(s) x {result.ensemble.m}."
    )
    if result.mcar is not None:
        print(
            f"Little's MCAR test: statistic={result.mcar.statistic:.4g}, "
            f"df={result.mcar.df}, p={result.mcar.p_value:.4g}"
        )
    else:
        print(f"Little's MCAR test skipped: {result.mcar_error}")


_COMMANDS = {
    "missingness": _cmd_missingness,
    "mcar": _cmd_mcar,
    "run": _cmd_run,
}


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    args = parse_args(argv)
    try:
        _COMMANDS[args.command](args)
    except (ProteomissError, FileNotFoundError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
