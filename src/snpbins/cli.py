from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .engine import run_binning
from .errors import ConfigError, SnpbinsError
from .features import load_features
from .hapmap import load_genotype_table
from .models import AncestorSet, Thresholds
from .plotting import plot_assignment_composition, plot_origin_heatmap
from .regions import RegionIndex, build_region_index
from .report import render_report
from .toy_data import make_toy_data
from .utils import ensure_outdir, write_json
from .validation import check_region_source, detect_contig_style
from .writer import (
    assignment_counts,
    collect_assignments,
    format_origin_table,
    origin_matrix,
    write_all_assignments,
)


def _setup_logging(verbosity: int, *, logfile: Optional[Path] = None) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    log_fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(level=level, format=log_fmt, stream=sys.stderr)

    if logfile is not None:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(logfile)
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(log_fmt))
        logging.getLogger().addHandler(fh)


def _path_exists(p: str) -> str:
    if not Path(p).exists():
        raise argparse.ArgumentTypeError(f"Path does not exist: {p}")
    return p


def _log_path(outdir: Path, name: str) -> Path:
    return outdir / "logs" / name


def _handle_error(err: Exception, *, log_path: Optional[Path] = None) -> int:
    msg = f"{err.__class__.__name__}: {err}"
    if not isinstance(err, SnpbinsError):
        logging.getLogger("snpbins").debug("Unexpected error", exc_info=err)

    sys.stderr.write(msg + "\n")
    if log_path is not None and log_path.exists():
        sys.stderr.write(f"See log: {log_path}\n")
    return 2


def _resolve_contig_style(
    region_index: RegionIndex,
    table_sequences: list[str],
    requested: str,
) -> RegionIndex:
    table_style = detect_contig_style(table_sequences)
    region_style = detect_contig_style(region_index.sequences())

    target_style = requested
    if requested == "auto":
        target_style = table_style if table_style != "unknown" else region_style

    if region_style != target_style:
        logging.getLogger("snpbins").warning(
            "Contig style mismatch detected (hapmap=%s, regions=%s). Remapping regions to %s style.",
            table_style,
            region_style,
            target_style,
        )
        region_index = region_index.remap_sequences(target_style)

    overlap = set(region_index.sequences()).intersection(table_sequences)
    if not overlap:
        raise ConfigError(
            "Sequence mismatch between hapmap and regions (e.g., chr1 vs 1). "
            "Use --contig-style {ucsc,ensembl,auto} to override."
        )
    return region_index


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="snpbins",
        description=(
            "snpbins: bin hapmap genotypes into genomic regions and assign each sample's "
            "bins to ancestor populations."
        ),
    )
    p.add_argument("--version", action="version", version=f"snpbins {__version__}")

    sub = p.add_subparsers(dest="cmd", required=True)

    # -----------------
    # quickstart
    # -----------------
    sub.add_parser(
        "quickstart",
        help="Print ready-to-run recipes for common scenarios.",
    )

    # -----------------
    # make-toy-data
    # -----------------
    t = sub.add_parser(
        "make-toy-data",
        help="Generate a tiny hapmap and GFF3 for demos/tests.",
    )
    t.add_argument("--outdir", required=True, help="Output directory for toy data.")
    t.add_argument("--dry-run", action="store_true", help="Validate paths without writing files.")

    # -----------------
    # assign
    # -----------------
    a = sub.add_parser(
        "assign",
        help="Assign each sample's genomic bins to ancestor populations.",
    )
    a.add_argument("--hapmap", required=True, type=_path_exists, help="Hapmap genotype file (.txt/.gz).")
    a.add_argument(
        "--ancestors",
        required=True,
        nargs="+",
        help="Two or more sample names (hapmap columns) used as ancestor populations.",
    )
    a.add_argument("--outdir", required=True, help="Output directory.")

    # Bins
    a.add_argument("--bin-size", type=int, default=None, help="Fixed bin width in bp.")
    a.add_argument(
        "--gff",
        type=_path_exists,
        default=None,
        help="GFF3 features to use as bins (plain, .gz, or bgzip+tabix). Overrides --bin-size.",
    )
    a.add_argument("--feature-type", default="gene", help="GFF feature type used as bins.")
    a.add_argument(
        "--contig-style",
        choices=["ucsc", "ensembl", "auto"],
        default="auto",
        help="Contig naming style to reconcile hapmap and GFF sequence names.",
    )

    # Thresholds (validated by Thresholds.from_raw)
    a.add_argument("--min-percent", default="30", help="Minimum %% of informative sites for an origin label.")
    a.add_argument("--min-total-var", default="5", help="Minimum informative sites per bin.")
    a.add_argument("--min-indiv-var", default="2", help="Minimum sites supporting an origin label.")

    # Behaviour
    a.add_argument(
        "--emit-empty-bins",
        action="store_true",
        help="Report bins without any sites as 'Insufficient Variation' instead of omitting them.",
    )
    a.add_argument(
        "--skip-bad-records",
        action="store_true",
        help="Skip (and count) malformed hapmap/GFF records instead of failing.",
    )
    a.add_argument("--threads", type=int, default=1, help="Worker processes for the per-sequence sweep.")
    a.add_argument("--no-plots", action="store_true", help="Do not write plots or report.html.")
    a.add_argument("--dry-run", action="store_true", help="Validate inputs and print planned outputs.")
    a.add_argument("--resume", action="store_true", help="Skip if outputs already exist.")

    a.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v/-vv).")

    return p


# -----------------
# Command handlers
# -----------------

def cmd_quickstart() -> int:
    lines = [
        "snpbins quickstart (copy/paste):",
        "",
        "1) Fixed-size bins:",
        "   snpbins assign \\",
        "     --hapmap genotypes.hmp.txt \\",
        "     --ancestors P1 P2 \\",
        "     --bin-size 100000 \\",
        "     --outdir results/",
        "   Outputs: results/assignments/<sample>.tsv, results/report.html, results/summary.json",
        "",
        "2) Gene bins from a GFF3:",
        "   snpbins assign \\",
        "     --hapmap genotypes.hmp.txt \\",
        "     --ancestors P1 P2 \\",
        "     --gff genes.gff3.gz --feature-type gene \\",
        "     --outdir results_genes/",
        "",
        "3) Try it on toy data:",
        "   snpbins make-toy-data --outdir toy/",
        "   snpbins assign --hapmap toy/toy.hmp.txt --ancestors P1 P2 --gff toy/toy_genes.gff3 --outdir toy_out/",
        "",
        "Tip: use --dry-run to validate inputs and thresholds without writing anything.",
    ]
    print("\n".join(lines))
    return 0


def cmd_make_toy_data(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    if args.dry_run:
        print(f"Dry-run: would write toy data to {outdir}")
        return 0
    summary = make_toy_data(outdir=outdir)
    for key in ("hapmap", "gff", "gff_indexed"):
        print(f"{key}: {summary[key]}")
    return 0


def cmd_assign(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    log_path = _log_path(outdir, "assign.log")
    _setup_logging(args.verbose, logfile=None if args.dry_run else log_path)

    logger = logging.getLogger("snpbins")
    logger.info("snpbins %s", __version__)

    try:
        thresholds = Thresholds.from_raw(
            min_percent=args.min_percent,
            min_total_var=args.min_total_var,
            min_indiv_var=args.min_indiv_var,
        )
        check_region_source(args.bin_size, args.gff)
        if args.threads < 1:
            raise ConfigError(f"--threads must be >= 1, got {args.threads}")

        table = load_genotype_table(args.hapmap, skip_bad_records=bool(args.skip_bad_records))
        ancestors = AncestorSet.from_names(args.ancestors, table.samples)
        samples = ancestors.non_ancestors(table.samples)

        feature_stats = None
        features = None
        if args.gff is not None:
            features, feature_stats = load_features(
                args.gff,
                feature_type=args.feature_type,
                skip_bad_records=bool(args.skip_bad_records),
            )
            region_source = f"{args.gff} ({args.feature_type} features)"
        else:
            region_source = f"fixed {args.bin_size} bp windows"

        region_index = build_region_index(
            table,
            bin_size=args.bin_size,
            features=features,
            feature_type=args.feature_type,
        )
        if features is not None:
            region_index = _resolve_contig_style(region_index, table.sequences(), args.contig_style)

        if args.dry_run:
            print("Dry-run: inputs look OK.")
            print(f"Sites: {len(table)} on {len(table.sequences())} sequences")
            print(f"Ancestors: {', '.join(ancestors.names)}")
            print(f"Samples to classify: {len(samples)}")
            print(f"Bins: {len(region_index)} ({region_source})")
            print("Planned outputs:")
            print(f"  assignments/<sample>.tsv -> {outdir / 'assignments'}")
            print(f"  origin_frequencies.txt -> {outdir / 'origin_frequencies.txt'}")
            print(f"  report.html -> {outdir / 'report.html'}")
            print(f"  summary.json -> {outdir / 'summary.json'}")
            return 0

        outdir = ensure_outdir(outdir)

        if args.resume and (outdir / "summary.json").exists():
            logger.info("Resume enabled: summary.json already exists in %s", outdir)
            print(str(outdir / "summary.json"))
            return 0

        aggregator, diagnostics = run_binning(
            table,
            region_index,
            ancestors,
            threads=int(args.threads),
            progress=True,
            extra_records_skipped=feature_stats["records_skipped"] if feature_stats else 0,
        )

        assignments = collect_assignments(
            aggregator,
            region_index,
            samples,
            thresholds,
            emit_empty_bins=bool(args.emit_empty_bins),
        )
        assignment_paths = write_all_assignments(outdir / "assignments", assignments)

        origin_table = format_origin_table(diagnostics, samples)
        (outdir / "origin_frequencies.txt").write_text(origin_table, encoding="utf-8")
        sys.stderr.write(origin_table)

        counts = assignment_counts(assignments)
        run = {
            "hapmap_path": str(args.hapmap),
            "region_source": region_source,
            "n_bins": len(region_index),
            "ancestors": list(ancestors.names),
            "thresholds": {
                "min_percent": thresholds.min_percent,
                "min_total_var": thresholds.min_total_var,
                "min_indiv_var": thresholds.min_indiv_var,
            },
            "emit_empty_bins": bool(args.emit_empty_bins),
            "diagnostics": diagnostics.as_dict(),
            "feature_stats": feature_stats,
            "assignment_counts": counts,
            "assignment_files": assignment_paths,
        }
        write_json(outdir / "summary.json", run)

        if args.no_plots:
            print(str(outdir / "summary.json"))
            return 0

        plots_dir = outdir / "plots"
        plots_dir.mkdir(parents=True, exist_ok=True)
        composition_png = plots_dir / "assignment_composition.png"
        heatmap_png = plots_dir / "origin_heatmap.png"

        plot_assignment_composition(assignment_counts=counts, out_png=composition_png)
        matrix, labels = origin_matrix(diagnostics, samples)
        plot_origin_heatmap(matrix=matrix, samples=samples, labels=labels, out_png=heatmap_png)

        plots_rel = {
            "assignment_composition": str(Path("plots") / composition_png.name),
            "origin_heatmap": str(Path("plots") / heatmap_png.name),
        }

        report_path = render_report(
            outdir=outdir,
            version=__version__,
            run=run,
            origin_table=origin_table,
            plots=plots_rel,
        )

        logger.info("Report written: %s", report_path)
        print(str(report_path))
        return 0
    except Exception as e:
        return _handle_error(e, log_path=log_path)


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "quickstart":
        return cmd_quickstart()
    if args.cmd == "make-toy-data":
        return cmd_make_toy_data(args)
    if args.cmd == "assign":
        return cmd_assign(args)

    parser.error(f"Unknown command: {args.cmd}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
