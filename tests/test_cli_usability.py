import json
import subprocess
import sys
from pathlib import Path

from snpbins.toy_data import make_toy_data


def _run_cli(args: list[str]) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, "-m", "snpbins"] + args,
        check=False,
        capture_output=True,
        text=True,
    )


def test_quickstart_output() -> None:
    cp = _run_cli(["quickstart"])
    assert cp.returncode == 0
    assert "snpbins assign" in cp.stdout
    assert "--bin-size" in cp.stdout


def test_assign_dry_run_does_not_write_outputs(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    outdir = tmp_path / "assign"
    cp = _run_cli(
        [
            "assign",
            "--hapmap",
            toy["hapmap"],
            "--ancestors",
            "P1",
            "P2",
            "--bin-size",
            "10000",
            "--outdir",
            str(outdir),
            "--dry-run",
        ]
    )
    assert cp.returncode == 0
    assert "Dry-run" in cp.stdout
    assert "Bins: 5" in cp.stdout
    assert not (outdir / "summary.json").exists()


def test_make_toy_data_and_assign_with_gff(tmp_path: Path) -> None:
    toy_dir = tmp_path / "toy"
    cp = _run_cli(["make-toy-data", "--outdir", str(toy_dir)])
    assert cp.returncode == 0

    outdir = tmp_path / "out"
    cp = _run_cli(
        [
            "assign",
            "--hapmap",
            str(toy_dir / "toy.hmp.txt"),
            "--ancestors",
            "P1",
            "P2",
            "--gff",
            str(toy_dir / "toy_genes.gff3.gz"),
            "--outdir",
            str(outdir),
        ]
    )
    assert cp.returncode == 0, cp.stderr
    assert (outdir / "report.html").exists()
    assert "SAMPLE" in cp.stderr

    lines = (outdir / "assignments" / "S1.tsv").read_text(encoding="utf-8").splitlines()
    assert lines[0] == "sequence\tstart\tend\tname\tassignment"
    assert lines[1].split("\t") == ["chr1", "0", "10000", "chr1_gene1", "P1|P1"]
    assert len(lines) == 6
    assert not (outdir / "assignments" / "P1.tsv").exists()

    summary = json.loads((outdir / "summary.json").read_text(encoding="utf-8"))
    assert summary["n_bins"] == 5
    assert summary["diagnostics"]["sites_unbinned"] == 0
    assert summary["ancestors"] == ["P1", "P2"]

    table = (outdir / "origin_frequencies.txt").read_text(encoding="utf-8")
    assert table.splitlines()[0].startswith("SAMPLE")


def test_contig_style_is_reconciled(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    gff = Path(toy["gff"])
    ensembl_gff = tmp_path / "ensembl.gff3"
    ensembl_gff.write_text(gff.read_text(encoding="utf-8").replace("chr", ""), encoding="utf-8")

    cp = _run_cli(
        [
            "assign",
            "--hapmap",
            toy["hapmap"],
            "--ancestors",
            "P1",
            "P2",
            "--gff",
            str(ensembl_gff),
            "--outdir",
            str(tmp_path / "out"),
            "--no-plots",
        ]
    )
    assert cp.returncode == 0, cp.stderr
    assert "Contig style mismatch" in cp.stderr


def test_single_ancestor_is_config_error(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    cp = _run_cli(
        [
            "assign",
            "--hapmap",
            toy["hapmap"],
            "--ancestors",
            "P1",
            "--bin-size",
            "10000",
            "--outdir",
            str(tmp_path / "out"),
        ]
    )
    assert cp.returncode == 2
    assert "ConfigError" in cp.stderr


def test_missing_bin_source_and_bad_threshold(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    base = ["assign", "--hapmap", toy["hapmap"], "--ancestors", "P1", "P2", "--outdir", str(tmp_path / "out")]

    cp = _run_cli(base)
    assert cp.returncode == 2
    assert "ConfigError" in cp.stderr

    cp = _run_cli(base + ["--bin-size", "10000", "--min-percent", "high"])
    assert cp.returncode == 2
    assert "min_percent" in cp.stderr
