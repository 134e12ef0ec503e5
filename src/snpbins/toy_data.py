from __future__ import annotations

import random
from pathlib import Path
from typing import Dict, List, Tuple

import pysam

from .utils import ensure_outdir, write_json

_BASES = ["A", "C", "G", "T"]
_SEQ_LEN = {"chr1": 30_000, "chr2": 20_000}
_GENE_SIZE = 10_000
_SITE_STEP = 400


def _other_base(base: str, rng: random.Random) -> str:
    return rng.choice([b for b in _BASES if b != base])


def _sample_genotype(origin: str, a: str, b: str) -> str:
    if origin == "P1":
        return a + a
    if origin == "P2":
        return b + b
    return a + b


def _toy_sites(rng: random.Random) -> List[Tuple[str, int, Dict[str, str]]]:
    # S1 is P1-derived everywhere; S2 switches from P1 to P2 half way along each
    # sequence; S3 is heterozygous P1/P2 throughout.
    sites: List[Tuple[str, int, Dict[str, str]]] = []
    for chrom, length in _SEQ_LEN.items():
        for pos in range(_SITE_STEP, length + 1, _SITE_STEP):
            a = rng.choice(_BASES)
            b = _other_base(a, rng)
            roll = rng.random()
            if roll < 0.1:
                p1, p2 = a + a, a + a  # identical ancestors
            elif roll < 0.15:
                p1, p2 = a + b, b + b  # heterozygous ancestor
            else:
                p1, p2 = a + a, b + b
            s2_origin = "P1" if pos <= length // 2 else "P2"
            calls = {
                "P1": p1,
                "P2": p2,
                "S1": _sample_genotype("P1", a, b),
                "S2": _sample_genotype(s2_origin, a, b),
                "S3": _sample_genotype("het", a, b),
            }
            sites.append((chrom, pos, calls))
    return sites


def _write_hapmap(path: Path, sites: List[Tuple[str, int, Dict[str, str]]]) -> None:
    samples = ["P1", "P2", "S1", "S2", "S3"]
    header = [
        "rs#", "alleles", "chrom", "pos", "strand", "assembly#",
        "center", "protLSID", "assayLSID", "panelLSID", "QCcode",
    ] + samples
    lines = ["\t".join(header)]
    for chrom, pos, calls in sites:
        alleles = "/".join(sorted(set("".join(calls.values()))))
        fixed = [f"{chrom}_{pos}", alleles, chrom, str(pos), "+", "NA", "NA", "NA", "NA", "NA", "NA"]
        lines.append("\t".join(fixed + [calls[s] for s in samples]))
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def _write_gff(path: Path) -> None:
    lines = ["##gff-version 3"]
    for chrom, length in _SEQ_LEN.items():
        for n, start in enumerate(range(1, length + 1, _GENE_SIZE), start=1):
            end = min(start + _GENE_SIZE - 1, length)
            lines.append(
                "\t".join(
                    [chrom, "toy", "gene", str(start), str(end), ".", "+", ".", f"ID={chrom}_gene{n};Name=G{n}"]
                )
            )
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def make_toy_data(*, outdir: str | Path) -> Dict[str, str]:
    """Create a tiny hapmap and GFF3 suitable for quick demos/tests.

    The outputs include:
    - toy.hmp.txt (ancestors P1, P2; samples S1, S2, S3)
    - toy_genes.gff3
    - toy_genes.gff3.gz (+ .tbi)

    Returns
    -------
    dict
        Paths to the generated files.
    """
    outdir_p = ensure_outdir(outdir)
    rng = random.Random(7)

    hapmap = outdir_p / "toy.hmp.txt"
    _write_hapmap(hapmap, _toy_sites(rng))

    gff = outdir_p / "toy_genes.gff3"
    _write_gff(gff)

    gff_gz = outdir_p / "toy_genes.gff3.gz"
    pysam.tabix_compress(str(gff), str(gff_gz), force=True)
    pysam.tabix_index(str(gff_gz), preset="gff", force=True)

    summary = {
        "hapmap": str(hapmap),
        "gff": str(gff),
        "gff_indexed": str(gff_gz),
        "ancestors": "P1,P2",
        "outdir": str(outdir_p),
    }

    write_json(outdir_p / "toy_summary.json", summary)
    return summary
