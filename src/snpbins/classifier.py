from __future__ import annotations

import logging
from typing import Dict, List, Optional

from .errors import ParseError
from .models import AHET, ASAM, UNKNOWN, AncestorSet, Diagnostics, Site

logger = logging.getLogger(__name__)


def _ancestor_genotypes(site: Site, ancestors: AncestorSet) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for name in ancestors.names:
        gt = site.genotypes.get(name)
        if gt is None:
            raise ParseError(f"ancestor {name!r} has no genotype at site {site.describe()}")
        if len(gt) == 0:
            raise ParseError(f"ancestor {name!r} has an empty genotype at site {site.describe()}")
        out[name] = gt
    return out


def origin_label(genotype: str, representatives: Dict[str, str]) -> str:
    """Label one sample genotype against homozygous ancestor alleles.

    ``representatives`` maps ancestor name -> that ancestor's allele. Every
    ancestor matching an allele character is listed (so one character can name
    several ancestors); unmatched characters pad the list with ``UNK``.
    """
    alleles = sorted(genotype)
    origins: List[str] = []
    for allele in alleles:
        for name in sorted(representatives):
            if representatives[name] == allele:
                origins.append(name)
    while len(origins) < len(alleles):
        origins.append(UNKNOWN)
    return "|".join(sorted(origins))


def classify_site(
    site: Site,
    ancestors: AncestorSet,
    diagnostics: Optional[Diagnostics] = None,
) -> Dict[str, str]:
    """Return an origin label for every non-ancestor sample genotyped at ``site``.

    If any ancestor is heterozygous all samples get ``-AHET``; otherwise, if all
    ancestors carry the same genotype, all samples get ``-ASAM``.
    """
    anc = _ancestor_genotypes(site, ancestors)

    ancestor_het = any(len(set(gt)) > 1 for gt in anc.values())
    ancestors_same = len(set(anc.values())) == 1

    sentinel: Optional[str] = None
    if ancestor_het:
        sentinel = AHET
    elif ancestors_same:
        sentinel = ASAM

    if diagnostics is not None:
        if sentinel == AHET:
            diagnostics.sites_ancestor_het += 1
        elif sentinel == ASAM:
            diagnostics.sites_ancestor_same += 1

    representatives = {name: gt[0] for name, gt in anc.items()}

    labels: Dict[str, str] = {}
    for sample, gt in site.genotypes.items():
        if sample in ancestors:
            continue
        if sentinel is not None:
            label = sentinel
        elif len(gt) == 0:
            if diagnostics is not None:
                diagnostics.genotypes_missing += 1
            continue
        else:
            label = origin_label(gt, representatives)
        labels[sample] = label
        if diagnostics is not None:
            diagnostics.tally(sample, label)

    return labels
