from __future__ import annotations

import datetime as _dt
import logging
from pathlib import Path
from typing import Any, Dict

from jinja2 import Template

logger = logging.getLogger(__name__)


_REPORT_TEMPLATE = Template(
    """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>snpbins Report</title>
  <style>
    body { font-family: Arial, Helvetica, sans-serif; margin: 24px; }
    code, pre { background: #f6f8fa; padding: 2px 4px; border-radius: 4px; }
    pre { padding: 12px; overflow-x: auto; }
    h1, h2, h3 { margin-top: 1.2em; }
    table { border-collapse: collapse; margin-top: 0.6em; }
    th, td { border: 1px solid #ddd; padding: 8px; }
    th { background: #f2f2f2; text-align: left; }
    .grid { display: grid; grid-template-columns: 1fr 1fr; gap: 16px; }
    .card { border: 1px solid #ddd; border-radius: 8px; padding: 12px; }
    .small { color: #666; font-size: 0.9em; }
    img { max-width: 100%; height: auto; border: 1px solid #eee; border-radius: 6px; }
  </style>
</head>
<body>

<h1>snpbins Report</h1>
<p class="small">Generated: {{ generated_at }}</p>

<h2>Run summary</h2>
<div class="grid">
  <div class="card">
    <h3>Inputs</h3>
    <table>
      <tr><th>Hapmap</th><td><code>{{ hapmap_path }}</code></td></tr>
      <tr><th>Bins</th><td>{{ region_source }}</td></tr>
      <tr><th>Bin count</th><td>{{ n_bins }}</td></tr>
      <tr><th>Ancestors</th><td>{{ ancestors | join(", ") }}</td></tr>
      <tr><th>Samples classified</th><td>{{ samples | length }}</td></tr>
    </table>
  </div>
  <div class="card">
    <h3>Thresholds</h3>
    <table>
      <tr><th>Min percent</th><td>{{ thresholds.min_percent }}</td></tr>
      <tr><th>Min informative sites per bin</th><td>{{ thresholds.min_total_var }}</td></tr>
      <tr><th>Min sites per label</th><td>{{ thresholds.min_indiv_var }}</td></tr>
      <tr><th>Empty bins reported</th><td>{{ emit_empty_bins }}</td></tr>
    </table>
  </div>
</div>

<h2>Diagnostics</h2>
<table>
  <tr><th>Sites seen</th><td>{{ diagnostics.sites_total }}</td></tr>
  <tr><th>Sites outside every bin</th><td>{{ diagnostics.sites_unbinned }}</td></tr>
  <tr><th>Sites with a heterozygous ancestor (-AHET)</th><td>{{ diagnostics.sites_ancestor_het }}</td></tr>
  <tr><th>Sites with identical ancestors (-ASAM)</th><td>{{ diagnostics.sites_ancestor_same }}</td></tr>
  <tr><th>Missing sample genotypes</th><td>{{ diagnostics.genotypes_missing }}</td></tr>
  <tr><th>Malformed records skipped</th><td>{{ diagnostics.records_skipped }}</td></tr>
  <tr><th>Overlapping features skipped</th><td>{{ diagnostics.regions_skipped_overlap }}</td></tr>
  <tr><th>Sequences without bins</th><td>{{ diagnostics.sequences_without_regions | join(", ") or "none" }}</td></tr>
</table>

<h2>Bin assignments</h2>
<table>
  <tr><th>Sample</th>{% for lab in assignment_labels %}<th>{{ lab }}</th>{% endfor %}</tr>
  {% for sample in samples %}
  <tr><td>{{ sample }}</td>{% for lab in assignment_labels %}<td>{{ assignment_counts[sample].get(lab, 0) }}</td>{% endfor %}</tr>
  {% endfor %}
</table>

<h2>Origin-label frequencies</h2>
<pre>{{ origin_table }}</pre>

<h2>Plots</h2>
<div class="grid">
  <div class="card">
    <h3>Assignment composition</h3>
    <img src="{{ plots.assignment_composition }}" alt="assignment composition">
  </div>
  <div class="card">
    <h3>Origin labels</h3>
    <img src="{{ plots.origin_heatmap }}" alt="origin label heatmap">
  </div>
</div>

<h2>Outputs</h2>
<ul>
  <li><code>assignments/&lt;sample&gt;.tsv</code> (per-sample bin assignments)</li>
  <li><code>origin_frequencies.txt</code> (raw per-site origin-label counts)</li>
  <li><code>summary.json</code> (machine-readable summary)</li>
</ul>

<h2>Interpretation notes</h2>
<ul>
  <li>Sites where an ancestor is heterozygous (-AHET) or all ancestors agree (-ASAM) are not informative and do not count towards the thresholds.</li>
  <li>"Insufficient Variation" means the bin had fewer informative sites than the minimum; "Unclear" means no origin reached the percentage threshold.</li>
  <li>UNK marks sample alleles carried by none of the ancestors.</li>
</ul>

<hr>
<p class="small">snpbins {{ version }}</p>
</body>
</html>"""
)


def render_report(
    *,
    outdir: str | Path,
    version: str,
    run: Dict[str, Any],
    origin_table: str,
    plots: Dict[str, str],
) -> Path:
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    assignment_counts = run.get("assignment_counts", {})
    assignment_labels = sorted({lab for counts in assignment_counts.values() for lab in counts})

    html = _REPORT_TEMPLATE.render(
        generated_at=_dt.datetime.now().isoformat(timespec="seconds"),
        version=version,
        hapmap_path=run.get("hapmap_path"),
        region_source=run.get("region_source"),
        n_bins=run.get("n_bins"),
        ancestors=run.get("ancestors", []),
        samples=list(assignment_counts),
        thresholds=run.get("thresholds", {}),
        emit_empty_bins=run.get("emit_empty_bins"),
        diagnostics=run.get("diagnostics", {}),
        assignment_counts=assignment_counts,
        assignment_labels=assignment_labels,
        origin_table=origin_table,
        plots=plots,
    )

    out_path = outdir / "report.html"
    out_path.write_text(html, encoding="utf-8")
    return out_path
