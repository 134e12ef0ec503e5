import pytest

from snpbins.aggregator import BinAggregator
from snpbins.errors import ConfigError
from snpbins.labeler import informative_total, label, label_bin
from snpbins.models import ASAM, AHET, BinId, INSUFFICIENT_VARIATION, UNCLEAR, Thresholds


def test_threshold_classification() -> None:
    freq = {"A": 6, "B": 2, ASAM: 3}
    assert informative_total(freq) == 8
    assert label(freq, min_total_var=5, min_indiv_var=2, min_percent=30) == "A"


def test_insufficient_variation() -> None:
    freq = {"A": 6, "B": 2, ASAM: 3}
    assert label(freq, min_total_var=10, min_indiv_var=2, min_percent=30) == INSUFFICIENT_VARIATION


def test_exclusion_labels_never_count_as_informative() -> None:
    freq = {AHET: 20, ASAM: 20, "A": 1}
    assert label_bin(freq, Thresholds()) == INSUFFICIENT_VARIATION


def test_no_qualifying_label_is_unclear() -> None:
    freq = {"A": 1, "B": 1}
    assert label(freq, min_total_var=2, min_indiv_var=2, min_percent=30) == UNCLEAR


def test_multiple_labels_sorted_and_joined() -> None:
    freq = {"B|B": 5, "A|A": 5, "A|B": 1}
    assert label_bin(freq, Thresholds()) == "A|A+B|B"


def test_percent_threshold_inclusive() -> None:
    # 3 of 10 is exactly 30%
    freq = {"A": 7, "B": 3}
    assert label_bin(freq, Thresholds(min_percent=30, min_total_var=5, min_indiv_var=2)) == "A+B"
    assert label_bin(freq, Thresholds(min_percent=30.1, min_total_var=5, min_indiv_var=2)) == "A"


def test_percent_uses_real_division() -> None:
    # 1/3 = 33.33..%, would be 33 under integer truncation
    freq = {"A": 2, "B": 1}
    t = Thresholds(min_percent=33.3, min_total_var=0, min_indiv_var=1)
    assert label_bin(freq, t) == "A+B"


def test_zero_informative_sites_with_zero_minimum() -> None:
    t = Thresholds(min_percent=0, min_total_var=0, min_indiv_var=0)
    assert label_bin({ASAM: 4}, t) == UNCLEAR
    assert label_bin({}, t) == UNCLEAR


def test_labeling_is_idempotent() -> None:
    agg = BinAggregator()
    for lab in ["A", "A", "A", "B", "A", "A", ASAM]:
        agg.record("S1", BinId(0), lab)
    freq = agg.frequency("S1", BinId(0))

    first = label_bin(freq, Thresholds())
    second = label_bin(freq, Thresholds())
    assert first == second == "A"
    assert agg.frequency("S1", BinId(0)) == {"A": 5, "B": 1, ASAM: 1}


def test_aggregator_accumulates_and_merges() -> None:
    agg = BinAggregator()
    agg.record("S1", BinId(0), "A")
    agg.record("S1", BinId(0), "A")
    agg.record("S2", BinId(1), "B")

    other = BinAggregator()
    other.record("S1", BinId(0), "A")
    other.record("S1", BinId(2), "UNK|UNK")
    agg.merge(other)

    assert agg.frequency("S1", BinId(0)) == {"A": 3}
    assert agg.bins_for("S1") == [BinId(0), BinId(2)]
    assert agg.samples() == ["S1", "S2"]
    assert agg.frequency("S2", BinId(0)) == {}
    assert not agg.has_data("S2", BinId(0))


def test_thresholds_from_raw() -> None:
    t = Thresholds.from_raw(min_percent="45.5", min_total_var="3", min_indiv_var=1)
    assert t == Thresholds(min_percent=45.5, min_total_var=3, min_indiv_var=1)

    with pytest.raises(ConfigError):
        Thresholds.from_raw(min_percent="lots")
    with pytest.raises(ConfigError):
        Thresholds.from_raw(min_total_var="2.5")
    with pytest.raises(ConfigError):
        Thresholds.from_raw(min_percent=101)
    with pytest.raises(ConfigError):
        Thresholds.from_raw(min_indiv_var=-1)
