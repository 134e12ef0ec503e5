import pytest

from snpbins.errors import ConfigError, ParseError
from snpbins.models import Feature, GenotypeTable
from snpbins.regions import build_fixed, build_from_features, build_region_index


def make_table(positions_by_seq: dict) -> GenotypeTable:
    table = GenotypeTable(["P1", "P2", "S1"])
    for seq, positions in positions_by_seq.items():
        for pos in positions:
            table.add_site(seq, pos, {"P1": "AA", "P2": "CC", "S1": "AC"})
    return table


def test_build_fixed_three_bins() -> None:
    table = make_table({"chr1": [5, 12000, 25000]})
    index = build_fixed(table, 10000)

    regions = list(index)
    assert [r.start for r in regions] == [0, 10000, 20000]
    assert [r.end for r in regions] == [10000, 20000, 25000]
    assert [r.name for r in regions] == ["chr1_1", "chr1_2", "chr1_3"]


def test_fixed_bins_cover_every_position_once() -> None:
    table = make_table({"chr1": [1, 99, 250]})
    index = build_fixed(table, 40)

    for p in range(1, 251):
        bin_id = index.locate("chr1", p)
        assert bin_id is not None
        assert index.region(bin_id).contains(p)
        hits = [r for r in index if r.contains(p)]
        assert len(hits) == 1

    assert index.locate("chr1", 251) is None
    assert index.locate("chr1", 10_000) is None
    assert index.locate("chr1", 0) is None


def test_locate_bin_boundaries() -> None:
    table = make_table({"chr1": [25000]})
    index = build_fixed(table, 10000)
    first, second, third = list(index)

    assert index.locate("chr1", 1) == first.bin_id
    assert index.locate("chr1", 10000) == first.bin_id
    assert index.locate("chr1", 10001) == second.bin_id
    assert index.locate("chr1", 25000) == third.bin_id


def test_bin_ids_unique_across_sequences() -> None:
    table = make_table({"chr1": [15000], "chr2": [15000]})
    index = build_fixed(table, 10000)

    ids = [r.bin_id for r in index]
    assert len(ids) == len(set(ids)) == 4
    assert index.locate("chr1", 500) != index.locate("chr2", 500)
    assert index.locate("chr3", 500) is None


def test_bin_size_must_be_positive() -> None:
    table = make_table({"chr1": [100]})
    with pytest.raises(ConfigError):
        build_fixed(table, 0)
    with pytest.raises(ConfigError):
        build_region_index(table, bin_size=None)
    with pytest.raises(ConfigError):
        build_region_index(table, bin_size=-5)


def test_build_from_features_converts_to_zero_based() -> None:
    features = [
        Feature("chr1", 101, 200, "gene", "g2"),
        Feature("chr1", 1, 100, "gene", "g1"),
        Feature("chr1", 50, 60, "exon", "e1"),
    ]
    index = build_from_features(features, "gene")

    regions = list(index)
    assert len(regions) == 2
    by_name = {r.name: r for r in regions}
    assert (by_name["g1"].start, by_name["g1"].end) == (0, 100)
    assert (by_name["g2"].start, by_name["g2"].end) == (100, 200)

    assert index.region(index.locate("chr1", 1)).name == "g1"
    assert index.region(index.locate("chr1", 100)).name == "g1"
    assert index.region(index.locate("chr1", 101)).name == "g2"
    assert index.locate("chr1", 201) is None


def test_build_from_features_skips_overlaps() -> None:
    features = [
        Feature("chr1", 1, 100, "gene", "g1"),
        Feature("chr1", 90, 150, "gene", "g_overlap"),
        Feature("chr1", 300, 400, "gene", "g3"),
    ]
    index = build_from_features(features, "gene")

    assert [r.name for r in index] == ["g1", "g3"]
    assert index.skipped_overlap == 1
    assert index.locate("chr1", 120) is None


def test_build_from_features_errors() -> None:
    with pytest.raises(ConfigError):
        build_from_features([Feature("chr1", 1, 100, "exon", "e1")], "gene")
    with pytest.raises(ParseError):
        build_from_features([Feature("chr1", 100, 10, "gene", "bad")], "gene")


def test_feature_list_takes_precedence_over_bin_size() -> None:
    table = make_table({"chr1": [500]})
    index = build_region_index(
        table,
        bin_size=0,
        features=[Feature("chr1", 1, 1000, "gene", "g1")],
        feature_type="gene",
    )
    assert [r.name for r in index] == ["g1"]


def test_remap_sequences_preserves_ids() -> None:
    index = build_from_features([Feature("1", 1, 100, "gene", "g1")], "gene")
    remapped = index.remap_sequences("ucsc")

    assert remapped.sequences() == ["chr1"]
    assert remapped.locate("chr1", 50) == index.locate("1", 50)


def test_remap_sequences_merges_mixed_names_without_overlap() -> None:
    features = [
        Feature("chr1", 1, 100, "gene", "a"),
        Feature("1", 50, 60, "gene", "b"),
        Feature("chr1", 201, 300, "gene", "c"),
        Feature("1", 150, 180, "gene", "d"),
    ]
    index = build_from_features(features, "gene")
    assert index.skipped_overlap == 0

    remapped = index.remap_sequences("ucsc")

    assert remapped.sequences() == ["chr1"]
    assert remapped.starts["chr1"] == sorted(remapped.starts["chr1"])
    assert sorted(r.name for r in remapped) == ["a", "c", "d"]
    assert remapped.skipped_overlap == 1

    assert remapped.region(remapped.locate("chr1", 55)).name == "a"
    assert remapped.region(remapped.locate("chr1", 160)).name == "d"
    assert remapped.region(remapped.locate("chr1", 250)).name == "c"
    for p in range(1, 301):
        hits = [r for r in remapped if r.contains(p)]
        assert len(hits) <= 1
