import pytest

from cimchip.opt.hierarchy_sizer import HierarchySizer, InfeasibleHierarchyError, geometric_candidates, grid_dimensions
from cimchip.opt.mapping_classifier import classify_layers
from cimchip.opt.replication_planner import ReplicationPlanner
from cimchip.workload.mapping import HierarchySize
from cimchip.workload.network import NetworkDescription, NetworkLayer


def make_sizer(network: NetworkDescription, sub_array: int, novel_mapping: bool = False, num_col_per_synapse: int = 8):
    classification = classify_layers(network, novel_mapping, 1, num_col_per_synapse, sub_array)
    planner = ReplicationPlanner(network, classification, 1, num_col_per_synapse, sub_array, sub_array)
    return HierarchySizer(classification, planner, sub_array, novel_mapping)


def test_geometric_candidates():
    assert geometric_candidates(512, 128) == [512, 256, 128]
    assert geometric_candidates(128, 128) == [128]
    assert geometric_candidates(64, 128) == []
    with pytest.raises(ValueError):
        geometric_candidates(64, 0)


def test_grid_dimensions():
    assert grid_dimensions(0) == (0, 0)
    assert grid_dimensions(1) == (1, 1)
    assert grid_dimensions(5) == (3, 2)
    assert grid_dimensions(20) == (5, 4)


def test_single_layer_scenario(single_conv):
    hierarchy = make_sizer(single_conv, 128).size()
    assert hierarchy.tile_size_cm == 512
    assert hierarchy.pe_size_cm == 256
    assert hierarchy.num_tiles_cm == 1
    assert hierarchy.num_tiles_nm == 0
    assert hierarchy.num_pe_cm == 2
    assert grid_dimensions(hierarchy.total_num_tiles) == (1, 1)


def test_smallest_tile_has_best_utilization():
    # 576 x 512 synapse cells on 32 x 32 sub-arrays: utilization 0.5625, 0.75 and 0.9 for tiles 512, 256, 128
    network = NetworkDescription([NetworkLayer(4, 4, 64, 3, 3, 64)])
    hierarchy = make_sizer(network, 32).size()
    assert hierarchy.tile_size_cm == 128
    assert hierarchy.pe_size_cm == 64
    assert hierarchy.num_tiles_cm == 20


def test_ties_keep_the_largest_candidate():
    # 512 x 512 cells fill every candidate tile and PE completely
    network = NetworkDescription([NetworkLayer(1, 1, 512, 1, 1, 64)])
    hierarchy = make_sizer(network, 32).size()
    assert hierarchy.tile_size_cm == 512
    assert hierarchy.pe_size_cm == 256
    assert hierarchy.num_tiles_cm == 1


def test_novel_layers(two_conv):
    hierarchy = make_sizer(two_conv, 128, novel_mapping=True).size()
    assert hierarchy.pe_size_nm == 256
    assert hierarchy.num_pe_nm == 9
    assert hierarchy.num_tiles_nm == 2
    assert hierarchy.num_tiles_cm == 0
    assert hierarchy.tile_size_cm >= 2 * hierarchy.pe_size_cm >= 4 * 128


def test_sizing_is_idempotent(two_conv):
    sizer = make_sizer(two_conv, 32)
    assert sizer.size() == sizer.size()
    assert make_sizer(two_conv, 32).size() == sizer.size()


def test_select_strict_maximum(single_conv):
    sizer = make_sizer(single_conv, 128)
    utilizations = {512: 0.5, 256: 0.5, 128: 0.7, 64: None}
    assert sizer.select([512, 256, 128, 64], utilizations.get, "test") == 128
    assert sizer.select([512, 256], lambda size: 0.5, "test") == 512


def test_select_without_valid_candidate(single_conv):
    sizer = make_sizer(single_conv, 128)
    with pytest.raises(InfeasibleHierarchyError):
        sizer.select([512, 256], lambda size: None, "test")
    with pytest.raises(InfeasibleHierarchyError):
        sizer.select([], lambda size: 1.0, "test")


def test_broken_hierarchy_is_rejected(single_conv):
    sizer = make_sizer(single_conv, 128)
    with pytest.raises(InfeasibleHierarchyError):
        sizer.check_hierarchy(HierarchySize(tile_size_cm=256, pe_size_cm=256))
    with pytest.raises(InfeasibleHierarchyError):
        sizer.check_hierarchy(HierarchySize(tile_size_cm=512, pe_size_cm=128))
