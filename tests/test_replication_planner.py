import pytest

from cimchip.opt.mapping_classifier import classify_layers
from cimchip.opt.replication_planner import ReplicationPlanner, duplication
from cimchip.workload.mapping import HierarchySize
from cimchip.workload.network import NetworkDescription, NetworkLayer


def make_planner(network: NetworkDescription, sub_array: int, novel_mapping: bool = False) -> ReplicationPlanner:
    classification = classify_layers(network, novel_mapping, 1, 8, sub_array)
    return ReplicationPlanner(network, classification, 1, 8, sub_array, sub_array)


def test_duplication():
    assert duplication(25, 512, 256) == 2
    assert duplication(64, 256, 128) == 2
    assert duplication(256, 256, 128) == 1
    assert duplication(600, 512, 256) == 1


def test_single_layer_plan(single_conv):
    planner = make_planner(single_conv, 128)
    plan = planner.plan_layer(0, 512, 256, 0)
    assert (plan.num_tiles_row, plan.num_tiles_col) == (1, 1)
    assert (plan.pe_dup_row, plan.pe_dup_col) == (2, 2)
    assert (plan.sub_array_dup_row, plan.sub_array_dup_col) == (2, 2)
    assert (plan.speed_up_row, plan.speed_up_col) == (4, 4)
    assert plan.utilization == pytest.approx(16 * 25 * 64 / 512**2)


def test_large_layer_is_not_duplicated():
    network = NetworkDescription([NetworkLayer(4, 4, 64, 3, 3, 64)])
    plan = make_planner(network, 32).plan_layer(0, 128, 64, 0)
    assert (plan.num_tiles_row, plan.num_tiles_col) == (5, 4)
    assert (plan.speed_up_row, plan.speed_up_col) == (1, 1)
    assert plan.utilization == pytest.approx(0.9)


def test_novel_plan(two_conv):
    planner = make_planner(two_conv, 128, novel_mapping=True)
    assert planner.matrix_dimensions(0) == (16, 128)
    first = planner.plan_layer(0, 512, 256, 256)
    second = planner.plan_layer(1, 512, 256, 256)
    assert (first.pe_dup_row, first.pe_dup_col) == (1, 1)
    assert (first.sub_array_dup_row, first.sub_array_dup_col) == (2, 2)
    assert (second.sub_array_dup_row, second.sub_array_dup_col) == (2, 1)
    assert first.num_tiles == second.num_tiles == 1
    assert first.utilization == pytest.approx(0.125)
    assert second.utilization == pytest.approx(0.125)


def test_floorplan_grid_locations():
    network = NetworkDescription(
        [NetworkLayer(4, 4, 64, 3, 3, 64), NetworkLayer(1, 1, 128, 1, 1, 16), NetworkLayer(1, 1, 128, 1, 1, 16)]
    )
    planner = make_planner(network, 32)
    hierarchy = HierarchySize(tile_size_cm=128, pe_size_cm=64, num_tiles_cm=22)
    floorplan = planner.plan(hierarchy, 5, 5)

    assert [plan.num_tiles for plan in floorplan.layer_plans] == [20, 1, 1]
    assert [plan.grid_location for plan in floorplan.layer_plans] == [(0, 0), (4, 0), (4, 1)]
    assert floorplan.total_num_tiles == hierarchy.total_num_tiles == 22
    assert floorplan.total_num_tiles == floorplan.grid_capacity - floorplan.unused_slots
    assert floorplan.unused_slots == 3
    assert floorplan.num_tiles_other_layers(0) == 2
    assert all(0 < plan.utilization <= 1 for plan in floorplan.layer_plans)
    assert floorplan.chip_utilization == pytest.approx((20 * 0.9 + 1.0 + 1.0) / 22)
