import pytest

from cimchip.hardware.architecture.activation import ReLUUnit
from cimchip.hardware.architecture.chip import ChipFactory
from cimchip.opt.hierarchy_sizer import HierarchySizer, grid_dimensions
from cimchip.opt.mapping_classifier import classify_layers
from cimchip.opt.replication_planner import ReplicationPlanner


def make_factory(network, config) -> ChipFactory:
    classification = classify_layers(
        network,
        config.novel_mapping,
        config.num_row_per_synapse,
        config.num_col_per_synapse,
        config.num_row_sub_array,
    )
    planner = ReplicationPlanner(
        network,
        classification,
        config.num_row_per_synapse,
        config.num_col_per_synapse,
        config.num_row_sub_array,
        config.num_col_sub_array,
    )
    hierarchy = HierarchySizer(classification, planner, config.num_row_sub_array, config.novel_mapping).size()
    floorplan = planner.plan(hierarchy, *grid_dimensions(hierarchy.total_num_tiles))
    return ChipFactory(config, network, classification, floorplan)


def test_global_bus_width(single_conv, make_config):
    # One 512-wide tile port plus its 64 multiplexed output columns
    assert make_factory(single_conv, make_config()).global_bus_width() == 576
    assert make_factory(single_conv, make_config(max_global_bus_width=256)).global_bus_width() == 144


def test_conventional_resources(single_conv, make_config):
    factory = make_factory(single_conv, make_config())
    resources = factory.create()

    assert resources.tile_nm is None
    assert resources.tile_cm.num_pe == 4
    assert resources.tile_cm.pe_size == 256
    assert isinstance(resources.activation, ReLUUnit)
    assert resources.activation.num_unit == 512 // 8
    assert resources.global_buffer.num_bit == 8 * 28 * 28
    assert resources.max_pool.num_unit == 512
    assert factory.max_add_from_sub_array == 2 * 2


def test_chip_area_buckets(two_conv, make_config):
    factory = make_factory(two_conv, make_config(num_row_sub_array=32, num_col_sub_array=32))
    resources = factory.create()
    area = factory.calculate_chip_area(resources)

    assert area.total == pytest.approx(area.interconnect + area.adc + area.accumulation + area.other)
    assert area.total == pytest.approx(sum(area.breakdown.values()))
    assert area.breakdown["tiles"] == pytest.approx(resources.tile_cm.area.total * factory.floorplan.total_num_tiles)
    assert resources.global_buffer.height == pytest.approx(factory.floorplan.num_tile_row * area.tile_height_cm)


def test_snapshot_isolates_results(single_conv, make_config):
    resources = make_factory(single_conv, make_config()).create()
    snapshot = resources.snapshot()
    snapshot.global_buffer.calculate_area()
    snapshot.global_buffer.calculate_latency(64, 10, 64, 10)

    assert snapshot.global_buffer.read_latency > 0
    assert resources.global_buffer.read_latency == 0
