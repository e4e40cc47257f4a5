import os

import numpy as np
import pandas as pd
import pytest
from conftest import random_layer_data

from cimchip.api import estimate_chip
from cimchip.cost_model.cost_model import ChipCostModelEvaluation
from cimchip.hardware.architecture.activation import SigmoidUnit
from cimchip.hardware.architecture.chip import ResourceLibrary
from cimchip.hardware.architecture.tile import AnalyticalTile
from cimchip.parser.matrix_loader import MalformedInputError
from cimchip.parser.network_parser import parse_network
from cimchip.workload.mapping import MappingMark


class SlowAdcTile(AnalyticalTile):
    """Tile whose ADC takes twice as long as the analytical default."""

    def calculate_performance(self, *args, **kwargs):
        performance = super().calculate_performance(*args, **kwargs)
        performance.read_latency += performance.latency_adc
        performance.latency_adc *= 2
        return performance


def write_layer_files(csv_writer, network, num_bit_input, seed=0):
    paths = []
    for layer_id, (weights, inputs) in enumerate(random_layer_data(network, num_bit_input, seed)):
        weight_path = csv_writer(f"weight_layer{layer_id + 1}.csv", weights, fmt="%.6f")
        input_path = csv_writer(f"input_layer{layer_id + 1}.csv", inputs, fmt="%d")
        paths.append((weight_path, input_path))
    return paths


def test_single_layer_from_files(csv_writer, make_config):
    network_path = csv_writer("single_conv.csv", [[28, 28, 1, 5, 5, 8, 0]], fmt="%d")
    config = make_config()
    layer_files = write_layer_files(csv_writer, parse_network(network_path), config.num_bit_input)
    cme = estimate_chip(network_path, layer_files, config=config)

    assert isinstance(cme, ChipCostModelEvaluation)
    assert cme.floorplan.hierarchy.tile_size_cm == 512
    assert cme.floorplan.total_num_tiles == 1
    assert cme.latency > 0
    assert cme.dynamic_energy > 0
    assert cme.leakage_energy == 0
    assert cme.throughput_fps == pytest.approx(1 / cme.latency)
    assert cme.energy_efficiency_tops_per_watt == pytest.approx(28 * 28 * 25 * 8 / (cme.energy * 1e12))
    assert cme.chip_area.total > 0
    assert cme.chip_area.height * cme.chip_area.width == pytest.approx(cme.chip_area.total)


def test_layer_latencies_add_up(two_conv, make_config):
    config = make_config(num_row_sub_array=32, num_col_sub_array=32)
    cme = estimate_chip(two_conv, random_layer_data(two_conv, config.num_bit_input), config=config)

    performances = cme.layer_performances
    assert len(performances) == 2
    assert cme.latency == pytest.approx(sum(p.read_latency for p in performances))
    assert cme.dynamic_energy == pytest.approx(sum(p.read_dynamic_energy for p in performances))
    for performance in performances:
        assert performance.read_latency >= performance.buffer_latency + performance.ic_latency
        assert performance.read_dynamic_energy == pytest.approx(
            performance.energy_adc + performance.energy_accum + performance.energy_other
        )
    # While one layer runs, the tiles of the other layer leak
    assert cme.leakage_energy > 0
    assert cme.leakage_power == pytest.approx(sum(p.leakage * p.num_tiles for p in performances))


def test_novel_mapping_pipeline(two_conv, make_config):
    config = make_config(novel_mapping=True)
    cme = estimate_chip(two_conv, random_layer_data(two_conv, config.num_bit_input), config=config)

    assert cme.classification.marks == [MappingMark.NOVEL, MappingMark.NOVEL]
    hierarchy = cme.floorplan.hierarchy
    assert hierarchy.num_pe_nm == 9
    assert hierarchy.num_tiles_nm == cme.floorplan.total_num_tiles == 2
    assert cme.resources.tile_nm is not None
    assert cme.chip_area.tile_height_nm > 0
    assert all(p.read_latency > 0 for p in cme.layer_performances)


def test_sigmoid_activation_and_custom_tile(two_conv, make_config):
    config = make_config(num_row_sub_array=32, num_col_sub_array=32, relu=False)
    layer_data = random_layer_data(two_conv, config.num_bit_input)
    default = estimate_chip(two_conv, layer_data, config=config)
    slow = estimate_chip(two_conv, layer_data, config=config, library=ResourceLibrary(tile=SlowAdcTile))

    assert isinstance(default.resources.activation, SigmoidUnit)
    assert slow.latency > default.latency
    assert slow.dynamic_energy == pytest.approx(default.dynamic_energy)


def test_without_chip_activation(single_conv, make_config):
    config = make_config(chip_activation=False)
    cme = estimate_chip(single_conv, random_layer_data(single_conv, config.num_bit_input), config=config)
    assert cme.resources.activation is None
    assert cme.latency > 0


def test_results_are_cached(tmp_path, single_conv, make_config):
    config = make_config()
    layer_data = random_layer_data(single_conv, config.num_bit_input)
    output_path = str(tmp_path / "outputs")
    first = estimate_chip(single_conv, layer_data, config=config, output_path=output_path, experiment_id="exp")
    assert os.path.exists(os.path.join(output_path, "exp", "cme.pickle"))

    cached = estimate_chip(
        single_conv, [], config=config, output_path=output_path, experiment_id="exp", skip_if_exists=True
    )
    assert cached.latency == pytest.approx(first.latency)


def test_report_and_dataframe(two_conv, make_config):
    config = make_config(num_row_sub_array=32, num_col_sub_array=32)
    cme = estimate_chip(two_conv, random_layer_data(two_conv, config.num_bit_input), config=config)

    report = cme.report()
    assert "Chip total readLatency" in report
    assert "Throughput FPS" in report
    assert "layer2's readLatency" in report
    assert "layer1's buffer readDynamicEnergy" in report
    assert "layer2's ic readDynamicEnergy" in report

    frame = cme.to_dataframe()
    assert isinstance(frame, pd.DataFrame)
    assert list(frame.index) == [1, 2]
    assert frame["read_latency_ns"].sum() == pytest.approx(cme.latency * 1e9)
    assert str(cme).startswith("ChipCME(")


def test_missing_layer_data(two_conv, make_config):
    config = make_config(num_row_sub_array=32, num_col_sub_array=32)
    layer_data = random_layer_data(two_conv, config.num_bit_input)[:1]
    with pytest.raises(MalformedInputError):
        estimate_chip(two_conv, layer_data, config=config)


def test_layer_count_is_checked_before_replay(two_conv, make_config):
    # Wrongly shaped pairs would fail in the replay of the first layer
    layer_data = [(np.zeros((1, 1)), np.zeros((1, 1)))] * 3
    with pytest.raises(MalformedInputError, match="Got data for 3 layers"):
        estimate_chip(two_conv, layer_data, config=make_config())


def test_precision_overrides_apply_to_config_objects(single_conv, make_config):
    config = make_config(synapse_bit=8, num_bit_input=8)
    layer_data = random_layer_data(single_conv, num_bit_input=2)
    cme = estimate_chip(single_conv, layer_data, config=config, synapse_bit=4, num_bit_input=2)

    assert cme.config.synapse_bit == 4
    assert cme.config.num_bit_input == 2
    assert cme.config.num_col_per_synapse == 4
    assert config.synapse_bit == 8


def test_cell_bit_is_clamped_for_config_objects(single_conv, make_config):
    config = make_config(synapse_bit=2, cell_bit=4)
    cme = estimate_chip(single_conv, random_layer_data(single_conv, config.num_bit_input), config=config)
    assert cme.config.cell_bit == 2
    assert cme.config.num_col_per_synapse == 1


def test_wrong_weight_shape(single_conv, make_config):
    config = make_config()
    weights, inputs = random_layer_data(single_conv, config.num_bit_input)[0]
    with pytest.raises(MalformedInputError):
        estimate_chip(single_conv, [(weights[:-1], inputs[:-1])], config=config)


def test_missing_files_fail_before_work(tmp_path, single_conv, make_config):
    with pytest.raises(FileNotFoundError):
        estimate_chip(str(tmp_path / "network.csv"), [], config=make_config())
    with pytest.raises(FileNotFoundError):
        estimate_chip(single_conv, [(str(tmp_path / "w.csv"), np.zeros((25, 4608)))], config=make_config())
    with pytest.raises(FileNotFoundError):
        estimate_chip(single_conv, [], config=str(tmp_path / "chip.yaml"))
