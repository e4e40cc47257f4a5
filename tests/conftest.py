import os
from collections.abc import Callable

import numpy as np
import pytest

from cimchip.hardware.architecture.chip_config import ChipConfig
from cimchip.workload.network import NetworkDescription, NetworkLayer


def write_csv(path: str, rows: np.ndarray | list[list[float]], fmt: str = "%g") -> str:
    np.savetxt(path, np.atleast_2d(np.asarray(rows, dtype=np.float64)), delimiter=",", fmt=fmt)
    return path


@pytest.fixture
def csv_writer(tmp_path) -> Callable[..., str]:
    def _write(name: str, rows, fmt: str = "%g") -> str:
        return write_csv(os.path.join(tmp_path, name), rows, fmt)

    return _write


@pytest.fixture
def make_config() -> Callable[..., ChipConfig]:
    def _make(**overrides) -> ChipConfig:
        values = dict(
            name="test_chip",
            num_row_sub_array=128,
            num_col_sub_array=128,
            max_conductance=3e-5,
            min_conductance=1e-6,
            synapse_bit=8,
            num_bit_input=8,
            cell_bit=1,
        )
        values.update(overrides)
        return ChipConfig(**values)

    return _make


@pytest.fixture
def single_conv() -> NetworkDescription:
    return NetworkDescription([NetworkLayer(28, 28, 1, 5, 5, 8, followed_by_pool=False)], name="single_conv")


@pytest.fixture
def two_conv() -> NetworkDescription:
    return NetworkDescription(
        [
            NetworkLayer(8, 8, 16, 3, 3, 16, followed_by_pool=False),
            NetworkLayer(6, 6, 16, 3, 3, 32, followed_by_pool=True),
        ],
        name="two_conv",
    )


def random_layer_data(network: NetworkDescription, num_bit_input: int, seed: int = 0):
    """Weights in [-1, 1] and binary inputs of the right shape for every layer."""
    rng = np.random.default_rng(seed)
    layer_data = []
    for layer in network:
        num_row = layer.weight_matrix_rows(1)
        weights = rng.uniform(-1, 1, size=(num_row, layer.output_depth))
        inputs = (rng.random((num_row, layer.num_output_pixels * num_bit_input)) < 0.5).astype(np.float64)
        layer_data.append((weights, inputs))
    return layer_data
