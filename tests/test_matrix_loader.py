import numpy as np
import pytest

from cimchip.parser.matrix_loader import (
    MalformedInputError,
    dequantize_conductances,
    load_input_data,
    load_matrix,
    load_weight_data,
    quantize_weights,
)

G_MAX = 3e-5
G_MIN = 1e-6


def test_load_matrix(csv_writer):
    path = csv_writer("matrix.csv", [[0.5, -0.25], [1, 0]])
    matrix = load_matrix(path)
    assert matrix.dtype == np.float64
    np.testing.assert_array_equal(matrix, [[0.5, -0.25], [1.0, 0.0]])


def test_load_matrix_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_matrix(str(tmp_path / "missing.csv"))


def test_load_matrix_unparsable_field(tmp_path):
    path = tmp_path / "matrix.csv"
    path.write_text("0.1,0.2\n0.3,x\n")
    with pytest.raises(MalformedInputError):
        load_matrix(str(path))


def test_load_matrix_ragged_rows(tmp_path):
    path = tmp_path / "matrix.csv"
    path.write_text("0.1,0.2,0.3\n0.4,0.5\n")
    with pytest.raises(MalformedInputError):
        load_matrix(str(path))


def test_load_matrix_empty_file(tmp_path):
    path = tmp_path / "matrix.csv"
    path.write_text("")
    with pytest.raises(MalformedInputError):
        load_matrix(str(path))


def test_quantize_extremes_and_midpoint():
    conductances = quantize_weights(
        np.array([[-1.0, 1.0, 0.0]]),
        synapse_bit=8,
        cell_bit=1,
        num_col_per_synapse=8,
        max_conductance=G_MAX,
        min_conductance=G_MIN,
    )
    assert conductances.shape == (1, 24)
    np.testing.assert_allclose(conductances[0, :8], G_MIN)
    np.testing.assert_allclose(conductances[0, 8:16], G_MAX)
    # 0 maps to 127.5, rounded away from zero to 128 = 0b10000000
    np.testing.assert_allclose(conductances[0, 16:], [G_MAX] + [G_MIN] * 7)


def test_quantize_multi_bit_cells_most_significant_digit_first():
    # 4-bit synapse on 2-bit cells: codeword 15 * (w + 1) / 2, w = 1/15 gives 8 = digits (2, 0)
    conductances = quantize_weights(
        np.array([[1 / 15]]),
        synapse_bit=4,
        cell_bit=2,
        num_col_per_synapse=2,
        max_conductance=G_MAX,
        min_conductance=G_MIN,
    )
    expected_high = 2 / 3 * (G_MAX - G_MIN) + G_MIN
    np.testing.assert_allclose(conductances, [[expected_high, G_MIN]])


def test_quantize_clips_out_of_range_weights():
    conductances = quantize_weights(
        np.array([[-3.0, 2.0]]),
        synapse_bit=2,
        cell_bit=1,
        num_col_per_synapse=2,
        max_conductance=G_MAX,
        min_conductance=G_MIN,
    )
    np.testing.assert_allclose(conductances, [[G_MIN, G_MIN, G_MAX, G_MAX]])


@pytest.mark.parametrize("synapse_bit, cell_bit", [(8, 1), (8, 2), (6, 4), (5, 5)])
def test_dequantize_recovers_every_codeword(synapse_bit, cell_bit):
    num_col_per_synapse = -(-synapse_bit // cell_bit)
    codewords = np.arange(2**synapse_bit)
    weights = (codewords * 2 / (2**synapse_bit - 1) - 1).reshape(1, -1)
    conductances = quantize_weights(weights, synapse_bit, cell_bit, num_col_per_synapse, G_MAX, G_MIN)
    recovered = dequantize_conductances(conductances, cell_bit, num_col_per_synapse, G_MAX, G_MIN)
    np.testing.assert_array_equal(recovered[0], codewords)


def test_dequantize_rejects_partial_synapse():
    with pytest.raises(MalformedInputError):
        dequantize_conductances(np.zeros((2, 5)), 1, 2, G_MAX, G_MIN)


def test_load_weight_and_input_data(csv_writer, make_config):
    config = make_config(synapse_bit=4, cell_bit=1)
    weight_path = csv_writer("weight.csv", [[1, -1], [0.5, 0]])
    input_path = csv_writer("input.csv", [[1, 0, 1], [0, 0, 1]])

    conductances = load_weight_data(weight_path, config)
    assert conductances.shape == (2, 2 * config.num_col_per_synapse)
    np.testing.assert_allclose(conductances[0, :4], G_MAX)
    np.testing.assert_array_equal(load_input_data(input_path), [[1, 0, 1], [0, 0, 1]])
