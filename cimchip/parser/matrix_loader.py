import logging
import os

import numpy as np
import pandas as pd

from cimchip.hardware.architecture.chip_config import ChipConfig
from cimchip.utils import ARRAY_T

logger = logging.getLogger(__name__)

# Real-valued weights are expected in this range before quantization
WEIGHT_RANGE = (-1.0, 1.0)


class MalformedInputError(ValueError):
    """Raised when an input file cannot be interpreted as a rectangular numeric matrix."""


def load_matrix(path: str) -> ARRAY_T:
    """Read a comma separated numeric matrix without header into a float64 array of shape (rows, cols)."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Matrix file {path} does not exist.")
    try:
        frame = pd.read_csv(path, header=None, dtype=np.float64, skip_blank_lines=True)
    except pd.errors.EmptyDataError as exc:
        raise MalformedInputError(f"Matrix file {path} is empty.") from exc
    except (pd.errors.ParserError, ValueError) as exc:
        raise MalformedInputError(f"Matrix file {path} contains an unparsable field: {exc}") from exc

    # Short rows are padded with NaN by pandas
    if frame.isna().to_numpy().any():
        raise MalformedInputError(f"Matrix file {path} has rows of unequal length or empty fields.")
    return frame.to_numpy(dtype=np.float64)


def quantize_weights(
    weights: ARRAY_T,
    synapse_bit: int,
    cell_bit: int,
    num_col_per_synapse: int,
    max_conductance: float,
    min_conductance: float,
) -> ARRAY_T:
    """Map real-valued weights onto cell conductances.

    Every weight in [-1, 1] is linearly normalized to an integer codeword in [0, 2^synapse_bit - 1] (rounding half
    away from zero), split into `num_col_per_synapse` digits of base 2^cell_bit with the most significant digit
    first, and every digit is linearly mapped onto [min_conductance, max_conductance].

    Returns:
        Array of shape (rows, cols * num_col_per_synapse).
    """
    weights = np.atleast_2d(np.asarray(weights, dtype=np.float64))
    real_min, real_max = WEIGHT_RANGE
    if weights.size and (weights.min() < real_min or weights.max() > real_max):
        logger.warning("Weights outside of %s are clipped before quantization.", WEIGHT_RANGE)
        weights = np.clip(weights, real_min, real_max)

    normalized_max = 2**synapse_bit - 1
    scaled = normalized_max / (real_max - real_min) * (weights - real_max) + normalized_max
    codewords = (np.sign(scaled) * np.floor(np.abs(scaled) + 0.5)).astype(np.int64)

    cell_range = 2**cell_bit
    # Least significant digit is extracted first, then the digit axis is flipped to get MSB first
    digits = np.empty(codewords.shape + (num_col_per_synapse,), dtype=np.int64)
    value = codewords
    for digit_idx in range(num_col_per_synapse):
        digits[..., digit_idx] = value % cell_range
        value = value // cell_range
    digits = digits[..., ::-1]

    conductances = digits / (cell_range - 1) * (max_conductance - min_conductance) + min_conductance
    rows, cols = weights.shape
    return conductances.reshape(rows, cols * num_col_per_synapse)


def dequantize_conductances(
    conductances: ARRAY_T,
    cell_bit: int,
    num_col_per_synapse: int,
    max_conductance: float,
    min_conductance: float,
) -> ARRAY_T:
    """Recover the integer codewords from a conductance matrix produced by `quantize_weights`."""
    conductances = np.atleast_2d(np.asarray(conductances, dtype=np.float64))
    rows, cells = conductances.shape
    if cells % num_col_per_synapse:
        raise MalformedInputError(
            f"Conductance matrix with {cells} columns is not a multiple of {num_col_per_synapse} cells per synapse."
        )
    cell_range = 2**cell_bit
    digits = np.rint((conductances - min_conductance) / (max_conductance - min_conductance) * (cell_range - 1))
    digits = digits.astype(np.int64).reshape(rows, cells // num_col_per_synapse, num_col_per_synapse)
    weights_of_digits = cell_range ** np.arange(num_col_per_synapse - 1, -1, -1, dtype=np.int64)
    return (digits * weights_of_digits).sum(axis=-1)


def load_weight_data(path: str, config: ChipConfig) -> ARRAY_T:
    weights = load_matrix(path)
    return quantize_weights(
        weights,
        synapse_bit=config.synapse_bit,
        cell_bit=config.cell_bit,
        num_col_per_synapse=config.num_col_per_synapse,
        max_conductance=config.max_conductance,
        min_conductance=config.min_conductance,
    )


def load_input_data(path: str) -> ARRAY_T:
    """Input vectors are used as stored: one row per weight-matrix row, one column per bit-serial input cycle."""
    return load_matrix(path)
