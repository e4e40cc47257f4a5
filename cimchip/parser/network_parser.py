import logging
import os

import numpy as np

from cimchip.parser.matrix_loader import MalformedInputError, load_matrix
from cimchip.workload.network import NetworkDescription, NetworkLayer

logger = logging.getLogger(__name__)

NETWORK_COLUMNS = (
    "input_rows",
    "input_cols",
    "input_depth",
    "kernel_rows",
    "kernel_cols",
    "output_depth",
    "followed_by_pool",
)


def parse_network(path: str) -> NetworkDescription:
    """! Parse a network description file. Every row is one layer, in execution order, with the columns
    `[inRows, inCols, inDepth, kRows, kCols, outDepth, followedByPool]` and no header."""
    table = load_matrix(path)
    if table.shape[1] != len(NETWORK_COLUMNS):
        raise MalformedInputError(
            f"Network file {path} has {table.shape[1]} columns, expected {len(NETWORK_COLUMNS)}: {NETWORK_COLUMNS}"
        )
    if not np.all(table == np.round(table)):
        raise MalformedInputError(f"Network file {path} contains non-integer layer dimensions.")

    layers: list[NetworkLayer] = []
    for row_idx, row in enumerate(table.astype(np.int64)):
        *dims, pool = (int(value) for value in row)
        try:
            layers.append(NetworkLayer(*dims, followed_by_pool=bool(pool)))
        except ValueError as exc:
            raise MalformedInputError(f"Layer {row_idx} of {path} is invalid: {exc}") from exc

    name = os.path.splitext(os.path.basename(path))[0]
    network = NetworkDescription(layers, name=name)
    logger.info("Parsed %s from %s.", network, path)
    return network
