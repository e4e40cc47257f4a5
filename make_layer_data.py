import argparse
import os

import numpy as np

from cimchip.parser.network_parser import parse_network

parser = argparse.ArgumentParser(description="Generate random weight and input files for every layer of a network")
parser.add_argument("network", metavar="path", help="network csv, one layer per line")
parser.add_argument("input_bit", type=int, help="activation precision in bits")
parser.add_argument("--output-path", metavar="path", default="outputs/layer_data")
parser.add_argument("--seed", type=int, default=0)
parser.add_argument("--input-density", type=float, default=0.5, help="fraction of input bits that are 1")
args = parser.parse_args()

network = parse_network(args.network)
rng = np.random.default_rng(args.seed)
os.makedirs(args.output_path, exist_ok=True)

paths: list[str] = []
for layer_id, layer in enumerate(network):
    num_row = layer.weight_matrix_rows(1)
    weights = rng.uniform(-1, 1, size=(num_row, layer.output_depth))
    inputs = (rng.random((num_row, layer.num_output_pixels * args.input_bit)) < args.input_density).astype(int)

    weight_path = os.path.join(args.output_path, f"weight_layer{layer_id + 1}.csv")
    input_path = os.path.join(args.output_path, f"input_layer{layer_id + 1}.csv")
    np.savetxt(weight_path, weights, delimiter=",", fmt="%.6f")
    np.savetxt(input_path, inputs, delimiter=",", fmt="%d")
    paths.extend([weight_path, input_path])

print(" ".join(paths))
