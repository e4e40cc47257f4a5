import argparse
import logging as _logging
import re

from cimchip.api import DEFAULT_CONFIG, estimate_chip

_logging_level = _logging.INFO
_logging_format = "%(asctime)s - %(funcName)s +%(lineno)s - %(levelname)s - %(message)s"
_logging.basicConfig(level=_logging_level, format=_logging_format)

parser = argparse.ArgumentParser(description="Floorplan a compute-in-memory chip and estimate its performance")
parser.add_argument("network", metavar="path", help="network csv, one layer per line")
parser.add_argument("synapse_bit", type=int, help="weight precision in bits")
parser.add_argument("input_bit", type=int, help="activation precision in bits")
parser.add_argument(
    "layer_files",
    metavar="path",
    nargs="*",
    help="weight and input csv of every layer: weight_1 input_1 weight_2 input_2 ...",
)
parser.add_argument("--config", metavar="path", default=DEFAULT_CONFIG, help="chip configuration yaml")
parser.add_argument("--output-path", metavar="path", default=None, help="directory to pickle the evaluation to")
parser.add_argument("--csv", metavar="path", default=None, help="write the per-layer results to this csv")
args = parser.parse_args()

if len(args.layer_files) % 2:
    parser.error("Every layer needs both a weight file and an input file.")

################################PARSING###############################
hw_name = args.config.split("/")[-1].split(".")[0]
wl_name = re.split(r"/|\.", args.network)[-2]
experiment_id = f"{hw_name}-{wl_name}-w{args.synapse_bit}-i{args.input_bit}"
layer_data = list(zip(args.layer_files[0::2], args.layer_files[1::2]))
######################################################################

cme = estimate_chip(
    network=args.network,
    layer_data=layer_data,
    config=args.config,
    synapse_bit=args.synapse_bit,
    num_bit_input=args.input_bit,
    output_path=args.output_path,
    experiment_id=experiment_id,
)

print(cme.report())
if args.csv is not None:
    cme.to_dataframe().to_csv(args.csv)
