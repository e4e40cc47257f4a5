import logging as _logging
import os

from zigzag.utils import pickle_load, pickle_save

from cimchip.cost_model.cost_model import ChipCostModelEvaluation
from cimchip.hardware.architecture.chip import ResourceLibrary
from cimchip.hardware.architecture.chip_config import ChipConfig
from cimchip.parser.matrix_loader import MalformedInputError
from cimchip.parser.network_parser import parse_network
from cimchip.stages.estimation.performance_replay import LAYER_DATA_T, PerformanceReplayStage
from cimchip.stages.generation.chip_assembly import ChipAssemblyStage
from cimchip.stages.generation.hierarchy_sizing import HierarchySizingStage
from cimchip.stages.generation.replication_planning import ReplicationPlanningStage
from cimchip.stages.mapping.mapping_classification import MappingClassificationStage
from cimchip.stages.parsing.config_parser import ChipConfigParserStage
from cimchip.stages.parsing.network_parser import NetworkParserStage
from cimchip.stages.stage import MainStage
from cimchip.workload.network import NetworkDescription

_logging_level = _logging.INFO
_logging_format = "%(asctime)s - %(funcName)s +%(lineno)s - %(levelname)s - %(message)s"
_logging.basicConfig(level=_logging_level, format=_logging_format)

DEFAULT_CONFIG = os.path.join(os.path.dirname(__file__), "inputs", "examples", "hardware", "rram_128.yaml")


def _sanity_check_inputs(
    network: str | NetworkDescription, layer_data: LAYER_DATA_T, config: str | ChipConfig, output_path: str | None
):
    if not isinstance(config, ChipConfig) and not os.path.exists(config):
        raise FileNotFoundError(f"Chip configuration file {config} does not exist")
    if not isinstance(network, NetworkDescription) and not os.path.exists(network):
        raise FileNotFoundError(f"Network file {network} does not exist")
    for layer_id, pair in enumerate(layer_data):
        for path in pair:
            if isinstance(path, str) and not os.path.exists(path):
                raise FileNotFoundError(f"Data file {path} of layer {layer_id} does not exist")
    if output_path is not None and not os.path.exists(output_path):
        os.makedirs(output_path)


def _check_layer_count(network: str | NetworkDescription, layer_data: LAYER_DATA_T):
    if not isinstance(network, NetworkDescription):
        network = parse_network(network)
    if len(layer_data) != len(network):
        raise MalformedInputError(f"Got data for {len(layer_data)} layers, the network has {len(network)}.")


def estimate_chip(  # noqa: PLR0913
    network: str | NetworkDescription,
    layer_data: LAYER_DATA_T,
    config: str | ChipConfig = DEFAULT_CONFIG,
    synapse_bit: int | None = None,
    num_bit_input: int | None = None,
    output_path: str | None = None,
    experiment_id: str = "cimchip",
    skip_if_exists: bool = False,
    library: ResourceLibrary | None = None,
) -> ChipCostModelEvaluation:
    """! Floorplan a chip for the network and estimate its area, latency and energy.

    Args:
        network: network csv file, or an already parsed network
        layer_data: one (weights, inputs) pair of csv paths or arrays per layer
        config: chip configuration yaml file, or a ChipConfig
        synapse_bit, num_bit_input: precisions that override the configuration file
        output_path: directory the evaluation is pickled to; nothing is saved when None
        experiment_id: sub-directory of `output_path`
        skip_if_exists: load a previously saved evaluation instead of running again
        library: circuit model classes used for the chip resources
    """
    _sanity_check_inputs(network, layer_data, config, output_path)

    # Get logger
    logger = _logging.getLogger(__name__)

    cme_path = None
    if output_path is not None:
        # Create experiment_id path
        os.makedirs(f"{output_path}/{experiment_id}", exist_ok=True)
        cme_path = f"{output_path}/{experiment_id}/cme.pickle"

    # Load CME if it exists and skip_if_exists is True
    if cme_path is not None and os.path.exists(cme_path) and skip_if_exists:
        cme = pickle_load(cme_path)
        logger.info(f"Loaded CME from {cme_path}")
    else:
        _check_layer_count(network, layer_data)
        mainstage = MainStage(
            [  # Initializes the MainStage as entry point
                ChipConfigParserStage,  # Parses the chip configuration
                NetworkParserStage,  # Parses the network structure
                MappingClassificationStage,  # Marks layers for conventional or novel mapping
                HierarchySizingStage,  # Chooses tile and PE sizes
                ReplicationPlanningStage,  # Duplicates and places the layers
                ChipAssemblyStage,  # Instantiates the chip resources
                PerformanceReplayStage,  # Replays every layer through the chip
            ],
            config=config,  # required by ChipConfigParserStage
            synapse_bit=synapse_bit,  # required by ChipConfigParserStage
            num_bit_input=num_bit_input,  # required by ChipConfigParserStage
            network=network,  # required by NetworkParserStage
            library=library,  # required by ChipAssemblyStage
            layer_data=layer_data,  # required by PerformanceReplayStage
        )
        # Launch the MainStage
        answers = mainstage.run()
        cme = answers[0][0]
        if cme_path is not None:
            pickle_save(cme, cme_path)  # type: ignore
    return cme
