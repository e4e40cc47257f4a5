import logging
from collections.abc import Generator, Iterator, Sequence
from typing import Any

import numpy as np

from cimchip.cost_model.cost_model import ChipCostModelEvaluation
from cimchip.hardware.architecture.chip import ChipArea, ChipResources
from cimchip.hardware.architecture.chip_config import ChipConfig
from cimchip.parser.matrix_loader import load_input_data, load_weight_data, quantize_weights
from cimchip.stages.stage import Stage, StageCallable
from cimchip.utils import ARRAY_T
from cimchip.workload.mapping import FloorPlan, MappingClassification
from cimchip.workload.network import NetworkDescription

logger = logging.getLogger(__name__)

LAYER_DATA_T = Sequence[tuple[str | ARRAY_T, str | ARRAY_T]]


class PerformanceReplayStage(Stage):
    """
    Class that runs a ChipCostModelEvaluation on the layer weights and inputs.
    """

    def __init__(
        self,
        list_of_callables: list[StageCallable],
        *,
        config: ChipConfig,
        network: NetworkDescription,
        classification: MappingClassification,
        floorplan: FloorPlan,
        resources: ChipResources,
        chip_area: ChipArea,
        layer_data: LAYER_DATA_T,
        **kwargs: Any,
    ):
        """Initialize the PerformanceReplayStage.

        Args:
            list_of_callables (list): List of the substages to be called. This should be empty as this is a leaf stage.
            config (ChipConfig): The chip configuration
            network (NetworkDescription): The layers, in execution order
            classification (MappingClassification): Mapping mark of every layer
            floorplan (FloorPlan): Tile plan of every layer
            resources (ChipResources): The tiles and shared resources of the chip
            chip_area (ChipArea): Chip area and tile footprints
            layer_data (list): One (weights, inputs) pair per layer. Each entry is a csv path or an array. Weights lie
                in [-1, 1] and are quantized to conductances; inputs hold one bit per row and input cycle.
        """
        super().__init__(list_of_callables, **kwargs)
        self.config = config
        self.network = network
        self.classification = classification
        self.floorplan = floorplan
        self.resources = resources
        self.chip_area = chip_area
        self.layer_data = layer_data

    def run(self) -> Generator[tuple[ChipCostModelEvaluation, Any], None, None]:
        """! Run the ChipCostModelEvaluation."""
        logger.info("Start PerformanceReplayStage.")
        cme = ChipCostModelEvaluation(
            config=self.config,
            network=self.network,
            classification=self.classification,
            floorplan=self.floorplan,
            resources=self.resources,
            chip_area=self.chip_area,
        )
        cme.evaluate(self.iterate_layer_data())
        logger.info("Finished PerformanceReplayStage.")
        yield cme, None

    def is_leaf(self) -> bool:
        return True

    def iterate_layer_data(self) -> Iterator[tuple[ARRAY_T, ARRAY_T]]:
        """Load the layers one at a time so that only one layer's matrices are held in memory."""
        for weights, inputs in self.layer_data:
            yield self.load_weights(weights), self.load_inputs(inputs)

    def load_weights(self, weights: str | ARRAY_T) -> ARRAY_T:
        if isinstance(weights, str):
            return load_weight_data(weights, self.config)
        return quantize_weights(
            np.asarray(weights, dtype=np.float64),
            synapse_bit=self.config.synapse_bit,
            cell_bit=self.config.cell_bit,
            num_col_per_synapse=self.config.num_col_per_synapse,
            max_conductance=self.config.max_conductance,
            min_conductance=self.config.min_conductance,
        )

    @staticmethod
    def load_inputs(inputs: str | ARRAY_T) -> ARRAY_T:
        if isinstance(inputs, str):
            return load_input_data(inputs)
        return np.asarray(inputs, dtype=np.float64)
