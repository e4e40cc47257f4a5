import logging
from typing import Any

from cimchip.hardware.architecture.chip_config import ChipConfig
from cimchip.opt.mapping_classifier import classify_layers
from cimchip.stages.stage import Stage, StageCallable
from cimchip.workload.network import NetworkDescription

logger = logging.getLogger(__name__)


class MappingClassificationStage(Stage):
    """Mark every layer for conventional or novel mapping."""

    def __init__(
        self,
        list_of_callables: list[StageCallable],
        *,
        config: ChipConfig,
        network: NetworkDescription,
        **kwargs: Any,
    ):
        super().__init__(list_of_callables, **kwargs)
        self.config = config
        self.network = network

    def run(self):
        logger.info("Start MappingClassificationStage.")
        classification = classify_layers(
            self.network,
            novel_mapping=self.config.novel_mapping,
            num_row_per_synapse=self.config.num_row_per_synapse,
            num_col_per_synapse=self.config.num_col_per_synapse,
            num_row_sub_array=self.config.num_row_sub_array,
        )
        logger.info("Finished MappingClassificationStage.")

        yield from self.run_sub_stage(config=self.config, network=self.network, classification=classification)
