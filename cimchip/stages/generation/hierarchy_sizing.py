import logging
from typing import Any

from cimchip.hardware.architecture.chip_config import ChipConfig
from cimchip.opt.hierarchy_sizer import HierarchySizer, grid_dimensions
from cimchip.opt.replication_planner import ReplicationPlanner
from cimchip.stages.stage import Stage, StageCallable
from cimchip.workload.mapping import MappingClassification
from cimchip.workload.network import NetworkDescription

logger = logging.getLogger(__name__)


class HierarchySizingStage(Stage):
    """Choose the tile and PE sizes with the highest memory utilization, and the dimensions of the tile grid."""

    def __init__(
        self,
        list_of_callables: list[StageCallable],
        *,
        config: ChipConfig,
        network: NetworkDescription,
        classification: MappingClassification,
        **kwargs: Any,
    ):
        super().__init__(list_of_callables, **kwargs)
        self.config = config
        self.network = network
        self.classification = classification

    def run(self):
        logger.info("Start HierarchySizingStage.")
        planner = ReplicationPlanner(
            self.network,
            self.classification,
            num_row_per_synapse=self.config.num_row_per_synapse,
            num_col_per_synapse=self.config.num_col_per_synapse,
            num_row_sub_array=self.config.num_row_sub_array,
            num_col_sub_array=self.config.num_col_sub_array,
        )
        sizer = HierarchySizer(
            self.classification,
            planner,
            num_row_sub_array=self.config.num_row_sub_array,
            novel_mapping=self.config.novel_mapping,
        )
        hierarchy = sizer.size()
        num_tile_row, num_tile_col = grid_dimensions(hierarchy.total_num_tiles)
        logger.info("Finished HierarchySizingStage.")

        yield from self.run_sub_stage(
            config=self.config,
            network=self.network,
            classification=self.classification,
            planner=planner,
            hierarchy=hierarchy,
            num_tile_row=num_tile_row,
            num_tile_col=num_tile_col,
        )
