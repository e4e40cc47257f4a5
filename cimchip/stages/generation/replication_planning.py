import logging
from typing import Any

from cimchip.opt.replication_planner import ReplicationPlanner
from cimchip.stages.stage import Stage, StageCallable
from cimchip.workload.mapping import HierarchySize

logger = logging.getLogger(__name__)


class ReplicationPlanningStage(Stage):
    """Lay out every layer on the sized hierarchy and place it on the tile grid."""

    def __init__(
        self,
        list_of_callables: list[StageCallable],
        *,
        planner: ReplicationPlanner,
        hierarchy: HierarchySize,
        num_tile_row: int,
        num_tile_col: int,
        **kwargs: Any,
    ):
        super().__init__(list_of_callables, **kwargs)
        self.planner = planner
        self.hierarchy = hierarchy
        self.num_tile_row = num_tile_row
        self.num_tile_col = num_tile_col

    def run(self):
        logger.info("Start ReplicationPlanningStage.")
        floorplan = self.planner.plan(self.hierarchy, self.num_tile_row, self.num_tile_col)
        logger.info("Finished ReplicationPlanningStage.")

        yield from self.run_sub_stage(floorplan=floorplan)
