import logging
from typing import Any

from cimchip.hardware.architecture.chip import ChipFactory, ResourceLibrary
from cimchip.hardware.architecture.chip_config import ChipConfig
from cimchip.stages.stage import Stage, StageCallable
from cimchip.workload.mapping import FloorPlan, MappingClassification
from cimchip.workload.network import NetworkDescription

logger = logging.getLogger(__name__)


class ChipAssemblyStage(Stage):
    """Instantiate the tiles and shared chip resources for the floorplan and compute the chip area."""

    def __init__(
        self,
        list_of_callables: list[StageCallable],
        *,
        config: ChipConfig,
        network: NetworkDescription,
        classification: MappingClassification,
        floorplan: FloorPlan,
        library: ResourceLibrary | None = None,
        **kwargs: Any,
    ):
        super().__init__(list_of_callables, **kwargs)
        self.config = config
        self.network = network
        self.classification = classification
        self.floorplan = floorplan
        self.library = library

    def run(self):
        logger.info("Start ChipAssemblyStage.")
        factory = ChipFactory(self.config, self.network, self.classification, self.floorplan, self.library)
        resources = factory.create()
        chip_area = factory.calculate_chip_area(resources)
        logger.info("Finished ChipAssemblyStage.")

        yield from self.run_sub_stage(
            config=self.config,
            network=self.network,
            classification=self.classification,
            floorplan=self.floorplan,
            resources=resources,
            chip_area=chip_area,
        )
