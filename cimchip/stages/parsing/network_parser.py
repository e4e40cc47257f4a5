import logging
from typing import Any

from cimchip.parser.network_parser import parse_network
from cimchip.stages.stage import Stage, StageCallable
from cimchip.workload.network import NetworkDescription

logger = logging.getLogger(__name__)


class NetworkParserStage(Stage):
    """Parse the network structure from a csv file with one layer per line."""

    def __init__(self, list_of_callables: list[StageCallable], *, network: str | NetworkDescription, **kwargs: Any):
        super().__init__(list_of_callables, **kwargs)
        self.network = network

    def run(self):
        logger.info("Start NetworkParserStage.")
        if isinstance(self.network, NetworkDescription):
            network = self.network
        else:
            network = parse_network(self.network)
        logger.info("Parsed %s.", network)
        logger.info("Finished NetworkParserStage.")

        yield from self.run_sub_stage(network=network)
