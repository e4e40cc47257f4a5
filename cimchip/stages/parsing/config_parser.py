import logging
from typing import Any

from zigzag.utils import open_yaml

from cimchip.hardware.architecture.chip_config import ChipConfig
from cimchip.parser.config_factory import ChipConfigFactory, override_precision
from cimchip.parser.config_validator import ChipConfigValidator
from cimchip.stages.stage import Stage, StageCallable

logger = logging.getLogger(__name__)


class ChipConfigParserStage(Stage):
    """Parse the chip configuration from a user-defined yaml file."""

    def __init__(
        self,
        list_of_callables: list[StageCallable],
        *,
        config: str | ChipConfig,
        synapse_bit: int | None = None,
        num_bit_input: int | None = None,
        **kwargs: Any,
    ):
        super().__init__(list_of_callables, **kwargs)
        self.config = config
        self.synapse_bit = synapse_bit
        self.num_bit_input = num_bit_input

    def run(self):
        logger.info("Start ChipConfigParserStage.")
        if isinstance(self.config, ChipConfig):
            config = override_precision(self.config, self.synapse_bit, self.num_bit_input)
        else:
            assert self.config.split(".")[-1] == "yaml", "Expected a yaml file as chip configuration"
            config = self.parse_config_from_yaml(self.config)
        logger.info("Finished ChipConfigParserStage.")

        yield from self.run_sub_stage(config=config)

    def parse_config_from_yaml(self, yaml_path: str) -> ChipConfig:
        config_data = open_yaml(yaml_path)

        validator = ChipConfigValidator(config_data, yaml_path)
        config_data = validator.normalized_data
        validate_success = validator.validate()
        if not validate_success:
            raise ValueError("Failed to validate user provided chip configuration.")

        factory = ChipConfigFactory(config_data)
        return factory.create(synapse_bit=self.synapse_bit, num_bit_input=self.num_bit_input)
