import logging
from dataclasses import replace
from typing import Any

from cimchip.hardware.architecture.chip_config import ChipConfig, TechnologyParameters

logger = logging.getLogger(__name__)


def resolve_precision(
    cell_bit: int, synapse_bit: int, num_bit_input: int, synapse_bit_override: int | None, input_override: int | None
) -> dict[str, int]:
    """Precisions after the overrides. Memory precision cannot exceed the synapse precision."""
    if synapse_bit_override is not None:
        synapse_bit = synapse_bit_override
    if input_override is not None:
        num_bit_input = input_override
    if cell_bit > synapse_bit:
        logger.warning(
            "Memory precision (cell_bit=%s) is higher than synapse precision (synapse_bit=%s): cell_bit will be "
            "reduced to synapse_bit.",
            cell_bit,
            synapse_bit,
        )
        cell_bit = synapse_bit
    return {"cell_bit": cell_bit, "synapse_bit": synapse_bit, "num_bit_input": num_bit_input}


def override_precision(
    config: ChipConfig, synapse_bit: int | None = None, num_bit_input: int | None = None
) -> ChipConfig:
    """! Apply the precision overrides and the `cell_bit` clamp to an already built ChipConfig."""
    precision = resolve_precision(
        config.cell_bit, config.synapse_bit, config.num_bit_input, synapse_bit, num_bit_input
    )
    return replace(config, **precision)


class ChipConfigFactory:
    """! Converts valid user-provided configuration data into a `ChipConfig` instance"""

    def __init__(self, data: dict[str, Any]):
        self.data = data

    def create(self, synapse_bit: int | None = None, num_bit_input: int | None = None) -> ChipConfig:
        """! Create a ChipConfig. The precisions given on the command line take precedence over the yaml file."""
        data = dict(self.data)
        precision = resolve_precision(
            data["cell_bit"], data["synapse_bit"], data["num_bit_input"], synapse_bit, num_bit_input
        )
        data.update(precision)
        technology = TechnologyParameters(**data.pop("technology", None) or {})
        return ChipConfig(technology=technology, **data)
