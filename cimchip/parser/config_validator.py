import logging
from typing import Any

from cerberus import Validator

from cimchip.utils import is_power_of_two

logger = logging.getLogger(__name__)


class ChipConfigValidator:
    """Validates (and normalizes) user-provided chip configuration data read from a yaml file."""

    TECHNOLOGY_KEYS = (
        "feature_size",
        "cell_area_f2",
        "read_voltage",
        "vdd",
        "array_read_latency",
        "cell_leakage",
        "adc_area",
        "adc_latency",
        "adc_energy",
        "adder_area_per_bit",
        "adder_latency",
        "adder_energy_per_bit",
        "buffer_bit_area",
        "buffer_energy_per_bit",
        "buffer_leakage_per_bit",
        "wire_pitch",
        "wire_capacitance",
        "wire_delay",
        "comparator_area_per_bit",
        "comparator_latency",
        "comparator_energy_per_bit",
        "relu_area_per_bit",
        "relu_energy_per_bit",
        "lut_bit_area",
        "lut_energy_per_bit",
    )

    SCHEMA: dict[str, Any] = {
        "name": {"type": "string", "required": True},
        # ------------------------------------------------------------------ #
        # Mapping                                                            #
        # ------------------------------------------------------------------ #
        "novel_mapping": {"type": "boolean", "default": False},
        # ------------------------------------------------------------------ #
        # Memory array granularity and precision                             #
        # ------------------------------------------------------------------ #
        "num_row_sub_array": {"type": "integer", "min": 2, "required": True},
        "num_col_sub_array": {"type": "integer", "min": 2, "required": True},
        "cell_bit": {"type": "integer", "min": 1, "default": 1},
        "synapse_bit": {"type": "integer", "min": 1, "default": 8},
        "num_bit_input": {"type": "integer", "min": 1, "default": 8},
        # Device conductance range in Siemens
        "max_conductance": {"type": "number", "min": 0, "required": True},
        "min_conductance": {"type": "number", "min": 0, "required": True},
        # ------------------------------------------------------------------ #
        # Peripheral circuits                                                #
        # ------------------------------------------------------------------ #
        "chip_activation": {"type": "boolean", "default": True},
        "relu": {"type": "boolean", "default": True},
        "parallel_read": {"type": "boolean", "default": True},
        "num_col_muxed": {"type": "integer", "min": 1, "default": 8},
        "level_output": {"type": "integer", "min": 2, "default": 32},
        # ------------------------------------------------------------------ #
        # Global buffer and interconnect                                     #
        # ------------------------------------------------------------------ #
        "max_global_bus_width": {"type": "integer", "min": 1, "default": 4096},
        "global_buffer_type": {"type": "string", "allowed": ["sram", "register_file"], "default": "sram"},
        "clk_freq": {"type": "number", "min": 0, "default": 1.0e9},
        "unit_length_wire_resistance": {"type": "number", "min": 0, "default": 1.0},
        "global_bus_delay_tolerance": {"type": "number", "min": 0, "default": 0.1},
        "tree_folded_ratio": {"type": "number", "min": 0, "max": 1, "default": 0.5},
        # ------------------------------------------------------------------ #
        # Analytical circuit model coefficients (defaults in the dataclass)  #
        # ------------------------------------------------------------------ #
        "technology": {
            "type": "dict",
            "required": False,
            "schema": {key: {"type": "number", "min": 0} for key in TECHNOLOGY_KEYS},
        },
    }

    def __init__(self, data: Any, config_path: str = "<dict>"):
        """Initialize Validator object, assign schema and store normalize user-given data"""
        self.validator = Validator()
        self.validator.schema = ChipConfigValidator.SCHEMA  # type: ignore
        if not isinstance(data, dict):
            logger.critical("Chip configuration %s is not a mapping.", config_path)
            data = {}
        normalized = self.validator.normalized(data)  # type: ignore
        self.data: dict[str, Any] = normalized if normalized is not None else data
        self.is_valid = True
        self.config_path = config_path

    def invalidate(self, extra_msg: str):
        self.is_valid = False
        logger.critical("User-defined chip configuration %s is invalid. %s", self.config_path, extra_msg)

    def validate(self) -> bool:
        """! Validate the user-provided chip data. Log a critical warning when invalid data is encountered and
        return true iff valid.
        """
        validate_success = self.validator.validate(self.data)  # type: ignore
        errors = self.validator.errors  # type: ignore
        if not validate_success:
            self.invalidate(f"The following restrictions apply: {errors}")
            return self.is_valid

        # Validation outside of schema
        self.validate_sub_array()
        self.validate_conductance_range()
        return self.is_valid

    def validate_sub_array(self):
        # The hierarchy search halves sizes down to multiples of the sub-array, so it must be a power of two
        for key in ("num_row_sub_array", "num_col_sub_array"):
            if not is_power_of_two(self.data[key]):
                self.invalidate(f"`{key}` must be a power of two, got {self.data[key]}.")

    def validate_conductance_range(self):
        if self.data["min_conductance"] >= self.data["max_conductance"]:
            self.invalidate("`min_conductance` must be smaller than `max_conductance`.")

    @property
    def normalized_data(self) -> dict[str, Any]:
        """Returns the user-provided data after normalization by the validator. (Normalization happens during
        initialization)"""
        return self.data
