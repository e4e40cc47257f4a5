from dataclasses import dataclass, field
from math import ceil
from typing import Literal


@dataclass(frozen=True)
class TechnologyParameters:
    """Coefficients of the first-order analytical circuit models. SI units throughout."""

    feature_size: float = 32e-9
    cell_area_f2: float = 12.0
    read_voltage: float = 0.5
    vdd: float = 0.9
    array_read_latency: float = 2e-9
    cell_leakage: float = 1e-12
    adc_area: float = 5e-11
    adc_latency: float = 1e-9
    adc_energy: float = 2e-13
    adder_area_per_bit: float = 1.5e-12
    adder_latency: float = 1e-10
    adder_energy_per_bit: float = 5e-15
    buffer_bit_area: float = 3e-13
    buffer_energy_per_bit: float = 2e-14
    buffer_leakage_per_bit: float = 1e-12
    wire_pitch: float = 1e-7
    wire_capacitance: float = 2e-10
    wire_delay: float = 1e-4
    comparator_area_per_bit: float = 2e-12
    comparator_latency: float = 2e-10
    comparator_energy_per_bit: float = 3e-15
    relu_area_per_bit: float = 1e-12
    relu_energy_per_bit: float = 1e-15
    lut_bit_area: float = 3e-13
    lut_energy_per_bit: float = 2e-15

    @property
    def cell_area(self) -> float:
        return self.cell_area_f2 * self.feature_size**2


@dataclass(frozen=True)
class ChipConfig:
    """Validated chip and device parameters of one estimation run."""

    name: str
    num_row_sub_array: int
    num_col_sub_array: int
    max_conductance: float
    min_conductance: float
    synapse_bit: int = 8
    num_bit_input: int = 8
    cell_bit: int = 1
    novel_mapping: bool = False
    chip_activation: bool = True
    relu: bool = True
    parallel_read: bool = True
    num_col_muxed: int = 8
    max_global_bus_width: int = 4096
    global_buffer_type: Literal["sram", "register_file"] = "sram"
    clk_freq: float = 1e9
    unit_length_wire_resistance: float = 1.0
    level_output: int = 32
    global_bus_delay_tolerance: float = 0.1
    tree_folded_ratio: float = 0.5
    technology: TechnologyParameters = field(default_factory=TechnologyParameters)

    def __str__(self) -> str:
        return (
            f"ChipConfig({self.name}, sub_array={self.num_row_sub_array}x{self.num_col_sub_array}, "
            f"novel_mapping={self.novel_mapping})"
        )

    @property
    def num_col_per_synapse(self) -> int:
        """Number of cells (columns) that together store one weight."""
        return ceil(self.synapse_bit / self.cell_bit)

    @property
    def num_row_per_synapse(self) -> int:
        return 1

    @property
    def num_cell_level(self) -> int:
        return 2**self.cell_bit
