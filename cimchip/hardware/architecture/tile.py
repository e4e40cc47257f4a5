from abc import ABCMeta, abstractmethod
from dataclasses import dataclass
from math import ceil, sqrt

import numpy as np

from cimchip.cost_model.performance import TilePerformance
from cimchip.hardware.architecture.chip_config import ChipConfig
from cimchip.utils import ARRAY_T, ceil_log2
from cimchip.workload.mapping import MappingMark


@dataclass
class TileArea:
    total: float
    interconnect: float
    adc: float
    accumulation: float
    other: float
    height: float
    width: float


class TileModel(metaclass=ABCMeta):
    """! A tile of `num_pe` processing elements of `pe_size` x `pe_size` synaptic cells each."""

    def __init__(self, config: ChipConfig):
        self.config = config
        self.tech = config.technology
        self.initialized = False
        self.num_pe = 0
        self.pe_size = 0
        self.leakage = 0.0

    def __str__(self) -> str:
        return f"{type(self).__name__}(num_pe={self.num_pe}, pe_size={self.pe_size})"

    @abstractmethod
    def initialize(self, num_pe: int, pe_size: int) -> None: ...

    @abstractmethod
    def calculate_area(self) -> TileArea: ...

    @abstractmethod
    def calculate_performance(
        self,
        weights: ARRAY_T,
        inputs: ARRAY_T,
        mapping_mark: MappingMark,
        speed_up_row: int,
        speed_up_col: int,
        num_row_matrix: int,
        num_col_matrix: int,
        num_input_vector: int,
    ) -> TilePerformance: ...


class AnalyticalTile(TileModel):
    """First-order tile model. Sub-arrays are read bit-serially, columns are multiplexed onto shared ADCs and the
    partial sums of stacked sub-arrays (and of all PEs for novel mapping) are added by shift-add trees."""

    def initialize(self, num_pe: int, pe_size: int):
        config = self.config
        self.num_pe = num_pe
        self.pe_size = pe_size
        self.num_pe_side = ceil(sqrt(num_pe))
        sub_arrays_per_pe = ceil(pe_size / config.num_row_sub_array) * ceil(pe_size / config.num_col_sub_array)
        self.num_sub_array = num_pe * sub_arrays_per_pe
        self.num_adc = self.num_sub_array * ceil(config.num_col_sub_array / config.num_col_muxed)
        self.adder_bit = ceil_log2(config.num_row_sub_array) + config.cell_bit + config.num_bit_input
        # Input and output registers along the tile edge
        self.bus_bits = pe_size * self.num_pe_side
        self.buffer_bits = 2 * self.bus_bits * config.num_bit_input
        self.leakage = (
            num_pe * pe_size**2 * self.tech.cell_leakage + self.buffer_bits * self.tech.buffer_leakage_per_bit
        )
        self.initialized = True
        self.area = self.calculate_area()

    def calculate_area(self) -> TileArea:
        if not self.initialized:
            raise RuntimeError(f"{type(self).__name__} is used before initialize() was called.")
        tech = self.tech
        array = self.num_pe * self.pe_size**2 * tech.cell_area
        adc = self.num_adc * tech.adc_area
        accumulation = self.num_adc * self.adder_bit * tech.adder_area_per_bit
        other = array + self.buffer_bits * tech.buffer_bit_area
        core_side = sqrt(adc + accumulation + other)
        interconnect = self.bus_bits * tech.wire_pitch * core_side
        total = interconnect + adc + accumulation + other
        side = sqrt(total)
        return TileArea(
            total=total,
            interconnect=interconnect,
            adc=adc,
            accumulation=accumulation,
            other=other,
            height=side,
            width=side,
        )

    def calculate_performance(
        self,
        weights: ARRAY_T,
        inputs: ARRAY_T,
        mapping_mark: MappingMark,
        speed_up_row: int,
        speed_up_col: int,
        num_row_matrix: int,
        num_col_matrix: int,
        num_input_vector: int,
    ) -> TilePerformance:
        """! Evaluate one layer slice on this tile.

        Args:
            weights: conductances stored in the tile, one row per wordline (all PE blocks stacked for novel mapping)
            inputs: input bits per row, one column per input cycle
            speed_up_row, speed_up_col: duplication factors; duplicated copies process input vectors in parallel
            num_row_matrix, num_col_matrix: rows and columns of one block of the slice
            num_input_vector: number of bit-serial input cycles of the layer
        """
        config = self.config
        tech = self.tech
        if weights.shape[0] != inputs.shape[0]:
            raise ValueError(f"Weights with {weights.shape[0]} rows cannot be driven by {inputs.shape[0]} input rows.")

        num_block = self.num_pe if mapping_mark is MappingMark.NOVEL else 1
        speed_up = max(1, speed_up_row * speed_up_col)
        num_cycle = ceil(num_input_vector / speed_up)
        num_sub_array_row = max(1, ceil(num_row_matrix / config.num_row_sub_array))
        num_add_stage = ceil_log2(num_sub_array_row * num_block) + 1

        # Cell energy follows the stored conductances and the activated wordlines
        active = inputs[:, :num_input_vector] != 0
        row_conductance = weights.sum(axis=1)
        activations_per_row = active.sum(axis=1)
        cell_current_time = float(np.dot(row_conductance, activations_per_row)) * tech.array_read_latency
        array_energy = tech.read_voltage**2 * cell_current_time

        num_conversion = num_input_vector * num_col_matrix * num_sub_array_row * num_block
        energy_adc = num_conversion * tech.adc_energy
        energy_accum = num_conversion * num_add_stage * self.adder_bit * tech.adder_energy_per_bit

        buffer_bits = (weights.shape[0] + num_col_matrix * num_block) * num_input_vector
        buffer_latency = ceil(buffer_bits / self.bus_bits) / config.clk_freq
        buffer_dynamic_energy = buffer_bits * tech.buffer_energy_per_bit
        ic_latency = num_cycle * tech.wire_delay * self.area.height
        ic_dynamic_energy = buffer_bits * tech.wire_capacitance * self.area.height * tech.vdd**2

        latency_adc = num_cycle * config.num_col_muxed * tech.adc_latency
        latency_accum = num_cycle * num_add_stage * tech.adder_latency
        latency_other = num_cycle * tech.array_read_latency + buffer_latency + ic_latency
        energy_other = array_energy + buffer_dynamic_energy + ic_dynamic_energy

        return TilePerformance(
            read_latency=latency_adc + latency_accum + latency_other,
            read_dynamic_energy=energy_adc + energy_accum + energy_other,
            leakage=self.leakage,
            buffer_latency=buffer_latency,
            buffer_dynamic_energy=buffer_dynamic_energy,
            ic_latency=ic_latency,
            ic_dynamic_energy=ic_dynamic_energy,
            latency_adc=latency_adc,
            latency_accum=latency_accum,
            latency_other=latency_other,
            energy_adc=energy_adc,
            energy_accum=energy_accum,
            energy_other=energy_other,
        )
