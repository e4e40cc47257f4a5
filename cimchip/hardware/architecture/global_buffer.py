from math import ceil
from typing import Literal

from cimchip.hardware.architecture.resource import ResourceModel

# Relative (area, energy) cost of one stored bit
BUFFER_TYPE_FACTORS = {
    "sram": (1.0, 1.0),
    "register_file": (1.6, 0.7),
}


class GlobalBuffer(ResourceModel):
    """On-chip buffer that holds the activations of the largest layer."""

    def initialize(
        self,
        num_bit: int,
        num_bit_per_row: int,
        num_bank: int,
        unit_wire_res: float,
        clk_freq: float,
        buffer_type: Literal["sram", "register_file"],
    ):
        self.num_bit = num_bit
        self.num_bit_per_row = max(1, num_bit_per_row)
        self.num_bank = num_bank
        self.num_row = ceil(num_bit / self.num_bit_per_row)
        self.unit_wire_res = unit_wire_res
        self.clk_freq = clk_freq
        self.buffer_type = buffer_type
        self.area_factor, self.energy_factor = BUFFER_TYPE_FACTORS[buffer_type]
        self.leakage = num_bank * num_bit * self.tech.buffer_leakage_per_bit
        self.initialized = True

    def calculate_area(self, new_height: float | None = None):
        self.check_initialized()
        self.area = self.num_bank * self.num_bit * self.tech.buffer_bit_area * self.area_factor
        self.set_dimensions(new_height=new_height)

    def access_time(self) -> float:
        """Time of one row access: one clock cycle plus the RC delay of the bit line along the buffer height."""
        wire_rc = self.unit_wire_res * self.height * self.tech.wire_capacitance * self.height
        return 1 / self.clk_freq + wire_rc

    def calculate_latency(self, num_bit_read: float, num_read: float, num_bit_write: float, num_write: float):
        self.check_initialized()
        self.read_latency = num_read * ceil(num_bit_read / self.num_bit_per_row) * self.access_time()
        self.write_latency = num_write * ceil(num_bit_write / self.num_bit_per_row) * self.access_time()

    def calculate_power(self, num_bit_read: float, num_read: float, num_bit_write: float, num_write: float):
        self.check_initialized()
        energy_per_bit = self.tech.buffer_energy_per_bit * self.energy_factor
        self.read_dynamic_energy = num_read * num_bit_read * energy_per_bit
        self.write_dynamic_energy = num_write * num_bit_write * energy_per_bit
