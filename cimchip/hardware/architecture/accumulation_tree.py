from math import ceil

from cimchip.hardware.architecture.resource import ResourceModel
from cimchip.utils import ceil_log2


class AccumulationTree(ResourceModel):
    """Adder trees that sum partial results of the tiles sharing the same output columns."""

    def initialize(self, num_operands: int, num_adder_bit: int, num_adder_tree: int):
        self.num_operands = max(1, num_operands)
        self.num_adder_bit = num_adder_bit
        self.num_adder_tree = max(1, num_adder_tree)
        self.initialized = True

    def adders_per_tree(self, num_unit_add: int) -> int:
        return max(1, num_unit_add - 1)

    def output_bits(self, num_unit_add: int) -> int:
        return self.num_adder_bit + ceil_log2(num_unit_add)

    def calculate_area(self, new_height: float | None = None):
        self.check_initialized()
        adder_bits = self.adders_per_tree(self.num_operands) * self.output_bits(self.num_operands)
        self.area = self.num_adder_tree * adder_bits * self.tech.adder_area_per_bit
        self.set_dimensions(new_height=new_height)

    def calculate_latency(self, num_read: float, num_unit_add: int):
        self.check_initialized()
        num_stage = max(1, ceil_log2(num_unit_add))
        self.read_latency = ceil(num_read / self.num_adder_tree) * num_stage * self.tech.adder_latency

    def calculate_power(self, num_read: float, num_unit_add: int):
        self.check_initialized()
        energy_per_add = self.adders_per_tree(num_unit_add) * self.output_bits(num_unit_add)
        self.read_dynamic_energy = num_read * energy_per_add * self.tech.adder_energy_per_bit
