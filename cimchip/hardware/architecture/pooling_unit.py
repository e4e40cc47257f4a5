from cimchip.hardware.architecture.resource import ResourceModel
from cimchip.utils import ceil_log2


class MaxPoolUnit(ResourceModel):
    """Comparator trees that reduce `window` values of `num_bit` bits to their maximum, `num_unit` in parallel."""

    def initialize(self, num_bit: int, window: int, num_unit: int):
        self.num_bit = num_bit
        self.window = window
        self.num_unit = max(1, num_unit)
        self.initialized = True

    @property
    def num_comparator(self) -> int:
        return self.num_unit * max(1, self.window - 1)

    def calculate_area(self, new_width: float | None = None):
        self.check_initialized()
        self.area = self.num_comparator * self.num_bit * self.tech.comparator_area_per_bit
        self.set_dimensions(new_width=new_width)

    def calculate_latency(self, num_read: float):
        self.check_initialized()
        self.read_latency = num_read * ceil_log2(self.window) * self.tech.comparator_latency

    def calculate_power(self, num_read: float):
        self.check_initialized()
        self.read_dynamic_energy = num_read * self.num_comparator * self.num_bit * self.tech.comparator_energy_per_bit
