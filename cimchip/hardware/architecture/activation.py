from cimchip.hardware.architecture.resource import ResourceModel


class ReLUUnit(ResourceModel):
    """Bit-shifter based ReLU, `num_unit` outputs per cycle."""

    def initialize(self, num_unit: int, num_bit: int, clk_freq: float):
        self.num_unit = max(1, num_unit)
        self.num_bit = num_bit
        self.clk_freq = clk_freq
        self.initialized = True

    def calculate_area(self, new_width: float | None = None):
        self.check_initialized()
        self.area = self.num_unit * self.num_bit * self.tech.relu_area_per_bit
        self.set_dimensions(new_width=new_width)

    def calculate_latency(self, num_read: float):
        self.check_initialized()
        self.read_latency = num_read / self.clk_freq

    def calculate_power(self, num_read: float):
        self.check_initialized()
        self.read_dynamic_energy = num_read * self.num_unit * self.num_bit * self.tech.relu_energy_per_bit


class SigmoidUnit(ResourceModel):
    """Look-up table based sigmoid with `num_function` parallel tables of `num_entry` entries each."""

    def initialize(self, num_y_bit: int, num_entry: int, num_function: int, clk_freq: float):
        self.num_y_bit = num_y_bit
        self.num_entry = max(1, num_entry)
        self.num_function = max(1, num_function)
        self.clk_freq = clk_freq
        self.initialized = True

    def calculate_area(self, new_width: float | None = None):
        self.check_initialized()
        self.area = self.num_function * self.num_entry * self.num_y_bit * self.tech.lut_bit_area
        self.set_dimensions(new_width=new_width)

    def calculate_latency(self, num_read: float):
        self.check_initialized()
        self.read_latency = num_read / self.clk_freq

    def calculate_power(self, num_read: float):
        self.check_initialized()
        self.read_dynamic_energy = num_read * self.num_function * self.num_y_bit * self.tech.lut_energy_per_bit
