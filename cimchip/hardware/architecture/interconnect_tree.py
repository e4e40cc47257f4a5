from cimchip.hardware.architecture.resource import ResourceModel
from cimchip.utils import ceil_log2


class InterconnectTree(ResourceModel):
    """H-tree bus connecting the global buffer with every tile of the `num_row` x `num_col` grid."""

    def initialize(self, num_row: int, num_col: int, delay_tolerance: float, bus_width: float):
        self.num_row = num_row
        self.num_col = num_col
        self.delay_tolerance = delay_tolerance
        self.bus_width = bus_width
        self.num_stage = 2 * ceil_log2(max(num_row, num_col, 1))
        self.initialized = True

    def calculate_area(self, unit_height: float, unit_width: float, folded_ratio: float):
        """Every stage of the tree spans half the grid in one direction. Folding wires over the tiles hides part of
        the routing area."""
        self.check_initialized()
        wire_length = 0.0
        span_height = self.num_row * unit_height
        span_width = self.num_col * unit_width
        for stage in range(self.num_stage):
            if stage % 2:
                span_height /= 2
                wire_length += span_height
            else:
                span_width /= 2
                wire_length += span_width
        routing_width = self.bus_width * self.tech.wire_pitch
        self.area = wire_length * routing_width * (1 - folded_ratio)
        self.set_dimensions(new_width=self.num_col * unit_width if self.num_col else None)

    def distance(self, x_init: int, y_init: int, tile_row: int, tile_col: int, unit_height: float, unit_width: float):
        """Manhattan wire length from the buffer port to the tile, at least one tile pitch."""
        hops = abs(tile_row - y_init) * unit_height + abs(tile_col - x_init) * unit_width
        return hops + (unit_height + unit_width) / 2

    def calculate_latency(
        self,
        x_init: int,
        y_init: int,
        tile_row: int,
        tile_col: int,
        unit_height: float,
        unit_width: float,
        num_read: float,
    ):
        self.check_initialized()
        wire_delay = self.tech.wire_delay * self.distance(x_init, y_init, tile_row, tile_col, unit_height, unit_width)
        # Repeaters are inserted until the delay is within tolerance of the ideal wire delay
        self.read_latency = num_read * wire_delay * (1 + self.delay_tolerance)

    def calculate_power(
        self,
        x_init: int,
        y_init: int,
        tile_row: int,
        tile_col: int,
        unit_height: float,
        unit_width: float,
        bus_width: float,
        num_read: float,
    ):
        self.check_initialized()
        length = self.distance(x_init, y_init, tile_row, tile_col, unit_height, unit_width)
        energy_per_read = bus_width * length * self.tech.wire_capacitance * self.tech.vdd**2
        self.read_dynamic_energy = num_read * energy_per_read
