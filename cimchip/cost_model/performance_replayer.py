import logging
from math import ceil, sqrt

from cimchip.cost_model.performance import LayerPerformance, PerformanceAccumulator
from cimchip.cost_model.tile_slice import TileSlice
from cimchip.hardware.architecture.chip import ChipArea, ChipResources
from cimchip.hardware.architecture.chip_config import ChipConfig
from cimchip.parser.matrix_loader import MalformedInputError
from cimchip.utils import ARRAY_T
from cimchip.workload.mapping import FloorPlan, MappingClassification, MappingMark
from cimchip.workload.network import NetworkDescription

logger = logging.getLogger(__name__)


class PerformanceReplayer:
    """! Replays the computation of one layer through the floorplan: every tile of the layer evaluates its slice of
    the weight matrix, the tiles are folded together, and the shared chip resources (activation, accumulation,
    max-pool, interconnect tree and global buffer) are added on top."""

    def __init__(
        self,
        config: ChipConfig,
        network: NetworkDescription,
        classification: MappingClassification,
        floorplan: FloorPlan,
        resources: ChipResources,
        chip_area: ChipArea,
    ):
        self.config = config
        self.network = network
        self.classification = classification
        self.floorplan = floorplan
        self.resources = resources
        self.chip_area = chip_area

    def check_layer_data(self, layer_id: int, weights: ARRAY_T, inputs: ARRAY_T):
        layer = self.network[layer_id]
        num_row = layer.weight_matrix_rows(self.config.num_row_per_synapse)
        num_col = layer.weight_matrix_cols(self.config.num_col_per_synapse)
        num_input_vector = layer.num_output_pixels * self.config.num_bit_input
        if weights.ndim != 2 or weights.shape != (num_row, num_col):
            raise MalformedInputError(
                f"Layer {layer_id} expects a {num_row}x{num_col} conductance matrix, got {weights.shape}."
            )
        if inputs.ndim != 2 or inputs.shape[0] != num_row or inputs.shape[1] < num_input_vector:
            raise MalformedInputError(
                f"Layer {layer_id} expects at least {num_row}x{num_input_vector} input bits, got {inputs.shape}."
            )

    def next_layer_tiles(self, layer_id: int) -> int:
        """Tiles of the layer that consumes this layer's outputs (the layer itself for the last layer)."""
        next_id = layer_id + 1 if layer_id + 1 < len(self.network) else layer_id
        return self.floorplan[next_id].num_tiles

    def max_pool_reads(self, layer_id: int, output_width: float, window: int) -> int:
        """Max-pool operations for one tile: the tile output width over the pooled windows of the next input map."""
        next_layer = self.network.next_layer(layer_id)
        if next_layer is not None:
            map_size = next_layer.input_rows * next_layer.input_cols
        else:
            layer = self.network[layer_id]
            map_size = layer.output_rows * layer.output_cols
        return ceil(output_width / (map_size / window))

    def replay_layer(self, layer_id: int, weights: ARRAY_T, inputs: ARRAY_T) -> LayerPerformance:
        """! Latency and energy of one layer.

        Args:
            layer_id: position of the layer in the network
            weights: conductance matrix of shape (weight rows, weight cols * cells per synapse)
            inputs: input bits, one row per weight row and one column per bit-serial input cycle
        """
        self.check_layer_data(layer_id, weights, inputs)
        config = self.config
        layer = self.network[layer_id]
        layer_plan = self.floorplan[layer_id]
        hierarchy = self.floorplan.hierarchy
        is_novel = self.classification.is_novel(layer_id)
        resources = self.resources.snapshot()

        num_row_matrix = layer.weight_matrix_rows(config.num_row_per_synapse)
        num_col_matrix = layer.weight_matrix_cols(config.num_col_per_synapse)
        num_pixels = layer.num_output_pixels
        num_input_vector = num_pixels * config.num_bit_input
        next_tiles = self.next_layer_tiles(layer_id)

        if is_novel:
            assert resources.tile_nm is not None
            tile = resources.tile_nm
            mapping_mark = MappingMark.NOVEL
            tile_height, tile_width = self.chip_area.tile_height_nm, self.chip_area.tile_width_nm
            pool_width = hierarchy.pe_size_nm * sqrt(hierarchy.num_pe_nm)
        else:
            tile = resources.tile_cm
            mapping_mark = MappingMark.CONVENTIONAL
            tile_height, tile_width = self.chip_area.tile_height_cm, self.chip_area.tile_width_cm
            pool_width = hierarchy.tile_size_cm

        accumulator = PerformanceAccumulator(layer_id, layer_plan.num_tiles)
        for tile_row in range(layer_plan.num_tiles_row):
            for tile_col in range(layer_plan.num_tiles_col):
                if is_novel:
                    tile_slice = TileSlice.novel(
                        tile_row,
                        tile_col,
                        hierarchy.pe_size_nm,
                        hierarchy.num_pe_nm,
                        layer.input_depth * config.num_row_per_synapse,
                        num_col_matrix,
                    )
                else:
                    tile_slice = TileSlice.conventional(
                        tile_row, tile_col, hierarchy.tile_size_cm, num_row_matrix, num_col_matrix
                    )
                tile_performance = tile.calculate_performance(
                    tile_slice.take_weights(weights),
                    tile_slice.take_inputs(inputs, num_input_vector),
                    mapping_mark,
                    layer_plan.speed_up_row,
                    layer_plan.speed_up_col,
                    tile_slice.num_row,
                    tile_slice.num_col,
                    num_input_vector,
                )
                accumulator.fold_tile(tile_performance)

                if layer.followed_by_pool:
                    max_pool = resources.max_pool
                    num_read = self.max_pool_reads(layer_id, pool_width, max_pool.window)
                    max_pool.calculate_latency(num_read)
                    max_pool.calculate_power(num_read)
                    accumulator.add_shared(max_pool, "other")

            self.add_row_resources(
                accumulator, resources, layer_plan.num_tiles_row, layer_plan.num_tiles_col, next_tiles
            )

        performance = accumulator.finalize()
        self.add_layer_traffic(performance, resources, layer_id, tile_height, tile_width)
        logger.info(
            "Layer %i: read latency %.3e s, dynamic energy %.3e J.",
            layer_id,
            performance.read_latency,
            performance.read_dynamic_energy,
        )
        return performance

    def add_row_resources(
        self,
        accumulator: PerformanceAccumulator,
        resources: ChipResources,
        num_tiles_row: int,
        num_tiles_col: int,
        next_tiles: int,
    ):
        """Activation of the results of one tile row, and accumulation across tile rows."""
        activation = resources.activation
        if self.config.chip_activation and activation is not None:
            if self.config.relu:
                num_read = ceil(next_tiles / activation.num_unit)
            else:
                num_read = ceil(next_tiles / activation.num_entry)
            activation.calculate_latency(num_read)
            activation.calculate_power(num_read)
            accumulator.add_shared(activation, "other")

        if num_tiles_row > 1:
            accumulation = resources.accumulation
            num_read = num_tiles_col * self.config.num_col_muxed * next_tiles
            accumulation.calculate_latency(num_read, num_tiles_row)
            accumulation.calculate_power(num_read, num_tiles_row)
            accumulator.add_shared(accumulation, "accum")

    def add_layer_traffic(
        self,
        performance: LayerPerformance,
        resources: ChipResources,
        layer_id: int,
        tile_height: float,
        tile_width: float,
    ):
        """! Moving the layer inputs from the global buffer to the tiles and the outputs back. Novel mapping reuses
        the inputs of one kernel row for all kernel rows, so its traffic and its buffer and interconnect latency are
        divided by the kernel height."""
        config = self.config
        layer = self.network[layer_id]
        num_row_matrix = layer.weight_matrix_rows(config.num_row_per_synapse)
        num_col_matrix = layer.weight_matrix_cols(config.num_col_per_synapse)
        is_novel = self.classification.is_novel(layer_id)
        tile_row, tile_col = self.floorplan[layer_id].grid_location

        num_transfer = layer.num_output_pixels / layer.kernel_rows if is_novel else layer.num_output_pixels
        if is_novel:
            # The per-tile maxima are replaced by the layer-level values below
            performance.latency_other -= performance.buffer_latency + performance.ic_latency
            performance.read_latency -= performance.buffer_latency + performance.ic_latency

        tree = resources.interconnect
        tree.calculate_latency(
            0,
            0,
            tile_row,
            tile_col,
            tile_height,
            tile_width,
            (num_row_matrix + num_col_matrix) * num_transfer / tree.bus_width,
        )
        tree.calculate_power(
            0,
            0,
            tile_row,
            tile_col,
            tile_height,
            tile_width,
            tree.bus_width,
            (num_row_matrix + num_col_matrix) / self.floorplan.hierarchy.pe_size_cm * num_transfer / tree.bus_width,
        )

        buffer = resources.global_buffer
        buffer.calculate_latency(
            num_row_matrix * config.num_bit_input, num_transfer, num_col_matrix * config.num_bit_input, num_transfer
        )
        buffer.calculate_power(
            num_row_matrix * config.num_bit_input, num_transfer, num_col_matrix * config.num_bit_input, num_transfer
        )

        buffer_latency = buffer.read_latency + buffer.write_latency
        buffer_energy = buffer.read_dynamic_energy + buffer.write_dynamic_energy
        performance.buffer_latency += buffer_latency
        performance.buffer_dynamic_energy += buffer_energy
        performance.ic_latency += tree.read_latency
        performance.ic_dynamic_energy += tree.read_dynamic_energy

        if is_novel:
            performance.buffer_latency /= layer.kernel_rows
            performance.ic_latency /= layer.kernel_rows
            added_latency = performance.buffer_latency + performance.ic_latency
        else:
            added_latency = buffer_latency + tree.read_latency

        performance.read_latency += added_latency
        performance.latency_other += added_latency
        performance.read_dynamic_energy += buffer_energy + tree.read_dynamic_energy
        performance.energy_other += buffer_energy + tree.read_dynamic_energy
