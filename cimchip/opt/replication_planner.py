import logging
from math import ceil

from cimchip.workload.mapping import FloorPlan, HierarchySize, LayerTilePlan, MappingClassification
from cimchip.workload.network import NetworkDescription

logger = logging.getLogger(__name__)


def duplication(matrix_size: int, container_size: int, unit_size: int) -> int:
    """Number of copies of a matrix dimension that fit in a container built from units of `unit_size`."""
    return ceil(ceil(container_size / unit_size) / ceil(matrix_size / unit_size))


class ReplicationPlanner:
    """! Lays out every layer on the chosen tile/PE hierarchy: number of tiles, weight duplication inside the tile
    (PE level, then sub-array level), resulting memory utilization and speed-up, and the grid location."""

    def __init__(
        self,
        network: NetworkDescription,
        classification: MappingClassification,
        num_row_per_synapse: int,
        num_col_per_synapse: int,
        num_row_sub_array: int,
        num_col_sub_array: int,
    ):
        self.network = network
        self.classification = classification
        self.num_row_per_synapse = num_row_per_synapse
        self.num_col_per_synapse = num_col_per_synapse
        self.num_row_sub_array = num_row_sub_array
        self.num_col_sub_array = num_col_sub_array

    def matrix_dimensions(self, layer_id: int) -> tuple[int, int]:
        """Rows and columns of the weight matrix one PE has to hold. For novel mapping every kernel position is
        stored in its own PE."""
        layer = self.network[layer_id]
        cols = layer.weight_matrix_cols(self.num_col_per_synapse)
        if self.classification.is_novel(layer_id):
            return layer.input_depth * self.num_row_per_synapse, cols
        return layer.weight_matrix_rows(self.num_row_per_synapse), cols

    def pe_duplication(self, layer_id: int, tile_size_cm: int, pe_size_cm: int) -> tuple[int, int]:
        """Copies of a conventional layer over the PEs of a tile, when the layer underfills the tile."""
        if self.classification.is_novel(layer_id):
            return 1, 1
        rows, cols = self.matrix_dimensions(layer_id)
        if rows <= tile_size_cm or cols <= tile_size_cm:
            return duplication(rows, tile_size_cm, pe_size_cm), duplication(cols, tile_size_cm, pe_size_cm)
        return 1, 1

    def sub_array_duplication(self, layer_id: int, pe_size_cm: int, pe_size_nm: int) -> tuple[int, int]:
        """Copies of a layer over the sub-arrays of a PE, when the layer underfills the PE."""
        pe_size = pe_size_nm if self.classification.is_novel(layer_id) else pe_size_cm
        rows, cols = self.matrix_dimensions(layer_id)
        if rows <= pe_size or cols <= pe_size:
            return (
                duplication(rows, pe_size, self.num_row_sub_array),
                duplication(cols, pe_size, self.num_col_sub_array),
            )
        return 1, 1

    def tile_counts(self, layer_id: int, tile_size_cm: int, pe_size_nm: int) -> tuple[int, int]:
        rows, cols = self.matrix_dimensions(layer_id)
        size = pe_size_nm if self.classification.is_novel(layer_id) else tile_size_cm
        return ceil(rows / size), ceil(cols / size)

    def plan_layer(self, layer_id: int, tile_size_cm: int, pe_size_cm: int, pe_size_nm: int) -> LayerTilePlan:
        num_tiles_row, num_tiles_col = self.tile_counts(layer_id, tile_size_cm, pe_size_nm)
        pe_dup_row, pe_dup_col = self.pe_duplication(layer_id, tile_size_cm, pe_size_cm)
        sub_array_dup_row, sub_array_dup_col = self.sub_array_duplication(layer_id, pe_size_cm, pe_size_nm)

        # For novel mapping every PE of the tile holds one block of rows x cols, so the PE count cancels out
        rows, cols = self.matrix_dimensions(layer_id)
        size = pe_size_nm if self.classification.is_novel(layer_id) else tile_size_cm
        mapped_cells = pe_dup_row * pe_dup_col * sub_array_dup_row * sub_array_dup_col * rows * cols
        utilization = mapped_cells / (num_tiles_row * num_tiles_col * size * size)

        return LayerTilePlan(
            num_tiles_row=num_tiles_row,
            num_tiles_col=num_tiles_col,
            pe_dup_row=pe_dup_row,
            pe_dup_col=pe_dup_col,
            sub_array_dup_row=sub_array_dup_row,
            sub_array_dup_col=sub_array_dup_col,
            utilization=utilization,
        )

    def plan(self, hierarchy: HierarchySize, num_tile_row: int, num_tile_col: int) -> FloorPlan:
        """! Plan all layers and place them on the grid. Layers occupy consecutive tile slots in execution order,
        filled row by row."""
        floorplan = FloorPlan(hierarchy=hierarchy, num_tile_row=num_tile_row, num_tile_col=num_tile_col)
        start = 0
        for layer_id in range(len(self.network)):
            layer_plan = self.plan_layer(
                layer_id, hierarchy.tile_size_cm, hierarchy.pe_size_cm, hierarchy.pe_size_nm
            )
            layer_plan.grid_location = (start // num_tile_col, start % num_tile_col) if num_tile_col else (0, 0)
            start += layer_plan.num_tiles
            floorplan.layer_plans.append(layer_plan)
            logger.debug("Layer %i: %s", layer_id, layer_plan)

        logger.info(
            "Floorplan: %i tiles on a %ix%i grid, chip utilization %.3f.",
            floorplan.total_num_tiles,
            num_tile_row,
            num_tile_col,
            floorplan.chip_utilization,
        )
        return floorplan
