import logging
from collections.abc import Callable
from math import ceil, sqrt

from cimchip.opt.replication_planner import ReplicationPlanner
from cimchip.workload.mapping import HierarchySize, MappingClassification

logger = logging.getLogger(__name__)


class InfeasibleHierarchyError(ValueError):
    """Raised when no tile/PE size satisfies tile >= 2 * PE >= 4 * sub-array for the given network."""


def geometric_candidates(start: int, minimum: int) -> list[int]:
    """! Candidate sizes start, start/2, start/4, ... down to (and including) `minimum`."""
    if minimum <= 0:
        raise ValueError(f"Minimum candidate size must be positive, got {minimum}.")
    candidates: list[int] = []
    size = start
    while size >= minimum:
        candidates.append(size)
        size //= 2
    return candidates


def grid_dimensions(total_num_tiles: int) -> tuple[int, int]:
    """Smallest near-square grid that holds all tiles."""
    if total_num_tiles <= 0:
        return 0, 0
    num_tile_row = ceil(sqrt(total_num_tiles))
    num_tile_col = ceil(total_num_tiles / num_tile_row)
    return num_tile_row, num_tile_col


class HierarchySizer:
    """! Chooses the conventional tile size, the conventional PE size and the novel PE size that maximize memory
    utilization. Every size is a power of two multiple of the sub-array: the conventional tile holds at least two
    PEs per side and every PE holds at least two sub-arrays per side."""

    def __init__(
        self,
        classification: MappingClassification,
        planner: ReplicationPlanner,
        num_row_sub_array: int,
        novel_mapping: bool,
    ):
        self.classification = classification
        self.planner = planner
        self.num_row_sub_array = num_row_sub_array
        self.novel_mapping = novel_mapping

        self.conventional_ids = [
            idx for idx in range(len(classification.marks)) if not classification.is_novel(idx)
        ]
        self.novel_ids = classification.novel_layer_ids

    @property
    def min_tile_size(self) -> int:
        return 4 * self.num_row_sub_array

    @property
    def min_pe_size(self) -> int:
        return 2 * self.num_row_sub_array

    def mapped_cells(self, layer_id: int) -> int:
        rows, cols = self.planner.matrix_dimensions(layer_id)
        return rows * cols

    def tile_design_cm(self, tile_size: int) -> tuple[int, float]:
        """Number of conventional tiles of `tile_size` and their utilization without duplication."""
        num_tiles = 0
        cells = 0
        for layer_id in self.conventional_ids:
            tiles_row, tiles_col = self.planner.tile_counts(layer_id, tile_size, 0)
            num_tiles += tiles_row * tiles_col
            cells += self.mapped_cells(layer_id)
        return num_tiles, cells / (num_tiles * tile_size**2)

    def tile_design_nm(self, pe_size: int) -> tuple[int, float]:
        """Number of novel tiles whose PEs are `pe_size` wide and their utilization without duplication."""
        num_tiles = 0
        cells = 0
        for layer_id in self.novel_ids:
            tiles_row, tiles_col = self.planner.tile_counts(layer_id, 0, pe_size)
            num_tiles += tiles_row * tiles_col
            cells += self.mapped_cells(layer_id)
        return num_tiles, cells / (num_tiles * pe_size**2)

    def pe_design_cm(self, pe_size: int, tile_size: int, num_tiles: int) -> float:
        """Utilization of the conventional tiles when layers are duplicated over the PEs of `pe_size`."""
        cells = 0
        for layer_id in self.conventional_ids:
            dup_row, dup_col = self.planner.pe_duplication(layer_id, tile_size, pe_size)
            cells += dup_row * dup_col * self.mapped_cells(layer_id)
        return cells / (num_tiles * tile_size**2)

    def overfills(self, layer_ids: list[int], tile_size_cm: int, pe_size_cm: int, pe_size_nm: int) -> bool:
        return any(
            self.planner.plan_layer(layer_id, tile_size_cm, pe_size_cm, pe_size_nm).utilization > 1
            for layer_id in layer_ids
        )

    def select(self, candidates: list[int], evaluate: Callable[[int], float | None], what: str) -> int:
        """! Candidate with the strictly highest utilization; the first (largest) one wins ties. `evaluate` returns
        None for a rejected candidate."""
        best_size = None
        best_utilization = 0.0
        for size in candidates:
            utilization = evaluate(size)
            logger.debug("%s candidate %i: utilization %s", what, size, utilization)
            if utilization is not None and utilization > best_utilization:
                best_size = size
                best_utilization = utilization
        if best_size is None:
            raise InfeasibleHierarchyError(
                f"No valid {what} among {candidates} for sub-array size {self.num_row_sub_array}. "
                "Decrease the sub-array size."
            )
        return best_size

    def search_pe_size_nm(self) -> int:
        start = max(self.classification.max_pe_size_nm, self.min_pe_size)

        def evaluate(pe_size: int) -> float | None:
            if self.overfills(self.novel_ids, 0, 0, pe_size):
                return None
            return self.tile_design_nm(pe_size)[1]

        return self.select(geometric_candidates(start, self.min_pe_size), evaluate, "novel PE size")

    def search_tile_size_cm(self) -> int:
        start = max(self.classification.max_tile_size_cm, self.min_tile_size)
        return self.select(
            geometric_candidates(start, self.min_tile_size),
            lambda tile_size: self.tile_design_cm(tile_size)[1],
            "conventional tile size",
        )

    def search_pe_size_cm(self, tile_size: int, num_tiles: int) -> int:
        def evaluate(pe_size: int) -> float | None:
            if self.overfills(self.conventional_ids, tile_size, pe_size, 0):
                return None
            return self.pe_design_cm(pe_size, tile_size, num_tiles)

        return self.select(geometric_candidates(tile_size // 2, self.min_pe_size), evaluate, "conventional PE size")

    def size(self) -> HierarchySize:
        pe_size_nm = 0
        num_tiles_nm = 0
        num_pe_nm = 0
        if self.novel_mapping:
            num_pe_nm = self.classification.num_pe_nm
            pe_size_nm = self.min_pe_size
            if self.novel_ids:
                pe_size_nm = self.search_pe_size_nm()
                num_tiles_nm = self.tile_design_nm(pe_size_nm)[0]

        tile_size_cm = self.min_tile_size
        pe_size_cm = self.min_pe_size
        num_tiles_cm = 0
        if self.conventional_ids:
            tile_size_cm = self.search_tile_size_cm()
            num_tiles_cm = self.tile_design_cm(tile_size_cm)[0]
            pe_size_cm = self.search_pe_size_cm(tile_size_cm, num_tiles_cm)

        hierarchy = HierarchySize(
            tile_size_cm=tile_size_cm,
            pe_size_cm=pe_size_cm,
            pe_size_nm=pe_size_nm,
            num_pe_nm=num_pe_nm,
            num_tiles_cm=num_tiles_cm,
            num_tiles_nm=num_tiles_nm,
        )
        self.check_hierarchy(hierarchy)
        logger.info("Hierarchy: %s", hierarchy)
        return hierarchy

    def check_hierarchy(self, hierarchy: HierarchySize):
        if not hierarchy.tile_size_cm >= 2 * hierarchy.pe_size_cm >= 4 * self.num_row_sub_array:
            raise InfeasibleHierarchyError(
                f"Conventional tile {hierarchy.tile_size_cm} and PE {hierarchy.pe_size_cm} break the chip hierarchy "
                f"for sub-array size {self.num_row_sub_array}."
            )
        if self.novel_ids and hierarchy.pe_size_nm < 2 * self.num_row_sub_array:
            raise InfeasibleHierarchyError(
                f"Novel PE {hierarchy.pe_size_nm} is smaller than two sub-arrays of {self.num_row_sub_array}."
            )
