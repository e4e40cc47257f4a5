from dataclasses import dataclass, field
from enum import Enum


class MappingMark(Enum):
    CONVENTIONAL = 0
    NOVEL = 1


@dataclass
class MappingClassification:
    """Per-layer mapping marks plus the size bounds the hierarchy search starts from."""

    marks: list[MappingMark]
    max_pe_size_nm: int = 0
    max_tile_size_cm: int = 0
    num_pe_nm: int = 0

    def is_novel(self, layer_id: int) -> bool:
        return self.marks[layer_id] is MappingMark.NOVEL

    @property
    def has_novel_layers(self) -> bool:
        return any(mark is MappingMark.NOVEL for mark in self.marks)

    @property
    def has_conventional_layers(self) -> bool:
        return any(mark is MappingMark.CONVENTIONAL for mark in self.marks)

    @property
    def novel_layer_ids(self) -> list[int]:
        return [idx for idx, mark in enumerate(self.marks) if mark is MappingMark.NOVEL]


@dataclass
class HierarchySize:
    """Tile and PE sizes chosen once per run (in synaptic rows/cols), and the number of tiles of each kind."""

    tile_size_cm: int
    pe_size_cm: int
    pe_size_nm: int = 0
    num_pe_nm: int = 0
    num_tiles_cm: int = 0
    num_tiles_nm: int = 0

    @property
    def num_pe_cm(self) -> int:
        """Number of PEs along one side of a conventional tile."""
        return -(-self.tile_size_cm // self.pe_size_cm)

    @property
    def total_num_tiles(self) -> int:
        return self.num_tiles_cm + self.num_tiles_nm


@dataclass
class LayerTilePlan:
    """How one layer is laid out on the chip."""

    num_tiles_row: int
    num_tiles_col: int
    pe_dup_row: int = 1
    pe_dup_col: int = 1
    sub_array_dup_row: int = 1
    sub_array_dup_col: int = 1
    utilization: float = 0.0
    grid_location: tuple[int, int] = (0, 0)

    @property
    def num_tiles(self) -> int:
        return self.num_tiles_row * self.num_tiles_col

    @property
    def speed_up_row(self) -> int:
        return self.pe_dup_row * self.sub_array_dup_row

    @property
    def speed_up_col(self) -> int:
        return self.pe_dup_col * self.sub_array_dup_col


@dataclass
class FloorPlan:
    hierarchy: HierarchySize
    layer_plans: list[LayerTilePlan] = field(default_factory=list)
    num_tile_row: int = 0
    num_tile_col: int = 0

    def __getitem__(self, layer_id: int) -> LayerTilePlan:
        return self.layer_plans[layer_id]

    def __len__(self) -> int:
        return len(self.layer_plans)

    @property
    def total_num_tiles(self) -> int:
        return sum(plan.num_tiles for plan in self.layer_plans)

    @property
    def grid_capacity(self) -> int:
        return self.num_tile_row * self.num_tile_col

    @property
    def unused_slots(self) -> int:
        return self.grid_capacity - self.hierarchy.total_num_tiles

    @property
    def chip_utilization(self) -> float:
        """Tile-weighted memory utilization of the whole chip."""
        total = self.total_num_tiles
        if total == 0:
            return 0.0
        return sum(plan.num_tiles * plan.utilization for plan in self.layer_plans) / total

    def num_tiles_other_layers(self, layer_id: int) -> int:
        return self.total_num_tiles - self.layer_plans[layer_id].num_tiles
