import logging
from dataclasses import dataclass, field
from math import ceil, log2, sqrt

from zigzag.utils import pickle_deepcopy

from cimchip.hardware.architecture.accumulation_tree import AccumulationTree
from cimchip.hardware.architecture.activation import ReLUUnit, SigmoidUnit
from cimchip.hardware.architecture.chip_config import ChipConfig
from cimchip.hardware.architecture.global_buffer import GlobalBuffer
from cimchip.hardware.architecture.interconnect_tree import InterconnectTree
from cimchip.hardware.architecture.pooling_unit import MaxPoolUnit
from cimchip.hardware.architecture.tile import AnalyticalTile, TileArea, TileModel
from cimchip.utils import ceil_log2
from cimchip.workload.mapping import FloorPlan, MappingClassification
from cimchip.workload.network import NetworkDescription

logger = logging.getLogger(__name__)

MAX_POOL_WINDOW = 2 * 2


@dataclass
class ResourceLibrary:
    """Classes used to instantiate the chip resources. Replace entries to plug in other circuit models."""

    global_buffer: type[GlobalBuffer] = GlobalBuffer
    interconnect: type[InterconnectTree] = InterconnectTree
    accumulation: type[AccumulationTree] = AccumulationTree
    relu: type[ReLUUnit] = ReLUUnit
    sigmoid: type[SigmoidUnit] = SigmoidUnit
    max_pool: type[MaxPoolUnit] = MaxPoolUnit
    tile: type[TileModel] = AnalyticalTile


@dataclass
class ChipResources:
    """The resource instances of one run. Per-layer evaluations work on a `snapshot()` so that the latency and
    power results stored in the instances never leak from one layer into another."""

    global_buffer: GlobalBuffer
    interconnect: InterconnectTree
    accumulation: AccumulationTree
    max_pool: MaxPoolUnit
    tile_cm: TileModel
    activation: ReLUUnit | SigmoidUnit | None = None
    tile_nm: TileModel | None = None

    def snapshot(self) -> "ChipResources":
        return pickle_deepcopy(self)


@dataclass
class ChipArea:
    """Chip area (m^2) with its breakdown, and the footprint (m) of the chip and of both tile kinds."""

    total: float
    interconnect: float
    adc: float
    accumulation: float
    other: float
    height: float
    width: float
    tile_height_cm: float = 0.0
    tile_width_cm: float = 0.0
    tile_height_nm: float = 0.0
    tile_width_nm: float = 0.0
    breakdown: dict[str, float] = field(default_factory=dict)


class ChipFactory:
    """! Instantiates and sizes the tiles and the chip-level shared resources for a floorplan, and computes the chip
    area."""

    def __init__(
        self,
        config: ChipConfig,
        network: NetworkDescription,
        classification: MappingClassification,
        floorplan: FloorPlan,
        library: ResourceLibrary | None = None,
    ):
        self.config = config
        self.network = network
        self.classification = classification
        self.floorplan = floorplan
        self.library = library if library is not None else ResourceLibrary()

    @property
    def max_throughput_tile(self) -> int:
        """Output columns one tile delivers at once."""
        hierarchy = self.floorplan.hierarchy
        if self.config.novel_mapping:
            return max(hierarchy.tile_size_cm, ceil(sqrt(hierarchy.num_pe_nm)) * hierarchy.pe_size_nm)
        return hierarchy.tile_size_cm

    @property
    def max_add_from_sub_array(self) -> int:
        """Partial sums added from sub-arrays to PE and from PEs to the tile output."""
        hierarchy = self.floorplan.hierarchy
        sub = self.config.num_row_sub_array
        if self.config.novel_mapping:
            from_sub_array = max(ceil(hierarchy.pe_size_cm / sub), ceil(hierarchy.pe_size_nm / sub))
            from_pe = max(ceil(hierarchy.tile_size_cm / hierarchy.pe_size_cm), ceil(sqrt(hierarchy.num_pe_nm)))
            return from_sub_array * from_pe
        return ceil(hierarchy.pe_size_cm / sub) * ceil(hierarchy.tile_size_cm / hierarchy.pe_size_cm)

    def global_bus_width(self) -> float:
        """Sum of the tile port widths of all layers, halved until it fits the maximum bus width."""
        hierarchy = self.floorplan.hierarchy
        num_col_muxed = self.config.num_col_muxed
        bus_width = 0.0
        for layer_id in range(len(self.network)):
            if self.classification.is_novel(layer_id):
                port = hierarchy.pe_size_nm * ceil(sqrt(hierarchy.num_pe_nm))
            else:
                port = hierarchy.tile_size_cm
            bus_width += port + port / num_col_muxed
        while bus_width > self.config.max_global_bus_width:
            bus_width /= 2
        return bus_width

    def create_tiles(self) -> tuple[TileModel, TileModel | None]:
        hierarchy = self.floorplan.hierarchy
        tile_nm = None
        if self.config.novel_mapping:
            tile_nm = self.library.tile(self.config)
            tile_nm.initialize(hierarchy.num_pe_nm, hierarchy.pe_size_nm)
        tile_cm = self.library.tile(self.config)
        tile_cm.initialize(hierarchy.num_pe_cm**2, hierarchy.pe_size_cm)
        return tile_cm, tile_nm

    def create(self) -> ChipResources:
        config = self.config
        tech = config.technology
        floorplan = self.floorplan
        hierarchy = floorplan.hierarchy

        tile_cm, tile_nm = self.create_tiles()

        num_bit = config.num_bit_input * self.network.max_input_volume
        global_buffer = self.library.global_buffer(tech)
        global_buffer.initialize(
            num_bit,
            ceil(sqrt(num_bit)),
            1,
            config.unit_length_wire_resistance,
            config.clk_freq,
            config.global_buffer_type,
        )

        max_pool = self.library.max_pool(tech)
        max_pool.initialize(config.num_bit_input, MAX_POOL_WINDOW, hierarchy.tile_size_cm)

        interconnect = self.library.interconnect(tech)
        interconnect.initialize(
            floorplan.num_tile_row,
            floorplan.num_tile_col,
            config.global_bus_delay_tolerance,
            self.global_bus_width(),
        )

        max_tile_added = max(plan.num_tiles_row for plan in floorplan.layer_plans)
        num_adder_tree = ceil(self.max_throughput_tile / config.num_col_muxed)
        accumulation = self.library.accumulation(tech)
        activation: ReLUUnit | SigmoidUnit | None = None
        if config.chip_activation:
            if config.parallel_read:
                partial_sum_bit = ceil(log2(config.level_output))
            else:
                partial_sum_bit = ceil(log2(config.num_row_sub_array) + config.cell_bit - 1)
            adder_bit = partial_sum_bit + config.num_bit_input + 1 + ceil_log2(self.max_add_from_sub_array)
            accumulation.initialize(max_tile_added, adder_bit, num_adder_tree)

            if config.relu:
                activation = self.library.relu(tech)
                activation.initialize(num_adder_tree, config.num_bit_input, config.clk_freq)
            else:
                num_entry = (
                    ceil(log2(config.num_row_sub_array) + config.cell_bit - 1)
                    + config.num_bit_input
                    + 1
                    + ceil_log2(self.max_add_from_sub_array)
                    + ceil_log2(max_tile_added)
                )
                activation = self.library.sigmoid(tech)
                activation.initialize(config.num_bit_input, num_entry, num_adder_tree, config.clk_freq)
        else:
            accumulation.initialize(max_tile_added, config.num_bit_input, num_adder_tree)

        resources = ChipResources(
            global_buffer=global_buffer,
            interconnect=interconnect,
            accumulation=accumulation,
            max_pool=max_pool,
            tile_cm=tile_cm,
            activation=activation,
            tile_nm=tile_nm,
        )
        logger.info("Created chip resources with global bus width %.1f.", interconnect.bus_width)
        return resources

    def calculate_chip_area(self, resources: ChipResources) -> ChipArea:
        """! Area of all tiles plus the shared resources. The global buffer spans the height of the tile grid, the
        max-pool unit the width of the buffer, and the accumulation and activation units a third of it."""
        config = self.config
        hierarchy = self.floorplan.hierarchy

        area_cm = resources.tile_cm.calculate_area()
        area_nm = (
            resources.tile_nm.calculate_area()
            if resources.tile_nm is not None
            else TileArea(total=0.0, interconnect=0.0, adc=0.0, accumulation=0.0, other=0.0, height=0.0, width=0.0)
        )
        tiles = [(area_cm, hierarchy.num_tiles_cm), (area_nm, hierarchy.num_tiles_nm)]
        tile_area = sum(area.total * count for area, count in tiles)
        tile_ic = sum(area.interconnect * count for area, count in tiles)
        tile_adc = sum(area.adc * count for area, count in tiles)
        tile_accum = sum(area.accumulation * count for area, count in tiles)
        tile_other = sum(area.other * count for area, count in tiles)

        unit_height = max(area_cm.height, area_nm.height)
        unit_width = max(area_cm.width, area_nm.width)

        buffer = resources.global_buffer
        buffer.calculate_area(self.floorplan.num_tile_row * unit_height)
        resources.interconnect.calculate_area(unit_height, unit_width, config.tree_folded_ratio)
        resources.max_pool.calculate_area(buffer.width)
        resources.accumulation.calculate_area(buffer.height / 3)
        activation_area = 0.0
        if resources.activation is not None:
            resources.activation.calculate_area(buffer.width / 3)
            activation_area = resources.activation.area

        shared = {
            "global_buffer": buffer.area,
            "interconnect_tree": resources.interconnect.area,
            "max_pool": resources.max_pool.area,
            "accumulation_tree": resources.accumulation.area,
            "activation": activation_area,
        }
        total = tile_area + sum(shared.values())
        height = sqrt(total)
        chip_area = ChipArea(
            total=total,
            interconnect=tile_ic + resources.interconnect.area,
            adc=tile_adc,
            accumulation=tile_accum + resources.accumulation.area,
            other=tile_other + buffer.area + resources.max_pool.area + activation_area,
            height=height,
            width=total / height if height else 0.0,
            tile_height_cm=area_cm.height,
            tile_width_cm=area_cm.width,
            tile_height_nm=area_nm.height,
            tile_width_nm=area_nm.width,
            breakdown={"tiles": tile_area, **shared},
        )
        logger.info("Chip area %.3e m^2 (%.3e x %.3e m).", chip_area.total, chip_area.height, chip_area.width)
        return chip_area
