import logging
from collections.abc import Iterable

import pandas as pd

from cimchip.cost_model.performance import LayerPerformance
from cimchip.cost_model.performance_replayer import PerformanceReplayer
from cimchip.hardware.architecture.chip import ChipArea, ChipResources
from cimchip.hardware.architecture.chip_config import ChipConfig
from cimchip.parser.matrix_loader import MalformedInputError
from cimchip.utils import ARRAY_T, to_nano, to_pico, to_square_micron
from cimchip.workload.mapping import FloorPlan, MappingClassification
from cimchip.workload.network import NetworkDescription

logger = logging.getLogger(__name__)


class ChipCostModelEvaluation:
    """
    Evaluates a chip design layer by layer. Layers are processed one after the other, so the chip latency is the sum
    of the layer latencies and the tiles of all other layers leak while a layer is being processed.
    """

    def __init__(
        self,
        config: ChipConfig,
        network: NetworkDescription,
        classification: MappingClassification,
        floorplan: FloorPlan,
        resources: ChipResources,
        chip_area: ChipArea,
    ) -> None:
        self.config = config
        self.network = network
        self.classification = classification
        self.floorplan = floorplan
        self.resources = resources
        self.chip_area = chip_area

        self.layer_performances: list[LayerPerformance] = []
        self.latency: float | None = None
        self.dynamic_energy: float | None = None
        self.leakage_energy: float | None = None
        self.leakage_power: float | None = None
        self.buffer_latency: float | None = None
        self.buffer_dynamic_energy: float | None = None
        self.ic_latency: float | None = None
        self.ic_dynamic_energy: float | None = None

    def __str__(self):
        if self.latency is None:
            return f"ChipCME({self.network.name}, not evaluated)"
        return f"ChipCME(energy={self.energy:.2e}, latency={self.latency:.2e})"

    def __repr__(self):
        return str(self)

    def evaluate(self, layer_data: Iterable[tuple[ARRAY_T, ARRAY_T]]):
        """
        Replays every layer with its (conductance matrix, input bits) pair and aggregates the chip totals.
        """
        replayer = PerformanceReplayer(
            config=self.config,
            network=self.network,
            classification=self.classification,
            floorplan=self.floorplan,
            resources=self.resources,
            chip_area=self.chip_area,
        )
        self.layer_performances = []
        for layer_id, (weights, inputs) in enumerate(layer_data):
            if layer_id >= len(self.network):
                raise MalformedInputError(f"Got data for more than the {len(self.network)} layers of the network.")
            performance = replayer.replay_layer(layer_id, weights, inputs)
            num_tiles_other_layers = self.floorplan.num_tiles_other_layers(layer_id)
            performance.leakage_energy = num_tiles_other_layers * performance.read_latency * performance.leakage
            self.layer_performances.append(performance)
        if len(self.layer_performances) != len(self.network):
            raise MalformedInputError(
                f"Got data for {len(self.layer_performances)} layers, the network has {len(self.network)}."
            )

        self.latency = sum(p.read_latency for p in self.layer_performances)
        self.dynamic_energy = sum(p.read_dynamic_energy for p in self.layer_performances)
        self.leakage_energy = sum(p.leakage_energy for p in self.layer_performances)
        self.leakage_power = sum(p.leakage * p.num_tiles for p in self.layer_performances)
        self.buffer_latency = sum(p.buffer_latency for p in self.layer_performances)
        self.buffer_dynamic_energy = sum(p.buffer_dynamic_energy for p in self.layer_performances)
        self.ic_latency = sum(p.ic_latency for p in self.layer_performances)
        self.ic_dynamic_energy = sum(p.ic_dynamic_energy for p in self.layer_performances)
        logger.info("Evaluated %s: %s", self.network, self)

    @property
    def energy(self) -> float:
        assert self.dynamic_energy is not None and self.leakage_energy is not None, "Call evaluate() first."
        return self.dynamic_energy + self.leakage_energy

    @property
    def throughput_fps(self) -> float:
        """Frames per second when layers are processed one by one."""
        assert self.latency is not None, "Call evaluate() first."
        return 1 / self.latency

    @property
    def energy_efficiency_tops_per_watt(self) -> float:
        """Operations per pJ, which equals tera-operations per second per watt."""
        return self.network.num_macs / to_pico(self.energy)

    def to_dataframe(self) -> pd.DataFrame:
        """Per-layer floorplan and performance numbers in reporting units (ns, pJ)."""
        rows = []
        for performance in self.layer_performances:
            layer_id = performance.layer_id
            plan = self.floorplan[layer_id]
            rows.append(
                {
                    "layer": layer_id + 1,
                    "mapping": self.classification.marks[layer_id].name.lower(),
                    "num_tiles": plan.num_tiles,
                    "speed_up_row": plan.speed_up_row,
                    "speed_up_col": plan.speed_up_col,
                    "utilization": plan.utilization,
                    "read_latency_ns": to_nano(performance.read_latency),
                    "read_dynamic_energy_pJ": to_pico(performance.read_dynamic_energy),
                    "leakage_energy_pJ": to_pico(performance.leakage_energy),
                    "buffer_latency_ns": to_nano(performance.buffer_latency),
                    "buffer_dynamic_energy_pJ": to_pico(performance.buffer_dynamic_energy),
                    "ic_latency_ns": to_nano(performance.ic_latency),
                    "ic_dynamic_energy_pJ": to_pico(performance.ic_dynamic_energy),
                    "latency_adc_ns": to_nano(performance.latency_adc),
                    "latency_accum_ns": to_nano(performance.latency_accum),
                    "latency_other_ns": to_nano(performance.latency_other),
                    "energy_adc_pJ": to_pico(performance.energy_adc),
                    "energy_accum_pJ": to_pico(performance.energy_accum),
                    "energy_other_pJ": to_pico(performance.energy_other),
                }
            )
        return pd.DataFrame(rows).set_index("layer")

    def floorplan_report(self) -> list[str]:
        hierarchy = self.floorplan.hierarchy
        lines = ["-" * 30 + " FloorPlan " + "-" * 30]
        lines.append(
            f"Desired Conventional Mapped Tile Storage Size: {hierarchy.tile_size_cm}x{hierarchy.tile_size_cm}"
        )
        lines.append(f"Desired Conventional Mapped PE Storage Size: {hierarchy.pe_size_cm}x{hierarchy.pe_size_cm}")
        if self.config.novel_mapping:
            lines.append(
                f"Desired Novel Mapped Tile Storage Size: {hierarchy.num_pe_nm}x{hierarchy.pe_size_nm}x"
                f"{hierarchy.pe_size_nm}"
            )
        lines.append(f"Tile grid: {self.floorplan.num_tile_row}x{self.floorplan.num_tile_col}")
        lines.append("# of tiles, speed-up and utilization of each layer:")
        for layer_id, plan in enumerate(self.floorplan.layer_plans):
            lines.append(
                f"  layer{layer_id + 1}: {plan.num_tiles} tiles, speed-up {plan.speed_up_row}x{plan.speed_up_col}, "
                f"utilization {plan.utilization:.4f}"
            )
        lines.append(f"Memory Utilization of Whole Chip: {self.floorplan.chip_utilization:.4f}")
        return lines

    def report(self) -> str:
        """Human readable summary: floorplan, per-layer performance and chip totals."""
        assert self.latency is not None, "Call evaluate() first."
        lines = self.floorplan_report()
        lines.append("-" * 30 + " Hardware Performance " + "-" * 30)
        for performance in self.layer_performances:
            name = f"layer{performance.layer_id + 1}"
            lines.append(f"{name}'s readLatency is: {to_nano(performance.read_latency):.4f}ns")
            lines.append(f"{name}'s readDynamicEnergy is: {to_pico(performance.read_dynamic_energy):.4f}pJ")
            lines.append(f"{name}'s leakageEnergy is: {to_pico(performance.leakage_energy):.4f}pJ")
            lines.append(f"{name}'s buffer latency is: {to_nano(performance.buffer_latency):.4f}ns")
            lines.append(f"{name}'s buffer readDynamicEnergy is: {to_pico(performance.buffer_dynamic_energy):.4f}pJ")
            lines.append(f"{name}'s ic latency is: {to_nano(performance.ic_latency):.4f}ns")
            lines.append(f"{name}'s ic readDynamicEnergy is: {to_pico(performance.ic_dynamic_energy):.4f}pJ")
        lines.append("-" * 30 + " Summary " + "-" * 30)
        lines.append(f"ChipArea : {to_square_micron(self.chip_area.total):.4f}um^2")
        lines.append(f"Chip total readLatency is: {to_nano(self.latency):.4f}ns")
        lines.append(f"Chip total readDynamicEnergy is: {to_pico(self.dynamic_energy or 0.0):.4f}pJ")
        lines.append(f"Chip total leakage Energy is: {to_pico(self.leakage_energy or 0.0):.4f}pJ")
        lines.append(f"Chip buffer readLatency is: {to_nano(self.buffer_latency or 0.0):.4f}ns")
        lines.append(f"Chip buffer readDynamicEnergy is: {to_pico(self.buffer_dynamic_energy or 0.0):.4f}pJ")
        lines.append(f"Chip ic readLatency is: {to_nano(self.ic_latency or 0.0):.4f}ns")
        lines.append(f"Chip ic readDynamicEnergy is: {to_pico(self.ic_dynamic_energy or 0.0):.4f}pJ")
        lines.append("-" * 30 + " Performance " + "-" * 30)
        lines.append(f"Energy Efficiency TOPS/W (Layer-by-Layer Process): {self.energy_efficiency_tops_per_watt:.4f}")
        lines.append(f"Throughput FPS (Layer-by-Layer Process): {self.throughput_fps:.4f}")
        return "\n".join(lines)
