from dataclasses import dataclass
from typing import Literal

from cimchip.hardware.architecture.resource import ResourceModel

LATENCY_FIELDS = (
    "read_latency",
    "buffer_latency",
    "ic_latency",
    "latency_adc",
    "latency_accum",
    "latency_other",
)
ENERGY_FIELDS = (
    "read_dynamic_energy",
    "buffer_dynamic_energy",
    "ic_dynamic_energy",
    "energy_adc",
    "energy_accum",
    "energy_other",
)


@dataclass
class PerformanceFigures:
    """Latency (s), dynamic energy (J) and leakage power (W) of one evaluation, split in the reported buckets."""

    read_latency: float = 0.0
    read_dynamic_energy: float = 0.0
    leakage: float = 0.0
    buffer_latency: float = 0.0
    buffer_dynamic_energy: float = 0.0
    ic_latency: float = 0.0
    ic_dynamic_energy: float = 0.0
    latency_adc: float = 0.0
    latency_accum: float = 0.0
    latency_other: float = 0.0
    energy_adc: float = 0.0
    energy_accum: float = 0.0
    energy_other: float = 0.0


@dataclass
class TilePerformance(PerformanceFigures):
    pass


@dataclass
class LayerPerformance(PerformanceFigures):
    layer_id: int = 0
    num_tiles: int = 0
    leakage_energy: float = 0.0


class PerformanceAccumulator:
    """! Folds the tiles of one layer into a LayerPerformance. Tiles of a layer operate in parallel: latencies are
    combined by maximum and energies by sum. Shared resources used on top of the tiles are added serially."""

    def __init__(self, layer_id: int, num_tiles: int):
        self.performance = LayerPerformance(layer_id=layer_id, num_tiles=num_tiles)

    def fold_tile(self, tile: TilePerformance):
        performance = self.performance
        for name in LATENCY_FIELDS:
            setattr(performance, name, max(getattr(performance, name), getattr(tile, name)))
        for name in ENERGY_FIELDS:
            setattr(performance, name, getattr(performance, name) + getattr(tile, name))
        # All tiles of a mapping kind are identical
        performance.leakage = tile.leakage

    def add_shared(self, resource: ResourceModel, bucket: Literal["accum", "other"]):
        """Add the last computed latency and energy of `resource` to the read totals and the given bucket."""
        performance = self.performance
        performance.read_latency += resource.read_latency
        performance.read_dynamic_energy += resource.read_dynamic_energy
        latency_field = f"latency_{bucket}"
        energy_field = f"energy_{bucket}"
        setattr(performance, latency_field, getattr(performance, latency_field) + resource.read_latency)
        setattr(performance, energy_field, getattr(performance, energy_field) + resource.read_dynamic_energy)

    def finalize(self) -> LayerPerformance:
        return self.performance
