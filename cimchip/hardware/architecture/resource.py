from abc import ABCMeta, abstractmethod
from typing import Any

from cimchip.hardware.architecture.chip_config import TechnologyParameters


class ResourceModel(metaclass=ABCMeta):
    """! Circuit block shared by the whole chip. Every block is sized once with `initialize`, after which
    `calculate_area`, `calculate_latency` and `calculate_power` fill in the public result attributes (SI units).
    `calculate_latency` and `calculate_power` overwrite the results of the previous call."""

    def __init__(self, technology: TechnologyParameters):
        self.tech = technology
        self.initialized = False

        self.area = 0.0
        self.height = 0.0
        self.width = 0.0
        self.read_latency = 0.0
        self.write_latency = 0.0
        self.read_dynamic_energy = 0.0
        self.write_dynamic_energy = 0.0
        self.leakage = 0.0

    def __str__(self) -> str:
        return f"{type(self).__name__}(area={self.area:.3e})"

    def __repr__(self) -> str:
        return str(self)

    @abstractmethod
    def initialize(self, *args: Any) -> None: ...

    @abstractmethod
    def calculate_latency(self, *args: Any) -> None: ...

    @abstractmethod
    def calculate_power(self, *args: Any) -> None: ...

    def check_initialized(self):
        if not self.initialized:
            raise RuntimeError(f"{type(self).__name__} is used before initialize() was called.")

    def set_dimensions(self, new_height: float | None = None, new_width: float | None = None):
        """Derive height and width from the area, honoring a fixed height or width imposed by the floorplan."""
        if new_height:
            self.height = new_height
            self.width = self.area / new_height
        elif new_width:
            self.width = new_width
            self.height = self.area / new_width
        else:
            self.height = self.area**0.5
            self.width = self.height
