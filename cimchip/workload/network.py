from collections.abc import Iterator, Sequence
from dataclasses import dataclass


@dataclass(frozen=True)
class NetworkLayer:
    """One row of the network description: a convolution (or fully connected layer when the kernel equals the input
    map) and whether a max-pool follows it."""

    input_rows: int
    input_cols: int
    input_depth: int
    kernel_rows: int
    kernel_cols: int
    output_depth: int
    followed_by_pool: bool = False

    def __post_init__(self):
        dims = (
            self.input_rows,
            self.input_cols,
            self.input_depth,
            self.kernel_rows,
            self.kernel_cols,
            self.output_depth,
        )
        if any(dim <= 0 for dim in dims):
            raise ValueError(f"All layer dimensions must be positive, got {dims}.")
        if self.kernel_rows > self.input_rows or self.kernel_cols > self.input_cols:
            raise ValueError(
                f"Kernel {self.kernel_rows}x{self.kernel_cols} does not fit in input map "
                f"{self.input_rows}x{self.input_cols}."
            )

    def __str__(self) -> str:
        return (
            f"NetworkLayer({self.input_rows}x{self.input_cols}x{self.input_depth}, "
            f"k={self.kernel_rows}x{self.kernel_cols}, out={self.output_depth})"
        )

    @property
    def kernel_area(self) -> int:
        return self.kernel_rows * self.kernel_cols

    @property
    def output_rows(self) -> int:
        return self.input_rows - self.kernel_rows + 1

    @property
    def output_cols(self) -> int:
        return self.input_cols - self.kernel_cols + 1

    @property
    def num_output_pixels(self) -> int:
        """Number of kernel positions, i.e. input vectors fed to the weight matrix (stride 1, no padding)."""
        return self.output_rows * self.output_cols

    @property
    def input_volume(self) -> int:
        return self.input_rows * self.input_cols * self.input_depth

    @property
    def num_macs(self) -> int:
        return (
            self.input_rows
            * self.input_cols
            * self.input_depth
            * self.kernel_rows
            * self.kernel_cols
            * self.output_depth
        )

    def weight_matrix_rows(self, num_row_per_synapse: int) -> int:
        return self.input_depth * self.kernel_area * num_row_per_synapse

    def weight_matrix_cols(self, num_col_per_synapse: int) -> int:
        return self.output_depth * num_col_per_synapse


class NetworkDescription(Sequence[NetworkLayer]):
    """Ordered, immutable sequence of layers. The index of a layer is its execution order."""

    def __init__(self, layers: Sequence[NetworkLayer], name: str = "network"):
        if not layers:
            raise ValueError("A network needs at least one layer.")
        self.__layers = tuple(layers)
        self.name = name

    def __getitem__(self, idx):  # type: ignore
        return self.__layers[idx]

    def __len__(self) -> int:
        return len(self.__layers)

    def __iter__(self) -> Iterator[NetworkLayer]:
        return iter(self.__layers)

    def __str__(self) -> str:
        return f"NetworkDescription({self.name}, {len(self)} layers)"

    def __repr__(self) -> str:
        return str(self)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, NetworkDescription) and self.__layers == other.layers

    def __hash__(self) -> int:
        return hash(self.__layers)

    @property
    def layers(self) -> tuple[NetworkLayer, ...]:
        return self.__layers

    def next_layer(self, layer_id: int) -> NetworkLayer | None:
        """Return the layer executed after `layer_id`, or None for the last layer."""
        if layer_id + 1 < len(self):
            return self.__layers[layer_id + 1]
        return None

    @property
    def num_macs(self) -> int:
        return sum(layer.num_macs for layer in self.__layers)

    @property
    def max_input_volume(self) -> int:
        return max(layer.input_volume for layer in self.__layers)
