from dataclasses import dataclass

from cimchip.utils import ARRAY_T


@dataclass(frozen=True)
class TileSlice:
    """! View descriptor of the part of a layer's weight matrix (and matching input rows) stored in one tile.

    A conventional tile stores one contiguous block. A novel tile stores `num_block` blocks, one per PE, taken at
    the same offset from every `block_stride` rows of the weight matrix: PE k holds the weights of kernel position k.
    """

    row_start: int
    num_row: int
    col_start: int
    num_col: int
    num_block: int = 1
    block_stride: int = 0

    @classmethod
    def conventional(
        cls, tile_row: int, tile_col: int, tile_size: int, num_row_matrix: int, num_col_matrix: int
    ) -> "TileSlice":
        row_start = tile_row * tile_size
        col_start = tile_col * tile_size
        return cls(
            row_start=row_start,
            num_row=min(tile_size, num_row_matrix - row_start),
            col_start=col_start,
            num_col=min(tile_size, num_col_matrix - col_start),
        )

    @classmethod
    def novel(
        cls, tile_row: int, tile_col: int, pe_size: int, num_pe: int, block_stride: int, num_col_matrix: int
    ) -> "TileSlice":
        row_start = tile_row * pe_size
        col_start = tile_col * pe_size
        return cls(
            row_start=row_start,
            num_row=min(pe_size, block_stride - row_start),
            col_start=col_start,
            num_col=min(pe_size, num_col_matrix - col_start),
            num_block=num_pe,
            block_stride=block_stride,
        )

    @property
    def total_rows(self) -> int:
        return self.num_row * self.num_block

    def _gather_rows(self, matrix: ARRAY_T) -> ARRAY_T:
        if self.num_block == 1:
            return matrix[self.row_start : self.row_start + self.num_row]
        blocks = matrix[: self.num_block * self.block_stride].reshape(self.num_block, self.block_stride, -1)
        rows = blocks[:, self.row_start : self.row_start + self.num_row]
        return rows.reshape(self.total_rows, -1)

    def take_weights(self, weights: ARRAY_T) -> ARRAY_T:
        rows = self._gather_rows(weights)
        return rows[:, self.col_start : self.col_start + self.num_col]

    def take_inputs(self, inputs: ARRAY_T, num_input_vector: int) -> ARRAY_T:
        return self._gather_rows(inputs)[:, :num_input_vector]
