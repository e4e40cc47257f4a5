import logging

from cimchip.utils import next_power_of_two
from cimchip.workload.mapping import MappingClassification, MappingMark
from cimchip.workload.network import NetworkDescription

logger = logging.getLogger(__name__)


def most_common_kernel_area(network: NetworkDescription) -> int:
    """! Kernel area (rows x cols) shared by the largest number of layers.

    Every layer is compared against all layers with a counter that starts at one. The running maximum is updated
    with a strict comparison inside the inner loop, so on equal counts the kernel area that reached the count first
    wins."""
    most = 0
    num_pe = 0
    for layer in network:
        kernel_area = layer.kernel_area
        count = 1
        for other in network:
            if other.kernel_area == kernel_area:
                count += 1
            if most < count:
                most = count
                num_pe = kernel_area
    return num_pe


def classify_layers(
    network: NetworkDescription,
    novel_mapping: bool,
    num_row_per_synapse: int,
    num_col_per_synapse: int,
    num_row_sub_array: int,
) -> MappingClassification:
    """! Decide which layers use novel mapping and derive the maximum PE / tile sizes the hierarchy search starts
    from.

    With novel mapping, every kernel position of a layer gets its own PE. A layer is mapped this way when its kernel
    area equals the most common kernel area of the network and its weight matrix fills at least one sub-array.
    The minimum cube of a layer is the smallest power of two that holds all its output columns."""
    num_pe_nm = most_common_kernel_area(network) if novel_mapping else 0

    marks: list[MappingMark] = []
    max_pe_size_nm = 0
    max_tile_size_cm = 0
    for layer in network:
        min_cube = next_power_of_two(layer.weight_matrix_cols(num_col_per_synapse))
        is_novel = (
            novel_mapping
            and layer.kernel_area == num_pe_nm
            and layer.weight_matrix_rows(num_row_per_synapse) >= num_row_sub_array
        )
        if is_novel:
            marks.append(MappingMark.NOVEL)
            max_pe_size_nm = max(max_pe_size_nm, min_cube)
        else:
            marks.append(MappingMark.CONVENTIONAL)
            max_tile_size_cm = max(max_tile_size_cm, min_cube)

    classification = MappingClassification(
        marks=marks,
        max_pe_size_nm=max_pe_size_nm,
        max_tile_size_cm=max_tile_size_cm,
        num_pe_nm=num_pe_nm,
    )
    logger.info(
        "Mapping: %i novel and %i conventional layers (num_pe_nm=%i).",
        len(classification.novel_layer_ids),
        len(marks) - len(classification.novel_layer_ids),
        num_pe_nm,
    )
    return classification
