from cimchip.opt.mapping_classifier import classify_layers, most_common_kernel_area
from cimchip.workload.mapping import MappingMark
from cimchip.workload.network import NetworkDescription, NetworkLayer


def network_with_kernels(*kernels: int, depth: int = 16) -> NetworkDescription:
    return NetworkDescription([NetworkLayer(8, 8, depth, k, k, 16) for k in kernels])


def test_most_common_kernel_area():
    assert most_common_kernel_area(network_with_kernels(3, 5, 5)) == 25
    assert most_common_kernel_area(network_with_kernels(5, 3, 3, 3)) == 9


def test_most_common_kernel_area_tie_goes_to_first():
    assert most_common_kernel_area(network_with_kernels(3, 5)) == 9
    assert most_common_kernel_area(network_with_kernels(5, 3, 3, 5)) == 25


def test_novel_mapping_disabled(two_conv):
    classification = classify_layers(two_conv, False, 1, 8, 128)
    assert classification.marks == [MappingMark.CONVENTIONAL, MappingMark.CONVENTIONAL]
    assert classification.num_pe_nm == 0
    assert classification.max_pe_size_nm == 0
    # 32 output channels x 8 cells = 256 columns
    assert classification.max_tile_size_cm == 256
    assert not classification.has_novel_layers


def test_equal_kernels_are_novel(two_conv):
    classification = classify_layers(two_conv, True, 1, 8, 128)
    assert classification.marks == [MappingMark.NOVEL, MappingMark.NOVEL]
    assert classification.num_pe_nm == 9
    assert classification.max_pe_size_nm == 256
    assert classification.max_tile_size_cm == 0
    assert classification.novel_layer_ids == [0, 1]
    assert not classification.has_conventional_layers


def test_shallow_layer_stays_conventional():
    network = NetworkDescription([NetworkLayer(8, 8, 4, 3, 3, 16), NetworkLayer(6, 6, 16, 3, 3, 16)])
    # 4 x 9 = 36 rows do not fill a 128-row sub-array
    classification = classify_layers(network, True, 1, 8, 128)
    assert classification.marks == [MappingMark.CONVENTIONAL, MappingMark.NOVEL]
    assert classification.max_tile_size_cm == 128
    assert classification.max_pe_size_nm == 128


def test_other_kernel_sizes_stay_conventional():
    network = NetworkDescription(
        [NetworkLayer(8, 8, 16, 3, 3, 16), NetworkLayer(6, 6, 16, 3, 3, 16), NetworkLayer(4, 4, 16, 1, 1, 10)]
    )
    classification = classify_layers(network, True, 1, 8, 16)
    assert classification.marks == [MappingMark.NOVEL, MappingMark.NOVEL, MappingMark.CONVENTIONAL]
