# tests/test_spatial.py
from resnet.spatial import SpatialState, conv_out_size


def test_conv_out_size_stride_one():
    for size in (1, 7, 32, 224):
        for kernel, padding in ((1, 0), (3, 1), (7, 3), (3, 0)):
            if size + 2 * padding < kernel:
                continue
            assert conv_out_size(size, kernel, 1, padding) == size + 2 * padding - kernel + 1


def test_conv_out_size_stem():
    assert conv_out_size(224, 7, 2, 3) == 112


def test_conv_out_size_floors():
    # (57 + 2 - 3) / 2 = 28 -> 29; (56 + 2 - 3) / 2 = 27.5 -> 28
    assert conv_out_size(57, 3, 2, 1) == 29
    assert conv_out_size(56, 3, 2, 1) == 28


def test_state_transitions():
    s = SpatialState(3, 224, 224)
    s = s.after_conv(64, 7, 2, 3)
    assert s.as_tuple() == (64, 112, 112)
    s = s.padded(1, 1, 1, 1)
    assert s.as_tuple() == (64, 114, 114)
    s = s.pooled(3, 2)
    assert s.as_tuple() == (64, 56, 56)
    assert s.with_channels(256).as_tuple() == (256, 56, 56)


def test_state_is_a_value():
    a = SpatialState(64, 56, 56)
    b = a.after_conv(128, 3, 2, 1)
    assert a.as_tuple() == (64, 56, 56)
    assert b == SpatialState(128, 28, 28)


def test_width_and_height_are_independent():
    s = SpatialState(3, 64, 48).after_conv(64, 7, 2, 3)
    assert (s.width, s.height) == (32, 24)


def test_adaptive_pool_keeps_channels():
    s = SpatialState(2048, 7, 5).adaptive_pooled(1, 1)
    assert s.as_tuple() == (2048, 1, 1)
    assert s.size == 2048
