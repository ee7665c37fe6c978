# resnet/spatial.py
from dataclasses import dataclass, replace


def conv_out_size(size: int, kernel: int, stride: int = 1, padding: int = 0) -> int:
    """
    Output extent of a strided, padded, kernel-sized window along one axis:
    floor((size + 2 * padding - kernel) / stride) + 1
    """
    return (size + 2 * padding - kernel) // stride + 1


@dataclass(frozen=True)
class SpatialState:
    """(channels, width, height) of the graph built so far."""
    channels: int
    width: int
    height: int

    def after_conv(self, out_channels: int, kernel: int, stride: int = 1, padding: int = 0) -> "SpatialState":
        return SpatialState(
            out_channels,
            conv_out_size(self.width, kernel, stride, padding),
            conv_out_size(self.height, kernel, stride, padding),
        )

    def padded(self, left: int, right: int, top: int, bottom: int) -> "SpatialState":
        return replace(self, width=self.width + left + right, height=self.height + top + bottom)

    def pooled(self, kernel: int, stride: int) -> "SpatialState":
        return self.after_conv(self.channels, kernel, stride, 0)

    def adaptive_pooled(self, width: int = 1, height: int = 1) -> "SpatialState":
        return replace(self, width=width, height=height)

    @property
    def size(self) -> int:
        return self.channels * self.width * self.height

    def with_channels(self, channels: int) -> "SpatialState":
        return replace(self, channels=channels)

    def as_tuple(self):
        return (self.channels, self.width, self.height)
