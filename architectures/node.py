# architectures/node.py
from dataclasses import dataclass, fields


@dataclass(frozen=True)
class Layer:
    """
    Base class for layer descriptors.

    A descriptor only records the construction-time shape parameters of a
    layer. Each subclass is tagged with an `op_type` string that the compiler
    dispatches on.
    """
    op_type = "layer"

    @property
    def params(self):
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def to_dict(self):
        return {"op_type": self.op_type, "params": self.params}


@dataclass(frozen=True)
class Conv2d(Layer):
    op_type = "conv"

    in_channels: int
    out_channels: int
    kernel: int = 3
    stride: int = 1
    padding: int = 1
    # spatial extent of the input this convolution is built for
    input_width: int = 0
    input_height: int = 0


@dataclass(frozen=True)
class BatchNorm(Layer):
    op_type = "bn"

    num_features: int


@dataclass(frozen=True)
class ReLU(Layer):
    op_type = "relu"


@dataclass(frozen=True)
class Padding(Layer):
    op_type = "pad"

    left: int
    right: int
    top: int
    bottom: int


@dataclass(frozen=True)
class MaxPool(Layer):
    op_type = "maxpool"

    kernel: int
    stride: int


@dataclass(frozen=True)
class AdaptiveAvgPool(Layer):
    op_type = "adaptive_avgpool"

    output_width: int = 1
    output_height: int = 1


@dataclass(frozen=True)
class Linear(Layer):
    op_type = "linear"

    in_features: int
    out_features: int


@dataclass(frozen=True)
class Identity(Layer):
    op_type = "identity"


LAYER_TYPES = {
    cls.op_type: cls
    for cls in (Conv2d, BatchNorm, ReLU, Padding, MaxPool, AdaptiveAvgPool, Linear, Identity)
}


def layer_from_dict(data):
    """Rebuild a descriptor from the output of `Layer.to_dict`."""
    cls = LAYER_TYPES[data["op_type"]]
    return cls(**data.get("params", {}))
