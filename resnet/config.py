# resnet/config.py
import operator
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Tuple

from utils.logger import get_logger

logger = get_logger("resnet.config", logfile="logs/resnet.log")


class ConfigurationError(ValueError):
    """Raised for a network configuration that cannot be built."""


class BlockKind(Enum):
    BASIC = "basic"
    BOTTLENECK = "bottleneck"

    @property
    def expansion(self) -> int:
        return 4 if self is BlockKind.BOTTLENECK else 1


@dataclass(frozen=True)
class BlockSpec:
    kind: BlockKind

    @property
    def expansion(self) -> int:
        return self.kind.expansion


@dataclass(frozen=True)
class StageConfig:
    out_channels: int
    blocks: int
    stride: int = 1


# depth -> (blocks per stage, block kind)
RESNET_DEPTHS = {
    18: ((2, 2, 2, 2), BlockKind.BASIC),
    34: ((3, 4, 6, 3), BlockKind.BASIC),
    50: ((3, 4, 6, 3), BlockKind.BOTTLENECK),
    101: ((3, 4, 23, 3), BlockKind.BOTTLENECK),
    152: ((3, 8, 36, 3), BlockKind.BOTTLENECK),
}

STAGE_CHANNELS = (64, 128, 256, 512)
STAGE_STRIDES = (1, 2, 2, 2)


def _as_int(value):
    """Plain int for any integral value (numpy scalars included), else None."""
    if isinstance(value, bool):
        return None
    try:
        return operator.index(value)
    except TypeError:
        return None


def check_depth(depth) -> int:
    value = _as_int(depth)
    if value not in RESNET_DEPTHS:
        raise ConfigurationError(
            f"Incorrect ResNet depth {depth!r}. Possible values are: "
            + ", ".join(str(d) for d in sorted(RESNET_DEPTHS))
        )
    return value


def resolve_config(depth: int) -> Tuple[List[StageConfig], BlockSpec]:
    """
    Map a depth selector to its four stage configurations and block spec.
    """
    depth = check_depth(depth)
    counts, kind = RESNET_DEPTHS[depth]
    stages = [
        StageConfig(out_channels=c, blocks=n, stride=s)
        for c, n, s in zip(STAGE_CHANNELS, counts, STAGE_STRIDES)
    ]
    logger.debug("ResNet-%d: blocks=%s kind=%s", depth, list(counts), kind.value)
    return stages, BlockSpec(kind)


def _check_positive_int(name, value) -> int:
    number = _as_int(value)
    if number is None or number <= 0:
        raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")
    return number


@dataclass(frozen=True)
class NetworkConfig:
    depth: int = 18
    input_channels: int = 3
    input_width: int = 224
    input_height: int = 224
    num_classes: int = 1000
    include_top: bool = True
    # advisory, weights are only ever loaded through ResNet.load_model
    pretrained: bool = False

    @classmethod
    def from_shape(cls, input_shape, **kwargs):
        try:
            channels, width, height = input_shape
        except (TypeError, ValueError):
            raise ConfigurationError(
                f"input_shape must be a (channels, width, height) triple, got {input_shape!r}"
            ) from None
        return cls(input_channels=channels, input_width=width, input_height=height, **kwargs)

    @property
    def input_shape(self):
        return (self.input_channels, self.input_width, self.input_height)

    def validate(self):
        """
        Check every field and return a copy holding plain ints.
        """
        values = dict(
            input_channels=_check_positive_int("input_channels", self.input_channels),
            input_width=_check_positive_int("input_width", self.input_width),
            input_height=_check_positive_int("input_height", self.input_height),
        )
        if self.include_top:
            values["num_classes"] = _check_positive_int("num_classes", self.num_classes)
        values["depth"] = check_depth(self.depth)
        return replace(self, **values)
