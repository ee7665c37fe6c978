# resnet/blocks.py
"""
Residual block builders.

Every builder appends layers to a graph container it is handed (or returns a
fresh container) together with the SpatialState describing the output of what
it built. The state passed in must be the output shape of the graph so far.
"""
from architectures.graph import AddMerge, Sequential
from architectures.node import BatchNorm, Conv2d, Identity, ReLU
from resnet.config import BlockKind, ConfigurationError
from resnet.spatial import SpatialState
from utils.logger import get_logger

logger = get_logger("resnet.blocks", logfile="logs/resnet.log")


class ShapeMismatchError(RuntimeError):
    """Main path and shortcut of a residual block disagree in shape."""


def conv_block(graph, state: SpatialState, out_channels: int, kernel: int,
               stride: int = 1, padding: int = 0) -> SpatialState:
    graph.add(Conv2d(
        in_channels=state.channels,
        out_channels=out_channels,
        kernel=kernel,
        stride=stride,
        padding=padding,
        input_width=state.width,
        input_height=state.height,
    ))
    new_state = state.after_conv(out_channels, kernel, stride, padding)
    logger.debug("Convolution: %d %d %dx%d s=%d p=%d %dx%d -> %dx%d",
                 state.channels, out_channels, kernel, kernel, stride, padding,
                 state.width, state.height, new_state.width, new_state.height)
    return new_state


def conv3x3(graph, state, out_channels, stride=1):
    return conv_block(graph, state, out_channels, kernel=3, stride=stride, padding=1)


def conv1x1(graph, state, out_channels, stride=1):
    return conv_block(graph, state, out_channels, kernel=1, stride=stride, padding=0)


def downsample(state, out_channels, stride=1):
    """
    Projection shortcut: 1x1 convolution at the block stride followed by
    batch norm. `state` is the block input.
    """
    path = Sequential(name="downsample")
    shortcut_state = conv1x1(path, state, out_channels, stride)
    path.add(BatchNorm(out_channels))
    return path, shortcut_state


def needs_downsample(state, planes, kind, stride=1):
    return stride != 1 or state.channels != planes * kind.expansion


def _merge(name, main, main_state, shortcut, shortcut_state):
    if main_state != shortcut_state:
        raise ShapeMismatchError(
            f"{name}: main path {main_state.as_tuple()} != shortcut {shortcut_state.as_tuple()}"
        )
    block = Sequential(name=name)
    block.add(AddMerge([main, shortcut]))
    block.add(ReLU())
    return block, main_state


def _shortcut(state, out_channels, stride, project):
    if project:
        return downsample(state, out_channels, stride)
    return Identity(), state


def basic_block(state, planes, stride=1, project=None):
    """
    conv3x3 -> BN -> ReLU -> conv3x3 -> BN, summed with the shortcut, then ReLU.
    The stride is carried by the first convolution.
    """
    if project is None:
        project = needs_downsample(state, planes, BlockKind.BASIC, stride)
    main = Sequential(name="main")
    s = conv3x3(main, state, planes, stride)
    main.add(BatchNorm(planes))
    main.add(ReLU())
    s = conv3x3(main, s, planes)
    main.add(BatchNorm(planes))

    shortcut, shortcut_state = _shortcut(state, planes, stride, project)
    return _merge("basic", main, s, shortcut, shortcut_state)


def bottleneck_block(state, planes, stride=1, project=None):
    """
    conv1x1 reduce -> conv3x3 -> conv1x1 expand (each followed by BN, the first
    two by ReLU), summed with the shortcut, then ReLU. The stride is carried
    by the 3x3 convolution.
    """
    out_channels = planes * BlockKind.BOTTLENECK.expansion
    if project is None:
        project = needs_downsample(state, planes, BlockKind.BOTTLENECK, stride)
    main = Sequential(name="main")
    s = conv1x1(main, state, planes)
    main.add(BatchNorm(planes))
    main.add(ReLU())
    s = conv3x3(main, s, planes, stride)
    main.add(BatchNorm(planes))
    main.add(ReLU())
    s = conv1x1(main, s, out_channels)
    main.add(BatchNorm(out_channels))

    shortcut, shortcut_state = _shortcut(state, out_channels, stride, project)
    return _merge("bottleneck", main, s, shortcut, shortcut_state)


def residual_block(kind, state, planes, stride=1, project=None):
    if kind is BlockKind.BASIC:
        return basic_block(state, planes, stride, project)
    if kind is BlockKind.BOTTLENECK:
        return bottleneck_block(state, planes, stride, project)
    raise ConfigurationError(f"Unknown block kind {kind!r}")
