# resnet/stage.py
from architectures.graph import Sequential
from resnet.blocks import needs_downsample, residual_block
from resnet.config import ConfigurationError
from utils.logger import get_logger

logger = get_logger("resnet.stage", logfile="logs/resnet.log")


def make_layer(graph, state, kind, planes, blocks, stride=1, name=None):
    """
    Append one stage of `blocks` residual blocks to `graph`.

    Only the first block carries the stride and may project its shortcut;
    after it the channel count already matches, so the rest are identity
    blocks at stride 1. Returns the state after the stage.
    """
    if isinstance(blocks, bool) or not isinstance(blocks, int) or blocks < 1:
        raise ConfigurationError(f"A stage needs at least one block, got {blocks!r}")

    stage = Sequential(name=name)
    project = needs_downsample(state, planes, kind, stride)
    block, state = residual_block(kind, state, planes, stride, project)
    stage.add(block)
    for _ in range(1, blocks):
        block, state = residual_block(kind, state, planes, 1, False)
        stage.add(block)
    graph.add(stage)

    logger.info("Stage %s: %d x %s block(s), stride=%d, downsample=%s -> %s",
                name or "", blocks, kind.value, stride, project, state.as_tuple())
    return state
