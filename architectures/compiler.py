# architectures/compiler.py
import torch
import torch.nn as nn

from architectures.graph import AddMerge, GraphNode, Sequential
from utils.logger import get_logger

logger = get_logger("compiler", logfile="logs/compiler.log")


class FlattenLinear(nn.Linear):
    """Linear layer that flattens everything after the batch dimension first."""

    def forward(self, x):
        return super().forward(torch.flatten(x, 1))


class AddMergeModule(nn.Module):
    """Runs every branch on the same input and sums the outputs element-wise."""

    def __init__(self, branches):
        super().__init__()
        self.branches = nn.ModuleList(branches)

    def forward(self, x):
        outputs = [branch(x) for branch in self.branches]
        out = outputs[0]
        for o in outputs[1:]:
            if o.shape != out.shape:
                logger.error("AddMerge branch shapes differ: %s", [tuple(t.shape) for t in outputs])
                raise RuntimeError(f"Cannot sum branches with shapes {[tuple(t.shape) for t in outputs]}")
            out = out + o
        return out


def build_layer(layer):
    op = layer.op_type
    p = layer.params
    if op == 'conv':
        module = nn.Conv2d(
            p['in_channels'],
            p['out_channels'],
            kernel_size=p['kernel'],
            stride=p['stride'],
            padding=p['padding'],
            bias=False,
        )
        logger.debug("Created Conv2d: in=%d out=%d k=%d s=%d p=%d input=%dx%d",
                     p['in_channels'], p['out_channels'], p['kernel'], p['stride'],
                     p['padding'], p['input_width'], p['input_height'])
    elif op == 'bn':
        module = nn.BatchNorm2d(p['num_features'])
        logger.debug("Created BN: features=%d", p['num_features'])
    elif op == 'relu':
        module = nn.ReLU(inplace=True)
    elif op == 'pad':
        module = nn.ZeroPad2d((p['left'], p['right'], p['top'], p['bottom']))
        logger.debug("Created ZeroPad2d: %d,%d,%d,%d", p['left'], p['right'], p['top'], p['bottom'])
    elif op == 'maxpool':
        module = nn.MaxPool2d(kernel_size=p['kernel'], stride=p['stride'])
        logger.debug("Created MaxPool2d: k=%d s=%d", p['kernel'], p['stride'])
    elif op == 'adaptive_avgpool':
        # torch takes (H, W)
        module = nn.AdaptiveAvgPool2d((p['output_height'], p['output_width']))
    elif op == 'linear':
        module = FlattenLinear(p['in_features'], p['out_features'])
        logger.debug("Created Linear: in=%d out=%d", p['in_features'], p['out_features'])
    elif op == 'identity':
        module = nn.Identity()
    else:
        raise ValueError(f"Unknown op_type '{op}'")
    return module


def build_module(node):
    """
    Recursively turn a graph node (or a single layer) into an nn.Module.
    """
    if isinstance(node, AddMerge):
        return AddMergeModule([build_module(c) for c in node])
    if isinstance(node, Sequential):
        return nn.Sequential(*[build_module(c) for c in node])
    if isinstance(node, GraphNode):
        raise ValueError(f"Unknown graph node kind '{node.kind}'")
    try:
        return build_layer(node)
    except Exception:
        logger.exception("Failed creating module for layer %r", node)
        raise


class CompiledModel(nn.Module):
    def __init__(self, graph):
        super().__init__()
        self.graph = graph
        logger.info("Initializing CompiledModel")
        self.body = build_module(graph)
        logger.info("Built %d modules for %d graph layers",
                    sum(1 for _ in self.body.modules()), sum(1 for _ in graph.layers()))

    def forward(self, x):
        return self.body(x)
