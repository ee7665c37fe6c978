# resnet/network.py
from dataclasses import asdict
from pathlib import Path

import torch

from architectures.compiler import CompiledModel
from architectures.graph import LayerGraph, graph_from_dict
from architectures.node import AdaptiveAvgPool, BatchNorm, Linear, MaxPool, Padding, ReLU
from resnet.blocks import ShapeMismatchError, conv_block
from resnet.config import ConfigurationError, NetworkConfig, resolve_config
from resnet.spatial import SpatialState
from resnet.stage import make_layer
from utils.logger import get_logger

logger = get_logger("resnet", logfile="logs/resnet.log")


class ResNet:
    """
    Layer graph of a ResNet-18/34/50/101/152.

    The whole topology is built in the constructor. Invalid configurations
    raise ConfigurationError before any layer is created.
    """

    def __init__(self, depth=18, input_shape=None, input_channels=3, input_width=224,
                 input_height=224, num_classes=1000, include_top=True, pretrained=False):
        options = dict(depth=depth, num_classes=num_classes,
                       include_top=include_top, pretrained=pretrained)
        if input_shape is not None:
            config = NetworkConfig.from_shape(input_shape, **options)
        else:
            config = NetworkConfig(input_channels=input_channels, input_width=input_width,
                                   input_height=input_height, **options)
        self.config = config.validate()
        self.model = None
        self.graph, self.output_state = self._build()

    @classmethod
    def from_config(cls, config: NetworkConfig):
        return cls(
            depth=config.depth,
            input_shape=config.input_shape,
            num_classes=config.num_classes,
            include_top=config.include_top,
            pretrained=config.pretrained,
        )

    @property
    def depth(self):
        return self.config.depth

    def _build(self):
        cfg = self.config
        stages, block = resolve_config(cfg.depth)
        logger.info("Building ResNet-%d for input %s (include_top=%s, pretrained=%s)",
                    cfg.depth, cfg.input_shape, cfg.include_top, cfg.pretrained)

        graph = LayerGraph(name=f"resnet{cfg.depth}")
        state = SpatialState(*cfg.input_shape)

        stem = graph.add(LayerGraph(name="stem"))
        state = conv_block(stem, state, 64, kernel=7, stride=2, padding=3)
        stem.add(BatchNorm(64))
        stem.add(ReLU())
        stem.add(Padding(1, 1, 1, 1))
        state = state.padded(1, 1, 1, 1)
        stem.add(MaxPool(3, 2))
        state = state.pooled(3, 2)
        logger.info("Stem output: %s", state.as_tuple())

        for i, stage in enumerate(stages, start=1):
            state = make_layer(graph, state, block.kind, stage.out_channels,
                               stage.blocks, stage.stride, name=f"layer{i}")

        features = state
        if cfg.include_top:
            head = graph.add(LayerGraph(name="head"))
            head.add(AdaptiveAvgPool(1, 1))
            state = state.adaptive_pooled(1, 1)
            if state.size != 512 * block.expansion:
                raise ShapeMismatchError(
                    f"head expects {512 * block.expansion} features, got {state.as_tuple()}"
                )
            head.add(Linear(state.size, cfg.num_classes))
            state = state.with_channels(cfg.num_classes)
            logger.info("Head: %d -> %d classes", features.channels, cfg.num_classes)

        logger.info("ResNet-%d built: %d layers, output %s",
                    cfg.depth, sum(1 for _ in graph.layers()), state.as_tuple())
        return graph, features

    def get_model(self):
        return self.graph

    @property
    def output_shape(self):
        """Shape of one output sample, without the batch dimension."""
        if self.config.include_top:
            return (self.config.num_classes,)
        return self.output_state.as_tuple()

    def compile(self):
        if self.model is None:
            logger.info("Compiling ResNet-%d", self.depth)
            self.model = CompiledModel(self.graph)
        return self.model

    def save_model(self, path):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        torch.save({
            "depth": self.depth,
            "config": asdict(self.config),
            "graph": self.graph.to_dict(),
            "state_dict": self.compile().state_dict(),
        }, path)
        logger.info("Saved ResNet-%d to %s", self.depth, path)

    def load_model(self, path):
        checkpoint = torch.load(path, map_location="cpu")
        if checkpoint.get("depth") != self.depth:
            raise ConfigurationError(
                f"{path} holds a ResNet-{checkpoint.get('depth')}, expected ResNet-{self.depth}"
            )
        if graph_from_dict(checkpoint["graph"]) != self.graph:
            raise ConfigurationError(
                f"{path} was saved with config {checkpoint.get('config')}, not {asdict(self.config)}"
            )
        self.model = CompiledModel(self.graph)
        self.model.load_state_dict(checkpoint["state_dict"])
        logger.info("Loaded ResNet-%d from %s", self.depth, path)
        return self.model


def resnet18(**kwargs):
    return ResNet(depth=18, **kwargs)


def resnet34(**kwargs):
    return ResNet(depth=34, **kwargs)


def resnet50(**kwargs):
    return ResNet(depth=50, **kwargs)


def resnet101(**kwargs):
    return ResNet(depth=101, **kwargs)


def resnet152(**kwargs):
    return ResNet(depth=152, **kwargs)
