# tests/test_compile_and_objectives.py
import numpy as np
import pytest
import torch

from objectives.cheap import count_graph_parameters, count_parameters, estimate_flops
from resnet.config import ConfigurationError
from resnet.network import ResNet, resnet18, resnet50
from utils.logger import get_logger

logger = get_logger("test", logfile="logs/test.log")


def test_published_parameter_counts():
    assert count_graph_parameters(resnet18().get_model()) == 11689512
    assert count_graph_parameters(resnet50().get_model()) == 25557032


@pytest.mark.parametrize("depth", [18, 50])
def test_graph_count_matches_torch(depth):
    net = ResNet(depth=depth, input_shape=(3, 32, 32), num_classes=10)
    assert count_graph_parameters(net.get_model()) == count_parameters(net.compile())


@pytest.mark.parametrize("shape", [(3, 64, 64), (3, 50, 37), (1, 33, 80)])
def test_features_match_tracked_shape(shape):
    net = ResNet(depth=18, input_shape=shape, include_top=False)
    model = net.compile().eval()
    c, w, h = shape
    with torch.no_grad():
        y = model(torch.randn(2, c, h, w))
    state = net.output_state
    logger.info("Input %s -> features %s", shape, tuple(y.shape))
    assert tuple(y.shape) == (2, state.channels, state.height, state.width)


def test_bottleneck_logits_shape():
    net = resnet50(input_shape=(3, 64, 64), num_classes=10)
    model = net.compile().eval()
    with torch.no_grad():
        y = model(torch.randn(2, 3, 64, 64))
    assert tuple(y.shape) == (2, *net.output_shape)


def test_compile_is_cached():
    net = resnet18(input_shape=(3, 32, 32))
    assert net.compile() is net.compile()


def test_flops_positive_and_scale_with_input():
    net_small = resnet18(input_shape=(3, 32, 32), num_classes=10)
    net_big = resnet18(input_shape=(3, 64, 64), num_classes=10)
    small = estimate_flops(net_small.compile(), input_size=(1, 3, 32, 32))
    big = estimate_flops(net_big.compile(), input_size=(1, 3, 64, 64))
    assert 0 < small < big


def test_save_and_load(tmp_path):
    net = resnet18(input_shape=(3, 32, 32), num_classes=10)
    x = torch.randn(2, 3, 32, 32)
    with torch.no_grad():
        expected = net.compile().eval()(x)
    path = tmp_path / "ckpt" / "resnet18.pt"
    net.save_model(path)
    assert path.exists()

    other = resnet18(input_shape=(3, 32, 32), num_classes=10)
    model = other.load_model(path).eval()
    with torch.no_grad():
        got = model(x)
    np.testing.assert_allclose(got.numpy(), expected.numpy(), rtol=1e-5, atol=1e-6)


def test_load_rejects_other_topology(tmp_path):
    path = tmp_path / "resnet18.pt"
    resnet18(input_shape=(3, 32, 32), num_classes=10).save_model(path)
    with pytest.raises(ConfigurationError):
        resnet50(input_shape=(3, 32, 32), num_classes=10).load_model(path)
    with pytest.raises(ConfigurationError):
        resnet18(input_shape=(3, 32, 32), num_classes=5).load_model(path)


def main():
    net = resnet18(input_shape=(3, 32, 32), num_classes=10)
    logger.info("Model built successfully")
    model = net.compile()
    y = model(torch.randn(1, 3, 32, 32))
    logger.info("Forward output shape: %s", tuple(y.shape))

    params = count_parameters(model)
    flops = estimate_flops(model, input_size=(1, 3, 32, 32))
    logger.info("Params=%d FLOPs=%d", params, flops)


if __name__ == "__main__":
    main()
