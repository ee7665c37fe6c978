# objectives/cheap.py
import torch
from utils.logger import get_logger

logger = get_logger("cheap_obj", logfile="logs/cheap_obj.log")


def layer_parameters(layer):
    """
    Number of trainable parameters the compiled counterpart of `layer` holds.
    Convolutions are built without bias; batch norm has a scale and a shift.
    """
    p = layer.params
    if layer.op_type == 'conv':
        return p['in_channels'] * p['out_channels'] * p['kernel'] * p['kernel']
    if layer.op_type == 'bn':
        return 2 * p['num_features']
    if layer.op_type == 'linear':
        return p['in_features'] * p['out_features'] + p['out_features']
    return 0


def count_graph_parameters(graph):
    total = sum(layer_parameters(layer) for layer in graph.layers())
    logger.info("Graph parameter count: %d", total)
    return total


def count_parameters(model):
    total = sum(p.numel() for p in model.parameters())
    trainable = sum(p.numel() for p in model.parameters() if p.requires_grad)
    logger.info("Parameter count: total=%d trainable=%d", total, trainable)
    return total


def estimate_flops(model, input_size=(1, 3, 224, 224), device='cpu'):
    """
    Rough flop estimator using forward hooks for Conv2d and Linear.
    Counts multiply-adds as 1 op, per sample.
    """
    model = model.to(device)
    hooks = []
    flops = {'total': 0}

    def conv_hook(self, inp, out):
        out_c, out_h, out_w = out.shape[1], out.shape[2], out.shape[3]
        kernel_ops = self.kernel_size[0] * self.kernel_size[1] * (self.in_channels // self.groups)
        this_flops = kernel_ops * out_c * out_h * out_w
        flops['total'] += this_flops
        logger.debug("Conv layer flops: out_c=%d out_h=%d out_w=%d kernel_ops=%d -> %d",
                     out_c, out_h, out_w, kernel_ops, this_flops)

    def linear_hook(self, inp, out):
        flops['total'] += self.weight.numel()
        logger.debug("Linear layer flops: weight_ops=%d", self.weight.numel())

    for module in model.modules():
        if isinstance(module, torch.nn.Conv2d):
            hooks.append(module.register_forward_hook(conv_hook))
        elif isinstance(module, torch.nn.Linear):
            hooks.append(module.register_forward_hook(linear_hook))

    was_training = model.training
    model.eval()
    try:
        with torch.no_grad():
            model(torch.zeros(*input_size, device=device))
    except Exception:
        logger.exception("Failed to run flop estimation forward pass")
        raise
    finally:
        for h in hooks:
            h.remove()
        model.train(was_training)
    logger.info("Estimated FLOPs (approx, mult-adds): %d", flops['total'])
    return flops['total']
