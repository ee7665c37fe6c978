# main.py
import argparse

from objectives.cheap import count_graph_parameters, estimate_flops
from resnet.config import RESNET_DEPTHS, NetworkConfig
from resnet.network import ResNet
from utils.logger import get_logger

logger = get_logger("main", logfile="logs/main.log")


def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="Build a ResNet layer graph")
    ap.add_argument("--depth", type=int, default=18, choices=sorted(RESNET_DEPTHS))
    ap.add_argument("--input-shape", type=int, nargs=3, default=(3, 224, 224),
                    metavar=("C", "W", "H"))
    ap.add_argument("--num-classes", type=int, default=1000)
    ap.add_argument("--no-top", action="store_true", help="skip pooling + classifier head")
    ap.add_argument("--weights", type=str, default=None, help="checkpoint written by --save")
    ap.add_argument("--save", type=str, default=None, help="write graph and weights here")
    ap.add_argument("--flops", action="store_true", help="estimate FLOPs with a forward pass")
    ap.add_argument("--summary", action="store_true", help="print the layer graph")
    return ap.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    config = NetworkConfig.from_shape(
        args.input_shape,
        depth=args.depth,
        num_classes=args.num_classes,
        include_top=not args.no_top,
        pretrained=args.weights is not None,
    )
    net = ResNet.from_config(config)

    if args.summary:
        print(net.get_model())

    logger.info("Output shape per sample: %s", net.output_shape)
    logger.info("Parameters: %d", count_graph_parameters(net.get_model()))

    if args.weights:
        net.load_model(args.weights)
    if args.flops:
        # torch wants (N, C, H, W)
        estimate_flops(net.compile(), input_size=(1, config.input_channels,
                                                  config.input_height, config.input_width))
    if args.save:
        net.save_model(args.save)
    return net


if __name__ == "__main__":
    main()
