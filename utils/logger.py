# utils/logger.py
import logging
import os
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(levelname)7s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name=__name__, level=None, logfile=None):
    """
    Return a configured logger. Level defaults to $RESNET_LOG_LEVEL or INFO;
    setting $RESNET_LOG_DIR to an empty string disables file output.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger  # already configured

    if level is None:
        level = os.environ.get("RESNET_LOG_LEVEL", "INFO").upper()
    logger.setLevel(level)
    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    sh = logging.StreamHandler(sys.stdout)
    sh.setFormatter(fmt)
    logger.addHandler(sh)

    log_dir = os.environ.get("RESNET_LOG_DIR")
    if logfile and log_dir != "":
        path = Path(log_dir) / Path(logfile).name if log_dir else Path(logfile)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(path)
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    return logger
