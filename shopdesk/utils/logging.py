import logging, sys


def setup_logger(name="shopdesk", level=logging.INFO):
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    handler = logging.StreamHandler(sys.stdout)
    fmt = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    )
    handler.setFormatter(fmt)
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def get_logger(module: str):
    """Child of the app logger, e.g. shopdesk.ledger"""
    setup_logger()
    return logging.getLogger(f"shopdesk.{module}")
