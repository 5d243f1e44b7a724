import logging
import sys
from utils.secret_masker import SecretMasker

LOGGER_NAME = "multitime"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class SecretMaskingFormatter(logging.Formatter):
    """Custom formatter that masks backend credentials in log messages and args."""

    def format(self, record):
        # 1. Mask the main message string
        if isinstance(record.msg, str):
            record.msg = SecretMasker.mask_string(record.msg)

        # 2. Mask arguments if present (e.g. logger.debug("Headers: %s", headers))
        if record.args:
            if isinstance(record.args, dict):
                record.args = SecretMasker.mask_structure(record.args)
            elif isinstance(record.args, tuple):
                record.args = tuple(
                    SecretMasker.mask_structure(arg) for arg in record.args
                )

        return super().format(record)


def setup_logging(name: str = LOGGER_NAME, debug: bool = False) -> logging.Logger:
    """
    Configures the relay's debug sink: a named logger writing to stdout.

    With debug off, DEBUG records (received heartbeats, forwarded calls,
    secondary outcomes) are dropped and only INFO and above are shown.
    """
    logger = logging.getLogger(name)
    level = logging.DEBUG if debug else logging.INFO
    logger.setLevel(level)

    # avoid adding handlers if they already exist
    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    formatter = SecretMaskingFormatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger
