"""Console logging setup for both loguru and the standard logging modules."""
import logging
import sys
from loguru import logger

from configurations.config import Config


def configure_logging(level=None):
    level = (level or Config.LOG_LEVEL or "INFO").upper()

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stdout,
    )

    # Replace loguru's default handler so LOG_LEVEL applies to it too
    logger.remove()
    logger.add(sys.stderr, level=level)
