import logging

from bidflow.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = None):
    """Configure root logging once for the API process."""
    level_name = (level or settings.LOG_LEVEL).upper()
    numeric_level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(level=numeric_level, format=LOG_FORMAT)
    logging.getLogger("bidflow").setLevel(numeric_level)
