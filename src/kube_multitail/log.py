import logging
from kube_multitail.logging_config import LOGGER_NAME

# Handlers are installed by setup_logging() from the CLI entry point
logger = logging.getLogger(LOGGER_NAME)
