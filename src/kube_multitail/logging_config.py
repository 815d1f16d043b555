import logging
import sys


LOGGER_NAME = "kube_multitail"

VERBOSE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
PLAIN_FORMAT = '%(levelname)s: %(message)s'


class SpinnerAwareFilter(logging.Filter):
    """Clear an active spinner line before a record reaches the terminal."""

    def __init__(self):
        super().__init__()
        self._spinners = []

    def attach(self, spinner):
        self._spinners.append(spinner)

    def detach(self, spinner):
        if spinner in self._spinners:
            self._spinners.remove(spinner)

    def filter(self, record):
        for spinner in self._spinners:
            spinner.clear_line()
        # Never drops records
        return True


spinner_filter = SpinnerAwareFilter()


def setup_logging(verbose: bool = False, stream=None):
    """Configure the package logger for CLI use."""
    package_logger = logging.getLogger(LOGGER_NAME)
    package_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    handler.setFormatter(logging.Formatter(VERBOSE_FORMAT if verbose else PLAIN_FORMAT))
    handler.addFilter(spinner_filter)

    # Repeated runs in one process (tests) must not stack handlers
    package_logger.handlers.clear()
    package_logger.addHandler(handler)
    package_logger.propagate = False

    return package_logger
