import logging
import os

from rich.logging import RichHandler
from textual.logging import TextualHandler

FORMAT_PATTERN = "[%(name)s]  %(message)s"

# once the TUI owns the terminal, rich output would draw over the screens
_route_to_textual = False
_loggers: dict[str, logging.Logger] = {}


class CenteredFormatter(logging.Formatter):
    longest_name_length = 14  # Initial default width

    def __init__(self, fmt=None, datefmt=None, style="%", initial_width=14):
        super().__init__(fmt, datefmt, style)
        CenteredFormatter.longest_name_length = initial_width

    def format(self, record):
        CenteredFormatter.longest_name_length = max(
            CenteredFormatter.longest_name_length, len(record.name)
        )

        dynamic_width = CenteredFormatter.longest_name_length + 2
        record.name = f"{record.name.center(dynamic_width - 2)}"
        return super().format(record)


def _log_level() -> int:
    return logging.DEBUG if os.getenv("DEBUG") else logging.INFO


def _make_handler() -> logging.Handler:
    if _route_to_textual:
        handler: logging.Handler = TextualHandler()
    else:
        handler = RichHandler(
            show_time=True,
            show_level=True,
            show_path=False,
            rich_tracebacks=True,
            log_time_format="[%X]",
        )
    handler.setFormatter(CenteredFormatter(FORMAT_PATTERN))
    handler.setLevel(_log_level())
    return handler


def get_logger(name=None) -> logging.Logger:
    """
    Creates and returns a logger configured with RichHandler for rich output,
    or with textual's handler once ``route_to_textual`` has been called.
    """
    if name is None:
        name = "Default"
    logger = logging.getLogger(name)
    logger.setLevel(_log_level())

    if not logger.handlers:
        logger.addHandler(_make_handler())
        logger.propagate = False
        logger.debug(f"Logger for '{name}' initialized.")

    _loggers[name] = logger
    return logger


def route_to_textual() -> None:
    """Send all shop loggers to the textual devtools console from now on."""
    global _route_to_textual
    _route_to_textual = True
    for logger in _loggers.values():
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
        logger.addHandler(_make_handler())
