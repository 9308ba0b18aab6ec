import logging

from rich.console import Console
from rich.logging import RichHandler

from utils.config import settings


class CenteredFormatter(logging.Formatter):
    """Pads logger names so the message column lines up."""

    name_width = 10

    def format(self, record):
        CenteredFormatter.name_width = max(
            CenteredFormatter.name_width, len(record.name)
        )
        record.name = record.name.center(CenteredFormatter.name_width)
        return super().format(record)


def _make_console() -> Console:
    # a TUI owns the terminal, so logs go to a file when one is configured
    if settings.log_file:
        return Console(file=open(settings.log_file, "a"), width=120)
    return Console(stderr=True)


# shared by every module logger
_console = _make_console()


def get_logger(name=None) -> logging.Logger:
    """
    Returns a logger writing through RichHandler.
    DEBUG level when STOREFRONT_DEBUG is set, INFO otherwise.
    """
    logger = logging.getLogger(name or "storefront")
    log_level = logging.DEBUG if settings.debug else logging.INFO
    logger.setLevel(log_level)

    if not logger.handlers:
        handler = RichHandler(
            console=_console,
            show_time=True,
            show_level=True,
            show_path=False,
            rich_tracebacks=True,
            log_time_format="[%X]",
        )
        handler.setFormatter(CenteredFormatter("[%(name)s]  %(message)s"))
        handler.setLevel(log_level)
        logger.addHandler(handler)
        logger.propagate = False
        logger.debug(f"Logger '{logger.name}' ready.")

    return logger
