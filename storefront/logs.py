import logging

from rich.console import Console
from rich.logging import RichHandler

# Routes stdlib logging through rich so server and CLI output share one console style.

_configured = False


def configure_logging(level: str = "INFO", console: Console = None) -> None:
    global _configured
    if _configured:
        logging.getLogger().setLevel(level)
        return
    handler = RichHandler(
        console=console or Console(stderr=True),
        rich_tracebacks=True,
        show_path=False,
    )
    logging.basicConfig(level=level, format="%(name)s: %(message)s", datefmt="[%X]", handlers=[handler])
    _configured = True
