import logging
import sys

import structlog
from pythonjsonlogger import jsonlogger


def setup_logging(json_output: bool = False, level: int = logging.INFO):
    """Structured logging setup.

    structlog renders through the stdlib logging tree so that module level
    ``logging.getLogger(__name__)`` loggers and structlog loggers end up on
    the same handler.
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if json_output:
        formatter = jsonlogger.JsonFormatter(
            fmt="%(asctime)s %(name)s %(levelname)s %(message)s"
        )
    else:
        formatter = logging.Formatter("%(levelname)-8s %(name)s: %(message)s")

    root = logging.getLogger()
    # Called again on app reload: replace our handler instead of stacking
    for handler in list(root.handlers):
        if getattr(handler, "_kidneycare", False):
            root.removeHandler(handler)
    handler = logging.StreamHandler(sys.stdout)
    handler._kidneycare = True
    handler.setFormatter(formatter)
    root.addHandler(handler)
    root.setLevel(level)

    return structlog.get_logger()
