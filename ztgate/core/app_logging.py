"""Process-wide logging configuration."""

import logging

from pythonjsonlogger.json import JsonFormatter

from ztgate.core.settings import GatewaySettings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_HANDLER_NAME = "ztgate"


def setup_logging(settings: GatewaySettings) -> None:
    """Attach a single stream handler to the root logger."""
    root = logging.getLogger()
    if any(h.get_name() == _HANDLER_NAME for h in root.handlers):
        root.setLevel(settings.log_level.upper())
        return

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    if settings.log_json:
        handler.setFormatter(
            JsonFormatter(
                LOG_FORMAT,
                rename_fields={"levelname": "level", "asctime": "timestamp"},
            )
        )
    else:
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(settings.log_level.upper())
