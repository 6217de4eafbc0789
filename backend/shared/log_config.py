"""
Logging setup.

Modules log through ``logging.getLogger(__name__)``; this installs a single
rich handler on the root logger at process start.
"""

import logging
from typing import Optional

from rich.logging import RichHandler

from .config import get_settings

_HANDLER_NAME = "mapchat-rich"


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging with a rich console handler.

    Safe to call more than once; the handler is only installed the first time
    and later calls just adjust the level.

    Args:
        level: Log level name. Defaults to ``Settings.log_level``.
    """
    level_name = (level or get_settings().log_level).upper()
    root = logging.getLogger()
    root.setLevel(level_name)

    if any(h.get_name() == _HANDLER_NAME for h in root.handlers):
        return

    handler = RichHandler(rich_tracebacks=True, show_path=False)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root.addHandler(handler)
