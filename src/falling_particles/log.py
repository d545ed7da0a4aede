"""
Logging setup
-------------
Modules log through ``logging.getLogger(__name__)``. Entry points call
``setup_default_logging`` once; it leaves an already-configured root logger alone.
"""

import logging


def setup_default_logging(level="INFO"):
    if isinstance(level, str):
        lvl = getattr(logging, level.upper(), logging.INFO)
    else:
        lvl = int(level)

    root = logging.getLogger()
    if root.handlers:
        return
    logging.basicConfig(
        level=lvl,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
