from __future__ import annotations

import logging

from cvblueprint.config import get_settings


_LOG_CONFIGURED = False


def configure_logging(*, force: bool = False) -> None:
    global _LOG_CONFIGURED
    if _LOG_CONFIGURED and not force:
        return

    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        force=force,
    )
    _LOG_CONFIGURED = True
