"""Low-level DBAPI connection utilities with no internal dependencies.
"""
import logging
from typing import Any

logger = logging.getLogger(__name__)


def rollback_quietly(raw_conn: Any) -> None:
    """Roll back a DBAPI connection, logging instead of raising on failure.

    Used on the error path, where the original exception must propagate.
    """
    try:
        raw_conn.rollback()
    except Exception as e:
        logger.debug(f'Could not roll back after failed statement: {e}')
