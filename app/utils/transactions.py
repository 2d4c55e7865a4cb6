"""
Transaction helper for multi-row mutations
"""
import logging
import time

from flask import current_app
from sqlalchemy.exc import OperationalError

from app import db

logger = logging.getLogger(__name__)


def atomic(work, *args, **kwargs):
    """
    Run ``work(*args, **kwargs)`` as one unit of work and commit it.

    Any exception rolls the session back. Transient OperationalErrors
    (deadlocks, serialization failures, lock timeouts) rerun the whole
    unit up to DB_TRANSACTION_RETRIES more times; domain errors propagate
    on the first failure.
    """
    retries = current_app.config.get('DB_TRANSACTION_RETRIES', 3)
    base_delay = current_app.config.get('EXTERNAL_RETRY_BASE_DELAY', 0.05)

    attempt = 0
    while True:
        try:
            result = work(*args, **kwargs)
            db.session.commit()
            return result
        except OperationalError as e:
            db.session.rollback()
            if attempt >= retries:
                logger.error("Transaction failed after %d attempts: %s", attempt + 1, e)
                raise
            delay = base_delay * (2 ** attempt)
            logger.warning("Transient database error, retrying unit of work in %.2fs: %s", delay, e)
            attempt += 1
            if delay:
                time.sleep(delay)
        except Exception:
            db.session.rollback()
            raise
