"""
Bounded retry with exponential backoff for calls to external services
"""
import logging
import random
import time

from flask import current_app, has_app_context

logger = logging.getLogger(__name__)


def _setting(name, default):
    if has_app_context():
        return current_app.config.get(name, default)
    return default


def retry_call(fn, *args, attempts=None, base_delay=None, retry_on=(Exception,),
               should_retry=None, description='call', **kwargs):
    """
    Call ``fn`` and retry transient failures with exponential backoff

    Args:
        fn: callable to invoke
        attempts: total tries, defaults to EXTERNAL_RETRY_ATTEMPTS
        base_delay: first backoff in seconds, defaults to EXTERNAL_RETRY_BASE_DELAY
        retry_on: exception types considered for a retry
        should_retry: optional predicate on the exception; False re-raises at once
        description: label used in log lines

    Returns:
        whatever ``fn`` returns
    """
    if attempts is None:
        attempts = _setting('EXTERNAL_RETRY_ATTEMPTS', 3)
    if base_delay is None:
        base_delay = _setting('EXTERNAL_RETRY_BASE_DELAY', 0.5)
    attempts = max(1, int(attempts))

    for attempt in range(attempts):
        try:
            return fn(*args, **kwargs)
        except retry_on as e:
            if should_retry is not None and not should_retry(e):
                raise
            if attempt == attempts - 1:
                raise
            delay = base_delay * (2 ** attempt)
            if delay:
                delay += random.uniform(0, base_delay)
            logger.warning(
                "%s failed (attempt %d/%d), retrying in %.2fs: %s",
                description, attempt + 1, attempts, delay, e,
            )
            if delay:
                time.sleep(delay)
