"""
Request ID middleware for request tracing and logging
"""
import logging
import uuid

logger = logging.getLogger(__name__)


class RequestIdMiddleware:
    """
    WSGI middleware that tags every request with an id.
    An incoming X-Request-ID is kept; otherwise a new one is generated.
    """

    def __init__(self, app):
        self.app = app

    def __call__(self, environ, start_response):
        request_id = environ.get('HTTP_X_REQUEST_ID') or str(uuid.uuid4())
        environ['request_id'] = request_id

        def start_response_with_id(status, headers, exc_info=None):
            headers.append(('X-Request-ID', request_id))
            if status.startswith('5'):
                logger.warning("request %s %s %s -> %s", request_id,
                               environ.get('REQUEST_METHOD'), environ.get('PATH_INFO'), status)
            return start_response(status, headers, exc_info)

        return self.app(environ, start_response_with_id)
