import logging
import time

logger = logging.getLogger(__name__)


class AccessLogMiddleware:
    """Log one line per API request with caller, status and duration."""
    PREFIX = '/api/'

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        path = request.path or ''
        if not path.startswith(self.PREFIX):
            return self.get_response(request)
        started = time.monotonic()
        response = self.get_response(request)
        elapsed_ms = (time.monotonic() - started) * 1000
        user = getattr(request, 'user', None)
        user_id = user.pk if user is not None and user.is_authenticated else '-'
        logger.info('%s %s -> %s user=%s %.1fms', request.method, path, response.status_code, user_id, elapsed_ms)
        return response
