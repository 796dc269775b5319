import time
import logging
import json
from django.conf import settings

logger = logging.getLogger('cinetrack')

# Probes hit these constantly; keep them out of the INFO log
QUIET_PATHS = ('/api/health/',)


class RequestLogMiddleware:
    """
    Logs every request as one JSON line with its status and timing,
    and reports the duration in the X-Response-Time-Ms header.
    """
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        started = time.monotonic()
        response = self.get_response(request)
        duration_ms = round((time.monotonic() - started) * 1000, 2)

        response['X-Response-Time-Ms'] = str(duration_ms)
        self.log(request, response, duration_ms)
        return response

    def log(self, request, response, duration_ms):
        user = getattr(request, 'user', None)
        authenticated = bool(user is not None and user.is_authenticated)

        log_data = {
            'method': request.method,
            'path': request.path,
            'user_id': user.pk if authenticated else None,
            'status_code': response.status_code,
            'duration_ms': duration_ms,
        }

        # Query strings can carry search terms, only log them while debugging
        if settings.DEBUG and request.GET:
            log_data['query_params'] = request.GET.dict()

        message = f"Request: {json.dumps(log_data)}"
        if response.status_code >= 500:
            logger.error(message)
        elif response.status_code >= 400:
            logger.warning(message)
        elif request.path in QUIET_PATHS:
            logger.debug(message)
        else:
            logger.info(message)
