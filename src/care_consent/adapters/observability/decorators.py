import time
from functools import wraps

from prometheus_client import Histogram

HTTP_LATENCY = Histogram(
    "consent_http_request_seconds",
    "Latency of consent API views",
    ["view", "status"],
)


def track_http(view_name):
    """Observes handler latency labelled with the response status."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(self, request, *args, **kwargs):
            start = time.perf_counter()
            status = "error"
            try:
                resp = fn(self, request, *args, **kwargs)
                status = str(resp.status_code)
                return resp
            finally:
                HTTP_LATENCY.labels(view_name, status).observe(time.perf_counter() - start)
        return wrapper
    return decorator
