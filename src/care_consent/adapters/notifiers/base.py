import time
from abc import ABC, abstractmethod
from http import HTTPStatus

import backoff
import httpx
import structlog
from prometheus_client import Counter, Histogram

logger = structlog.get_logger()

REQ_LATENCY = Histogram("consent_notifier_request_seconds", "Notifier request latency", ["provider", "channel"])
REQ_SUCCESS = Counter  ("consent_notifier_success_total",   "Notifier successes",       ["provider", "channel"])
REQ_FAILURE = Counter  ("consent_notifier_failure_total",   "Notifier failures",        ["provider", "channel"])


class NotifierError(Exception):
    """Delivery could not be completed by the provider."""


class BaseNotifier(ABC):
    DEFAULT_TIMEOUT = 10

    def __init__(self, provider: str, channel: str) -> None:
        self.provider = provider
        self.channel  = channel

    @backoff.on_exception(backoff.expo, (httpx.TimeoutException, httpx.TransportError),
                          max_tries=3, jitter=None)
    def _request(self, method: str, url: str, **kw) -> httpx.Response:
        start = time.perf_counter()
        try:
            resp = httpx.request(method, url, timeout=self.DEFAULT_TIMEOUT, **kw)
            if resp.status_code >= HTTPStatus.BAD_REQUEST:
                raise httpx.HTTPStatusError("Bad status", request=resp.request, response=resp)
            REQ_SUCCESS.labels(self.provider, self.channel).inc()
            return resp
        except Exception:
            REQ_FAILURE.labels(self.provider, self.channel).inc()
            raise
        finally:
            REQ_LATENCY.labels(self.provider, self.channel).observe(time.perf_counter() - start)

    @abstractmethod
    def send(self, recipient: str, subject: str, body: str) -> None:
        ...
