from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, List, Optional, Sequence, Tuple

from colorama import Fore, Style

from reflectscan.console import log_err, log_plain, log_warn, status_color
from reflectscan.errors import TransportError
from reflectscan.payload import Payload, Variant, generate_payloads, split_by_variant
from reflectscan.reflect import check_reflections, is_html_response
from reflectscan.report import ProgressReporter, Result, ResultCollector
from reflectscan.transport import Response, build_form_body, build_get_url

logger = logging.getLogger(__name__)

# how often blocked queue operations re-check the cancellation token
POLL_INTERVAL = 0.1


@dataclass(frozen=True)
class Job:
    url: str
    parameters: Tuple[str, ...]
    payloads: Tuple[Payload, ...]
    variant: Variant
    method: str = "GET"


# --------------------------------------------------------------------------------------
# Job building
# --------------------------------------------------------------------------------------

def build_jobs(urls: Iterable[str], batches: Sequence[Sequence[str]], method: str = "GET") -> Iterator[Job]:
    """Lazily cross urls with batches, one job per variant, double-quote first.

    URLs are consumed in arrival order and batches in their original order, so
    only the job currently being handed downstream is held in memory.
    """
    for url in urls:
        for batch in batches:
            grouped = split_by_variant(generate_payloads(batch))
            for variant in Variant:
                payloads = grouped[variant]
                if not payloads:
                    continue
                yield Job(url=url, parameters=tuple(batch), payloads=tuple(payloads), variant=variant, method=method)


def count_jobs(url_count: int, batches: Sequence[Sequence[str]]) -> int:
    return url_count * len([b for b in batches if b]) * len(Variant)


# --------------------------------------------------------------------------------------
# Rate limiting
# --------------------------------------------------------------------------------------

class RateLimiter:
    """Token bucket refilling at `rate` tokens per second, holding at most `burst`.

    wait() reserves a token under the lock and sleeps outside it, so concurrent
    callers queue up behind each other instead of racing for the same token.
    """

    def __init__(self, rate: float, burst: Optional[int] = None, clock: Callable[[], float] = time.monotonic):
        if rate <= 0:
            raise ValueError("rate must be positive")
        self.rate = float(rate)
        self.burst = burst if burst is not None else max(1, int(rate))
        self._clock = clock
        self._tokens = float(self.burst)
        self._last = clock()
        self._lock = threading.Lock()

    def _reserve(self) -> float:
        with self._lock:
            now = self._clock()
            self._tokens = min(self.burst, self._tokens + (now - self._last) * self.rate)
            self._last = now
            self._tokens -= 1
            if self._tokens >= 0:
                return 0.0
            return -self._tokens / self.rate

    def _refund(self):
        with self._lock:
            self._tokens = min(self.burst, self._tokens + 1)

    def wait(self, cancel: threading.Event) -> bool:
        """Block until a token is available; False if cancelled first."""
        if cancel.is_set():
            return False
        delay = self._reserve()
        if delay > 0 and cancel.wait(delay):
            self._refund()
            return False
        return not cancel.is_set()


# --------------------------------------------------------------------------------------
# Job queue
# --------------------------------------------------------------------------------------

class JobQueue:
    """Bounded queue with an explicit close, whose blocking calls honour a cancel token."""

    def __init__(self, maxsize: int):
        self._q: "queue.Queue[Job]" = queue.Queue(maxsize=maxsize)
        self._closed = threading.Event()

    def put(self, job: Job, cancel: threading.Event) -> bool:
        while not cancel.is_set():
            try:
                self._q.put(job, timeout=POLL_INTERVAL)
                return True
            except queue.Full:
                continue
        return False

    def get(self, cancel: threading.Event) -> Optional[Job]:
        """Next job, or None once closed and drained or once cancelled."""
        while not cancel.is_set():
            try:
                return self._q.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                # close() happens after the final put, so closed + empty means drained
                if self._closed.is_set() and self._q.empty():
                    return None
        return None

    def close(self):
        self._closed.set()


# --------------------------------------------------------------------------------------
# Scanner
# --------------------------------------------------------------------------------------

class Scanner:
    """Fixed pool of worker threads draining one bounded job queue.

    `client` is anything with request(method, url, payloads) -> Response that
    raises TransportError when no response was obtained. Outcomes go to the
    optional progress counter and result collector; `on_reflection` fires for
    every reflected payload as soon as it is seen.
    """

    def __init__(self, client, workers: int, rate: float, queue_size: int = 1000,
                 progress: Optional[ProgressReporter] = None, collector: Optional[ResultCollector] = None,
                 on_reflection: Optional[Callable[[Job, Payload, Response], None]] = None,
                 verbose: bool = False, cancel: Optional[threading.Event] = None,
                 limiter: Optional[RateLimiter] = None):
        if workers <= 0:
            raise ValueError("workers must be positive")
        self.client = client
        self.workers = workers
        self.queue_size = queue_size
        self.limiter = limiter or RateLimiter(rate, burst=max(1, int(rate)))
        self.progress = progress
        self.collector = collector
        self.on_reflection = on_reflection
        self.verbose = verbose
        self.cancel = cancel or threading.Event()

    # ---------------- Producer -----------------
    def _produce(self, jobs: Iterable[Job], q: JobQueue, errors: List[BaseException]):
        try:
            for job in jobs:
                if not q.put(job, self.cancel):
                    logger.info("producer stopped by cancellation")
                    return
        except Exception as e:
            # a broken job source ends the whole run
            errors.append(e)
            self.cancel.set()
        finally:
            q.close()

    # ---------------- Workers -----------------
    def _worker(self, q: JobQueue):
        while True:
            job = q.get(self.cancel)
            if job is None:
                return
            if not self.limiter.wait(self.cancel):
                return
            try:
                self.process_job(job)
            except Exception as e:
                # failure stays local to the job
                logger.exception("unexpected error on %s %s", job.method, job.url)
                log_err(f"[ERROR] {job.method} {job.url} - unexpected {type(e).__name__}: {e}")
            finally:
                if self.progress is not None:
                    self.progress.inc()

    def run(self, urls: Iterable[str], batches: Sequence[Sequence[str]], method: str = "GET"):
        """Scan every url × batch × variant and return once all workers have exited."""
        self.run_jobs(build_jobs(urls, batches, method))

    def run_jobs(self, jobs: Iterable[Job]):
        q = JobQueue(self.queue_size)
        threads: List[threading.Thread] = [
            threading.Thread(target=self._worker, args=(q,), name=f"worker-{i}", daemon=True)
            for i in range(self.workers)
        ]
        for t in threads:
            t.start()

        errors: List[BaseException] = []
        producer = threading.Thread(target=self._produce, args=(jobs, q, errors), name="producer", daemon=True)
        producer.start()

        producer.join()
        for t in threads:
            t.join()

        if errors:
            raise errors[0]

    # ---------------- Probe -----------------
    def _record(self, job: Job, payload: Payload, reflected: bool, status: int = 0, error: Optional[str] = None):
        if self.collector is not None:
            self.collector.add(Result(url=job.url, method=job.method, parameter=payload.parameter,
                                      payload_value=payload.value, reflected=reflected,
                                      status_code=status, error=error))

    def process_job(self, job: Job):
        try:
            resp = self.client.request(job.method, job.url, job.payloads)
        except TransportError as e:
            logger.info("transport error: %s", e)
            for p in job.payloads:
                self._record(job, p, False, error=str(e))
            if self.verbose:
                log_err(f"[ERROR] {job.method} {job.url} - {e}")
            return

        if self.verbose:
            self._log_request(job, resp)

        if not is_html_response(resp.content_type):
            logger.debug("skipping %s %s (content type %s)", job.method, job.url, resp.content_type)
            for p in job.payloads:
                self._record(job, p, False, status=resp.status_code)
            if self.verbose:
                log_warn(f"[SKIP] {job.url} - content type {resp.content_type}")
            return

        reflections = check_reflections(resp.body, job.payloads)
        for p in job.payloads:
            reflected = reflections[p.value]
            self._record(job, p, reflected, status=resp.status_code)
            if reflected:
                logger.info("reflection: %s %s %s=%s", job.method, job.url, p.parameter, p.value)
                if self.on_reflection is not None:
                    self.on_reflection(job, p, resp)

    def _log_request(self, job: Job, resp: Response):
        color = status_color(resp.status_code)
        tag = f"[{color}{resp.status_code}{Style.RESET_ALL}]"
        if job.method == "GET":
            log_plain(f"{tag} GET {build_get_url(job.url, job.payloads)}")
        else:
            log_plain(f"{tag} POST {job.url}\n    Body: {build_form_body(job.payloads)}")


def print_reflection(job: Job, payload: Payload, resp: Response):
    """Immediate console notice for one reflected payload."""
    tag = f"[{Fore.RED}REFLECTED{Style.RESET_ALL}] [{Fore.GREEN}{job.method}{Style.RESET_ALL}]"
    if job.method == "GET":
        log_plain(f"{tag} {build_get_url(job.url, [payload])}")
    else:
        log_plain(f"{tag} {job.url}\n{payload.parameter}={payload.value}")
