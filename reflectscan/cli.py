from __future__ import annotations

import argparse
import logging
import random
import signal
import sys
import threading
from typing import List, Optional, Sequence

from reflectscan import APP_NAME, APP_VERSION
from reflectscan.batcher import create_batches
from reflectscan.config import DEFAULT_BATCH_SIZE, DEFAULT_MAX_BODY, DEFAULT_QUEUE_SIZE, DEFAULT_RATE, \
    DEFAULT_TIMEOUT, ScanConfig
from reflectscan.console import banner, log_err, log_info, log_ok, log_warn
from reflectscan.errors import ConfigError, InputError
from reflectscan.loader import load_parameters, load_paths
from reflectscan.report import ProgressReporter, Result, ResultCollector, write_console_report
from reflectscan.scanner import Scanner, count_jobs, print_reflection
from reflectscan.transport import HTTPClient

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------------------------
# Orchestration
# --------------------------------------------------------------------------------------

def run_scan(cfg: ScanConfig, cancel: Optional[threading.Event] = None, client=None) -> List[Result]:
    """Load inputs, scan, print the summary and return every collected result."""
    cancel = cancel or threading.Event()
    workers = cfg.resolved_workers

    log_info("[+] Loading input files...")
    paths = load_paths(cfg.paths_file)
    if cfg.shuffle:
        random.shuffle(paths)
    parameters = load_parameters(cfg.parameters_file)

    batches = create_batches(parameters, cfg.batch_size)
    total = count_jobs(len(paths), batches)

    log_ok("[+] Loaded:")
    log_ok(f"    • {len(paths)} paths")
    log_ok(f"    • {len(parameters)} parameters")
    log_ok(f"    • {len(batches)} chunks (parameters/chunk size: {len(parameters)}/{cfg.batch_size})")
    log_ok(f"    • {total} HTTP requests total ({len(paths)} paths × {len(batches)} chunks × 2 variants)")
    logger.info("scan of %d paths, %d parameters, %d requests", len(paths), len(parameters), total)

    if client is None:
        if cfg.proxy:
            log_info(f"[proxy] Using proxy: {cfg.proxy}")
            if not cfg.insecure:
                log_warn("[proxy] Disabling certificate validation for the intercepting proxy")
        client = HTTPClient(
            timeout=cfg.timeout,
            proxy=cfg.proxy,
            insecure=cfg.insecure,
            max_conns=workers,
            retries=cfg.retries,
            backoff=cfg.backoff,
            max_body=cfg.max_body,
            cancel=cancel,
        )

    collector = ResultCollector()
    progress = ProgressReporter(total, enabled=cfg.progress and not cfg.verbose)

    scanner = Scanner(
        client=client,
        workers=workers,
        rate=cfg.rate,
        queue_size=cfg.queue_size,
        progress=progress,
        collector=collector,
        on_reflection=print_reflection,
        verbose=cfg.verbose,
        cancel=cancel,
    )

    log_info(f"[+] Starting {cfg.rate} RPS with {workers} workers...")
    if cfg.verbose:
        log_info("[+] Verbose mode enabled - showing all requests")
    log_info("[+] Reflections will be reported immediately as found:")

    try:
        scanner.run(paths, batches, cfg.method)
    finally:
        progress.close()
        if isinstance(client, HTTPClient):
            client.close()

    if cancel.is_set():
        log_warn(f"[!] Scan cancelled after {progress.completed}/{total} requests")
    else:
        log_ok("[+] Scan completed.")

    results = collector.results()
    write_console_report(results)
    return results


def install_cancellation(cancel: threading.Event, max_time: Optional[float]) -> Optional[threading.Timer]:
    def handler(signum, frame):
        if not cancel.is_set():
            log_warn("\n[!] Received interrupt signal, shutting down gracefully...")
        cancel.set()

    signal.signal(signal.SIGINT, handler)
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, handler)

    if not max_time:
        return None

    def expire():
        log_warn(f"\n[!] Time limit of {max_time:g}s reached, shutting down...")
        cancel.set()

    timer = threading.Timer(max_time, expire)
    timer.daemon = True
    timer.start()
    return timer


# --------------------------------------------------------------------------------------
# CLI
# --------------------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog=APP_NAME,
                                 description=f"{APP_NAME} (v{APP_VERSION}) — Batched reflected-XSS discovery")
    ap.add_argument("--paths", required=True, help="File with target URLs (one per line)")
    ap.add_argument("--parameters", required=True, help="File with parameter names (one per line)")
    ap.add_argument("-m", "--method", default="GET", type=str.upper, choices=["GET", "POST"], help="HTTP method")

    # Scheduling
    ap.add_argument("--rate", type=int, default=DEFAULT_RATE, help="Max requests per second")
    ap.add_argument("--workers", type=int, default=0, help="Concurrent workers (default: same as --rate)")
    ap.add_argument("--parameter-batch", type=int, default=DEFAULT_BATCH_SIZE, help="Parameters per request")
    ap.add_argument("--queue-size", type=int, default=DEFAULT_QUEUE_SIZE, help="Pending job queue capacity")
    ap.add_argument("--max-time", type=float, help="Stop the scan after this many seconds")
    ap.add_argument("--shuffle", action="store_true", help="Randomise target URL order")

    # Networking
    ap.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT, help="HTTP timeout per request (s)")
    ap.add_argument("--retries", type=int, default=0, help="Re-send attempts on network errors")
    ap.add_argument("--backoff", type=float, default=0.5, help="Backoff factor between retries")
    ap.add_argument("--proxy", help="Upstream proxy e.g. http://127.0.0.1:8080")
    ap.add_argument("--insecure", action="store_true", help="Ignore TLS certificate errors")
    ap.add_argument("--max-body", type=int, default=DEFAULT_MAX_BODY, help="Max response bytes read per request")

    # Output
    ap.add_argument("-v", "--verbose", action="store_true", help="Show all requests and HTTP status codes")
    ap.add_argument("--no-progress", action="store_true", help="Hide the live progress line")
    ap.add_argument("--log", help="Log file path")
    return ap


def config_from_args(args: argparse.Namespace) -> ScanConfig:
    return ScanConfig(
        paths_file=args.paths,
        parameters_file=args.parameters,
        method=args.method,
        rate=args.rate,
        workers=args.workers,
        batch_size=args.parameter_batch,
        timeout=args.timeout,
        proxy=args.proxy,
        insecure=args.insecure,
        retries=args.retries,
        backoff=args.backoff,
        verbose=args.verbose,
        queue_size=args.queue_size,
        max_body=args.max_body,
        max_time=args.max_time,
        shuffle=args.shuffle,
        progress=not args.no_progress,
        log_file=args.log,
    )


def main(argv: Optional[Sequence[str]] = None):
    args = build_parser().parse_args(argv)

    try:
        cfg = config_from_args(args).validate()
    except ConfigError as e:
        log_err(f"[-] Configuration error: {e}")
        sys.exit(1)

    if cfg.log_file:
        logging.basicConfig(filename=cfg.log_file, level=logging.INFO, format="%(asctime)s - %(message)s")
        logging.info("Scanner started")

    print(banner())

    cancel = threading.Event()
    timer = install_cancellation(cancel, cfg.max_time)
    try:
        run_scan(cfg, cancel)
    except InputError as e:
        log_err(f"[-] Input error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        cancel.set()
        log_warn("Interrupted by user")
    finally:
        if timer is not None:
            timer.cancel()


if __name__ == "__main__":
    main()
