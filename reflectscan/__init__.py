"""
reflectscan — batched reflected-XSS discovery scanner

FOR AUTHORIZED TESTING ONLY. Use on systems you own or are explicitly permitted to test.
"""

APP_NAME = "reflectscan"
APP_VERSION = "1.0"

from reflectscan.batcher import create_batches  # noqa: E402
from reflectscan.errors import ConfigError, InputError, ReflectScanError, TransportError  # noqa: E402
from reflectscan.payload import Payload, Variant, generate_payloads  # noqa: E402
from reflectscan.reflect import check_reflections  # noqa: E402
from reflectscan.scanner import Job, Scanner, build_jobs  # noqa: E402

__all__ = [
    "APP_NAME",
    "APP_VERSION",
    "ConfigError",
    "InputError",
    "Job",
    "Payload",
    "ReflectScanError",
    "Scanner",
    "TransportError",
    "Variant",
    "build_jobs",
    "check_reflections",
    "create_batches",
    "generate_payloads",
]
