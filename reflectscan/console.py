from __future__ import annotations

import threading

from colorama import Fore, Style, init as colorama_init
from tqdm import tqdm

from reflectscan import APP_NAME, APP_VERSION

print_lock = threading.Lock()

colorama_init(autoreset=True)


def banner() -> str:
    return f"""
{Fore.MAGENTA}
  ╔════════════════════════════════════════════════════════╗
  ║                 {APP_NAME} — v{APP_VERSION}                       ║
  ║          batched reflected-XSS discovery                 ║
  ╚════════════════════════════════════════════════════════╝{Style.RESET_ALL}
"""


# tqdm.write keeps a live progress bar intact while printing above it
def _emit(msg: str):
    with print_lock:
        tqdm.write(msg)


def log_info(msg: str):
    _emit(Fore.CYAN + msg + Style.RESET_ALL)


def log_ok(msg: str):
    _emit(Fore.GREEN + msg + Style.RESET_ALL)


def log_warn(msg: str):
    _emit(Fore.YELLOW + msg + Style.RESET_ALL)


def log_err(msg: str):
    _emit(Fore.RED + msg + Style.RESET_ALL)


def log_plain(msg: str):
    _emit(msg)


def status_color(status: int) -> str:
    if status >= 400:
        return Fore.RED
    if status >= 300:
        return Fore.YELLOW
    return Fore.GREEN
