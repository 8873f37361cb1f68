import random
import re
import time
from pathlib import Path

from loguru import logger

from sonic_arcade.errors import DeadlineExceeded

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/129.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/128.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:130.0) Gecko/20100101 Firefox/130.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_6_1) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.6 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/129.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/128.0.0.0 Safari/537.36 Edg/128.0.0.0",
]

_HEX_KEY = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")


def get_random_user_agent():
    return random.choice(USER_AGENTS)


def get_private_key_type(secret):
    """Return "Private Key", "Mnemonic" or "Unknown" for a raw account line."""
    s = secret.strip()
    if _HEX_KEY.match(s):
        return "Private Key"
    words = s.split()
    if len(words) in (12, 15, 18, 21, 24) and all(w.isalpha() for w in words):
        return "Mnemonic"
    return "Unknown"


def short_address(address):
    if not address:
        return "-"
    return f"{address[:6]}...{address[-4:]}"


def to_human_time(seconds):
    if seconds < 1:
        return f"{round(seconds * 1000)}ms"
    total = int(round(seconds))
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if secs or not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)


def read_lines(path, required=True):
    p = Path(path)
    if not p.exists():
        if required:
            raise FileNotFoundError(f"{path} not found.")
        return []
    lines = []
    with p.open("r", encoding="utf-8") as f:
        for ln in f:
            s = ln.strip()
            if not s or s.startswith("#"):
                continue
            lines.append(s)
    return lines


class Waiter:
    """Timed pauses for one account.

    Every pause is logged with the account's bound logger and only sleeps the
    calling thread. When a deadline (``time.monotonic()`` value) is set, a
    pause that would run past it raises :class:`DeadlineExceeded` instead.
    """

    def __init__(self, log=logger, deadline=None, sleep=time.sleep):
        self.log = log
        self.deadline = deadline
        self._sleep = sleep

    def wait(self, seconds, message, level="INFO"):
        self.log.log(level, f"{message} [{to_human_time(seconds)}]")
        if self.deadline is not None and time.monotonic() + seconds > self.deadline:
            raise DeadlineExceeded(f"Account deadline reached while waiting: {message}")
        self._sleep(seconds)
