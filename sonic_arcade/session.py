import time
from dataclasses import dataclass
from pathlib import Path

from sonic_arcade.config import SESSION_TTL, SESSIONS_DIR
from sonic_arcade.errors import SessionCreationError, TransportError


@dataclass
class Session:
    owner: str
    created_at: int
    expires_at: int
    request_id: int


class SessionManager:
    """Creates backend sessions for one owner and keeps the marker file.

    The marker holds the epoch milliseconds of the last successful
    ``createSession`` as plain text.
    """

    def __init__(self, rpc, waiter, sessions_dir=SESSIONS_DIR):
        self.rpc = rpc
        self.waiter = waiter
        self.marker = Path(sessions_dir) / rpc.owner
        self.session = None

    def create_session(self):
        self.waiter.wait(1, "Creating session")
        now = int(time.time() * 1000)
        until = now + SESSION_TTL * 1000
        try:
            response = self.rpc.call("createSession", {"owner": self.rpc.owner, "until": until})
        except TransportError as e:
            raise SessionCreationError(f"Failed to create session: {e}") from e

        if response.status != 200 or response.error:
            raise SessionCreationError(f"Failed to create session: {response.error_message}")

        self._write_marker(now)
        self.session = Session(self.rpc.owner, now, until, self.rpc.last_request_id)
        self.waiter.wait(1, "Successfully create session")
        return self.session

    def last_session_at(self):
        try:
            return int(self.marker.read_text(encoding="utf-8").strip())
        except (FileNotFoundError, ValueError):
            return None

    def _write_marker(self, now):
        self.marker.parent.mkdir(parents=True, exist_ok=True)
        self.marker.write_text(str(now), encoding="utf-8")
