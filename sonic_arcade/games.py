"""Game play loop and recovery policy for arcade backend errors.

Backend failures come back as free text. They are matched against
``ERROR_PATTERNS`` in order and the first hit decides the recovery; the
substrings and their order must stay as they are (a message with both
"Locked" and "limit" is a ban, not a rate limit).
"""

import threading
import time
from dataclasses import asdict, dataclass
from enum import Enum

from sonic_arcade.config import BAN_COOLDOWN, MINES_CLAIM_DATA
from sonic_arcade.errors import GamePlayError, RefundError, ReiterateError, TransportError
from sonic_arcade.utils import to_human_time


class ErrorClass(str, Enum):
    SESSION_STALE = "session_stale"
    BANNED = "banned"
    RATE_LIMITED = "rate_limited"
    RANDOM_PENDING = "random_pending"
    PERMIT_STALE = "permit_stale"
    UNCLASSIFIED = "unclassified"


ERROR_PATTERNS = (
    (ErrorClass.SESSION_STALE, ("Please refresh or try again later",)),
    (ErrorClass.BANNED, ("Locked",)),
    (ErrorClass.RATE_LIMITED, ("limit", "Locked")),
    (ErrorClass.RANDOM_PENDING, ("random number",)),
    (ErrorClass.PERMIT_STALE, ("Permit could not verify",)),
)


def classify_error(message):
    """Return the ErrorClass for a backend error message, or None if empty."""
    if not message:
        return None
    for error_class, needles in ERROR_PATTERNS:
        if any(needle in message for needle in needles):
            return error_class
    return ErrorClass.UNCLASSIFIED


class BanLedger:
    """Ban deadlines (epoch seconds) per wallet and game.

    One ledger is shared by every cycle of the runner so a ban outlives the
    Account that observed it.
    """

    def __init__(self):
        self._until = {}
        self._lock = threading.Lock()

    def ban(self, owner, game, until):
        with self._lock:
            self._until[(owner, game)] = until

    def banned_until(self, owner, game):
        with self._lock:
            return self._until.get((owner, game))


@dataclass
class GameStatus:
    message: str = "pending"
    waiting: str = "-"


class GameOrchestrator:
    def __init__(self, rpc, sessions, permit, games, waiter, smart_address=None, bans=None, clock=time.time):
        self.rpc = rpc
        self.sessions = sessions
        self.permit = permit
        self.games = games
        self.waiter = waiter
        self.log = waiter.log
        self.smart_address = smart_address
        self.clock = clock
        self.status = {name: GameStatus() for name in games}
        self.limited = {name: False for name in games}
        self.bans = bans if bans is not None else BanLedger()
        self._recovery = {
            ErrorClass.SESSION_STALE: self._renew_session_and_retry,
            ErrorClass.BANNED: self._cool_down,
            ErrorClass.RATE_LIMITED: self._mark_limited,
            ErrorClass.RANDOM_PENDING: self._resolve_random_number,
            ErrorClass.PERMIT_STALE: self._refresh_permit,
            ErrorClass.UNCLASSIFIED: self._fail,
        }

    def game_wait(self, game, seconds, message, level="INFO"):
        status = self.status.setdefault(game, GameStatus())
        status.message = message
        status.waiting = to_human_time(seconds)
        self.waiter.wait(seconds, message, level=level)

    def cooling_down(self, game):
        until = self.bans.banned_until(self.rpc.owner, game)
        return until is not None and self.clock() < until

    def play(self, name):
        if name == "mines":
            return self.play_mines()
        return self.play_game(name)

    def play_game(self, name, retry_stale_session=True):
        """Play one round of ``name``; True only when the backend accepted it.

        Raises GamePlayError for the terminal classes (stale permit and
        unclassified errors) and when a renewed session is stale again.
        """
        call_data = self.games.call_for(name)

        if self.limited.get(name):
            self.log.info(f"Game [{name}] is limited for this run, skip")
            return False
        if self.cooling_down(name):
            self.log.info(f"Game [{name}] is cooling down, skip")
            return False

        self.game_wait(name, 1, f"Playing game: [{name}]")

        try:
            response = self.rpc.call("call", {
                "call": call_data,
                "owner": self.rpc.owner,
                "part": self.permit.part,
                "permit": self.permit.signature,
            })
        except TransportError as e:
            message = str(e)
        else:
            if not response.error:
                if response.hash_error_types:
                    self.game_wait(name, 3, f"Play game failed: {response.hash_error_details}", level="WARNING")
                    return False
                self.game_wait(name, 2, f"Successfully played game: [{name}]")
                return True
            message = response.error_message

        self.log.error(f"[{name}] {message}")
        error_class = classify_error(message)
        if error_class is None:
            return False
        return self._recovery[error_class](name, message, retry_stale_session)

    def play_mines(self):
        played = self.play_game("mines")
        if not played:
            return False
        return self.claim_mines()

    def claim_mines(self):
        if self.limited.get("mines"):
            return False

        self.game_wait("mines", 0.6, "Placed")
        self.game_wait("mines", 0.1, "Claiming mine game reward")

        try:
            response = self.rpc.call("call", {
                "call": {"dest": self.games.contract, "data": MINES_CLAIM_DATA, "value": "0n"},
                "owner": self.rpc.owner,
                "part": self.permit.part,
                "permit": self.permit.signature,
            })
        except TransportError as e:
            self.game_wait("mines", 10, f"Failed to claim mine game: {e}", level="WARNING")
            return False

        if response.error:
            self.game_wait("mines", 10, f"Failed to claim mine game: {response.error_message}", level="WARNING")
            return False
        if response.hash_error_types:
            self.game_wait("mines", 10, f"Claim failed: {response.hash_error_details}", level="WARNING")
            return False
        self.game_wait("mines", 1.5, "Successfully play and claim mine game.")
        return True

    def refund(self, game):
        self.waiter.wait(1.5, f"Refunding game {game} to resolve awaiting random number")
        self._recovery_call("refund", game, RefundError, "Failed to Refund Game")
        self.waiter.wait(2, f"Successfully refund game: {game}")

    def reiterate(self, game):
        self.waiter.wait(1.5, f"Reiterate game {game} to resolve awaiting random number")
        self._recovery_call("reIterate", game, ReiterateError, f"Failed to reiterate game {game}")
        self.waiter.wait(2, f"Successfully reiterate game: {game}")

    def snapshot(self):
        return {
            name: {**asdict(status), "limited": self.limited.get(name, False)}
            for name, status in self.status.items()
        }

    def _recovery_call(self, method, game, error_cls, failure):
        if not self.smart_address:
            raise error_cls(f"{failure}: smart address not configured")
        try:
            response = self.rpc.call(method, {"game": game, "player": self.smart_address})
        except TransportError as e:
            raise error_cls(f"{failure}: {e}") from e
        if response.status != 200 or response.error:
            raise error_cls(f"{failure}: {response.error_message}")

    def _renew_session_and_retry(self, name, message, retry_stale_session):
        if not retry_stale_session:
            raise GamePlayError(name, message)
        self.sessions.create_session()
        self.permit.create_nonce()
        return self.play_game(name, retry_stale_session=False)

    def _cool_down(self, name, message, retry_stale_session):
        self.bans.ban(self.rpc.owner, name, self.clock() + BAN_COOLDOWN)
        status = self.status.setdefault(name, GameStatus())
        status.message = "Account has been banned, wait for 1.8 hours"
        status.waiting = to_human_time(BAN_COOLDOWN)
        self.log.warning(f"[{name}] {status.message}")
        return False

    def _mark_limited(self, name, message, retry_stale_session):
        self.limited[name] = True
        self.game_wait(name, 1, message, level="WARNING")
        return False

    def _resolve_random_number(self, name, message, retry_stale_session):
        self.game_wait(name, 5, message)
        try:
            self.reiterate(name)
        except ReiterateError as e:
            self.log.warning(str(e))
            try:
                self.refund(name)
            except RefundError as refund_error:
                self.game_wait(name, 1, str(refund_error), level="WARNING")
        return False

    def _refresh_permit(self, name, message, retry_stale_session):
        self.permit.authorize()
        raise GamePlayError(name, message)

    def _fail(self, name, message, retry_stale_session):
        raise GamePlayError(name, message)
