import json
import time
from urllib.parse import quote

from loguru import logger

from sonic_arcade.config import AIRDROP_API, GAME_ATTEMPTS, REFERRER_CODE, SESSIONS_DIR
from sonic_arcade.errors import ArcadeError, DeadlineExceeded, GamePlayError
from sonic_arcade.games import GameOrchestrator
from sonic_arcade.permit import PermitEngine
from sonic_arcade.points import PointsTracker
from sonic_arcade.session import SessionManager
from sonic_arcade.transport import HttpTransport, RpcClient
from sonic_arcade.utils import Waiter, short_address, to_human_time
from sonic_arcade.wallet import Wallet


class Account:
    """One wallet's run against the arcade.

    All mutable state (request ids, session, permit, game flags, points) lives
    here, so separate accounts can run on separate threads.
    """

    def __init__(self, secret, index, games, proxy=None, smart_address=None,
                 referrer_code=REFERRER_CODE, sessions_dir=SESSIONS_DIR,
                 deadline=None, transport=None, waiter=None, bans=None):
        self.secret = secret
        self.index = index
        self.games = games
        self.proxy = proxy
        self.smart_address = smart_address
        self.referrer_code = referrer_code
        self.sessions_dir = sessions_dir
        self.bans = bans
        self.log = logger.bind(account=f"#{index}")
        self.waiter = waiter or Waiter(self.log, deadline=deadline)
        self.transport = transport or HttpTransport(proxy=proxy, log=self.log)
        self.wallet = None
        self.address = None
        self.balance = None
        self.user = None
        self.signature_message = None
        self.rpc = None
        self.sessions = None
        self.permit = None
        self.orchestrator = None
        self.points = None

    def connect(self, wallet=None):
        self.waiter.wait(1.5, f"Connecting to account: {self.index}")
        self.wallet = wallet or Wallet.from_secret(self.secret)
        self.address = self.wallet.address
        self.log = logger.bind(account=f"#{self.index} {short_address(self.address)}")
        self.waiter.log = self.log
        self.transport.log = self.log

        self.rpc = RpcClient(self.transport, self.address)
        self.sessions = SessionManager(self.rpc, self.waiter, self.sessions_dir)
        self.permit = PermitEngine(self.rpc, self.wallet, self.waiter)
        self.orchestrator = GameOrchestrator(
            self.rpc, self.sessions, self.permit, self.games, self.waiter, self.smart_address, bans=self.bans
        )
        self.points = PointsTracker(self.rpc, self.transport, self.permit, self.waiter, self.smart_address)
        self.waiter.wait(1, f"Wallet address: {self.address}")

        last = self.sessions.last_session_at()
        if last is not None:
            age = max(time.time() - last / 1000, 0)
            self.log.info(f"Last session created {to_human_time(age)} ago")

    def get_balance(self):
        try:
            self.balance = self.wallet.get_balance()
        except Exception as e:
            self.log.warning(f"Failed to get balance: {e}")
            return None
        self.waiter.wait(0.5, f"Balance updated: {self.balance}")
        return self.balance

    def connect_to_sonic(self):
        self.waiter.wait(0.5, "Connecting to Sonic Arcade")
        message = (
            f"I'm joining Sonic Airdrop Dashboard with my wallet, have been referred by {self.referrer_code}, "
            f"and I agree to the terms and conditions.\nWallet address:\n{self.address}\n"
        )
        self.log.debug(f"Message to sign: {message}")
        self.signature_message = self.wallet.sign_message(message)
        self.waiter.wait(0.5, "Successfully connected to Sonic Dapp")

    def get_user(self):
        self.waiter.wait(1, "Fetching user information")
        query = quote(json.dumps({"0": {"json": {"address": self.address}}}))
        response = self.transport.fetch(f"{AIRDROP_API}/user.findOrCreate?batch=1&input={query}", "GET")
        try:
            self.user = response.body[0]["result"]["data"]["json"]
        except (KeyError, IndexError, TypeError) as e:
            raise ArcadeError(f"Failed to get user information: {e}") from e
        self.waiter.wait(0.5, "User information retrieved successfully")
        return self.user

    def try_to_update_referrer(self):
        self.waiter.wait(0.1, "Validating invite code")
        if not self.referrer_code:
            return False
        if (self.user or {}).get("invitedCode") is not None:
            self.waiter.wait(1, "Invite code already set")
            return False
        try:
            self.transport.fetch(f"{AIRDROP_API}/user.setInvited?batch=1", "POST", {
                "json": {
                    "address": self.address,
                    "invitedCode": self.referrer_code,
                    "signature": self.signature_message,
                },
            })
            self.waiter.wait(1, "Successfully updated the invite code")
            self.get_user()
        except DeadlineExceeded:
            raise
        except ArcadeError as e:
            self.log.error(f"Failed to update user invite code: {e}")
            return False
        return True

    def play_games(self, names=None):
        for name in names or list(self.games):
            for attempt in range(1, GAME_ATTEMPTS + 1):
                try:
                    self.orchestrator.play(name)
                    break
                except GamePlayError as e:
                    self.log.error(f"{e} (attempt {attempt}/{GAME_ATTEMPTS})")

    def run(self):
        """One full cycle; transport and permit errors propagate to the caller."""
        self.connect()
        self.get_balance()
        self.connect_to_sonic()
        try:
            self.get_user()
            self.try_to_update_referrer()
        except DeadlineExceeded:
            raise
        except ArcadeError as e:
            self.log.warning(f"Skipping airdrop user lookup: {e}")

        self.sessions.create_session()
        self.permit.authorize()
        self.points.register()
        self.play_games()
        self.points.get_points()
        return self.summary()

    def close(self):
        self.transport.close()

    def summary(self):
        return {
            "index": self.index,
            "address": self.address,
            "balance": self.balance,
            "last_request_id": self.rpc.last_request_id if self.rpc else 0,
            "points_today": self.points.today if self.points else None,
            "points_total": self.points.total if self.points else None,
            "games": self.orchestrator.snapshot() if self.orchestrator else {},
        }
