import json
import os
from pathlib import Path
from types import MappingProxyType

from eth_utils import is_address

from sonic_arcade.errors import ConfigError

ORIGIN = "https://arcade.soniclabs.com"
REFERER = "https://arcade.soniclabs.com/"
RPC_ENDPOINT = "https://arcade.hub.soniclabs.com/rpc"
POINTS_URL = "https://arcade.gateway.soniclabs.com/game/points-by-player"
AIRDROP_API = "https://airdrop.soniclabs.com/api/trpc"

CHAIN_RPC_URL = os.environ.get("SONIC_RPC_URL", "https://rpc.testnet.soniclabs.com")
REFERRER_CODE = os.environ.get("SONIC_REFERRER_CODE", "")

# spender token for the points registration approve()
POINTS_TOKEN = "0x4Cc7b0ddCD0597496E57C5325cf4c73dBA30cdc9"
MAX_UINT256 = 2**256 - 1

# endGame() call on the mines contract
MINES_CLAIM_DATA = (
    "0x0d942fd0"
    "0000000000000000000000008bbd8f37a3349d83c85de1f2e32b3fd2fce2468e"
    "0000000000000000000000000000000000000000000000000000000000000002"
    "000000000000000000000000e328a0b1e0be7043c9141c2073e408d1086e1175"
    "00000000000000000000000000000000000000000000000000000000000000a0"
    "00000000000000000000000000000000000000000000000000000000000000e0"
    "0000000000000000000000000000000000000000000000000000000000000007"
    "656e6447616d6500000000000000000000000000000000000000000000000000"
    "0000000000000000000000000000000000000000000000000000000000000000"
)

SESSION_TTL = 24 * 3600
HTTP_TIMEOUT = 20

PKEVM_FILE = os.environ.get("SONIC_KEYS_FILE", "pkevm.txt")
PROXY_FILE = os.environ.get("SONIC_PROXY_FILE", "proxy.txt")
SMART_ADDRESS_FILE = os.environ.get("SONIC_SMART_ADDRESS_FILE", "smart_address.txt")
GAMES_FILE = os.environ.get("SONIC_GAMES_FILE", "games.json")
SESSIONS_DIR = Path(os.environ.get("SONIC_SESSIONS_DIR", ".sessions"))
OUT_FILE = "arcade_results.json"

GAME_ATTEMPTS = 2
BAN_COOLDOWN = 1.8 * 3600
REGISTER_ATTEMPTS = 5
REGISTER_BACKOFF = 2.0

# optional cap; by default every account gets its own worker
MAX_WORKERS = int(os.environ.get("SONIC_MAX_WORKERS", "0")) or None
ACCOUNT_DEADLINE = float(os.environ.get("SONIC_ACCOUNT_DEADLINE", "0")) or None
DELAY_BETWEEN_ACCOUNTS = 1.5
CYCLE_DELAY = float(os.environ.get("SONIC_CYCLE_DELAY", "3600"))


class GameBook:
    """Read-only game call payloads, looked up by game name."""

    def __init__(self, contract, games):
        self.contract = contract
        self._games = MappingProxyType(
            {name: MappingProxyType(dict(call)) for name, call in games.items()}
        )

    def __contains__(self, name):
        return name in self._games

    def __iter__(self):
        return iter(self._games)

    def __len__(self):
        return len(self._games)

    def call_for(self, name):
        try:
            return dict(self._games[name])
        except KeyError:
            raise ConfigError(f"Undefined game: [{name}]") from None


def load_games(path=GAMES_FILE):
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"{path} not found.")
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"{path} is not valid JSON: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: expected an object with 'contract' and 'games'")

    contract = raw.get("contract", "")
    if not is_address(contract):
        raise ConfigError(f"{path}: 'contract' must be an address, got {contract!r}")
    games = raw.get("games") or {}
    if not isinstance(games, dict):
        raise ConfigError(f"{path}: 'games' must be an object")
    for name, call in games.items():
        if not isinstance(call, dict):
            raise ConfigError(f"{path}: game {name} must be an object")
        missing = {"dest", "data"} - set(call)
        if missing:
            raise ConfigError(f"{path}: game {name} is missing {sorted(missing)}")
        call.setdefault("value", "0n")
    return GameBook(contract, games)
