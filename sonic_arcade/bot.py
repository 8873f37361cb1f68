import json
import sys
import time
from concurrent.futures import ThreadPoolExecutor

from loguru import logger

from sonic_arcade.account import Account
from sonic_arcade.config import (
    ACCOUNT_DEADLINE,
    CYCLE_DELAY,
    DELAY_BETWEEN_ACCOUNTS,
    GAMES_FILE,
    MAX_WORKERS,
    OUT_FILE,
    PKEVM_FILE,
    PROXY_FILE,
    SMART_ADDRESS_FILE,
    load_games,
)
from sonic_arcade.errors import ArcadeError
from sonic_arcade.games import BanLedger
from sonic_arcade.utils import read_lines, to_human_time

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[account]}</cyan> | <level>{message}</level>"
)


def banner():
    print("--------------------------------------------------")
    print("🚀 Sonic Arcade")
    print("🎮 Plinko + SingleWheel + Mines")
    print("--------------------------------------------------")


def setup_logging(level="INFO"):
    logger.remove()
    logger.configure(extra={"account": "-"})
    logger.add(sys.stderr, format=LOG_FORMAT, level=level)


def process_account(secret, idx, games, proxy=None, smart_address=None, bans=None):
    result = {"index": idx, "address": None, "games": {}, "errors": []}
    deadline = time.monotonic() + ACCOUNT_DEADLINE if ACCOUNT_DEADLINE else None
    account = Account(secret, idx, games, proxy=proxy, smart_address=smart_address, deadline=deadline, bans=bans)
    try:
        result.update(account.run())
    except ArcadeError as e:
        account.log.error(f"Cycle stopped: {e}")
        result.update(account.summary())
        result["errors"].append(f"{type(e).__name__}:{e}")
    except Exception as e:
        account.log.exception(f"Unexpected error: {e}")
        result.update(account.summary())
        result["errors"].append(f"unexpected:{e}")
    finally:
        account.close()
    return result


def read_private_keys(path=PKEVM_FILE):
    return read_lines(path)


def _aligned(path, count):
    values = read_lines(path, required=False)
    return [values[i] if i < len(values) else None for i in range(count)]


def run_cycle(keys, games, proxies, smart_addresses, bans=None, max_workers=MAX_WORKERS):
    workers = min(max_workers, len(keys)) if max_workers else len(keys)
    with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
        futures = []
        for i, secret in enumerate(keys, 1):
            futures.append(pool.submit(
                process_account, secret, i, games, proxies[i - 1], smart_addresses[i - 1], bans
            ))
            time.sleep(DELAY_BETWEEN_ACCOUNTS)
        return [f.result() for f in futures]


def print_summary(results):
    for res in results:
        print("\n--------------------------------------------------")
        print(f">>> Account #{res['index']}")
        print(f"    Address : {res.get('address')}")
        print(f"    Balance : {res.get('balance')} S")
        print(f"    Points  : today {res.get('points_today')} | total {res.get('points_total')}")
        for name, status in res.get("games", {}).items():
            flag = "LIMITED" if status.get("limited") else "OK"
            print(f"    {name:12s} | {flag:7s} | wait: {status['waiting']:8s} | msg: {status['message']}")
        if res.get("errors"):
            print("    Errors :", res["errors"])


def main():
    banner()
    setup_logging()
    keys = read_private_keys()
    games = load_games(GAMES_FILE)
    proxies = _aligned(PROXY_FILE, len(keys))
    smart_addresses = _aligned(SMART_ADDRESS_FILE, len(keys))
    bans = BanLedger()
    print(f"[*] Found {len(keys)} account(s), {len(games)} game(s)")

    while True:
        results = run_cycle(keys, games, proxies, smart_addresses, bans)
        print_summary(results)
        with open(OUT_FILE, "w", encoding="utf-8") as f:
            json.dump(results, f, indent=2)
        print("\n--------------------------------------------------")
        print(f"[*] Cycle done. Results saved to {OUT_FILE}")
        if CYCLE_DELAY <= 0:
            break
        print(f"[*] Next cycle in {to_human_time(CYCLE_DELAY)}")
        time.sleep(CYCLE_DELAY)


if __name__ == "__main__":
    main()
