"""Shared fixtures: a scripted transport standing in for the arcade backend."""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from loguru import logger

from sonic_arcade.config import GameBook
from sonic_arcade.games import GameOrchestrator
from sonic_arcade.permit import PermitEngine
from sonic_arcade.session import SessionManager
from sonic_arcade.transport import Response, RpcClient
from sonic_arcade.utils import Waiter

OWNER = "0x1111111111111111111111111111111111111111"
SMART = "0x2222222222222222222222222222222222222222"
CONTRACT = "0x3333333333333333333333333333333333333333"


def ok(result=None):
    return Response(200, {"jsonrpc": "2.0", "id": 1, "result": result if result is not None else {}})


def err(message):
    return Response(200, {"jsonrpc": "2.0", "id": 1, "error": {"message": message}})


def typed_message_reply():
    doc = {
        "json": {
            "domain": {"name": "Arcade", "version": "1", "chainId": 64165},
            "types": {"Permit": [{"name": "owner", "type": "address"}]},
            "message": {"owner": OWNER},
        }
    }
    return ok({"typedMessage": json.dumps(doc)})


class FakeTransport:
    """Replies per RPC method (or per GET url); the last reply for a key repeats."""

    def __init__(self):
        self.calls = []
        self.replies = {}
        self.closed = False

    def reply(self, key, *responses):
        self.replies.setdefault(key, []).extend(responses)

    def fetch(self, url, method="GET", body=None, headers=None, referer=None):
        self.calls.append(SimpleNamespace(url=url, method=method, body=body, headers=headers))
        if body and "method" in body:
            key = body["method"]
        else:
            key = url.split("?")[0]
        queue = self.replies.get(key)
        if not queue:
            return ok()
        reply = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(reply, Exception):
            raise reply
        return reply

    def close(self):
        self.closed = True

    @property
    def rpc_methods(self):
        return [c.body["method"] for c in self.calls if c.body and "method" in c.body]

    @property
    def request_ids(self):
        return [c.body["id"] for c in self.calls if c.body and "id" in c.body]


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def waiter(sleeps):
    return Waiter(logger, sleep=sleeps.append)


@pytest.fixture
def rpc(transport):
    return RpcClient(transport, OWNER)


@pytest.fixture
def games():
    return GameBook(CONTRACT, {
        "plinko": {"dest": CONTRACT, "data": "0xaaaa", "value": "0n"},
        "singlewheel": {"dest": CONTRACT, "data": "0xbbbb", "value": "0n"},
        "mines": {"dest": CONTRACT, "data": "0xcccc", "value": "0n"},
    })


@pytest.fixture
def wallet():
    w = MagicMock()
    w.address = OWNER
    w.sign_typed_data.return_value = "0xtypedsig"
    w.sign_message.return_value = "0xmsgsig"
    w.get_balance.return_value = 1.5
    return w


@pytest.fixture
def sessions(rpc, waiter, tmp_path):
    return SessionManager(rpc, waiter, tmp_path / ".sessions")


@pytest.fixture
def permit(rpc, wallet, waiter):
    engine = PermitEngine(rpc, wallet, waiter)
    engine.signature = "0xtypedsig"
    engine.part = "part-1"
    return engine


@pytest.fixture
def orchestrator(rpc, sessions, permit, games, waiter):
    return GameOrchestrator(rpc, sessions, permit, games, waiter, smart_address=SMART)


@pytest.fixture
def log_messages():
    messages = []
    handler_id = logger.add(lambda m: messages.append(m.record), level="DEBUG")
    yield messages
    logger.remove(handler_id)
