import itertools
import json
from dataclasses import dataclass
from typing import Any

import requests
from loguru import logger

from sonic_arcade.config import HTTP_TIMEOUT, ORIGIN, REFERER, RPC_ENDPOINT
from sonic_arcade.errors import TransportError
from sonic_arcade.utils import get_random_user_agent


@dataclass
class Response:
    """Parsed response body; ``status`` is 200 for every 2xx."""

    status: int
    body: Any

    @property
    def error(self):
        if isinstance(self.body, dict):
            return self.body.get("error")
        return None

    @property
    def error_message(self):
        err = self.error
        if isinstance(err, dict):
            return err.get("message") or ""
        return str(err) if err else ""

    @property
    def result(self):
        result = self.body.get("result") if isinstance(self.body, dict) else None
        return result if isinstance(result, dict) else {}

    @property
    def hash_error_types(self):
        h = self.result.get("hash")
        if isinstance(h, dict):
            return h.get("errorTypes")
        return None

    @property
    def hash_error_details(self):
        h = self.result.get("hash")
        if not isinstance(h, dict):
            return None
        return (h.get("actualError") or {}).get("details")


class HttpTransport:
    def __init__(self, user_agent=None, proxy=None, log=logger, timeout=HTTP_TIMEOUT):
        self.user_agent = user_agent or get_random_user_agent()
        self.proxy = proxy
        self.log = log
        self.timeout = timeout
        self.session = requests.Session()
        if proxy:
            self.session.proxies.update({"http": proxy, "https": proxy})

    def headers(self, custom=None, referer=REFERER):
        return {
            **(custom or {}),
            "Accept": "application/json",
            "Accept-Language": "en-US,en;q=0.9,id;q=0.8",
            "Content-Type": "application/json",
            "Sec-Fetch-Dest": "empty",
            "Sec-Fetch-Site": "cross-site",
            "Sec-Fetch-Mode": "cors",
            "Origin": ORIGIN,
            "Pragma": "no-cache",
            "Referer": referer,
            "User-Agent": self.user_agent,
        }

    def fetch(self, url, method="GET", body=None, headers=None, referer=REFERER):
        headers = self.headers(headers, referer)
        self.log.debug(f"{method} Request URL: {url}")
        self.log.debug(f"Request headers: {json.dumps(headers)}")
        kwargs = {"headers": headers, "timeout": self.timeout}
        if method != "GET":
            kwargs["json"] = body or {}
            self.log.debug(f"Request body: {json.dumps(body or {})}")

        try:
            r = self.session.request(method, url, **kwargs)
        except requests.exceptions.RequestException as e:
            raise TransportError(0, str(e)) from e

        self.log.debug(f"Response status: {r.status_code} {r.reason}")
        if "application/json" in r.headers.get("content-type", ""):
            try:
                data = r.json()
            except ValueError:
                data = {"status": r.status_code, "message": r.text}
        else:
            data = {"status": r.status_code, "message": r.text}
        self.log.debug(f"Response data: {json.dumps(data)}")

        if not r.ok:
            raise TransportError(r.status_code, r.reason)
        return Response(200, data)

    def close(self):
        self.session.close()


class RpcClient:
    """JSON-RPC client for the arcade hub.

    Owns the account's request-id sequence: every call takes the next id,
    starting at 1, whether or not the call succeeds.
    """

    def __init__(self, transport, owner, endpoint=RPC_ENDPOINT):
        self.transport = transport
        self.owner = owner
        self.endpoint = endpoint
        self._ids = itertools.count(1)
        self.last_request_id = 0

    def call(self, method, params, headers=None):
        request_id = next(self._ids)
        self.last_request_id = request_id
        payload = {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params}
        rpc_headers = {"network": "SONIC", "pragma": "no-cache", "priority": "u=1, i", "X-Owner": self.owner}
        rpc_headers.update(headers or {})
        return self.transport.fetch(self.endpoint, "POST", payload, rpc_headers)
