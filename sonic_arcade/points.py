from eth_abi import encode
from eth_utils import function_signature_to_4byte_selector, to_checksum_address

from sonic_arcade.config import MAX_UINT256, POINTS_TOKEN, POINTS_URL, REGISTER_ATTEMPTS, REGISTER_BACKOFF
from sonic_arcade.errors import TransportError


def encode_approve(spender, amount=MAX_UINT256):
    selector = function_signature_to_4byte_selector("approve(address,uint256)")
    args = encode(["address", "uint256"], [to_checksum_address(spender), amount])
    return "0x" + (selector + args).hex()


class PointsTracker:
    """Registers the user key for points and reads the point totals."""

    def __init__(self, rpc, transport, permit, waiter, smart_address=None,
                 attempts=REGISTER_ATTEMPTS, backoff=REGISTER_BACKOFF):
        self.rpc = rpc
        self.transport = transport
        self.permit = permit
        self.waiter = waiter
        self.log = waiter.log
        self.smart_address = smart_address
        self.attempts = attempts
        self.backoff = backoff
        self.today = None
        self.total = None

    def register(self):
        """Submit the approve() call; retried with exponential backoff.

        Never raises for backend or transport failures. Returns False once
        every attempt has failed.
        """
        data = encode_approve(self.rpc.owner)
        for attempt in range(1, self.attempts + 1):
            self.waiter.wait(1, f"Registering user key ({attempt}/{self.attempts})")
            try:
                response = self.rpc.call("call", {
                    "call": {"dest": POINTS_TOKEN, "data": data, "value": "0n"},
                    "owner": self.rpc.owner,
                    "part": self.permit.part,
                    "permit": self.permit.signature,
                })
                if response.status == 200 and not response.error:
                    self.waiter.wait(1.5, "User key registered")
                    self.get_points()
                    return True
                reason = response.error_message or f"status {response.status}"
            except TransportError as e:
                reason = str(e)

            self.log.warning(f"Failed to register user key: {reason}")
            if attempt < self.attempts:
                self.waiter.wait(self.backoff * 2 ** (attempt - 1), "Retrying user key registration")

        self.log.error(f"Giving up user key registration after {self.attempts} attempts")
        return False

    def get_points(self):
        if not self.smart_address:
            self.waiter.wait(0.5, "Smart address not configured, skip")
            return None
        self.waiter.wait(1, "Getting user points")
        try:
            response = self.transport.fetch(f"{POINTS_URL}?wallet={self.smart_address}", "GET")
        except TransportError as e:
            self.log.warning(f"Failed to get points: {e}")
            return None

        body = response.body if isinstance(response.body, dict) else {}
        self.today = body.get("today")
        self.total = body.get("totalPoints")
        self.waiter.wait(1.5, "Successfully get total points")
        return self.total
