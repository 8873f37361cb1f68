import json

from sonic_arcade.errors import NonceError, PermitFlowError, PermitSubmissionError, TransportError


class PermitEngine:
    """Obtains the arcade spending permit for one wallet.

    ``authorize`` runs nonce -> typed message -> permit and leaves the
    ``signature`` and ``part`` (the backend hashKey) needed by every game call.
    It can be re-run at any time to refresh them.
    """

    def __init__(self, rpc, wallet, waiter):
        self.rpc = rpc
        self.wallet = wallet
        self.waiter = waiter
        self.signature = None
        self.part = None

    @property
    def authorized(self):
        return self.part is not None

    def authorize(self):
        self.create_nonce()
        self.request_permit_typed_message()
        self.submit_permit()
        return self.part

    def create_nonce(self):
        self.waiter.wait(0.5, "Creating nonce")
        try:
            response = self.rpc.call("createNonce", {"owner": self.rpc.owner})
        except TransportError as e:
            raise NonceError(f"Failed to create nonce ({e}), please play the games on the website first.") from e
        if response.status != 200 or response.error:
            raise NonceError("Failed to create nonce, please play the games on the website first.")
        self.waiter.wait(0.5, "Successfully created nonce")

    def request_permit_typed_message(self):
        self.waiter.wait(1, "Try to permit Sonic Arcade contract")
        try:
            response = self.rpc.call("permitTypedMessage", {"owner": self.rpc.owner})
        except TransportError as e:
            if e.status == 401:
                self.waiter.wait(
                    4,
                    "Failed to permit Sonic Arcade contract, Maybe anti-bot protection, "
                    "try to play the games on the website first.",
                    level="WARNING",
                )
                try:
                    self.create_nonce()
                except NonceError as nonce_error:
                    self.waiter.log.warning(str(nonce_error))
            raise PermitFlowError(f"Failed to Create Sonic Arcade Sessions: {e}") from e

        if response.error or response.status != 200:
            raise PermitFlowError(f"Failed to Create Sonic Arcade Sessions: {response.error_message}")

        try:
            typed = json.loads(response.result["typedMessage"])["json"]
            domain, types, message = typed["domain"], typed["types"], typed["message"]
        except (KeyError, TypeError, ValueError) as e:
            raise PermitFlowError(f"Malformed permit typed message: {e}") from e

        self.waiter.wait(0.5, "Successfully create permit")
        self.waiter.wait(0.5, "Approving permit message")
        self.signature = self.wallet.sign_typed_data(domain, types, message)
        return self.signature

    def submit_permit(self):
        self.waiter.wait(0.5, "Submitting contract permit")
        try:
            response = self.rpc.call("permit", {"owner": self.rpc.owner, "signature": self.signature})
        except TransportError as e:
            raise PermitSubmissionError(f"Failed to submit permit: {e}") from e
        if response.error:
            raise PermitSubmissionError(f"Failed to submit permit: {response.error_message}")
        self.part = response.result.get("hashKey")
        self.waiter.wait(0.5, "Permit submitted successfully")
        return self.part
