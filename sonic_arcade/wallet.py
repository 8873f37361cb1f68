from eth_account import Account
from eth_account.messages import encode_defunct, encode_typed_data
from web3 import Web3

from sonic_arcade.config import CHAIN_RPC_URL, HTTP_TIMEOUT
from sonic_arcade.errors import WalletError
from sonic_arcade.utils import get_private_key_type


def _hex_signature(signed):
    sig = signed.signature.hex()
    return sig if sig.startswith("0x") else "0x" + sig


class Wallet:
    """Local signer for one account, built from a private key or a mnemonic."""

    def __init__(self, account, rpc_url=CHAIN_RPC_URL):
        self._account = account
        self.rpc_url = rpc_url
        self._w3 = None

    @classmethod
    def from_secret(cls, secret, rpc_url=CHAIN_RPC_URL):
        kind = get_private_key_type(secret)
        try:
            if kind == "Private Key":
                s = secret.strip()
                pk = s if s.startswith("0x") else "0x" + s
                return cls(Account.from_key(pk), rpc_url)
            if kind == "Mnemonic":
                Account.enable_unaudited_hdwallet_features()
                return cls(Account.from_mnemonic(secret.strip()), rpc_url)
        except Exception as e:
            raise WalletError(f"invalid_key:{e}") from e
        raise WalletError("Invalid account Secret Phrase or Private Key")

    @property
    def address(self):
        return self._account.address

    def sign_message(self, text):
        return _hex_signature(self._account.sign_message(encode_defunct(text=text)))

    def sign_typed_data(self, domain, types, message):
        # the domain type is derived from domain_data
        types = {k: v for k, v in types.items() if k != "EIP712Domain"}
        signable = encode_typed_data(domain_data=domain, message_types=types, message_data=message)
        return _hex_signature(self._account.sign_message(signable))

    def get_balance(self):
        if self._w3 is None:
            self._w3 = Web3(Web3.HTTPProvider(self.rpc_url, request_kwargs={"timeout": HTTP_TIMEOUT}))
        wei = self._w3.eth.get_balance(self.address)
        return float(Web3.from_wei(wei, "ether"))
