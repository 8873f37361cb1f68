import pytest

from sonic_arcade.errors import NonceError, PermitFlowError, PermitSubmissionError, TransportError
from sonic_arcade.permit import PermitEngine

from conftest import OWNER, err, ok, typed_message_reply


@pytest.fixture
def engine(rpc, wallet, waiter):
    return PermitEngine(rpc, wallet, waiter)


class TestAuthorize:
    def test_full_sequence(self, engine, transport, wallet):
        transport.reply("permitTypedMessage", typed_message_reply())
        transport.reply("permit", ok({"hashKey": "hash-key-1"}))

        assert engine.authorize() == "hash-key-1"

        assert transport.rpc_methods == ["createNonce", "permitTypedMessage", "permit"]
        assert engine.authorized
        wallet.sign_typed_data.assert_called_once_with(
            {"name": "Arcade", "version": "1", "chainId": 64165},
            {"Permit": [{"name": "owner", "type": "address"}]},
            {"owner": OWNER},
        )
        assert transport.calls[2].body["params"] == {"owner": OWNER, "signature": "0xtypedsig"}

    def test_request_ids_follow_call_order(self, engine, transport):
        transport.reply("permitTypedMessage", typed_message_reply())
        engine.authorize()
        assert transport.request_ids == [1, 2, 3]

    def test_can_refresh(self, engine, transport):
        transport.reply("permitTypedMessage", typed_message_reply())
        transport.reply("permit", ok({"hashKey": "first"}), ok({"hashKey": "second"}))

        engine.authorize()
        engine.authorize()

        assert engine.part == "second"
        assert transport.rpc_methods.count("createNonce") == 2


class TestNonce:
    def test_error_envelope(self, engine, transport):
        transport.reply("createNonce", err("unknown user"))
        with pytest.raises(NonceError, match="play the games on the website"):
            engine.create_nonce()

    def test_transport_failure(self, engine, transport):
        transport.reply("createNonce", TransportError(500, "Internal Server Error"))
        with pytest.raises(NonceError):
            engine.create_nonce()


class TestTypedMessage:
    def test_401_retries_nonce_once_then_fails(self, engine, transport):
        transport.reply("permitTypedMessage", TransportError(401, "Unauthorized"))

        with pytest.raises(PermitFlowError):
            engine.request_permit_typed_message()

        assert transport.rpc_methods == ["permitTypedMessage", "createNonce"]

    def test_401_with_failing_nonce_still_permit_flow_error(self, engine, transport):
        transport.reply("permitTypedMessage", TransportError(401, "Unauthorized"))
        transport.reply("createNonce", err("nope"))

        with pytest.raises(PermitFlowError):
            engine.request_permit_typed_message()

    def test_other_status_fails_without_nonce(self, engine, transport):
        transport.reply("permitTypedMessage", TransportError(503, "Service Unavailable"))

        with pytest.raises(PermitFlowError):
            engine.request_permit_typed_message()
        assert transport.rpc_methods == ["permitTypedMessage"]

    def test_error_envelope(self, engine, transport):
        transport.reply("permitTypedMessage", err("no session"))
        with pytest.raises(PermitFlowError, match="no session"):
            engine.request_permit_typed_message()

    def test_malformed_document(self, engine, transport, wallet):
        transport.reply("permitTypedMessage", ok({"typedMessage": "{not json"}))
        with pytest.raises(PermitFlowError):
            engine.request_permit_typed_message()
        wallet.sign_typed_data.assert_not_called()


class TestSubmit:
    def test_error_carries_backend_message(self, engine, transport):
        transport.reply("permit", err("signature mismatch"))
        with pytest.raises(PermitSubmissionError, match="signature mismatch"):
            engine.submit_permit()
        assert engine.part is None

    def test_failed_submit_stops_authorize(self, engine, transport):
        transport.reply("permitTypedMessage", typed_message_reply())
        transport.reply("permit", err("expired"))
        with pytest.raises(PermitSubmissionError):
            engine.authorize()
        assert not engine.authorized
