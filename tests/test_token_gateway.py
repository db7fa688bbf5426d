# tests/test_token_gateway.py
from types import SimpleNamespace

import pytest
import requests
from web3.exceptions import ContractLogicError, TimeExhausted, TransactionNotFound

from app.clients.token_gateway import TokenGateway
from app.core.exceptions import GatewayError, TransferTimeout
from app.models.transaction import Transaction
from app.services.referral import distribute_reward

CONTRACT = "0x" + "33" * 20
PRIVATE_KEY = "0x" + "11" * 32
WALLET = "0x" + "22" * 20
SIGNED = SimpleNamespace(hash=bytes.fromhex("ab" * 32), raw_transaction=b"\x01signed")
SIGNED_HASH = "0x" + "ab" * 32


@pytest.fixture
def token(mocker):
    """Настоящий шлюз, у которого RPC-нода заменена моком."""
    gateway = TokenGateway(rpc_url="http://localhost:8545", contract_address=CONTRACT, private_key=PRIVATE_KEY)
    gateway.w3 = mocker.MagicMock()
    return gateway


@pytest.fixture
def signed(mocker, token):
    return mocker.patch.object(token, "_build_signed_transfer", return_value=SIGNED)


async def test_confirmed_transfer_returns_hash(token, signed):
    token.w3.eth.wait_for_transaction_receipt.return_value = {"status": 1}

    receipt = await token.transfer(WALLET, 100, timeout=5)

    assert receipt.hash == SIGNED_HASH
    signed.assert_called_once_with(WALLET, 100)
    token.w3.eth.send_raw_transaction.assert_called_once_with(b"\x01signed")


async def test_unconfigured_gateway_refuses_to_send(mocker):
    gateway = TokenGateway(rpc_url="http://localhost:8545", contract_address="", private_key="")
    gateway.w3 = mocker.MagicMock()

    with pytest.raises(GatewayError):
        await gateway.transfer(WALLET, 100)

    gateway.w3.eth.send_raw_transaction.assert_not_called()


async def test_contract_revert_during_gas_estimation_is_a_failure(token):
    contract = token.w3.eth.contract.return_value
    contract.functions.transfer.return_value.estimate_gas.side_effect = ContractLogicError("execution reverted")

    with pytest.raises(GatewayError):
        await token.transfer(WALLET, 100, timeout=5)

    token.w3.eth.send_raw_transaction.assert_not_called()


async def test_network_error_before_broadcast_is_a_failure(mocker, token):
    mocker.patch.object(token, "_build_signed_transfer", side_effect=requests.exceptions.ConnectionError("refused"))

    with pytest.raises(GatewayError):
        await token.transfer(WALLET, 100, timeout=5)

    token.w3.eth.send_raw_transaction.assert_not_called()


async def test_lost_broadcast_response_is_unknown_with_hash(token, signed):
    token.w3.eth.send_raw_transaction.side_effect = requests.exceptions.ReadTimeout("read timed out")

    with pytest.raises(TransferTimeout) as exc_info:
        await token.transfer(WALLET, 100, timeout=5)

    assert exc_info.value.tx_hash == SIGNED_HASH
    token.w3.eth.wait_for_transaction_receipt.assert_not_called()


async def test_node_rejection_after_signing_is_unknown(token, signed):
    token.w3.eth.send_raw_transaction.side_effect = ValueError("already known")

    with pytest.raises(TransferTimeout) as exc_info:
        await token.transfer(WALLET, 100, timeout=5)

    assert exc_info.value.tx_hash == SIGNED_HASH


async def test_missing_receipt_is_unknown_with_hash(token, signed):
    token.w3.eth.wait_for_transaction_receipt.side_effect = TimeExhausted("no receipt")

    with pytest.raises(TransferTimeout) as exc_info:
        await token.transfer(WALLET, 100, timeout=5)

    assert exc_info.value.tx_hash == SIGNED_HASH


async def test_receipt_lookup_network_error_is_unknown(token, signed):
    token.w3.eth.wait_for_transaction_receipt.side_effect = requests.exceptions.ConnectionError("reset")

    with pytest.raises(TransferTimeout) as exc_info:
        await token.transfer(WALLET, 100, timeout=5)

    assert exc_info.value.tx_hash == SIGNED_HASH


async def test_reverted_receipt_is_a_failure_with_hash(token, signed):
    token.w3.eth.wait_for_transaction_receipt.return_value = {"status": 0}

    with pytest.raises(GatewayError) as exc_info:
        await token.transfer(WALLET, 100, timeout=5)

    assert exc_info.value.tx_hash == SIGNED_HASH


@pytest.mark.parametrize("receipt, expected", [({"status": 1}, "completed"), ({"status": 0}, "failed")])
async def test_transfer_status_from_receipt(token, receipt, expected):
    token.w3.eth.get_transaction_receipt.return_value = receipt

    assert await token.get_transfer_status(SIGNED_HASH) == expected


async def test_transfer_without_receipt_is_pending(token):
    token.w3.eth.get_transaction_receipt.side_effect = TransactionNotFound("not found")

    assert await token.get_transfer_status(SIGNED_HASH) == "pending"


async def test_transfer_status_rpc_error_is_reported(token):
    token.w3.eth.get_transaction_receipt.side_effect = requests.exceptions.ConnectionError("refused")

    with pytest.raises(GatewayError) as exc_info:
        await token.get_transfer_status(SIGNED_HASH)

    assert exc_info.value.tx_hash == SIGNED_HASH


async def test_lost_broadcast_is_never_paid_twice(db_session, make_user, token, signed):
    referrer = make_user()
    buyer = make_user(referrer=referrer)
    token.w3.eth.send_raw_transaction.side_effect = [requests.exceptions.ReadTimeout("read timed out"), None]
    token.w3.eth.wait_for_transaction_receipt.return_value = {"status": 1}

    first = await distribute_reward(db_session, buyer.id, "1000", "evt-1", token, timeout=5)
    second = await distribute_reward(db_session, buyer.id, "1000", "evt-1", token, timeout=5)

    assert first.direct.status == "unknown"
    assert first.direct.transaction_hash == SIGNED_HASH
    assert second.direct.status == "duplicate"
    assert token.w3.eth.send_raw_transaction.call_count == 1
    direct_tx, = db_session.query(Transaction).filter(Transaction.tier == "direct").all()
    assert (direct_tx.status, direct_tx.transaction_hash) == ("unknown", SIGNED_HASH)
