from unittest.mock import MagicMock

import pytest
from web3.exceptions import TransactionNotFound

from core.abis import ERC20_ABI, PLAYGAME_ABI
from core.chain_bridge import ZERO_ADDRESS, ChainBridge
from core.exceptions import ChainCallFailure
from services.naming_service import decode_bytes32, encode_bytes32, generate_match_id
from tests.conftest import ONE_GT, P1, P2, PLAYGAME

GAMETOKEN = "0x8888888888888888888888888888888888888888"
OPERATOR = "0x7777777777777777777777777777777777777777"
TX_BYTES = bytes.fromhex("ab" * 32)


@pytest.fixture
def contracts():
    return {"playgame": MagicMock(name="playgame"), "token": MagicMock(name="token")}


@pytest.fixture
def w3(contracts):
    w3 = MagicMock()

    def _contract(address, abi):
        return contracts["playgame"] if address == PLAYGAME else contracts["token"]

    w3.eth.contract.side_effect = _contract
    w3.eth.get_transaction_count.return_value = 7
    w3.eth.send_raw_transaction.return_value = TX_BYTES
    w3.eth.wait_for_transaction_receipt.return_value = {"status": 1}
    return w3


@pytest.fixture
def account():
    account = MagicMock()
    account.address = OPERATOR
    account.sign_transaction.return_value.raw_transaction = b"signed"
    return account


@pytest.fixture
def chain(w3, account):
    return ChainBridge(w3, account, PLAYGAME, GAMETOKEN, chain_id=31337, tx_timeout=5)


def test_match_id_fits_bytes32():
    match_id = generate_match_id()

    assert match_id.startswith("match_")
    assert len(match_id) == 30
    encoded = encode_bytes32(match_id)
    assert len(encoded) == 32
    assert decode_bytes32(encoded) == match_id


def test_encode_bytes32_rejects_long_text():
    with pytest.raises(ValueError):
        encode_bytes32("x" * 32)


async def test_register_match_sends_signed_tx(chain, w3, account, contracts):
    match_id = "match_abc"
    result = await chain.register_match(match_id, P1, P2, 10 * ONE_GT)

    assert result.ok
    assert result.tx_hash == "0x" + "ab" * 32
    contracts["playgame"].functions.createMatch.assert_called_once_with(
        encode_bytes32(match_id), P1, P2, 10 * ONE_GT
    )
    tx_params = contracts["playgame"].functions.createMatch.return_value.build_transaction.call_args[0][0]
    assert tx_params == {"from": OPERATOR, "nonce": 7, "chainId": 31337}
    w3.eth.get_transaction_count.assert_called_once_with(OPERATOR, "pending")
    w3.eth.send_raw_transaction.assert_called_once_with(b"signed")


async def test_commit_result_reverted_is_failure(chain, w3, contracts):
    w3.eth.wait_for_transaction_receipt.return_value = {"status": 0}

    result = await chain.commit_result("match_abc", P1)

    assert not result.ok
    assert "reverted" in result.error
    contracts["playgame"].functions.commitResult.assert_called_once_with(encode_bytes32("match_abc"), P1)


async def test_rpc_error_is_failure_not_exception(chain, w3):
    w3.eth.send_raw_transaction.side_effect = ValueError("nonce too low")

    result = await chain.register_match("match_abc", P1, P2, ONE_GT)

    assert not result.ok
    assert result.error == "nonce too low"


async def test_overlong_match_id_is_failure(chain, w3):
    result = await chain.commit_result("m" * 40, P1)

    assert not result.ok
    w3.eth.send_raw_transaction.assert_not_called()


async def test_chain_id_fetched_when_not_configured(w3, account, contracts):
    w3.eth.chain_id = 10143
    chain = ChainBridge(w3, account, PLAYGAME, GAMETOKEN)

    await chain.register_match("match_abc", P1, P2, ONE_GT)

    tx_params = contracts["playgame"].functions.createMatch.return_value.build_transaction.call_args[0][0]
    assert tx_params["chainId"] == 10143


async def test_balance_and_allowance(chain, contracts):
    contracts["token"].functions.balanceOf.return_value.call.return_value = 42
    contracts["token"].functions.allowance.return_value.call.return_value = 7

    assert await chain.balance_of(P1) == 42
    assert await chain.allowance(P1) == 7
    contracts["token"].functions.allowance.assert_called_once_with(P1, PLAYGAME)


async def test_read_failure_raises(chain, contracts):
    contracts["token"].functions.balanceOf.return_value.call.side_effect = ConnectionError("down")

    with pytest.raises(ChainCallFailure):
        await chain.balance_of(P1)


async def test_get_match_decodes_struct(chain, contracts):
    contracts["playgame"].functions.matches.return_value.call.return_value = (
        P1, P2, 10 * ONE_GT, 1700000000, 3, ZERO_ADDRESS,
    )

    info = await chain.get_match("match_abc")

    assert info["status_name"] == "SETTLED"
    assert info["stake_wei"] == str(10 * ONE_GT)
    assert info["winner"] is None


async def test_get_receipt(chain, w3):
    w3.eth.get_transaction_receipt.return_value = {"from": P1, "to": PLAYGAME, "status": 1, "logs": []}
    assert await chain.get_receipt("0x01") == {"from": P1, "to": PLAYGAME, "status": 1}

    w3.eth.get_transaction_receipt.side_effect = TransactionNotFound("missing")
    assert await chain.get_receipt("0x02") is None


def test_abis_only_declare_called_functions():
    assert {f["name"] for f in PLAYGAME_ABI} == {"createMatch", "commitResult", "matches"}
    assert {f["name"] for f in ERC20_ABI} == {"balanceOf", "allowance"}
