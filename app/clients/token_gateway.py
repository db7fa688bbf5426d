# app/clients/token_gateway.py

import asyncio
import logging
import time
from dataclasses import dataclass

from eth_account import Account
from web3 import Web3
from web3.exceptions import TimeExhausted, TransactionNotFound, Web3Exception

from app.core.config import settings
from app.core.exceptions import GatewayError, TransferTimeout

logger = logging.getLogger(__name__)

# Минимальный ERC-20 ABI: нам нужен только transfer
ERC20_TRANSFER_ABI = [
    {
        "constant": False,
        "inputs": [
            {"name": "_to", "type": "address"},
            {"name": "_value", "type": "uint256"},
        ],
        "name": "transfer",
        "outputs": [{"name": "", "type": "bool"}],
        "type": "function",
    },
]

GAS_LIMIT_MULTIPLIER = 1.2


@dataclass
class TransferReceipt:
    hash: str


class TokenGateway:
    """
    Асинхронная обертка над ERC-20 контрактом токена.
    web3 синхронный, поэтому каждый RPC-вызов уходит в отдельный поток.

    Перевод идет в два шага. До отправки в сеть (оценка газа, сборка, подпись)
    любая ошибка означает, что средства точно не ушли: GatewayError.
    После send_raw_transaction нода могла принять транзакцию, даже если ответ
    потерялся, поэтому любая ошибка дальше дает TransferTimeout с хэшем.
    """
    def __init__(self, rpc_url: str, contract_address: str, private_key: str):
        self.w3 = Web3(Web3.HTTPProvider(
            rpc_url, request_kwargs={"timeout": settings.WEB3_REQUEST_TIMEOUT_SECONDS}
        ))
        self.contract_address = contract_address
        self.account = Account.from_key(private_key) if private_key else None
        # Nonce берем под замком, иначе параллельные выплаты получат одинаковый nonce
        self._nonce_lock = asyncio.Lock()

    def _build_signed_transfer(self, to_address: str, amount: int):
        """Оценивает газ, собирает и подписывает transfer. SYNC - вызывается в потоке."""
        contract = self.w3.eth.contract(
            address=Web3.to_checksum_address(self.contract_address), abi=ERC20_TRANSFER_ABI
        )
        func = contract.functions.transfer(Web3.to_checksum_address(to_address), amount)

        sender = self.account.address
        gas_est = func.estimate_gas({"from": sender})
        txn = func.build_transaction({
            "from": sender,
            "gas": int(gas_est * GAS_LIMIT_MULTIPLIER),
            "gasPrice": self.w3.eth.gas_price,
            "nonce": self.w3.eth.get_transaction_count(sender, "pending"),
            "chainId": self.w3.eth.chain_id,
        })
        return self.account.sign_transaction(txn)

    def _broadcast(self, signed) -> None:
        self.w3.eth.send_raw_transaction(signed.raw_transaction)

    def _wait_for_receipt(self, tx_hash: str, timeout: float) -> int:
        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
        return receipt["status"]

    async def transfer(self, wallet_address: str, amount: int, timeout: float | None = None) -> TransferReceipt:
        """
        Переводит `amount` (в минимальных единицах) на `wallet_address`
        и ждет подтверждения не дольше `timeout` секунд.

        GatewayError - перевод точно не прошел.
        TransferTimeout - исход неизвестен, хэш внутри.
        """
        if not self.account or not self.contract_address:
            raise GatewayError("Payout wallet or token contract is not configured")

        timeout = timeout or settings.TRANSFER_TIMEOUT_SECONDS
        deadline = time.monotonic() + timeout

        # Замок держим до конца отправки: поток с send_raw_transaction не прерывается
        async with self._nonce_lock:
            try:
                signed = await asyncio.to_thread(self._build_signed_transfer, wallet_address, amount)
            except (Web3Exception, ValueError, OSError) as e:
                logger.error(f"Transfer of {amount} to {wallet_address} was not sent: {e}", exc_info=True)
                raise GatewayError(str(e))

            tx_hash = Web3.to_hex(signed.hash)
            try:
                await asyncio.to_thread(self._broadcast, signed)
            except Exception as e:
                logger.error(f"Broadcast of {tx_hash} ({amount} to {wallet_address}) has unknown outcome: {e}", exc_info=True)
                raise TransferTimeout(tx_hash) from e

        logger.info(f"Transfer sent: {amount} to {wallet_address}, hash: {tx_hash}")

        try:
            status = await asyncio.to_thread(
                self._wait_for_receipt, tx_hash, max(deadline - time.monotonic(), 0.1)
            )
        except TimeExhausted:
            logger.warning(f"No receipt for {tx_hash} within {timeout}s. Outcome is unknown.")
            raise TransferTimeout(tx_hash)
        except Exception as e:
            logger.error(f"Lost track of transfer {tx_hash}: {e}", exc_info=True)
            raise TransferTimeout(tx_hash) from e

        if status != 1:
            logger.error(f"Transfer {tx_hash} reverted on-chain.")
            raise GatewayError("Transfer reverted on-chain", tx_hash=tx_hash)

        return TransferReceipt(hash=tx_hash)

    def _get_receipt_status(self, tx_hash: str) -> str:
        try:
            receipt = self.w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return "pending"
        return "completed" if receipt["status"] == 1 else "failed"

    async def get_transfer_status(self, tx_hash: str) -> str:
        """'completed', 'failed' или 'pending' (квитанции еще нет)."""
        try:
            return await asyncio.to_thread(self._get_receipt_status, tx_hash)
        except (Web3Exception, OSError) as e:
            raise GatewayError(str(e), tx_hash=tx_hash)


# Создаем синглтон
token_gateway = TokenGateway(
    rpc_url=settings.WEB3_RPC_URL,
    contract_address=settings.TOKEN_CONTRACT_ADDRESS,
    private_key=settings.PAYOUT_PRIVATE_KEY,
)

def get_token_gateway() -> TokenGateway:
    """Зависимость FastAPI: в тестах подменяется через dependency_overrides."""
    return token_gateway
