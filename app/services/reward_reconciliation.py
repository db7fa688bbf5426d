# app/services/reward_reconciliation.py

import logging

from app.clients.token_gateway import TokenGateway, token_gateway
from app.core.config import settings
from app.core.exceptions import GatewayError
from app.crud import transaction as crud_transaction
from app.db.session import SessionLocal

logger = logging.getLogger(__name__)


async def reconcile_reward_transactions_task(gateway: TokenGateway = token_gateway, session_factory=SessionLocal):
    """
    Фоновая задача: сверяет с блокчейном награды, исход которых неизвестен.
    Движок выплат никогда не повторяет такие переводы сам - только эта сверка
    переводит их в 'completed' или 'failed'.
    """
    logger.info("--- Starting scheduled job: Reconcile Reward Transactions ---")

    with session_factory() as db:
        # 1. Записи с хэшем: спрашиваем квитанцию
        for transaction in crud_transaction.get_unsettled_reward_transactions(db):
            try:
                chain_status = await gateway.get_transfer_status(transaction.transaction_hash)
            except GatewayError as e:
                logger.warning(f"Could not check transaction {transaction.id} ({transaction.transaction_hash}): {e.reason}")
                continue

            if chain_status == "completed":
                crud_transaction.complete_transaction(db, transaction, transaction.transaction_hash)
                logger.info(f"Reward transaction {transaction.id} confirmed on-chain.")
            elif chain_status == "failed":
                crud_transaction.mark_transaction_failed(db, transaction)
                logger.warning(f"Reward transaction {transaction.id} failed on-chain. Payout key released.")

        # 2. Намерения без хэша: процесс упал до ответа шлюза, сверять не по чему
        for transaction in crud_transaction.get_stale_reward_intents(db, settings.STALE_INTENT_MINUTES):
            crud_transaction.mark_transaction_unknown(db, transaction, None)
            logger.error(
                f"Reward intent {transaction.id} (payout {transaction.payout_key}) has no hash. "
                "Marked as unknown, manual review required."
            )

    logger.info("--- Finished scheduled job: Reconcile Reward Transactions ---")
