# app/services/referral.py
import logging
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.clients.token_gateway import TokenGateway
from app.core.config import settings
from app.core.exceptions import (
    GatewayError,
    InvalidRewardValueError,
    MissingWalletError,
    NoReferrerError,
    ReferralCycleError,
    StoreError,
    TransferTimeout,
)
from app.crud import core_team as crud_core_team
from app.crud import referral as crud_referral
from app.crud import transaction as crud_transaction
from app.crud import user as crud_user
from app.models.referral import Referral
from app.models.user import User
from app.schemas.referral import DistributionResult, TierOutcome

logger = logging.getLogger(__name__)

BPS_DENOMINATOR = 10_000

# --- Дерево рефералов ---

def iter_ancestor_ids(db: Session, user_id: int) -> Iterator[int]:
    """
    Идет вверх по цепочке "кто пригласил" и отдает ID предков,
    начиная с прямого реферера. Итеративно, без рекурсии.
    """
    visited = {user_id}
    edge = crud_referral.get_referral_by_referred_id(db, referred_id=user_id)
    while edge is not None:
        current = edge.referrer_id
        if current in visited:
            logger.error(f"Referral cycle detected while walking up from user {user_id} (at user {current}).")
            raise ReferralCycleError(user_id)
        visited.add(current)
        yield current
        edge = crud_referral.get_referral_by_referred_id(db, referred_id=current)


def find_root_user(db: Session, user_id: int) -> User | None:
    """
    Находит корень цепочки - самого верхнего предка, которого никто не приглашал.
    Если самого пользователя никто не приглашал, корня нет: возвращает None.
    """
    root_id = None
    for root_id in iter_ancestor_ids(db, user_id):
        pass
    if root_id is None:
        return None
    return crud_user.get_user_by_id(db, root_id)


def resolve_reward_root(db: Session, direct_referrer: User, include_direct_referrer: bool | None = None) -> User | None:
    """
    Кому положен бонус корня. Цепочка ищется от прямого реферера, поэтому
    для одноуровневой цепочки корня нет, если не включен
    ROOT_REWARD_INCLUDES_DIRECT_REFERRER.
    """
    if include_direct_referrer is None:
        include_direct_referrer = settings.ROOT_REWARD_INCLUDES_DIRECT_REFERRER

    root = find_root_user(db, direct_referrer.id)
    if root is None and include_direct_referrer:
        return direct_referrer
    return root


def link_referral(db: Session, referrer: User, referred: User) -> Referral | None:
    """
    Создает связь referrer -> referred, если она не нарушает дерево.
    У пользователя может быть только один реферер; повторная попытка вернет None.
    """
    if referrer.id == referred.id:
        raise ReferralCycleError(referred.id)
    if crud_referral.get_referral_by_referred_id(db, referred_id=referred.id):
        logger.warning(f"User {referred.id} already has a referrer. Skipping link from {referrer.id}.")
        return None
    if referred.id in iter_ancestor_ids(db, referrer.id):
        raise ReferralCycleError(referred.id)

    referral = crud_referral.create_referral(db, referrer_id=referrer.id, referred_id=referred.id)
    logger.info(f"Referral link created: referrer_id={referrer.id} -> referred_id={referred.id}")
    return referral


def get_all_referrals(db: Session, referrer_id: int | None = None) -> list[Referral]:
    return crud_referral.get_referrals(db, referrer_id=referrer_id)

# --- Расчет наград ---

def parse_reward_value(value) -> int:
    """
    Переводит сумму в целое число минимальных единиц.
    float не принимаем: округление на больших суммах в wei недопустимо.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise InvalidRewardValueError(f"Reward value must be an integer, got {value!r}")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        parsed = int(value.strip())
    else:
        raise InvalidRewardValueError(f"Reward value must be a non-negative integer string, got {value!r}")
    if parsed < 0:
        raise InvalidRewardValueError("Reward value must be non-negative")
    return parsed


def compute_tier_amount(gross_value: int, bps: int) -> int:
    """Доля в базисных пунктах, с округлением вниз."""
    return gross_value * bps // BPS_DENOMINATOR


def build_payout_key(referred_user_id: int, event_id: str, tier: str) -> str:
    return f"{referred_user_id}:{event_id}:{tier}"

# --- Выплата ---

async def _pay_tier(
    db: Session,
    gateway: TokenGateway,
    tier: str,
    recipient: User,
    amount: int,
    referred_user_id: int,
    event_id: str,
    timeout: float | None,
) -> TierOutcome:
    """Одна ступень выплаты: намерение -> перевод -> фиксация результата."""
    outcome = TierOutcome(tier=tier, status="skipped", amount=str(amount), recipient_id=recipient.id)

    if amount <= 0:
        logger.info(f"{tier} reward for referred user {referred_user_id} is zero. Nothing to send.")
        return outcome.model_copy(update={"reason": "zero_amount"})

    payout_key = build_payout_key(referred_user_id, event_id, tier)
    intent = crud_transaction.create_reward_intent(
        db,
        user_id=recipient.id,
        amount=amount,
        tier=tier,
        referred_user_id=referred_user_id,
        source_event_id=event_id,
        payout_key=payout_key,
    )
    if intent is None:
        existing = crud_transaction.get_transaction_by_payout_key(db, payout_key)
        logger.warning(f"Payout '{payout_key}' already recorded. Not sending it again.")
        return outcome.model_copy(update={
            "status": "duplicate",
            "transaction_id": existing.id if existing else None,
            "transaction_hash": existing.transaction_hash if existing else None,
            "reason": f"already {existing.status}" if existing else "already recorded",
        })

    try:
        receipt = await gateway.transfer(recipient.wallet_address, amount, timeout=timeout)
    except GatewayError as e:
        # Средства не ушли: убираем намерение, чтобы выплату можно было повторить
        crud_transaction.delete_transaction(db, intent)
        logger.error(f"{tier} reward {amount} to user {recipient.id} failed: {e.reason}")
        return outcome.model_copy(update={"status": "failed", "reason": e.reason})
    except TransferTimeout as e:
        crud_transaction.mark_transaction_unknown(db, intent, e.tx_hash)
        logger.warning(f"{tier} reward {amount} to user {recipient.id} has unknown outcome (hash={e.tx_hash}).")
        return outcome.model_copy(update={
            "status": "unknown",
            "transaction_id": intent.id,
            "transaction_hash": e.tx_hash,
            "reason": "timeout",
        })

    transaction = crud_transaction.complete_transaction(db, intent, receipt.hash)
    logger.info(f"{tier} reward {amount} sent to user {recipient.id}, hash: {receipt.hash}")
    return outcome.model_copy(update={
        "status": "completed",
        "transaction_id": transaction.id,
        "transaction_hash": transaction.transaction_hash,
    })


async def _distribute(
    db: Session,
    referred_user_id: int,
    gross: int,
    event_id: str,
    gateway: TokenGateway,
    timeout: float | None,
    include_direct_referrer: bool | None,
) -> DistributionResult:
    # 1. Прямой реферер
    referral = crud_referral.get_referral_by_referred_id(db, referred_id=referred_user_id)
    if referral is None:
        raise NoReferrerError(referred_user_id)
    referrer = referral.referrer

    # 2-4. Прямая награда
    if not referrer.wallet_address:
        raise MissingWalletError(referrer.id)
    direct_amount = compute_tier_amount(gross, settings.DIRECT_REWARD_BPS)
    direct = await _pay_tier(db, gateway, "direct", referrer, direct_amount, referred_user_id, event_id, timeout)

    # 5-6. Корень цепочки и его право на бонус
    skipped_root = TierOutcome(tier="root", status="skipped")
    try:
        root = resolve_reward_root(db, referrer, include_direct_referrer)
    except ReferralCycleError:
        return DistributionResult(direct=direct, root=skipped_root.model_copy(update={"status": "failed", "reason": "referral_cycle"}))

    if root is None:
        return DistributionResult(direct=direct, root=skipped_root.model_copy(update={"reason": "no_root"}))
    if not crud_core_team.get_core_team_membership(db, root.id):
        return DistributionResult(direct=direct, root=skipped_root.model_copy(update={"recipient_id": root.id, "reason": "not_core_team"}))

    # 7-8. Бонус корня, независимо от исхода прямой награды
    root_amount = compute_tier_amount(gross, settings.ROOT_REWARD_BPS)
    if not root.wallet_address:
        logger.warning(f"Root user {root.id} has no wallet address. Root reward not sent.")
        root_outcome = TierOutcome(tier="root", status="failed", amount=str(root_amount), recipient_id=root.id, reason="missing_wallet")
    else:
        root_outcome = await _pay_tier(db, gateway, "root", root, root_amount, referred_user_id, event_id, timeout)

    return DistributionResult(direct=direct, root=root_outcome)


async def distribute_reward(
    db: Session,
    referred_user_id: int,
    gross_value,
    event_id: str,
    gateway: TokenGateway,
    timeout: float | None = None,
    include_direct_referrer: bool | None = None,
) -> DistributionResult:
    """
    Распределяет награду за приглашенного пользователя:
    10% прямому рефереру и 2.5% корню цепочки, если он в core team.
    Ступени независимы: сбой второй не отменяет первую.
    Повтор с тем же event_id ничего не отправит повторно.
    """
    gross = parse_reward_value(gross_value)
    logger.info(f"Distributing reward for referred user {referred_user_id}: value={gross}, event={event_id}")
    try:
        result = await _distribute(db, referred_user_id, gross, event_id, gateway, timeout, include_direct_referrer)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Store error while distributing reward for user {referred_user_id}", exc_info=True)
        raise StoreError(str(e)) from e

    logger.info(
        f"Reward distribution for user {referred_user_id} done: "
        f"direct={result.direct.status}, root={result.root.status}"
    )
    return result
