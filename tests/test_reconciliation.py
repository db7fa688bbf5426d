# tests/test_reconciliation.py
import contextlib
from datetime import datetime, timedelta, timezone

import pytest

from app.models.transaction import Transaction
from app.services.referral import distribute_reward
from app.services.reward_reconciliation import reconcile_reward_transactions_task


@pytest.fixture
def reconcile(db_session, gateway):
    async def _reconcile():
        await reconcile_reward_transactions_task(
            gateway=gateway, session_factory=lambda: contextlib.nullcontext(db_session)
        )
    return _reconcile


@pytest.fixture
async def unknown_direct(db_session, make_user, gateway):
    """Прямая награда, перевод которой завис до получения квитанции."""
    referrer = make_user()
    buyer = make_user(referrer=referrer)
    gateway.timeout_for.add(referrer.wallet_address)
    result = await distribute_reward(db_session, buyer.id, "1000", "evt-1", gateway)
    gateway.timeout_for.clear()
    return buyer, db_session.get(Transaction, result.direct.transaction_id)


async def test_confirmed_transfer_is_completed(db_session, gateway, reconcile, unknown_direct):
    _, tx = unknown_direct
    gateway.chain_statuses[tx.transaction_hash] = "completed"

    await reconcile()

    db_session.refresh(tx)
    assert tx.status == "completed"
    assert tx.payout_key is not None


async def test_failed_transfer_releases_payout_key(db_session, gateway, reconcile, unknown_direct):
    buyer, tx = unknown_direct
    gateway.chain_statuses[tx.transaction_hash] = "failed"

    await reconcile()

    db_session.refresh(tx)
    assert tx.status == "failed"
    assert tx.payout_key is None

    retry = await distribute_reward(db_session, buyer.id, "1000", "evt-1", gateway)
    assert retry.direct.status == "completed"


async def test_pending_and_unreachable_transfers_stay_unknown(db_session, gateway, reconcile, unknown_direct):
    _, tx = unknown_direct

    await reconcile()
    db_session.refresh(tx)
    assert tx.status == "unknown"

    gateway.chain_statuses[tx.transaction_hash] = "error"
    await reconcile()
    db_session.refresh(tx)
    assert tx.status == "unknown"


async def test_stale_intent_without_hash_becomes_unknown(db_session, make_user, reconcile):
    user = make_user()
    fresh = Transaction(
        user_id=user.id, amount="10", status="pending", type="reward", tier="direct", payout_key="1:fresh:direct"
    )
    stale = Transaction(
        user_id=user.id, amount="10", status="pending", type="reward", tier="direct", payout_key="1:stale:direct",
        created_at=datetime.now(timezone.utc) - timedelta(hours=2),
    )
    db_session.add_all([fresh, stale])
    db_session.commit()

    await reconcile()

    db_session.refresh(fresh)
    db_session.refresh(stale)
    assert fresh.status == "pending"
    assert stale.status == "unknown"
    assert stale.payout_key == "1:stale:direct"
