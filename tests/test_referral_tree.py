# tests/test_referral_tree.py
import random

import pytest

from app.core.exceptions import ReferralCycleError
from app.crud import referral as crud_referral
from app.models.referral import Referral
from app.services import referral as referral_service


def test_find_root_walks_to_top_of_chain(db_session, make_user):
    # a <- b <- c <- d
    a = make_user()
    b = make_user(referrer=a)
    c = make_user(referrer=b)
    d = make_user(referrer=c)

    assert referral_service.find_root_user(db_session, d.id).id == a.id
    assert referral_service.find_root_user(db_session, c.id).id == a.id
    assert referral_service.find_root_user(db_session, b.id).id == a.id


def test_user_without_referrer_has_no_root(db_session, make_user):
    a = make_user()
    make_user(referrer=a)

    assert referral_service.find_root_user(db_session, a.id) is None


def test_find_root_terminates_on_random_forest(db_session, make_user):
    rng = random.Random(42)
    users = [make_user()]
    for _ in range(40):
        # Реферер всегда создан раньше - граф ацикличен
        parent = rng.choice(users + [None])
        users.append(make_user(referrer=parent))

    for current in users:
        root = referral_service.find_root_user(db_session, current.id)
        if root is None:
            assert crud_referral.get_referral_by_referred_id(db_session, current.id) is None
        else:
            assert crud_referral.get_referral_by_referred_id(db_session, root.id) is None


def test_cycle_in_data_is_detected(db_session, make_user):
    a = make_user()
    b = make_user(referrer=a)
    # Повреждаем данные в обход сервиса: a приглашен b
    db_session.add(Referral(referrer_id=b.id, referred_id=a.id))
    db_session.commit()

    with pytest.raises(ReferralCycleError):
        referral_service.find_root_user(db_session, b.id)


def test_link_referral_rejects_self_and_cycles(db_session, make_user):
    a = make_user()
    b = make_user(referrer=a)

    with pytest.raises(ReferralCycleError):
        referral_service.link_referral(db_session, referrer=a, referred=a)
    with pytest.raises(ReferralCycleError):
        referral_service.link_referral(db_session, referrer=b, referred=a)
    assert crud_referral.get_referral_by_referred_id(db_session, a.id) is None


def test_link_referral_keeps_first_referrer(db_session, make_user):
    a = make_user()
    other = make_user()
    b = make_user(referrer=a)

    assert referral_service.link_referral(db_session, referrer=other, referred=b) is None
    assert crud_referral.get_referral_by_referred_id(db_session, b.id).referrer_id == a.id


def test_link_referral_creates_edge(db_session, make_user):
    a = make_user()
    b = make_user()

    edge = referral_service.link_referral(db_session, referrer=a, referred=b)

    assert edge.referrer_id == a.id
    assert edge.referred_id == b.id


def test_reward_root_policy_for_single_level_chain(db_session, make_user):
    a = make_user()

    assert referral_service.resolve_reward_root(db_session, a, include_direct_referrer=False) is None
    assert referral_service.resolve_reward_root(db_session, a, include_direct_referrer=True).id == a.id


def test_reward_root_for_two_level_chain(db_session, make_user):
    root = make_user()
    a = make_user(referrer=root)

    for policy in (False, True):
        assert referral_service.resolve_reward_root(db_session, a, include_direct_referrer=policy).id == root.id
