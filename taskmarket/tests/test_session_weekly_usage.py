from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from threading import Thread

import pytest

from taskmarket.app.entitlements import (
    Actor,
    ActorRole,
    PlanKey,
    SubscriptionStatus,
    start_of_iso_week,
)
from taskmarket.app.errors import Forbidden, NotFound, ValidationError


@pytest.mark.parametrize(
    "moment, expected",
    [
        (datetime(2024, 1, 8, 0, 0, tzinfo=timezone.utc), date(2024, 1, 8)),
        (datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc), date(2024, 1, 8)),
        (datetime(2024, 1, 14, 23, 59, tzinfo=timezone.utc), date(2024, 1, 8)),
        (datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc), date(2024, 1, 1)),
        (datetime(2023, 12, 31, 9, 0, tzinfo=timezone.utc), date(2023, 12, 25)),
    ],
)
def test_start_of_iso_week_is_monday(moment, expected):
    assert start_of_iso_week(moment) == expected


def test_register_provider_defaults_to_free_plan(sessions, provider):
    subscription = sessions.get_subscription(provider.id)

    assert subscription.plan_key == PlanKey.FREE
    assert subscription.status == SubscriptionStatus.ACTIVE
    assert subscription.ends_at is None


def test_register_onto_paid_plan_starts_renewal_window(sessions, clock):
    actor = Actor(id="prov-paid", display_name="Petra", role=ActorRole.PROVIDER)

    subscription = sessions.register_actor(actor, plan_key=PlanKey.PREMIUM).subscription

    assert subscription.starts_at == clock.now
    assert subscription.ends_at == clock.now + timedelta(days=30)
    assert sessions.get_subscription(actor.id) == subscription


def test_requesters_hold_no_subscription(sessions, requester):
    assert sessions.get_subscription(requester.id) is None

    other = Actor(id="req-2", display_name="Roman", role=ActorRole.REQUESTER)
    with pytest.raises(ValidationError):
        sessions.register_actor(other, plan_key=PlanKey.PRO)


def test_duplicate_registration_is_rejected(sessions, provider):
    with pytest.raises(ValidationError):
        sessions.register_actor(provider)


def test_unknown_actor_raises_not_found(sessions):
    assert sessions.find_actor("ghost") is None
    with pytest.raises(NotFound):
        sessions.get_actor("ghost")


def test_list_actors_returns_registered(sessions, requester, provider):
    assert {actor.id for actor in sessions.list_actors()} == {requester.id, provider.id}


def test_usage_starts_at_zero_for_current_week(sessions, provider, clock):
    usage = sessions.resolve_current_week_usage(provider.id)

    assert usage.count == 0
    assert usage.week_start == start_of_iso_week(clock.now)


def test_record_offer_submission_increments(sessions, provider):
    sessions.record_offer_submission(provider.id)
    usage = sessions.record_offer_submission(provider.id)

    assert usage.count == 2
    assert sessions.get_stored_usage(provider.id).count == 2


def test_usage_resets_when_week_rolls_over(sessions, provider, clock):
    for _ in range(3):
        sessions.record_offer_submission(provider.id)

    clock.now = datetime(2024, 1, 15, 0, 0, 1, tzinfo=timezone.utc)
    usage = sessions.resolve_current_week_usage(provider.id)

    assert usage.count == 0
    assert usage.week_start == date(2024, 1, 15)
    assert sessions.get_stored_usage(provider.id) == usage


def test_usage_within_same_week_is_kept(sessions, provider, clock):
    sessions.record_offer_submission(provider.id)
    clock.advance(days=4, hours=11)

    assert sessions.resolve_current_week_usage(provider.id).count == 1


def test_concurrent_submissions_do_not_lose_increments(sessions, provider):
    def submit():
        for _ in range(25):
            sessions.record_offer_submission(provider.id)

    threads = [Thread(target=submit) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sessions.get_stored_usage(provider.id).count == 100


def test_change_plan_applies_immediately_and_keeps_usage(sessions, provider, clock):
    for _ in range(3):
        sessions.record_offer_submission(provider.id)

    subscription = sessions.change_plan(provider.id, PlanKey.PRO)

    assert subscription.plan_key == PlanKey.PRO
    assert subscription.starts_at == clock.now
    assert subscription.ends_at == clock.now + timedelta(days=30)
    assert sessions.get_stored_usage(provider.id).count == 3


def test_downgrade_to_free_has_no_end_date(sessions, provider):
    sessions.change_plan(provider.id, PlanKey.PREMIUM)

    assert sessions.change_plan(provider.id, PlanKey.FREE).ends_at is None


def test_only_providers_change_plans(sessions, requester):
    with pytest.raises(Forbidden):
        sessions.change_plan(requester.id, PlanKey.PRO)


def test_load_session_resolves_usage_for_providers_only(sessions, requester, provider, clock):
    provider_session = sessions.load_session(provider.id)
    requester_session = sessions.load_session(requester.id)

    assert provider_session.usage.count == 0
    assert provider_session.as_of == clock.now
    assert requester_session.usage is None
    assert requester_session.subscription is None


def test_entitlement_payload_for_free_provider(entitlements, sessions, provider):
    sessions.record_offer_submission(provider.id)

    payload = entitlements.get_entitlement(provider.id)

    assert payload.plan == PlanKey.FREE
    assert payload.remaining_offers == 2
    assert payload.has_messaging is False
    assert payload.feature_flags["offers.weekly_cap"] == 3
    assert payload.week_start == date(2024, 1, 8)


def test_entitlement_payload_for_requester(entitlements, requester):
    payload = entitlements.get_entitlement(requester.id)

    assert payload.plan is None
    assert payload.remaining_offers is None
    assert payload.has_messaging is False
    assert payload.feature_flags == {}


def test_entitlement_reflects_plan_change_without_caching(entitlements, sessions, provider):
    assert entitlements.get_entitlement(provider.id).has_messaging is False

    sessions.change_plan(provider.id, PlanKey.PREMIUM)

    payload = entitlements.get_entitlement(provider.id)
    assert payload.has_messaging is True
    assert payload.remaining_offers is None


def test_expired_paid_plan_falls_back_to_free(entitlements, sessions, provider, clock):
    sessions.change_plan(provider.id, PlanKey.PRO)
    clock.advance(days=31)

    assert entitlements.get_entitlement(provider.id).plan == PlanKey.FREE
    assert entitlements.describe_plan(provider.id).key == PlanKey.FREE
