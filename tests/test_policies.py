"""
Tests for the policy lifecycle service.

Covers:
- Creation (tenant-scoped client check, duplicate numbers, validation)
- Transitions and their side effects
- Initial commission only on the first underwriting -> active edge
- Transition history
- Updates, soft delete
- Optimistic concurrency retries
"""

import os
from datetime import date
from decimal import Decimal

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm.exc import StaleDataError

from conftest import ACTOR, OTHER_TENANT, TENANT, TO_ACTIVE, at, policy_data, walk
from policy_ledger.config import settings
from policy_ledger.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from policy_ledger.models import Base, Client, CommissionType, PolicyStatus
from policy_ledger.services import policies as policy_service
from policy_ledger.services.commission import commission_ledger

S = PolicyStatus


async def _types(db, policy_id):
    return [e.entry_type for e in await commission_ledger(db, TENANT, policy_id)]


# ── Creation ──────────────────────────────────────────────


class TestCreatePolicy:
    async def test_creates_draft(self, db_session, make_policy):
        policy = await make_policy()

        assert policy.id is not None
        assert policy.status == S.DRAFT
        assert policy.tenant_id == TENANT
        assert policy.created_by == ACTOR
        assert policy.version == 1

    async def test_default_clawback_watch(self, db_session, make_policy):
        policy = await make_policy()
        assert policy.clawback_watch_until == date(2025, 12, 31)

    async def test_explicit_clawback_watch(self, db_session, make_policy):
        policy = await make_policy(clawback_watch_until=date(2025, 6, 30))
        assert policy.clawback_watch_until == date(2025, 6, 30)

    async def test_unknown_client(self, db_session, client):
        with pytest.raises(NotFoundError) as exc_info:
            await policy_service.create_policy(
                db_session, TENANT, ACTOR, policy_data(client.id + 999)
            )
        assert exc_info.value.resource == "Client"

    async def test_other_tenants_client_is_not_found(self, db_session, client, other_client):
        with pytest.raises(NotFoundError):
            await policy_service.create_policy(
                db_session, TENANT, ACTOR, policy_data(other_client.id)
            )

    async def test_duplicate_policy_number(self, db_session, make_policy):
        await make_policy(policy_number="POL-DUP")

        with pytest.raises(ConflictError):
            await make_policy(policy_number="POL-DUP")

    async def test_same_number_in_another_tenant(self, db_session, make_policy, other_client):
        await make_policy(policy_number="POL-SHARED")

        policy = await policy_service.create_policy(
            db_session, OTHER_TENANT, ACTOR,
            policy_data(other_client.id, policy_number="POL-SHARED"),
        )
        assert policy.tenant_id == OTHER_TENANT

    @pytest.mark.parametrize("field,value", [
        ("monthly_premium", 0),
        ("sum_assured", -100),
        ("initial_commission_pct", Decimal("1.5")),
        ("renewal_commission_pct", Decimal("-0.01")),
        ("product_category", "spaceship"),
    ])
    async def test_rejects_invalid_values(self, db_session, make_policy, field, value):
        with pytest.raises(ValidationError) as exc_info:
            await make_policy(**{field: value})
        assert exc_info.value.details[0]["field"] == field

    async def test_rejects_expiry_before_inception(self, db_session, make_policy):
        with pytest.raises(ValidationError):
            await make_policy(expiry_date=date(2023, 12, 31))


# ── Reads ─────────────────────────────────────────────────


class TestReadPolicies:
    async def test_get_other_tenant_is_not_found(self, db_session, make_policy):
        policy = await make_policy()

        with pytest.raises(NotFoundError):
            await policy_service.get_policy(db_session, OTHER_TENANT, policy.id)

    async def test_list_filters_by_status(self, db_session, make_policy, active_policy):
        await make_policy()

        active = await policy_service.list_policies(db_session, TENANT, status=S.ACTIVE)
        everything = await policy_service.list_policies(db_session, TENANT)

        assert [p.id for p in active] == [active_policy.id]
        assert len(everything) == 2

    async def test_list_is_tenant_scoped(self, db_session, make_policy):
        await make_policy()
        assert await policy_service.list_policies(db_session, OTHER_TENANT) == []


# ── Transitions ───────────────────────────────────────────


class TestTransitions:
    async def test_happy_path_to_active(self, db_session, active_policy):
        assert active_policy.status == S.ACTIVE
        assert active_policy.version == 4
        assert await _types(db_session, active_policy.id) == [CommissionType.INITIAL]

    async def test_invalid_edge(self, db_session, make_policy):
        policy = await make_policy()
        policy_id = policy.id

        with pytest.raises(InvalidTransitionError) as exc_info:
            await policy_service.transition_policy(db_session, TENANT, ACTOR, policy_id, S.ACTIVE)

        assert exc_info.value.current == "draft"
        assert exc_info.value.requested == "active"
        reloaded = await policy_service.get_policy(db_session, TENANT, policy_id)
        assert reloaded.status == S.DRAFT

    @pytest.mark.parametrize("target", list(PolicyStatus))
    async def test_cancelled_is_terminal(self, db_session, make_policy, target):
        policy = await make_policy()
        await walk(db_session, policy.id, [S.CANCELLED], at(2024, 1, 10))

        with pytest.raises(InvalidTransitionError) as exc_info:
            await policy_service.transition_policy(db_session, TENANT, ACTOR, policy.id, target)

        assert exc_info.value.current == "cancelled"
        assert exc_info.value.requested == target.value

    async def test_unknown_status(self, db_session, make_policy):
        policy = await make_policy()

        with pytest.raises(ValidationError):
            await policy_service.transition_policy(db_session, TENANT, ACTOR, policy.id, "paused")

    async def test_accepts_status_string(self, db_session, make_policy):
        policy = await make_policy()

        policy = await policy_service.transition_policy(
            db_session, TENANT, ACTOR, policy.id, "submitted"
        )
        assert policy.status == S.SUBMITTED

    async def test_other_tenant_cannot_transition(self, db_session, make_policy):
        policy = await make_policy()

        with pytest.raises(NotFoundError):
            await policy_service.transition_policy(
                db_session, OTHER_TENANT, ACTOR, policy.id, S.SUBMITTED
            )

    async def test_cancel_stamps_date_and_reason(self, db_session, active_policy):
        policy = await policy_service.transition_policy(
            db_session, TENANT, ACTOR, active_policy.id, S.CANCELLED,
            "Client emigrated", at=at(2024, 5, 1),
        )

        assert policy.cancellation_date == date(2024, 5, 1)
        assert policy.cancellation_reason == "Client emigrated"
        assert await _types(db_session, policy.id) == [CommissionType.INITIAL]

    async def test_cancel_clawback_when_enabled(self, db_session, active_policy, monkeypatch):
        monkeypatch.setattr(settings, "clawback_on_cancel", True)

        await walk(db_session, active_policy.id, [S.CANCELLED], at(2024, 5, 1))

        entries = await commission_ledger(db_session, TENANT, active_policy.id)
        assert [e.amount for e in entries] == [10_000, -10_000]


class TestInitialCommissionOnce:
    async def test_reactivation_after_reinstatement(self, db_session, active_policy):
        await walk(db_session, active_policy.id, [S.LAPSED, S.REINSTATED, S.ACTIVE], at(2026, 3, 1))

        assert (await _types(db_session, active_policy.id)).count(CommissionType.INITIAL) == 1

    async def test_reactivation_after_amendment(self, db_session, active_policy):
        await walk(db_session, active_policy.id, [S.AMENDED, S.ACTIVE], at(2024, 3, 1))

        assert await _types(db_session, active_policy.id) == [CommissionType.INITIAL]

    async def test_cancelled_before_activation_has_no_entries(self, db_session, make_policy):
        policy = await make_policy()
        await walk(db_session, policy.id, [S.SUBMITTED, S.UNDERWRITING, S.CANCELLED], at(2024, 1, 5))

        assert await _types(db_session, policy.id) == []


class TestTransitionHistory:
    async def test_records_every_edge_in_order(self, db_session, active_policy):
        await walk(db_session, active_policy.id, [S.LAPSED], at(2024, 8, 1))

        history = await policy_service.transition_history(db_session, TENANT, active_policy.id)

        assert [(h.from_status, h.to_status) for h in history] == [
            (S.DRAFT, S.SUBMITTED),
            (S.SUBMITTED, S.UNDERWRITING),
            (S.UNDERWRITING, S.ACTIVE),
            (S.ACTIVE, S.LAPSED),
        ]
        assert all(h.actor_id == ACTOR for h in history)

    async def test_rejected_transition_leaves_no_record(self, db_session, make_policy):
        policy = await make_policy()
        policy_id = policy.id
        with pytest.raises(InvalidTransitionError):
            await policy_service.transition_policy(db_session, TENANT, ACTOR, policy_id, S.LAPSED)

        assert await policy_service.transition_history(db_session, TENANT, policy_id) == []

    async def test_reason_is_kept(self, db_session, make_policy):
        policy = await make_policy()
        await policy_service.transition_policy(
            db_session, TENANT, ACTOR, policy.id, S.SUBMITTED, "Signed application received"
        )

        history = await policy_service.transition_history(db_session, TENANT, policy.id)
        assert history[0].reason == "Signed application received"


# ── Concurrency ───────────────────────────────────────────


class TestOptimisticRetry:
    async def test_retries_after_stale_write(self, db_session, make_policy, monkeypatch):
        policy = await make_policy()
        real_apply = policy_service._apply_transition
        calls = {"n": 0}

        async def flaky(*args, **kwargs):
            calls["n"] += 1
            if calls["n"] == 1:
                raise StaleDataError("simulated concurrent update")
            return await real_apply(*args, **kwargs)

        monkeypatch.setattr(policy_service, "_apply_transition", flaky)

        policy = await policy_service.transition_policy(
            db_session, TENANT, ACTOR, policy.id, S.SUBMITTED
        )

        assert calls["n"] == 2
        assert policy.status == S.SUBMITTED
        history = await policy_service.transition_history(db_session, TENANT, policy.id)
        assert len(history) == 1

    async def test_gives_up_with_conflict(self, db_session, make_policy, monkeypatch):
        policy = await make_policy()

        async def always_stale(*args, **kwargs):
            raise StaleDataError("simulated concurrent update")

        monkeypatch.setattr(policy_service, "_apply_transition", always_stale)

        with pytest.raises(ConflictError):
            await policy_service.transition_policy(
                db_session, TENANT, ACTOR, policy.id, S.SUBMITTED
            )


@pytest_asyncio.fixture
async def shared_db(tmp_path):
    """Two engines on one SQLite file, standing in for two service instances."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}"
    ours = create_async_engine(url, echo=False)
    theirs = create_async_engine(url, echo=False)

    async with ours.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield ours, theirs

    await ours.dispose()
    await theirs.dispose()


class TestConcurrentWriter:
    async def test_revalidates_against_concurrent_cancel(self, shared_db, monkeypatch):
        ours, theirs = shared_db
        session_factory = async_sessionmaker(ours, class_=AsyncSession, expire_on_commit=False)

        async with session_factory() as db:
            client = Client(tenant_id=TENANT, first_name="Thandi", last_name="Mokoena")
            db.add(client)
            await db.commit()
            policy = await policy_service.create_policy(
                db, TENANT, ACTOR, policy_data(client.id)
            )
            policy_id = policy.id

            real_load = policy_service.load_policy
            loads = {"n": 0}

            async def load_then_lose_race(*args, **kwargs):
                loaded = await real_load(*args, **kwargs)
                loads["n"] += 1
                if loads["n"] == 1:
                    # Another instance cancels the policy after our read
                    async with theirs.begin() as conn:
                        await conn.execute(
                            text(
                                "UPDATE policies SET status = 'cancelled', "
                                "version = version + 1 WHERE id = :id"
                            ),
                            {"id": policy_id},
                        )
                return loaded

            monkeypatch.setattr(policy_service, "load_policy", load_then_lose_race)

            with pytest.raises(InvalidTransitionError) as exc_info:
                await policy_service.transition_policy(
                    db, TENANT, ACTOR, policy_id, S.SUBMITTED
                )

            assert exc_info.value.current == "cancelled"
            assert exc_info.value.requested == "submitted"
            assert loads["n"] == 2
            assert await policy_service.transition_history(db, TENANT, policy_id) == []


# ── Updates and deletion ──────────────────────────────────


class TestUpdatePolicy:
    async def test_updates_fields(self, db_session, make_policy):
        policy = await make_policy()

        policy = await policy_service.update_policy(
            db_session, TENANT, ACTOR, policy.id,
            {"monthly_premium": 120_000, "insurer_policy_ref": "AL-778"},
        )

        assert policy.monthly_premium == 120_000
        assert policy.insurer_policy_ref == "AL-778"
        assert policy.version == 2

    async def test_inception_change_moves_watch_date(self, db_session, make_policy):
        policy = await make_policy()

        policy = await policy_service.update_policy(
            db_session, TENANT, ACTOR, policy.id, {"inception_date": date(2024, 3, 1)}
        )
        assert policy.clawback_watch_until == date(2026, 3, 1)

    @pytest.mark.parametrize("field", [
        "product_name",
        "insurer_name",
        "sum_assured",
        "monthly_premium",
        "premium_frequency",
        "collection_method",
        "inception_date",
        "initial_commission_pct",
        "renewal_commission_pct",
    ])
    async def test_cannot_clear_required_field(self, db_session, make_policy, field):
        policy = await make_policy()

        with pytest.raises(ValidationError) as exc_info:
            await policy_service.update_policy(
                db_session, TENANT, ACTOR, policy.id, {field: None}
            )
        assert exc_info.value.details == [{"field": field, "message": "cannot be null"}]

    async def test_optional_field_can_be_cleared(self, db_session, make_policy):
        policy = await make_policy(insurer_policy_ref="AL-1")

        policy = await policy_service.update_policy(
            db_session, TENANT, ACTOR, policy.id, {"insurer_policy_ref": None}
        )
        assert policy.insurer_policy_ref is None

    async def test_cancelled_policy_is_frozen(self, db_session, make_policy):
        policy = await make_policy()
        await walk(db_session, policy.id, [S.CANCELLED], at(2024, 1, 10))

        with pytest.raises(ValidationError):
            await policy_service.update_policy(
                db_session, TENANT, ACTOR, policy.id, {"product_name": "Renamed"}
            )


class TestDeletePolicy:
    async def test_soft_delete_hides_policy(self, db_session, make_policy):
        policy = await make_policy()

        await policy_service.delete_policy(db_session, TENANT, ACTOR, policy.id)

        with pytest.raises(NotFoundError):
            await policy_service.get_policy(db_session, TENANT, policy.id)
        assert await policy_service.list_policies(db_session, TENANT) == []

    async def test_ledger_survives_soft_delete(self, db_session, active_policy):
        await policy_service.delete_policy(db_session, TENANT, ACTOR, active_policy.id)

        assert await _types(db_session, active_policy.id) == [CommissionType.INITIAL]
