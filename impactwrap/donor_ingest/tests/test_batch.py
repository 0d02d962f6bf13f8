"""Tests for duplicate detection and batch insertion."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from ...core.errors import DuplicateDonorError
from ...core.helpers.token import generate_token
from ...core.models import DonorRecord
from ...storage.memory import MemoryDonorStore
from ..batch import BatchPlan, DuplicateDonor, insert_batch, plan_batch


def donor(email, first_name="Test", last_name="Donor", row=None, **kwargs):
    return DonorRecord(
        first_name=first_name,
        last_name=last_name,
        email=email,
        total_giving=Decimal("100"),
        organization_id=1,
        source_row=row,
        **kwargs,
    )


@pytest.fixture
def store():
    return MemoryDonorStore(seed=True)


class TestPlanBatch:
    """Tests for plan_batch."""

    def test_all_new(self, store):
        plan = plan_batch([donor("a@x.com"), donor("b@x.com")], store.get_by_email, store.get_by_token)
        assert [d.email for d in plan.accepted] == ["a@x.com", "b@x.com"]
        assert plan.duplicates == []

    def test_tokens_assigned(self, store):
        plan = plan_batch([donor("a@x.com")], store.get_by_email, store.get_by_token)
        assert plan.accepted[0].impact_url == generate_token("a@x.com")

    def test_input_not_mutated(self, store):
        original = donor("a@x.com")
        plan_batch([original], store.get_by_email, store.get_by_token)
        assert original.impact_url is None

    def test_within_batch_duplicate_keeps_first(self, store):
        plan = plan_batch(
            [donor("a@x.com", "First", row=1), donor("b@x.com", row=2), donor("a@x.com", "Second", row=3)],
            store.get_by_email,
            store.get_by_token,
        )
        assert [d.first_name for d in plan.accepted if d.email == "a@x.com"] == ["First"]
        assert plan.duplicates == [
            DuplicateDonor(email="a@x.com", name="Second Donor", row=3, in_batch=True),
        ]

    def test_existing_email_is_duplicate(self, store):
        store.insert_many(plan_batch([donor("a@x.com")], store.get_by_email).accepted)

        plan = plan_batch(
            [donor("a@x.com", "Again", row=1), donor("c@x.com", row=2)],
            store.get_by_email,
            store.get_by_token,
        )
        assert [d.email for d in plan.accepted] == ["c@x.com"]
        assert plan.duplicates == [DuplicateDonor(email="a@x.com", name="Again Donor", row=1)]

    def test_email_comparison_is_exact(self, store):
        plan = plan_batch([donor("a@x.com"), donor("A@x.com")], store.get_by_email, store.get_by_token)
        assert len(plan.accepted) == 2
        assert plan.accepted[0].impact_url != plan.accepted[1].impact_url

    def test_usable_supplied_token_kept(self, store):
        plan = plan_batch([donor("a@x.com", impact_url="Custom123")], store.get_by_email, store.get_by_token)
        assert plan.accepted[0].impact_url == "Custom123"

    @pytest.mark.parametrize("token", ["short", "has-dash-token", "x" * 33])
    def test_unusable_supplied_token_replaced(self, store, token):
        plan = plan_batch([donor("a@x.com", impact_url=token)], store.get_by_email, store.get_by_token)
        assert plan.accepted[0].impact_url == generate_token("a@x.com")

    def test_supplied_token_taken_in_batch_is_replaced(self, store):
        plan = plan_batch(
            [donor("a@x.com", impact_url="Shared123"), donor("b@x.com", impact_url="Shared123")],
            store.get_by_email,
            store.get_by_token,
        )
        assert plan.accepted[0].impact_url == "Shared123"
        assert plan.accepted[1].impact_url == generate_token("b@x.com")

    def test_token_collision_with_stored_donor_walks_attempts(self):
        canonical = generate_token("a@x.com")
        other = MagicMock(email="someone-else@x.com")

        plan = plan_batch(
            [donor("a@x.com")],
            find_by_email=lambda email: None,
            find_by_token=lambda token: other if token == canonical else None,
        )
        assert plan.accepted[0].impact_url == generate_token("a@x.com", attempt=1)

    def test_custom_token_length(self, store):
        plan = plan_batch([donor("a@x.com")], store.get_by_email, store.get_by_token, token_length=16)
        assert len(plan.accepted[0].impact_url) == 16

    def test_tokens_unique_within_batch(self, store):
        emails = [f"donor{i}@example.com" for i in range(200)]
        plan = plan_batch([donor(e) for e in emails], store.get_by_email, store.get_by_token)
        tokens = [d.impact_url for d in plan.accepted]
        assert len(set(tokens)) == len(tokens) == 200

    def test_to_dict(self, store):
        plan = plan_batch([donor("a@x.com"), donor("a@x.com")], store.get_by_email)
        assert plan.to_dict() == {
            "accepted": 1,
            "inserted": 0,
            "duplicates": [{"email": "a@x.com", "name": "Test Donor"}],
        }


class TestInsertBatch:
    """Tests for insert_batch."""

    def test_inserts_accepted(self, store):
        plan = insert_batch([donor("a@x.com"), donor("b@x.com")], store)
        assert [d.email for d in plan.inserted] == ["a@x.com", "b@x.com"]
        assert store.get_by_email("a@x.com").impact_url == generate_token("a@x.com")

    def test_nothing_to_insert(self):
        store = MagicMock()
        store.get_by_email.return_value = MagicMock()

        plan = insert_batch([donor("a@x.com")], store)

        store.insert_many.assert_not_called()
        assert plan.inserted == []
        assert len(plan.duplicates) == 1

    def test_second_upload_reports_duplicates(self, store):
        insert_batch([donor("a@x.com")], store)
        first_token = store.get_by_email("a@x.com").impact_url

        plan = insert_batch([donor("a@x.com", "Changed")], store)

        assert plan.inserted == []
        assert [d.email for d in plan.duplicates] == ["a@x.com"]
        stored = store.get_by_email("a@x.com")
        assert stored.first_name == "Test"
        assert stored.impact_url == first_token

    def test_store_conflict_propagates(self):
        store = MagicMock()
        store.get_by_email.return_value = None
        store.get_by_token.return_value = None
        store.insert_many.side_effect = DuplicateDonorError(["a@x.com"])

        with pytest.raises(DuplicateDonorError):
            insert_batch([donor("a@x.com")], store)


class TestBatchPlan:
    """Tests for BatchPlan defaults."""

    def test_empty(self):
        assert BatchPlan().to_dict() == {"accepted": 0, "inserted": 0, "duplicates": []}
