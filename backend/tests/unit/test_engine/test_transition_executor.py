"""Tests for permission-gated transitions"""

import threading

import pytest

from workflow_gate.domain.enums import AuditEventType, AuditResult, AuditResourceType, InstanceStatus
from workflow_gate.domain.errors import (
    InvalidStateError, PermissionDeniedError, InstanceNotFoundError,
    StepNotFoundError, ConcurrencyError
)
from workflow_gate.domain.models import ActorContext, WorkflowHistoryEntry
from workflow_gate.engine import TransitionExecutor, merge_context
from workflow_gate.engine.permission_evaluator import REASON_NO_MATCH, REASON_FORBIDDEN
from workflow_gate.repositories import InstanceRepository

from tests.conftest import STEP_APPROVED, STEP_REVIEW


class ExplodingEvaluator:
    """Fails the test if permission evaluation is reached"""

    def evaluate(self, *args, **kwargs):
        raise AssertionError("permission evaluator must not be called")


def audit_events(repos, instance_id):
    entries = repos.audit.get_entries_for_instance(instance_id)
    return [e.event_type for e in reversed(entries)]


class TestSuccessfulTransition:

    def test_moves_instance_and_records_history(self, executor, repos, instance, alice):
        result = executor.transition(
            instance.instance_id, "review", "approver", alice,
            context={"amount": 500}, reason="Ready for review"
        )

        assert result.instance_id == instance.instance_id
        assert result.new_state == "review"

        stored = repos.instances.get_instance(instance.instance_id)
        assert stored.current_state == "review"
        assert stored.status == InstanceStatus.ACTIVE
        assert stored.version == instance.version + 1
        assert stored.context_data == result.context

        history = repos.instances.list_history(instance.instance_id)
        assert len(history) == 1
        assert history[0].from_state == "draft"
        assert history[0].to_state == "review"
        assert history[0].performed_by == "alice"
        assert history[0].actor_role == "approver"
        assert history[0].reason == "Ready for review"
        assert history[0].context_data == {"amount": 500}
        assert history[0].sequence == stored.version

    def test_history_ties_are_ordered_by_sequence(self, repos, instance):
        same_instant = instance.created_at
        for sequence in (3, 2, 4):
            repos.instances.append_history(WorkflowHistoryEntry(
                history_id=f"HIS-{sequence}",
                instance_id=instance.instance_id,
                from_state="draft",
                to_state="review",
                performed_by="alice",
                actor_role="approver",
                performed_at=same_instant,
                sequence=sequence
            ))

        history = repos.instances.list_history(instance.instance_id)
        assert [h.sequence for h in history] == [4, 3, 2]

    def test_context_is_merged_with_transition_metadata(self, executor, instance, alice):
        result = executor.transition(
            instance.instance_id, "review", "approver", alice, context={"amount": 500, "note": "x"}
        )

        context = result.context
        assert context["amount"] == 500
        assert context["title"] == "Laptops"
        assert context["note"] == "x"
        assert context["performed_by"] == "alice"
        assert context["actor_role"] == "approver"
        assert context["transition_reason"] is None
        assert [m["permission"]["permission_id"] for m in context["permission_context"]] == ["PERM-REVIEW"]

    def test_writes_transition_audit(self, executor, repos, instance, alice):
        executor.transition(instance.instance_id, "review", "approver", alice, context={"amount": 500})

        entries = repos.audit.get_entries_for_instance(
            instance.instance_id, event_types=[AuditEventType.WORKFLOW_TRANSITION]
        )
        assert len(entries) == 1
        entry = entries[0]
        assert entry.action == "transition_draft_to_review"
        assert entry.result == AuditResult.SUCCESS
        assert entry.resource_type == AuditResourceType.WORKFLOW_INSTANCE
        assert entry.resource_id == instance.instance_id
        assert entry.user_id == "alice"
        assert entry.details["context"] == {"amount": 500}

    def test_instance_context_feeds_conditions(self, executor, lifecycle, alice):
        # No amount in the request: the instance's stored amount applies
        instance = lifecycle.create_instance("WF-PURCHASE", "org-1", alice, {"amount": 5000})

        with pytest.raises(PermissionDeniedError):
            executor.transition(instance.instance_id, "approved", "approver", alice)

    def test_request_context_overrides_instance_context(self, executor, lifecycle, alice):
        instance = lifecycle.create_instance("WF-PURCHASE", "org-1", alice, {"amount": 5000})

        result = executor.transition(
            instance.instance_id, "approved", "approver", alice, context={"amount": 1000}
        )
        assert result.context["amount"] == 1000

    def test_any_active_step_is_reachable(self, executor, repos, instance, alice):
        executor.transition(instance.instance_id, "approved", "approver", alice)
        executor.transition(instance.instance_id, "review", "approver", alice)

        stored = repos.instances.get_instance(instance.instance_id)
        assert stored.current_state == "review"
        assert stored.version == 3

        history = repos.instances.list_history(instance.instance_id)
        assert [(h.from_state, h.to_state) for h in history] == [
            ("approved", "review"),
            ("draft", "approved"),
        ]


class TestDeniedTransition:

    def test_denied_leaves_instance_untouched(self, executor, repos, instance, frank):
        with pytest.raises(PermissionDeniedError) as exc_info:
            executor.transition(instance.instance_id, "review", "approver", frank, context={"amount": 5})

        assert exc_info.value.reasons == [REASON_NO_MATCH]
        assert exc_info.value.http_status == 403

        stored = repos.instances.get_instance(instance.instance_id)
        assert stored.current_state == "draft"
        assert stored.version == instance.version
        assert stored.context_data == instance.context_data
        assert repos.instances.list_history(instance.instance_id) == []

    def test_denied_writes_audit(self, executor, repos, instance, frank):
        with pytest.raises(PermissionDeniedError):
            executor.transition(instance.instance_id, "review", "approver", frank, context={"amount": 5})

        entries = repos.audit.get_entries_for_instance(
            instance.instance_id, event_types=[AuditEventType.PERMISSION_DENIED]
        )
        assert len(entries) == 1
        entry = entries[0]
        assert entry.result == AuditResult.DENIED
        assert entry.resource_type == AuditResourceType.WORKFLOW_STEP
        assert entry.resource_id == STEP_REVIEW
        assert entry.action == "approver"
        assert entry.user_id == "frank"
        assert entry.details == {"reasons": [REASON_NO_MATCH], "context": {"amount": 5}}

    def test_forbidden_veto(self, executor, repos, instance):
        carol = ActorContext(user_id="carol")

        with pytest.raises(PermissionDeniedError) as exc_info:
            executor.transition(instance.instance_id, "approved", "approver", carol, context={"amount": 10})

        assert exc_info.value.reasons == [REASON_FORBIDDEN]
        entries = repos.audit.get_entries_for_instance(
            instance.instance_id, event_types=[AuditEventType.PERMISSION_DENIED]
        )
        assert entries[0].resource_id == STEP_APPROVED


class TestPreconditions:

    @pytest.mark.parametrize("status_change", ["pause", "cancel"])
    def test_non_active_instance_is_rejected_before_evaluation(
        self, repos, audit_writer, lifecycle, instance, alice, status_change
    ):
        getattr(lifecycle, status_change)(instance.instance_id, alice)
        executor = TransitionExecutor(
            instance_repo=repos.instances,
            workflow_repo=repos.workflows,
            permission_evaluator=ExplodingEvaluator(),
            audit_writer=audit_writer
        )
        events_before = audit_events(repos, instance.instance_id)

        with pytest.raises(InvalidStateError):
            executor.transition(instance.instance_id, "review", "approver", alice)

        assert audit_events(repos, instance.instance_id) == events_before
        assert repos.instances.list_history(instance.instance_id) == []

    def test_missing_instance(self, executor, alice):
        with pytest.raises(InstanceNotFoundError):
            executor.transition("WFI-MISSING", "review", "approver", alice)

    @pytest.mark.parametrize("target", ["shipped", "archived"])
    def test_unknown_or_inactive_step(self, executor, repos, instance, alice, target):
        with pytest.raises(StepNotFoundError):
            executor.transition(instance.instance_id, target, "approver", alice)

        assert audit_events(repos, instance.instance_id) == [AuditEventType.WORKFLOW_INSTANCE_CREATED]


class TestMergeContext:

    def test_later_layers_win(self):
        assert merge_context({"a": 1, "b": 1}, {"b": 2}, {"c": 3}) == {"a": 1, "b": 2, "c": 3}

    def test_merge_is_idempotent(self):
        base = {"amount": 100, "title": "x"}
        extra = {"amount": 200}
        once = merge_context(base, extra)
        assert merge_context(once, extra) == once

    def test_none_layers_are_skipped(self):
        assert merge_context(None, {"a": 1}, None) == {"a": 1}

    def test_inputs_are_not_mutated(self):
        base = {"a": 1}
        merge_context(base, {"a": 2})
        assert base == {"a": 1}


class StaleReadInstanceRepository(InstanceRepository):
    """Lets another writer commit between the executor's read and its write"""

    def __init__(self, db, competing_update):
        super().__init__(db)
        self._competing_update = competing_update

    def update_instance(self, instance_id, updates, expected_version=None):
        if self._competing_update is not None:
            competing, self._competing_update = self._competing_update, None
            competing(instance_id)
        return super().update_instance(instance_id, updates, expected_version)


class RacingInstanceRepository(InstanceRepository):
    """Holds every writer at the barrier until all have read the instance"""

    def __init__(self, db, parties):
        super().__init__(db)
        self._barrier = threading.Barrier(parties, timeout=10)
        self._lock = threading.Lock()

    def update_instance(self, instance_id, updates, expected_version=None):
        self._barrier.wait()
        with self._lock:
            return super().update_instance(instance_id, updates, expected_version)


class TestConcurrency:

    def test_stale_version_is_rejected(self, db, repos, permission_evaluator, audit_writer, instance, alice):
        def competing_update(instance_id):
            repos.instances.update_instance(instance_id, {"context_data": {"amount": 1}})

        executor = TransitionExecutor(
            instance_repo=StaleReadInstanceRepository(db, competing_update),
            workflow_repo=repos.workflows,
            permission_evaluator=permission_evaluator,
            audit_writer=audit_writer
        )

        with pytest.raises(ConcurrencyError) as exc_info:
            executor.transition(instance.instance_id, "review", "approver", alice)

        assert exc_info.value.http_status == 409
        stored = repos.instances.get_instance(instance.instance_id)
        assert stored.current_state == "draft"
        assert stored.version == instance.version + 1
        assert repos.instances.list_history(instance.instance_id) == []
        assert audit_events(repos, instance.instance_id) == [AuditEventType.WORKFLOW_INSTANCE_CREATED]

    def test_concurrent_transitions_commit_once(self, db, repos, permission_evaluator, audit_writer, instance, alice):
        executor = TransitionExecutor(
            instance_repo=RacingInstanceRepository(db, parties=2),
            workflow_repo=repos.workflows,
            permission_evaluator=permission_evaluator,
            audit_writer=audit_writer
        )
        outcomes = {}

        def attempt(target):
            try:
                executor.transition(instance.instance_id, target, "approver", alice)
                outcomes[target] = "committed"
            except ConcurrencyError:
                outcomes[target] = "conflict"

        threads = [threading.Thread(target=attempt, args=(t,)) for t in ("review", "approved")]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert sorted(outcomes.values()) == ["committed", "conflict"]
        winner = next(target for target, outcome in outcomes.items() if outcome == "committed")

        stored = repos.instances.get_instance(instance.instance_id)
        assert stored.current_state == winner
        assert stored.version == instance.version + 1

        history = repos.instances.list_history(instance.instance_id)
        assert [h.to_state for h in history] == [winner]
