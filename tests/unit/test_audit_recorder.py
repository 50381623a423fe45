"""
Name: Audit Log Recorder Tests

Responsibilities:
  - Validate closed vocabularies (no coercion of unknown values)
  - Validate defaults (actor id, tenant, request id, recorded_at)
  - Validate that storage failures never reach the caller
"""

from uuid import UUID

import pytest

from account_lifecycle.audit import AuditLogRecorder
from account_lifecycle.context import request_id_var
from account_lifecycle.domain.audit import (
    ActorType,
    AuditAction,
    AuditEntityType,
    AuditLogEntryInput,
)
from account_lifecycle.domain.errors import ValidationError

pytestmark = pytest.mark.unit


def _input(**overrides) -> AuditLogEntryInput:
    data = dict(
        actor_type="user",
        entity_type="account",
        entity_id="acct-1",
        action="delete",
    )
    data.update(overrides)
    return AuditLogEntryInput(**data)


class TestVocabulary:
    @pytest.mark.parametrize(
        "field,value",
        [
            ("actor_type", "robot"),
            ("actor_type", "USER"),
            ("entity_type", "invoice"),
            ("action", "purge"),
            ("action", None),
        ],
    )
    def test_unknown_values_are_rejected(self, recorder, audit_repo, field, value):
        with pytest.raises(ValidationError):
            recorder.record(_input(**{field: value}))

        assert len(audit_repo) == 0

    def test_enum_members_and_strings_are_accepted(self, recorder):
        entry = recorder.record(
            _input(actor_type=ActorType.SYSTEM, action=AuditAction.SYNC)
        )

        assert entry.actor_type == ActorType.SYSTEM
        assert entry.entity_type == AuditEntityType.ACCOUNT
        assert entry.action == AuditAction.SYNC

    def test_missing_entity_id_is_rejected(self, recorder):
        with pytest.raises(ValidationError):
            recorder.record(_input(entity_id="  "))


class TestDefaults:
    def test_user_without_id_is_anonymous(self, recorder):
        entry = recorder.record(_input(actor_id=None))

        assert entry.actor_id == "anonymous"

    def test_system_without_id_is_system(self, recorder):
        entry = recorder.record(_input(actor_type="system"))

        assert entry.actor_id == "system"

    def test_integration_requires_actor_id(self, recorder):
        with pytest.raises(ValidationError):
            recorder.record(_input(actor_type="integration"))

        entry = recorder.record(_input(actor_type="integration", actor_id="crm-sync"))
        assert entry.actor_id == "crm-sync"

    def test_tenant_defaults_to_system(self, recorder):
        assert recorder.record(_input()).tenant_id == "system"
        assert recorder.record(_input(tenant_id="tenant-a")).tenant_id == "tenant-a"

    def test_request_id_taken_from_context(self, recorder):
        token = request_id_var.set("req-123")
        try:
            entry = recorder.record(_input())
        finally:
            request_id_var.reset(token)

        assert entry.request_id == "req-123"

    def test_request_id_generated_when_absent(self, recorder):
        entry = recorder.record(_input())

        assert UUID(entry.request_id)

    def test_recorded_at_and_occurred_at_use_clock(self, recorder, clock):
        entry = recorder.record(_input(metadata={"source": "test"}))

        assert entry.occurred_at == clock.now()
        assert entry.metadata == {
            "source": "test",
            "recorded_at": clock.now().isoformat(),
        }
        assert entry.pii_scrubbed is True

    def test_diff_is_made_json_safe(self, recorder):
        entry = recorder.record(
            _input(diff={"status": ActorType.USER, "ids": (1, 2), "when": UUID(int=1)})
        )

        assert entry.diff == {
            "status": "user",
            "ids": [1, 2],
            "when": "00000000-0000-0000-0000-000000000001",
        }


class TestSinkFailures:
    def test_sink_failure_returns_none(self, clock, audit_repo):
        class _BrokenSink:
            def submit(self, entry):
                raise RuntimeError("disk full")

        recorder = AuditLogRecorder(_BrokenSink(), clock)

        assert recorder.record(_input()) is None

    def test_dropped_entry_returns_none(self, clock):
        class _FullSink:
            def submit(self, entry):
                return False

        recorder = AuditLogRecorder(_FullSink(), clock)

        assert recorder.record(_input()) is None

    def test_stored_entry_is_returned(self, recorder, audit_repo):
        entry = recorder.record(_input())

        assert audit_repo.list_entries() == [entry]
