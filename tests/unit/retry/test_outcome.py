"""Unit tests for Outcome and LadderMetadata invariants."""

import pytest

from grounded_probe.models.enums import CallResultKind, OutcomeTag
from grounded_probe.retry.metadata import AttemptRecord, LadderMetadata
from grounded_probe.retry.outcome import Outcome
from tests.unit.fakes import client_error, network_error, ok, rate_limited, server_error


def test_success_requires_pair():
    with pytest.raises(ValueError, match="requires payload"):
        Outcome(tag=OutcomeTag.SUCCESS, payload=ok().payload, model_used="model-a")


def test_failures_never_carry_payload():
    with pytest.raises(ValueError, match="must not carry a payload"):
        Outcome(tag=OutcomeTag.RATE_LIMITED, payload=ok().payload)


def test_exhausted_requires_last_error():
    with pytest.raises(ValueError, match="last_error"):
        Outcome(tag=OutcomeTag.EXHAUSTED)


def test_error_message_prefers_message():
    outcome = Outcome.exhausted(server_error(503), LadderMetadata())

    assert outcome.error_message == "Gemini server error 503: boom"
    assert Outcome.rate_limited(LadderMetadata()).error_message is None


def test_metadata_merge_keeps_order():
    first = LadderMetadata(
        attempts=(AttemptRecord("primary", "model-a", 1, CallResultKind.SUCCESS),),
        total_latency_ms=120,
    )
    second = LadderMetadata(
        attempts=(AttemptRecord("primary", "model-a", 1, CallResultKind.SERVER_ERROR, status_code=500),),
        total_latency_ms=80,
        failovers=("backup",),
    )

    merged = first.merge(second)

    assert merged.total_attempts == 2
    assert merged.total_latency_ms == 200
    assert merged.failovers == ("backup",)
    assert merged.to_log_dict()["attempts"][1]["status_code"] == 500


def test_negative_latency_rejected():
    with pytest.raises(ValueError):
        LadderMetadata(total_latency_ms=-1)


def test_only_server_and_network_errors_retry_the_same_pair():
    assert server_error().is_retryable
    assert network_error(timed_out=True).is_retryable
    assert not rate_limited().is_retryable
    assert not client_error().is_retryable
    assert not ok().is_retryable
