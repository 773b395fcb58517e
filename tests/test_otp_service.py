"""Unit tests for the OTP lifecycle: issue, verify, gate, status, consume, sweep."""
import itertools
import threading

import pytest

from services.otp_service import (
    GateDecision,
    OTPIssueError,
    VerifyResult,
    generate_code,
)
from services.otp_store import LOCK_STRIPES


def test_generated_codes_are_six_digits_without_leading_zero():
    for _ in range(200):
        code = generate_code()
        assert len(code) == 6 and code.isdigit()
        assert 100000 <= int(code) <= 999999


def test_issue_requires_identity(otp_service):
    with pytest.raises(ValueError):
        otp_service.issue("   ")


def test_issue_stores_record_and_sends_email(otp_service, store, email_service, clock):
    issued = otp_service.issue(" A@X.com ", "Asha")
    assert issued.identity == "a@x.com"
    assert issued.expires_at == clock.now + 600
    record = store.get("a@x.com")
    assert record.code == issued.code
    assert record.verified is False
    assert email_service.otp_emails == [{"to": "a@x.com", "otp": issued.code, "name": "Asha"}]


def test_issue_delivery_failure_raises_but_keeps_record(otp_service, store, email_service):
    email_service.fail_otp = True
    with pytest.raises(OTPIssueError):
        otp_service.issue("a@x.com")
    assert store.get("a@x.com") is not None


def test_verify_unknown_identity_is_not_found(otp_service):
    assert otp_service.verify("nobody@x.com", "123456") is VerifyResult.NOT_FOUND


def test_mismatch_keeps_record_for_retry(otp_service):
    issued = otp_service.issue("a@x.com")
    wrong = "000000" if issued.code != "000000" else "111111"
    assert otp_service.verify("a@x.com", wrong) is VerifyResult.MISMATCH
    assert otp_service.verify("a@x.com", issued.code) is VerifyResult.VERIFIED


def test_correct_code_marks_verified_once(otp_service, store):
    issued = otp_service.issue("a@x.com")
    assert otp_service.verify("a@x.com", f" {issued.code} ") is VerifyResult.VERIFIED
    assert store.get("a@x.com").verified is True
    assert otp_service.verify("a@x.com", issued.code) is VerifyResult.NOT_FOUND


def test_expired_code_is_removed(otp_service, store, clock):
    issued = otp_service.issue("a@x.com")
    clock.advance(601)
    assert otp_service.verify("a@x.com", issued.code) is VerifyResult.EXPIRED
    assert store.get("a@x.com") is None
    assert otp_service.verify("a@x.com", issued.code) is VerifyResult.NOT_FOUND


def test_code_still_valid_at_exact_expiry(otp_service, clock):
    issued = otp_service.issue("a@x.com")
    clock.advance(600)
    assert otp_service.verify("a@x.com", issued.code) is VerifyResult.VERIFIED


def test_reissue_invalidates_previous_code(otp_service, email_service, monkeypatch):
    codes = iter(["111111", "222222"])
    monkeypatch.setattr("services.otp_service.generate_code", lambda: next(codes))
    otp_service.issue("a@x.com")
    otp_service.issue("a@x.com")
    assert otp_service.verify("a@x.com", "111111") is VerifyResult.MISMATCH
    assert otp_service.verify("a@x.com", "222222") is VerifyResult.VERIFIED


def test_reissue_clears_verified_flag(otp_service):
    issued = otp_service.issue("a@x.com")
    otp_service.verify("a@x.com", issued.code)
    otp_service.issue("a@x.com")
    assert otp_service.require_verified("a@x.com") is GateDecision.DENY_NOT_VERIFIED


def test_gate_decisions(otp_service, clock):
    assert otp_service.require_verified("a@x.com") is GateDecision.DENY_NO_RECORD
    issued = otp_service.issue("a@x.com")
    assert otp_service.require_verified("a@x.com") is GateDecision.DENY_NOT_VERIFIED
    otp_service.verify("a@x.com", issued.code)
    assert otp_service.require_verified("a@x.com") is GateDecision.ALLOW
    clock.advance(601)
    assert otp_service.require_verified("a@x.com") is GateDecision.DENY_EXPIRED
    assert otp_service.require_verified("a@x.com") is GateDecision.DENY_NO_RECORD


def test_consume_is_single_use(otp_service):
    issued = otp_service.issue("a@x.com")
    assert otp_service.consume("a@x.com") is False
    otp_service.verify("a@x.com", issued.code)
    assert otp_service.consume("a@x.com") is True
    assert otp_service.consume("a@x.com") is False
    assert otp_service.require_verified("a@x.com") is GateDecision.DENY_NO_RECORD


def test_status_reports_and_drops_expired(otp_service, store, clock):
    status = otp_service.status("a@x.com")
    assert (status.exists, status.verified, status.expired) == (False, False, False)

    issued = otp_service.issue("a@x.com")
    status = otp_service.status("a@x.com")
    assert (status.exists, status.verified, status.expired) == (True, False, False)

    otp_service.verify("a@x.com", issued.code)
    assert otp_service.status("a@x.com").verified is True

    clock.advance(601)
    status = otp_service.status("a@x.com")
    assert (status.exists, status.verified, status.expired) == (False, False, True)
    assert store.get("a@x.com") is None


def test_purge_expired_only_removes_dead_records(otp_service, store, clock):
    otp_service.issue("old@x.com")
    clock.advance(500)
    otp_service.issue("new@x.com")
    clock.advance(200)
    assert otp_service.purge_expired() == 1
    assert store.get("old@x.com") is None
    assert store.get("new@x.com") is not None


def test_claim_allows_one_submission_until_released(otp_service):
    issued = otp_service.issue("a@x.com")
    assert otp_service.claim("a@x.com") is GateDecision.DENY_NOT_VERIFIED
    otp_service.verify("a@x.com", issued.code)

    assert otp_service.claim("a@x.com") is GateDecision.ALLOW
    assert otp_service.claim("a@x.com") is GateDecision.DENY_IN_PROGRESS
    assert otp_service.release("a@x.com") is True
    assert otp_service.claim("a@x.com") is GateDecision.ALLOW
    assert otp_service.consume("a@x.com") is True
    assert otp_service.claim("a@x.com") is GateDecision.DENY_NO_RECORD
    assert otp_service.release("a@x.com") is False


def test_lock_table_does_not_grow_with_identities(otp_service, store):
    for n in range(1000):
        otp_service.status(f"u{n}@x.com")
    assert len(store) == 0
    assert len(store._locks) == LOCK_STRIPES


def _run_together(*targets):
    barrier = threading.Barrier(len(targets))

    def wrap(target):
        def run():
            barrier.wait()
            target()
        return run

    threads = [threading.Thread(target=wrap(t)) for t in targets]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)


def test_concurrent_claims_have_a_single_winner(otp_service):
    issued = otp_service.issue("a@x.com")
    otp_service.verify("a@x.com", issued.code)
    decisions = []
    _run_together(*[lambda: decisions.append(otp_service.claim("a@x.com"))] * 16)
    assert decisions.count(GateDecision.ALLOW) == 1
    assert decisions.count(GateDecision.DENY_IN_PROGRESS) == 15


def test_concurrent_consumes_delete_once(otp_service):
    issued = otp_service.issue("a@x.com")
    otp_service.verify("a@x.com", issued.code)
    results = []
    _run_together(*[lambda: results.append(otp_service.consume("a@x.com"))] * 8)
    assert results.count(True) == 1


def test_resend_racing_verify_leaves_one_consistent_record(otp_service, store, monkeypatch):
    codes = itertools.cycle(["111111", "222222"])
    monkeypatch.setattr("services.otp_service.generate_code", lambda: next(codes))
    for _ in range(50):
        otp_service.issue("a@x.com")
        outcome = []
        _run_together(
            lambda: outcome.append(otp_service.verify("a@x.com", "111111")),
            lambda: otp_service.issue("a@x.com"),
        )
        assert outcome[0] in (VerifyResult.VERIFIED, VerifyResult.MISMATCH)
        record = store.get("a@x.com")
        assert len(store) == 1
        assert record.code == "222222"
        assert record.verified is False
