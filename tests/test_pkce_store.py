from __future__ import annotations

import re

import pytest

from irlink.services.pkce import (
    PKCEChallengeStore,
    PKCESessionExpiredError,
    PKCESessionNotFoundError,
    derive_code_challenge,
    generate_code_verifier,
)


def test_code_challenge_matches_rfc7636_example() -> None:
    verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
    assert derive_code_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"


def test_generated_verifier_has_32_bytes_of_entropy() -> None:
    verifier = generate_code_verifier()
    assert re.fullmatch(r"[0-9a-f]{64}", verifier)
    assert generate_code_verifier() != verifier


def test_begin_returns_url_safe_challenge_for_stored_verifier(clock) -> None:
    store = PKCEChallengeStore(clock=clock)

    challenge = store.begin("user-1")

    assert "=" not in challenge and "+" not in challenge and "/" not in challenge
    verifier = store.consume("user-1")
    assert derive_code_challenge(verifier) == challenge


def test_consume_twice_reports_not_found(clock) -> None:
    store = PKCEChallengeStore(clock=clock)
    store.begin("user-1")

    store.consume("user-1")

    with pytest.raises(PKCESessionNotFoundError):
        store.consume("user-1")


def test_consume_unknown_state_reports_not_found(clock) -> None:
    with pytest.raises(PKCESessionNotFoundError):
        PKCEChallengeStore(clock=clock).consume("never-started")


def test_consume_after_ttl_reports_expired_and_removes_entry(clock) -> None:
    store = PKCEChallengeStore(clock=clock)
    store.begin("user-1")

    clock.advance(minutes=11)

    with pytest.raises(PKCESessionExpiredError):
        store.consume("user-1")
    assert "user-1" not in store
    with pytest.raises(PKCESessionNotFoundError):
        store.consume("user-1")


def test_consume_just_inside_ttl_succeeds(clock) -> None:
    store = PKCEChallengeStore(clock=clock)
    store.begin("user-1")

    clock.advance(minutes=10)

    assert store.consume("user-1")


def test_begin_sweeps_expired_sessions(clock) -> None:
    store = PKCEChallengeStore(clock=clock)
    store.begin("stale")
    clock.advance(minutes=5)
    store.begin("recent")
    clock.advance(minutes=6)

    store.begin("fresh")

    assert "stale" not in store
    assert "recent" in store
    assert "fresh" in store
    assert len(store) == 2


def test_begin_again_replaces_previous_verifier(clock) -> None:
    store = PKCEChallengeStore(clock=clock)
    first = store.begin("user-1")
    second = store.begin("user-1")

    assert first != second
    assert derive_code_challenge(store.consume("user-1")) == second
