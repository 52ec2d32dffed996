from __future__ import annotations

import pytest
import requests

from fpgallery.config import ACCEPTANCE_THRESHOLD, MAX_MATCH_SCORE
from fpgallery.errors import DeviceTransportError, EmptyGalleryError
from fpgallery.matching import MatchEngine, clamp_score


@pytest.fixture
def engine(gateway):
    return MatchEngine(gateway)


def _gallery(store, scores, session):
    identities = []
    for i, score in enumerate(scores):
        identity = store.enroll(f"user{i}", f"G{i}")
        session.scores[identity.template] = score
        identities.append(identity)
    return identities


def test_acceptance_threshold_is_fixed_design_constant():
    # Midpoint of the 0-199 device scale, not calibrated from error rates
    assert ACCEPTANCE_THRESHOLD == 100
    assert MAX_MATCH_SCORE == 199


def test_best_of_three_is_accepted(engine, store, session):
    identities = _gallery(store, [40, 150, 90], session)

    outcome = engine.identify("PROBE", store.list())

    assert outcome.matched_identity == identities[1]
    assert outcome.score == 150
    assert outcome.accepted is True


def test_all_scores_at_or_below_threshold_are_rejected(engine, store, session):
    identities = _gallery(store, [30, 50, 100], session)

    outcome = engine.identify("PROBE", store.list())

    assert outcome.score == 100
    assert outcome.accepted is False
    assert outcome.matched_identity == identities[2]


def test_score_just_above_threshold_is_accepted(engine, store, session):
    _gallery(store, [101], session)

    assert engine.identify("PROBE", store.list()).accepted is True


def test_first_seen_wins_ties(engine, store, session):
    identities = _gallery(store, [120, 160, 160, 20], session)

    outcome = engine.identify("PROBE", store.list())

    assert outcome.matched_identity == identities[1]
    assert outcome.score == 160


def test_every_record_is_compared_in_gallery_order(engine, store, session):
    _gallery(store, [10, 20, 30], session)

    engine.identify("PROBE", store.list())

    assert [c["data"]["Template2"] for c in session.compare_calls] == ["G0", "G1", "G2"]
    assert all(c["data"]["Template1"] == "PROBE" for c in session.compare_calls)


def test_all_zero_scores_match_nobody(engine, store, session):
    _gallery(store, [0, 0], session)

    outcome = engine.identify("PROBE", store.list())

    assert outcome.matched_identity is None
    assert outcome.score == 0
    assert outcome.accepted is False


def test_device_rejection_scores_zero_and_scan_continues(engine, store, session):
    identities = _gallery(store, [{"ErrorCode": 57, "MatchingScore": 180}, 130], session)

    outcome = engine.identify("PROBE", store.list())

    assert len(session.compare_calls) == 2
    assert outcome.matched_identity == identities[1]
    assert outcome.score == 130


def test_transport_failure_aborts_scan(engine, store, session):
    _gallery(store, [50, requests.ConnectionError("gone"), 190], session)

    with pytest.raises(DeviceTransportError):
        engine.identify("PROBE", store.list())

    # third record never compared
    assert len(session.compare_calls) == 2


@pytest.mark.parametrize("scores", [[0], [199], [250, 3], [-5, 12], [7, 88, 199, 140]])
def test_score_always_within_device_scale(engine, store, session, scores):
    _gallery(store, scores, session)

    outcome = engine.identify("PROBE", store.list())

    assert 0 <= outcome.score <= 199


def test_empty_gallery_is_refused(engine, session):
    with pytest.raises(EmptyGalleryError):
        engine.identify("PROBE", [])

    assert session.calls == []


def test_identify_does_not_mutate_gallery(engine, store, session):
    _gallery(store, [10, 150], session)
    before = store.list()

    engine.identify("PROBE", store.list())

    assert store.list() == before


def test_clamp_score():
    assert clamp_score(-1) == 0
    assert clamp_score(200) == 199
    assert clamp_score(42) == 42
