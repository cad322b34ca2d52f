"""Tests for JSONL session persistence."""

from __future__ import annotations

import pytest

from coda_mentor.errors import SessionValidationError
from coda_mentor.storage import SessionJsonlStore


@pytest.fixture
def store(tmp_path):
    return SessionJsonlStore(tmp_path / "nested" / "sessions.jsonl")


def test_missing_file_loads_empty(store):
    assert store.load() == []


def test_upsert_replaces_matching_ids(store, make_session):
    store.upsert([make_session(0), make_session(1)])
    store.upsert([make_session(1, comprehension=0.2)])

    sessions = store.load()

    assert [session.session_id for session in sessions] == ["s-000", "s-001"]
    assert sessions[1].reaction.comprehension == 0.2


def test_append_and_filter_by_mentor(store, make_session):
    store.append([make_session(0, mentor_id="m1"), make_session(1, mentor_id="m2")])
    store.append([make_session(2, mentor_id="m1")])

    assert [session.session_id for session in store.for_mentor("m1")] == ["s-000", "s-002"]
    assert store.mentors() == ["m1", "m2"]


def test_delete(store, make_session):
    store.upsert([make_session(0), make_session(1), make_session(2)])

    store.delete(["s-001"])

    assert [session.session_id for session in store.load()] == ["s-000", "s-002"]


def test_invalid_line_reports_location(store, make_session):
    store.append([make_session(0)])
    with store.path.open("a", encoding="utf-8") as handle:
        handle.write("{broken\n")

    with pytest.raises(SessionValidationError, match=":2: invalid JSON") as excinfo:
        store.load()

    assert excinfo.value.operation == "load"


def test_record_missing_fields_names_the_mentor(store, make_session):
    store.append([make_session(0, mentor_id="m1")])
    with store.path.open("a", encoding="utf-8") as handle:
        handle.write('{"session_id": "broken", "mentor_id": "m1"}\n')

    with pytest.raises(SessionValidationError) as excinfo:
        store.for_mentor("m1")

    error = excinfo.value
    assert error.subject_id == "m1"
    assert error.operation == "load"
    assert any(problem.endswith("reaction: Field required") for problem in error.problems)
    assert all(":2: " in problem for problem in error.problems)
