# tests/test_repository.py
"""
Unit tests for the SQLModel-backed submission store (in-memory SQLite
unless a test needs a file).
"""

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlmodel import Session

from approvals.errors import ConflictError, NotFoundError, PersistenceError
from approvals.models import Submission, SubmissionCounts, SubmissionStatus
from approvals.repository import SubmissionRepository, build_engine


def make_submission(sid, created, status=SubmissionStatus.pending, **extra):
    fields = dict(
        id=sid,
        title=f"Title {sid}",
        content=f"Body {sid}",
        status=status,
        created_at=created,
        updated_at=created,
    )
    fields.update(extra)
    return Submission(**fields)


T1 = "2026-01-05T09:00:00.000000+00:00"
T2 = "2026-01-05T09:00:01.000000+00:00"
T3 = "2026-01-05T09:00:02.000000+00:00"


def test_save_then_get_round_trips_every_field(repo):
    original = make_submission(
        "a1", T1,
        image_reference="https://cdn.example.com/cover.png",
        embedded_images=["data:image/png;base64,AAA", "data:image/png;base64,BBB"],
        writer_email="writer@example.com",
    )
    repo.save(original)

    fetched = repo.get_by_id("a1")
    assert fetched == original
    assert fetched.embedded_images == ["data:image/png;base64,AAA", "data:image/png;base64,BBB"]


def test_absent_and_empty_optional_fields_stay_distinct(repo):
    repo.save(make_submission("none", T1))
    repo.save(make_submission("empty", T2, embedded_images=[]))

    assert repo.get_by_id("none").embedded_images is None
    assert repo.get_by_id("none").image_reference is None
    assert repo.get_by_id("none").writer_email is None
    assert repo.get_by_id("empty").embedded_images == []


def test_get_missing_returns_none(repo):
    assert repo.get_by_id("does-not-exist") is None


def test_duplicate_id_is_rejected(repo):
    repo.save(make_submission("dup", T1))
    with pytest.raises(ConflictError):
        repo.save(make_submission("dup", T2, title="Other"))
    assert repo.get_by_id("dup").title == "Title dup"
    assert repo.count_by_status().total == 1


def test_update_replaces_record(repo):
    repo.save(make_submission("u1", T1))
    changed = make_submission("u1", T1, status=SubmissionStatus.approved, updated_at=T2)
    repo.update(changed)
    assert repo.get_by_id("u1") == changed


def test_update_is_never_an_upsert(repo):
    with pytest.raises(NotFoundError):
        repo.update(make_submission("ghost", T1))
    assert repo.get_by_id("ghost") is None


def test_get_all_is_newest_first(repo):
    repo.save(make_submission("middle", T2))
    repo.save(make_submission("oldest", T1))
    repo.save(make_submission("newest", T3))

    assert [s.id for s in repo.get_all()] == ["newest", "middle", "oldest"]


def test_get_by_status_filters_and_keeps_order(repo):
    repo.save(make_submission("p1", T1))
    repo.save(make_submission("a1", T2, status=SubmissionStatus.approved))
    repo.save(make_submission("p2", T3))

    assert [s.id for s in repo.get_by_status(SubmissionStatus.pending)] == ["p2", "p1"]
    assert [s.id for s in repo.get_by_status(SubmissionStatus.approved)] == ["a1"]
    assert repo.get_by_status(SubmissionStatus.rejected) == []


def test_delete(repo):
    repo.save(make_submission("d1", T1))
    assert repo.delete("d1") is True
    assert repo.get_by_id("d1") is None
    assert repo.delete("d1") is False


def test_count_by_status(repo):
    repo.save(make_submission("p1", T1))
    repo.save(make_submission("p2", T1))
    repo.save(make_submission("a1", T2, status=SubmissionStatus.approved))
    repo.save(make_submission("r1", T3, status=SubmissionStatus.rejected))

    assert repo.count_by_status() == SubmissionCounts(pending=2, approved=1, rejected=1, total=4)


def test_count_on_empty_store(repo):
    assert repo.count_by_status() == SubmissionCounts()


def test_clear_all_returns_removed_count(repo):
    for i, ts in enumerate((T1, T2, T3)):
        repo.save(make_submission(f"c{i}", ts))
    assert repo.clear_all() == 3
    assert repo.get_all() == []
    assert repo.clear_all() == 0


def test_records_survive_a_new_store_instance(tmp_path):
    url = f"sqlite:///{tmp_path / 'data' / 'submissions.db'}"
    first = SubmissionRepository(build_engine(url))
    first.create_schema()
    saved = make_submission("persist", T1, embedded_images=["x"], writer_email="w@example.com")
    first.save(saved)

    second = SubmissionRepository(build_engine(url))
    second.create_schema()
    assert second.get_by_id("persist") == saved


def test_unreadable_file_starts_empty(tmp_path):
    db_file = tmp_path / "submissions.db"
    db_file.write_bytes(b"this is not a sqlite database, just some bytes" * 50)

    repo = SubmissionRepository(build_engine(f"sqlite:///{db_file}"))
    repo.create_schema()

    assert repo.get_all() == []
    assert list(tmp_path.glob("submissions.db.corrupt-*")), "corrupt file should be kept aside"
    repo.save(make_submission("fresh", T1))
    assert repo.get_by_id("fresh") is not None


def test_failed_write_raises_persistence_error(repo, monkeypatch):
    def broken_commit(self):
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(Session, "commit", broken_commit)
    with pytest.raises(PersistenceError):
        repo.save(make_submission("lost", T1))


@pytest.mark.parametrize("column,value", [
    ("embedded_images", "{not json"),
    ("embedded_images", '"just a string"'),
    ("status", "archived"),
])
def test_unreadable_row_raises_persistence_error(repo, engine, column, value):
    repo.save(make_submission("bad", T1, embedded_images=["x"]))
    with engine.begin() as conn:
        conn.execute(text(f"UPDATE submissions SET {column} = :value"), {"value": value})

    with pytest.raises(PersistenceError):
        repo.get_by_id("bad")
    with pytest.raises(PersistenceError):
        repo.get_all()


def test_failed_update_raises_persistence_error(repo, monkeypatch):
    repo.save(make_submission("u1", T1))

    def broken_commit(self):
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(Session, "commit", broken_commit)
    with pytest.raises(PersistenceError):
        repo.update(make_submission("u1", T1, status=SubmissionStatus.approved, updated_at=T2))
    monkeypatch.undo()
    assert repo.get_by_id("u1").status == SubmissionStatus.pending


@pytest.mark.parametrize("call", [
    lambda repo: repo.delete("d1"),
    lambda repo: repo.clear_all(),
], ids=["delete", "clear_all"])
def test_failed_removal_raises_persistence_error(repo, monkeypatch, call):
    repo.save(make_submission("d1", T1))

    def broken_commit(self):
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(Session, "commit", broken_commit)
    with pytest.raises(PersistenceError):
        call(repo)
    monkeypatch.undo()
    assert repo.get_by_id("d1") is not None
