from __future__ import annotations

from datetime import timedelta

import pytest

from archivist.models.archive_job import ArchiveJob
from archivist.models.exceptions import ValidationError
from archivist.models.files import ArchiveFile
from archivist.sql.db_connection import db_conn
from archivist.sql.jobs.db_archive_jobs import (
    RETRY_BACKOFF,
    enqueue_archive_job,
    get_archive_job,
    list_pending_archive_jobs,
    normalize_address,
    process_archive_job,
)

FILES = ["/archive/V/ProjectX/2020-01-01/a.tif", "/archive/V/ProjectX/2020-01-01/b.tif"]


class Recorder:
    def __init__(self, result: bool = True) -> None:
        self.result = result
        self.jobs: list[ArchiveJob] = []

    def __call__(self, job: ArchiveJob) -> bool:
        self.jobs.append(job)
        return self.result


@pytest.mark.parametrize("emails, files", [([], FILES), (["ops@example.org"], [])])
def test_enqueue_requires_recipients_and_files(conn, t0, emails, files) -> None:
    with pytest.raises(ValidationError):
        enqueue_archive_job(conn, emails, files, now=t0)
    assert conn.count("archive_jobs") == 0


@pytest.mark.parametrize("address", ["", "not-an-address", "a@", "@b.org", "a@b@c.org"])
def test_enqueue_rejects_bad_addresses(conn, t0, address) -> None:
    with pytest.raises(ValidationError):
        enqueue_archive_job(conn, ["ok@example.org", address], FILES, now=t0)
    assert conn.count("archive_jobs") == 0


def test_normalize_address_keeps_display_name() -> None:
    assert normalize_address("Jo Archivist <jo@example.org>") == "Jo Archivist <jo@example.org>"
    assert normalize_address(" jo@example.org ") == "jo@example.org"


def test_enqueue_persists_ordered_lists(conn, t0) -> None:
    job = enqueue_archive_job(conn, ["b@example.org", "a@example.org"], FILES, now=t0)

    stored = get_archive_job(conn, job.id)
    assert stored == job
    assert stored.files == tuple(FILES)
    assert stored.notification_emails == ("b@example.org", "a@example.org")
    assert stored.created_at == stored.next_attempt_at == t0
    assert stored.processed is False


def test_enqueue_file_records_under_archive_root(conn, t0) -> None:
    records = [
        ArchiveFile(category_id=1, public_path="2020-01-01/x,y.tif", full_path="V/P/2020-01-01/x,y.tif"),
        ArchiveFile(category_id=1, public_path="2020-01-01/odd\x1eName", full_path="V/P/2020-01-01/odd\x1eName"),
    ]

    job = enqueue_archive_job(conn, ["a@example.org"], records, archive_root="/mnt/archive", now=t0)

    assert get_archive_job(conn, job.id).files == (
        "/mnt/archive/V/P/2020-01-01/x,y.tif",
        "/mnt/archive/V/P/2020-01-01/odd\x1eName",
    )


@pytest.mark.parametrize(
    "files",
    [
        [ArchiveFile(category_id=1, public_path="2020-01-01/a.tif", full_path="V/P/2020-01-01/a.tif")],
        [FILES[0], "rel/b.tif"],
    ],
)
def test_enqueue_rejects_relative_file_paths(conn, t0, files) -> None:
    with pytest.raises(ValidationError):
        enqueue_archive_job(conn, ["a@example.org"], files, now=t0)
    assert conn.count("archive_jobs") == 0


def test_process_without_ready_job_is_a_noop(conn, t0) -> None:
    callback = Recorder()

    assert process_archive_job(conn, callback, now=t0) is None
    assert callback.jobs == []


def test_successful_job_is_retained_and_never_returned_again(conn, t0) -> None:
    job = enqueue_archive_job(conn, ["a@example.org"], FILES, now=t0)
    callback = Recorder(True)

    outcome = process_archive_job(conn, callback, now=t0)

    assert outcome is not None and outcome.succeeded
    assert [j.id for j in callback.jobs] == [job.id]
    assert get_archive_job(conn, job.id).processed is True
    assert process_archive_job(conn, callback, now=t0 + timedelta(days=30)) is None
    assert len(callback.jobs) == 1
    assert conn.count("archive_jobs") == 1


def test_failed_job_backs_off_one_hour(conn, t0) -> None:
    job = enqueue_archive_job(conn, ["a@example.org"], FILES, now=t0)

    outcome = process_archive_job(conn, Recorder(False), now=t0)

    assert outcome is not None and not outcome.succeeded
    stored = get_archive_job(conn, job.id)
    assert stored.next_attempt_at == t0 + RETRY_BACKOFF
    assert stored.processed is False
    assert stored.created_at == t0

    early = Recorder()
    assert process_archive_job(conn, early, now=t0 + RETRY_BACKOFF - timedelta(seconds=1)) is None
    assert early.jobs == []

    retry = Recorder(True)
    assert process_archive_job(conn, retry, now=t0 + RETRY_BACKOFF) is not None
    assert [j.id for j in retry.jobs] == [job.id]


def test_late_failure_backs_off_from_now(conn, t0) -> None:
    job = enqueue_archive_job(conn, ["a@example.org"], FILES, now=t0)
    later = t0 + timedelta(days=2)

    process_archive_job(conn, Recorder(False), now=later)

    assert get_archive_job(conn, job.id).next_attempt_at == later + RETRY_BACKOFF


def test_oldest_ready_job_first(conn, t0) -> None:
    first = enqueue_archive_job(conn, ["a@example.org"], FILES, now=t0)
    second = enqueue_archive_job(conn, ["b@example.org"], FILES, now=t0 + timedelta(minutes=5))
    callback = Recorder(False)

    process_archive_job(conn, callback, now=t0 + timedelta(minutes=10))
    process_archive_job(conn, callback, now=t0 + timedelta(minutes=10))
    # les deux sont repoussés : plus rien avant une heure
    process_archive_job(conn, callback, now=t0 + timedelta(minutes=20))

    assert [j.id for j in callback.jobs] == [first.id, second.id]
    assert [j.id for j in list_pending_archive_jobs(conn)] == [first.id, second.id]


def test_callback_exception_rolls_back(connect, conn, t0) -> None:
    with db_conn(connect) as c:
        job = enqueue_archive_job(c, ["a@example.org"], FILES, now=t0)

    def explode(_job: ArchiveJob) -> bool:
        raise RuntimeError("zip failed")

    with pytest.raises(RuntimeError):
        with db_conn(connect) as c:
            process_archive_job(c, explode, now=t0)

    stored = get_archive_job(conn, job.id)
    assert stored.processed is False
    assert stored.next_attempt_at == t0
