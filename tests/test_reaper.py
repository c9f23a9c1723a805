import asyncio
import os
import time
import uuid
from datetime import datetime, timedelta, timezone

from audiograb.jobs.engine import JobEngine
from audiograb.jobs.models import JobRecord, JobStatus
from audiograb.jobs.reaper import Reaper
from audiograb.jobs.store import JobStore
from audiograb.storage.output_store import OutputStore

from conftest import FakeAdapter


def _job(status=JobStatus.PROCESSING):
    job = JobRecord(
        id=str(uuid.uuid4()),
        source_url="https://youtu.be/ABCDEFGHIJK",
        video_id="ABCDEFGHIJK",
        format="mp3-320",
        bitrate=320,
        title="Song",
        output_name="Song-abcdef12.mp3",
    )
    if status == JobStatus.COMPLETED:
        job.mark_completed(100)
    elif status == JobStatus.FAILED:
        job.mark_failed("boom")
    return job


def _aged_file(directory, name, age_seconds):
    path = directory / name
    path.write_bytes(b"x")
    stamp = time.time() - age_seconds
    os.utime(path, (stamp, stamp))
    return path


def test_job_sweep_removes_terminal_records_only(downloads_dir):
    store = JobStore()
    processing = _job()
    completed = _job(JobStatus.COMPLETED)
    failed = _job(JobStatus.FAILED)
    for job in (processing, completed, failed):
        store.put(job)

    reaper = Reaper(store, OutputStore(str(downloads_dir)))
    assert reaper.sweep_jobs() == 2
    assert store.get(processing.id) is not None
    assert store.get(completed.id) is None
    assert store.get(failed.id) is None


def test_job_sweep_honours_grace_period(downloads_dir):
    store = JobStore()
    job = _job(JobStatus.COMPLETED)
    store.put(job)
    reaper = Reaper(store, OutputStore(str(downloads_dir)), job_grace_seconds=60)

    assert reaper.sweep_jobs() == 0
    assert store.get(job.id) is not None

    later = datetime.now(timezone.utc) + timedelta(seconds=61)
    assert reaper.sweep_jobs(now=later) == 1
    assert store.get(job.id) is None


def test_file_sweep_removes_only_expired_files(downloads_dir):
    old = _aged_file(downloads_dir, "old-00000000.mp3", 2 * 3600)
    fresh = _aged_file(downloads_dir, "fresh-00000000.mp3", 10)
    (downloads_dir / "subdir").mkdir()
    os.utime(downloads_dir / "subdir", (0, 0))

    output_store = OutputStore(str(downloads_dir), ttl_seconds=3600)
    assert output_store.cleanup_expired() == 1
    assert not old.exists()
    assert fresh.exists()
    assert (downloads_dir / "subdir").is_dir()


def test_sweep_runs_both_sweeps(downloads_dir):
    store = JobStore()
    keep = _job()
    store.put(keep)
    store.put(_job(JobStatus.FAILED))
    _aged_file(downloads_dir, "stale.mp3", 7200)
    _aged_file(downloads_dir, "recent.mp3", 60)

    reaper = Reaper(store, OutputStore(str(downloads_dir), ttl_seconds=3600))
    result = asyncio.run(reaper.sweep())

    assert result.files_removed == 1
    assert result.jobs_removed == 1
    assert [j.id for j in store.list()] == [keep.id]
    assert [p.name for p in downloads_dir.iterdir()] == ["recent.mp3"]


def test_file_sweep_error_does_not_stop_job_sweep(downloads_dir, monkeypatch):
    store = JobStore()
    store.put(_job(JobStatus.COMPLETED))
    output_store = OutputStore(str(downloads_dir))

    def broken():
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(output_store, "cleanup_expired", broken)
    result = asyncio.run(Reaper(store, output_store).sweep())
    assert result.files_removed == 0
    assert result.jobs_removed == 1


def test_loop_sweeps_on_start_and_on_interval(downloads_dir):
    store = JobStore()
    output_store = OutputStore(str(downloads_dir))

    async def scenario():
        reaper = Reaper(store, output_store, interval_seconds=0.2)
        store.put(_job(JobStatus.COMPLETED))
        await reaper.start()
        await asyncio.sleep(0.1)
        after_first = len(store)
        store.put(_job(JobStatus.FAILED))
        await asyncio.sleep(0.4)
        after_second = len(store)
        await reaper.stop()
        return after_first, after_second

    assert asyncio.run(scenario()) == (0, 0)


def test_stale_processing_record_is_failed_then_removed(downloads_dir):
    store = JobStore()
    stuck = _job()
    fresh = _job()
    stuck.created_at = datetime.now(timezone.utc) - timedelta(seconds=400)
    store.put(stuck)
    store.put(fresh)
    reaper = Reaper(store, OutputStore(str(downloads_dir)), stale_after_seconds=360)

    assert reaper.sweep_jobs() == 0
    expired = store.get(stuck.id)
    assert expired.status == JobStatus.FAILED
    assert "expired" in expired.error
    assert expired.finished_at is not None
    assert store.get(fresh.id).status == JobStatus.PROCESSING

    assert reaper.sweep_jobs() == 1
    assert store.get(stuck.id) is None
    assert store.get(fresh.id) is not None


def test_processing_records_kept_without_stale_limit(downloads_dir):
    store = JobStore()
    job = _job()
    job.created_at = datetime.now(timezone.utc) - timedelta(days=7)
    store.put(job)
    assert Reaper(store, OutputStore(str(downloads_dir))).sweep_jobs() == 0
    assert store.get(job.id).status == JobStatus.PROCESSING


def test_job_never_launched_is_expired_and_stays_dead(downloads_dir):
    adapter = FakeAdapter(size=10)

    async def scenario():
        store = JobStore()
        output_store = OutputStore(str(downloads_dir))
        engine = JobEngine(store, output_store, adapter, timeout_seconds=5)
        reaper = Reaper(store, output_store, stale_after_seconds=65)

        # Recorded but its launch never happened
        job = await engine.submit("https://youtu.be/ABCDEFGHIJK", launch=False)
        later = datetime.now(timezone.utc) + timedelta(seconds=66)
        reaper.sweep_jobs(now=later)
        expired = await engine.get_status(job.id)

        await engine.launch(job.id)
        await asyncio.sleep(0.05)
        return expired, await engine.get_status(job.id)

    expired, after = asyncio.run(scenario())
    assert expired.status == JobStatus.FAILED
    assert after.status == JobStatus.FAILED
    assert after.error == expired.error
    assert adapter.calls == []
