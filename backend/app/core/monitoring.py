"""
Monitoring utilities for job runs and remote operation timing
"""
import logging
import os
import time
from contextlib import asynccontextmanager, contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from google.cloud import firestore as fs

from app.core.config import Settings
from app.core.firebase import Collections

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_environment(config: Settings):
    """
    Validate Firebase credentials are configured before a worker runs

    Raises:
        EnvironmentError: If no credential source is configured or the
            credentials file is missing
    """
    if config.USE_MOCK_FIREBASE:
        logger.info("Using mock Firestore, credential check skipped")
        return

    if config.FIREBASE_CREDENTIALS_JSON:
        logger.info("Firebase credentials loaded from FIREBASE_CREDENTIALS_JSON")
        return

    creds_path = config.GOOGLE_APPLICATION_CREDENTIALS
    if not creds_path:
        raise EnvironmentError(
            "Set GOOGLE_APPLICATION_CREDENTIALS or FIREBASE_CREDENTIALS_JSON, "
            "or USE_MOCK_FIREBASE=true for local development"
        )

    if not os.path.exists(creds_path):
        raise EnvironmentError(f"Firebase credentials file not found: {creds_path}")

    logger.info(f"Firebase credentials loaded from: {creds_path}")


@contextmanager
def acquire_lock(job_name: str, lock_dir: str = "/tmp"):
    """
    Acquire a file lock to prevent concurrent job execution

    Args:
        job_name: Name of the job (used for lock filename)
        lock_dir: Directory to store lock files

    Raises:
        RuntimeError: If the job is already running
    """
    lock_file = Path(lock_dir) / f"{job_name}.lock"

    if lock_file.exists():
        try:
            pid = int(lock_file.read_text().strip())
        except ValueError:
            logger.warning(f"Removing unreadable lock file: {lock_file}")
            lock_file.unlink()
        else:
            try:
                os.kill(pid, 0)  # signal 0 only checks the process exists
            except OSError:
                logger.warning(f"Removing stale lock file: {lock_file} (PID {pid} not found)")
                lock_file.unlink()
            else:
                raise RuntimeError(f"Job {job_name} is already running (PID: {pid}). Lock file: {lock_file}")

    lock_file.write_text(str(os.getpid()))
    logger.info(f"Lock acquired: {lock_file}")
    try:
        yield
    finally:
        if lock_file.exists():
            lock_file.unlink()
            logger.info(f"Lock released: {lock_file}")


# ==================== Remote Operations ====================

@asynccontextmanager
async def measure_operation(name: str, slow_threshold_ms: float = 1000.0):
    """
    Log how long a remote operation took

    Usage:
        async with measure_operation("vehicles.list"):
            vehicles = await service.get_all_vehicles()

    Failures are logged with their duration and re-raised.
    """
    started = time.perf_counter()
    try:
        yield
    except Exception as e:
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.warning(f"❌ {name} failed after {elapsed_ms:.1f}ms: {e}")
        raise
    elapsed_ms = (time.perf_counter() - started) * 1000
    if elapsed_ms >= slow_threshold_ms:
        logger.warning(f"🐢 {name} took {elapsed_ms:.1f}ms")
    else:
        logger.debug(f"{name} took {elapsed_ms:.1f}ms")


# ==================== Job Runs ====================

def log_job_run(
    db,
    job_name: str,
    status: str,
    started_at: datetime,
    finished_at: datetime,
    counts: Optional[Dict[str, int]] = None,
    error: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> str:
    """
    Log job execution to the job_runs collection

    Args:
        db: Firestore (or mock) client
        job_name: Name of the job (e.g. 'seed_content')
        status: 'success', 'fail', or 'skipped'
        started_at: Job start timestamp
        finished_at: Job completion timestamp
        counts: Dictionary with counts like {created: 2, skipped: 1}
        error: Error message if status is 'fail'
        metadata: Additional job-specific metadata

    Returns:
        Document ID of created job_run
    """
    duration_ms = int((finished_at - started_at).total_seconds() * 1000)

    job_run = {
        'job_name': job_name,
        'started_at': started_at,
        'finished_at': finished_at,
        'status': status,
        'duration_ms': duration_ms,
        'counts': counts or {},
        'error': error,
        'metadata': metadata or {},
        'created_at': fs.SERVER_TIMESTAMP
    }

    doc_ref = db.collection(Collections.JOB_RUNS).document()
    doc_ref.set(job_run)

    log_msg = f"Job run logged: {job_name} [{status}] duration={duration_ms}ms"
    if counts:
        log_msg += f" counts={counts}"
    if error:
        log_msg += f" error={error}"
    logger.info(log_msg)

    return doc_ref.id


def log_job_skipped(db, job_name: str, reason: str = "Lock file exists") -> str:
    now = _utcnow()
    return log_job_run(
        db,
        job_name=job_name,
        status='skipped',
        started_at=now,
        finished_at=now,
        metadata={'skip_reason': reason}
    )


@contextmanager
def track_job(db, job_name: str, counts: Optional[Dict[str, int]] = None):
    """
    Context manager to record a job run whether it succeeds or fails

    Usage:
        with track_job(db, 'seed_content', counts={'created': 0}) as counts:
            counts['created'] += 2

    Args:
        db: Firestore (or mock) client
        job_name: Name of the job
        counts: Dictionary to track counts (mutated by caller)
    """
    counts = counts if counts is not None else {}
    started_at = _utcnow()
    error_msg = None
    status = 'success'

    try:
        yield counts
    except Exception as e:
        status = 'fail'
        error_msg = str(e)
        logger.error(f"Job {job_name} failed: {error_msg}")
        raise
    finally:
        log_job_run(
            db,
            job_name=job_name,
            status=status,
            started_at=started_at,
            finished_at=_utcnow(),
            counts=counts,
            error=error_msg
        )
