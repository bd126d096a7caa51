"""
Dependencies giving endpoints access to the running sync service.
"""
from fastapi import Depends, HTTPException, Request, status

from rostersync.bootstrap import SyncRuntime
from rostersync.jobs.base import SyncJob
from rostersync.utils import get_logger

logger = get_logger(__name__)


def get_runtime(request: Request) -> SyncRuntime:
    """
    Runtime dependency.

    Raises:
        HTTPException: 503 while the service is not started (or failed to start)
    """
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Sync service not initialized",
        )
    return runtime


def get_job(job_id: str, runtime: SyncRuntime = Depends(get_runtime)) -> SyncJob:
    job = runtime.get_job(job_id)
    if job is None:
        logger.warning("Unknown job requested", job_id=job_id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Job '{job_id}' not found")
    return job
