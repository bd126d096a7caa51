"""
Sync job status and manual trigger endpoints.
"""
from fastapi import APIRouter, Depends, HTTPException, Request, status

from rostersync.api.deps import get_job, get_runtime
from rostersync.bootstrap import SyncRuntime
from rostersync.exceptions import JobAlreadyRunningError
from rostersync.jobs.base import SyncJob
from rostersync.models.schemas.base import ResponseBase
from rostersync.models.schemas.jobs import JobList, JobStatus
from rostersync.utils import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.get("", response_model=JobList, summary="List configured sync jobs")
async def list_jobs(runtime: SyncRuntime = Depends(get_runtime)) -> JobList:
    statuses = [job.status() for job in runtime.jobs]
    return JobList(jobs=statuses, total=len(statuses))


@router.get("/{job_id}", response_model=JobStatus, summary="Status of one sync job")
async def get_job_status(job: SyncJob = Depends(get_job)) -> JobStatus:
    return job.status()


@router.post(
    "/{job_id}/run",
    response_model=ResponseBase,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Trigger a sync job outside its schedule",
)
async def trigger_job(
    request: Request,
    job: SyncJob = Depends(get_job),
    runtime: SyncRuntime = Depends(get_runtime),
) -> ResponseBase:
    """Queue one run of the job. The outcome shows up in the job status and the info channel."""
    request_id = getattr(request.state, "request_id", "unknown")
    try:
        runtime.scheduler.trigger(job.job_id)
    except JobAlreadyRunningError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e

    logger.info("Manual sync triggered", job_id=job.job_id, request_id=request_id)
    return ResponseBase(
        message=f"Job '{job.job_id}' triggered",
        data={"job_id": job.job_id, "dryrun": job.dryrun},
    )
