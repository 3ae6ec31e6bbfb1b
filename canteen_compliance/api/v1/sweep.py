"""POST /v1/sweep/run, GET /v1/sweep/status, GET /v1/sweep/history - daily sweep control"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from canteen_compliance.api.dependencies import get_job_log, get_request_id, get_sweep_job
from canteen_compliance.api.v1.schemas import (
    JobExecutionSchema,
    SweepErrorSchema,
    SweepHistoryResponse,
    SweepResultResponse,
    SweepStatusResponse,
)
from canteen_compliance.domain.models import ExecutedBy, SweepResult
from canteen_compliance.infrastructure.database.repositories import JobExecutionRepository
from canteen_compliance.services.scheduler import DailySweepJob

router = APIRouter()


def to_sweep_response(result: SweepResult) -> SweepResultResponse:
    return SweepResultResponse(
        status=result.status.value,
        started_at=result.started_at,
        finished_at=result.finished_at,
        processed_count=result.processed_count,
        flag_updates=result.flag_updates,
        overdue_count=result.overdue_count,
        deducted_count=result.deducted_count,
        points_deducted=result.points_deducted,
        suspended_students=result.suspended_students,
        banned_students=result.banned_students,
        errors=[
            SweepErrorSchema(
                transaction_id=e.transaction_id,
                student_id=e.student_id,
                stage=e.stage,
                message=e.message,
            )
            for e in result.errors
        ],
        failure_reason=result.failure_reason,
    )


@router.post("/sweep/run", response_model=SweepResultResponse)
async def run_sweep_now(request: Request, job: DailySweepJob = Depends(get_sweep_job)):
    """
    Force a sweep outside the daily schedule.

    Returns:
        Sweep summary; a run that could not load its candidates reports status "failed"
    """
    request_id = get_request_id(request)
    result = await job.run_now(executed_by=ExecutedBy.MANUAL)

    if result is None:
        logging.info("Manual sweep rejected, sweep in progress", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail="Sweep already running")

    return to_sweep_response(result)


@router.get("/sweep/status", response_model=SweepStatusResponse)
def get_sweep_status(job: DailySweepJob = Depends(get_sweep_job)):
    """Current scheduler state with last and next run times"""
    status = job.status()
    return SweepStatusResponse(
        state=status.state.value,
        is_running=status.is_running,
        is_active=status.is_active,
        last_run=status.last_run,
        next_run=status.next_run,
        last_result=to_sweep_response(status.last_result) if status.last_result else None,
    )


@router.get("/sweep/history", response_model=SweepHistoryResponse)
def get_sweep_history(
    limit: int = Query(10, ge=1, le=100, description="Maximum executions to return"),
    job_log: JobExecutionRepository = Depends(get_job_log),
):
    """Most recent sweep executions, newest first"""
    executions = [
        JobExecutionSchema(
            id=e.id,
            execution_date=e.execution_date,
            status=e.status.value,
            executed_by=e.executed_by.value,
            start_time=e.start_time,
            end_time=e.end_time,
            processed_transactions=e.processed_transactions,
            deducted_transactions=e.deducted_transactions,
            errors=e.errors,
        )
        for e in job_log.history(limit=limit)
    ]
    return SweepHistoryResponse(executions=executions)
