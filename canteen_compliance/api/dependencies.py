"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from canteen_compliance.domain.policy import CompliancePolicy
from canteen_compliance.infrastructure.database.repositories import JobExecutionRepository, SqlAlchemyRecordStore
from canteen_compliance.infrastructure.database.session import get_db
from canteen_compliance.services.scheduler import DailySweepJob


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_store(db: Session = Depends(get_db)) -> SqlAlchemyRecordStore:
    """Provide record store bound to the request session"""
    return SqlAlchemyRecordStore(db)


def get_job_log(db: Session = Depends(get_db)) -> JobExecutionRepository:
    return JobExecutionRepository(db)


def get_sweep_job(request: Request) -> DailySweepJob:
    """Provide the application-wide sweep job"""
    return request.app.state.sweep_job


def get_policy(request: Request) -> CompliancePolicy:
    return request.app.state.policy
