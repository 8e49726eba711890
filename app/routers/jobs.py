from typing import List

from fastapi import APIRouter, Depends, File, UploadFile

from app.dependencies import get_job_index
from app.helpers.parsing import read_jobs_excel
from app.models.response import JobImportResult
from app.models.schemas import JobModel
from app.services.stores import JobIndex
from app.utils.exceptions import ExceptionContext, ValidationError
from app.utils.logging_config import get_logger, PerformanceMonitor

router = APIRouter()
logger = get_logger(__name__)


@router.get("/", response_model=List[JobModel])
async def list_jobs(index: JobIndex = Depends(get_job_index)):
    """All job postings, newest first"""
    with ExceptionContext("list_jobs", logger):
        return await index.list_jobs()


@router.post("/import", response_model=JobImportResult)
async def import_jobs(
    jobsFile: UploadFile = File(...),
    index: JobIndex = Depends(get_job_index),
):
    """Upsert job postings from an .xlsx export, keyed by job URL"""
    data = await jobsFile.read()
    if not data:
        raise ValidationError("No spreadsheet uploaded.", field="jobsFile")

    with PerformanceMonitor("import_jobs", logger):
        jobs = read_jobs_excel(data)
        if not jobs:
            return JobImportResult(success=True, message="No valid job rows found to process.")

        with ExceptionContext("upsert_jobs", logger, job_count=len(jobs)):
            inserted, updated = await index.upsert_jobs(jobs)

    logger.info(f"Imported {len(jobs)} jobs ({inserted} new, {updated} updated)")
    return JobImportResult(
        success=True,
        message=f"Successfully processed {len(jobs)} jobs.",
        total_processed=len(jobs),
        inserted_count=inserted,
        updated_count=updated,
    )
