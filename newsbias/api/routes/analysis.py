"""Analysis submission and polling routes."""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends

from newsbias.core.rate_limit import analysis_rate_limit, skip_basic_protection
from newsbias.schemas import (
    AnalysisRequest,
    AnalysisStatusResponse,
    AnalysisSubmitResponse,
    validate_task_id,
)
from newsbias.services.analysis_queue import add_analysis_job, get_analysis_status

logger = logging.getLogger(__name__)

router = APIRouter(tags=["analysis"])


@router.post(
    "/start-analysis",
    response_model=AnalysisSubmitResponse,
    response_model_by_alias=True,
    dependencies=[Depends(analysis_rate_limit)],
)
@skip_basic_protection
def start_analysis(request: AnalysisRequest) -> AnalysisSubmitResponse:
    """Queue a bias analysis of ``content``.

    Returns a ``taskId`` that can be polled via
    ``GET /check-analysis/{taskId}``.
    """
    task_id = str(uuid.uuid4())
    add_analysis_job(task_id, request.content)
    return AnalysisSubmitResponse(task_id=task_id)


@router.get(
    "/check-analysis/{task_id}",
    response_model=AnalysisStatusResponse,
    response_model_exclude_none=True,
)
def check_analysis(task_id: str) -> AnalysisStatusResponse:
    """Poll an analysis task.

    A ``completed`` or ``failed`` outcome is delivered once;
    polling again afterwards reports ``not_found``.
    """
    return get_analysis_status(validate_task_id(task_id))
