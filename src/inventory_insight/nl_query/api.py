import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from inventory_insight.core.errors import BackendError
from inventory_insight.nl_query.pipeline import InsightPipeline, get_pipeline

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["queries"],
    responses={404: {"description": "Not found"}},
)


class QueryRequest(BaseModel):
    question: str = Field(..., min_length=1)
    include_charts: bool = True


class ChartRequest(BaseModel):
    question: str = Field(..., min_length=1)


ERROR_STATUS = {
    "UnsafeQueryError": 400,
    "TranslationError": 502,
    "BackendError": 502,
}


@router.post("/query", response_model=Any)
def answer_question(request: QueryRequest, pipeline: InsightPipeline = Depends(get_pipeline)):
    """
    Answer a natural-language inventory question.
    Failures are reported in the `error` field of the body.
    """
    if not request.question.strip():
        raise HTTPException(status_code=422, detail="question must not be blank")

    result = pipeline.answer(request.question, include_charts=request.include_charts)
    status_code = ERROR_STATUS.get(result.error.type, 500) if result.error else 200
    return JSONResponse(status_code=status_code, content=jsonable_encoder(result.to_dict()))


@router.post("/charts", response_model=Any)
def suggest_charts(request: ChartRequest, pipeline: InsightPipeline = Depends(get_pipeline)):
    """Chart suggestions over the full inventory table."""
    try:
        analysis = pipeline.analyze_table(request.question)
    except BackendError as e:
        logger.error(f"[CHARTS API] ✗ {e}")
        raise HTTPException(status_code=502, detail=str(e))

    return {
        "insights": analysis.insights,
        "charts": jsonable_encoder([c.to_dict() for c in analysis.charts]),
        "degraded": analysis.degraded,
    }
