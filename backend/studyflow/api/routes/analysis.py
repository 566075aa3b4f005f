"""Free-text AI analysis and quick-action extraction."""

from fastapi import APIRouter

from studyflow.api.deps import Analyzer, CurrentUser
from studyflow.schemas.analysis import (
    ActionExtractRequest,
    AnalysisRequest,
    AnalysisResponse,
    SuggestiveAction,
)
from studyflow.services.text_actions import extract_suggestive_actions

router = APIRouter(tags=["analysis"])


@router.post("/analysis", response_model=AnalysisResponse)
async def analyze_text(
    request: AnalysisRequest,
    current_user: CurrentUser,
    analyzer: Analyzer,
) -> AnalysisResponse:
    """Analyze arbitrary task text. Falls back to a static analysis on any failure."""
    analysis = await analyzer.analyze_task(request.text, request.priority)
    return AnalysisResponse(
        task_text=request.text,
        analysis=analysis,
        suggestive_actions=extract_suggestive_actions(request.text),
    )


@router.post("/actions/extract", response_model=list[SuggestiveAction])
async def extract_actions(
    request: ActionExtractRequest,
    current_user: CurrentUser,
) -> list[SuggestiveAction]:
    """Run only the text heuristics (email, phone, URL, location, keywords)."""
    return extract_suggestive_actions(request.text)
