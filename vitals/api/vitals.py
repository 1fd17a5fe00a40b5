from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from vitals.models.vitals import VitalsSnapshot
from vitals.services import vitals_collector
from vitals.services.vitals_report import render_text

router = APIRouter()


@router.get("", response_model=VitalsSnapshot, summary="Current host vitals")
def current_vitals() -> VitalsSnapshot:
    """
    Collect and return one fresh snapshot.

    Declared as a plain function so FastAPI runs it in the threadpool: the CPU
    sampling window blocks for about a second and must not stall the event
    loop serving the SSE streams.
    """
    return vitals_collector.collect_vitals()


@router.get("/text", response_class=PlainTextResponse, summary="Current host vitals as text")
def current_vitals_text() -> str:
    """Same snapshot as /vitals, rendered as a plain-text report."""
    return render_text(vitals_collector.collect_vitals())
