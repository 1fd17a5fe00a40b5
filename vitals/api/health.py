from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter()


@router.get("", response_class=PlainTextResponse, summary="Liveness probe")
async def health() -> str:
    """Constant liveness answer; does not touch any probe."""
    return "OK"
