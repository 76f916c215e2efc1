"""Scoring endpoints.

"Easy mode" for contestants: a plain HTML page with a textarea that is
posted back as a URL-encoded form, plus a JSON endpoint for scripts.
"""

from urllib.parse import unquote_to_bytes

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, PlainTextResponse

from api.dependencies import _get_client_ip, get_scorer, limiter
from api.models import ScoreRequest, ScoreResponse
from scoreme.config import MAX_FORM_BYTES
from scoreme.scorer import ScoreResult, Scorer, format_result
from scoreme.siem import log_siem_event
from scoreme.storage import StoreUnavailable


router = APIRouter(tags=["Scoring"])

FORM_FIELD = b"passwords"

FORM_PAGE = """<!DOCTYPE html>
<html><head><title>Score me</title></head><body>
<form action="/check" method="post">
<input type="submit"><br>
<textarea rows="50" cols="40" name="passwords" placeholder="Passwords go here"></textarea>
</form></body></html>
"""


def parse_password_form(body: bytes) -> list[bytes]:
    """Extract candidate lines from a URL-encoded form body.

    The passwords field is decoded to raw bytes (no charset guessing) and
    split on CRLF/LF, as browsers submit textarea lines. Empty lines are
    kept and scored like any other candidate, as on the command line.
    """
    for pair in body.split(b"&"):
        name, sep, value = pair.partition(b"=")
        if sep and unquote_to_bytes(name.replace(b"+", b" ")) == FORM_FIELD:
            raw = unquote_to_bytes(value.replace(b"+", b" "))
            return raw.splitlines()
    return []


def _run_scoring(scorer: Scorer, lines: list, client_ip: str) -> ScoreResult:
    try:
        result = scorer.score(lines)
    except StoreUnavailable as e:
        log_siem_event("score_run", "FAILURE", {"source": "api", "ip_address": client_ip, "error": str(e)})
        raise HTTPException(status_code=503, detail="Breach index unavailable")

    log_siem_event("score_run", "PARTIAL" if result.partial else "SUCCESS", {
        "source": "api",
        "ip_address": client_ip,
        "candidates": result.total,
        "looked_up": result.looked_up,
        "score": result.score,
        "bonus": round(result.bonus, 4),
    })
    return result


@router.get("/", response_class=HTMLResponse)
async def form_page():
    """Paste-your-passwords form."""
    return FORM_PAGE


@router.post("/check", response_class=PlainTextResponse)
@limiter.limit("30/minute")
async def check_form(request: Request, scorer: Scorer = Depends(get_scorer)):
    """Score the passwords posted from the form page."""
    body = await request.body()
    if len(body) > MAX_FORM_BYTES:
        raise HTTPException(status_code=413, detail="Form too large")

    lines = parse_password_form(body)
    if not lines:
        raise HTTPException(status_code=400, detail="No passwords submitted")

    result = await run_in_threadpool(_run_scoring, scorer, lines, _get_client_ip(request))
    return format_result(result) + "\n"


@router.post("/score", response_model=ScoreResponse)
@limiter.limit("30/minute")
async def score_batch(request: Request, payload: ScoreRequest, scorer: Scorer = Depends(get_scorer)):
    """Score a JSON batch of candidate passwords."""
    result = await run_in_threadpool(_run_scoring, scorer, payload.passwords, _get_client_ip(request))
    return ScoreResponse.from_result(result)
