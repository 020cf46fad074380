"""FastAPI entrypoint for the glossary backend."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI, File, Form, Header, HTTPException, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import Settings
from errors import AdapterFailure, InvalidTransition, NotFound, ValidationError
from models import (
    CandidatePayload,
    ContributionDetailPayload,
    ContributionResponsePayload,
    ContributionsPayload,
    ContributionsResponsePayload,
    FlagPayload,
    FlagRequest,
    FlagsResponsePayload,
    ModerateRequest,
    NextCardResponsePayload,
    ReviewCardPayload,
    ReviewCardsResponsePayload,
    SearchResponsePayload,
    SearchResultPayload,
    StatusUpdateRequest,
    TermPayload,
    UploadRequest,
    UploadResponsePayload,
    VoteRequest,
    VoteResponsePayload,
)
from ranking import best_candidate
from services import build_service

settings = Settings.from_env()

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Glossary Backend", description="Crowdsourced glossary API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

service = build_service(settings)


def _server_error(action: str) -> HTTPException:
    logger.exception("%s failed", action)
    return HTTPException(status_code=500, detail=f"Failed to {action}")


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and parameters are client errors: 400 with a short message."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(
        part for part in first.get("loc", ()) if isinstance(part, str) and part not in ("body", "query", "path", "header")
    )
    detail = f"Invalid {field}: {first.get('msg', 'bad value')}" if field else "Invalid request"
    logger.info("Rejected %s %s: %s", request.method, request.url.path, detail)
    return JSONResponse(status_code=400, content={"detail": detail})


@app.get("/", tags=["health"])
async def root():
    return {"status": "ok", "message": "Glossary backend is running"}


@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok", "message": "Glossary backend is running"}


@app.get("/search", response_model=SearchResponsePayload, tags=["terms"])
async def search(q: str = ""):
    try:
        hits = service.search(q)
        return SearchResponsePayload(
            results=[SearchResultPayload(term=t.term, slug=t.slug) for t in hits],
            total=service.total_terms(),
        )
    except Exception:
        raise _server_error("search terms")


@app.get("/term/{slug:path}", response_model=TermPayload, tags=["terms"])
async def get_term(slug: str):
    try:
        entry = service.term(slug)
        candidates = list(entry.candidates)
        best = best_candidate(entry) if candidates else None
        return TermPayload(
            term=entry.term,
            slug=entry.slug,
            candidates=[CandidatePayload.from_record(c) for c in candidates],
            best=CandidatePayload.from_record(best) if best else None,
            total_terms=service.total_terms(),
        )
    except NotFound:
        raise HTTPException(status_code=404, detail="Not found")
    except Exception:
        raise _server_error("load term")


@app.post("/upload", response_model=UploadResponsePayload, tags=["contributions"])
async def upload(request: UploadRequest, x_user_id: Optional[str] = Header(default=None)):
    try:
        entry, candidate = service.upload_text(
            request.term,
            request.definition,
            source=request.source,
            user_id=request.user_id or x_user_id,
            draft=request.draft,
        )
        return UploadResponsePayload(slug=entry.slug, id=candidate.id)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception:
        raise _server_error("upload definition")


@app.post("/upload/file", response_model=UploadResponsePayload, tags=["contributions"])
async def upload_file(
    term: str = Form(...),
    file: UploadFile = File(...),
    source: Optional[str] = Form(default=None),
    user_id: Optional[str] = Form(default=None, alias="userId"),
    draft: bool = Form(default=False),
    x_user_id: Optional[str] = Header(default=None),
):
    try:
        data = await file.read()
        entry, candidate = await asyncio.to_thread(
            service.upload_file,
            term,
            data,
            file.content_type or "",
            file.filename or "",
            source,
            user_id or x_user_id,
            draft,
        )
        return UploadResponsePayload(slug=entry.slug, id=candidate.id)
    except (ValidationError, AdapterFailure) as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception:
        raise _server_error("process uploaded file")


@app.get("/review/next", response_model=NextCardResponsePayload, tags=["review"])
async def review_next():
    try:
        card = service.next_card()
        return NextCardResponsePayload(card=ReviewCardPayload.from_card(card) if card else None)
    except Exception:
        raise _server_error("draw review card")


@app.get("/review/cards", response_model=ReviewCardsResponsePayload, tags=["review"])
async def review_cards(count: int = Query(default=0, ge=0, le=20)):
    try:
        cards = service.review_cards(count or None)
        return ReviewCardsResponsePayload(cards=[ReviewCardPayload.from_card(c) for c in cards])
    except Exception:
        raise _server_error("draw review cards")


@app.post("/review/vote", response_model=VoteResponsePayload, tags=["review"])
async def review_vote(request: VoteRequest):
    try:
        candidate, replacement = service.vote(request.candidate_id, request.direction)
        return VoteResponsePayload(
            candidate=CandidatePayload.from_record(candidate),
            next_card=ReviewCardPayload.from_card(replacement) if replacement else None,
        )
    except NotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception:
        raise _server_error("record vote")


@app.post("/review/flag", tags=["review"])
async def review_flag(request: FlagRequest, x_user_id: Optional[str] = Header(default=None)):
    try:
        record = service.flag(request.candidate_id, request.reason, request.user_id or x_user_id)
        return {"success": True, "flag": FlagPayload.from_record(record).model_dump(by_alias=True)}
    except NotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except Exception:
        raise _server_error("flag definition")


@app.get("/review/flags", response_model=FlagsResponsePayload, tags=["review"])
async def review_flags():
    return FlagsResponsePayload(flags=[FlagPayload.from_record(f) for f in service.flags()])


@app.get("/contributions", response_model=ContributionsResponsePayload, tags=["contributions"])
async def contributions(
    user_id: Optional[str] = Query(default=None, alias="userId"),
    x_user_id: Optional[str] = Header(default=None),
):
    owner = user_id or x_user_id
    if not owner:
        raise HTTPException(status_code=400, detail="User ID is required")
    try:
        buckets = service.contributions(owner)
        return ContributionsResponsePayload(data=ContributionsPayload.from_buckets(buckets))
    except Exception:
        raise _server_error("fetch contributions")


@app.get("/contributions/{candidate_id}", response_model=ContributionResponsePayload, tags=["contributions"])
async def get_contribution(candidate_id: str):
    try:
        entry, candidate = service.contribution(candidate_id)
        return ContributionResponsePayload(
            data=ContributionDetailPayload(
                term=entry.term,
                slug=entry.slug,
                candidate=CandidatePayload.from_record(candidate),
            )
        )
    except NotFound:
        raise HTTPException(status_code=404, detail="Contribution not found")
    except Exception:
        raise _server_error("fetch contribution")


@app.patch("/contributions/{candidate_id}", tags=["contributions"])
async def update_contribution(candidate_id: str, request: StatusUpdateRequest):
    try:
        candidate = service.set_status(candidate_id, request.status)
        return {
            "success": True,
            "message": "Contribution status updated successfully",
            "status": candidate.status.value,
        }
    except NotFound:
        raise HTTPException(status_code=404, detail="Contribution not found")
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except InvalidTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except Exception:
        raise _server_error("update contribution")


@app.post("/contributions/{candidate_id}/submit", response_model=CandidatePayload, tags=["contributions"])
async def submit_contribution(candidate_id: str):
    try:
        return CandidatePayload.from_record(service.submit(candidate_id))
    except NotFound:
        raise HTTPException(status_code=404, detail="Contribution not found")
    except InvalidTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except Exception:
        raise _server_error("submit contribution")


@app.post("/contributions/{candidate_id}/moderate", response_model=CandidatePayload, tags=["contributions"])
async def moderate_contribution(candidate_id: str, request: ModerateRequest):
    try:
        return CandidatePayload.from_record(service.moderate(candidate_id, request.outcome))
    except NotFound:
        raise HTTPException(status_code=404, detail="Contribution not found")
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except InvalidTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except Exception:
        raise _server_error("moderate contribution")


@app.delete("/contributions/{candidate_id}", tags=["contributions"])
async def delete_contribution(candidate_id: str):
    try:
        service.remove(candidate_id)
        return {"success": True, "message": "Contribution deleted successfully"}
    except NotFound:
        raise HTTPException(status_code=404, detail="Contribution not found")
    except Exception:
        raise _server_error("delete contribution")


if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port)
