"""
api/routes/v1/vacancies.py -- Vacancy postings and applications.

Routes:
  POST   /api/v1/vacancies                    -- publish a vacancy (requires auth)
  GET    /api/v1/vacancies/{url}              -- one vacancy (public)
  PATCH  /api/v1/vacancies/{url}              -- edit (author only)
  DELETE /api/v1/vacancies/{url}              -- delete (author only)
  POST   /api/v1/vacancies/{url}/candidates   -- apply (public)
  GET    /api/v1/vacancies/{url}/candidates   -- list applicants (author only)

Authorship: every author-only route loads the vacancy, returns 404 if it does
not exist, then calls AuthorizationGuard.authorize() BEFORE touching the
store. A denial raises Forbidden, which api/main.py renders as 403 -- the
route never silently skips the operation.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.models import CandidateCreate, CandidateResponse, VacancyCreate, VacancyPatch, VacancyResponse
from auth.dependencies import get_current_user
from auth.guard import AuthorizationGuard
from auth.models import User
from board.models import Candidate, Vacancy
from board.store import VacancyStore

router = APIRouter()


def _get_or_404(store: VacancyStore, url: str) -> Vacancy:
    vacancy = store.get_by_url(url)
    if vacancy is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "Vacancy not found."},
        )
    return vacancy


def _get_owned(request: Request, url: str, user: User) -> Vacancy:
    """Load a vacancy and require that user authored it (404, then 403)."""
    store: VacancyStore = request.app.state.vacancy_store
    guard: AuthorizationGuard = request.app.state.guard
    vacancy = _get_or_404(store, url)
    guard.authorize(vacancy, user.id)
    return vacancy


@router.post("/vacancies", response_model=VacancyResponse, status_code=201)
def create_vacancy(
    request: Request,
    body: VacancyCreate,
    current_user: User = Depends(get_current_user),
) -> VacancyResponse:
    """Publish a vacancy. The caller becomes its author."""
    store: VacancyStore = request.app.state.vacancy_store
    vacancy = store.create_vacancy(Vacancy(author_id=current_user.id, **body.model_dump()))
    return VacancyResponse.from_vacancy(vacancy)


@router.get("/vacancies/{url}", response_model=VacancyResponse)
def get_vacancy(request: Request, url: str) -> VacancyResponse:
    store: VacancyStore = request.app.state.vacancy_store
    return VacancyResponse.from_vacancy(_get_or_404(store, url))


@router.patch("/vacancies/{url}", response_model=VacancyResponse)
def update_vacancy(
    request: Request,
    url: str,
    body: VacancyPatch,
    current_user: User = Depends(get_current_user),
) -> VacancyResponse:
    store: VacancyStore = request.app.state.vacancy_store
    vacancy = _get_owned(request, url, current_user)
    updates = body.model_dump(exclude_none=True)
    if not updates:
        raise HTTPException(
            status_code=400,
            detail={"code": "no_changes", "message": "No fields to update."},
        )
    store.update_vacancy(vacancy.id, **updates)
    return VacancyResponse.from_vacancy(store.get_by_id(vacancy.id))


@router.delete("/vacancies/{url}", status_code=204)
def delete_vacancy(
    request: Request,
    url: str,
    current_user: User = Depends(get_current_user),
) -> Response:
    store: VacancyStore = request.app.state.vacancy_store
    vacancy = _get_owned(request, url, current_user)
    store.delete_vacancy(vacancy.id)
    return Response(status_code=204)


@router.post("/vacancies/{url}/candidates", response_model=CandidateResponse, status_code=201)
def apply_to_vacancy(request: Request, url: str, body: CandidateCreate) -> CandidateResponse:
    """Record an application. cv is a filename already stored by the file store."""
    store: VacancyStore = request.app.state.vacancy_store
    vacancy = _get_or_404(store, url)
    candidate = store.add_candidate(Candidate(vacancy_id=vacancy.id, name=body.name, email=body.email, cv=body.cv))
    return CandidateResponse.from_candidate(candidate)


@router.get("/vacancies/{url}/candidates", response_model=list[CandidateResponse])
def list_candidates(
    request: Request,
    url: str,
    current_user: User = Depends(get_current_user),
) -> list[CandidateResponse]:
    store: VacancyStore = request.app.state.vacancy_store
    vacancy = _get_owned(request, url, current_user)
    return [CandidateResponse.from_candidate(c) for c in store.list_candidates(vacancy.id)]
