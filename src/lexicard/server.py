import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from lexicard.application.config import resolve_config
from lexicard.application.factory import get_repository
from lexicard.application.library_service import LibraryService
from lexicard.application.stats.service import StatisticsService
from lexicard.application.study_service import StudyService
from lexicard.application.utils.dates import utc_now
from lexicard.consts import VERSION
from lexicard.domain.errors import LexicardError
from lexicard.domain.models import ReviewStatus, WordDraft
from lexicard.domain.ports import VocabularyRepository

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("lexicard.server")


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class StatusEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status: ReviewStatus
    date: datetime


class WordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    word: str
    definition: str
    examples: list[str]
    pronunciation: str | None
    familiarity: int
    is_known: bool
    review_count: int
    incorrect_count: int
    last_reviewed_at: datetime | None
    next_review_at: datetime | None
    status_history: list[StatusEntryOut]


class BookOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    user_id: str
    description: str | None
    tags: list[str]
    word_ids: list[str]
    total_words: int
    known_words: int
    unknown_words: int
    last_studied: datetime | None
    updated_at: datetime | None


class BookDetailOut(BaseModel):
    book: BookOut
    words: list[WordOut]


class WordResultOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    word_id: str
    known: bool
    time_spent: int
    reviewed_at: datetime


class SessionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    book_id: str
    start_time: datetime
    end_time: datetime | None
    duration: int
    total_words: int
    known_words: int
    unknown_words: int
    word_results: list[WordResultOut]


class SessionPageOut(BaseModel):
    sessions: list[SessionOut]
    total: int
    limit: int
    skip: int
    total_pages: int


class SessionDetailOut(BaseModel):
    session: SessionOut
    book: BookOut | None
    words: dict[str, WordOut]


class WordStatusOut(BaseModel):
    is_known: bool
    familiarity: int
    next_review_at: datetime | None


class SessionStatsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    session_id: str
    duration: int
    total_words: int
    known_words: int
    unknown_words: int


class OverallStatsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_words: int
    known_words: int
    unknown_words: int
    mastery_rate: int
    total_study_time: int
    study_days: int
    longest_streak: int
    current_streak: int
    average_words_per_day: float


class ActivityOut(BaseModel):
    timeframe: str
    activity_data: dict[str, int]


class MonthlyProgressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    month: str
    label: str
    learned: int
    mastered: int


class RetentionPointOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    day: int
    retention: int


class MemoryCurveOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    standard_curve: list[RetentionPointOut]
    user_curve: list[RetentionPointOut]


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class CreateBookRequest(BaseModel):
    user_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: str | None = None
    tags: list[str] = Field(default_factory=list)


class SetCurrentBookRequest(BaseModel):
    book_id: str = Field(min_length=1)


class CurrentBookOut(BaseModel):
    current_book_id: str


class UpdateBookRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    tags: list[str] | None = None


class WordIn(BaseModel):
    word: str = Field(min_length=1)
    definition: str = Field(min_length=1)
    examples: list[str] = Field(default_factory=list)
    pronunciation: str | None = None

    def to_draft(self) -> WordDraft:
        return WordDraft(
            word=self.word,
            definition=self.definition,
            examples=tuple(self.examples),
            pronunciation=self.pronunciation,
        )


class ImportWordsRequest(BaseModel):
    words: list[WordIn] = Field(min_length=1)


class FamiliarityRequest(BaseModel):
    is_known: bool


class StartSessionRequest(BaseModel):
    user_id: str = Field(min_length=1)
    book_id: str = Field(min_length=1)


class WordResultRequest(BaseModel):
    word_id: str = Field(min_length=1)
    known: bool
    time_spent: int = Field(ge=0)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def get_repo(request: Request) -> VocabularyRepository:
    return request.app.state.repository


RepoDep = Annotated[VocabularyRepository, Depends(get_repo)]


def get_library(repo: RepoDep) -> LibraryService:
    return LibraryService(repo)


def get_study(repo: RepoDep) -> StudyService:
    return StudyService(repo)


def get_statistics(repo: RepoDep) -> StatisticsService:
    return StatisticsService(repo)


LibraryDep = Annotated[LibraryService, Depends(get_library)]
StudyDep = Annotated[StudyService, Depends(get_study)]
StatisticsDep = Annotated[StatisticsService, Depends(get_statistics)]


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

api = APIRouter(prefix="/api")


# --- Books ---


@api.get("/books/user/{user_id}", response_model=list[BookOut])
async def list_user_books(user_id: str, library: LibraryDep):
    return await library.list_books(user_id)


@api.get("/books/current/{user_id}", response_model=BookDetailOut)
async def get_current_book(
    user_id: str, library: LibraryDep, current_book_id: str | None = None
):
    """The requested or stored book if it is the user's, else the latest one."""
    book = await library.current_book(user_id, current_book_id)
    words = await library.words_in_book(book.id)
    return BookDetailOut(
        book=BookOut.model_validate(book),
        words=[WordOut.model_validate(w) for w in words],
    )


@api.post("/books/current/{user_id}", response_model=CurrentBookOut)
async def set_current_book(user_id: str, req: SetCurrentBookRequest, library: LibraryDep):
    book = await library.set_current_book(user_id, req.book_id)
    return CurrentBookOut(current_book_id=book.id)


@api.get("/books/{book_id}", response_model=BookDetailOut)
async def get_book_details(book_id: str, library: LibraryDep):
    book = await library.get_book(book_id)
    words = await library.words_in_book(book_id)
    return BookDetailOut(
        book=BookOut.model_validate(book),
        words=[WordOut.model_validate(w) for w in words],
    )


@api.post("/books", response_model=BookOut, status_code=201)
async def create_book(req: CreateBookRequest, library: LibraryDep):
    return await library.create_book(
        req.user_id, req.name, utc_now(), description=req.description, tags=req.tags
    )


@api.put("/books/{book_id}", response_model=BookOut)
async def update_book(book_id: str, req: UpdateBookRequest, library: LibraryDep):
    return await library.update_book(
        book_id, utc_now(), name=req.name, description=req.description, tags=req.tags
    )


@api.delete("/books/{book_id}")
async def delete_book(book_id: str, library: LibraryDep, delete_words: bool = False):
    await library.delete_book(book_id, delete_words=delete_words)
    return {"message": "Book deleted", "book_id": book_id}


# --- Words ---


@api.get("/words/book/{book_id}", response_model=list[WordOut])
async def get_words_by_book(book_id: str, library: LibraryDep):
    return await library.words_in_book(book_id)


@api.get("/words/review/{user_id}", response_model=list[WordOut])
async def get_words_for_review(user_id: str, library: LibraryDep):
    """Words whose review is due and that are not marked known, earliest first."""
    return await library.words_due(user_id, utc_now())


@api.post("/words/book/{book_id}", response_model=WordOut, status_code=201)
async def create_word(book_id: str, req: WordIn, library: LibraryDep):
    return await library.add_word(book_id, req.to_draft(), utc_now())


@api.post("/words/import/book/{book_id}", response_model=list[WordOut], status_code=201)
async def import_words(book_id: str, req: ImportWordsRequest, library: LibraryDep):
    """Import many words at once; nothing is stored if any word is rejected."""
    drafts = [w.to_draft() for w in req.words]
    return await library.import_words(book_id, drafts, utc_now())


@api.put("/words/{word_id}/familiarity", response_model=WordOut)
async def update_word_familiarity(word_id: str, req: FamiliarityRequest, library: LibraryDep):
    return await library.mark_word(word_id, req.is_known, utc_now())


@api.delete("/words/{word_id}/book/{book_id}")
async def delete_word(word_id: str, book_id: str, library: LibraryDep):
    await library.delete_word(book_id, word_id)
    return {"message": "Word deleted", "word_id": word_id}


# --- Sessions ---


@api.post("/sessions/start", response_model=SessionOut, status_code=201)
async def start_session(req: StartSessionRequest, study: StudyDep):
    return await study.start_session(req.user_id, req.book_id, utc_now())


@api.post("/sessions/{session_id}/word", response_model=WordStatusOut)
async def record_word_result(session_id: str, req: WordResultRequest, study: StudyDep):
    word = await study.record_word_result(
        session_id, req.word_id, req.known, req.time_spent, utc_now()
    )
    return WordStatusOut(
        is_known=word.is_known,
        familiarity=word.familiarity,
        next_review_at=word.next_review_at,
    )


@api.put("/sessions/{session_id}/end", response_model=SessionStatsOut)
async def end_session(session_id: str, study: StudyDep):
    return await study.end_session(session_id, utc_now())


@api.get("/sessions/user/{user_id}", response_model=SessionPageOut)
async def get_user_sessions(
    user_id: str,
    study: StudyDep,
    limit: Annotated[int, Query(gt=0)] = 10,
    skip: Annotated[int, Query(ge=0)] = 0,
):
    page = await study.user_sessions(user_id, limit=limit, skip=skip)
    return SessionPageOut(
        sessions=[SessionOut.model_validate(s) for s in page.sessions],
        total=page.total,
        limit=page.limit,
        skip=page.skip,
        total_pages=page.total_pages,
    )


@api.get("/sessions/{session_id}", response_model=SessionDetailOut)
async def get_session_details(session_id: str, study: StudyDep):
    details = await study.session_details(session_id)
    return SessionDetailOut(
        session=SessionOut.model_validate(details.session),
        book=BookOut.model_validate(details.book) if details.book else None,
        words={wid: WordOut.model_validate(w) for wid, w in details.words.items()},
    )


# --- Statistics ---


@api.get("/statistics/{user_id}/overall", response_model=OverallStatsOut)
async def get_overall_statistics(user_id: str, stats: StatisticsDep):
    return await stats.overall(user_id)


@api.get("/statistics/{user_id}/activity", response_model=ActivityOut)
async def get_activity_heatmap(
    user_id: str,
    request: Request,
    stats: StatisticsDep,
    timeframe: str | None = None,
):
    timeframe = timeframe or request.app.state.config.default_timeframe
    activity = await stats.activity(user_id, timeframe, utc_now())
    return ActivityOut(
        timeframe=timeframe,
        activity_data={day.isoformat(): count for day, count in activity.items()},
    )


@api.get("/statistics/{user_id}/progress", response_model=list[MonthlyProgressOut])
async def get_monthly_progress(user_id: str, stats: StatisticsDep):
    return await stats.monthly_progress(user_id, utc_now())


@api.get("/statistics/{user_id}/memory-curve", response_model=MemoryCurveOut)
async def get_memory_curve(user_id: str, stats: StatisticsDep):
    return await stats.memory_curve(user_id)


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------


def create_app(repository: VocabularyRepository | None = None) -> FastAPI:
    """
    Build the API application.

    The repository is opened on startup and closed on shutdown. Pass one in
    to bypass configuration (tests, embedding).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        logger.info(f"lexicard server v{VERSION} starting up...")
        config = resolve_config()
        repo = repository or get_repository(config)
        app.state.config = config
        app.state.repository = repo
        app.state.start_time = time.time()
        yield
        # Shutdown
        repo.close()
        logger.info("lexicard server shutting down...")

    app = FastAPI(
        title="lexicard",
        description="Vocabulary flashcards with review scheduling and study statistics.",
        version=VERSION,
        lifespan=lifespan,
    )

    @app.exception_handler(LexicardError)
    async def handle_lexicard_error(request: Request, exc: LexicardError):
        log = logger.warning if exc.status_code < 500 else logger.error
        log(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request):
        """
        Simple health check to verify server is reachable.
        """
        return HealthResponse(
            status="ok",
            version=VERSION,
            uptime_seconds=time.time() - request.app.state.start_time,
        )

    @app.get("/version")
    async def get_version():
        return {"version": VERSION}

    app.include_router(api)
    return app


app = create_app()
