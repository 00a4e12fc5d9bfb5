from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Annotated, Any, Generator, Iterator

import uvicorn
from fastapi import Body, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import Session

from mirage.config.runtime import RuntimeSettings
from mirage.db import (
    DBChartRepository,
    DBGameRepository,
    DBScoreRepository,
    DBUserRepository,
    create_session,
)
from mirage.entities.score import Score
from mirage.middleware.auth import configure_sessions, session_user_id
from mirage.schemas import ScoreUploadResponse
from mirage.services.deletion import delete_score
from mirage.services.errors import (
    InternalError, MirageError, MissingParameterError, ValidationError,
)
from mirage.services.export import export_scores
from mirage.services.grades import TIMESTAMP_KEY
from mirage.services.ingest import INVALID_FORMAT, ScoreIngestionService
from mirage.services.params import parse_flag, parse_int_param
from mirage.services.query import (
    ScorePage, ScoreQuery, ScoreQueryService, ScoreScope, parse_direction,
)

logger = logging.getLogger(__name__)

SETTINGS = RuntimeSettings.from_env()

app = FastAPI(title="Mirage Score API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[SETTINGS.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

configure_sessions(app, SETTINGS)


@app.exception_handler(MirageError)
async def handle_mirage_error(request: Request, exc: MirageError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Bodies that are not JSON never reach the upload envelope.
    logger.debug("rejected request body on %s: %s", request.url.path, exc.errors())
    return await handle_mirage_error(request, ValidationError(INVALID_FORMAT))


@contextmanager
def _unexpected_errors_as(message: str) -> Iterator[None]:
    """Re-raise anything that is not a typed engine error as a generic InternalError."""
    try:
        yield
    except MirageError:
        raise
    except Exception as exc:
        logger.exception("%s: %s", message, exc)
        raise InternalError(message) from exc


def configure_logging() -> None:
    logging.basicConfig(
        level=SETTINGS.log_level,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        force=True,
    )


def get_db_session() -> Generator[Session, Any, None]:
    with create_session() as session:
        yield session


def get_current_user_id(request: Request) -> int | None:
    return session_user_id(request)


def get_game_repository(
    session_db: Annotated[Session, Depends(get_db_session)]
) -> DBGameRepository:
    return DBGameRepository(session_db)


def get_chart_repository(
    session_db: Annotated[Session, Depends(get_db_session)]
) -> DBChartRepository:
    return DBChartRepository(session_db)


def get_score_repository(
    session_db: Annotated[Session, Depends(get_db_session)]
) -> DBScoreRepository:
    return DBScoreRepository(session_db)


def get_user_repository(
    session_db: Annotated[Session, Depends(get_db_session)]
) -> DBUserRepository:
    return DBUserRepository(session_db)


def get_ingestion_service(
    game_repo: Annotated[DBGameRepository, Depends(get_game_repository)],
    chart_repo: Annotated[DBChartRepository, Depends(get_chart_repository)],
    score_repo: Annotated[DBScoreRepository, Depends(get_score_repository)],
) -> ScoreIngestionService:
    return ScoreIngestionService(
        game_repository=game_repo,
        chart_repository=chart_repo,
        score_repository=score_repo,
    )


def get_query_service(
    score_repo: Annotated[DBScoreRepository, Depends(get_score_repository)],
    user_repo: Annotated[DBUserRepository, Depends(get_user_repository)],
) -> ScoreQueryService:
    return ScoreQueryService(
        score_repository=score_repo,
        user_repository=user_repo,
        page_size=SETTINGS.page_size,
    )


def _score_to_dict(score: Score, username: str | None = None, *, with_username: bool = False) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": score.id,
        "gameInternalName": score.game_internal_name,
        "userId": score.user_id,
        "chartId": score.chart_id,
        "timestamp": int(score.timestamp) if score.timestamp is not None else None,
        "data": score.data,
    }
    if with_username:
        payload["username"] = username
    return payload


def _page_to_dict(page: ScorePage, *, with_usernames: bool) -> dict[str, Any]:
    return {
        "scores": [
            _score_to_dict(s, page.usernames.get(s.user_id), with_username=with_usernames)
            for s in page.scores
        ],
        "num_pages": page.num_pages,
    }


def _build_query(
    scope: ScoreScope,
    *,
    game_internal_name: str | None,
    page_num: str | None,
    sort_key: str | None,
    direction: str | None,
    pb_only: str | None,
    user_id: int | None = None,
    chart_id: str | None = None,
) -> ScoreQuery:
    if not game_internal_name or not page_num:
        raise MissingParameterError()
    return ScoreQuery(
        scope=scope,
        game_internal_name=game_internal_name,
        user_id=user_id,
        chart_id=chart_id,
        sort_key=sort_key or TIMESTAMP_KEY,
        direction=parse_direction(direction),
        page_number=parse_int_param("pageNum", page_num),
        pb_only=parse_flag(pb_only),
    )


@app.get("/healthz")
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/supportedGames")
def get_supported_games(
    game_repo: Annotated[DBGameRepository, Depends(get_game_repository)],
) -> list[dict[str, str]]:
    with _unexpected_errors_as("Internal server error. Unable to fetch supported games"):
        games = game_repo.fetch_all()
    return [
        {
            "internalName": game.internal_name,
            "formattedName": game.formatted_name,
            "description": game.description,
        }
        for game in games
    ]


@app.post("/uploadScore")
def upload_score(
    ingestion: Annotated[ScoreIngestionService, Depends(get_ingestion_service)],
    user_id: Annotated[int | None, Depends(get_current_user_id)],
    payload: Annotated[Any, Body()] = None,
) -> ScoreUploadResponse:
    with _unexpected_errors_as("Internal server error. Unable to process score upload"):
        result = ingestion.ingest(payload, user_id)
    return ScoreUploadResponse(
        game=result.game,
        service=result.service,
        scoreCount=result.created,
        skippedCount=result.skipped,
        totalProcessed=result.total,
    )


@app.get("/scores")
def get_user_scores(
    query_service: Annotated[ScoreQueryService, Depends(get_query_service)],
    user_id: Annotated[str | None, Query(alias="userId")] = None,
    internal_game_name: Annotated[str | None, Query(alias="internalGameName")] = None,
    page_num: Annotated[str | None, Query(alias="pageNum")] = None,
    sort_key: Annotated[str | None, Query(alias="sortKey")] = None,
    direction: Annotated[str | None, Query()] = None,
    pb_only: Annotated[str | None, Query(alias="pbOnly")] = None,
) -> dict[str, Any]:
    with _unexpected_errors_as("Internal server error. Unable to fetch scores"):
        if not user_id:
            raise MissingParameterError()
        query = _build_query(
            ScoreScope.USER,
            game_internal_name=internal_game_name,
            page_num=page_num,
            sort_key=sort_key,
            direction=direction,
            pb_only=pb_only,
            user_id=parse_int_param("userId", user_id),
        )
        page = query_service.query(query)
    return {**_page_to_dict(page, with_usernames=False), "user": page.username}


@app.get("/scores/{chart_id}")
def get_chart_scores(
    chart_id: str,
    query_service: Annotated[ScoreQueryService, Depends(get_query_service)],
    game: Annotated[str | None, Query()] = None,
    page_num: Annotated[str | None, Query(alias="pageNum")] = None,
    sort_key: Annotated[str | None, Query(alias="sortKey")] = None,
    direction: Annotated[str | None, Query()] = None,
    pb_only: Annotated[str | None, Query(alias="pbOnly")] = None,
) -> dict[str, Any]:
    with _unexpected_errors_as("Internal server error. Unable to fetch scores"):
        query = _build_query(
            ScoreScope.CHART,
            game_internal_name=game,
            page_num=page_num,
            sort_key=sort_key,
            direction=direction,
            pb_only=pb_only,
            chart_id=chart_id,
        )
        page = query_service.query(query)
    return _page_to_dict(page, with_usernames=True)


@app.get("/allScores")
def get_all_game_scores(
    query_service: Annotated[ScoreQueryService, Depends(get_query_service)],
    internal_game_name: Annotated[str | None, Query(alias="internalGameName")] = None,
    page_num: Annotated[str | None, Query(alias="pageNum")] = None,
    sort_key: Annotated[str | None, Query(alias="sortKey")] = None,
    direction: Annotated[str | None, Query()] = None,
    pb_only: Annotated[str | None, Query(alias="pbOnly")] = None,
) -> dict[str, Any]:
    with _unexpected_errors_as("Internal server error. Unable to fetch scores"):
        query = _build_query(
            ScoreScope.GAME,
            game_internal_name=internal_game_name,
            page_num=page_num,
            sort_key=sort_key,
            direction=direction,
            pb_only=pb_only,
        )
        page = query_service.query(query)
    return _page_to_dict(page, with_usernames=True)


@app.delete("/scores")
def delete_user_score(
    score_repo: Annotated[DBScoreRepository, Depends(get_score_repository)],
    current_user_id: Annotated[int | None, Depends(get_current_user_id)],
    user_id: Annotated[str | None, Query(alias="userId")] = None,
    internal_game_name: Annotated[str | None, Query(alias="internalGameName")] = None,
    score_id: Annotated[str | None, Query(alias="scoreId")] = None,
) -> dict[str, str]:
    with _unexpected_errors_as("Internal server error. Unable to delete scores"):
        delete_score(
            score_repo,
            user_id=user_id,
            game_internal_name=internal_game_name,
            score_id=score_id,
            session_user_id=current_user_id,
        )
    return {"message": "Scores deleted successfully"}


@app.get("/exportScores")
def export_user_scores(
    score_repo: Annotated[DBScoreRepository, Depends(get_score_repository)],
    current_user_id: Annotated[int | None, Depends(get_current_user_id)],
    internal_game_name: Annotated[str | None, Query(alias="internalGameName")] = None,
    page: Annotated[str | None, Query()] = None,
) -> dict[str, Any]:
    with _unexpected_errors_as("Internal server error. Unable to export scores"):
        try:
            page_number = int(page) if page else 1
        except ValueError:
            page_number = 1
        scores = export_scores(
            score_repo,
            user_id=current_user_id,
            game_internal_name=internal_game_name,
            page=page_number,
            page_size=SETTINGS.export_page_size,
        )
    return {"scores": [_score_to_dict(score) for score in scores]}


def main() -> None:
    configure_logging()
    logger.info("mirage score api bootstrap")
    uvicorn.run(app, host=SETTINGS.api_host, port=SETTINGS.api_port)


if __name__ == "__main__":
    main()
