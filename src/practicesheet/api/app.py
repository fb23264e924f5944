"""FastAPI app exposing the tree store."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from practicesheet import __version__
from practicesheet.config import Settings, load_settings
from practicesheet.errors import ReorderIndexError, TransportError, ValidationError
from practicesheet.logging import configure_logging, get_logger
from practicesheet.models.sheet import Question, QuestionDraft, QuestionPatch, SubTopic, Topic
from practicesheet.store import TreeStore, build_store


class TitleRequest(BaseModel):
    title: str = Field(min_length=1)


class ReorderRequest(BaseModel):
    from_index: int
    to_index: int


class LoadRequest(BaseModel):
    """Load either from a url (default: the configured sheet url) or from an inline payload."""

    url: str | None = None
    payload: dict[str, Any] | None = None


class TopicProgress(BaseModel):
    topic_id: str
    title: str
    solved: int
    total: int
    percent: float


class ToggleResponse(BaseModel):
    solved: bool


def create_app(settings: Settings | None = None, store: TreeStore | None = None) -> FastAPI:
    """Create FastAPI app."""

    settings = settings or load_settings()
    configure_logging(settings.log_level)
    logger = get_logger(__name__)
    store = store or build_store(settings)

    app = FastAPI(title="Practice Sheet", version=__version__)

    @app.exception_handler(ValidationError)
    def on_validation_error(_request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(TransportError)
    def on_transport_error(_request: Request, exc: TransportError) -> JSONResponse:
        return JSONResponse(status_code=502, content={"detail": str(exc), "url": exc.url})

    @app.exception_handler(ReorderIndexError)
    def on_reorder_error(_request: Request, exc: ReorderIndexError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/topics")
    def list_topics() -> list[Topic]:
        return list(store.topics)

    @app.get("/progress")
    def progress() -> list[TopicProgress]:
        titles = {t.id: t.title for t in store.topics}
        return [
            TopicProgress(topic_id=tid, title=titles[tid], solved=p.solved, total=p.total, percent=p.percent)
            for tid, p in store.progress().items()
        ]

    @app.get("/status")
    def status() -> dict[str, Any]:
        return {"is_loading": store.is_loading, "error": store.error, "topics": len(store.topics)}

    @app.post("/load")
    def load(req: LoadRequest) -> list[Topic]:
        logger.info("API load requested", extra={"inline": req.payload is not None})
        if req.payload is not None:
            return list(store.load(req.payload))
        try:
            return list(store.load_from(req.url))
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    # Topics

    @app.post("/topics", status_code=201)
    def add_topic(req: TitleRequest) -> Topic:
        return store.add_topic(req.title)

    @app.patch("/topics/{topic_id}", status_code=204)
    def update_topic(topic_id: str, req: TitleRequest) -> None:
        store.update_topic(topic_id, req.title)

    @app.delete("/topics/{topic_id}", status_code=204)
    def delete_topic(topic_id: str) -> None:
        store.delete_topic(topic_id)

    @app.post("/topics/reorder", status_code=204)
    def reorder_topics(req: ReorderRequest) -> None:
        store.reorder_topics(req.from_index, req.to_index)

    # Subtopics

    @app.post("/topics/{topic_id}/subtopics", status_code=201)
    def add_subtopic(topic_id: str, req: TitleRequest) -> SubTopic:
        subtopic = store.add_subtopic(topic_id, req.title)
        if subtopic is None:
            raise HTTPException(status_code=404, detail="topic not found")
        return subtopic

    @app.patch("/topics/{topic_id}/subtopics/{subtopic_id}", status_code=204)
    def update_subtopic(topic_id: str, subtopic_id: str, req: TitleRequest) -> None:
        store.update_subtopic(topic_id, subtopic_id, req.title)

    @app.delete("/topics/{topic_id}/subtopics/{subtopic_id}", status_code=204)
    def delete_subtopic(topic_id: str, subtopic_id: str) -> None:
        store.delete_subtopic(topic_id, subtopic_id)

    @app.post("/topics/{topic_id}/subtopics/reorder", status_code=204)
    def reorder_subtopics(topic_id: str, req: ReorderRequest) -> None:
        store.reorder_subtopics(topic_id, req.from_index, req.to_index)

    # Questions

    @app.post("/topics/{topic_id}/subtopics/{subtopic_id}/questions", status_code=201)
    def add_question(topic_id: str, subtopic_id: str, req: QuestionDraft) -> Question:
        question = store.add_question(topic_id, subtopic_id, req)
        if question is None:
            raise HTTPException(status_code=404, detail="subtopic not found")
        return question

    @app.patch("/topics/{topic_id}/subtopics/{subtopic_id}/questions/{question_id}", status_code=204)
    def update_question(topic_id: str, subtopic_id: str, question_id: str, req: QuestionPatch) -> None:
        store.update_question(topic_id, subtopic_id, question_id, req)

    @app.delete("/topics/{topic_id}/subtopics/{subtopic_id}/questions/{question_id}", status_code=204)
    def delete_question(topic_id: str, subtopic_id: str, question_id: str) -> None:
        store.delete_question(topic_id, subtopic_id, question_id)

    @app.post("/topics/{topic_id}/subtopics/{subtopic_id}/questions/{question_id}/toggle")
    def toggle_question(topic_id: str, subtopic_id: str, question_id: str) -> ToggleResponse:
        solved = store.toggle_question_solved(topic_id, subtopic_id, question_id)
        if solved is None:
            raise HTTPException(status_code=404, detail="question not found")
        return ToggleResponse(solved=solved)

    @app.post("/topics/{topic_id}/subtopics/{subtopic_id}/questions/reorder", status_code=204)
    def reorder_questions(topic_id: str, subtopic_id: str, req: ReorderRequest) -> None:
        store.reorder_questions(topic_id, subtopic_id, req.from_index, req.to_index)

    return app
