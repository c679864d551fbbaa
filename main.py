# main.py
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse

from classifier import IntentClassifier
from config import get_settings
from errors import InternalError, LeadScoringError, ValidationError
from ingest import ingest_leads
from logging_config import configure_logging
from models import OfferCreate, ScoredLead, ScoreRequest
from pipeline import run_scoring
from results import EXPORT_FILENAME, export_csv, parse_filters, query_results
from storage import MemoryStore

load_dotenv()

logger = logging.getLogger(__name__)

ALLOWED_UPLOAD_SUFFIXES = (".csv", ".txt")


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    owns_classifier = app.state.classifier is None
    if owns_classifier:
        app.state.classifier = IntentClassifier.from_settings(get_settings())
    logger.info("Lead Scoring API starting (classifier failure mode: %s)", app.state.classifier.failure_mode)
    yield
    if owns_classifier and app.state.classifier.client is not None:
        app.state.classifier.client.close()
    logger.info("Lead Scoring API shutting down")


def get_store(request: Request):
    return request.app.state.store


def get_classifier(request: Request) -> IntentClassifier:
    return request.app.state.classifier


def register_error_handlers(app: FastAPI):
    @app.exception_handler(LeadScoringError)
    async def lead_scoring_error(request: Request, exc: LeadScoringError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.details)
        return JSONResponse(exc.to_dict(), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        return JSONResponse(ValidationError("Invalid request", details=problems).to_dict(), status_code=400)

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        error = InternalError("Internal server error", details=str(exc))
        return JSONResponse(error.to_dict(), status_code=error.status_code)


def create_app(store=None, classifier: Optional[IntentClassifier] = None) -> FastAPI:
    """Build the API. store and classifier default to a MemoryStore and a
    classifier configured from the environment at startup."""
    app = FastAPI(title="Lead Scoring API", version="0.2", lifespan=lifespan)
    app.state.store = store if store is not None else MemoryStore()
    app.state.classifier = classifier
    register_error_handlers(app)

    @app.get("/")
    async def root():
        return {"message": "Lead Scoring API is running! Visit /docs for interactive API docs."}

    @app.get("/health")
    async def health():
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.post("/offer", status_code=201)
    def post_offer(offer: OfferCreate, store=Depends(get_store)):
        saved = store.create_offer(offer)
        logger.info("Created offer %s (%r)", saved.id, saved.name)
        return {"success": True, "offer": saved}

    @app.get("/offers")
    def get_offers(store=Depends(get_store)):
        return {"success": True, "offers": store.list_offers()}

    @app.post("/leads/upload")
    def upload_leads(file: Optional[UploadFile] = File(None), store=Depends(get_store)):
        if file is None:
            raise ValidationError("No CSV file uploaded")
        try:
            if not (file.filename or "").lower().endswith(ALLOWED_UPLOAD_SUFFIXES):
                raise ValidationError("Only CSV files supported.")
            result = ingest_leads(store, file.file)
        finally:
            file.file.close()
        body = {
            "success": True,
            "message": f"Successfully uploaded {len(result.leads)} leads",
            "leads_uploaded": len(result.leads),
        }
        if result.errors:
            body["errors"] = result.errors
        return body

    @app.get("/leads")
    def get_leads(store=Depends(get_store)):
        leads = store.list_leads()
        return {"success": True, "leads": leads, "count": len(leads)}

    @app.post("/score")
    def score(req: ScoreRequest, store=Depends(get_store), classifier=Depends(get_classifier)):
        summary = run_scoring(store, classifier, req.offer_id)
        return {
            "success": True,
            "message": f"Successfully scored {summary.results_count} leads",
            "results_count": summary.results_count,
            "ai_fallbacks": summary.ai_fallbacks,
        }

    @app.get("/results", response_model=List[ScoredLead])
    def get_results(
        offer_id: Optional[str] = None,
        intent: Optional[str] = None,
        min_score: Optional[str] = None,
        store=Depends(get_store),
    ):
        return query_results(store, **parse_filters(offer_id, intent, min_score))

    @app.get("/results/export")
    def get_results_csv(
        offer_id: Optional[str] = None,
        intent: Optional[str] = None,
        min_score: Optional[str] = None,
        store=Depends(get_store),
    ):
        text = export_csv(store, **parse_filters(offer_id, intent, min_score))
        return StreamingResponse(
            iter([text]),
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename={EXPORT_FILENAME}"},
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)
