from journal_api.journals import routes as journals_router
from journal_api.insights import routes as insights_router
from journal_api.analysis import routes as analysis_router
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from journal_api.core.config import CORS_ORIGINS
from journal_api.core.database import Base, engine
from journal_api.core.dependency import build_ai_service
from journal_api.core.logging import configure_logging

# Register tables on Base.metadata
import journal_api.journals.models  # noqa: F401
import journal_api.insights.models  # noqa: F401

app = FastAPI(
    title="Journal API",
    version="1.0.0",
    description="Journaling backend with per-entry AI analysis and weekly/monthly insights.",
)

# CORS config
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(journals_router.router)
app.include_router(insights_router.router)
app.include_router(analysis_router.router)


@app.on_event("startup")
def startup():
    configure_logging()
    Base.metadata.create_all(bind=engine)
    app.state.ai_service = build_ai_service()
