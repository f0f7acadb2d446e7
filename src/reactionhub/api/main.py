"""
ReactionHub API - FastAPI backend for the reaction ledger and its moderation tools
"""

from dotenv import find_dotenv, load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from reactionhub import __version__
from reactionhub.api.deps import shutdown_reaction_service
from reactionhub.domain.errors import (
    ConflictError,
    NotFoundError,
    ReactionHubError,
    StoreUnavailableError,
    ValidationError,
)
from reactionhub.utils.logging_config import LogFiles, Logger

from .routes import admin_reactions, reactions

# Load local .env automatically so REACTIONHUB_* settings apply in API mode.
load_dotenv(find_dotenv(usecwd=True), override=False)

app = FastAPI(
    title="ReactionHub API",
    description="Polymorphic like/dislike ledger with cross-entity moderation",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
    (StoreUnavailableError, 503),
)


@app.exception_handler(ReactionHubError)
async def _reaction_error_handler(request: Request, exc: ReactionHubError):
    status = 500
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status = code
            break
    if status >= 500:
        Logger.error(f"{request.method} {request.url.path} failed: {exc}", file=LogFiles.ERROR)
    body = {"detail": str(exc)}
    field = getattr(exc, "field", None)
    if field:
        body["field"] = field
    return JSONResponse(status_code=status, content=body)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "version": __version__}


app.include_router(reactions.router, prefix="/api", tags=["Reactions"])
app.include_router(admin_reactions.router, prefix="/api", tags=["Reaction Moderation"])


@app.on_event("shutdown")
async def _shutdown_service():
    await shutdown_reaction_service()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
