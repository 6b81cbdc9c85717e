import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bracket_aggregator.config import get_settings
from bracket_aggregator.routes import tournaments

APP_NAME = "Bracket Aggregator API"

settings = get_settings()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=APP_NAME)

_cors_origins = [
    "http://localhost",
    "http://localhost:4200",
]
_cors_origins.extend(settings.cors_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(tournaments.router, prefix="/api", tags=["tournaments"])


@app.on_event("startup")
def on_startup():
    # Log all registered routes (full path stack)
    for r in app.routes:
        methods = getattr(r, "methods", None)
        path = getattr(r, "path", None)
        if path:
            methods_str = ", ".join(sorted(methods)) if methods else "N/A"
            logger.info(f"{methods_str:20} {path}")
    logger.info(
        f"Match service: {settings.matches_service_base_url}, team catalog: {settings.teams_service_base_url}"
    )


@app.get("/api/health")
def health_check():
    """Liveness check; does not touch the remote services"""
    return {"app_name": APP_NAME, "status": "OK"}
