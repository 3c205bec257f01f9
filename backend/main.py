import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import get_settings
from api.routes import masking

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting masking API (classifier: %s)", settings.classifier_backend)

    # Safety checks
    if settings.classifier_backend == "llm":
        key_by_provider = {
            "openai": settings.openai_api_key,
            "anthropic": settings.anthropic_api_key,
            "gemini": settings.gemini_api_key,
        }
        if settings.default_provider in key_by_provider and not key_by_provider[settings.default_provider]:
            logger.warning(
                "No API key configured for provider '%s'. Every masking request "
                "will fail until one is set.",
                settings.default_provider,
            )
    elif settings.classifier_backend == "pattern":
        logger.warning(
            "Pattern classifier only finds names introduced by an honorific or "
            "relation marker. Use it for offline testing."
        )

    yield
    logger.info("Shutting down masking API")


app = FastAPI(
    title="ClarityDocs — Sensitive Data Masking",
    description="Detects and masks personal and confidential information in legal documents",
    version="0.1.0",
    lifespan=lifespan,
)

cors_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-Requested-With"],
)

app.include_router(masking.router, prefix="/api/mask", tags=["masking"])


@app.get("/api/health")
async def health():
    return {"status": "ok", "classifier": settings.classifier_backend}
