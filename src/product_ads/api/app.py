from __future__ import annotations

import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from product_ads.config import settings
from product_ads.errors import (
    AdGenerationError,
    AllAttemptsFailedError,
    ConfigurationError,
    GenerationError,
    InputError,
)
from product_ads.generation import AdGenerator
from product_ads.providers.base import GenerationResult

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="product_ads")

BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

ACCEPTED_TYPES = ("image/png", "image/jpeg", "image/webp")

# One generator (and therefore one memoized Gemini client) per process.
generator = AdGenerator()


def get_generator() -> AdGenerator:
    return generator


_STATUS_BY_ERROR: dict[type[AdGenerationError], int] = {
    InputError: 400,
    ConfigurationError: 503,
    GenerationError: 502,
    AllAttemptsFailedError: 502,
}


def _status_for(exc: AdGenerationError) -> int:
    for cls, status in _STATUS_BY_ERROR.items():
        if isinstance(exc, cls):
            return status
    return 500


def _result_payload(result: GenerationResult) -> dict[str, Any]:
    return {
        "status": result.status.value,
        "images": [asdict(img) for img in result.images],
        "ideas": [asdict(idea) for idea in result.ideas],
    }


def _download_name(prompt: str) -> str:
    stem = "_".join(prompt[:20].split()) or "image"
    return f"ad-image-{stem}.png"


templates.env.filters["download_name"] = _download_name


@app.get("/", response_class=HTMLResponse)
def index(request: Request):
    return templates.TemplateResponse(
        request,
        "index.html",
        {"accept": ", ".join(ACCEPTED_TYPES), "idea_count": settings.idea_count},
    )


@app.get("/healthz")
def healthz():
    return {"status": "ok", "configured": bool(settings.gemini_api_key)}


@app.post("/generate", response_class=HTMLResponse)
async def generate_page(
    request: Request,
    file: UploadFile = File(...),
    gen: AdGenerator = Depends(get_generator),
):
    context: dict[str, Any] = {"accept": ", ".join(ACCEPTED_TYPES), "idea_count": settings.idea_count}
    try:
        result = await gen.run(file)
    except AdGenerationError as exc:
        logger.error("Ad generation failed for %r: %s", file.filename, exc, exc_info=exc)
        context["error"] = exc.user_message
        return templates.TemplateResponse(request, "results.html", context, status_code=_status_for(exc))

    context["images"] = result.images
    context["ideas"] = result.ideas
    context["product_src"] = result.product_src
    context["status"] = result.status.value
    return templates.TemplateResponse(request, "results.html", context)


@app.post("/api/generate")
async def generate_json(
    file: UploadFile = File(...),
    gen: AdGenerator = Depends(get_generator),
):
    try:
        result = await gen.run(file)
    except AdGenerationError as exc:
        logger.error("Ad generation failed for %r: %s", file.filename, exc, exc_info=exc)
        raise HTTPException(status_code=_status_for(exc), detail=exc.user_message) from exc
    return _result_payload(result)
