# main.py (stateless: documents round-trip through the client as base64)
import time
import html
import base64
import logging
from typing import Optional

from fastapi import APIRouter, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, PlainTextResponse
from starlette.concurrency import run_in_threadpool

from .composer import compose, fill_text
from .config import Settings, configure_logging
from .docx_utils import DocumentError, Package, extract_text
from .llm import LLMClient, OracleError, extract_value
from .models import ChatRequest, ChatResponse, GenerateRequest, GenerateResponse, ParseResponse
from .normalize import normalize_value
from .scanner import OracleScanner, RegexScanner, detect_placeholders

logger = logging.getLogger(__name__)

FILENAME_PREFIX = "completed_document_"

router = APIRouter()


def _open_buffer(b64: str) -> Package:
    try:
        # clients may send line-wrapped (MIME style) base64
        data = base64.b64decode("".join(b64.split()), validate=True)
        return Package.open(data)
    except (ValueError, DocumentError) as e:
        logger.warning("Rejected document buffer: %s", e)
        raise HTTPException(status_code=400, detail="Failed to parse document")


# -----------------------
# API
# -----------------------

@router.get("/health", response_class=PlainTextResponse)
def health() -> str:
    return "ok"


@router.post("/parse-document", response_model=ParseResponse)
async def parse_document(request: Request, file: Optional[UploadFile] = File(None)):
    if file is None:
        raise HTTPException(status_code=400, detail="No file provided")
    if not (file.filename or "").lower().endswith(".docx"):
        raise HTTPException(status_code=400, detail="Only .docx files are supported")

    content = await file.read()
    try:
        package = Package.open(content)
        text = extract_text(package)
    except DocumentError as e:
        logger.warning("Could not read upload %r: %s", file.filename, e)
        raise HTTPException(status_code=400, detail="Failed to parse document")

    try:
        # blocking oracle call stays off the event loop
        detection = await run_in_threadpool(detect_placeholders, text, request.app.state.oracle)
    except Exception:
        logger.exception("Placeholder detection failed for %r", file.filename)
        raise HTTPException(status_code=500, detail="Failed to parse document")

    logger.info("Parsed %r: %d placeholders via %s", file.filename, len(detection.placeholders), detection.method)
    return ParseResponse(
        text=text,
        placeholders=detection.placeholders,
        originalBuffer=base64.b64encode(content).decode("ascii"),
        detectionMethod=detection.method,
        totalPlaceholders=len(detection.placeholders),
    )


@router.post("/generate-document", response_model=GenerateResponse)
def generate_document(req: GenerateRequest, request: Request):
    settings: Settings = request.app.state.settings
    package = _open_buffer(req.originalBuffer)

    try:
        placeholders = req.placeholders
        if placeholders is None:
            placeholders = RegexScanner().scan(extract_text(package))
        out = compose(package, placeholders, req.filledValues, settings.unnumbered_fill)
    except Exception:
        logger.exception("Generation failed")
        raise HTTPException(status_code=500, detail="Failed to generate document")

    return GenerateResponse(
        document=base64.b64encode(out).decode("ascii"),
        filename=f"{FILENAME_PREFIX}{int(time.time() * 1000)}.docx",
    )


@router.post("/chat", response_model=ChatResponse)
def chat(req: ChatRequest, request: Request):
    llm: Optional[LLMClient] = request.app.state.llm
    ph = req.currentPlaceholder

    if llm is None:
        value = normalize_value(ph, req.message)
        return ChatResponse(
            message=f'Got it. I will use "{value}" for {ph.original}.',
            extractedValue=value,
            needsConfirmation=False,
        )

    try:
        return extract_value(llm, ph, req.chatHistory, req.message)
    except OracleError:
        logger.exception("Value extraction failed for %r", ph.name)
        raise HTTPException(status_code=502, detail="Failed to process message")


@router.post("/preview", response_class=HTMLResponse)
def preview(req: GenerateRequest, request: Request):
    settings: Settings = request.app.state.settings
    package = _open_buffer(req.originalBuffer)
    try:
        text = extract_text(package)
    except DocumentError:
        raise HTTPException(status_code=400, detail="Failed to parse document")

    placeholders = req.placeholders
    if placeholders is None:
        placeholders = RegexScanner().scan(text)
    filled = fill_text(text, placeholders, req.filledValues, settings.unnumbered_fill)
    html_text = html.escape(filled).replace("\n", "<br/>")

    doc = f"""<!doctype html>
<html>
<head>
<meta charset="utf-8">
<title>Preview</title>
<meta name="viewport" content="width=device-width, initial-scale=1"/>
<style>
  body {{ font-family: ui-sans-serif, system-ui, -apple-system, 'SF Pro Text', Inter, Arial; margin: 24px; color: #0A0A0A; }}
  .container {{ max-width: 820px; margin: 0 auto; line-height: 1.5; }}
  .hint {{ color: #666; font-size: 12px; margin-bottom: 12px; }}
  .doc {{ background: #fff; border: 1px solid #e5e5ea; border-radius: 12px; padding: 24px; }}
</style>
</head>
<body>
<div class="container">
  <div class="hint">Preview is a simplified text rendering for speed. The downloadable .docx retains original formatting.</div>
  <div class="doc">{html_text}</div>
</div>
</body>
</html>"""
    return HTMLResponse(content=doc)


@router.get("/diag/llm")
def diag_llm(request: Request):
    settings: Settings = request.app.state.settings
    return {
        "oracle_enabled": request.app.state.llm is not None,
        "model": settings.openai_model,
        "detection_mode": settings.detection_mode,
        "unnumbered_fill": settings.unnumbered_fill.value,
    }


def create_app(settings: Optional[Settings] = None, llm: Optional[LLMClient] = None) -> FastAPI:
    """Build the app. The oracle client is constructed here, once, and handed to the routes."""
    settings = settings or Settings()
    configure_logging(settings)

    if llm is None and settings.oracle_enabled:
        llm = LLMClient(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            base_url=settings.openai_base_url,
            timeout=settings.llm_timeout,
        )

    app = FastAPI(title="Lexsy Document Filler API", version="0.4.0")

    # CORS (open by default; set CORS_ALLOW_ORIGINS in production)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.llm = llm
    app.state.oracle = OracleScanner(llm, settings.detection_mode, settings.context_chars) if llm else None
    app.include_router(router)

    logger.info("Oracle %s (detection mode: %s)", "enabled" if llm else "disabled", settings.detection_mode)
    return app


app = create_app()
