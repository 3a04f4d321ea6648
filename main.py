import os
import sys
import logging
from typing import List, Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

import vertexai

from agents import caption_proxy
from agents.caption_client import AiProvider, DEFAULT_OPENAI_MODEL, get_caption_provider, request_caption
from agents.frameworks import CopywritingFramework
from errors import ConfigurationError, DecodeError, RequestError, ValidationError
from publishing.assembler import assemble
from publishing.destination_store import DestinationStore, build_destination_store
from publishing.models import Destination, GeneratedPost
from watermark.batch import MAX_IMAGE_UPLOADS, WatermarkPreviewController
from watermark.export import build_zip, export_filename, mime_type, to_data_url
from watermark.models import LogoPlacement

# --- Environment & Config ---
GOOGLE_PROJECT = os.getenv("GOOGLE_CLOUD_PROJECT", "")
VERTEX_LOCATION = os.getenv("VERTEX_LOCATION", "us-central1")
DATA_DIR = os.getenv("DATA_DIR", "./data")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
os.makedirs(DATA_DIR, exist_ok=True)

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger("automator")

# --- Vertex Init ---
if GOOGLE_PROJECT:
    try:
        vertexai.init(project=GOOGLE_PROJECT, location=VERTEX_LOCATION)
        logger.info("[startup] Vertex AI initialized for project %s in %s", GOOGLE_PROJECT, VERTEX_LOCATION)
    except Exception as e:
        logger.warning("[startup] Vertex init skipped: %s", e)
else:
    logger.info("[startup] GOOGLE_CLOUD_PROJECT not set; Gemini captions disabled.")

if not os.getenv("OPENAI_API_KEY"):
    logger.info("[startup] OPENAI_API_KEY not set; OpenAI captions will report a configuration error.")

# --- Shared State ---
_destination_store: Optional[DestinationStore] = None
_preview = WatermarkPreviewController()


def get_destination_store() -> DestinationStore:
    global _destination_store
    if _destination_store is None:
        _destination_store = build_destination_store(DATA_DIR)
    return _destination_store


def get_preview_controller() -> WatermarkPreviewController:
    return _preview


# --- App Init ---
app = FastAPI(title="Social Post Automator")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # adjust in prod
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Request Models ---
class DestinationsPayload(BaseModel):
    destinations: List[Destination] = Field(default_factory=list)


class GeneratePostsPayload(BaseModel):
    topic: str = ""
    framework: CopywritingFramework = CopywritingFramework.AUTO
    provider: AiProvider = AiProvider.OPENAI
    model: Optional[str] = DEFAULT_OPENAI_MODEL.value
    destinations: List[Destination] = Field(default_factory=list)


# --- Caption Proxy ---
@app.post("/api/generate-caption")
async def generate_caption_endpoint(request: Request):
    try:
        data = await request.json()
    except ValueError:
        data = {}
    if not isinstance(data, dict):
        data = {}
    try:
        caption = await run_in_threadpool(
            caption_proxy.generate_caption,
            data.get("topic"),
            data.get("framework"),
            data.get("model"),
        )
    except ValidationError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    except ConfigurationError as e:
        return JSONResponse(status_code=500, content={"error": str(e)})
    except RequestError as e:
        return JSONResponse(status_code=e.status_code or 500, content={"error": str(e)})
    except Exception as e:
        logger.exception("Error in caption proxy")
        return JSONResponse(status_code=500, content={"error": f"Server error: {e}"})
    return {"caption": caption}


# --- Watermark Endpoints ---
@app.post("/watermark/preview")
async def watermark_preview_endpoint(
    images: Optional[List[UploadFile]] = File(None),
    logo: Optional[UploadFile] = File(None),
    position: str = Form("bottom-right"),
    scale: str = Form("15"),
    opacity: str = Form("90"),
    preview: WatermarkPreviewController = Depends(get_preview_controller),
):
    """Watermark the uploaded images and replace the current preview.

    Only the first ``MAX_IMAGE_UPLOADS`` images are read. Images that
    cannot be decoded are listed under ``failures`` and left out of
    ``images``; every returned image keeps the ``index`` of its upload.
    """
    placement = LogoPlacement(position=position, scale_percent=scale, opacity_percent=opacity)
    raw_images = [await f.read() for f in (images or [])[:MAX_IMAGE_UPLOADS]]
    raw_logo = await logo.read() if logo else None
    try:
        batch = await preview.refresh(raw_images, raw_logo, placement)
    except DecodeError as e:
        raise HTTPException(status_code=400, detail=f"Logo could not be decoded: {e}")
    if batch is None:
        return {"images": [], "failures": [], "superseded": True}
    return {
        "images": [
            {
                "index": item.index,
                "filename": export_filename(number, item.format),
                "data_url": to_data_url(item.data, item.format),
            }
            for number, item in enumerate(batch.images, start=1)
        ],
        "failures": [{"index": f.index, "reason": f.reason} for f in batch.failures],
        "superseded": False,
    }


@app.get("/watermark/images.zip")
async def download_all_images_endpoint(
    preview: WatermarkPreviewController = Depends(get_preview_controller),
):
    batch = preview.batch
    if not len(batch):
        raise HTTPException(status_code=404, detail="No watermarked images available.")
    return Response(
        content=build_zip(batch.images),
        media_type="application/zip",
        headers={"Content-Disposition": 'attachment; filename="watermarked_images.zip"'},
    )


@app.get("/watermark/images/{number}")
async def download_image_endpoint(
    number: int,
    preview: WatermarkPreviewController = Depends(get_preview_controller),
):
    batch = preview.batch
    if number < 1 or number > len(batch):
        raise HTTPException(status_code=404, detail=f"Watermarked image {number} not found.")
    item = batch[number - 1]
    filename = export_filename(number, item.format)
    return Response(
        content=item.data,
        media_type=mime_type(item.format),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# --- Destinations & Posts ---
@app.get("/destinations")
async def list_destinations_endpoint(store: DestinationStore = Depends(get_destination_store)):
    return {"destinations": [d.model_dump(by_alias=True) for d in store.all()]}


@app.post("/destinations")
async def save_destinations_endpoint(
    payload: DestinationsPayload,
    store: DestinationStore = Depends(get_destination_store),
):
    saved = await run_in_threadpool(store.merge, payload.destinations)
    return {"destinations": [d.model_dump(by_alias=True) for d in saved]}


@app.post("/posts/generate")
async def generate_posts_endpoint(
    payload: GeneratePostsPayload,
    store: DestinationStore = Depends(get_destination_store),
):
    """Generate one caption and fan it out to every destination page.

    Valid destinations are saved before the caption is requested. Caption
    failures are not HTTP errors: the ``"Error:"`` text is returned as the
    caption so it can be shown next to each page.
    """
    if not payload.topic.strip():
        raise HTTPException(status_code=400, detail="Please provide a topic.")
    await run_in_threadpool(store.merge, payload.destinations)
    provider = get_caption_provider(payload.provider)
    caption = await run_in_threadpool(
        request_caption, payload.topic, payload.framework.value, payload.model, provider
    )
    posts: List[GeneratedPost] = assemble(caption, payload.destinations)
    return {"caption": caption, "posts": [p.model_dump() for p in posts]}


@app.get("/health")
async def health_endpoint():
    return {
        "status": "ok",
        "gemini_configured": bool(GOOGLE_PROJECT),
        "openai_configured": bool(os.getenv("OPENAI_API_KEY")),
        "max_image_uploads": MAX_IMAGE_UPLOADS,
    }
