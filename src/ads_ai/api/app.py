from __future__ import annotations

import logging
import traceback
from dataclasses import asdict
from typing import Any

from fastapi import Depends, FastAPI, File, Form, Query, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ads_ai.analysis.service import AnalysisService
from ads_ai.chat import ChatService
from ads_ai.config import settings
from ads_ai.errors import AdsAIError, ConfigurationError, InvalidRequestError
from ads_ai.generation.orchestrator import ImageGenerationOrchestrator
from ads_ai.generation.service import PERSIST_INLINE, PERSIST_STORAGE, CreativeService, load_references
from ads_ai.imaging import decode_base64_image, to_base64
from ads_ai.models import SUPPORTED_LANGUAGES, ChatState, GeneratedCreative, normalize_language
from ads_ai.prompts.creative import CREATIVE_FORMATS
from ads_ai.providers.base import ChatTurn, ImageBackend, TextProvider
from ads_ai.providers.gemini_provider import GeminiTextProvider
from ads_ai.providers.openai_provider import OpenAITextProvider
from ads_ai.providers.vertex_image import VertexImageBackend
from ads_ai.scraping.extractor import BrowserExtractor, ContentExtractor, LightweightExtractor
from ads_ai.sizes import SIZE_OPTIONS
from ads_ai.storage import SupabaseStore

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="ads_ai", description="Audience analysis and ad creative generation")

MAX_QUANTITY = 10
_FORMAT_IDS = {f.id for f in CREATIVE_FORMATS}
_SIZE_IDS = {s.id for s in SIZE_OPTIONS}


@app.exception_handler(AdsAIError)
async def ads_ai_error_handler(request: Request, exc: AdsAIError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("%s %s rejected: invalid request body", request.method, request.url.path)
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": str(exc) or exc.__class__.__name__, "details": traceback.format_exc()},
    )


# Collaborators. Each is a dependency so tests can swap in fakes.


def get_store() -> SupabaseStore:
    return SupabaseStore()


def get_text_provider() -> TextProvider:
    if settings.text_provider == "openai":
        if not settings.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY is not set")
        return OpenAITextProvider(api_key=settings.openai_api_key)
    if not settings.gemini_api_key:
        raise ConfigurationError("GEMINI_API_KEY is not set")
    return GeminiTextProvider(api_key=settings.gemini_api_key)


def get_image_backend() -> ImageBackend:
    return VertexImageBackend(
        project_id=settings.vertex_ai_project_id,
        credentials_path=settings.google_application_credentials,
    )


def get_browser_extractor() -> ContentExtractor:
    return BrowserExtractor()


def get_fetcher() -> ContentExtractor:
    return LightweightExtractor()


def get_analysis_service(
    store: SupabaseStore = Depends(get_store),
    text_provider: TextProvider = Depends(get_text_provider),
    browser: ContentExtractor = Depends(get_browser_extractor),
    fetcher: ContentExtractor = Depends(get_fetcher),
) -> AnalysisService:
    return AnalysisService(store, text_provider, browser=browser, fetcher=fetcher)


def get_creative_service(
    store: SupabaseStore = Depends(get_store),
    backend: ImageBackend = Depends(get_image_backend),
) -> CreativeService:
    return CreativeService(store, ImageGenerationOrchestrator(backend))


def get_chat_service(
    store: SupabaseStore = Depends(get_store),
    text_provider: TextProvider = Depends(get_text_provider),
) -> ChatService:
    return ChatService(store, text_provider)


# Request bodies accept the camelCase keys the front end sends.


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnalyzeData(ApiModel):
    url: str | None = None
    image_base64: str | None = None
    description: str | None = None
    name: str | None = None


class AnalyzeRequest(ApiModel):
    type: str
    session_id: str
    data: AnalyzeData = Field(default_factory=AnalyzeData)
    language: str | None = None


class AnalyzeProjectRequest(ApiModel):
    project_id: str


class AnalyzeSubprojectRequest(ApiModel):
    subproject_id: str


class ChatMessageIn(ApiModel):
    role: str
    content: str


class ChatStateIn(ApiModel):
    awaiting_confirmation_for: str | None = None


class ChatRequest(ApiModel):
    session_id: str
    message: str
    history: list[ChatMessageIn] = Field(default_factory=list)
    state: ChatStateIn | None = None


class ReferenceImageIn(ApiModel):
    base64: str
    type: str | None = None


class ReferenceImagesIn(ApiModel):
    template: list[ReferenceImageIn] = Field(default_factory=list)
    person_product: list[ReferenceImageIn] = Field(default_factory=list)
    logo: list[ReferenceImageIn] = Field(default_factory=list)


class GenerateRequest(ApiModel):
    session_id: str
    project_id: str
    format: str
    size: str
    target_audience: str | None = None
    target_audience_details: dict[str, Any] | None = None
    quantity: int = Field(default=1, ge=1, le=MAX_QUANTITY)
    reference_images: ReferenceImagesIn = Field(default_factory=ReferenceImagesIn)
    reference_description: str | None = None
    language: str | None = None


class ResizeRequest(ApiModel):
    image_base64: str
    session_id: str | None = None
    target_size: str | None = None
    current_size: str | None = None


class ProjectCreate(ApiModel):
    session_id: str
    name: str
    url: str | None = None
    icon: str | None = None
    language: str | None = None


class ProjectUpdate(ApiModel):
    name: str | None = None
    url: str | None = None
    language: str | None = None
    icon: str | None = None


class SubprojectCreate(ApiModel):
    project_id: str
    name: str
    url: str
    description: str | None = None
    type: str = "webinar"
    language: str = "uk"


class SubprojectUpdate(ApiModel):
    name: str | None = None
    url: str | None = None
    description: str | None = None
    type: str | None = None


# Analysis


@app.post("/api/analyze")
async def analyze(body: AnalyzeRequest, service: AnalysisService = Depends(get_analysis_service)):
    data = body.data
    if body.type == "url":
        if not data.url:
            raise InvalidRequestError("URL is required")
        outcome = await service.analyze_url(data.url, body.session_id, body.language)
    elif body.type == "screenshot":
        if not data.image_base64:
            raise InvalidRequestError("Image data is required")
        image = decode_base64_image(data.image_base64)
        outcome = await service.analyze_screenshot(image, body.session_id, body.language, name=data.name)
    elif body.type == "description":
        if not data.description:
            raise InvalidRequestError("Description is required")
        outcome = await service.analyze_description(data.description, body.session_id, body.language, name=data.name)
    else:
        raise InvalidRequestError("Invalid analysis type")

    return {
        "success": True,
        "project": outcome.owner,
        "analysis": outcome.analysis.to_dict(),
        "audiences": outcome.audiences,
    }


@app.post("/api/analyze-project")
async def analyze_project(body: AnalyzeProjectRequest, service: AnalysisService = Depends(get_analysis_service)):
    outcome = await service.analyze_project(body.project_id)
    return {"success": True, "analysis": outcome.analysis.to_dict(), "audiences": outcome.audiences}


@app.post("/api/analyze-subproject")
async def analyze_subproject(
    body: AnalyzeSubprojectRequest,
    service: AnalysisService = Depends(get_analysis_service),
):
    outcome = await service.analyze_subproject(body.subproject_id)
    return {"success": True, "analysis": outcome.analysis.to_dict(), "audiences": outcome.audiences}


# Chat


@app.post("/api/chat")
async def chat(body: ChatRequest, service: ChatService = Depends(get_chat_service)):
    history = [ChatTurn(role=m.role, content=m.content) for m in body.history]
    state = ChatState(awaiting_confirmation_for=body.state.awaiting_confirmation_for) if body.state else None
    reply = await service.reply(body.session_id, body.message, history=history, state=state)
    return {"success": True, **reply.to_dict()}


@app.get("/api/chat")
def chat_history(session_id: str = Query("", alias="sessionId"), service: ChatService = Depends(get_chat_service)):
    return {"success": True, "messages": service.history(session_id)}


# Generation


@app.post("/api/generate")
async def generate(body: GenerateRequest, service: CreativeService = Depends(get_creative_service)):
    if not body.target_audience and not body.target_audience_details:
        raise InvalidRequestError("Missing required parameters")
    if body.format not in _FORMAT_IDS:
        raise InvalidRequestError("Invalid format")
    if body.size not in _SIZE_IDS:
        raise InvalidRequestError("Invalid size")

    refs = body.reference_images
    references = load_references(
        {
            "template": [decode_base64_image(r.base64) for r in refs.template],
            "person": [decode_base64_image(r.base64) for r in refs.person_product],
            "logo": [decode_base64_image(r.base64) for r in refs.logo],
        }
    )
    outcome = await service.generate(
        session_id=body.session_id,
        project_id=body.project_id,
        size=body.size,
        quantity=body.quantity,
        audience_id=body.target_audience,
        audience_details=body.target_audience_details,
        format=body.format,
        references=references,
        style_notes=body.reference_description,
        language=body.language,
        persist=PERSIST_STORAGE,
    )
    payload = outcome.to_dict()
    return {"success": True, "imageUrls": outcome.image_urls, **payload}


@app.post("/api/generate-creative")
async def generate_creative(
    project_id: str = Form(..., alias="projectId"),
    audience_id: str = Form(..., alias="audienceId"),
    size: str = Form(...),
    quantity: int = Form(1),
    session_id: str = Form("default", alias="sessionId"),
    language: str = Form(""),
    style_notes: str = Form("", alias="styleNotes"),
    template_files: list[UploadFile] | None = File(None, alias="templateFiles"),
    logo_files: list[UploadFile] | None = File(None, alias="logoFiles"),
    person_files: list[UploadFile] | None = File(None, alias="personFiles"),
    service: CreativeService = Depends(get_creative_service),
):
    if not 1 <= quantity <= MAX_QUANTITY:
        raise InvalidRequestError(f"Quantity must be between 1 and {MAX_QUANTITY}")

    # One file per role; extra uploads are ignored.
    files: dict[str, list[bytes]] = {}
    for role, uploads in (("template", template_files), ("logo", logo_files), ("person", person_files)):
        if uploads:
            files[role] = [await uploads[0].read()]

    outcome = await service.generate(
        session_id=session_id,
        project_id=project_id,
        size=size,
        quantity=quantity,
        audience_id=audience_id,
        references=load_references(files),
        style_notes=style_notes or None,
        language=language or None,
        persist=PERSIST_INLINE,
    )
    payload = outcome.to_dict()
    return {
        "success": True,
        "message": "Creative generation completed",
        "image": payload["images"][0],
        **payload,
    }


@app.post("/api/resize-creative")
async def resize_creative(body: ResizeRequest, service: CreativeService = Depends(get_creative_service)):
    image = decode_base64_image(body.image_base64)
    outcome = await service.resize(image, target_size=body.target_size, current_size=body.current_size)
    return {
        "success": True,
        "resizedImage": to_base64(outcome.images[0].data),
        "size": outcome.size,
        "aspectRatio": outcome.aspect_ratio,
    }


@app.get("/api/creatives")
def list_creatives(
    format: str | None = None,
    size: str | None = None,
    search: str | None = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    store: SupabaseStore = Depends(get_store),
):
    rows, total = store.list_creatives(format=format, size=size, search=search, limit=limit, offset=offset)
    creatives = [asdict(GeneratedCreative.from_row(r)) for r in rows]
    return {"success": True, "creatives": creatives, "total": total, "limit": limit, "offset": offset}


# Projects


@app.get("/api/projects")
def list_projects(session_id: str = Query(..., alias="sessionId"), store: SupabaseStore = Depends(get_store)):
    return {"success": True, "projects": store.list_projects(session_id)}


@app.post("/api/projects")
def create_project(body: ProjectCreate, store: SupabaseStore = Depends(get_store)):
    project = store.create_project(
        session_id=body.session_id,
        name=body.name,
        url=body.url,
        screenshot_url=body.icon,
        language=normalize_language(body.language, settings.default_language) if body.language else None,
    )
    return {"success": True, "project": project}


@app.get("/api/projects/{project_id}")
def get_project(project_id: str, store: SupabaseStore = Depends(get_store)):
    project = store.get_project(project_id)
    audiences = [a.to_dict() for a in store.list_audiences(project_id)]
    return {"success": True, "project": project | {"target_audiences": audiences}}


@app.patch("/api/projects/{project_id}")
def update_project(project_id: str, body: ProjectUpdate, store: SupabaseStore = Depends(get_store)):
    updates: dict[str, Any] = {}
    if body.name is not None:
        updates["name"] = body.name
    if body.url is not None:
        updates["url"] = body.url
    if body.language:
        if body.language not in SUPPORTED_LANGUAGES:
            raise InvalidRequestError(f"Unsupported language: {body.language}")
        updates["language"] = body.language
    if body.icon:
        updates["screenshot_url"] = body.icon
    if not updates:
        raise InvalidRequestError("Nothing to update")
    return {"success": True, "project": store.update_project(project_id, updates)}


@app.delete("/api/projects/{project_id}")
def delete_project(project_id: str, store: SupabaseStore = Depends(get_store)):
    store.delete_project(project_id)
    return {"success": True, "message": "Project deleted successfully"}


# Subprojects


@app.get("/api/subprojects")
def list_subprojects(
    project_id: str | None = Query(None, alias="projectId"),
    subproject_id: str | None = Query(None, alias="subprojectId"),
    store: SupabaseStore = Depends(get_store),
):
    if subproject_id:
        sub = store.get_subproject(subproject_id)
        audiences = [a.to_dict() for a in store.list_audiences(subproject_id, subproject=True)]
        return {"success": True, "subproject": sub | {"target_audiences": audiences}}
    if not project_id:
        raise InvalidRequestError("Project ID or Subproject ID is required")
    return {"success": True, "subprojects": store.list_subprojects(project_id)}


@app.post("/api/subprojects")
def create_subproject(body: SubprojectCreate, store: SupabaseStore = Depends(get_store)):
    sub = store.create_subproject(
        project_id=body.project_id,
        name=body.name,
        url=body.url,
        description=body.description,
        type=body.type,
        language=normalize_language(body.language, settings.default_language),
    )
    return {"success": True, "subproject": sub}


@app.patch("/api/subprojects/{subproject_id}")
def update_subproject(subproject_id: str, body: SubprojectUpdate, store: SupabaseStore = Depends(get_store)):
    updates = body.model_dump(exclude_none=True)
    if not updates:
        raise InvalidRequestError("Nothing to update")
    return {"success": True, "subproject": store.update_subproject(subproject_id, updates)}


@app.delete("/api/subprojects/{subproject_id}")
def delete_subproject(subproject_id: str, store: SupabaseStore = Depends(get_store)):
    store.delete_subproject(subproject_id)
    return {"success": True, "message": "Subproject deleted successfully"}


@app.get("/api/catalog")
def catalog():
    return {
        "sizes": [
            {"id": s.id, "name": s.name, "width": s.width, "height": s.height, "ratio": s.ratio}
            for s in SIZE_OPTIONS
        ],
        "formats": [{"id": f.id, "name": f.name, "description": f.description} for f in CREATIVE_FORMATS],
        "languages": list(SUPPORTED_LANGUAGES),
    }
