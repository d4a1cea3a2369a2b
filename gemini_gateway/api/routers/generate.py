"""
Generation endpoints.

Each endpoint maps an HTTP request onto one model task: ``text`` for JSON
prompts, and ``image``, ``document`` or ``audio`` for multipart uploads. Uploads
are staged on disk for the length of the request and sent to the model as
base64 inline data alongside the prompt.
"""
import asyncio
import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from ..models.common import ErrorResponse
from ..models.generate import GenerateTextRequest, GenerateResponse
from ..dependencies.state import get_model_manager, get_server_settings
from ..dependencies.uploads import stored_upload
from ..settings import ServerSettings
from gemini_gateway.models.manager import ModelManager
from gemini_gateway.models.providers.base import ModelResponse
from gemini_gateway.utils.file_converter import to_inline_part

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


def _generate_with_upload(
    model_manager: ModelManager,
    task: str,
    prompt: Optional[str],
    upload: UploadFile,
    upload_dir: Path,
) -> ModelResponse:
    """Stage, encode and send one upload. Blocking; call from a worker thread."""
    with stored_upload(upload, upload_dir) as stored:
        part = to_inline_part(stored.path, stored.mime_type, stored.filename)
        return model_manager.generate(task, prompt, [part])


async def _generate_from_upload(
    task: str,
    field: str,
    upload: Optional[UploadFile],
    prompt: Optional[str],
    model_manager: ModelManager,
    settings: ServerSettings,
) -> GenerateResponse:
    if upload is None:
        raise HTTPException(status_code=400, detail=f"{field} file is required (field: {field})")

    try:
        response = await asyncio.to_thread(
            _generate_with_upload, model_manager, task, prompt, upload, settings.upload_dir
        )
    except Exception as e:
        logger.exception(f"{task} generation failed")
        raise HTTPException(status_code=500, detail=str(e))

    return GenerateResponse(output=response.content)


@router.post("/generate-text", response_model=GenerateResponse, responses=ERROR_RESPONSES)
async def generate_text(
    request: GenerateTextRequest,
    model_manager: ModelManager = Depends(get_model_manager)
):
    """Generate text from a JSON prompt."""
    if not request.prompt:
        raise HTTPException(status_code=400, detail="prompt is required")

    try:
        response = await asyncio.to_thread(model_manager.generate, "text", request.prompt)
    except Exception as e:
        logger.exception("text generation failed")
        raise HTTPException(status_code=500, detail=str(e))

    return GenerateResponse(output=response.content)


@router.post("/generate-from-image", response_model=GenerateResponse, responses=ERROR_RESPONSES)
async def generate_from_image(
    image: Optional[UploadFile] = File(None),
    prompt: Optional[str] = Form(None),
    model_manager: ModelManager = Depends(get_model_manager),
    settings: ServerSettings = Depends(get_server_settings),
):
    """Describe an uploaded image (png/jpg/webp). Without a prompt the model gives a brief description."""
    return await _generate_from_upload("image", "image", image, prompt, model_manager, settings)


@router.post("/generate-from-document", response_model=GenerateResponse, responses=ERROR_RESPONSES)
async def generate_from_document(
    document: Optional[UploadFile] = File(None),
    prompt: Optional[str] = Form(None),
    model_manager: ModelManager = Depends(get_model_manager),
    settings: ServerSettings = Depends(get_server_settings),
):
    """Process an uploaded document (pdf/txt/...). Without a prompt the model summarizes it."""
    return await _generate_from_upload("document", "document", document, prompt, model_manager, settings)


@router.post("/generate-from-audio", response_model=GenerateResponse, responses=ERROR_RESPONSES)
async def generate_from_audio(
    audio: Optional[UploadFile] = File(None),
    prompt: Optional[str] = Form(None),
    model_manager: ModelManager = Depends(get_model_manager),
    settings: ServerSettings = Depends(get_server_settings),
):
    """Process uploaded audio (mp3/wav/m4a). Without a prompt the model transcribes and summarizes it."""
    return await _generate_from_upload("audio", "audio", audio, prompt, model_manager, settings)
