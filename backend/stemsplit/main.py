"""
StemSplit Backend: FastAPI app.
Endpoints: /health, /models, /tool, /info, /separate, /separate/stream.
"""

import json
import os
import queue
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from stemsplit.audio import AudioInfo, get_audio_info, validate_input_file
from stemsplit.console import log
from stemsplit.errors import InputValidationError, ToolUnavailableError
from stemsplit.models import SeparationRequest, SeparationResult
from stemsplit.stems import AVAILABLE_MODELS, INSTALL_GUIDANCE, check_tool_installation, separate_into_stems

# Thread pool for separation jobs (long-running subprocess, don't block the event loop)
_stem_executor = ThreadPoolExecutor(max_workers=int(os.getenv("STEMSPLIT_MAX_JOBS", "2")))

_DONE = object()

# Failed SeparationResult.error_type -> HTTP status; anything else is a 500
_ERROR_STATUS = {
    InputValidationError.__name__: 400,
    ToolUnavailableError.__name__: 503,
}


class InfoRequest(BaseModel):
    path: str = Field(..., description="Path of an audio file on the server")


class ModelInfo(BaseModel):
    name: str
    stems: list[str]
    description: str


class ToolStatusResponse(BaseModel):
    installed: bool
    version: str | None = None
    install_guidance: str | None = Field(default=None, description="Present when the tool is missing")


app = FastAPI(
    title="StemSplit API",
    description="Split audio files into instrument stems with demucs.",
    version="0.1.0",
)

origins = os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").strip().split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _validate(path: Path) -> None:
    try:
        validate_input_file(path)
    except InputValidationError as e:
        raise HTTPException(400, str(e)) from e


@app.get("/health")
def health() -> dict:
    """Confirm API is running."""
    return {"status": "ok", "service": "StemSplit"}


@app.get("/models", response_model=list[ModelInfo])
def models() -> list[ModelInfo]:
    return [
        ModelInfo(name=name, stems=list(stems), description=description)
        for name, (stems, description) in AVAILABLE_MODELS.items()
    ]


@app.get("/tool", response_model=ToolStatusResponse)
def tool_status() -> ToolStatusResponse:
    """Is the separation tool installed, and which version."""
    status = check_tool_installation()
    return ToolStatusResponse(
        installed=status.installed,
        version=status.version,
        install_guidance=None if status.installed else INSTALL_GUIDANCE,
    )


@app.post("/info", response_model=AudioInfo)
def audio_info(req: InfoRequest) -> AudioInfo:
    """Duration, sample rate and channel count of a local audio file."""
    try:
        return get_audio_info(req.path)
    except InputValidationError as e:
        raise HTTPException(400, str(e)) from e


@app.post("/separate", response_model=SeparationResult)
def separate(req: SeparationRequest) -> SeparationResult:
    """
    Separate a local audio file into stems. Blocks until done.
    400 for a bad input file, 503 when the tool is not installed, 500 for any other failure.
    """
    _validate(req.input_file)
    log(f"Separating {req.input_file.name} with {req.model}...")
    future = _stem_executor.submit(separate_into_stems, req)
    result = future.result()
    if not result.success:
        raise HTTPException(_ERROR_STATUS.get(result.error_type, 500), result.error)
    return result


@app.post("/separate/stream")
def separate_stream(req: SeparationRequest) -> StreamingResponse:
    """
    Same as /separate, streamed as NDJSON: one {"event": ...} line per progress event,
    then a final {"result": ...} line.
    Validation and tool availability are checked up front (400 / 503); once the stream has
    started, a failure is reported in the result line with success=false.
    """
    _validate(req.input_file)
    if not check_tool_installation().installed:
        raise HTTPException(503, INSTALL_GUIDANCE)
    events: queue.Queue = queue.Queue()
    future = _stem_executor.submit(separate_into_stems, req, events.put)
    # separate_into_stems delivers every event before returning, so _DONE is always last
    future.add_done_callback(lambda _: events.put(_DONE))

    def lines():
        while True:
            item = events.get()
            if item is _DONE:
                break
            yield json.dumps({"event": item.model_dump(mode="json")}) + "\n"
        result: SeparationResult = future.result()
        yield json.dumps({"result": result.model_dump(mode="json")}) + "\n"

    return StreamingResponse(lines(), media_type="application/x-ndjson")
