"""
Workout file parser endpoints

Thin HTTP surface over the parsing pipeline:
- GET  /api/workout-parsers/formats
- POST /api/workout-parsers/parse                (JSON text content)
- POST /api/workout-parsers/convert              (JSON text content)
- POST /api/workout-parsers/upload               (multipart file)
- POST /api/workout-parsers/upload-and-convert   (multipart file)
"""

import logging
import os
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, Field

from workout_file_ingestor.config import settings
from workout_file_ingestor.parsers import (
    WorkoutParseError,
    parse_workout,
    supported_formats,
)
from workout_file_ingestor.parsers.fit_parser import parse_fit_workout, supports_fit
from workout_file_ingestor.parsers.models import ParsedWorkoutResult
from workout_file_ingestor.services.workout_converter import (
    convert_to_workout,
    parse_and_convert,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/workout-parsers", tags=["Workout Parsers"])

FIT_EXTENSION = ".fit"


# ---------------------------------------------------------------------------
# Request Models
# ---------------------------------------------------------------------------

class ParseWorkoutRequest(BaseModel):
    """Request model for POST /parse"""
    content: str = Field(..., description="Raw workout file text")
    filename: str = Field(..., min_length=1, description="Original filename, selects the parser")
    ftp: Optional[int] = Field(default=None, ge=100, le=500, description="Athlete FTP in watts")


class ConvertWorkoutRequest(ParseWorkoutRequest):
    """Request model for POST /convert"""
    name: Optional[str] = Field(default=None, description="Overrides the workout name")
    description: Optional[str] = Field(default=None, description="Overrides the description")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _allowed_extensions() -> list[str]:
    return supported_formats() + [FIT_EXTENSION]


async def _parse_upload(file: UploadFile, ftp: Optional[int]) -> ParsedWorkoutResult:
    filename = file.filename or ""
    if not filename:
        raise HTTPException(status_code=400, detail="No file uploaded")

    ext = os.path.splitext(filename)[1].lower()
    allowed = _allowed_extensions()
    if ext not in allowed:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file type. Allowed: {', '.join(allowed)}",
        )

    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="No file uploaded")
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {settings.MAX_UPLOAD_BYTES} bytes",
        )

    try:
        if supports_fit(filename):
            return parse_fit_workout(data, ftp=ftp)
        return parse_workout(data.decode("utf-8-sig"), filename, ftp=ftp)
    except UnicodeDecodeError as e:
        raise HTTPException(status_code=400, detail=f"File is not valid UTF-8 text: {e}")
    except WorkoutParseError as e:
        raise HTTPException(status_code=400, detail=str(e))


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.get("/formats")
async def get_supported_formats():
    """List supported workout file formats."""
    return {
        "formats": supported_formats(),
        "description": "Supported workout file formats for import",
    }


@router.post("/parse")
async def parse_workout_content(request: ParseWorkoutRequest):
    """Parse workout file text into a segment timeline."""
    try:
        parsed = parse_workout(request.content, request.filename, ftp=request.ftp)
    except WorkoutParseError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"success": True, "parsed": parsed.model_dump()}


@router.post("/convert")
async def convert_workout_content(request: ConvertWorkoutRequest):
    """Parse workout file text and convert it to the internal workout format."""
    try:
        converted = parse_and_convert(
            request.content,
            request.filename,
            name=request.name,
            description=request.description,
            ftp=request.ftp,
        )
    except WorkoutParseError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"success": True, "workout": converted.model_dump()}


@router.post("/upload")
async def upload_workout(
    file: UploadFile = File(...),
    ftp: Optional[int] = Form(None, ge=100, le=500),
):
    """Upload and parse a workout file."""
    parsed = await _parse_upload(file, ftp)
    return {"success": True, "filename": file.filename, "parsed": parsed.model_dump()}


@router.post("/upload-and-convert")
async def upload_and_convert_workout(
    file: UploadFile = File(...),
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    ftp: Optional[int] = Form(None, ge=100, le=500),
):
    """Upload a workout file, parse it and convert it in one step."""
    parsed = await _parse_upload(file, ftp)
    default_name = os.path.splitext(file.filename or "")[0] or None
    converted = convert_to_workout(
        parsed,
        name=name or default_name,
        description=description,
    )
    return {"success": True, "filename": file.filename, "workout": converted.model_dump()}
