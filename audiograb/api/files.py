"""Static serving of converted audio files.

  GET /downloads/{filename}: stream an output file back to the browser

Files are looked up by name in the downloads directory only; anything that
resolves outside of it is treated as missing.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse

from audiograb.errors import NotFound
from audiograb.jobs.engine import display_name
from audiograb.storage.output_store import OutputStore

router = APIRouter()

# Wired in during lifespan (same pattern as downloads.py)
_output_store: Optional[OutputStore] = None


def set_output_store(store: OutputStore):
    global _output_store
    _output_store = store


@router.get("/downloads/{filename}")
async def download_file(filename: str):
    if _output_store is None:
        raise HTTPException(status_code=503, detail="Output store not initialized")

    path = _output_store.resolve(filename)
    if path is None:
        raise NotFound("File not found", details=filename)

    return FileResponse(path, media_type="audio/mpeg", filename=display_name(path.name))
