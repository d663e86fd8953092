from __future__ import annotations
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import PlainTextResponse

from components.metadataclient import pick_forwarded_headers
from components.sourceresolver import FileReference
from components.transformstage import TransformParams
from ..pipeline import DownloadPipeline

router = APIRouter()

# ---- Dependencies (wired by create_app; overridable in tests) ----

def get_pipeline(request: Request) -> DownloadPipeline:
    return request.app.state.pipeline

# ---- Routes ----

@router.get("/", response_class=PlainTextResponse)
async def index():
    return "Hello World!"

@router.get("/health")
async def health(request: Request):
    return {"ok": True, "version": request.app.state.settings.app_version}

@router.get("/download_file")
async def download_file(
    request: Request,
    block_id: Optional[str] = Query(default=None, alias="id"),
    w: Optional[str] = None,
    h: Optional[str] = None,
    f: Optional[str] = None,
    pipeline: DownloadPipeline = Depends(get_pipeline),
):
    params = TransformParams.from_query(w, h, f)
    return await pipeline.run(FileReference.by_id(block_id), params, pick_forwarded_headers(request.headers))

@router.get("/download_url")
async def download_url(
    url: Optional[str] = None,
    w: Optional[str] = None,
    h: Optional[str] = None,
    f: Optional[str] = None,
    pipeline: DownloadPipeline = Depends(get_pipeline),
):
    params = TransformParams.from_query(w, h, f)
    return await pipeline.run(FileReference.by_url(url), params)
