"""Read-only content for the main website, served from the flat JSON files."""

from fastapi import APIRouter, HTTPException

import filestore

router = APIRouter(prefix="/api", tags=["public"])


@router.get("/portfolio")
def portfolio():
    return filestore.read_list("portfolio")


@router.get("/services")
def services():
    return filestore.read_list("services")


@router.get("/project/{project_id}")
def project_detail(project_id: str):
    item = filestore.find_item("portfolio", project_id)
    if not item:
        raise HTTPException(status_code=404, detail="Project not found")
    return item
