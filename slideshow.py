from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

import filestore
from auth import require_admin

router = APIRouter(prefix="/api/slideshow", tags=["slideshow"])


class SlideIn(BaseModel):
    image: Any = None


def add_slide(payload: SlideIn) -> dict:
    if not payload.image:
        raise HTTPException(status_code=400, detail="Image is required")
    filestore.append_slide(payload.image)
    return {"success": True}


def remove_slide(index: int) -> dict:
    if not filestore.delete_slide(index):
        raise HTTPException(status_code=404, detail="Image not found")
    return {"success": True}


@router.get("")
def list_slides():
    return filestore.read_list("slideshow")


@router.post("")
def create_slide(payload: SlideIn, _: dict = Depends(require_admin)):
    return add_slide(payload)


@router.delete("/{index}")
def delete_slide(index: int, _: dict = Depends(require_admin)):
    return remove_slide(index)
