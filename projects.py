import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from pydantic import BaseModel, Field

import filestore
import uploads
from auth import ADMIN_ROLES, get_current_user, optional_user, require_admin
from database import db, create_document, get_document, paginate, serialize, to_object_id, utcnow
from forms import form_bool, json_list
from schemas import Project, ProjectCategory, ProjectImage, primary_image

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/projects", tags=["projects"])

PROJECT_CREATE_MAX_IMAGES = 10
SEQUENCE_FIELDS = {"_id": 1, "title": 1, "sequence": 1, "category": 1, "published": 1, "featured": 1}
ORDERING = [("sequence", 1), ("created_at", -1)]


class SequenceItem(BaseModel):
    id: str
    sequence: int


class SequencesIn(BaseModel):
    sequences: List[SequenceItem]


class ReorderIn(BaseModel):
    project_ids: List[str] = Field(..., alias="projectIds")

# ----------------------
# Helpers
# ----------------------

def as_image(raw) -> dict:
    if isinstance(raw, str):
        return ProjectImage(url=raw).model_dump()
    return ProjectImage(
        url=raw.get("url", ""),
        alt=raw.get("alt") or "",
        is_primary=bool(raw.get("is_primary", raw.get("isPrimary", False))),
    ).model_dump()


def find_project(project_id: str) -> dict:
    project = get_document("project", project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


def project_out(project: dict) -> dict:
    out = serialize(project)
    out["primary_image"] = primary_image(project.get("images"))
    return out


def has_files(files: Optional[List[UploadFile]]) -> bool:
    return any(f is not None and f.filename for f in files or [])


def resync(project_id) -> Optional[dict]:
    project = get_document("project", project_id)
    if project:
        filestore.sync_project(project)
    return project

# ----------------------
# Public routes
# ----------------------

@router.get("")
def list_projects(page: int = Query(1, ge=1), limit: int = Query(12, ge=1), category: Optional[str] = None,
                  featured: bool = False, search: Optional[str] = None, user: Optional[dict] = Depends(optional_user)):
    query = {"published": True}
    if category:
        query["category"] = category
    if featured:
        query["featured"] = True
    if search:
        pattern = {"$regex": search, "$options": "i"}
        query["$or"] = [{"title": pattern}, {"description": pattern}, {"tags": pattern}]
    items, pagination = paginate("project", query, page, limit, ORDERING)
    if user and items:
        db["project"].update_many({"_id": {"$in": [p["_id"] for p in items]}}, {"$inc": {"views": 1}})
    return {"success": True, "data": [project_out(p) for p in items], "pagination": pagination}


@router.get("/sequence")
def get_sequence(_: dict = Depends(require_admin)):
    projects = db["project"].find({}, SEQUENCE_FIELDS).sort(ORDERING)
    return {"success": True, "data": [serialize(p) for p in projects]}


@router.put("/sequence")
def update_sequence(payload: SequencesIn, _: dict = Depends(require_admin)):
    updated = []
    for item in payload.sequences:
        oid = to_object_id(item.id)
        if not oid:
            continue
        db["project"].update_one({"_id": oid}, {"$set": {"sequence": item.sequence, "updated_at": utcnow()}})
        project = resync(oid)
        if project:
            updated.append(project_out(project))
    logger.info(f"Updated sequences for {len(updated)} projects")
    return {"success": True, "message": "Project sequences updated successfully", "data": updated}


@router.post("/reorder")
def reorder_projects(payload: ReorderIn, _: dict = Depends(require_admin)):
    for index, project_id in enumerate(payload.project_ids):
        oid = to_object_id(project_id)
        if oid:
            db["project"].update_one({"_id": oid}, {"$set": {"sequence": index + 1, "updated_at": utcnow()}})
            resync(oid)
    return {"success": True, "message": "Projects reordered successfully"}


@router.get("/stats/overview")
def project_stats(_: dict = Depends(require_admin)):
    views = list(db["project"].aggregate([{"$group": {"_id": None, "totalViews": {"$sum": "$views"}}}]))
    return {
        "success": True,
        "data": {
            "total": db["project"].count_documents({}),
            "published": db["project"].count_documents({"published": True}),
            "featured": db["project"].count_documents({"featured": True}),
            "totalViews": views[0]["totalViews"] if views else 0,
        },
    }


@router.get("/featured")
def featured_projects(limit: int = Query(6, ge=1)):
    projects = db["project"].find({"published": True, "featured": True}).sort(ORDERING).limit(limit)
    return {"success": True, "data": [project_out(p) for p in projects]}


@router.get("/category/{category}")
def projects_by_category(category: str, limit: int = Query(12, ge=1)):
    projects = db["project"].find({"published": True, "category": category}).sort(ORDERING).limit(limit)
    return {"success": True, "data": [project_out(p) for p in projects]}


@router.get("/{project_id}")
def get_project(project_id: str, user: Optional[dict] = Depends(optional_user)):
    project = find_project(project_id)
    is_admin = user is not None and user.get("role") in ADMIN_ROLES
    if not project.get("published") and not is_admin:
        raise HTTPException(status_code=404, detail="Project not found")
    db["project"].update_one({"_id": project["_id"]}, {"$inc": {"views": 1}})
    project["views"] = project.get("views", 0) + 1
    return {"success": True, "data": project_out(project)}


@router.post("/{project_id}/like")
def like_project(project_id: str, _: dict = Depends(get_current_user)):
    project = find_project(project_id)
    db["project"].update_one({"_id": project["_id"]}, {"$inc": {"likes": 1}})
    return {"success": True, "message": "Project liked", "data": {"likes": project.get("likes", 0) + 1}}

# ----------------------
# Admin routes
# ----------------------

@router.post("", status_code=201)
def create_project(
    title: str = Form(...),
    description: str = Form(...),
    category: ProjectCategory = Form(...),
    location: Optional[str] = Form(None),
    area: Optional[int] = Form(None),
    budget: Optional[int] = Form(None),
    duration: Optional[str] = Form(None),
    services: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    featured: Optional[str] = Form(None),
    published: Optional[str] = Form(None),
    sequence: Optional[int] = Form(None),
    client_name: Optional[str] = Form(None, alias="clientName"),
    client_testimonial: Optional[str] = Form(None, alias="clientTestimonial"),
    materials: Optional[str] = Form(None),
    colors: Optional[str] = Form(None),
    furniture: Optional[str] = Form(None),
    lighting: Optional[str] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    user: dict = Depends(require_admin),
):
    urls = uploads.upload_images(images, PROJECT_CREATE_MAX_IMAGES) if has_files(images) else []
    project = Project(
        title=title,
        description=description,
        category=category,
        location=location,
        area=area,
        budget=budget,
        duration=duration,
        sequence=sequence or 0,
        services=json_list(services, "services"),
        tags=json_list(tags, "tags"),
        featured=form_bool(featured),
        published=form_bool(published),
        images=[
            ProjectImage(url=url, alt=f"{title} - Image {i + 1}", is_primary=i == 0)
            for i, url in enumerate(urls)
        ],
        client={"name": client_name, "testimonial": client_testimonial},
        specifications={
            "materials": json_list(materials, "materials"),
            "colors": json_list(colors, "colors"),
            "furniture": json_list(furniture, "furniture"),
            "lighting": json_list(lighting, "lighting"),
        },
        created_by=str(user["_id"]),
    )
    project_id = create_document("project", project)
    logger.info(f"Project {project_id} created with {len(urls)} images")
    saved = resync(project_id)
    return {"success": True, "message": "Project created successfully", "data": project_out(saved)}


@router.put("/{project_id}")
def update_project(
    project_id: str,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    category: Optional[ProjectCategory] = Form(None),
    location: Optional[str] = Form(None),
    area: Optional[int] = Form(None),
    budget: Optional[int] = Form(None),
    duration: Optional[str] = Form(None),
    services: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    featured: Optional[str] = Form(None),
    published: Optional[str] = Form(None),
    sequence: Optional[int] = Form(None),
    client_name: Optional[str] = Form(None, alias="clientName"),
    client_testimonial: Optional[str] = Form(None, alias="clientTestimonial"),
    materials: Optional[str] = Form(None),
    colors: Optional[str] = Form(None),
    furniture: Optional[str] = Form(None),
    lighting: Optional[str] = Form(None),
    existing_images: Optional[str] = Form(None, alias="existingImages"),
    images: Optional[List[UploadFile]] = File(None),
    main_image_file: Optional[UploadFile] = File(None, alias="mainImage"),
    _: dict = Depends(require_admin),
):
    project = find_project(project_id)
    changes = {}

    for field, value in (("title", title), ("description", description), ("category", category)):
        if value:
            changes[field] = value
    for field, value in (("location", location), ("area", area), ("budget", budget),
                         ("duration", duration), ("sequence", sequence)):
        if value is not None:
            changes[field] = value
    if services:
        changes["services"] = json_list(services, "services")
    if tags:
        changes["tags"] = json_list(tags, "tags")
    if featured is not None:
        changes["featured"] = form_bool(featured)
    if published is not None:
        changes["published"] = form_bool(published)

    kept = [as_image(img) for img in json_list(existing_images, "existingImages")]
    if has_files(images):
        name = title or project["title"]
        for i, url in enumerate(uploads.upload_images(images)):
            kept.append(ProjectImage(
                url=url, alt=f"{name} - Image {len(kept) + 1}", is_primary=not kept and i == 0
            ).model_dump())
    if kept:
        changes["images"] = kept
    if main_image_file is not None and main_image_file.filename:
        changes["main_image"] = uploads.upload_image(main_image_file)

    if client_name is not None or client_testimonial is not None:
        client = project.get("client") or {}
        changes["client"] = {
            "name": client_name or client.get("name"),
            "testimonial": client_testimonial or client.get("testimonial"),
        }
    if materials or colors or furniture or lighting:
        specs = project.get("specifications") or {}
        changes["specifications"] = {
            "materials": json_list(materials, "materials") if materials else specs.get("materials", []),
            "colors": json_list(colors, "colors") if colors else specs.get("colors", []),
            "furniture": json_list(furniture, "furniture") if furniture else specs.get("furniture", []),
            "lighting": json_list(lighting, "lighting") if lighting else specs.get("lighting", []),
        }

    # re-validate the merged document before writing
    merged = {k: v for k, v in {**project, **changes}.items() if k != "_id"}
    Project(**merged)
    changes["updated_at"] = utcnow()
    db["project"].update_one({"_id": project["_id"]}, {"$set": changes})
    saved = resync(project["_id"])
    return {"success": True, "message": "Project updated successfully", "data": project_out(saved)}


@router.delete("/{project_id}")
def delete_project(project_id: str, _: dict = Depends(require_admin)):
    project = find_project(project_id)
    filestore.remove_project(str(project["_id"]))
    db["project"].delete_one({"_id": project["_id"]})
    logger.info(f"Project {project_id} deleted")
    return {"success": True, "message": "Project deleted successfully"}
