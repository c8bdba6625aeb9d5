"""
Admin API

Every route requires an admin or superadmin; user management, analytics and
exports additionally check the matching permission.
"""

import csv
import io
import logging
from datetime import timedelta
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

import filestore
import uploads
from auth import ADMIN_ROLES, default_permissions, guard_last_superadmin, public_user, require_admin, require_permission
from contact import contact_stats, list_contacts, set_contact_status, with_decrypted, ContactStatusIn
from database import db, get_document, paginate, serialize, utcnow
from notifications import daily_counts, start_of_today
from schemas import PERMISSIONS, ContactStatus, Role
from slideshow import SlideIn, add_slide, remove_slide

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])

CONTACT_CSV_FIELDS = [
    "id", "name", "email", "phone", "service", "budget", "message", "status",
    "is_spam", "spam_score", "ip_address", "user_agent", "created_at",
]
PROJECT_CSV_FIELDS = [
    "id", "title", "description", "category", "location", "area", "budget", "duration",
    "services", "tags", "featured", "published", "sequence", "views", "likes",
    "client_name", "client_testimonial", "images", "main_image", "created_at",
]


class RoleIn(BaseModel):
    role: Optional[Role] = None
    permissions: Optional[List[str]] = None


class StatusIn(BaseModel):
    is_active: bool = Field(..., alias="isActive")


def find_user(user_id: str) -> dict:
    user = get_document("user", user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def sum_of(collection: str, field: str) -> int:
    rows = list(db[collection].aggregate([{"$group": {"_id": None, "total": {"$sum": f"${field}"}}}]))
    return rows[0]["total"] if rows else 0

# ----------------------
# Uploads
# ----------------------

@router.post("/upload")
def upload(images: Optional[List[UploadFile]] = File(None)):
    urls = uploads.upload_images(images)
    if len(urls) == 1:
        return {"success": True, "url": urls[0]}
    return {"success": True, "urls": urls}


@router.post("/upload-cloudinary")
def upload_cloudinary(image: Optional[UploadFile] = File(None)):
    return {"success": True, "url": uploads.upload_image(image)}

# ----------------------
# Overview
# ----------------------

@router.get("/dashboard")
def dashboard():
    contacts = db["contact"].count_documents({})
    spam = db["contact"].count_documents({"is_spam": True})
    since = utcnow() - timedelta(days=7)
    recent_contacts = db["contact"].find({}).sort("created_at", -1).limit(5)
    recent_projects = db["project"].find({}).sort("created_at", -1).limit(5)
    top_projects = (
        db["project"].find({"published": True}, {"title": 1, "views": 1, "likes": 1}).sort("views", -1).limit(5)
    )
    return {
        "success": True,
        "data": {
            "overview": {
                "users": db["user"].count_documents({}),
                "contacts": contacts,
                "projects": db["project"].count_documents({}),
                "publishedProjects": db["project"].count_documents({"published": True}),
                "spamCount": spam,
                "spamPercentage": round(spam / contacts * 100, 1) if contacts else 0,
            },
            "recentActivity": {
                "contacts": [with_decrypted(c) for c in recent_contacts],
                "projects": [serialize(p) for p in recent_projects],
            },
            "last7Days": {
                "contacts": db["contact"].count_documents({"created_at": {"$gte": since}}),
                "projects": db["project"].count_documents({"created_at": {"$gte": since}}),
            },
            "topProjects": [serialize(p) for p in top_projects],
        },
    }


@router.get("/stats")
def stats():
    since = {"created_at": {"$gte": utcnow() - timedelta(days=30)}}
    contacts = contact_stats()
    return {
        "success": True,
        "data": {
            "users": {
                "total": db["user"].count_documents({}),
                "active": db["user"].count_documents({"is_active": True}),
                "admins": db["user"].count_documents({"role": {"$in": list(ADMIN_ROLES)}}),
                "recent": db["user"].count_documents(since),
            },
            "contacts": {
                "total": contacts["total"],
                "new": contacts["new"],
                "spam": contacts["spam"],
                "recent": db["contact"].count_documents(since),
            },
            "projects": {
                "total": db["project"].count_documents({}),
                "published": db["project"].count_documents({"published": True}),
                "featured": db["project"].count_documents({"featured": True}),
                "recent": db["project"].count_documents(since),
            },
            "engagement": {
                "totalViews": sum_of("project", "views"),
                "totalLikes": sum_of("project", "likes"),
            },
        },
    }


@router.get("/activity")
def activity(limit: int = Query(50, ge=1)):
    half = max(limit // 2, 1)
    contacts = db["contact"].find({}, {"created_at": 1, "status": 1, "is_spam": 1}).sort("created_at", -1).limit(half)
    projects = (
        db["project"].find({}, {"title": 1, "created_at": 1, "published": 1, "featured": 1})
        .sort("created_at", -1).limit(half)
    )
    events = [
        {
            "type": "contact",
            "action": "spam_detected" if c.get("is_spam") else "new_submission",
            "data": serialize(c),
            "timestamp": c.get("created_at"),
        }
        for c in contacts
    ] + [
        {
            "type": "project",
            "action": "published" if p.get("published") else "created",
            "data": serialize(p),
            "timestamp": p.get("created_at"),
        }
        for p in projects
    ]
    events.sort(key=lambda e: e["timestamp"], reverse=True)
    return {"success": True, "data": events[:limit]}


@router.get("/analytics/contacts")
def contact_analytics(_: dict = Depends(require_permission("view_analytics"))):
    total = db["contact"].count_documents({})
    spam = db["contact"].count_documents({"is_spam": True})
    return {
        "success": True,
        "data": {
            "total": total,
            "spam": spam,
            "real": total - spam,
            "today": db["contact"].count_documents({"created_at": {"$gte": start_of_today()}}),
            "last7": daily_counts("contact"),
        },
    }

# ----------------------
# Users
# ----------------------

@router.get("/users")
def list_users(_: dict = Depends(require_permission("manage_users"))):
    users = [public_user(u) for u in db["user"].find({}).sort("created_at", -1)]
    return {"success": True, "count": len(users), "data": users}


@router.get("/users/{user_id}")
def get_user(user_id: str, _: dict = Depends(require_permission("manage_users"))):
    return {"success": True, "data": public_user(find_user(user_id))}


@router.put("/users/{user_id}/role")
def update_role(user_id: str, payload: RoleIn, _: dict = Depends(require_permission("manage_users"))):
    user = find_user(user_id)
    changes = {}
    guard_last_superadmin(user, role=payload.role)
    if payload.permissions is not None:
        unknown = sorted(set(payload.permissions) - set(PERMISSIONS))
        if unknown:
            raise HTTPException(status_code=400, detail=f"Unknown permissions: {', '.join(unknown)}")
        changes["permissions"] = payload.permissions
    if payload.role:
        changes["role"] = payload.role
        if payload.permissions is None and not user.get("permissions"):
            changes["permissions"] = default_permissions(payload.role)
    if changes:
        changes["updated_at"] = utcnow()
        db["user"].update_one({"_id": user["_id"]}, {"$set": changes})
        logger.info(f"User {user_id} role/permissions changed: {sorted(changes)}")
    return {"success": True, "message": "User role updated successfully", "data": public_user(find_user(user_id))}


@router.put("/users/{user_id}/status")
def update_status(user_id: str, payload: StatusIn, _: dict = Depends(require_permission("manage_users"))):
    user = find_user(user_id)
    guard_last_superadmin(user, is_active=payload.is_active)
    db["user"].update_one({"_id": user["_id"]}, {"$set": {"is_active": payload.is_active, "updated_at": utcnow()}})
    state = "activated" if payload.is_active else "deactivated"
    return {"success": True, "message": f"User {state} successfully", "data": public_user(find_user(user_id))}


@router.delete("/users/{user_id}")
def delete_user(user_id: str, _: dict = Depends(require_permission("manage_users"))):
    user = find_user(user_id)
    if user.get("role") == "superadmin" and db["user"].count_documents({"role": "superadmin"}) <= 1:
        raise HTTPException(status_code=400, detail="Cannot delete the last superadmin")
    db["user"].delete_one({"_id": user["_id"]})
    logger.info(f"User {user_id} deleted")
    return {"success": True, "message": "User deleted successfully"}

# ----------------------
# Contacts and projects
# ----------------------

@router.get("/contacts")
def contacts(page: int = Query(1, ge=1), limit: int = Query(20, ge=1), status: Optional[ContactStatus] = None,
             is_spam: Optional[bool] = Query(None, alias="isSpam")):
    return list_contacts(page, limit, status, is_spam)


@router.put("/contacts/{contact_id}")
def update_contact(contact_id: str, payload: ContactStatusIn):
    return {"success": True, "message": "Contact status updated", "data": set_contact_status(contact_id, payload.status)}


@router.get("/projects")
def projects(page: int = Query(1, ge=1), limit: int = Query(20, ge=1), published: Optional[bool] = None,
             featured: Optional[bool] = None, category: Optional[str] = None):
    query = {}
    if published is not None:
        query["published"] = published
    if featured is not None:
        query["featured"] = featured
    if category:
        query["category"] = category
    items, pagination = paginate("project", query, page, limit, [("created_at", -1)])
    return {"success": True, "data": [serialize(p) for p in items], "pagination": pagination}

# ----------------------
# CSV export
# ----------------------

def contact_csv_row(contact: dict) -> dict:
    row = with_decrypted(contact)
    return {field: row.get(field) for field in CONTACT_CSV_FIELDS}


def project_csv_row(project: dict) -> dict:
    row = serialize(project)
    client = project.get("client") or {}
    row["client_name"] = client.get("name")
    row["client_testimonial"] = client.get("testimonial")
    row["services"] = ", ".join(project.get("services") or [])
    row["tags"] = ", ".join(project.get("tags") or [])
    row["images"] = " | ".join(img.get("url", "") for img in project.get("images") or [])
    return {field: row.get(field) for field in PROJECT_CSV_FIELDS}


def csv_response(rows: List[dict], fields: List[str], filename: str) -> StreamingResponse:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=fields)
    writer.writeheader()
    writer.writerows(rows)
    headers = {"Content-Disposition": f"attachment; filename={filename}"}
    return StreamingResponse(iter([buffer.getvalue()]), media_type="text/csv", headers=headers)


@router.get("/export/contacts")
def export_contacts(_: dict = Depends(require_permission("export_data"))):
    rows = [contact_csv_row(c) for c in db["contact"].find({}).sort("created_at", -1)]
    logger.info(f"Exporting {len(rows)} contacts")
    return csv_response(rows, CONTACT_CSV_FIELDS, "contacts.csv")


@router.get("/export/projects")
def export_projects(_: dict = Depends(require_permission("export_data"))):
    rows = [project_csv_row(p) for p in db["project"].find({}).sort("sequence", 1)]
    return csv_response(rows, PROJECT_CSV_FIELDS, "projects.csv")

# ----------------------
# Flat JSON content
# ----------------------

def _item_or_404(item: Optional[dict], label: str) -> dict:
    if item is None:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return item


@router.get("/portfolio")
def list_portfolio():
    return filestore.read_list("portfolio")


@router.get("/portfolio/{item_id}")
def get_portfolio_item(item_id: str):
    return _item_or_404(filestore.find_item("portfolio", item_id), "Project")


@router.post("/portfolio")
def create_portfolio_item(payload: dict = Body(...)):
    return filestore.add_item("portfolio", payload)


@router.put("/portfolio/{item_id}")
def update_portfolio_item(item_id: str, payload: dict = Body(...)):
    return _item_or_404(filestore.update_item("portfolio", item_id, payload), "Project")


@router.delete("/portfolio/{item_id}")
def delete_portfolio_item(item_id: str):
    filestore.delete_item("portfolio", item_id)
    return {"success": True}


@router.get("/services")
def list_services():
    return filestore.read_list("services")


@router.get("/services/{item_id}")
def get_service(item_id: str):
    return _item_or_404(filestore.find_item("services", item_id), "Service")


@router.post("/services")
def create_service(payload: dict = Body(...)):
    return filestore.add_item("services", payload)


@router.put("/services/{item_id}")
def update_service(item_id: str, payload: dict = Body(...)):
    return _item_or_404(filestore.update_item("services", item_id, payload), "Service")


@router.delete("/services/{item_id}")
def delete_service(item_id: str):
    filestore.delete_item("services", item_id)
    return {"success": True}


@router.get("/slideshow")
def list_slideshow():
    return filestore.read_list("slideshow")


@router.post("/slideshow")
def create_slideshow_image(payload: SlideIn):
    return add_slide(payload)


@router.delete("/slideshow/{index}")
def delete_slideshow_image(index: int):
    return remove_slide(index)
