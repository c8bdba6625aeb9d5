"""
Contact form intake.

A submission is scored for spam, stored (sensitive fields encrypted at rest) and
acknowledged straight away. Spreadsheet logging, the studio email and the admin
in-app notification run afterwards as background tasks; each one fails on its own
without touching the others or the response.
"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from pydantic import BaseModel, EmailStr, Field

import mailer
import sheets
from auth import require_admin
from database import db, create_document, paginate, serialize, to_object_id, utcnow
from encryption import decrypt_fields, encrypt_fields, SENSITIVE_FIELDS
from notifications import active_admin_ids, create_system_notification, start_of_today
from schemas import ENCRYPTED_PLACEHOLDER, Contact, ContactBudget, ContactService, ContactStatus
from spam import detect_spam

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contact", tags=["contact"])


class ContactIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    message: str = Field(..., min_length=1, max_length=2000)
    phone: Optional[str] = Field(None, max_length=20)
    service: Optional[ContactService] = None
    budget: Optional[ContactBudget] = None


class ContactStatusIn(BaseModel):
    status: Optional[ContactStatus] = None

# ----------------------
# Storage helpers
# ----------------------

def save_contact(data: dict) -> str:
    """Persist a new contact, swapping the sensitive plaintext for the encrypted blob."""
    doc = Contact(**data).model_dump()
    if not doc.get("encrypted_data"):
        doc["encrypted_data"] = encrypt_fields(doc)
        for field in SENSITIVE_FIELDS:
            doc[field] = ENCRYPTED_PLACEHOLDER
    return create_document("contact", doc)


def with_decrypted(doc: dict) -> dict:
    out = serialize(doc)
    decrypted = decrypt_fields(doc.get("encrypted_data"))
    if decrypted:
        for field in SENSITIVE_FIELDS:
            out[field] = decrypted.get(field)
    out.pop("encrypted_data", None)
    return out


def contact_stats() -> dict:
    return {
        "total": db["contact"].count_documents({}),
        "new": db["contact"].count_documents({"status": "new"}),
        "spam": db["contact"].count_documents({"is_spam": True}),
        "today": db["contact"].count_documents({"created_at": {"$gte": start_of_today()}}),
    }


def list_contacts(page: int, limit: int, status: Optional[str], is_spam: Optional[bool]) -> dict:
    query = {}
    if status:
        query["status"] = status
    if is_spam is not None:
        query["is_spam"] = is_spam
    items, pagination = paginate("contact", query, page, limit, [("created_at", -1)])
    return {"success": True, "data": [with_decrypted(c) for c in items], "pagination": pagination}


def find_contact(contact_id: str) -> dict:
    oid = to_object_id(contact_id)
    contact = db["contact"].find_one({"_id": oid}) if oid else None
    if not contact:
        raise HTTPException(status_code=404, detail="Contact not found")
    return contact


def set_contact_status(contact_id: str, status: Optional[str]) -> dict:
    contact = find_contact(contact_id)
    if status:
        db["contact"].update_one({"_id": contact["_id"]}, {"$set": {"status": status, "updated_at": utcnow()}})
    return with_decrypted(db["contact"].find_one({"_id": contact["_id"]}))

# ----------------------
# Side effects
# ----------------------

def log_to_sheets(contact: dict) -> None:
    try:
        sheets.append_contact(contact)
    except Exception as e:
        logger.error(f"Error adding contact to Google Sheets: {e}")


async def email_studio(contact: dict) -> None:
    try:
        await mailer.send_contact_notification(contact)
    except Exception as e:
        logger.error(f"Error sending contact email: {e}")


def notify_admins(contact_id: str, contact: dict) -> None:
    try:
        admins = active_admin_ids()
        if not admins:
            return
        service = contact.get("service") or "a"
        create_system_notification(admins, {
            "title": "New Contact Form Submission",
            "message": f"{contact['name']} submitted a contact form for {service} project",
            "type": "contact",
            "category": "contact",
            "priority": "high",
            "related_id": contact_id,
            "related_model": "Contact",
            "actions": [{"label": "View Details", "url": f"/admin/contacts/{contact_id}", "action": "view"}],
        })
        logger.info(f"Admin notification created for contact {contact_id}")
    except Exception as e:
        logger.error(f"Notification creation failed: {e}")


def fan_out(background: BackgroundTasks, contact_id: str, contact: dict) -> None:
    if not contact["is_spam"]:
        background.add_task(log_to_sheets, contact)
    background.add_task(email_studio, contact)
    background.add_task(notify_admins, contact_id, contact)

# ----------------------
# Routes
# ----------------------

@router.post("", status_code=201)
def submit_contact(payload: ContactIn, request: Request, background: BackgroundTasks):
    contact = {
        "name": payload.name.strip(),
        "email": payload.email.lower(),
        "phone": (payload.phone or "").strip(),
        "service": payload.service or "",
        "budget": payload.budget or "",
        "message": payload.message,
        "ip_address": request.client.host if request.client else "unknown",
        "user_agent": request.headers.get("user-agent", ""),
    }
    check = detect_spam(contact["email"], contact["message"])
    contact["is_spam"] = check.is_spam
    contact["spam_score"] = check.spam_score

    try:
        contact_id = save_contact(contact)
    except Exception:
        logger.exception("Error saving contact")
        raise HTTPException(status_code=500, detail="Failed to submit contact form. Please try again.")
    logger.info(f"Contact {contact_id} saved (spam={check.is_spam}, score={check.spam_score})")

    fan_out(background, contact_id, contact)

    saved = db["contact"].find_one({"_id": to_object_id(contact_id)}, {"created_at": 1})
    return {
        "success": True,
        "message": "Thank you for your message! We'll get back to you soon.",
        "data": {"id": contact_id, "submitted_at": saved["created_at"] if saved else utcnow()},
    }


@router.get("")
def get_contacts(page: int = Query(1, ge=1), limit: int = Query(20, ge=1), status: Optional[ContactStatus] = None,
                 is_spam: Optional[bool] = None, _: dict = Depends(require_admin)):
    return list_contacts(page, limit, status, is_spam)


@router.get("/stats/overview")
def get_contact_stats(_: dict = Depends(require_admin)):
    return {"success": True, "data": contact_stats()}


@router.get("/{contact_id}")
def get_contact(contact_id: str, _: dict = Depends(require_admin)):
    return {"success": True, "data": with_decrypted(find_contact(contact_id))}


@router.put("/{contact_id}")
def update_contact(contact_id: str, payload: ContactStatusIn, _: dict = Depends(require_admin)):
    data = set_contact_status(contact_id, payload.status)
    return {"success": True, "message": "Contact status updated", "data": data}


@router.delete("/{contact_id}")
def delete_contact(contact_id: str, _: dict = Depends(require_admin)):
    contact = find_contact(contact_id)
    db["contact"].delete_one({"_id": contact["_id"]})
    return {"success": True, "message": "Contact deleted successfully"}
