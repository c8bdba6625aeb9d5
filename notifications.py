import logging
from datetime import datetime, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from auth import ADMIN_ROLES, get_current_user, require_permission
from database import db, naive_utc, serialize, to_object_id, utcnow
from schemas import (
    Notification,
    NotificationAction,
    NotificationCategory,
    NotificationPriority,
    NotificationType,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])

# ----------------------
# Notification store
# ----------------------

def not_expired(now: Optional[datetime] = None) -> dict:
    now = now or utcnow()
    return {"$or": [{"expires_at": None}, {"expires_at": {"$gt": now}}]}


def create_notification(data: dict) -> str:
    doc = Notification(**data).model_dump()
    doc["created_at"] = utcnow()
    doc["expires_at"] = naive_utc(doc["expires_at"])
    if doc["read"] and not doc["read_at"]:
        doc["read_at"] = doc["created_at"]
    return str(db["notification"].insert_one(doc).inserted_id)


def create_system_notification(recipients: List[str], data: dict) -> List[str]:
    if not recipients:
        return []
    now = utcnow()
    docs = []
    for recipient in recipients:
        doc = Notification(**{**data, "recipient": str(recipient)}).model_dump()
        doc["created_at"] = now
        doc["expires_at"] = naive_utc(doc["expires_at"])
        docs.append(doc)
    result = db["notification"].insert_many(docs)
    return [str(i) for i in result.inserted_ids]


def active_admin_ids() -> List[str]:
    admins = db["user"].find({"role": {"$in": list(ADMIN_ROLES)}, "is_active": True}, {"_id": 1})
    return [str(a["_id"]) for a in admins]


def get_unread(user_id: str, limit: int = 20) -> List[dict]:
    query = {"recipient": user_id, "read": False, **not_expired()}
    return list(db["notification"].find(query).sort("created_at", -1).limit(limit))


def get_for_user(user_id: str, page: int = 1, limit: int = 20) -> List[dict]:
    query = {"recipient": user_id, **not_expired()}
    cursor = db["notification"].find(query).sort("created_at", -1).skip((page - 1) * limit).limit(limit)
    return list(cursor)


def unread_count(user_id: str) -> int:
    return db["notification"].count_documents({"recipient": user_id, "read": False, **not_expired()})


def mark_as_read(user_id: str, notification_ids: List[str]) -> int:
    oids = [oid for oid in (to_object_id(i) for i in notification_ids) if oid]
    result = db["notification"].update_many(
        {"_id": {"$in": oids}, "recipient": user_id},
        {"$set": {"read": True, "read_at": utcnow()}},
    )
    return result.modified_count


def mark_all_as_read(user_id: str) -> int:
    result = db["notification"].update_many(
        {"recipient": user_id, "read": False},
        {"$set": {"read": True, "read_at": utcnow()}},
    )
    return result.modified_count


def purge_expired() -> int:
    return db["notification"].delete_many({"expires_at": {"$ne": None, "$lt": utcnow()}}).deleted_count


def counts_by(field: str) -> List[dict]:
    pipeline = [{"$group": {"_id": f"${field}", "count": {"$sum": 1}}}]
    return [{"_id": row["_id"], "count": row["count"]} for row in db["notification"].aggregate(pipeline)]


def daily_counts(collection: str, days: int = 7) -> List[dict]:
    since = utcnow() - timedelta(days=days)
    buckets = {}
    for doc in db[collection].find({"created_at": {"$gte": since}}, {"created_at": 1}):
        key = doc["created_at"].strftime("%Y-%m-%d")
        buckets[key] = buckets.get(key, 0) + 1
    return [{"_id": day, "count": buckets[day]} for day in sorted(buckets)]


def start_of_today() -> datetime:
    return utcnow().replace(hour=0, minute=0, second=0, microsecond=0)

# ----------------------
# Models
# ----------------------

class MarkReadIn(BaseModel):
    notification_ids: List[str] = []


class SystemNotificationIn(BaseModel):
    title: str
    message: str
    type: NotificationType = "info"
    category: NotificationCategory = "system"
    priority: NotificationPriority = "normal"
    recipients: List[str] = []
    actions: List[NotificationAction] = []
    expires_at: Optional[datetime] = None

# ----------------------
# Routes
# ----------------------

@router.get("")
def list_notifications(page: int = Query(1, ge=1), limit: int = Query(20, ge=1), unread: bool = False,
                       user: dict = Depends(get_current_user)):
    uid = str(user["_id"])
    items = get_unread(uid, limit) if unread else get_for_user(uid, page, limit)
    return {"success": True, "data": [serialize(n) for n in items], "unreadCount": unread_count(uid)}


@router.put("/read")
def mark_read(payload: Optional[MarkReadIn] = None, user: dict = Depends(get_current_user)):
    uid = str(user["_id"])
    if payload and payload.notification_ids:
        mark_as_read(uid, payload.notification_ids)
    else:
        mark_all_as_read(uid)
    return {"success": True, "message": "Notifications marked as read", "unreadCount": unread_count(uid)}


@router.get("/count")
def notification_count(_: dict = Depends(require_permission("view_analytics"))):
    return {
        "success": True,
        "data": {
            "total": db["notification"].count_documents({}),
            "unread": db["notification"].count_documents({"read": False}),
            "today": db["notification"].count_documents({"created_at": {"$gte": start_of_today()}}),
        },
    }


@router.get("/stats")
def notification_stats(_: dict = Depends(require_permission("view_analytics"))):
    return {
        "success": True,
        "data": {
            "total": db["notification"].count_documents({}),
            "unread": db["notification"].count_documents({"read": False}),
            "byType": counts_by("type"),
            "byCategory": counts_by("category"),
            "last7Days": daily_counts("notification"),
        },
    }


@router.post("/system", status_code=201)
def send_system_notification(payload: SystemNotificationIn, _: dict = Depends(require_permission("manage_users"))):
    recipients = payload.recipients or active_admin_ids()
    data = payload.model_dump(exclude={"recipients"})
    ids = create_system_notification(recipients, data)
    created = [serialize(n) for n in db["notification"].find({"_id": {"$in": [to_object_id(i) for i in ids]}})]
    return {"success": True, "message": f"System notification sent to {len(ids)} recipients", "data": created}


@router.delete("/expired")
def delete_expired(_: dict = Depends(require_permission("manage_users"))):
    deleted = purge_expired()
    return {"success": True, "message": f"{deleted} expired notifications deleted"}


def _own_notification(notification_id: str, user: dict) -> dict:
    oid = to_object_id(notification_id)
    notification = db["notification"].find_one({"_id": oid, "recipient": str(user["_id"])}) if oid else None
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification


@router.put("/{notification_id}/read")
def mark_one_read(notification_id: str, user: dict = Depends(get_current_user)):
    notification = _own_notification(notification_id, user)
    db["notification"].update_one({"_id": notification["_id"]}, {"$set": {"read": True, "read_at": utcnow()}})
    return {
        "success": True,
        "message": "Notification marked as read",
        "data": serialize(db["notification"].find_one({"_id": notification["_id"]})),
    }


@router.delete("/{notification_id}")
def delete_notification(notification_id: str, user: dict = Depends(get_current_user)):
    notification = _own_notification(notification_id, user)
    db["notification"].delete_one({"_id": notification["_id"]})
    return {"success": True, "message": "Notification deleted successfully"}
