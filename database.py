"""
MongoDB access helpers

`db` is the shared database handle. Collection names are the lowercase of the
schema class names in schemas.py (User -> "user", BlogPost -> "blogpost").
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient

import config

logger = logging.getLogger(__name__)

client = MongoClient(config.DATABASE_URL, serverSelectionTimeoutMS=5000)
db = client[config.DATABASE_NAME]


def utcnow() -> datetime:
    # pymongo hands back naive UTC datetimes, so store them the same way
    return datetime.now(timezone.utc).replace(tzinfo=None)


def naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def to_object_id(value: Union[str, ObjectId, None]) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def serialize(doc: Optional[dict]) -> Optional[dict]:
    """Turn a Mongo document into a JSON friendly dict with a string `id`."""
    if doc is None:
        return None
    out = {}
    for key, value in doc.items():
        if key == "_id":
            out["id"] = str(value)
        elif isinstance(value, ObjectId):
            out[key] = str(value)
        elif isinstance(value, list):
            out[key] = [str(v) if isinstance(v, ObjectId) else v for v in value]
        else:
            out[key] = value
    return out


def create_document(collection_name: str, data: Union[BaseModel, dict]) -> str:
    if isinstance(data, BaseModel):
        data = data.model_dump()
    doc = dict(data)
    now = utcnow()
    # model_dump() leaves created_at as None
    if not doc.get("created_at"):
        doc["created_at"] = now
    doc["updated_at"] = now
    result = db[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[dict] = None, limit: Optional[int] = None,
                  sort: Optional[list] = None, skip: int = 0) -> list:
    cursor = db[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if skip:
        cursor = cursor.skip(skip)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def get_document(collection_name: str, doc_id: Any) -> Optional[dict]:
    oid = to_object_id(doc_id)
    if oid is None:
        return None
    return db[collection_name].find_one({"_id": oid})


def ensure_indexes() -> None:
    db["user"].create_index("email", unique=True)
    db["contact"].create_index([("email", ASCENDING), ("created_at", DESCENDING)])
    db["contact"].create_index([("status", ASCENDING), ("created_at", DESCENDING)])
    db["project"].create_index([("category", ASCENDING), ("published", ASCENDING), ("featured", ASCENDING)])
    db["project"].create_index("tags")
    db["project"].create_index([("created_at", DESCENDING)])
    db["blogpost"].create_index("slug", unique=True)
    db["blogpost"].create_index([("category", ASCENDING), ("published", ASCENDING)])
    db["blogpost"].create_index([("published_at", DESCENDING)])
    db["notification"].create_index([("recipient", ASCENDING), ("read", ASCENDING)])
    db["notification"].create_index([("recipient", ASCENDING), ("created_at", DESCENDING)])
    # TTL: Mongo purges notifications once expires_at has passed
    db["notification"].create_index("expires_at", expireAfterSeconds=0)
    db["seo"].create_index("page", unique=True)
    logger.info("Database indexes ensured on %s", config.DATABASE_NAME)


def paginate(collection_name: str, query: dict, page: int, limit: int, sort: list) -> tuple:
    total = db[collection_name].count_documents(query)
    items = get_documents(collection_name, query, limit=limit, sort=sort, skip=(page - 1) * limit)
    pagination = {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": (total + limit - 1) // limit if limit else 0,
    }
    return items, pagination
