import logging
from html import escape as xml_escape
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

import config
from auth import require_permission
from database import db, serialize, utcnow
from schemas import SEO, ChangeFreq, CustomMeta, ImageRef, OGImage, SEOPage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/seo", tags=["seo"])


class SEOUpdateIn(BaseModel):
    title: Optional[str] = Field(None, max_length=60)
    description: Optional[str] = Field(None, max_length=160)
    keywords: Optional[List[str]] = None
    og_title: Optional[str] = Field(None, max_length=60)
    og_description: Optional[str] = Field(None, max_length=160)
    og_image: Optional[OGImage] = None
    og_type: Optional[Literal["website", "article", "profile"]] = None
    twitter_card: Optional[Literal["summary", "summary_large_image", "app", "player"]] = None
    twitter_title: Optional[str] = None
    twitter_description: Optional[str] = None
    twitter_image: Optional[ImageRef] = None
    canonical: Optional[str] = None
    robots: Optional[Literal["index, follow", "noindex, follow", "index, nofollow", "noindex, nofollow"]] = None
    author: Optional[str] = None
    structured_data: Optional[str] = None
    custom_meta: Optional[List[CustomMeta]] = None
    google_analytics: Optional[str] = None
    facebook_pixel: Optional[str] = None
    sitemap_priority: Optional[float] = Field(None, ge=0.0, le=1.0)
    sitemap_change_freq: Optional[ChangeFreq] = None

# ----------------------
# Sitemap and robots
# ----------------------

def page_url(base_url: str, page: str) -> str:
    return f"{base_url.rstrip('/')}/{'' if page == 'home' else page}"


def format_lastmod(value) -> Optional[str]:
    if not value:
        return None
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


def build_sitemap_entry(record: dict, base_url: str) -> str:
    lines = [
        "  <url>",
        f"    <loc>{xml_escape(page_url(base_url, record['page']))}</loc>",
    ]
    lastmod = format_lastmod(record.get("last_modified"))
    if lastmod:
        lines.append(f"    <lastmod>{lastmod}</lastmod>")
    lines.append(f"    <changefreq>{record.get('sitemap_change_freq') or 'weekly'}</changefreq>")
    priority = record.get("sitemap_priority")
    lines.append(f"    <priority>{0.5 if priority is None else priority}</priority>")
    lines.append("  </url>")
    return "\n".join(lines)


def build_sitemap(records: List[dict], base_url: str) -> str:
    entries = [build_sitemap_entry(r, base_url) for r in records if r.get("page") != "global"]
    return "\n".join([
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
        *entries,
        "</urlset>",
    ]) + "\n"


def build_robots(base_url: str) -> str:
    return "\n".join([
        "User-agent: *",
        "Allow: /",
        "",
        f"Sitemap: {base_url.rstrip('/')}/api/seo/sitemap.xml",
        "",
        "# Admin areas",
        "Disallow: /admin/",
        "Disallow: /api/admin/",
        "",
        "Disallow: /uploads/",
    ]) + "\n"


@router.get("/sitemap.xml")
def sitemap():
    records = list(db["seo"].find({}).sort("page", 1))
    return Response(content=build_sitemap(records, config.SITE_URL), media_type="application/xml")


@router.get("/robots.txt", response_class=PlainTextResponse)
def robots():
    return build_robots(config.SITE_URL)

# ----------------------
# SEO records
# ----------------------

def find_seo(page: str) -> dict:
    record = db["seo"].find_one({"page": page})
    if not record:
        raise HTTPException(status_code=404, detail="SEO data not found for this page")
    return record


@router.get("/{page}")
def get_seo(page: str):
    return {"success": True, "data": serialize(find_seo(page))}


@router.get("")
def list_seo(_: dict = Depends(require_permission("manage_seo"))):
    return {"success": True, "data": [serialize(r) for r in db["seo"].find({}).sort("page", 1)]}


@router.post("")
def upsert_seo(payload: SEO, response: Response, _: dict = Depends(require_permission("manage_seo"))):
    doc = payload.model_dump()
    doc["last_modified"] = utcnow()
    existing = db["seo"].find_one({"page": payload.page})
    if existing:
        db["seo"].update_one({"_id": existing["_id"]}, {"$set": doc})
        message = "SEO data updated successfully"
    else:
        db["seo"].insert_one(doc)
        response.status_code = 201
        message = "SEO data created successfully"
    logger.info(f"SEO data saved for page {payload.page}")
    return {"success": True, "message": message, "data": serialize(db["seo"].find_one({"page": payload.page}))}


@router.put("/{page}")
def update_seo(page: SEOPage, payload: SEOUpdateIn, _: dict = Depends(require_permission("manage_seo"))):
    record = find_seo(page)
    changes = payload.model_dump(exclude_none=True)
    SEO(**{**{k: v for k, v in record.items() if k != "_id"}, **changes})
    changes["last_modified"] = utcnow()
    db["seo"].update_one({"_id": record["_id"]}, {"$set": changes})
    return {"success": True, "message": "SEO data updated successfully", "data": serialize(find_seo(page))}


@router.delete("/{page}")
def delete_seo(page: str, _: dict = Depends(require_permission("manage_seo"))):
    record = find_seo(page)
    db["seo"].delete_one({"_id": record["_id"]})
    return {"success": True, "message": "SEO data deleted successfully"}
