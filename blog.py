import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile

import uploads
from auth import get_current_user, require_permission
from database import db, create_document, get_document, paginate, serialize, utcnow
from forms import form_bool, json_list, json_object
from schemas import BlogCategory, BlogPost, reading_time, slugify

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/blog", tags=["blog"])

NEWEST_FIRST = [("published_at", -1), ("created_at", -1)]


def prepare_post(doc: dict) -> dict:
    """Fill derived fields before every save: slug, reading time and first publish date."""
    if not doc.get("slug") and doc.get("title"):
        doc["slug"] = slugify(doc["title"])
    if doc.get("content"):
        doc["reading_time"] = reading_time(doc["content"])
    if doc.get("published") and not doc.get("published_at"):
        doc["published_at"] = utcnow()
    return doc


def ensure_unique_slug(slug: str, exclude_id=None) -> None:
    query = {"slug": slug}
    if exclude_id is not None:
        query["_id"] = {"$ne": exclude_id}
    if db["blogpost"].find_one(query):
        raise HTTPException(status_code=400, detail="A blog post with this slug already exists")


def find_post(post_id: str) -> dict:
    post = get_document("blogpost", post_id)
    if not post:
        raise HTTPException(status_code=404, detail="Blog post not found")
    return post


def search_query(text: str) -> dict:
    pattern = {"$regex": text, "$options": "i"}
    return {"$or": [{"title": pattern}, {"content": pattern}, {"tags": pattern}]}


def total_of(field: str) -> int:
    rows = list(db["blogpost"].aggregate([{"$group": {"_id": None, "total": {"$sum": f"${field}"}}}]))
    return rows[0]["total"] if rows else 0

# ----------------------
# Public routes
# ----------------------

@router.get("")
def list_posts(page: int = Query(1, ge=1), limit: int = Query(10, ge=1), category: Optional[str] = None,
               search: Optional[str] = None):
    query = {"published": True}
    if category:
        query["category"] = category
    if search:
        query.update(search_query(search))
    items, pagination = paginate("blogpost", query, page, limit, NEWEST_FIRST)
    return {"success": True, "data": [serialize(p) for p in items], "pagination": pagination}


@router.get("/category/{category}")
def posts_by_category(category: str, limit: int = Query(10, ge=1)):
    posts = db["blogpost"].find({"published": True, "category": category}).sort(NEWEST_FIRST).limit(limit)
    return {"success": True, "data": [serialize(p) for p in posts]}


@router.get("/search")
def search_posts(q: Optional[str] = None, limit: int = Query(10, ge=1)):
    if not q:
        raise HTTPException(status_code=400, detail="Search query is required")
    posts = db["blogpost"].find({"published": True, **search_query(q)}).sort(NEWEST_FIRST).limit(limit)
    return {"success": True, "data": [serialize(p) for p in posts]}


@router.get("/stats/overview")
def blog_stats(_: dict = Depends(require_permission("view_analytics"))):
    total = db["blogpost"].count_documents({})
    published = db["blogpost"].count_documents({"published": True})
    return {
        "success": True,
        "data": {
            "total": total,
            "published": published,
            "draft": total - published,
            "totalViews": total_of("views"),
            "totalLikes": total_of("likes"),
        },
    }


@router.get("/{slug}")
def get_post(slug: str):
    post = db["blogpost"].find_one({"slug": slug, "published": True})
    if not post:
        raise HTTPException(status_code=404, detail="Blog post not found")
    db["blogpost"].update_one({"_id": post["_id"]}, {"$inc": {"views": 1}})
    post["views"] = post.get("views", 0) + 1
    return {"success": True, "data": serialize(post)}


@router.post("/{post_id}/like")
def like_post(post_id: str, _: dict = Depends(get_current_user)):
    post = find_post(post_id)
    db["blogpost"].update_one({"_id": post["_id"]}, {"$inc": {"likes": 1}})
    return {"success": True, "message": "Blog post liked", "data": {"likes": post.get("likes", 0) + 1}}

# ----------------------
# Admin routes
# ----------------------

@router.post("", status_code=201)
def create_post(
    title: str = Form(...),
    content: str = Form(...),
    category: BlogCategory = Form(...),
    slug: Optional[str] = Form(None),
    excerpt: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    published: Optional[str] = Form(None),
    meta_title: Optional[str] = Form(None, alias="metaTitle"),
    meta_description: Optional[str] = Form(None, alias="metaDescription"),
    meta_keywords: Optional[str] = Form(None, alias="metaKeywords"),
    og_title: Optional[str] = Form(None, alias="ogTitle"),
    og_description: Optional[str] = Form(None, alias="ogDescription"),
    og_image: Optional[str] = Form(None, alias="ogImage"),
    featured_image_alt: Optional[str] = Form(None, alias="featuredImageAlt"),
    featured_image: Optional[UploadFile] = File(None, alias="featuredImage"),
    user: dict = Depends(require_permission("manage_blog")),
):
    image = None
    if featured_image is not None and featured_image.filename:
        image = {"url": uploads.upload_image(featured_image), "alt": featured_image_alt or title}
    post = BlogPost(
        title=title,
        slug=slugify(slug) if slug else "",
        content=content,
        excerpt=excerpt,
        category=category,
        tags=json_list(tags, "tags"),
        published=form_bool(published),
        featured_image=image,
        author=str(user["_id"]),
        meta_title=meta_title,
        meta_description=meta_description,
        meta_keywords=json_list(meta_keywords, "metaKeywords"),
        og_title=og_title,
        og_description=og_description,
        og_image=json_object(og_image, "ogImage"),
    ).model_dump()
    prepare_post(post)
    if not post["slug"]:
        raise HTTPException(status_code=400, detail="Title must contain letters or digits")
    ensure_unique_slug(post["slug"])
    post_id = create_document("blogpost", post)
    logger.info(f"Blog post {post_id} created with slug {post['slug']}")
    return {"success": True, "message": "Blog post created successfully", "data": serialize(get_document("blogpost", post_id))}


@router.put("/{post_id}")
def update_post(
    post_id: str,
    title: Optional[str] = Form(None),
    content: Optional[str] = Form(None),
    category: Optional[BlogCategory] = Form(None),
    slug: Optional[str] = Form(None),
    excerpt: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    published: Optional[str] = Form(None),
    meta_title: Optional[str] = Form(None, alias="metaTitle"),
    meta_description: Optional[str] = Form(None, alias="metaDescription"),
    meta_keywords: Optional[str] = Form(None, alias="metaKeywords"),
    og_title: Optional[str] = Form(None, alias="ogTitle"),
    og_description: Optional[str] = Form(None, alias="ogDescription"),
    og_image: Optional[str] = Form(None, alias="ogImage"),
    featured_image_alt: Optional[str] = Form(None, alias="featuredImageAlt"),
    featured_image: Optional[UploadFile] = File(None, alias="featuredImage"),
    _: dict = Depends(require_permission("manage_blog")),
):
    post = find_post(post_id)
    changes = {}
    for field, value in (("title", title), ("content", content), ("category", category),
                         ("meta_title", meta_title), ("meta_description", meta_description),
                         ("og_title", og_title), ("og_description", og_description)):
        if value:
            changes[field] = value
    if slug:
        changes["slug"] = slugify(slug)
    if excerpt is not None:
        changes["excerpt"] = excerpt
    if tags:
        changes["tags"] = json_list(tags, "tags")
    if meta_keywords:
        changes["meta_keywords"] = json_list(meta_keywords, "metaKeywords")
    if og_image:
        changes["og_image"] = json_object(og_image, "ogImage")
    if published is not None:
        changes["published"] = form_bool(published)
    if featured_image is not None and featured_image.filename:
        changes["featured_image"] = {
            "url": uploads.upload_image(featured_image),
            "alt": featured_image_alt or title or post["title"],
        }

    merged = prepare_post({k: v for k, v in {**post, **changes}.items() if k != "_id"})
    BlogPost(**merged)
    if merged["slug"] != post.get("slug"):
        ensure_unique_slug(merged["slug"], exclude_id=post["_id"])
    for field in ("slug", "reading_time", "published_at"):
        changes[field] = merged.get(field)
    changes["updated_at"] = utcnow()
    db["blogpost"].update_one({"_id": post["_id"]}, {"$set": changes})
    return {"success": True, "message": "Blog post updated successfully", "data": serialize(find_post(post_id))}


@router.delete("/{post_id}")
def delete_post(post_id: str, _: dict = Depends(require_permission("manage_blog"))):
    post = find_post(post_id)
    db["blogpost"].delete_one({"_id": post["_id"]})
    logger.info(f"Blog post {post_id} deleted")
    return {"success": True, "message": "Blog post deleted successfully"}
