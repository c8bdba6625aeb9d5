"""
Database Schemas for the Interior Design Studio

Each Pydantic model maps to a MongoDB collection (lowercased class name).
- User -> "user"
- Contact -> "contact"
- Project -> "project"
- BlogPost -> "blogpost"
- Notification -> "notification"
- SEO -> "seo"

Auth is email/password with hashed passwords. Roles: "superadmin", "admin" (studio staff)
and "user". Fine grained access is granted through the `permissions` list.
"""

import math
import re
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field

Role = Literal["user", "admin", "superadmin"]

PERMISSIONS = [
    "manage_users",
    "manage_content",
    "manage_blog",
    "manage_seo",
    "view_analytics",
    "export_data",
]
DEFAULT_ADMIN_PERMISSIONS = [p for p in PERMISSIONS if p != "manage_users"]

ContactStatus = Literal["new", "read", "replied", "archived"]
ContactService = Literal["residential", "commercial", "kitchen-bath", "furniture", "consultation", ""]
ContactBudget = Literal["under-10k", "10k-25k", "25k-50k", "50k-100k", "over-100k", ""]

ProjectCategory = Literal[
    "residential", "commercial", "kitchen-bath", "furniture", "consultation", "renovation", "new-construction"
]
BlogCategory = Literal["design-tips", "trends", "case-studies", "news", "inspiration"]

NotificationType = Literal["info", "success", "warning", "error", "contact", "project", "system"]
NotificationCategory = Literal["contact", "project", "user", "system", "blog", "analytics"]
NotificationPriority = Literal["low", "normal", "high", "urgent"]
RelatedModel = Literal["Contact", "Project", "User", "BlogPost"]

SEOPage = Literal["home", "about", "services", "portfolio", "contact", "blog", "global"]
ChangeFreq = Literal["always", "hourly", "daily", "weekly", "monthly", "yearly", "never"]

ENCRYPTED_PLACEHOLDER = "[ENCRYPTED]"
WORDS_PER_MINUTE = 200


class User(BaseModel):
    username: str = Field(..., max_length=50, description="Display/login handle")
    email: EmailStr = Field(..., description="Email address")
    password_hash: str = Field(..., description="pbkdf2_sha256 hash of password")
    role: Role = Field("user", description="user | admin | superadmin")
    permissions: List[str] = Field(default_factory=list, description="Fine grained permissions")
    is_active: bool = Field(True, description="Inactive users cannot log in")
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Contact(BaseModel):
    name: str = Field(..., max_length=100)
    email: str = Field(..., description="Submitter email, lowercased")
    phone: str = Field("", max_length=20)
    service: ContactService = ""
    budget: ContactBudget = ""
    message: str = Field(..., max_length=2000)
    status: ContactStatus = "new"
    ip_address: str = Field(..., description="Client address of the submission")
    user_agent: str = ""
    is_spam: bool = False
    spam_score: int = 0
    encrypted_data: Optional[str] = Field(None, description="iv:ciphertext of the sensitive fields")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProjectImage(BaseModel):
    url: str
    alt: str = ""
    is_primary: bool = False


class ProjectClient(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    testimonial: Optional[str] = Field(None, max_length=500)


class ProjectSpecifications(BaseModel):
    materials: List[str] = Field(default_factory=list)
    colors: List[str] = Field(default_factory=list)
    furniture: List[str] = Field(default_factory=list)
    lighting: List[str] = Field(default_factory=list)


class Project(BaseModel):
    title: str = Field(..., max_length=100)
    description: str = Field(..., max_length=1000)
    category: ProjectCategory
    images: List[ProjectImage] = Field(default_factory=list, description="Ordered, one marked primary")
    main_image: Optional[str] = Field(None, description="Hero image URL")
    location: Optional[str] = Field(None, max_length=100)
    area: Optional[int] = Field(None, ge=0, description="Square feet")
    budget: Optional[int] = Field(None, ge=0)
    duration: Optional[str] = None
    services: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    featured: bool = False
    published: bool = True
    sequence: int = Field(0, description="Display order on the portfolio")
    views: int = 0
    likes: int = 0
    client: ProjectClient = Field(default_factory=ProjectClient)
    specifications: ProjectSpecifications = Field(default_factory=ProjectSpecifications)
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ImageRef(BaseModel):
    url: Optional[str] = None
    alt: Optional[str] = None


class BlogPost(BaseModel):
    title: str = Field(..., max_length=200)
    slug: str = Field("", description="URL-friendly identifier, derived from title if empty")
    content: str
    excerpt: Optional[str] = Field(None, max_length=300)
    featured_image: Optional[ImageRef] = None
    category: BlogCategory
    tags: List[str] = Field(default_factory=list)
    author: Optional[str] = None
    published: bool = False
    published_at: Optional[datetime] = None
    views: int = 0
    likes: int = 0
    meta_title: Optional[str] = Field(None, max_length=60)
    meta_description: Optional[str] = Field(None, max_length=160)
    meta_keywords: List[str] = Field(default_factory=list)
    og_title: Optional[str] = None
    og_description: Optional[str] = None
    og_image: Optional[ImageRef] = None
    reading_time: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class NotificationAction(BaseModel):
    label: str
    url: Optional[str] = None
    action: Optional[str] = None


class Notification(BaseModel):
    recipient: str = Field(..., description="User id of the recipient")
    title: str = Field(..., max_length=100)
    message: str = Field(..., max_length=500)
    type: NotificationType
    category: Optional[NotificationCategory] = None
    related_id: Optional[str] = None
    related_model: Optional[RelatedModel] = None
    read: bool = False
    read_at: Optional[datetime] = None
    actions: List[NotificationAction] = Field(default_factory=list)
    priority: NotificationPriority = "normal"
    expires_at: Optional[datetime] = None
    email_sent: bool = False
    created_at: Optional[datetime] = None


class OGImage(BaseModel):
    url: Optional[str] = None
    alt: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None


class CustomMeta(BaseModel):
    name: str
    content: str


class SEO(BaseModel):
    page: SEOPage
    title: str = Field(..., max_length=60)
    description: str = Field(..., max_length=160)
    keywords: List[str] = Field(default_factory=list)
    og_title: Optional[str] = Field(None, max_length=60)
    og_description: Optional[str] = Field(None, max_length=160)
    og_image: Optional[OGImage] = None
    og_type: Literal["website", "article", "profile"] = "website"
    twitter_card: Literal["summary", "summary_large_image", "app", "player"] = "summary_large_image"
    twitter_title: Optional[str] = None
    twitter_description: Optional[str] = None
    twitter_image: Optional[ImageRef] = None
    canonical: Optional[str] = None
    robots: Literal["index, follow", "noindex, follow", "index, nofollow", "noindex, nofollow"] = "index, follow"
    author: Optional[str] = None
    structured_data: Optional[str] = None
    custom_meta: List[CustomMeta] = Field(default_factory=list)
    google_analytics: Optional[str] = None
    facebook_pixel: Optional[str] = None
    sitemap_priority: float = Field(0.5, ge=0.0, le=1.0)
    sitemap_change_freq: ChangeFreq = "weekly"
    last_modified: Optional[datetime] = None


def slugify(title: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")


def reading_time(content: str) -> int:
    return math.ceil(len(content.split()) / WORDS_PER_MINUTE)


def primary_image(images: List[dict]) -> Optional[str]:
    for img in images or []:
        if img.get("is_primary"):
            return img.get("url")
    return images[0].get("url") if images else None
