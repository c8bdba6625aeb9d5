import pytest

import blog
from conftest import headers_for, make_user
from schemas import reading_time, slugify


@pytest.mark.parametrize("title,slug", [
    ("Hello World", "hello-world"),
    ("  Small Spaces, Big Ideas!  ", "small-spaces-big-ideas"),
    ("2024 -- Trends & Tips", "2024-trends-tips"),
    ("Café Interiors", "caf-interiors"),
    ("---", ""),
])
def test_slugify(title, slug):
    assert slugify(title) == slug


def test_reading_time_rounds_up():
    assert reading_time("word " * 200) == 1
    assert reading_time("word " * 201) == 2


def test_prepare_post_sets_publish_date_once():
    post = blog.prepare_post({"title": "Warm Minimalism", "content": "text", "published": True})
    assert post["slug"] == "warm-minimalism"
    assert post["reading_time"] == 1
    first = post["published_at"]
    assert blog.prepare_post(post)["published_at"] == first


def test_draft_has_no_publish_date():
    assert blog.prepare_post({"title": "Draft", "content": "x", "published": False}).get("published_at") is None


def make_post(client, headers, **fields):
    data = {"title": "Warm Minimalism", "content": "Soft woods and linen. " * 60, "category": "trends",
            "published": "true", **fields}
    return client.post("/api/blog", data=data, headers=headers)


def test_create_derives_slug(client, admin_headers):
    response = make_post(client, admin_headers)
    assert response.status_code == 201
    post = response.json()["data"]
    assert post["slug"] == "warm-minimalism"
    assert post["reading_time"] == 2
    assert post["published_at"]

    duplicate = make_post(client, admin_headers)
    assert duplicate.status_code == 400


def test_public_lookup_by_slug_counts_views(client, admin_headers):
    make_post(client, admin_headers)
    make_post(client, admin_headers, title="Hidden draft", published="false")

    response = client.get("/api/blog/warm-minimalism")
    assert response.status_code == 200
    assert response.json()["data"]["views"] == 1
    assert client.get("/api/blog/hidden-draft").status_code == 404
    assert client.get("/api/blog").json()["pagination"]["total"] == 1


def test_search_requires_query(client, admin_headers):
    make_post(client, admin_headers)
    assert client.get("/api/blog/search").status_code == 400
    found = client.get("/api/blog/search", params={"q": "linen"}).json()["data"]
    assert [p["slug"] for p in found] == ["warm-minimalism"]


def test_update_publishes_draft(client, admin_headers):
    post = make_post(client, admin_headers, published="false").json()["data"]
    assert post["published_at"] is None

    response = client.put(f"/api/blog/{post['id']}", data={"published": "true", "slug": "Warm & Calm"},
                          headers=admin_headers)
    updated = response.json()["data"]
    assert updated["published"] is True
    assert updated["published_at"]
    assert updated["slug"] == "warm-calm"


def test_blog_writes_need_manage_blog(client, user_headers):
    analyst = make_user("admin", permissions=["view_analytics"], username="analyst")
    assert make_post(client, headers_for(analyst)).status_code == 403
    assert make_post(client, user_headers).status_code == 403


def test_featured_image_goes_to_cloudinary(client, admin_headers, cloudinary_uploads):
    response = client.post(
        "/api/blog",
        data={"title": "Light", "content": "About light", "category": "design-tips"},
        files={"featuredImage": ("light.png", b"png", "image/png")},
        headers=admin_headers,
    )
    image = response.json()["data"]["featured_image"]
    assert image["url"].startswith("https://res.cloudinary.com/")
    assert image["alt"] == "Light"


def test_new_post_records_creation_time(client, mongo, admin_headers):
    make_post(client, admin_headers)
    stored = mongo["blogpost"].find_one({"slug": "warm-minimalism"})
    assert stored["created_at"] is not None
    assert stored["updated_at"] == stored["created_at"]
