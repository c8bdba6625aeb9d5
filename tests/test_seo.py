import config

HOME = {"page": "home", "title": "Beyond Blueprint", "description": "Interior design studio",
        "sitemap_priority": 1.0, "sitemap_change_freq": "daily"}


def test_upsert_then_public_lookup(client, admin_headers):
    created = client.post("/api/seo", json=HOME, headers=admin_headers)
    assert created.status_code == 201
    updated = client.post("/api/seo", json={**HOME, "title": "Beyond Blueprint Studio"}, headers=admin_headers)
    assert updated.status_code == 200

    data = client.get("/api/seo/home").json()["data"]
    assert data["title"] == "Beyond Blueprint Studio"
    assert data["last_modified"]
    assert client.get("/api/seo/about").status_code == 404


def test_seo_admin_needs_manage_seo(client, user_headers):
    assert client.get("/api/seo", headers=user_headers).status_code == 403
    assert client.post("/api/seo", json=HOME, headers=user_headers).status_code == 403


def test_partial_update_and_delete(client, admin_headers):
    client.post("/api/seo", json=HOME, headers=admin_headers)
    response = client.put("/api/seo/home", json={"sitemap_priority": 0.8}, headers=admin_headers)
    assert response.json()["data"]["sitemap_priority"] == 0.8
    assert response.json()["data"]["title"] == "Beyond Blueprint"

    too_high = client.put("/api/seo/home", json={"sitemap_priority": 1.5}, headers=admin_headers)
    assert too_high.status_code == 400

    assert client.delete("/api/seo/home", headers=admin_headers).status_code == 200
    assert client.get("/api/seo/home").status_code == 404


def test_sitemap_lists_pages(client, admin_headers, monkeypatch):
    monkeypatch.setattr(config, "SITE_URL", "https://beyondblueprint.co.in")
    client.post("/api/seo", json=HOME, headers=admin_headers)
    client.post("/api/seo", json={"page": "portfolio", "title": "Portfolio", "description": "Our work"},
                headers=admin_headers)

    response = client.get("/api/seo/sitemap.xml")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/xml")
    body = response.text
    assert "<loc>https://beyondblueprint.co.in/</loc>" in body
    assert "<loc>https://beyondblueprint.co.in/portfolio</loc>" in body
    assert "<changefreq>daily</changefreq>" in body
    assert "<priority>0.5</priority>" in body


def test_robots_txt(client, monkeypatch):
    monkeypatch.setattr(config, "SITE_URL", "https://beyondblueprint.co.in")
    response = client.get("/api/seo/robots.txt")
    assert response.status_code == 200
    assert "Sitemap: https://beyondblueprint.co.in/api/seo/sitemap.xml" in response.text
    for path in ("/admin/", "/api/admin/", "/uploads/"):
        assert f"Disallow: {path}" in response.text


def test_security_headers_and_error_envelope(client):
    response = client.get("/api/nowhere")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Route /api/nowhere not found"}
    assert response.headers["x-content-type-options"] == "nosniff"
    assert response.headers["x-frame-options"] == "DENY"
