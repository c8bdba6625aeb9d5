import csv
import io

import config

from conftest import headers_for, make_user


def test_cannot_delete_last_superadmin(client, superadmin, superadmin_headers):
    response = client.delete(f"/api/admin/users/{superadmin['_id']}", headers=superadmin_headers)
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Cannot delete the last superadmin"}


def test_can_delete_one_of_two_superadmins(client, mongo, superadmin_headers):
    second = make_user("superadmin", username="co-owner")
    response = client.delete(f"/api/admin/users/{second['_id']}", headers=superadmin_headers)
    assert response.status_code == 200
    assert mongo["user"].count_documents({"role": "superadmin"}) == 1


def test_delete_unknown_user_is_404(client, superadmin_headers):
    assert client.delete("/api/admin/users/64b7f0c2a1b2c3d4e5f60718", headers=superadmin_headers).status_code == 404


def test_role_and_status_updates(client, mongo, plain_user, superadmin_headers):
    response = client.put(
        f"/api/admin/users/{plain_user['_id']}/role",
        json={"role": "admin", "permissions": ["manage_blog", "view_analytics"]},
        headers=superadmin_headers,
    )
    assert response.status_code == 200
    assert response.json()["data"]["permissions"] == ["manage_blog", "view_analytics"]

    bad = client.put(f"/api/admin/users/{plain_user['_id']}/role", json={"permissions": ["fly"]},
                     headers=superadmin_headers)
    assert bad.status_code == 400

    status = client.put(f"/api/admin/users/{plain_user['_id']}/status", json={"isActive": False},
                        headers=superadmin_headers)
    assert status.json()["message"] == "User deactivated successfully"
    assert mongo["user"].find_one({"_id": plain_user["_id"]})["is_active"] is False


def test_contact_export_is_decrypted_csv(client, admin_headers):
    client.post("/api/contact", json={
        "name": "Asha Rao", "email": "asha@studio.com", "message": "Kitchen remodel enquiry for spring.",
    })

    response = client.get("/api/admin/export/contacts", headers=admin_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "contacts.csv" in response.headers["content-disposition"]

    rows = list(csv.DictReader(io.StringIO(response.text)))
    assert len(rows) == 1
    assert rows[0]["name"] == "Asha Rao"
    assert rows[0]["email"] == "asha@studio.com"
    assert rows[0]["is_spam"] == "False"


def test_project_export_flattens_nested_fields(client, mongo, admin_headers):
    mongo["project"].insert_one({
        "title": "Lake House", "description": "Open plan", "category": "residential",
        "services": ["Space planning", "Lighting"], "client": {"name": "Mehta", "testimonial": "Lovely"},
        "images": [{"url": "https://img/1.jpg"}, {"url": "https://img/2.jpg"}], "sequence": 1,
    })
    response = client.get("/api/admin/export/projects", headers=admin_headers)
    rows = list(csv.DictReader(io.StringIO(response.text)))
    assert rows[0]["client_name"] == "Mehta"
    assert rows[0]["services"] == "Space planning, Lighting"
    assert rows[0]["images"] == "https://img/1.jpg | https://img/2.jpg"


def test_export_requires_permission(client):
    viewer = make_user("admin", permissions=["view_analytics"], username="viewer")
    assert client.get("/api/admin/export/projects", headers=headers_for(viewer)).status_code == 403


def test_services_json_crud(client, admin_headers):
    created = client.post("/api/admin/services", json={"title": "Kitchen design"}, headers=admin_headers).json()
    assert created == {"title": "Kitchen design", "id": 1}
    second = client.post("/api/admin/services", json={"title": "Lighting"}, headers=admin_headers).json()
    assert second["id"] == 2

    updated = client.put("/api/admin/services/1", json={"title": "Modular kitchens"}, headers=admin_headers)
    assert updated.json() == {"title": "Modular kitchens", "id": 1}
    assert client.put("/api/admin/services/99", json={}, headers=admin_headers).status_code == 404

    assert client.delete("/api/admin/services/2", headers=admin_headers).json() == {"success": True}
    assert client.get("/api/services").json() == [{"title": "Modular kitchens", "id": 1}]
    assert client.get("/api/admin/services/2", headers=admin_headers).status_code == 404


def test_slideshow_append_and_delete_by_index(client, admin_headers):
    client.post("/api/admin/slideshow", json={"image": "https://img/a.jpg"}, headers=admin_headers)
    client.post("/api/slideshow", json={"image": "https://img/b.jpg"}, headers=admin_headers)
    assert client.get("/api/slideshow").json() == ["https://img/a.jpg", "https://img/b.jpg"]

    assert client.post("/api/slideshow", json={}, headers=admin_headers).status_code == 400
    assert client.delete("/api/slideshow/5", headers=admin_headers).status_code == 404
    assert client.delete("/api/admin/slideshow/0", headers=admin_headers).status_code == 200
    assert client.get("/api/slideshow").json() == ["https://img/b.jpg"]


def test_slideshow_writes_require_admin(client, user_headers):
    assert client.post("/api/slideshow", json={"image": "x"}, headers=user_headers).status_code == 403


def test_dashboard_overview(client, admin_headers):
    client.post("/api/contact", json={"name": "A", "email": "bot@tempmail.com", "message": "Hello from the bots!"})
    data = client.get("/api/admin/dashboard", headers=admin_headers).json()["data"]
    assert data["overview"]["contacts"] == 1
    assert data["overview"]["spamCount"] == 1
    assert data["overview"]["spamPercentage"] == 100.0
    assert data["recentActivity"]["contacts"][0]["email"] == "bot@tempmail.com"


def test_upload_rejects_too_many_files(client, admin_headers, cloudinary_uploads):
    files = [("images", (f"{i}.jpg", b"img", "image/jpeg")) for i in range(21)]
    response = client.post("/api/admin/upload", files=files, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "You can upload up to 20 images at once."
    assert cloudinary_uploads == []


def test_upload_rejects_oversized_file(client, admin_headers, cloudinary_uploads, monkeypatch):
    monkeypatch.setattr(config, "MAX_FILE_SIZE", 1024 * 1024)
    files = [("images", ("big.jpg", b"x" * (1024 * 1024 + 1), "image/jpeg"))]
    response = client.post("/api/admin/upload", files=files, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "One or more images exceed the 1MB size limit."


def test_upload_sends_files_to_cloudinary(client, admin_headers, cloudinary_uploads):
    files = [("images", ("a.jpg", b"img-a", "image/jpeg")), ("images", ("b.png", b"img-b", "image/png"))]
    response = client.post("/api/admin/upload", files=files, headers=admin_headers)
    assert response.status_code == 200
    assert len(response.json()["urls"]) == 2
    assert [u["folder"] for u in cloudinary_uploads] == ["admin_uploads", "admin_uploads"]

    single = client.post("/api/admin/upload-cloudinary", files={"image": ("c.webp", b"img-c", "image/webp")},
                         headers=admin_headers)
    assert single.json()["url"].startswith("https://res.cloudinary.com/")


def test_upload_rejects_non_images(client, admin_headers, cloudinary_uploads):
    files = [("images", ("notes.pdf", b"%PDF", "application/pdf"))]
    response = client.post("/api/admin/upload", files=files, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Only image files are allowed!"


def test_activity_merges_contacts_and_projects(client, mongo, admin_headers):
    client.post("/api/contact", json={"name": "Asha", "email": "asha@studio.com", "message": "Kitchen remodel please."})
    created = client.post("/api/projects", data={"title": "Loft", "description": "Warehouse loft",
                                                 "category": "residential"}, headers=admin_headers)
    assert created.status_code == 201
    assert mongo["project"].find_one({})["created_at"] is not None
    client.post("/api/contact", json={"name": "Bot", "email": "bot@tempmail.com", "message": "Hello from the bots!"})

    response = client.get("/api/admin/activity", headers=admin_headers)
    assert response.status_code == 200
    events = response.json()["data"]
    assert sorted(e["type"] for e in events) == ["contact", "contact", "project"]
    assert all(e["timestamp"] for e in events)
    stamps = [e["timestamp"] for e in events]
    assert stamps == sorted(stamps, reverse=True)


def test_last_superadmin_cannot_be_demoted(client, mongo, superadmin, superadmin_headers):
    response = client.put(f"/api/admin/users/{superadmin['_id']}/role", json={"role": "admin"},
                          headers=superadmin_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Cannot demote or deactivate the last superadmin"
    assert mongo["user"].count_documents({"role": "superadmin"}) == 1


def test_last_active_superadmin_cannot_be_deactivated(client, mongo, superadmin, superadmin_headers):
    make_user("superadmin", username="retired", is_active=False)
    response = client.put(f"/api/admin/users/{superadmin['_id']}/status", json={"isActive": False},
                          headers=superadmin_headers)
    assert response.status_code == 400
    assert mongo["user"].find_one({"_id": superadmin["_id"]})["is_active"] is True


def test_superadmin_can_step_down_when_another_remains(client, mongo, superadmin, superadmin_headers):
    make_user("superadmin", username="co-owner")
    response = client.put(f"/api/admin/users/{superadmin['_id']}/role", json={"role": "admin"},
                          headers=superadmin_headers)
    assert response.status_code == 200
    assert mongo["user"].count_documents({"role": "superadmin"}) == 1
