import pytest

from backend.database.models import Announcement, Profile


@pytest.fixture
def as_admin(client, admin, login_as):
    login_as(admin.id)
    return client


class TestAccess:
    def test_regular_user_is_forbidden(self, client, user):
        assert client.get("/admin/users").status_code == 403

    def test_admin_lists_users(self, as_admin, user):
        data = as_admin.get("/admin/users").json()
        assert data["count"] == 2


class TestUserManagement:
    def test_block_user(self, as_admin, db_session, user):
        response = as_admin.post("/admin/users/user-1/status", json={"status": "BLOCKED"})

        assert response.status_code == 200
        db_session.expire_all()
        assert db_session.get(Profile, "user-1").status == "BLOCKED"

    def test_plan_override_applies_limits(self, as_admin, user):
        response = as_admin.post("/admin/users/user-1/plan", json={"plan": "MENSAL"})

        data = response.json()
        assert data["plan"] == "MENSAL"
        assert data["job_limit"] == 5
        assert data["resume_limit"] == 150

    def test_unknown_plan(self, as_admin, user):
        assert as_admin.post("/admin/users/user-1/plan", json={"plan": "VIP"}).status_code == 422

    def test_unknown_user(self, as_admin):
        assert as_admin.post("/admin/users/ninguem/plan", json={"plan": "MENSAL"}).status_code == 404


class TestAnnouncements:
    def test_create_and_delete(self, as_admin, db_session, storage):
        response = as_admin.post(
            "/admin/announcements",
            data={"title": "Promoção anual", "target_plans": "FREE, MENSAL"},
            files={"image": ("banner.png", b"\x89PNG", "image/png")},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["target_plans"] == ["FREE", "MENSAL"]
        assert data["image_url"].startswith("https://projeto-teste.supabase.co/storage/v1/object/public/marketing/")
        assert len(storage.uploads) == 1

        assert as_admin.delete(f"/admin/announcements/{data['id']}").status_code == 200
        assert storage.removed == storage.uploads
        assert db_session.query(Announcement).count() == 0

    def test_announcements_filtered_by_plan(self, client, db_session, user):
        db_session.add_all([
            Announcement(title="Para FREE", image_path="a.png", target_plans=["FREE"]),
            Announcement(title="Para ANUAL", image_path="b.png", target_plans=["ANUAL"]),
            Announcement(title="Inativo", image_path="c.png", target_plans=["FREE"], is_active=False),
        ])
        db_session.commit()

        items = client.get("/announcements").json()["items"]

        assert [i["title"] for i in items] == ["Para FREE"]


def test_finance(as_admin, db_session, user):
    db_session.add(Profile(id="u2", email="u2@x.com", plan="MENSAL", job_limit=5, resume_limit=150))
    db_session.commit()

    data = as_admin.get("/admin/finance").json()

    assert data["plans"]["MENSAL"]["count"] == 1
    assert data["plans"]["FREE"]["count"] == 1
    assert data["monthly_revenue"] == 329.90
    assert data["paying_users"] == 1
