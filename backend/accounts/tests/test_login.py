from io import StringIO

import pytest
from django.contrib.auth import get_user_model
from django.core.management import call_command
from rest_framework.test import APIClient

pytestmark = pytest.mark.django_db


@pytest.fixture
def manager():
    return get_user_model().objects.create_user(username="mgr", password="secret", role="sales_manager")


class TestLogin:
    """Test the token login endpoint"""

    def test_success_returns_token_and_role(self, manager):
        resp = APIClient().post("/api/auth/login/", {"username": "mgr", "password": "secret"}, format="json")
        assert resp.status_code == 200
        body = resp.json()
        assert body["role"] == "sales_manager"
        assert body["can_approve_quotes"] is True
        assert body["id"] == str(manager.pk)
        assert body["token"]

    def test_token_authenticates(self, manager):
        token = APIClient().post("/api/auth/login/", {"username": "mgr", "password": "secret"},
                                 format="json").json()["token"]
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f"Token {token}")
        resp = client.get("/api/auth/me/")
        assert resp.status_code == 200
        assert resp.json()["username"] == "mgr"
        assert "token" not in resp.json()

    def test_bad_credentials(self, manager, caplog):
        resp = APIClient().post("/api/auth/login/", {"username": "mgr", "password": "nope"}, format="json")
        assert resp.status_code == 401
        assert resp.json() == {"detail": "Invalid credentials"}
        assert "Failed login for mgr" in caplog.text

    def test_missing_fields(self):
        resp = APIClient().post("/api/auth/login/", {"username": "mgr"}, format="json")
        assert resp.status_code == 400

    def test_me_requires_auth(self):
        assert APIClient().get("/api/auth/me/").status_code == 401


class TestRoles:
    """Test role-derived capabilities"""

    @pytest.mark.parametrize("role,approve,view_all,edit_any", [
        ("sales_rep", False, False, False),
        ("key_account", False, True, False),
        ("sales_manager", True, True, False),
        ("system_admin", True, True, True),
    ])
    def test_capabilities(self, role, approve, view_all, edit_any):
        user = get_user_model()(username=role, role=role)
        assert user.can_approve_quotes is approve
        assert user.can_view_all_quotes is view_all
        assert user.can_edit_any_quote is edit_any


class TestCreateTestUsers:
    """Test the create_test_users command"""

    def test_one_user_per_role(self):
        out = StringIO()
        call_command("create_test_users", "--password", "pw", stdout=out)
        call_command("create_test_users", stdout=out)

        User = get_user_model()
        assert User.objects.count() == len(User.ROLE_CHOICES)
        admin = User.objects.get(username="system_admin_user")
        assert admin.is_staff and admin.check_password("pw")
        assert "already exists" in out.getvalue()
