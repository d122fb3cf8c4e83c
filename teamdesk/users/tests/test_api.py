import pytest
from rest_framework import status
from rest_framework.test import APIClient

from tests.factories import create_user

pytestmark = pytest.mark.django_db


def test_requires_authentication():
    res = APIClient().get("/api/v1/users/me/")
    assert res.status_code == status.HTTP_401_UNAUTHORIZED


def test_me_returns_profile_and_role(api_client, user):
    res = api_client.get("/api/v1/users/me/")

    assert res.status_code == status.HTTP_200_OK
    body = res.json()
    assert body["username"] == "alice"
    assert body["display_name"] == "Alice Adams"
    assert body["role"] == "member"


def test_me_patch_updates_names_only(api_client, user):
    res = api_client.patch("/api/v1/users/me/", {"first_name": "Ally"}, format="json")
    assert res.status_code == status.HTTP_200_OK
    user.refresh_from_db()
    assert user.name == "Ally Adams"

    res = api_client.patch(
        "/api/v1/users/me/", {"email": "new@example.com"}, format="json"
    )
    assert res.status_code == status.HTTP_400_BAD_REQUEST
    user.refresh_from_db()
    assert user.email == "alice@example.com"


def test_search_matches_username_name_or_email(api_client, user, other_user):
    create_user("dave", is_active=False)

    res = api_client.get("/api/v1/users/?search=bro")
    assert [u["username"] for u in res.json()] == ["bob"]

    res = api_client.get("/api/v1/users/")
    assert [u["username"] for u in res.json()] == ["alice", "bob"]


def test_roles_follow_groups_and_staff():
    assert create_user("erin", groups=["Manager"]).role == "manager"
    assert create_user("frank", is_staff=True).role == "admin"
    assert create_user("gina").groups.filter(name="Member").exists()
