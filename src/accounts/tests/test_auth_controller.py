import typing as t
from datetime import timedelta

import orjson
import pytest
from django.conf import settings
from django.test.client import Client
from django.urls import reverse
from django.utils import timezone

from accounts.models import Role, User
from accounts.service import session_store

pytestmark = pytest.mark.django_db


def _login(client: Client, email: str, password: str = "strong-password-123!") -> t.Any:
    return client.post(
        reverse("api:login"),
        data=orjson.dumps({"email": email, "password": password}),
        content_type="application/json",
    )


class TestRegister:
    def test_register_returns_201_without_session(self, client: Client) -> None:
        payload = {"email": "fresh@example.com", "password": "a-strong-password", "name": "Fresh Face"}

        response = client.post(reverse("api:register"), data=payload, content_type="application/json")

        assert response.status_code == 201, response.content
        assert response.json()["requires_verification"] is True
        assert settings.SESSION_STORE_COOKIE_NAME not in response.cookies
        assert User.objects.filter(email="fresh@example.com", email_verified=False).exists()

    def test_short_password(self, client: Client) -> None:
        payload = {"email": "fresh@example.com", "password": "short"}

        response = client.post(reverse("api:register"), data=payload, content_type="application/json")

        assert response.status_code == 422

    def test_verify_email_starts_session(self, client: Client) -> None:
        client.post(
            reverse("api:register"),
            data={"email": "fresh@example.com", "password": "a-strong-password"},
            content_type="application/json",
        )
        code = User.objects.get(email="fresh@example.com").verification_code

        response = client.post(
            reverse("api:verify_email"),
            data={"email": "fresh@example.com", "code": code},
            content_type="application/json",
        )

        assert response.status_code == 200, response.content
        assert response.json()["tokens"]["access"]
        assert settings.SESSION_STORE_COOKIE_NAME in response.cookies


class TestLogin:
    def test_login_sets_http_only_session_cookie(self, client: Client, buyer: User) -> None:
        response = _login(client, buyer.email)

        assert response.status_code == 200, response.content
        data = response.json()
        assert data["user"]["email"] == buyer.email
        assert data["user"]["roles"] == [Role.BUYER]
        assert data["tokens"]["access"] and data["tokens"]["refresh"]
        cookie = response.cookies[settings.SESSION_STORE_COOKIE_NAME]
        assert cookie["httponly"] is True
        assert cookie["samesite"] == "Strict"
        assert session_store.get_session(cookie.value) is not None

    def test_bad_password(self, client: Client, buyer: User) -> None:
        response = _login(client, buyer.email, "nope")

        assert response.status_code == 401

    def test_unverified_email(self, client: Client, user_factory: t.Any) -> None:
        user = user_factory(Role.BUYER, email="pending@example.com", email_verified=False)

        response = _login(client, user.email)

        assert response.status_code == 403
        assert response.json()["requires_verification"] is True
        assert response.json()["email"] == user.email

    def test_locked_account(self, client: Client, buyer: User) -> None:
        buyer.locked_until = timezone.now() + timedelta(minutes=10)
        buyer.save()

        response = _login(client, buyer.email)

        assert response.status_code == 403
        assert "locked" in response.json()["detail"]


class TestSession:
    def test_session_endpoint(self, session_client: Client, buyer: User) -> None:
        response = session_client.get(reverse("api:session"))

        assert response.status_code == 200
        data = response.json()
        assert data["email"] == buyer.email
        assert data["active_role"] == Role.BUYER

    def test_session_endpoint_without_cookie(self, client: Client) -> None:
        response = client.get(reverse("api:session"))

        assert response.status_code == 401

    def test_suspended_user_session_is_rejected(self, session_client: Client, buyer: User) -> None:
        buyer.locked_until = timezone.now() + timedelta(days=365)
        buyer.save()

        response = session_client.get(reverse("api:session"))

        assert response.status_code == 401

    def test_switch_role_requires_held_role(self, session_client: Client) -> None:
        response = session_client.post(
            reverse("api:switch_role"), data={"role": "organizer"}, content_type="application/json"
        )

        assert response.status_code == 403

    def test_request_organizer_refreshes_session_roles(self, session_client: Client) -> None:
        response = session_client.post(
            reverse("api:request_organizer"), data={"business_name": "Ada Events"}, content_type="application/json"
        )
        assert response.status_code == 200, response.content
        assert response.json()["roles"] == [Role.BUYER, Role.ORGANIZER]

        response = session_client.post(
            reverse("api:switch_role"), data={"role": "ORGANIZER"}, content_type="application/json"
        )

        assert response.status_code == 200
        assert response.json()["active_role"] == Role.ORGANIZER

    def test_logout_deletes_session(self, session_client: Client, settings: t.Any) -> None:
        session_id = session_client.cookies[settings.SESSION_STORE_COOKIE_NAME].value

        response = session_client.post(reverse("api:logout"))

        assert response.status_code == 200
        assert session_store.get_session(session_id) is None


class TestTokens:
    def test_refresh(self, client: Client, buyer: User) -> None:
        refresh = _login(client, buyer.email).json()["tokens"]["refresh"]

        response = client.post(reverse("api:token_refresh"), data={"refresh": refresh}, content_type="application/json")

        assert response.status_code == 200
        assert response.json()["access"]

    def test_refresh_with_garbage(self, client: Client) -> None:
        response = client.post(reverse("api:token_refresh"), data={"refresh": "nope"}, content_type="application/json")

        assert response.status_code == 401

    def test_locked_user_bearer_is_rejected(self, buyer_client: Client, buyer: User) -> None:
        buyer.locked_until = timezone.now() + timedelta(days=365)
        buyer.save()

        response = buyer_client.get(reverse("api:me"))

        assert response.status_code == 401
