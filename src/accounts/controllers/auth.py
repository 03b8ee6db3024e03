"""This module contains the controllers for authentication and sessions."""

import typing as t

import structlog
from django.conf import settings
from django.http import HttpResponse
from django.utils.translation import gettext_lazy as _
from ninja.errors import HttpError
from ninja_extra import api_controller, route

from accounts import schema
from accounts.models import User
from accounts.service import account as account_service
from accounts.service import auth as auth_service
from accounts.service import session_store
from common.authentication import AUTH, SessionAuth
from common.controllers import UserAwareController
from common.schema import EmailSchema, ResponseMessage, ResponseOk
from common.throttling import AuthThrottle, UserRegistrationThrottle

logger = structlog.get_logger(__name__)


@api_controller("/auth", tags=["Auth"], throttle=AuthThrottle())
class AuthController(UserAwareController):
    def _login_response(self, user: User, status_code: int = 200) -> HttpResponse:
        session_id = auth_service.start_session(user, ip_address=self.client_ip(), user_agent=self.user_agent())
        body = schema.LoginResponseSchema(
            user=schema.UserSchema.from_orm(user),
            tokens=auth_service.get_token_pair_for_user(user),
        )
        response = self.create_response(body.model_dump(mode="json"), status_code=status_code)
        return auth_service.set_session_cookie(response, session_id)

    @route.post(
        "/register",
        response={201: schema.RegisterResponseSchema},
        url_name="register",
        throttle=UserRegistrationThrottle(),
    )
    def register(self, payload: schema.RegisterUserSchema) -> tuple[int, schema.RegisterResponseSchema]:
        """Create a buyer account and email a six digit verification code.

        No session is started; call POST /auth/verify-email with the code to log in.
        Returns 400 if the email or phone number is already registered.
        """
        user = account_service.register_user(payload)
        return 201, schema.RegisterResponseSchema(
            message=str(_("Account created. Please check your email for the verification code.")),
            email=user.email,
        )

    @route.post("/verify-email", response=schema.LoginResponseSchema, url_name="verify_email")
    def verify_email(self, payload: schema.VerifyEmailSchema) -> HttpResponse:
        """Verify the email with the emailed code and start a session.

        Sets the session cookie and returns the user with a JWT pair. Codes are valid for 15 minutes.
        """
        user = account_service.verify_email(payload.email, payload.code)
        return self._login_response(user)

    @route.post("/resend-verification", response=ResponseMessage, url_name="resend_verification")
    def resend_verification(self, payload: EmailSchema) -> ResponseMessage:
        """Send a new verification code. Limited to once per minute."""
        account_service.resend_verification(payload.email)
        return ResponseMessage(message=str(_("If the account exists, a new code has been sent.")))

    @route.post("/login", response=schema.LoginResponseSchema, url_name="login")
    def login(self, payload: schema.LoginSchema) -> HttpResponse:
        """Log in with email and password.

        On success sets an HttpOnly session cookie and also returns a JWT pair for clients that
        cannot use cookies. Returns 401 for bad credentials, 403 for locked accounts and 403 with
        `requires_verification` for unverified emails.
        """
        user = account_service.authenticate(payload.email, payload.password)
        return self._login_response(user)

    @route.post("/logout", response=ResponseOk, url_name="logout")
    def logout(self) -> HttpResponse:
        """Delete the current session and clear the cookie."""
        cookies = self.context.request.COOKIES  # type: ignore[union-attr]
        if session_id := cookies.get(settings.SESSION_STORE_COOKIE_NAME):
            session_store.delete_session(session_id)
        response = self.create_response(ResponseOk().model_dump(), status_code=200)
        return auth_service.clear_session_cookie(response)

    @route.get("/session", response=schema.SessionSchema, url_name="session", auth=SessionAuth())
    def session(self) -> schema.SessionSchema:
        """Return the identity and role context of the current session."""
        data = t.cast(session_store.SessionData, self.context.request.session_data)  # type: ignore[union-attr]
        return _session_schema(data)

    @route.post("/switch-role", response=schema.SessionSchema, url_name="switch_role", auth=SessionAuth())
    def switch_role(self, payload: schema.SwitchRoleSchema) -> schema.SessionSchema:
        """Switch the active role of the session between BUYER and ORGANIZER.

        Returns 403 if the session does not hold the requested role.
        """
        session_id = self.context.request.session_id  # type: ignore[union-attr]
        try:
            data = session_store.update_active_role(session_id, payload.role)
        except ValueError as e:
            raise HttpError(403, str(_("You do not have the {role} role.")).format(role=payload.role)) from e
        if data is None:
            raise HttpError(401, str(_("Session expired or invalid.")))
        return _session_schema(data)

    @route.post("/request-organizer", response=schema.RolesResponseSchema, url_name="request_organizer", auth=AUTH)
    def request_organizer(self, payload: schema.RequestOrganizerSchema) -> schema.RolesResponseSchema:
        """Become an organizer.

        Grants the ORGANIZER role and creates an organizer profile pending admin verification.
        The current session's roles are refreshed, which also shortens its idle timeout.
        """
        roles = account_service.request_organizer(self.user(), payload)
        if session_id := getattr(self.context.request, "session_id", None):
            session_store.update_roles(session_id, roles)
        return schema.RolesResponseSchema(message=str(_("Organizer role granted.")), roles=roles)

    @route.post("/refresh", response=schema.AccessTokenSchema, url_name="token_refresh")
    def refresh(self, payload: schema.RefreshSchema) -> schema.AccessTokenSchema:
        """Exchange a refresh token for a new access token."""
        return auth_service.refresh_access_token(payload.refresh)


def _session_schema(data: session_store.SessionData) -> schema.SessionSchema:
    return schema.SessionSchema(
        user_id=data.user_id,
        email=data.email,
        roles=data.roles,
        active_role=data.active_role,
        created_at=session_store.session_datetime(data.created_at),
        last_activity=session_store.session_datetime(data.last_activity),
    )
