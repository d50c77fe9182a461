from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, Form
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse, Response

from application.policy import LOGIN_BY_EMAIL
from application.services import (
    STORAGE_UNAVAILABLE_MESSAGE,
    CredentialService,
    LoginOutcome,
    RegistrationOutcome,
)
from domain.errors import EMPTY_PASSWORD, PASSWORD_MISMATCH
from domain.models import LoginRequest, RegistrationRequest

REGISTERED_MESSAGE = "User registered successfully!"
REGISTER_PAGE = "/register.html"
HOME_PAGE = "/home.html"
RETRY_AFTER_SECONDS = "5"

# Input errors that are answered with a bare message rather than an error list.
_PLAIN_TEXT_ERRORS = (EMPTY_PASSWORD, PASSWORD_MISMATCH)


def _service_unavailable() -> Response:
    return PlainTextResponse(
        STORAGE_UNAVAILABLE_MESSAGE,
        status_code=503,
        headers={"Retry-After": RETRY_AFTER_SECONDS},
    )


def create_app(service: CredentialService) -> FastAPI:
    """
    Configure and return the HTTP front end for `service`.

    `/register.html` and `/home.html` are served by the front end, not by
    this app; the redirects here only point at them.

    Handlers are plain (sync) functions: FastAPI runs them in its worker
    threadpool, so password hashing never blocks the event loop and
    concurrent requests hash in parallel.
    """

    app = FastAPI(title="Account credential service")

    @app.get("/", include_in_schema=False)
    def index():
        return RedirectResponse(REGISTER_PAGE, status_code=302)

    @app.post("/account/register")
    def register(
        username: Optional[str] = Form(None, alias="UserName"),
        email: Optional[str] = Form(None, alias="Email"),
        password: Optional[str] = Form(None, alias="Password"),
        confirm_password: Optional[str] = Form(None, alias="ConfirmPassword"),
    ):
        result = service.register(
            RegistrationRequest(
                username=username or "",
                email=email or "",
                password=password or "",
                confirm_password=confirm_password or "",
            )
        )

        if result.outcome is RegistrationOutcome.REGISTERED:
            return PlainTextResponse(REGISTERED_MESSAGE)

        if result.outcome is RegistrationOutcome.STORAGE_UNAVAILABLE:
            return _service_unavailable()

        if len(result.errors) == 1 and result.errors[0] in _PLAIN_TEXT_ERRORS:
            return PlainTextResponse(result.errors[0].description, status_code=400)

        return JSONResponse([e.to_dict() for e in result.errors], status_code=400)

    @app.post("/account/login")
    def login(
        email: Optional[str] = Form(None, alias="Email"),
        username: Optional[str] = Form(None, alias="UserName"),
        password: Optional[str] = Form(None, alias="Password"),
    ):
        if service.policy.login_identifier == LOGIN_BY_EMAIL:
            identifier = email
        else:
            identifier = username
        result = service.login(LoginRequest(identifier=identifier or "", password=password or ""))

        if result.outcome is LoginOutcome.AUTHENTICATED:
            # No session is issued here; the redirect only reports success.
            return RedirectResponse(HOME_PAGE, status_code=302)

        if result.outcome is LoginOutcome.STORAGE_UNAVAILABLE:
            return _service_unavailable()

        return PlainTextResponse(result.error_message, status_code=400)

    return app
