"""
This module, part of the CareerGap project, is the web application.

It wires the collaborators of the app together and serves the views:

1.  **Configuration Loading**: Loads and validates settings from a YAML file
    using Pydantic models.
2.  **Analysis Requester**: Generates a career analysis for a submitted
    profile through the configured LLM.
3.  **Report Store**: Persists each successful analysis once and reads the
    user's reports back for the dashboard and detail views.
4.  **Session**: Each request gets its own `SessionContext`, seeded from the
    client's signed session cookie. Sign-in and sign-out go through an auth
    gateway bound to that context, and every change is written back to the
    cookie. Pages that need a user redirect to the sign-in page when there
    is none.

Execution:
    To serve the app with the default configuration:
    $ python -m src.career_app.main

    To serve on another port without opening a browser:
    $ python -m src.career_app.main --port 8080 --no-browser
"""

# =============================================================================
# HEADER (Imports, Constants, Logger)
# =============================================================================
import argparse
import logging
import os
import secrets
import webbrowser
from dataclasses import asdict
from typing import Callable, Dict, List, Optional

import uvicorn
import yaml
from fastapi import Depends, FastAPI, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from pydantic import BaseModel, Field, ValidationError
from starlette.middleware.sessions import SessionMiddleware

from .. import constants
from ..career_analysis.requester import (
    AnalysisGenerationError,
    CareerAnalysisRequester,
    LLMConfig,
)
from ..report_store.store import (
    ReportNotFoundError,
    ReportStore,
    ReportStoreConfig,
    ReportStoreError,
    build_report_store,
)
from .forms import ProfileFormError, parse_profile_form
from .rendering import (
    render_dashboard_page,
    render_form_page,
    render_login_page,
    render_report_page,
)
from .session import (
    AuthGateway,
    FirebaseAuthGateway,
    LocalAuthGateway,
    SessionContext,
    User,
)

# --- Logger ---
logger = logging.getLogger(__name__)
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
# Silence noisy third-party loggers to keep the output clean.
logging.getLogger("absl").setLevel(logging.ERROR)
logging.getLogger("google.api_core").setLevel(logging.ERROR)
logging.getLogger("httpx").setLevel(logging.WARNING)

# --- Application Configuration ---
DEFAULT_CONFIG_PATH = os.path.join(
    constants.PROJECT_ROOT, constants.CONFIG_DIR, constants.CAREER_GAP_CONFIG_FILENAME
)
SESSION_SECRET_ENV = "CAREERGAP_SESSION_SECRET"
SESSION_USER_KEY = "user"
LOOPBACK_HOSTS = ("localhost", "127.0.0.1", "::1")

GENERATION_FAILED_PAGE_MESSAGE = "Failed to generate analysis. Please try again."
LOAD_FAILED_PAGE_MESSAGE = "Failed to load reports."

AuthFactory = Callable[[SessionContext], AuthGateway]


# =============================================================================
# CONFIGURATION MODELS (Pydantic)
# =============================================================================
class ServerConfig(BaseModel):
    """Where the web server listens and how it signs session cookies."""

    host: str = "localhost"
    port: int = Field(default=5001, description="Port for the FastAPI server.")
    session_secret: Optional[str] = Field(
        default=None,
        description=(
            f"Key signing the session cookie. {SESSION_SECRET_ENV} overrides it; "
            "a random key is generated when both are unset."
        ),
    )


class AuthConfig(BaseModel):
    """Selects the identity gateway."""

    backend: str = Field(
        default="local",
        description="'firebase' to verify Firebase ID tokens, 'local' for development only.",
    )
    firebase_project_id: Optional[str] = Field(
        default=None, description="Firebase project id, the expected token audience."
    )


class CareerGapConfig(BaseModel):
    """The main configuration model that aggregates all other settings."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    report_store: ReportStoreConfig = Field(default_factory=ReportStoreConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)


def load_app_config(config_path: str = DEFAULT_CONFIG_PATH) -> CareerGapConfig:
    """
    Loads and validates the application configuration from a YAML file.

    Args:
        config_path: The path to the YAML configuration file.

    Returns:
        A validated CareerGapConfig object.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If the config file is empty.
        yaml.YAMLError: If the file is not valid YAML.
        ValidationError: If the file content does not match the Pydantic model.
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f)
            if not config_data:
                raise ValueError("Configuration file is empty.")
        return CareerGapConfig(**config_data)
    except FileNotFoundError:
        logger.error(f"Configuration file not found at {config_path}.")
        raise
    except yaml.YAMLError as e:
        logger.error(f"Error parsing configuration YAML file '{config_path}': {e}")
        raise
    except ValidationError as e:
        logger.error(f"Error validating configuration from '{config_path}':\n{e}")
        raise


def build_auth_factory(config: AuthConfig) -> AuthFactory:
    """
    Returns a function binding the configured auth gateway to a session.

    Raises:
        ValueError: If the backend is unknown or Firebase has no project id.
    """
    backend = config.backend.lower()
    if backend == "firebase":
        if not config.firebase_project_id:
            raise ValueError("auth.firebase_project_id is required for the firebase backend.")
        project_id = config.firebase_project_id
        logger.info(f"Using Firebase ID token sign-in for project '{project_id}'")
        return lambda session: FirebaseAuthGateway(session, project_id)
    elif backend == "local":
        logger.warning("Using trusting local sign-in. Do not expose this server.")
        return LocalAuthGateway
    else:
        raise ValueError(f"Invalid auth backend in config: '{config.backend}'")


def resolve_session_secret(config: ServerConfig) -> str:
    secret = os.getenv(SESSION_SECRET_ENV) or config.session_secret
    if not secret:
        logger.warning(
            f"{SESSION_SECRET_ENV} is not set. Sessions will not survive a restart."
        )
        secret = secrets.token_urlsafe(32)
    return secret


# =============================================================================
# WEB SERVER LOGIC (FastAPI)
# =============================================================================
def _session_from_cookie(request: Request) -> SessionContext:
    """Builds the request's session context and mirrors it into the cookie."""
    stored = request.session.get(SESSION_USER_KEY)
    session = SessionContext(User(**stored) if stored else None)

    def _write_back(user: Optional[User]) -> None:
        if user is None:
            request.session.pop(SESSION_USER_KEY, None)
        else:
            request.session[SESSION_USER_KEY] = asdict(user)

    session.subscribe(_write_back)
    return session


def create_fastapi_app(state: Dict) -> FastAPI:
    """
    Creates and configures the FastAPI application, injecting state.

    Args:
        state: A dictionary holding the application's collaborators under the
            keys "requester", "store" and "auth_factory" (a callable binding
            an auth gateway to a session context). "session_secret" signs
            the session cookie; a random one is used when it is missing.

    Returns:
        A configured FastAPI application instance.
    """
    requester: CareerAnalysisRequester = state["requester"]
    store: ReportStore = state["store"]
    auth_factory: AuthFactory = state["auth_factory"]

    app = FastAPI()
    app.add_middleware(
        SessionMiddleware,
        secret_key=state.get("session_secret") or secrets.token_urlsafe(32),
        same_site="lax",
    )

    def _login_redirect() -> RedirectResponse:
        return RedirectResponse("/login", status_code=303)

    def _login_page(session: SessionContext, error: Optional[str] = None, status_code: int = 200):
        gateway = auth_factory(session)
        return HTMLResponse(
            render_login_page(error=error, id_token=gateway.uses_id_token),
            status_code=status_code,
        )

    @app.get("/", response_class=HTMLResponse)
    async def serve_form_page(
        notice: Optional[str] = None,
        session: SessionContext = Depends(_session_from_cookie),
    ):
        """Serves the profile intake form."""
        return HTMLResponse(render_form_page(session.current_user, notice=notice))

    @app.post("/", response_class=HTMLResponse)
    def submit_profile(
        target_job: str = Form(""),
        location: List[str] = Form([]),
        education: str = Form(""),
        skills: str = Form(""),
        experience: str = Form(""),
        session: SessionContext = Depends(_session_from_cookie),
    ):
        """Validates the profile, generates the analysis and persists the report."""
        user = session.current_user
        if user is None:
            return _login_redirect()

        values = {
            "target_job": target_job,
            "location": location,
            "education": education,
            "skills": skills,
            "experience": experience,
        }
        try:
            profile = parse_profile_form(**values)
        except ProfileFormError as e:
            return HTMLResponse(
                render_form_page(user, error=str(e), values=values), status_code=422
            )

        try:
            analysis = requester.generate_analysis(profile)
            report_id = store.create(user.uid, profile, analysis)
        except (AnalysisGenerationError, ReportStoreError) as e:
            logger.error(f"Career analysis for user '{user.uid}' failed: {e}")
            return HTMLResponse(
                render_form_page(
                    user, error=GENERATION_FAILED_PAGE_MESSAGE, values=values
                ),
                status_code=502,
            )
        return RedirectResponse(f"/result/{report_id}", status_code=303)

    @app.get("/dashboard", response_class=HTMLResponse)
    def serve_dashboard(session: SessionContext = Depends(_session_from_cookie)):
        """Lists the signed-in user's reports, newest first."""
        user = session.current_user
        if user is None:
            return _login_redirect()
        try:
            reports = store.list_reports(user.uid)
        except ReportStoreError as e:
            logger.error(f"Error fetching reports for user '{user.uid}': {e}")
            return HTMLResponse(
                render_dashboard_page(user, [], error=LOAD_FAILED_PAGE_MESSAGE),
                status_code=502,
            )
        return HTMLResponse(render_dashboard_page(user, reports))

    @app.get("/result/{report_id}", response_class=HTMLResponse)
    def serve_report(
        report_id: str, session: SessionContext = Depends(_session_from_cookie)
    ):
        """Serves one report; missing and foreign reports look the same."""
        user = session.current_user
        if user is None:
            return _login_redirect()
        try:
            report = store.get_for_owner(report_id, user.uid)
        except ReportNotFoundError:
            return RedirectResponse("/?notice=not-found", status_code=303)
        except ReportStoreError as e:
            logger.error(f"Error fetching report '{report_id}': {e}")
            return RedirectResponse("/?notice=load-failed", status_code=303)
        return HTMLResponse(render_report_page(user, report))

    @app.get("/login", response_class=HTMLResponse)
    async def serve_login_page(session: SessionContext = Depends(_session_from_cookie)):
        return _login_page(session)

    @app.post("/login")
    def sign_in(
        uid: str = Form(""),
        email: str = Form(""),
        id_token: str = Form(""),
        session: SessionContext = Depends(_session_from_cookie),
    ):
        # Synchronous: token verification may fetch signing keys.
        fields = {"uid": uid, "email": email, "id_token": id_token}
        try:
            auth_factory(session).sign_in_from_form(fields)
        except ValueError as e:
            return _login_page(session, error=str(e), status_code=422)
        return RedirectResponse("/", status_code=303)

    @app.post("/logout")
    async def sign_out(session: SessionContext = Depends(_session_from_cookie)):
        auth_factory(session).sign_out()
        return _login_redirect()

    @app.get("/favicon.ico", include_in_schema=False)
    async def favicon():
        """Returns an empty response to prevent 404 errors for the favicon."""
        return Response(status_code=204)

    return app


# =============================================================================
# SCRIPT EXECUTION (The if __name__ == "__main__" block)
# =============================================================================
def main():
    """Parses command-line arguments, builds the collaborators and serves the app."""
    parser = argparse.ArgumentParser(
        description="Serve the CareerGap career analysis web application."
    )
    parser.add_argument(
        "--config",
        type=str,
        default=DEFAULT_CONFIG_PATH,
        help="Path to the YAML configuration file.",
    )
    parser.add_argument("--port", type=int, help="Port for the FastAPI server.")
    parser.add_argument("--host", type=str, help="Host for the FastAPI server.")
    parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Do not open the app in a web browser.",
    )
    args = parser.parse_args()

    try:
        config = load_app_config(args.config)
        requester = CareerAnalysisRequester(config.llm)
        store = build_report_store(config.report_store)
        auth_factory = build_auth_factory(config.auth)
    # ValidationError is caught explicitly even though it subclasses ValueError.
    except (ValidationError, ValueError, FileNotFoundError, yaml.YAMLError) as e:
        logger.critical(f"Initialization Error: {e}")
        return  # Exit gracefully

    host = args.host or config.server.host
    port = args.port or config.server.port
    if config.auth.backend.lower() == "local" and host not in LOOPBACK_HOSTS:
        logger.critical(
            f"The local auth backend only serves loopback hosts, not '{host}'. "
            "Configure the firebase auth backend to serve other hosts."
        )
        return

    app_state = {
        "config": config,
        "requester": requester,
        "store": store,
        "auth_factory": auth_factory,
        "session_secret": resolve_session_secret(config.server),
    }
    app = create_fastapi_app(app_state)

    server_url = f"http://{host}:{port}/"
    logger.info(f"FastAPI server starting. Open the app at: {server_url}")
    if not args.no_browser:
        try:
            webbrowser.open_new_tab(server_url)
        except Exception as e:
            logger.warning(f"Could not open web browser: {e}")
    logger.info("Press CTRL+C to stop.")
    uvicorn.run(app, host=host, port=port, log_level="info")


if __name__ == "__main__":
    main()
