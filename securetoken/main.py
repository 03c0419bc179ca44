"""API endpoints exposing ID token verification."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Header, HTTPException, Request, status

from . import __version__
from .config import Settings
from .errors import AuthError, KeyFetchFailed
from .models import VerifiedResult
from .verifier import TokenVerifier

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# Build the verifier only once on app startup, so its key cache is shared
# See https://fastapi.tiangolo.com/advanced/events/
@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings()
    app.state.verifier = TokenVerifier(settings.to_config())
    mode = "emulator" if settings.emulator else "production"
    logger.info(f"Verifying {mode} ID tokens for project {settings.project_id}")
    yield


app = FastAPI(
    title="securetoken",
    description="Firebase ID token verification",
    version=__version__,
    lifespan=lifespan,
)


def _reject(error: AuthError):
    """Raise 401, or 502 when the issuer's keys are unavailable"""
    status_code = (
        status.HTTP_502_BAD_GATEWAY
        if isinstance(error, KeyFetchFailed)
        else status.HTTP_401_UNAUTHORIZED
    )
    headers = None
    if status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}

    raise HTTPException(
        status_code=status_code,
        detail={"code": error.error_code, "message": str(error)},
        headers=headers,
    ) from error


@app.get("/v1/me", response_model=VerifiedResult)
def me(request: Request, authorization: str | None = Header(default=None)):
    """Return the identity of the caller's verified ID token."""
    verifier: TokenVerifier = request.app.state.verifier

    try:
        result = verifier.verify_from_header(authorization)
    except KeyFetchFailed as e:
        logger.error(f"Token verification unavailable: {e}")
        _reject(e)
    except AuthError as e:
        logger.warning(f"Token verification failed: {e}")
        _reject(e)

    logger.info(f"Verified ID token for user {result.uid}")
    return result
