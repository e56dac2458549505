"""Auth API — assertion login, logout, whoami, bearer tokens.

Learn: Routes for establishing an identity:
- POST /auth/verify → identity assertion → verified email in the cookie session
- POST /auth/logout → forget the cookie session
- GET  /auth/whoami → the current account, or {} when there is none
- POST /auth/token  → mint a bearer token for API clients

The verify route only proves an email. Whether an account exists for it
is decided per request by the session resolver, so a new visitor can
verify first and create their account afterwards.
"""

from fastapi import APIRouter, Depends, Request

import structlog

from eisenhower.auth.dependencies import get_current_user, get_session_context
from eisenhower.auth.jwt import create_access_token, token_expiry
from eisenhower.auth.session import SESSION_EMAIL_KEY, SessionContext
from eisenhower.auth.verifier import IdentityVerifier, VerificationError, get_verifier
from eisenhower.errors import Unauthorized
from eisenhower.schemas.auth import AccessToken, AssertionLogin, VerifyResponse
from eisenhower.schemas.user import UserRead

logger = structlog.get_logger()

router = APIRouter(prefix="/auth")


# ─── Assertion login ─────────────────────────────────────


@router.post("/verify", response_model=VerifyResponse)
async def verify(
    body: AssertionLogin,
    request: Request,
    verifier: IdentityVerifier = Depends(get_verifier),
):
    """Verify an identity assertion and remember the email it proves."""
    try:
        email = await verifier.verify(body.assertion)
    except VerificationError as e:
        logger.info("auth.assertion_rejected", error=str(e))
        request.session.clear()
        raise Unauthorized(f"Failed to verify assertion: {e}")

    request.session[SESSION_EMAIL_KEY] = email
    logger.info("auth.assertion_verified", email=email)
    return VerifyResponse(status="okay", email=email)


@router.post("/logout")
async def logout(request: Request):
    request.session.clear()
    return {"status": "okay"}


# ─── Current identity ────────────────────────────────────


@router.get("/whoami")
async def whoami(ctx: SessionContext = Depends(get_session_context)):
    """The signed-in account, or {} for anonymous / not-yet-registered."""
    if ctx.user is None:
        return {}
    return UserRead.model_validate(ctx.user).model_dump(mode="json", by_alias=True)


@router.post("/token", response_model=AccessToken)
async def issue_token(ctx: SessionContext = Depends(get_current_user)):
    """Mint a bearer token for the signed-in account."""
    token = create_access_token(ctx.user.email)
    logger.info("auth.token_issued", user_id=ctx.user_id)
    return AccessToken(access_token=token, expires_at=token_expiry(token))
