"""Identity-assertion verification.

Learn: The browser obtains a signed assertion from an identity provider
and posts it to /auth/verify. We never inspect the assertion ourselves;
a remote verifier checks it against our audience and answers with the
email it proves:

    POST <verifier_url>  {"assertion": ..., "audience": ...}
    → {"status": "okay", "email": "someone@example.com", ...}

Anything else is a VerificationError. The verifier is a FastAPI
dependency so tests can swap in a fake.
"""

from typing import Protocol

import httpx
import structlog

from eisenhower.config import settings

logger = structlog.get_logger()


class VerificationError(Exception):
    """The assertion could not be verified."""


class IdentityVerifier(Protocol):
    async def verify(self, assertion: str) -> str:
        """Return the verified email for `assertion` or raise VerificationError."""
        ...


class RemoteAssertionVerifier:
    """Verifies assertions with a remote verification service over HTTP."""

    def __init__(
        self,
        url: str,
        audience: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.audience = audience
        self.timeout = timeout
        self.transport = transport

    async def verify(self, assertion: str) -> str:
        if not assertion:
            raise VerificationError("No assertion supplied")

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport
            ) as client:
                resp = await client.post(
                    self.url,
                    data={"assertion": assertion, "audience": self.audience},
                )
        except httpx.HTTPError as e:
            logger.warning("auth.verifier_unreachable", url=self.url, error=str(e))
            raise VerificationError(f"Verifier unreachable: {e}")

        if resp.status_code != 200:
            raise VerificationError(f"Verifier answered HTTP {resp.status_code}")

        try:
            body = resp.json()
        except ValueError:
            raise VerificationError("Verifier returned a non-JSON body")

        email = body.get("email")
        if body.get("status") != "okay" or not isinstance(email, str) or "@" not in email:
            raise VerificationError(body.get("reason") or "Assertion rejected")

        return email.lower()


def get_verifier() -> IdentityVerifier:
    """FastAPI dependency — the configured verifier."""
    return RemoteAssertionVerifier(
        url=settings.verifier_url,
        audience=settings.verifier_audience,
        timeout=settings.verifier_timeout_seconds,
    )
