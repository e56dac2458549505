"""Identity and access control.

Learn: Two ways to prove identity, both ending in a verified email:
1. Browsers → identity assertion → /auth/verify → email in cookie session
2. API clients → bearer token (JWT whose issuer claim is the email)

The email resolves to a SessionContext per request; guards then decide
what that context may touch.
"""
