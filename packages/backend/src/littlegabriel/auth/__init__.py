"""Authentication and authorization.

Learn: One signing service, several transports. A user proves who they are
once (email + password → Credential Validator), and gets a signed session
token from auth.jwt. That token can come back to us three ways:
1. Authorization: Bearer <token> header (API clients)
2. gabriel-session-token cookie (set by /auth/login)
3. gabriel-auth-token cookie (set by /auth/direct-login with its companions)

All three are verified the same way before any access decision is made.
The readable gabriel-auth-user / gabriel-site-auth cookies are UI hints only.
"""
