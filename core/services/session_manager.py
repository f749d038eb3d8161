# =============================================================================
# core/services/session_manager.py - Credentials and Session Tokens
# =============================================================================
# Registers users against Supabase Auth (mirroring a profile row into the
# users table), checks passwords, and issues/verifies/refreshes the signed
# session tokens the rest of the API trusts.
#
# Tokens are stateless HS256 JWTs: {sub, email, iat, exp}. Nothing about a
# session is stored server-side, so logout cannot revoke a token; it stays
# valid until it expires.
# =============================================================================

import logging
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

from app.exceptions import (
    InvalidCredentialsError,
    InvalidTokenError,
    NotFoundError,
    ProviderError,
    RateLimitedError,
    StoreError,
    UnauthenticatedError,
)
from core.models.user import (
    IssuedToken,
    LoginRequest,
    LoginResult,
    RegisterRequest,
    SessionClaims,
    UserProfile,
    UserRole,
)
from core.validation import ensure_valid, validate_login, validate_register
from lib.supabase_client import SupabaseAuth, SupabaseClient, SupabaseClientError
from lib.utils import normalize_email, normalize_uuid

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL = timedelta(hours=24)


class SessionManager:
    """
    Service for account registration and session tokens.

    Both store handles are injected so tests can pass in doubles.

    Example:
        manager = SessionManager(auth, db, secret_key="...")
        result = manager.login(LoginRequest(email="a@x.com", password="pw123"))
        claims = manager.verify_session(result.token.token)
    """

    def __init__(
        self,
        auth: SupabaseAuth,
        db: SupabaseClient,
        secret_key: str,
        token_ttl: timedelta = DEFAULT_TOKEN_TTL,
        algorithm: str = "HS256",
        replace_existing_accounts: bool = True,
    ):
        self.auth = auth
        self.db = db
        self.secret_key = secret_key
        self.token_ttl = token_ttl
        self.algorithm = algorithm
        self.replace_existing_accounts = replace_existing_accounts

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def register(self, request: RegisterRequest) -> None:
        """
        Create an account and its mirrored profile row.

        Two systems are written without a shared transaction, so this runs
        as a saga: if the profile insert fails, the new identity is deleted
        again before the original error is raised.

        When replace_existing_accounts is set, an existing account and
        profile with the same email are removed first, so registering twice
        replaces the first account instead of failing.

        Raises:
            ValidationFailedError: If email, password or username is blank
            RateLimitedError: If the identity provider answers 429
            ProviderError: For any other identity-provider failure
            StoreError: If the profile row can't be written
        """
        ensure_valid(validate_register(request))
        email = normalize_email(request.email)
        username = request.username.strip()

        try:
            if self.replace_existing_accounts:
                self._remove_existing_account(email)

            identity = self.auth.create_user(
                email,
                request.password,
                metadata={"username": username, "role": UserRole.USER.value},
            )
        except SupabaseClientError as e:
            if e.is_rate_limited:
                logger.warning(f"Registration rate limited for {email}")
                raise RateLimitedError() from e
            logger.error(f"Registration failed for {email}: {e}")
            raise ProviderError(e.message) from e

        try:
            self.db.insert_user_profile({
                "id": identity["id"],
                "email": email,
                "username": username,
                "role": UserRole.USER.value,
            })
        except SupabaseClientError as e:
            logger.error(f"Failed to create profile for user {identity['id']}: {e}")
            self._rollback_identity(identity["id"])
            raise StoreError("create user profile") from e

        logger.info(f"Registered user {identity['id']}")

    def _remove_existing_account(self, email: str) -> None:
        existing = self.auth.find_user_by_email(email)
        if existing:
            logger.info(f"Replacing existing account {existing['id']} for {email}")
            self.auth.delete_user(existing["id"])

        try:
            removed = self.db.delete_user_profiles_by_email(email)
        except SupabaseClientError as e:
            logger.error(f"Failed to clear old profile for {email}: {e}")
            raise StoreError("register user") from e
        if removed:
            logger.info(f"Removed {removed} stale profile row(s) for {email}")

    def _rollback_identity(self, user_id: str) -> None:
        try:
            self.auth.delete_user(user_id)
            logger.info(f"Rolled back identity {user_id}")
        except SupabaseClientError as e:
            logger.error(f"Rollback failed, identity {user_id} is orphaned: {e}")

    # -------------------------------------------------------------------------
    # Login / Logout
    # -------------------------------------------------------------------------

    def login(self, request: LoginRequest) -> LoginResult:
        """
        Check credentials and issue a session token.

        Raises:
            ValidationFailedError: If email or password is blank
            InvalidCredentialsError: On any provider failure or missing user
        """
        ensure_valid(validate_login(request))
        email = normalize_email(request.email)

        try:
            identity = self.auth.sign_in(email, request.password)
        except SupabaseClientError as e:
            logger.info(f"Login rejected for {email}: {e}")
            raise InvalidCredentialsError() from e

        if not identity:
            raise InvalidCredentialsError()

        issued = self._issue(identity["id"], identity.get("email") or email)
        logger.info(f"User {identity['id']} logged in")
        return LoginResult(token=issued, user_id=identity["id"], email=issued.claims.email)

    def logout(self, claims: SessionClaims) -> None:
        """
        End a session.

        There is no server-side session to drop: the client discards the
        token, which remains valid until claims.expires_at.
        """
        logger.info(f"User {claims.user_id} logged out")

    # -------------------------------------------------------------------------
    # Tokens
    # -------------------------------------------------------------------------

    def _issue(
        self,
        user_id: str,
        email: str | None,
        expire_after: datetime | None = None,
    ) -> IssuedToken:
        issued_at = datetime.now(timezone.utc).replace(microsecond=0)
        expires_at = issued_at + self.token_ttl
        # exp has one-second resolution; keep refreshed tokens strictly later
        if expire_after is not None and expires_at <= expire_after:
            expires_at = expire_after + timedelta(seconds=1)

        payload = {
            "sub": normalize_uuid(user_id),
            "email": email,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

        return IssuedToken(
            token=token,
            expires_at=expires_at,
            claims=SessionClaims(
                user_id=payload["sub"],
                email=email,
                issued_at=issued_at,
                expires_at=expires_at,
            ),
        )

    def verify_session(self, token: str | None) -> SessionClaims:
        """
        Validate a token's signature and expiry.

        Raises:
            UnauthenticatedError: If no token was supplied
            InvalidTokenError: If the token is malformed, forged or expired
        """
        if not token:
            raise UnauthenticatedError()

        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            logger.info("Session token has expired")
            raise InvalidTokenError("Token has expired")
        except JWTError as e:
            logger.warning(f"Session token validation failed: {e}")
            raise InvalidTokenError()

        user_id = payload.get("sub")
        issued_at = payload.get("iat")
        expires_at = payload.get("exp")
        if not user_id or issued_at is None or expires_at is None:
            logger.warning("Session token missing required claims")
            raise InvalidTokenError("Invalid token: missing claims")

        return SessionClaims(
            user_id=user_id,
            email=payload.get("email"),
            issued_at=datetime.fromtimestamp(issued_at, tz=timezone.utc),
            expires_at=datetime.fromtimestamp(expires_at, tz=timezone.utc),
        )

    def refresh_session(self, token: str | None) -> IssuedToken:
        """
        Re-sign a valid token's claims with a fresh expiry.

        Credentials are not re-checked. The new expiry is always strictly
        later than the old one.

        Raises:
            UnauthenticatedError: If no token was supplied
            InvalidTokenError: If the current token doesn't verify
        """
        claims = self.verify_session(token)
        issued = self._issue(claims.user_id, claims.email, expire_after=claims.expires_at)
        logger.debug(f"Refreshed session for user {claims.user_id}")
        return issued

    # -------------------------------------------------------------------------
    # Profile
    # -------------------------------------------------------------------------

    def get_profile(self, user_id: str) -> UserProfile:
        """
        Fetch the mirrored profile of a user.

        Raises:
            NotFoundError: If the user has no profile row
            StoreError: If the query fails
        """
        try:
            row = self.db.fetch_user_profile(user_id)
        except SupabaseClientError as e:
            logger.error(f"Failed to fetch profile for {user_id}: {e}")
            raise StoreError("fetch profile") from e

        if not row:
            raise NotFoundError("Profile", str(user_id))
        return UserProfile(**row)
