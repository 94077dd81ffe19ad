"""JWT Token Validation for bearer tokens from the identity provider"""
import jwt
from typing import Any, Dict, Optional

from ..config.settings import settings
from ..domain.errors import AuthenticationError
from ..domain.models import ActorContext
from .logger import get_logger

logger = get_logger(__name__)

DEV_ENVIRONMENTS = ("development", "dev", "local")


class JWTValidator:
    """Shared-secret JWT validator"""

    def __init__(
        self,
        secret: Optional[str] = None,
        algorithm: Optional[str] = None,
        audience: Optional[str] = None,
        verify_signature: Optional[bool] = None
    ):
        self._secret = secret if secret is not None else settings.jwt_secret
        self._algorithm = algorithm or settings.jwt_algorithm
        self._audience = audience if audience is not None else settings.jwt_audience
        if verify_signature is None:
            verify_signature = settings.environment.lower() not in DEV_ENVIRONMENTS
        self._verify_signature = verify_signature
        if not verify_signature:
            logger.warning(
                f"JWT signature verification is disabled (ENVIRONMENT={settings.environment}); "
                "tokens are accepted without a signature check"
            )

    def validate_token(self, token: str) -> Dict[str, Any]:
        """
        Validate a bearer token

        In DEVELOPMENT mode the signature is not verified, but expiry still is.

        Raises:
            AuthenticationError: If token is invalid
        """
        if not token:
            raise AuthenticationError("Token is missing")

        if token.startswith("Bearer "):
            token = token[7:]

        try:
            if not self._verify_signature:
                return jwt.decode(
                    token,
                    options={
                        "verify_signature": False,
                        "verify_exp": True,
                        "verify_aud": False,
                    }
                )

            if not self._secret:
                logger.error("JWT secret is not configured; refusing to verify tokens")
                raise AuthenticationError("Token verification is not configured")

            return jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=self._audience,
                options={
                    "verify_exp": True,
                    "verify_aud": self._audience is not None,
                }
            )

        except jwt.ExpiredSignatureError:
            logger.warning("Token expired")
            raise AuthenticationError("Token has expired")
        except jwt.InvalidAudienceError:
            logger.warning("Invalid token audience")
            raise AuthenticationError("Invalid token audience")
        except jwt.PyJWTError as e:
            logger.warning(f"JWT validation error: {e}")
            raise AuthenticationError("Invalid token")

    def get_actor_context(self, token: str) -> ActorContext:
        """Extract actor context from a validated token"""
        claims = self.validate_token(token)

        user_id = claims.get("sub") or claims.get("oid")
        if not user_id:
            logger.warning(f"No subject in token claims. Available claims: {list(claims.keys())}")
            raise AuthenticationError("Unable to determine user identity from token")

        email = claims.get("email") or claims.get("preferred_username")

        return ActorContext(
            user_id=str(user_id),
            email=email,
            display_name=claims.get("name", email)
        )


# Global validator instance
_jwt_validator: Optional[JWTValidator] = None


def get_jwt_validator() -> JWTValidator:
    """Get global JWT validator instance"""
    global _jwt_validator
    if _jwt_validator is None:
        _jwt_validator = JWTValidator()
    return _jwt_validator


def get_current_user(authorization: str) -> ActorContext:
    """Get current user from authorization header"""
    if not authorization:
        raise AuthenticationError("Authorization header is missing")

    return get_jwt_validator().get_actor_context(authorization)
