import jwt

from push_registry.core.config import get_settings


class InvalidUserTokenError(Exception):
    pass


def user_id_from_token(token: str) -> str:
    """Return the ``sub`` claim of a user token signed by the identity provider."""
    settings = get_settings()
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.InvalidTokenError as exc:
        raise InvalidUserTokenError("Invalid token") from exc

    user_id = claims.get("sub")
    if not isinstance(user_id, str) or not user_id:
        raise InvalidUserTokenError("Invalid token payload")
    return user_id
