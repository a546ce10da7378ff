"""Display-only reading of the forwarded bearer token.

The signature is NOT verified here. Claims decoded this way only decide
whether the review console is offered to the caller; the facilities backend
verifies the token on every call and its 401/403 answers are what count.
"""

from typing import Any

from jose import JWTError, jwt


def read_unverified_claims(token: str) -> dict[str, Any]:
    """Decode JWT claims without verifying the signature.

    Returns an empty dict for anything that is not a readable JWT.
    """
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return {}
    return claims if isinstance(claims, dict) else {}


def claimed_roles(claims: dict[str, Any]) -> set[str]:
    """Roles named in the ``role`` or ``roles`` claims, lower-cased."""
    roles: set[str] = set()
    for key in ("role", "roles"):
        value = claims.get(key)
        if isinstance(value, str):
            roles.update(part.strip().lower() for part in value.split(",") if part.strip())
        elif isinstance(value, list):
            roles.update(str(part).strip().lower() for part in value if str(part).strip())
    return roles


def has_role(claims: dict[str, Any], role: str) -> bool:
    """Whether the claims name the given role."""
    return role.lower() in claimed_roles(claims)
