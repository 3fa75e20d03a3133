"""
JWT payload decoding for client-side expiry inspection.

Only the payload is decoded; the signature is never verified here because
the client does not hold the signing secret. The server remains the
authority on whether a token is valid.
"""
import base64
import json
import logging
from typing import Any, Dict, Optional

from .errors import MalformedToken

logger = logging.getLogger(__name__)


def parse_jwt_claims(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode the JWT payload without verification.

    Args:
        token: JWT string (header.payload.signature)

    Returns:
        Dictionary of claims, or None if the token cannot be decoded
    """
    if not token or token.count(".") != 2:
        return None

    try:
        _, payload, _ = token.split(".")
        # JWT uses base64url without padding
        padded = payload + "=" * (-len(payload) % 4)
        data = base64.urlsafe_b64decode(padded.encode())
        claims = json.loads(data.decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as e:
        logger.debug(f"Could not decode JWT payload: {e}")
        return None

    if not isinstance(claims, dict):
        return None
    return claims


def get_token_expiry(token: str) -> float:
    """
    Return the token's exp claim in epoch seconds.

    Raises:
        MalformedToken: if the payload or a numeric exp claim is missing
    """
    claims = parse_jwt_claims(token)
    if claims is None:
        raise MalformedToken("Access token payload could not be decoded")

    exp = claims.get("exp")
    # bool is an int subclass; reject it explicitly
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        raise MalformedToken("Access token has no numeric exp claim")
    return float(exp)


def get_token_subject(token: str) -> Optional[str]:
    """Extract the subject identifier (sub, or the API's userId claim)"""
    claims = parse_jwt_claims(token) or {}
    subject = claims.get("sub") or claims.get("userId")
    if subject is None:
        return None
    return str(subject)
