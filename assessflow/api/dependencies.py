from __future__ import annotations

import logging
from typing import Annotated, TypeVar

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from assessflow.models.outcome import WorkflowResult
from assessflow.models.principal import Principal
from assessflow.services import token_service

logger = logging.getLogger(__name__)

# Tokens come from the platform's auth service; tokenUrl only feeds the docs.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token")

REVIEWER_ROLES = {"instructor", "admin"}

T = TypeVar("T")


def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Extract and validate the JWT bearer token. Returns a Principal.

    Used as a FastAPI dependency on any protected endpoint.
    """
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    principal = Principal(
        user_id=claims["sub"],
        roles=frozenset(claims.get("roles", [])),
    )
    logger.debug(
        "Token validated for user=%s roles=%s",
        principal.user_id,
        principal.roles,
    )
    return principal


def require_role(role: str):
    """Dependency factory: demand a specific role.

    Usage: Depends(require_role("instructor"))
    Returns the Principal if the role is present, else 403.
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_role(role):
            logger.warning(
                "Access denied: user=%s missing role=%s",
                principal.user_id,
                role,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


def require_any_role(roles: set[str]):
    """Dependency factory: demand at least one of the given roles.

    Usage: Depends(require_any_role({"admin", "instructor"}))
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_any_role(roles):
            logger.warning(
                "Access denied: user=%s has none of roles=%s",
                principal.user_id,
                roles,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


require_reviewer = require_any_role(REVIEWER_ROLES)


def ensure_owner_or_reviewer(principal: Principal, owner_id: str) -> None:
    """403 unless the caller owns the record or may review it."""
    if principal.user_id == owner_id or principal.has_any_role(REVIEWER_ROLES):
        return
    logger.warning(
        "Access denied: user=%s is not the owner (%s)", principal.user_id, owner_id
    )
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Not your record",
    )


def ensure_owner(principal: Principal, owner_id: str) -> None:
    if principal.user_id != owner_id:
        logger.warning(
            "Access denied: user=%s acting on record owned by %s",
            principal.user_id,
            owner_id,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not your record",
        )


_OUTCOME_STATUS = {
    "not_available": status.HTTP_403_FORBIDDEN,
    "attempts_exhausted": status.HTTP_409_CONFLICT,
    "already_submitted": status.HTTP_409_CONFLICT,
    "invalid_transition": status.HTTP_409_CONFLICT,
    "feedback_required": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "grade_out_of_range": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "submission_empty": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "invalid_question": status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def raise_for_outcome(result: WorkflowResult[T]) -> T:
    """Translate a rejected WorkflowResult into an HTTPException.

    Informational outcomes (committed, already_finalized, noop, stale)
    return the entity; the caller renders it with a 200/201.
    """
    if result.ok:
        if result.entity is None:
            logger.error("Outcome %s carried no entity", result.outcome)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal error",
            )
        return result.entity
    raise HTTPException(
        status_code=_OUTCOME_STATUS.get(
            result.outcome, status.HTTP_422_UNPROCESSABLE_ENTITY
        ),
        detail={"outcome": result.outcome, "message": result.detail},
    )
