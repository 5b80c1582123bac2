"""FastAPI dependencies: shared services, caller identity, role guards, error mapping."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from fastapi import Depends, Header, HTTPException, Request, status

from .auth import is_active, is_admin, is_superadmin, parse_bearer, resolve_session
from .models import InvalidRequest
from .services import Services

logger = logging.getLogger(__name__)


def get_services(request: Request) -> Services:
    return request.app.state.services


def current_user(
    authorization: Optional[str] = Header(default=None),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    try:
        token = parse_bearer(authorization)
        user = resolve_session(
            services.db, token, max_age_days=services.settings.session_ttl_days
        )
    except (PermissionError, LookupError, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
    if not is_active(user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is inactive.")
    return user


def require_admin(user: Dict[str, Any] = Depends(current_user)) -> Dict[str, Any]:
    if not is_admin(user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Admin permission required."
        )
    return user


def require_superadmin(user: Dict[str, Any] = Depends(current_user)) -> Dict[str, Any]:
    if not is_superadmin(user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Superadmin permission required.",
        )
    return user


@contextmanager
def http_errors(action: str) -> Iterator[None]:
    """
    Translate domain exceptions raised inside the block into HTTP responses.

    InvalidRequest -> 400, PermissionError -> 403, LookupError -> 404; anything
    else (library ValueErrors included) is logged and reported as a generic 500.
    """
    try:
        yield
    except HTTPException:
        raise
    except InvalidRequest as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except PermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except (KeyError, IndexError) as exc:
        logger.exception("Unexpected error while %s", action)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Server error while {action}.",
        ) from exc
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Error while %s", action)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Server error while {action}.",
        ) from exc
