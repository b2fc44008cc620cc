"""Helpers shared by the JSON controllers."""

from __future__ import annotations

import logging
from dataclasses import fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from functools import wraps
from typing import Any, Optional

from flask import current_app, jsonify, request, session

from ..core.enums import Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DomainError,
    NotFoundError,
)

logger = logging.getLogger(__name__)


def serialize(obj: Any) -> Any:
    """Dataclasses (fields and properties), enums and dates -> JSON-ready values."""
    if is_dataclass(obj) and not isinstance(obj, type):
        out = {f.name: serialize(getattr(obj, f.name)) for f in fields(obj)}
        for name, attr in vars(type(obj)).items():
            if isinstance(attr, property):
                out[name] = serialize(getattr(obj, name))
        return out
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, dict):
        return {str(k): serialize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [serialize(v) for v in obj]
    return obj


def ok(payload: Any = None, **extra):
    body = {"success": True}
    if payload is not None:
        body["data"] = serialize(payload)
    body.update({k: serialize(v) for k, v in extra.items()})
    return jsonify(body)


def fail(message: str, status: int = 400, **extra):
    body = {"success": False, "message": message}
    body.update({k: serialize(v) for k, v in extra.items()})
    return jsonify(body), status


def request_data() -> dict:
    """JSON body if present, else form fields."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict(flat=True)


def int_or_none(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def current_user_id() -> int:
    return int(session["user_id"])


def _require_login() -> None:
    if "user_id" not in session:
        raise AuthenticationError("Please log in to continue")


def login_required(view):
    @wraps(view)
    @json_errors
    def wrapper(*args, **kwargs):
        _require_login()
        return view(*args, **kwargs)

    return wrapper


def admin_required(view):
    @wraps(view)
    @json_errors
    def wrapper(*args, **kwargs):
        _require_login()
        if session.get("role") != Role.ADMIN.value:
            raise AuthorizationError("You do not have permission to perform this action")
        return view(*args, **kwargs)

    return wrapper


def json_errors(view):
    """Map domain exceptions to JSON error responses; log anything else."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except NotFoundError as e:
            return fail(str(e), 404)
        except AuthenticationError as e:
            return fail(str(e), 401)
        except AuthorizationError as e:
            return fail(str(e), 403)
        except DomainError as e:
            return fail(str(e), 400)
        except Exception as e:
            logger.exception("Unhandled error in %s", request.endpoint)
            if bool(current_app.config.get("DEBUG", False)):
                return fail(f"Internal server error: {e}", 500)
            return fail("Internal server error", 500)

    return wrapper
