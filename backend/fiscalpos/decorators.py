# Overview: Request decorators for API routes.

from functools import wraps
from flask import current_app, jsonify, request

from .errors import DomainError
from .time_utils import parse_iso_datetime
from .validation import ConflictError, ValidationError, require_int


def json_body() -> dict:
    """Request JSON as a dict; anything else is a 400."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    return data


def service_errors(action: str):
    """
    Map service-layer outcomes to JSON responses.

    - DomainError      -> its own http_status with {"error", "code", "details"}
    - ValidationError  -> 400
    - ConflictError    -> 409
    - anything else    -> logged with traceback, generic 500

    Expected outcomes are not logged as errors; AccessKeyIntegrityError is
    logged by the invoice service before it reaches here.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except DomainError as e:
                return jsonify(e.to_dict()), e.http_status
            except ConflictError as e:
                return jsonify({"error": str(e), "code": "conflict", "details": {}}), 409
            except ValidationError as e:
                return jsonify({"error": str(e), "code": "validation_error", "details": {}}), 400
            except Exception:
                current_app.logger.exception("Failed to %s", action)
                return jsonify({"error": "Internal server error"}), 500
        return decorated_function
    return decorator


def list_args() -> dict:
    """Common list filters from the query string: limit, offset, date_from, date_to."""
    args = request.args
    try:
        date_from = parse_iso_datetime(args.get("date_from"))
        date_to = parse_iso_datetime(args.get("date_to"), end_of_day=True)
    except ValueError:
        raise ValidationError("date_from/date_to must be ISO-8601 dates")
    return {
        "limit": require_int(args.get("limit", "50"), "limit"),
        "offset": require_int(args.get("offset", "0"), "offset"),
        "date_from": date_from,
        "date_to": date_to,
    }
