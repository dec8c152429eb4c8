"""
JSON API helpers: body parsing, principal checks and error mapping.

Every API view is wrapped in json_endpoint, which turns the exceptions raised
by the domain utilities into {"error": ...} responses:

    BadRequest / ValidationError     -> 400
    Unauthenticated                  -> 401
    PermissionDenied (CourseLocked)  -> 403
    Http404 / ObjectDoesNotExist     -> 404
    anything else                    -> 500 (raw message)
"""
import json
import logging
import math
from functools import wraps

from django.core.exceptions import BadRequest, ObjectDoesNotExist, PermissionDenied, ValidationError
from django.http import Http404, JsonResponse

from ..models import SupervisorProfile

logger = logging.getLogger(__name__)


class Unauthenticated(Exception):
    """Raised when a view needs a logged-in principal and there is none."""


class ApiError(Exception):
    """Error with an explicit status and extra payload keys."""

    def __init__(self, message, status=400, **extra):
        super().__init__(message)
        self.status = status
        self.extra = extra


def error_response(message, status, **extra):
    payload = {'error': message}
    payload.update(extra)
    return JsonResponse(payload, status=status)


def _message(exc, default):
    if isinstance(exc, ValidationError):
        return '; '.join(exc.messages) or default
    text = str(exc)
    return text.strip("'\"") if text else default


def json_endpoint(view_func):
    """Map domain exceptions raised inside the view to JSON error responses."""
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        try:
            return view_func(request, *args, **kwargs)
        except ApiError as e:
            return error_response(str(e), e.status, **e.extra)
        except (BadRequest, ValidationError) as e:
            return error_response(_message(e, 'Bad request'), 400)
        except Unauthenticated as e:
            return error_response(_message(e, 'Authentication required'), 401)
        except PermissionDenied as e:
            return error_response(_message(e, 'Access denied'), 403)
        except (Http404, ObjectDoesNotExist) as e:
            return error_response(_message(e, 'Not found'), 404)
        except Exception as e:
            logger.exception("Unhandled error in %s %s", request.method, request.path)
            return error_response(str(e), 500)
    return wrapper


def is_admin(user):
    """Admin principals bypass every unlock check."""
    return bool(user and user.is_authenticated and (user.is_staff or user.is_superuser))


def is_supervisor(user):
    if not user or not user.is_authenticated:
        return False
    return SupervisorProfile.objects.filter(user_id=user.pk).exists()


def user_role(user):
    """'admin', 'supervisor' or 'student'."""
    if is_admin(user):
        return 'admin'
    if is_supervisor(user):
        return 'supervisor'
    return 'student'


def principal(user):
    """The {id, role} view of the authenticated user."""
    if not user or not user.is_authenticated:
        return None
    return {
        'id': user.id,
        'username': user.username,
        'name': user.get_full_name() or user.username,
        'email': user.email,
        'role': user_role(user),
    }


def api_login_required(view_func):
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            raise Unauthenticated('Access denied. No session provided.')
        return view_func(request, *args, **kwargs)
    return wrapper


def api_admin_required(view_func):
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            raise Unauthenticated('Authentication required.')
        if not is_admin(request.user):
            logger.warning("Non-admin user %s attempted admin action: %s %s",
                           request.user.id, request.method, request.path)
            raise PermissionDenied('Admin access required.')
        return view_func(request, *args, **kwargs)
    return wrapper


def parse_json_body(request):
    """Decoded JSON object from the request body; an empty body is {}."""
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise BadRequest(f'Invalid JSON: {e}')
    if not isinstance(data, dict):
        raise BadRequest('Request body must be a JSON object')
    return data


def require_fields(data, *names):
    missing = [name for name in names if data.get(name) in (None, '')]
    if missing:
        raise BadRequest(f"Missing required fields: {', '.join(missing)}")


def optional_bool(data, name):
    value = data.get(name)
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str) and value.lower() in ('true', '1', 'yes'):
        return True
    if isinstance(value, str) and value.lower() in ('false', '0', 'no'):
        return False
    raise BadRequest(f'Invalid value for {name}: expected a boolean')


def optional_number(data, name):
    value = data.get(name)
    if value is None:
        return None
    if isinstance(value, bool):
        raise BadRequest(f'Invalid value for {name}: expected a number')
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise BadRequest(f'Invalid value for {name}: expected a number')
    if not math.isfinite(number):
        raise BadRequest(f'Invalid value for {name}: expected a finite number')
    return number


def optional_int(data, name, default=None):
    value = data.get(name)
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        raise BadRequest(f'Invalid value for {name}: expected an integer')
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        raise BadRequest(f'Invalid value for {name}: expected an integer')
