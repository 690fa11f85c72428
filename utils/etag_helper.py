"""
ETag Helper

Lets clients that mirror an ordered list re-fetch it cheaply: list endpoints
carry an ETag and answer 304 Not Modified when If-None-Match still matches.
"""

import hashlib
import json
from functools import wraps
from typing import Any, Callable

from flask import Response, make_response, request


def generate_etag(data: Any) -> str:
    """
    Generate ETag (checksum) from data.

    Args:
        data: Any JSON-serializable data

    Returns:
        str: quoted SHA-256 hex digest
    """
    json_str = json.dumps(data, sort_keys=True, default=str)
    return f'"{hashlib.sha256(json_str.encode("utf-8")).hexdigest()}"'


def with_etag(f: Callable) -> Callable:
    """
    Decorator adding ETag support to JSON routes.

    Only successful (200) JSON responses get an ETag; errors pass through.

    Usage:
        @bp.route('/')
        @with_etag
        def list_things():
            return jsonify({'things': ...})
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        response = make_response(f(*args, **kwargs))
        if not isinstance(response, Response) or response.status_code != 200 or not response.is_json:
            return response

        etag = generate_etag(response.get_json())
        if request.headers.get('If-None-Match') == etag:
            not_modified = make_response('', 304)
            not_modified.headers['ETag'] = etag
            not_modified.headers['Cache-Control'] = 'no-cache'
            return not_modified

        response.headers['ETag'] = etag
        response.headers['Cache-Control'] = 'no-cache'
        return response

    return decorated_function
