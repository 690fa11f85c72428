"""
Request payload validation shared by the JSON API routes.

Each helper returns an error message, or a (value, error) pair, so handlers
can answer 400 without raising.
"""

from typing import Any, List, Optional, Tuple

from services.ordered_collection import MAX_POSITION

MAX_PROJECT_NAME_LENGTH = 255
# Largest id SQLite can store in an INTEGER column
MAX_ID = 2**63 - 1
MAX_TASK_CONTENT_LENGTH = 5000


def validate_project_name(name: Any) -> Optional[str]:
    if not name or not isinstance(name, str) or not name.strip():
        return 'Project name is required'
    if len(name) > MAX_PROJECT_NAME_LENGTH:
        return f'Project name must be less than {MAX_PROJECT_NAME_LENGTH} characters'
    return None


def validate_task_content(content: Any) -> Optional[str]:
    if not content or not isinstance(content, str) or not content.strip():
        return 'Task content is required'
    if len(content) > MAX_TASK_CONTENT_LENGTH:
        return f'Task content must be less than {MAX_TASK_CONTENT_LENGTH} characters'
    return None


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_id(value: Any) -> bool:
    return _is_int(value) and -MAX_ID <= value <= MAX_ID


def parse_optional_position(value: Any) -> Tuple[Optional[int], Optional[str]]:
    """``None`` stays None; anything else must be an integer in [0, MAX_POSITION]."""
    if value is None:
        return None, None
    if not _is_int(value) or value < 0:
        return None, 'Position must be a non-negative integer'
    if value > MAX_POSITION:
        return None, f'Position must not exceed {MAX_POSITION}'
    return value, None


def parse_optional_id(value: Any, field: str) -> Tuple[Optional[int], Optional[str]]:
    if value is None:
        return None, None
    if not _is_id(value):
        return None, f'{field} must be an integer id'
    return value, None


def parse_id_list(value: Any, field: str) -> Tuple[List[int], Optional[str]]:
    if not isinstance(value, list) or not all(_is_id(v) for v in value):
        return [], f'{field} must be a list of integer ids'
    return value, None
