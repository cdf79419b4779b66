import os

from django.core.exceptions import ImproperlyConfigured


def get_env(var_name: str, default=None, required: bool = False):
    value = os.environ.get(var_name, default)
    if required and value in (None, ""):
        raise ImproperlyConfigured(f"Missing required environment variable: {var_name}")
    return value


def get_int(var_name: str, default: int) -> int:
    value = get_env(var_name, default)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ImproperlyConfigured(f"Environment variable {var_name} must be an integer, got {value!r}")
