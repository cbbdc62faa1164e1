"""Flask API utilities.

- responses: ``_ok`` / ``_err`` / ``_json`` response helpers
- params: query string and JSON body parsing
"""

from apps.flask_api.utils.params import (
    _coerce_optional_text,
    _json_body,
    _parse_int,
    _payload_dict,
    _q,
)
from apps.flask_api.utils.responses import _api_internal_error_response, _err, _json, _ok, set_debug_mode

__all__ = [
    # responses
    "_ok",
    "_err",
    "_json",
    "_api_internal_error_response",
    "set_debug_mode",
    # params
    "_q",
    "_parse_int",
    "_coerce_optional_text",
    "_json_body",
    "_payload_dict",
]
