from flask import request

from marketplace.errors import InvalidRequest


def request_data():
    """JSON body, or form fields for multipart uploads."""
    if request.is_json:
        data = request.get_json(silent=True)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise InvalidRequest('Request body must be a JSON object')
        return data
    return request.form.to_dict()


def uploaded_files(field):
    return [f for f in request.files.getlist(field) if f and f.filename]


def uploaded_file(field):
    files = uploaded_files(field)
    return files[0] if files else None


def to_int(value):
    """Like ``int()`` but refuses booleans and fractional numbers."""
    if isinstance(value, bool):
        raise ValueError(f'Not an integer: {value!r}')
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f'Not an integer: {value!r}')
    if isinstance(value, str):
        value = value.strip()
    return int(value)
