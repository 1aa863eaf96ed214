from flask import request
from pydantic import ValidationError

from utils.errors import ValidationFailed


def parse_body(schema):
    """Validate the JSON body against a pydantic model."""
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    return parse_data(schema, data)


def parse_data(schema, data, message: str = "Invalid input"):
    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        raise ValidationFailed(
            message,
            details=exc.errors(include_url=False, include_context=False, include_input=False),
        )
