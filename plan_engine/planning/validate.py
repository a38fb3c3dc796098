"""Request validation at the engine boundary.

All structural validation happens here, before any computation. Pydantic
errors are flattened into MalformedInputError details of the form
``"<dotted.path>: <message>"``.
"""

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from plan_engine.planning.errors import MalformedInputError
from plan_engine.planning.schemas.requests import OverridePolicy, PlanCreationRequest

ModelT = TypeVar("ModelT", bound=BaseModel)


def format_validation_errors(err: ValidationError) -> list[str]:
    details = []
    for error in err.errors():
        path = ".".join(str(part) for part in error["loc"]) or "<root>"
        details.append(f"{path}: {error['msg']}")
    return details


def _parse(model: type[ModelT], payload: Any) -> ModelT:
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise MalformedInputError(format_validation_errors(e)) from e


def parse_creation_request(payload: Any) -> PlanCreationRequest:
    """Validate a raw plan creation payload.

    Args:
        payload: Mapping (e.g. decoded JSON) or an existing request

    Returns:
        Validated PlanCreationRequest

    Raises:
        MalformedInputError: If the payload fails validation
    """
    return _parse(PlanCreationRequest, payload)


def parse_override_policy(payload: Any) -> OverridePolicy | None:
    """Validate an optional override policy payload.

    Raises:
        MalformedInputError: If the payload fails validation, including a
            policy that names the invariant category
    """
    if payload is None:
        return None
    return _parse(OverridePolicy, payload)
