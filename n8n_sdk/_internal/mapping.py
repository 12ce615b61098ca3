"""Best-effort mapping of raw workflow replies onto caller-supplied types."""

import logging
from typing import Any

from pydantic import BaseModel, TypeAdapter

from n8n_sdk.contracts import ResponseTarget

logger = logging.getLogger(__name__)


def map_response(raw: dict[str, Any], target: ResponseTarget | None) -> Any | None:
    """Decode a raw reply into ``target``.

    Reply keys are matched to the target's field names and unmatched fields
    fall back to the target's declared defaults.

    Args:
        raw: The decoded reply body.
        target: A pydantic model class, any other type pydantic can validate
            (dataclass, TypedDict, ...), or a decode function ``raw -> value``.

    Returns:
        The typed value, or None if no target was given or decoding failed.
        Callers must check for None; mapping errors are never raised.
    """
    if target is None:
        return None

    try:
        if isinstance(target, type) and issubclass(target, BaseModel):
            return target.model_validate(raw)
        if isinstance(target, type):
            return TypeAdapter(target).validate_python(raw)
        return target(raw)
    except Exception as e:
        logger.debug("Could not map reply onto %r: %s", target, e)
        return None
