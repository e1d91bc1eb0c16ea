from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)

@dataclass(frozen=True)
class Ok(Generic[ModelT]):
    value: ModelT

@dataclass(frozen=True)
class ValidationFailure:
    # field path -> messages, e.g. {"capacity_per_slot": ["Input should be ..."]}
    fields: Dict[str, List[str]] = field(default_factory=dict)

CommandResult = Union[Ok[ModelT], ValidationFailure]

def validate_command(schema: Type[ModelT], payload: Any) -> CommandResult:
    """Validate a raw payload against a command schema without raising."""
    try:
        if isinstance(payload, (str, bytes)):
            return Ok(schema.model_validate_json(payload))
        return Ok(schema.model_validate(payload))
    except ValidationError as exc:
        fields: Dict[str, List[str]] = {}
        for error in exc.errors():
            key = ".".join(str(part) for part in error["loc"]) or "__root__"
            fields.setdefault(key, []).append(error["msg"])
        return ValidationFailure(fields=fields)
