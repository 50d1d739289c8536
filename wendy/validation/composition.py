"""Structural validation for compositions submitted for rendering.

Compositions are checked before any job is created; nothing that fails here
reaches the scheduler.
"""

from typing import Annotated, Any, List, Literal, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

OscType = Literal["sine", "pulse", "saw", "triangle", "noise", "kick", "perc", "hats"]
PERCUSSIVE: Tuple[str, ...] = ("kick", "perc", "hats")

PositiveInt = Annotated[int, Field(strict=True, gt=0)]
PositiveNumber = Annotated[float, Field(gt=0)]
AudioHertz = Annotated[int, Field(strict=True, ge=16, le=22000)]
Frequency = Annotated[float, Field(gt=0.1, lt=21000)]
Amplitude = Annotated[float, Field(ge=0, le=1)]

# (duration, frequency, amplitude)
Mote = Tuple[PositiveNumber, Frequency, Amplitude]
Ratio = Tuple[PositiveInt, PositiveInt]


class Conf(BaseModel):
    cps: PositiveNumber
    root: PositiveNumber


class Sound(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    base_osc: OscType = Field(alias="baseOsc")
    duty: Ratio
    min_freq: AudioHertz = Field(alias="minFreq")
    max_freq: AudioHertz = Field(alias="maxFreq")


class Part(BaseModel):
    sound: Sound
    motes: List[List[Mote]]


class Composition(BaseModel):
    conf: Conf
    parts: List[Part]


def validate_composition(payload: Any) -> Composition:
    """Parse a raw request body. Raises pydantic.ValidationError."""
    return Composition.model_validate(payload)


def is_performance_id(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def describe_errors(exc: ValidationError) -> List[str]:
    messages = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err["loc"]) or "<root>"
        messages.append(
            f"Failed typecheck for field <{field}> with value <{err.get('input')!r}>: {err['msg']}"
        )
    return messages
