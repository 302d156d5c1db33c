"""Configuration models for the parse benchmark and amplification probe.

Both models are frozen Pydantic models so a configuration cannot drift
while a run is in progress. CLI scripts build them from parsed
arguments and translate :class:`pydantic.ValidationError` into
:class:`~core.exceptions.ConfigurationError` via :func:`build_config`.

Defaults reproduce the fixed configuration of the latency benchmark:
100 warmup parses, 5 rounds of 100 parses each, and an eight-level
synthetic tree.

Example:
    >>> config = BenchmarkConfig()
    >>> config.total_operations
    500
    >>> AmplificationConfig(iterations=10).iterations
    10
"""

from typing import TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from core.exceptions import ConfigurationError
from core.synthetic import DEFAULT_DEPTH, MAX_DEPTH

ModelT = TypeVar("ModelT", bound=BaseModel)

DEFAULT_SETTLE_SECONDS: float = 0.1
"""Pause after a reclamation pass before a baseline read."""

AMPLIFICATION_FIXTURE: str = "repeated-embedded-amplification.bin"
"""Bundled resource holding the adversarial payload."""


class BenchmarkConfig(BaseModel):
    """Configuration for the latency benchmark driver.

    Attributes:
        warmup_iterations: Parses executed before timing starts.
            Results go to the sink and are never measured.
        batch_size: Parses per measured round. Each round produces
            one latency sample.
        rounds: Number of measured rounds.
        tree_depth: Remaining depth below the synthetic root.
            ``7`` yields the eight-level tree.
        settle_seconds: Pause after the reclamation pass between
            warmup and measurement.
        seed_name: Name of the synthetic root node.
        seed_value: Value of the synthetic root node.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    warmup_iterations: int = Field(
        default=100,
        ge=0,
        description="Parses executed before measurement (discarded)",
    )
    batch_size: int = Field(
        default=100,
        gt=0,
        description="Parses per measured round",
    )
    rounds: int = Field(
        default=5,
        gt=0,
        description="Number of measured rounds",
    )
    tree_depth: int = Field(
        default=DEFAULT_DEPTH,
        ge=0,
        le=MAX_DEPTH,
        description="Remaining depth below the synthetic root",
    )
    settle_seconds: float = Field(
        default=DEFAULT_SETTLE_SECONDS,
        ge=0.0,
        description="Pause after gc.collect() before measuring",
    )
    seed_name: str = Field(
        default="root",
        min_length=1,
        description="Name of the synthetic root node",
    )
    seed_value: int = Field(
        default=0,
        ge=-(2**63),
        lt=2**63,
        description="int64 value of the synthetic root node",
    )

    @property
    def total_operations(self) -> int:
        """Measured parses across all rounds."""
        return self.rounds * self.batch_size


class AmplificationConfig(BaseModel):
    """Configuration for the amplification probe.

    Attributes:
        iterations: Number of times the adversarial payload is parsed.
            Must be positive when supplied by a caller.
        fixture_name: Bundled resource holding the payload.
        settle_seconds: Pause after the reclamation pass before the
            baseline memory read.
        tracemalloc_enabled: Use the tracemalloc probe. Exact Python
            allocation counts, but not valid for timing.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    iterations: int = Field(
        default=1,
        gt=0,
        description="Parse iterations (1000-10000 to simulate repeated DoS)",
    )
    fixture_name: str = Field(
        default=AMPLIFICATION_FIXTURE,
        description="Bundled fixture resource name",
    )
    settle_seconds: float = Field(
        default=DEFAULT_SETTLE_SECONDS,
        ge=0.0,
        description="Pause after gc.collect() before the baseline read",
    )
    tracemalloc_enabled: bool = Field(
        default=False,
        description=(
            "Sample memory with tracemalloc instead of process RSS. "
            "Traces every allocation: timings are inflated several times."
        ),
    )

    @model_validator(mode="after")
    def validate_fixture_name(self) -> "AmplificationConfig":
        """Reject blank fixture names before any resource lookup."""
        if not self.fixture_name.strip():
            raise ValueError("fixture_name must not be blank")
        return self


def build_config(model: type[ModelT], **values: object) -> ModelT:
    """Validate ``values`` into ``model``.

    Raises:
        ConfigurationError: With every validation problem joined into
            one message.

    Example:
        >>> build_config(AmplificationConfig, iterations=0)
        Traceback (most recent call last):
        ...
        core.exceptions.ConfigurationError: iterations: Input should be greater than 0
    """
    try:
        return model(**values)
    except ValidationError as exc:
        problems: list[str] = []
        for error in exc.errors():
            location: str = ".".join(str(part) for part in error["loc"])
            problems.append(
                f"{location}: {error['msg']}" if location else error["msg"]
            )
        raise ConfigurationError("; ".join(problems)) from exc
