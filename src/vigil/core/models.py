"""vigil data models — Pydantic v2.

This module is a leaf apart from the TYPE_CHECKING import of the signal source.
All Enum and Model definitions live here.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from vigil.engine.base import BaseSignalSource

T = TypeVar("T")

Color = tuple[int, int, int]

# ============================================================
# Enums
# ============================================================


class OutcomeKind(StrEnum):
    """How a poll loop finished."""

    MATCHED = "matched"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


# ============================================================
# Config Models
# ============================================================


class WaitConfig(BaseModel):
    """Process-wide wait tunables. Read-only while a wait is running."""

    poll_interval_ms: int = Field(default=100, gt=0, le=60000)
    click_delay_ms: int = Field(default=150, ge=0, le=60000)
    text_delay_ms: int = Field(default=20, gt=0, le=60000)
    tolerance: int = Field(default=5000, ge=0, description="Default image match tolerance")
    stasis_window: int = Field(default=7, ge=2, le=100)
    stable_count: int = Field(default=3, ge=2, le=100)


class EngineConfig(BaseModel):
    """Signal source configuration."""

    type: str = Field(default="desktop", description="Signal source type")
    window_x: int = Field(default=0, description="Screen x of the watched window origin")
    window_y: int = Field(default=0, description="Screen y of the watched window origin")
    failsafe: bool = Field(default=True)
    pause_s: float = Field(default=0.0, ge=0.0, le=5.0)


class MatchingConfig(BaseModel):
    """Image/text lookup configuration."""

    grayscale: bool = Field(default=False)
    ocr_languages: list[str] = Field(default=["eng"])
    ocr_min_confidence: float = Field(default=0.0, ge=0.0, le=100.0)


class Config(BaseSettings):
    """Project configuration. Merged from YAML + env var + CLI flag."""

    model_config = SettingsConfigDict(
        env_prefix="VIGIL_",
        env_nested_delimiter="__",
    )

    wait: WaitConfig = Field(default_factory=WaitConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    log_level: str = Field(default="WARNING")


# ============================================================
# Geometry Models
# ============================================================


class Position(BaseModel):
    """Centre of an image match in window-relative pixels."""

    model_config = ConfigDict(frozen=True)

    x: int
    y: int


class Region(BaseModel):
    """Axis-aligned rectangle; (x, y) is the upper-left corner."""

    model_config = ConfigDict(frozen=True)

    x: int = Field(default=0)
    y: int = Field(default=0)
    width: int = Field(..., ge=0)
    height: int = Field(..., ge=0)

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def contains(self, x: int, y: int) -> bool:
        return self.x <= x < self.right and self.y <= y < self.bottom


class Spot(BaseModel):
    """A coordinate plus the colour observed there when the spot was built."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    x: int
    y: int
    baseline_color: Color

    @classmethod
    async def capture(cls, source: BaseSignalSource, x: int, y: int) -> Spot:
        """Sample the pixel at (x, y) and bind it to the coordinates."""
        color = await source.read_pixel(x, y)
        return cls(x=x, y=y, baseline_color=color)


class TextMatch(BaseModel):
    """Text search hit."""

    model_config = ConfigDict(frozen=True)

    text: str
    x: int
    y: int
    width: int = Field(default=0, ge=0)
    height: int = Field(default=0, ge=0)
    confidence: float = Field(default=0.0, ge=0.0, le=100.0)

    @property
    def region(self) -> Region:
        return Region(x=self.x, y=self.y, width=self.width, height=self.height)


# ============================================================
# Wait Models
# ============================================================


class PollConfig(BaseModel):
    """Per-loop polling parameters. Timeout is measured from loop start."""

    interval_ms: int = Field(..., gt=0)
    timeout_ms: int | None = Field(default=None, ge=0)


class WaitOptions(BaseModel):
    """Optional knobs shared by the image and text waits.

    An unset tolerance falls back to ``WaitConfig.tolerance``.
    """

    tolerance: int | None = Field(default=None, ge=0)
    exact: bool = Field(default=False)
    message: str | None = Field(default=None)


class WaitOutcome(BaseModel, Generic[T]):
    """Result of one poll loop run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    kind: OutcomeKind
    value: T | None = None
    elapsed_ms: float = Field(default=0.0, ge=0.0)
    polls: int = Field(default=0, ge=0)

    @property
    def matched(self) -> bool:
        return self.kind == OutcomeKind.MATCHED
