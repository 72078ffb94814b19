"""API schemas for capture control endpoints."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class DisplayMetricsModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    width: int = Field(description="Logical width")
    height: int = Field(description="Logical height")
    physical_width: int = Field(alias="physicalWidth")
    physical_height: int = Field(alias="physicalHeight")
    scale_factor: float = Field(alias="scaleFactor")


class Offsets(BaseModel):
    x: int
    y: int


class CaptureInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mode: str = Field(description="desktop or window")
    window_id: int | None = Field(default=None, alias="windowId")
    display_metrics: DisplayMetricsModel = Field(alias="displayMetrics")
    offsets: Offsets = Field(description="Calibration offsets added after scaling")
    debug: bool = Field(default=False, description="DEBUG_COORDS enabled")


class SwitchWindowRequest(BaseModel):
    """Accepts ``windowId`` or the native ``cgWindowID`` name."""

    model_config = ConfigDict(populate_by_name=True)

    window_id: int | None = Field(default=None, alias="windowId")
    cg_window_id: int | None = Field(default=None, alias="cgWindowID")

    @property
    def resolved_window_id(self) -> int | None:
        return self.window_id if self.window_id is not None else self.cg_window_id


class CaptureModeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str
    mode: str
    window_id: int | None = Field(default=None, alias="windowId")
    message: str | None = None
