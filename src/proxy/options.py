"""
Frontend options accepted by `proxy()`.

The keys mirror the ones board authors already use (`fontFamily`,
`colorPrimary`, ...), so both the camelCase aliases and the Python field
names validate.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_FRONTEND_MODULE = "https://esm.town/v/dglazkov/bbrunfe"

CSS_FORBIDDEN_CHARS = "<>{};"

DEFAULT_BG = "#f0f0f0"
DEFAULT_FONT_FAMILY = "Helvetica Neue, Helvetica, Arial, sans-serif"
DEFAULT_COLOR_PRIMARY = "#3498db"
DEFAULT_COLOR_PRIMARY_BG = "#fff"
DEFAULT_COLOR_ERROR = "#fff0f0"


class FrontendStyle(BaseModel):
    """Style of the frontend.

    Every field falls back to its default when unset or empty.
    """

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    bg: str | None = None
    """Background color of the frontend."""

    font_family: str | None = Field(default=None, alias="fontFamily")
    """Font family used for text."""

    color_primary: str | None = Field(default=None, alias="colorPrimary")
    """Primary color used by the frontend."""

    color_primary_bg: str | None = Field(default=None, alias="colorPrimaryBg")
    """Background color paired with the primary color."""

    color_error: str | None = Field(default=None, alias="colorError")
    """Error color used by the frontend."""

    @field_validator("*")
    @classmethod
    def _reject_css_breakout(cls, value: str | None) -> str | None:
        # Values land unescaped inside <style>, where HTML entities are not decoded
        if value and any(ch in value for ch in CSS_FORBIDDEN_CHARS):
            raise ValueError(f"style value may not contain any of {CSS_FORBIDDEN_CHARS!r}")
        return value

    def css_variables(self) -> dict[str, str]:
        """Resolve the CSS custom properties rendered into the page."""
        return {
            "--ca-color-bg": self.bg or DEFAULT_BG,
            "--ca-font-family": self.font_family or DEFAULT_FONT_FAMILY,
            "--ca-color-primary": self.color_primary or DEFAULT_COLOR_PRIMARY,
            "--ca-color-primary-bg": self.color_primary_bg or DEFAULT_COLOR_PRIMARY_BG,
            "--ca-color-error": self.color_error or DEFAULT_COLOR_ERROR,
        }


class FrontendOptions(BaseModel):
    """Options configuring the served frontend.

    `frontend` is the module to render: None (or empty) selects the default
    module, False disables the frontend entirely.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    frontend: Literal[False] | str | None = None
    style: FrontendStyle = Field(default_factory=FrontendStyle)

    @property
    def frontend_enabled(self) -> bool:
        return self.frontend is not False

    @property
    def frontend_module(self) -> str:
        return self.frontend or DEFAULT_FRONTEND_MODULE
