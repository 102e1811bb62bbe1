"""Page layout and extraction settings for PDF synthesis."""

from __future__ import annotations

from typing import Literal

from pydantic import Field, model_validator

from docbridge.config.base import BaseConfig


class LayoutConfig(BaseConfig):
    """Page geometry used when rendering extracted lines."""

    page_width: float = Field(595.28, gt=0, description="Page width in points")
    page_height: float = Field(841.89, gt=0, description="Page height in points")
    margin: float = Field(50, ge=0, description="Margin on every side in points")
    font: Literal["Helvetica", "Courier"] = Field("Helvetica", description="Base-14 font")
    font_size: float = Field(12, gt=0, description="Font size in points")
    line_height: float = Field(14, gt=0, description="Distance between baselines")
    max_chars_per_line: int = Field(75, ge=1, description="Characters per rendered line")

    @model_validator(mode="after")
    def _check_printable_area(self) -> "LayoutConfig":
        if self.page_height - 2 * self.margin < self.line_height:
            raise ValueError("Margins leave no room for a single line of text.")
        return self


def _spreadsheet_layout() -> LayoutConfig:
    return LayoutConfig(
        page_width=842,
        page_height=595,
        margin=40,
        font="Courier",
        font_size=8,
        line_height=12,
        max_chars_per_line=150,
    )


class ConversionConfig(BaseConfig):
    """Settings for text extraction and PDF synthesis."""

    document: LayoutConfig = Field(
        default_factory=LayoutConfig,
        description="Layout for word-processing documents and diagnostics",
    )
    spreadsheet: LayoutConfig = Field(
        default_factory=_spreadsheet_layout,
        description="Layout for CSV and Excel tables (landscape, monospaced)",
    )
    max_columns: int = Field(6, ge=1, description="Maximum table columns rendered per sheet")
    min_docx_chars: int = Field(
        50,
        ge=0,
        description="Below this many characters the DOCX extractor retries with plain tag stripping",
    )


__all__ = ["LayoutConfig", "ConversionConfig"]
