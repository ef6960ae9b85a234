"""Agency brand constants used by the deck renderer.

Update values here and every future presentation picks them up.
"""

from __future__ import annotations

from dataclasses import dataclass

from pptx.dml.color import RGBColor


@dataclass(frozen=True)
class Brand:
    name: str = "FLOW PRODUCTIONS"
    wordmark: str = "FLOW"

    primary: str = "5b54a1"  # headings, header bars
    primary_dark: str = "3e3880"  # cover and closing backgrounds
    yellow: str = "ffcc00"  # highlight only
    grey_light: str = "ededed"
    white: str = "ffffff"
    black: str = "141414"  # body text on light backgrounds
    text_muted: str = "6b7280"
    lavender: str = "c4bfef"  # subtitles on dark backgrounds

    slide_width_inches: float = 13.33
    slide_height_inches: float = 7.5

    font_title: str = "Calibri"
    font_body: str = "Calibri"

    def rgb(self, hex_value: str) -> RGBColor:
        return RGBColor.from_string(hex_value.upper())


FLOW_BRAND = Brand()
