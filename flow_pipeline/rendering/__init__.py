"""Presentation rendering."""

from flow_pipeline.rendering.brand import FLOW_BRAND, Brand
from flow_pipeline.rendering.deck import render_deck

__all__ = ["FLOW_BRAND", "Brand", "render_deck"]
