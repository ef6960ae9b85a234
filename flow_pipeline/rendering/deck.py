"""Render validated presentation content to a branded 16:9 PPTX deck."""

from __future__ import annotations

from io import BytesIO

from pptx import Presentation
from pptx.enum.shapes import MSO_SHAPE
from pptx.enum.text import PP_ALIGN
from pptx.slide import Slide as PptxSlide
from pptx.util import Inches, Pt

from flow_pipeline.agent.payloads import PresentationContent, Slide
from flow_pipeline.rendering.brand import FLOW_BRAND, Brand

MAX_CONTENT_BULLETS = 6
MAX_CLOSING_BULLETS = 5


# ─── Helpers ──────────────────────────────────────────────────────────────────


def _rect(slide: PptxSlide, left, top, width, height, color: str, brand: Brand) -> None:
    shape = slide.shapes.add_shape(MSO_SHAPE.RECTANGLE, left, top, width, height)
    shape.fill.solid()
    shape.fill.fore_color.rgb = brand.rgb(color)
    shape.line.fill.background()


def _text(
    slide: PptxSlide,
    left,
    top,
    width,
    height,
    text: str,
    *,
    brand: Brand,
    size: float,
    color: str,
    bold: bool = False,
    italic: bool = False,
    align=PP_ALIGN.LEFT,
    font: str | None = None,
) -> None:
    box = slide.shapes.add_textbox(left, top, width, height)
    tf = box.text_frame
    tf.word_wrap = True
    p = tf.paragraphs[0]
    p.alignment = align
    run = p.add_run()
    run.text = text
    run.font.size = Pt(size)
    run.font.bold = bold
    run.font.italic = italic
    run.font.name = font or brand.font_body
    run.font.color.rgb = brand.rgb(color)


def _bullets(
    slide: PptxSlide,
    left,
    top,
    width,
    height,
    bullets: list[str],
    *,
    brand: Brand,
    marker: str,
    marker_color: str,
    text_color: str,
    size: float,
) -> None:
    box = slide.shapes.add_textbox(left, top, width, height)
    tf = box.text_frame
    tf.word_wrap = True
    for i, bullet in enumerate(bullets):
        p = tf.paragraphs[0] if i == 0 else tf.add_paragraph()
        p.space_before = Pt(8)
        lead = p.add_run()
        lead.text = f"{marker}  "
        lead.font.bold = True
        lead.font.size = Pt(size)
        lead.font.name = brand.font_body
        lead.font.color.rgb = brand.rgb(marker_color)
        body = p.add_run()
        body.text = bullet
        body.font.size = Pt(size)
        body.font.name = brand.font_body
        body.font.color.rgb = brand.rgb(text_color)


def _footer(slide: PptxSlide, number: int, total: int, brand: Brand) -> None:
    w, h = brand.slide_width_inches, brand.slide_height_inches
    _rect(slide, Inches(0.3), Inches(h - 0.5), Inches(w - 0.6), Inches(0.03), brand.grey_light, brand)
    _text(
        slide, Inches(0.3), Inches(h - 0.45), Inches(1.0), Inches(0.3), brand.wordmark,
        brand=brand, size=9, color=brand.primary, bold=True, font=brand.font_title,
    )
    _text(
        slide, Inches(w - 1.2), Inches(h - 0.45), Inches(0.9), Inches(0.3), f"{number} / {total}",
        brand=brand, size=8, color=brand.text_muted, align=PP_ALIGN.RIGHT,
    )


def _background(slide: PptxSlide, color: str, brand: Brand) -> None:
    _rect(
        slide, 0, 0, Inches(brand.slide_width_inches), Inches(brand.slide_height_inches),
        color, brand,
    )


def _accent_strip(slide: PptxSlide, brand: Brand, width: float = 0.12) -> None:
    _rect(slide, 0, 0, Inches(width), Inches(brand.slide_height_inches), brand.yellow, brand)


# ─── Slide builders ───────────────────────────────────────────────────────────


def _cover(slide: PptxSlide, s: Slide, content: PresentationContent, brand: Brand) -> None:
    _background(slide, brand.primary_dark, brand)
    _accent_strip(slide, brand, width=0.18)
    _text(
        slide, Inches(0.5), Inches(0.5), Inches(6), Inches(0.5), brand.name,
        brand=brand, size=11, color=brand.white, bold=True, font=brand.font_title,
    )
    _text(
        slide, Inches(0.5), Inches(1.5), Inches(10), Inches(0.45), content.client_name.upper(),
        brand=brand, size=13, color=brand.yellow,
    )
    _text(
        slide, Inches(0.5), Inches(2.1), Inches(10), Inches(2.4), s.title or content.deck_title,
        brand=brand, size=38, color=brand.white, bold=True, font=brand.font_title,
    )
    subtitle = s.subtitle or (s.bullets[0] if s.bullets else "")
    if subtitle:
        _text(
            slide, Inches(0.5), Inches(5.0), Inches(9), Inches(0.9), subtitle,
            brand=brand, size=15, color=brand.lavender,
        )


def _content(slide: PptxSlide, s: Slide, brand: Brand) -> None:
    _background(slide, brand.white, brand)
    _accent_strip(slide, brand)
    _rect(
        slide, Inches(0.3), 0, Inches(brand.slide_width_inches - 0.3), Inches(1.15),
        brand.primary, brand,
    )
    _text(
        slide, Inches(0.5), Inches(0.1), Inches(11.5), Inches(0.95), s.title,
        brand=brand, size=22, color=brand.white, bold=True, font=brand.font_title,
    )
    top = 1.3
    if s.subtitle:
        _text(
            slide, Inches(0.5), Inches(1.25), Inches(11.5), Inches(0.7), s.subtitle,
            brand=brand, size=17, color=brand.primary, bold=True, italic=True,
            font=brand.font_title,
        )
        top = 2.1
    if s.bullets:
        _bullets(
            slide, Inches(0.55), Inches(top), Inches(11.5), Inches(4.5),
            s.bullets[:MAX_CONTENT_BULLETS],
            brand=brand, marker="▸", marker_color=brand.primary,
            text_color=brand.black, size=13,
        )


def _closing(slide: PptxSlide, s: Slide, brand: Brand) -> None:
    _background(slide, brand.primary_dark, brand)
    _accent_strip(slide, brand)
    _text(
        slide, Inches(0.5), Inches(1.5), Inches(11.5), Inches(0.7), s.title,
        brand=brand, size=20, color=brand.yellow,
    )
    _text(
        slide, Inches(0.5), Inches(2.4), Inches(11.5), Inches(1.8), s.subtitle or s.title,
        brand=brand, size=36, color=brand.white, bold=True, font=brand.font_title,
    )
    if s.bullets:
        _bullets(
            slide, Inches(0.6), Inches(4.5), Inches(11), Inches(2.5),
            s.bullets[:MAX_CLOSING_BULLETS],
            brand=brand, marker="•", marker_color=brand.yellow,
            text_color=brand.white, size=14,
        )


def render_deck(content: PresentationContent, brand: Brand = FLOW_BRAND) -> bytes:
    """Render ``content`` to PPTX bytes.

    One slide per content slide, in order; speaker notes are carried over.
    """
    prs = Presentation()
    prs.slide_width = Inches(brand.slide_width_inches)
    prs.slide_height = Inches(brand.slide_height_inches)
    blank = prs.slide_layouts[6]

    total = len(content.slides)
    for number, s in enumerate(content.slides, start=1):
        slide = prs.slides.add_slide(blank)
        if s.layout == "cover":
            _cover(slide, s, content, brand)
        elif s.layout == "closing":
            _closing(slide, s, brand)
        else:
            _content(slide, s, brand)
        _footer(slide, number, total, brand)
        if s.speaker_notes:
            slide.notes_slide.notes_text_frame.text = s.speaker_notes

    buf = BytesIO()
    prs.save(buf)
    return buf.getvalue()
