"""Render plain-text email bodies as styled HTML."""

from __future__ import annotations

from dataclasses import dataclass

from jinja2 import Environment, select_autoescape

GREETINGS = ("Dear", "Hello", "Hi ", "Hi,", "Good morning", "Good afternoon")
CLOSINGS = ("Thank you", "Thanks", "Best regards", "Regards", "Sincerely", "Kind regards")
BULLETS = ("•", "- ", "* ")

SECTION_COLORS = {
    "Job Information:": ("#dbeafe", "#3b82f6"),
    "Work Order Information:": ("#ecfdf5", "#10b981"),
}
DEFAULT_COLORS = ("#f3f4f6", "#6b7280")

_env = Environment(autoescape=select_autoescape(default=True, default_for_string=True))

PREVIEW_TEMPLATE = _env.from_string(
    """{% for block in blocks -%}
{% if block.kind == "break" %}<br>
{% elif block.kind == "header" %}<div style="margin-top: 16px; margin-bottom: 8px; font-weight: bold; color: #374151;">{{ block.text }}</div>
{% elif block.kind == "bullet" %}<div style="margin-left: 20px; margin-bottom: 4px; padding: 6px 10px; background-color: {{ block.background }}; border-left: 3px solid {{ block.border }}; border-radius: 4px;">&bull; {{ block.text }}</div>
{% elif block.kind in ("greeting", "closing") %}<div style="margin-bottom: 12px; line-height: 1.5;">{{ block.text }}</div>
{% else %}<div style="margin-bottom: 8px; line-height: 1.5;">{{ block.text }}</div>
{% endif %}{% endfor %}"""
)


@dataclass
class Block:
    kind: str
    text: str = ""
    background: str = ""
    border: str = ""


def classify(line: str) -> str:
    stripped = line.strip()
    if not stripped:
        return "break"
    if stripped.endswith("Information:"):
        return "header"
    if stripped.startswith(BULLETS):
        return "bullet"
    if stripped.startswith(GREETINGS) or stripped == "Hi":
        return "greeting"
    if stripped.startswith(CLOSINGS):
        return "closing"
    return "body"


def parse_blocks(text: str) -> list[Block]:
    blocks: list[Block] = []
    colors = DEFAULT_COLORS
    for line in (text or "").splitlines():
        kind = classify(line)
        stripped = line.strip()
        if kind == "break":
            # consecutive blank lines collapse into one break
            if blocks and blocks[-1].kind != "break":
                blocks.append(Block("break"))
            continue
        if kind == "header":
            colors = SECTION_COLORS.get(stripped, DEFAULT_COLORS)
            blocks.append(Block("header", stripped))
        elif kind == "bullet":
            text_ = stripped.lstrip("•-* ").strip()
            blocks.append(Block("bullet", text_, *colors))
        else:
            colors = DEFAULT_COLORS
            blocks.append(Block(kind, stripped))
    return blocks


def render_visual_preview(text: str) -> str:
    return PREVIEW_TEMPLATE.render(blocks=parse_blocks(text)).strip()


def render_email_html(body: str, signature: str | None = None, extra_html: str = "") -> str:
    """Full message HTML: formatted body, then any approval block, then the signature."""
    parts = [render_visual_preview(body)]
    if extra_html:
        parts.append(extra_html)
    if signature:
        parts.append(render_visual_preview(signature))
    return "\n".join(p for p in parts if p)
