from paintops.core.notifications.formatter import (
    classify,
    parse_blocks,
    render_email_html,
    render_visual_preview,
)


def test_classify_lines():
    assert classify("") == "break"
    assert classify("Job Information:") == "header"
    assert classify("• Unit 204") == "bullet"
    assert classify("- Unit 204") == "bullet"
    assert classify("Dear Dana,") == "greeting"
    assert classify("Thank you,") == "closing"
    assert classify("The work is done.") == "body"


def test_blank_lines_collapse():
    blocks = parse_blocks("Hello,\n\n\n\nBody line")
    assert [b.kind for b in blocks] == ["greeting", "break", "body"]


def test_section_bullets_take_section_colors():
    blocks = parse_blocks("Job Information:\n• Unit 204\nWork Order Information:\n• Hours 2\nOther Information:\n• x")
    bullets = [b for b in blocks if b.kind == "bullet"]
    assert bullets[0].border == "#3b82f6"
    assert bullets[1].border == "#10b981"
    assert bullets[2].border == "#6b7280"
    assert bullets[0].text == "Unit 204"


def test_preview_escapes_html():
    html = render_visual_preview("Dear <b>Dana</b>,")
    assert "&lt;b&gt;Dana&lt;/b&gt;" in html


def test_email_html_orders_body_button_signature():
    html = render_email_html("Dear Dana,", "JG Painting Pros", "<div>BUTTON</div>")
    assert html.index("Dear Dana") < html.index("BUTTON") < html.index("JG Painting Pros")
