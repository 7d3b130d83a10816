"""Shareable filler links."""
from formbuilder.domain.share.links import build_share_link, parse_share_link


def test_build_share_link():
    url = build_share_link("http://localhost:5173/", "form-1", "user-9")
    assert url == "http://localhost:5173/?view=filler&formId=form-1&creatorId=user-9"


def test_parse_returns_the_ids():
    target = parse_share_link(build_share_link("https://forms.example.com/app", "a b", "u&1")).value
    assert target.form_id == "a b"
    assert target.creator_id == "u&1"


def test_parse_rejects_non_filler_links():
    result = parse_share_link("http://localhost:5173/?view=builder&formId=f&creatorId=u")
    assert result.error == "Not a form filler link."


def test_parse_rejects_links_missing_an_id():
    result = parse_share_link("http://localhost:5173/?view=filler&formId=f")
    assert result.error == "Share link is missing formId or creatorId."
