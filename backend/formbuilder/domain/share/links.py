"""Shareable filler links: ``<base>?view=filler&formId=<id>&creatorId=<uid>``."""
from __future__ import annotations
from dataclasses import dataclass
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from formbuilder.domain.common.result import Result

FILLER_VIEW = "filler"


@dataclass(frozen=True)
class ShareTarget:
    form_id: str
    creator_id: str


def build_share_link(base_url: str, form_id: str, creator_id: str) -> str:
    parts = urlparse(base_url)
    query = urlencode({"view": FILLER_VIEW, "formId": form_id, "creatorId": creator_id})
    return urlunparse(parts._replace(query=query, fragment=""))


def parse_share_link(url: str) -> Result[ShareTarget]:
    params = parse_qs(urlparse(url).query)

    def first(name: str) -> str:
        values = params.get(name) or [""]
        return values[0].strip()

    if first("view") != FILLER_VIEW:
        return Result.fail("Not a form filler link.")
    form_id, creator_id = first("formId"), first("creatorId")
    if not form_id or not creator_id:
        return Result.fail("Share link is missing formId or creatorId.")
    return Result.ok(ShareTarget(form_id=form_id, creator_id=creator_id))
