"""
Download-links document delivered to buyers, and local storage for it.
"""

from __future__ import annotations

import io
import logging
import re
import uuid
from datetime import date
from pathlib import Path
from typing import Optional, Sequence
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import LETTER
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

from mockup_publisher.core.errors import ResourceNotFound
from mockup_publisher.models.listing import AssetReference

logger = logging.getLogger(__name__)

ARTIFACT_FILENAME = "mockup-download-links.pdf"

_INSTRUCTIONS = (
    "1. Click on the link(s) below",
    "2. Sign in to your Google account if prompted",
    '3. Click the "Download" button in Google Drive',
    "4. Save the file(s) to your computer",
)
_IMPORTANT = (
    "These links will remain active and you can download your files anytime",
    "Save this PDF for future reference",
    "If you have any issues accessing your files, please contact the shop owner",
)


class DownloadDocumentRenderer:
    """Render the PDF listing every asset name with its share link."""

    def __init__(self) -> None:
        base = getSampleStyleSheet()
        self._styles = {
            "title": ParagraphStyle(
                "ArtifactTitle", parent=base["Title"], fontSize=24, leading=28,
                textColor=colors.HexColor("#1a1a1a"), alignment=TA_CENTER,
            ),
            "subtitle": ParagraphStyle(
                "ArtifactSubtitle", parent=base["Normal"], fontSize=12,
                textColor=colors.HexColor("#666666"), alignment=TA_CENTER,
            ),
            "heading": ParagraphStyle(
                "ArtifactHeading", parent=base["Heading2"], fontSize=14,
                textColor=colors.HexColor("#1a1a1a"),
            ),
            "body": ParagraphStyle(
                "ArtifactBody", parent=base["Normal"], fontSize=11,
                textColor=colors.HexColor("#333333"),
            ),
            "file": ParagraphStyle(
                "ArtifactFile", parent=base["Normal"], fontSize=12,
                textColor=colors.HexColor("#1a1a1a"),
            ),
            "link": ParagraphStyle(
                "ArtifactLink", parent=base["Normal"], fontSize=10,
                textColor=colors.HexColor("#0066cc"),
            ),
            "footer": ParagraphStyle(
                "ArtifactFooter", parent=base["Normal"], fontSize=8,
                textColor=colors.HexColor("#999999"), alignment=TA_CENTER,
            ),
        }

    def render(
        self,
        assets: Sequence[AssetReference],
        *,
        title: Optional[str] = None,
        generated_on: Optional[date] = None,
    ) -> bytes:
        styles = self._styles
        story = [
            Paragraph("Your Digital Mockup Files", styles["title"]),
            Paragraph("Thank you for your purchase!", styles["subtitle"]),
            Spacer(1, 24),
            Paragraph("<u>How to Download Your Files:</u>", styles["heading"]),
        ]
        story.extend(Paragraph(escape(line), styles["body"]) for line in _INSTRUCTIONS)
        story.extend([Spacer(1, 24), Paragraph("<u>Download Links</u>", styles["heading"])])

        for index, asset in enumerate(assets, start=1):
            link = escape(asset.share_link, {'"': "&quot;"})
            story.append(Paragraph(f"File {index}: {escape(asset.name)}", styles["file"]))
            story.append(Paragraph(f'<link href="{link}"><u>{link}</u></link>', styles["link"]))
            story.append(Spacer(1, 12))

        story.extend([Spacer(1, 24), Paragraph("<u>Important Information</u>", styles["heading"])])
        story.extend(Paragraph(f"&bull; {escape(line)}", styles["body"]) for line in _IMPORTANT)

        if title:
            story.extend([Spacer(1, 12), Paragraph(f"Product: {escape(title)}", styles["subtitle"])])

        generated = (generated_on or date.today()).isoformat()
        story.extend([Spacer(1, 24), Paragraph(f"Generated on {generated}", styles["footer"])])

        buffer = io.BytesIO()
        document = SimpleDocTemplate(
            buffer,
            pagesize=LETTER,
            topMargin=50,
            bottomMargin=50,
            leftMargin=50,
            rightMargin=50,
            title=title or "Digital Mockup Files",
        )
        document.build(story)
        return buffer.getvalue()


_SAFE_SEGMENT = re.compile(r"[^A-Za-z0-9._-]+")


class ArtifactStorage:
    """Stores rendered artifacts on disk under ``root/<owner>/<uuid>-<filename>``.

    The returned reference is the path relative to ``root``.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).resolve()

    def save(self, *, owner: str, data: bytes, filename: str = ARTIFACT_FILENAME) -> str:
        owner_dir = _SAFE_SEGMENT.sub("_", owner) or "anonymous"
        safe_name = _SAFE_SEGMENT.sub("_", filename) or ARTIFACT_FILENAME
        relative = Path(owner_dir) / f"{uuid.uuid4().hex}-{safe_name}"
        target = self._root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.info("Stored artifact %s (%d bytes)", relative.as_posix(), len(data))
        return relative.as_posix()

    def load(self, ref: str) -> bytes:
        target = (self._root / ref).resolve()
        if not target.is_relative_to(self._root) or not target.is_file():
            raise ResourceNotFound("Stored artifact not found.")
        return target.read_bytes()


__all__ = ["ARTIFACT_FILENAME", "ArtifactStorage", "DownloadDocumentRenderer"]
