"""
AI-assisted listing copy: one vision call per mockup plus a normalization pass.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Protocol, Sequence

from mockup_publisher.clients.gemini import GeminiClient, GeminiModelError
from mockup_publisher.core.errors import ContentGenerationFailed, ValidationError
from mockup_publisher.services.templates import TemplateService

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 140
TAG_MAX_COUNT = 13
TAG_MAX_LENGTH = 20

DEFAULT_TITLE = "Digital Mockup"
DEFAULT_DESCRIPTION = ""
DEFAULT_CATEGORY = "Art & Collectibles"
DEFAULT_ANALYSIS = ""

SECTION_RULE = "━" * 34


class Section(Protocol):
    name: str
    content: str


class ImageSource(Protocol):
    async def download_bytes(self, file_id: str) -> bytes: ...

    async def get_metadata(self, file_id: str) -> Any: ...


@dataclass(slots=True)
class GeneratedContent:
    """Normalized listing copy.

    ``defaults_used`` names every field the model omitted or returned empty,
    in which case the fixed default was substituted.
    """

    title: str
    description: str
    tags: list[str]
    category: str
    analysis: str
    generated_at: datetime
    defaults_used: list[str] = field(default_factory=list)


def normalize_title(title: str) -> str:
    return title.strip()[:TITLE_MAX_LENGTH]


def normalize_tags(tags: Iterable[Any]) -> list[str]:
    """Lower-case, trim and truncate tags, keeping at most 13.

    Applying it to its own output returns the same list.
    """
    cleaned: list[str] = []
    for tag in tags:
        if not isinstance(tag, str):
            continue
        value = tag.strip().lower()[:TAG_MAX_LENGTH].strip()
        if value:
            cleaned.append(value)
    return cleaned[:TAG_MAX_COUNT]


def build_prompt(sections: Sequence[Section] = ()) -> str:
    sections_block = ""
    if sections:
        lines = [
            f"{index}. {section.name}: {section.content}"
            for index, section in enumerate(sections, start=1)
        ]
        sections_block = (
            "\n\nInclude these custom sections in the description:\n" + "\n".join(lines)
        )

    return (
        "You are an expert Etsy listing creator specializing in digital mockup products. "
        "Analyze this mockup image and generate compelling Etsy listing content.\n\n"
        "Respond with JSON using exactly these keys:\n"
        "{\n"
        '  "title": "A compelling, keyword-rich title (max 140 characters)",\n'
        '  "description": "A detailed product description covering what the buyer '
        'receives, how to use it, file details and benefits",\n'
        '  "tags": ["13 relevant search tags"],\n'
        '  "suggestedCategory": "Suggested Etsy category",\n'
        '  "imageAnalysis": "Brief description of what you see in the mockup"\n'
        "}\n\n"
        "Title requirements:\n"
        "- Under 140 characters\n"
        "- Include keywords buyers search for\n"
        "- Name the product type (mockup, template, digital product)\n\n"
        "Description requirements:\n"
        "- Start with a compelling hook\n"
        "- Explain what the buyer receives, file formats and usage\n"
        "- Use bullet points and sections\n"
        "- Highlight benefits and use cases"
        f"{sections_block}\n\n"
        "Tag requirements:\n"
        "- Exactly 13 tags\n"
        "- Each tag at most 20 characters\n"
        "- Lowercase, mixing broad and specific terms"
    )


class ContentGenerator:
    """Produces listing copy from a mockup image and weaves in template sections."""

    def __init__(
        self,
        gemini: GeminiClient,
        templates: Optional[TemplateService] = None,
    ) -> None:
        self._gemini = gemini
        self._templates = templates

    async def analyze(
        self,
        image_bytes: bytes,
        sections: Sequence[Section] = (),
        mime_type: str = "image/jpeg",
    ) -> GeneratedContent:
        try:
            payload = await self._gemini.generate_listing_copy(
                prompt=build_prompt(sections),
                image_bytes=image_bytes,
                mime_type=mime_type,
            )
        except GeminiModelError as exc:
            logger.error("Listing copy generation failed: %s", exc)
            raise ContentGenerationFailed(str(exc)) from exc

        return self.normalize(payload)

    @staticmethod
    def normalize(payload: dict[str, Any]) -> GeneratedContent:
        """Coerce raw model output into a ``GeneratedContent``."""
        defaults_used: list[str] = []

        def text_field(key: str, label: str, default: str) -> str:
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value
            defaults_used.append(label)
            return default

        title = normalize_title(text_field("title", "title", DEFAULT_TITLE)) or DEFAULT_TITLE
        description = text_field("description", "description", DEFAULT_DESCRIPTION)

        raw_tags = payload.get("tags")
        tags = normalize_tags(raw_tags) if isinstance(raw_tags, list) else []
        if not tags:
            defaults_used.append("tags")

        category = text_field("suggestedCategory", "category", DEFAULT_CATEGORY)
        analysis = text_field("imageAnalysis", "analysis", DEFAULT_ANALYSIS)

        if defaults_used:
            logger.info("Used defaults for: %s", ", ".join(defaults_used))

        return GeneratedContent(
            title=title,
            description=description,
            tags=tags,
            category=category,
            analysis=analysis,
            generated_at=datetime.now(timezone.utc),
            defaults_used=defaults_used,
        )

    @staticmethod
    def append_sections(description: str, sections: Sequence[Section]) -> str:
        """Append each section as an upper-cased banner followed by its content."""
        if not sections:
            return description

        enhanced = description + "\n\n"
        for section in sections:
            enhanced += f"\n{SECTION_RULE}\n{section.name.upper()}\n{SECTION_RULE}\n"
            enhanced += f"{section.content}\n"
        return enhanced

    async def generate_for_files(
        self,
        *,
        drive: ImageSource,
        owner: str,
        file_ids: Sequence[str],
        sections: Optional[Sequence[Section]] = None,
    ) -> GeneratedContent:
        """Generate copy from the first file and append the chosen sections.

        Without explicit sections the owner's default templates are used.
        """
        if not file_ids:
            raise ValidationError("At least one file id is required.")

        chosen: Sequence[Section] = list(sections or [])
        if not chosen and self._templates is not None:
            chosen = self._templates.list_defaults(owner)

        first = file_ids[0]
        metadata = await drive.get_metadata(first)
        image_bytes = await drive.download_bytes(first)
        mime_type = getattr(metadata, "mime_type", None) or "image/jpeg"

        content = await self.analyze(image_bytes, chosen, mime_type)
        if chosen:
            content.description = self.append_sections(content.description, chosen)
        return content


__all__ = [
    "ContentGenerator",
    "GeneratedContent",
    "build_prompt",
    "normalize_tags",
    "normalize_title",
]
