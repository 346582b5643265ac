"""
Prompt template for draft article generation.
"""

import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class PromptTemplate:
    """
    A versioned prompt template.
    """
    name: str
    template: str
    system_prompt: Optional[str] = None
    version: str = "1.0"
    recommended_max_tokens: int = 1024

    def render(self, **kwargs) -> str:
        try:
            return self.template.format(**kwargs)
        except KeyError as e:
            logger.error(f"Missing template variable {e} for prompt '{self.name}'")
            raise ValueError(f"Missing required variable: {e}")


DRAFT_ARTICLE_PROMPT = PromptTemplate(
    name="draft_article",
    version="1.0",
    recommended_max_tokens=1500,
    system_prompt=(
        "You write short, factual news articles for a municipality's website "
        "about public works its crews have completed. Write in the language of "
        "the field report. Never invent figures that are not in the report."
    ),
    template=(
        "Field report from an inspector.\n\n"
        "Location: {location}\n"
        "Description: {description}\n"
        "Photos: {image_count} ({pair_count} before/after pairs)\n\n"
        "Return only a JSON object (no markdown fences) with keys:\n"
        "  project_type: short category of the works (e.g. roadworks, greenery, lighting)\n"
        "  key_points: list of 2-4 short phrases\n"
        "  article_title: headline\n"
        "  article_subtitle: one sentence\n"
        "  article_body: two short paragraphs separated by a blank line\n"
    ),
)
