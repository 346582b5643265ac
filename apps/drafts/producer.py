"""
Draft Producer: turns an intake report into draft article fields.

The workflow treats the producer as an external collaborator with a fixed
contract:

    summarize(IntakeData) -> SummaryResult

It is invoked once per intake from a Celery task (see
apps.workitems.tasks.produce_draft) and its result only ever touches the
producer-owned fields of the article.

Backends:
    template  deterministic summarizer built from the report itself
    claude    Anthropic Messages API
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.utils import timezone

from apps.core.exceptions import DraftProducerError
from .llm import ClaudeClient, parse_llm_json
from .prompts import DRAFT_ARTICLE_PROMPT

logger = logging.getLogger(__name__)

# Shown on the processing screen while the producer runs; display only.
PROCESSING_STAGES = [
    "Detect project type",
    "Group images into before/after pairs",
    "Generate a caption per image",
    "Extract key points",
]

PRODUCER_FIELDS = (
    'project_type',
    'key_points',
    'article_title',
    'article_subtitle',
    'article_body',
    'service',
    'date',
)

DATE_FORMAT = '%d/%m/%Y'


@dataclass
class IntakeData:
    """What the inspector submitted."""
    description: str
    location: Dict[str, Any]
    images: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_article_data(cls, article_data: Dict[str, Any]) -> 'IntakeData':
        return cls(
            description=article_data.get('description', ''),
            location=article_data.get('location') or {},
            images=list(article_data.get('images') or []),
        )

    @property
    def location_name(self) -> str:
        return self.location.get('name', '')


@dataclass
class SummaryResult:
    """Generated article fields, delivered once per invocation."""
    project_type: str
    key_points: List[str]
    article_title: str
    article_subtitle: str
    article_body: str
    service: str
    date: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SummaryResult':
        """Build from a loose mapping; raises DraftProducerError on a bad shape."""
        if not isinstance(data, dict):
            raise DraftProducerError("Draft producer returned a non-object result")

        missing = [name for name in PRODUCER_FIELDS if name not in data]
        if missing:
            raise DraftProducerError(
                f"Draft producer result is missing: {', '.join(missing)}",
                details={'missing': missing},
            )

        key_points = data['key_points']
        if not isinstance(key_points, list):
            raise DraftProducerError("key_points must be a list", field='key_points')

        return cls(
            project_type=str(data['project_type']),
            key_points=[str(point) for point in key_points],
            article_title=str(data['article_title']),
            article_subtitle=str(data['article_subtitle']),
            article_body=str(data['article_body']),
            service=str(data['service']),
            date=str(data['date']),
        )

    def as_patch(self) -> Dict[str, Any]:
        """Exactly the producer-owned article fields."""
        return asdict(self)


class DraftProducer(ABC):
    """Base class for draft producers."""

    name = 'base'

    @abstractmethod
    def summarize(self, intake: IntakeData) -> SummaryResult:
        raise NotImplementedError


# =============================================================================
# Template producer
# =============================================================================

# (project type, keyword stems, owning service, key points)
PROJECT_TYPES = [
    ('Roadworks', ('road', 'asphalt', 'pavement', 'pothole', 'patch', 'resurfac', 'crack'),
     'Technical Services', ['Repair of surface damage', 'Improved road safety']),
    ('Greenery', ('tree', 'prun', 'park', 'garden', 'grass', 'plant'),
     'Parks Department', ['Pruning of tall trees', 'Removal of dry branches']),
    ('Street Lighting', ('light', 'led', 'lamp'),
     'Technical Services', ['Energy savings', 'Improved visibility']),
    ('Playgrounds', ('playground', 'swing', 'slide'),
     'Technical Services', ['Repaired play equipment', 'Safer play area']),
]


class TemplateDraftProducer(DraftProducer):
    """
    Deterministic producer: classifies the works by keyword and writes the
    article from the report's own text. Used by default and in tests.
    """

    name = 'template'

    def classify(self, description: str):
        words = re.findall(r'\w+', description.lower())
        for project_type, stems, service, key_points in PROJECT_TYPES:
            if any(word.startswith(stem) for word in words for stem in stems):
                return project_type, service, list(key_points)
        return 'Public Works', settings.DEFAULT_SERVICE_NAME, ['Works completed', 'Improved public space']

    def summarize(self, intake: IntakeData) -> SummaryResult:
        project_type, service, key_points = self.classify(intake.description)
        place = intake.location_name or 'the municipality'
        description = intake.description.strip()
        first_sentence = description.split('.')[0].strip() or description
        pair_count = len(intake.images) // 2

        body = (
            f"Works at {place} have been completed. {description}"
            f"{'' if description.endswith('.') else '.'}\n\n"
            f"The {service} documented the intervention with "
            f"{pair_count} before/after photo pair{'s' if pair_count != 1 else ''}."
        )

        return SummaryResult(
            project_type=project_type,
            key_points=key_points,
            article_title=f"{project_type} completed at {place}",
            article_subtitle=first_sentence,
            article_body=body,
            service=service,
            date=timezone.localdate().strftime(DATE_FORMAT),
        )


# =============================================================================
# Claude producer
# =============================================================================

class ClaudeDraftProducer(DraftProducer):
    """Asks Claude for the article text; service and date are filled locally."""

    name = 'claude'

    def __init__(self, client: Optional[ClaudeClient] = None):
        self.client = client or ClaudeClient()

    def summarize(self, intake: IntakeData) -> SummaryResult:
        if not self.client.available:
            raise DraftProducerError("No Anthropic API key configured for the claude draft producer")

        prompt = DRAFT_ARTICLE_PROMPT.render(
            location=intake.location_name or 'unknown',
            description=intake.description,
            image_count=len(intake.images),
            pair_count=len(intake.images) // 2,
        )
        raw = self.client.run_prompt(
            prompt,
            system=DRAFT_ARTICLE_PROMPT.system_prompt,
            max_tokens=DRAFT_ARTICLE_PROMPT.recommended_max_tokens,
        )

        data = parse_llm_json(raw)
        if data is None:
            raise DraftProducerError("Unable to parse JSON from Claude response")

        data.setdefault('service', settings.DEFAULT_SERVICE_NAME)
        data.setdefault('date', timezone.localdate().strftime(DATE_FORMAT))
        return SummaryResult.from_dict(data)


PRODUCERS = {
    TemplateDraftProducer.name: TemplateDraftProducer,
    ClaudeDraftProducer.name: ClaudeDraftProducer,
}


def get_draft_producer(backend: Optional[str] = None) -> DraftProducer:
    """Instantiate the configured producer (``DRAFT_PRODUCER_BACKEND``)."""
    backend = backend or settings.DRAFT_PRODUCER_BACKEND
    try:
        producer_cls = PRODUCERS[backend]
    except KeyError:
        raise ImproperlyConfigured(
            f"Unknown DRAFT_PRODUCER_BACKEND {backend!r}; expected one of {sorted(PRODUCERS)}"
        )
    return producer_cls()
