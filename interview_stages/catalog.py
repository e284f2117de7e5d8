"""Ordered stage catalog and lookups."""
from __future__ import annotations

from typing import Iterable, Iterator, List, Optional, Sequence

from config.stages import load_stage_entries

from .errors import StageValidationError
from .models import StageDefinition

DEFAULT_STAGES: Sequence[StageDefinition] = (
    StageDefinition(
        name="Interview Instructions",
        order=1,
        description="Receive detailed interview process instructions and guidelines via email.",
        stage_type="email_info",
    ),
    StageDefinition(
        name="Technical Assessment Slot Booking",
        order=2,
        description="Book your preferred slot for the Technical Assessment round.",
        stage_type="slot_booking",
        requires_slot_booking=True,
    ),
    StageDefinition(
        name="Technical Assessment",
        order=3,
        description="Role-specific technical questions to assess your domain knowledge and problem-solving skills.",
        question_count=8,
        time_per_question_seconds=150,
        passing_score_percent=70,
        stage_type="assessment",
        auto_progress_after_completion=False,
    ),
    StageDefinition(
        name="Demo Slot Booking",
        order=4,
        description="Book your preferred interview slot for the Demo Round.",
        stage_type="slot_booking",
        requires_slot_booking=True,
    ),
    StageDefinition(
        name="Demo Round",
        order=5,
        description=(
            "Live teaching demonstration where AI evaluates your teaching clarity, subject knowledge, "
            "and presentation skills."
        ),
        question_count=1,
        time_per_question_seconds=600,
        passing_score_percent=65,
        stage_type="demo",
    ),
    StageDefinition(
        name="Demo Feedback",
        order=6,
        description="View detailed feedback metrics and AI evaluation of your demo teaching performance.",
        stage_type="feedback",
    ),
    StageDefinition(
        name="Final Review (HR)",
        order=7,
        description="HR round - Submit required documents for verification and final review.",
        question_count=4,
        time_per_question_seconds=120,
        passing_score_percent=75,
        stage_type="hr_documents",
    ),
    StageDefinition(
        name="All Reviews",
        order=8,
        description="View comprehensive summary of all interview stages, scores, and final assessment.",
        stage_type="review",
        auto_progress_after_completion=False,
    ),
)


class StageCatalog:
    """Immutable ordered list of stage definitions.

    Catalog order is the only valid traversal path: stages are never skipped
    or reordered at runtime.
    """

    def __init__(self, stages: Iterable[StageDefinition]) -> None:
        ordered: List[StageDefinition] = list(stages)
        if not ordered:
            raise ValueError("Stage catalog cannot be empty")
        orders = [stage.order for stage in ordered]
        if any(later <= earlier for earlier, later in zip(orders, orders[1:])):
            raise ValueError("Stage orders must be unique and strictly increasing")
        self._stages = tuple(ordered)
        self._by_order = {stage.order: stage for stage in ordered}

    def __iter__(self) -> Iterator[StageDefinition]:
        return iter(self._stages)

    def __len__(self) -> int:
        return len(self._stages)

    @property
    def stages(self) -> List[StageDefinition]:
        return list(self._stages)

    @property
    def first(self) -> StageDefinition:
        return self._stages[0]

    @property
    def last(self) -> StageDefinition:
        return self._stages[-1]

    def definition_for_order(self, order: Optional[int]) -> StageDefinition:
        """Return the stage at ``order`` or raise StageValidationError."""

        if order is None:
            raise StageValidationError("stageOrder is required")
        stage = self._by_order.get(order)
        if stage is None:
            raise StageValidationError(f"Invalid stage order: {order}")
        return stage

    def next_after(self, order: int) -> Optional[StageDefinition]:
        """Return the stage following ``order`` or None when it is the last one."""

        current = self.definition_for_order(order)
        index = self._stages.index(current)
        if index + 1 >= len(self._stages):
            return None
        return self._stages[index + 1]

    def is_last(self, order: int) -> bool:
        return self.definition_for_order(order).order == self.last.order


def default_catalog() -> StageCatalog:
    return StageCatalog(DEFAULT_STAGES)


def load_catalog(path: str) -> StageCatalog:
    """Load the catalog from a YAML file, falling back to the built-in stages."""

    entries = load_stage_entries(path)
    if entries is None:
        return default_catalog()
    return StageCatalog(StageDefinition.model_validate(entry) for entry in entries)


__all__ = ["DEFAULT_STAGES", "StageCatalog", "default_catalog", "load_catalog"]
