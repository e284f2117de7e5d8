import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

os.environ.setdefault("ENABLE_FILE_LOGS", "0")

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config.registry import INFERENCE_KEY, NOTIFIER_KEY, bind_model, unbind_model
from config.settings import settings
from interview_stages import (
    EvaluationOutcome,
    InterviewStageService,
    Question,
    QuestionSet,
    StageCatalog,
    StageDefinition,
    StageStore,
)


class FakeInference:
    """Scripted InferenceClient: queued results per schema, optional error."""

    def __init__(self) -> None:
        self.question_sets: List[QuestionSet] = []
        self.evaluations: List[EvaluationOutcome] = []
        self.prompts: List[Any] = []
        self.error: Optional[Exception] = None

    def complete(self, prompt, schema):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        if schema is QuestionSet:
            if self.question_sets:
                return self.question_sets.pop(0)
            return QuestionSet(
                questions=[Question(id=index, question=f"Question {index}?") for index in range(1, 11)]
            )
        if self.evaluations:
            return self.evaluations.pop(0)
        return outcome(75)


class FakeNotifier:
    def __init__(self) -> None:
        self.invitations: List[Any] = []

    def send_stage_invitation(self, invitation) -> None:
        self.invitations.append(invitation)


def outcome(score: float, *, passed: bool = False, **extra: Any) -> EvaluationOutcome:
    fields: Dict[str, Any] = {
        "overall_score": score,
        "passed": passed,
        "feedback": f"Scored {score}",
        "strengths": ["Clear structure"],
        "improvements": ["More examples"],
    }
    fields.update(extra)
    return EvaluationOutcome(**fields)


THREE_STAGES = [
    StageDefinition(
        name="Technical Assessment",
        order=1,
        description="Domain questions",
        question_count=2,
        time_per_question_seconds=150,
        passing_score_percent=70,
    ),
    StageDefinition(
        name="Demo Round",
        order=2,
        description="Teaching demo",
        question_count=1,
        time_per_question_seconds=600,
        passing_score_percent=65,
        stage_type="demo",
    ),
    StageDefinition(
        name="Final Review",
        order=3,
        description="HR questions",
        question_count=2,
        time_per_question_seconds=120,
        passing_score_percent=75,
        stage_type="hr_documents",
    ),
]


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch):
    td = tempfile.TemporaryDirectory()
    db_path = os.path.join(td.name, "test.db")
    monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
    monkeypatch.setattr(settings, "STAGE_CATALOG_PATH", os.path.join(td.name, "stages.yaml"), raising=False)
    try:
        yield db_path
    finally:
        unbind_model(INFERENCE_KEY)
        unbind_model(NOTIFIER_KEY)
        td.cleanup()


@pytest.fixture
def fake_inference():
    inference = FakeInference()
    bind_model(INFERENCE_KEY, inference)
    return inference


@pytest.fixture
def fake_notifier():
    notifier = FakeNotifier()
    bind_model(NOTIFIER_KEY, notifier)
    return notifier


@pytest.fixture
def store(tmp_db):
    return StageStore(Path(tmp_db))


@pytest.fixture
def three_stage_catalog():
    return StageCatalog(THREE_STAGES)


@pytest.fixture
def service(store, three_stage_catalog, fake_inference, fake_notifier):
    return InterviewStageService(store, three_stage_catalog, fake_inference, notifier=fake_notifier)


@pytest.fixture
def make_outcome():
    return outcome
