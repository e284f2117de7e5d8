"""LLM-backed answer evaluator with locally enforced pass policy."""
from __future__ import annotations

from typing import List, Optional, Sequence

from .inference import InferenceClient, Prompt
from .models import Answer, CandidateProfile, EvaluationOutcome, Question, QuestionScore, StageDefinition

NO_ANSWER = "No answer provided."

EVALUATION_SYSTEM_PROMPT = (
    "You are an expert HR interviewer and technical recruiter. "
    "Evaluate candidate answers objectively and provide constructive feedback."
)
EVALUATION_TOOL = "evaluate_interview_answers"


def _round_1dp(value: float) -> float:
    return float(f"{value:.1f}")


def _clamp_score(value: float) -> float:
    return _round_1dp(max(0.0, min(100.0, float(value))))


def _clean_lines(items: Sequence[str]) -> List[str]:
    return [" ".join(item.split()) for item in items if item and item.strip()]


class AnswerEvaluator:
    """Scores a stage's answers through the inference client.

    The model's own ``passed`` flag is discarded: a stage passes exactly when
    the clamped overall score reaches the stage's passing percentage.
    """

    def __init__(self, inference: InferenceClient) -> None:
        self._inference = inference

    def evaluate(
        self,
        stage: StageDefinition,
        questions: Sequence[Question],
        answers: Sequence[Answer],
        profile: Optional[CandidateProfile] = None,
    ) -> EvaluationOutcome:
        prompt = Prompt(
            system=EVALUATION_SYSTEM_PROMPT,
            task=build_evaluation_task(stage, questions, answers, profile),
            tool_name=EVALUATION_TOOL,
            tool_description="Evaluate interview answers and provide scores and feedback",
        )
        raw = self._inference.complete(prompt, EvaluationOutcome)
        return normalize_outcome(raw, stage, questions)


def normalize_outcome(
    raw: EvaluationOutcome, stage: StageDefinition, questions: Sequence[Question]
) -> EvaluationOutcome:
    """Clamp scores, drop scores for unknown questions and re-derive ``passed``."""

    overall = _clamp_score(raw.overall_score)
    known_ids = {question.id for question in questions}
    scores: List[QuestionScore] = []
    seen: set[int] = set()
    for item in raw.question_scores:
        if item.question_id not in known_ids or item.question_id in seen:
            continue
        seen.add(item.question_id)
        scores.append(
            QuestionScore(
                question_id=item.question_id,
                score=_clamp_score(item.score),
                feedback=item.feedback.strip(),
            )
        )
    return EvaluationOutcome(
        overall_score=overall,
        passed=overall >= stage.passing_score_percent,
        feedback=raw.feedback.strip(),
        strengths=_clean_lines(raw.strengths),
        improvements=_clean_lines(raw.improvements),
        question_scores=scores,
    )


def build_evaluation_task(
    stage: StageDefinition,
    questions: Sequence[Question],
    answers: Sequence[Answer],
    profile: Optional[CandidateProfile],
) -> str:  # Build scoring prompt pairing questions and answers by position
    pairs = []
    for index, question in enumerate(questions):
        answer = answers[index] if index < len(answers) else None
        lines = [f"Question {index + 1} (id {question.id}): {question.question}"]
        if question.expected_points:
            lines.append(f"Expected Points: {', '.join(question.expected_points)}")
        lines.append(f"Candidate Answer: {render_answer(question, answer)}")
        pairs.append("\n".join(lines))

    name = (profile.full_name if profile else None) or "Not specified"
    experience = (profile.experience_level if profile else None) or "Entry Level"
    return "\n\n".join(
        [
            f'Evaluate the following interview answers for the "{stage.name}" stage.',
            f"Passing Score Required: {stage.passing_score_percent}%",
            f"Candidate Profile:\n- Name: {name}\n- Experience Level: {experience}",
            "Questions and Answers:\n\n" + "\n\n".join(pairs),
            (
                "Evaluation Criteria:\n"
                "1. Relevance and completeness of answers\n"
                "2. Communication clarity\n"
                "3. Technical accuracy (if applicable)\n"
                "4. Professionalism and confidence\n"
                "5. Specific examples and experiences mentioned"
            ),
            (
                "Provide:\n"
                "- Overall score (0-100)\n"
                f"- Whether they passed (score >= {stage.passing_score_percent})\n"
                "- Constructive feedback\n"
                "- Key strengths (2-4 points)\n"
                "- Areas for improvement (2-4 points)\n"
                "- Individual question scores (0-100) keyed by question id, with brief feedback"
            ),
        ]
    )


def render_answer(question: Question, answer: Answer) -> str:
    """Render one answer; integer answers to multiple choice questions select an option."""

    if answer is None or isinstance(answer, bool):
        return NO_ANSWER
    if isinstance(answer, int):
        if question.type == "multiple_choice" and 0 <= answer < len(question.options):
            return f"{chr(ord('A') + answer)}) {question.options[answer]}"
        return str(answer)
    text = answer.strip()
    return text or NO_ANSWER


__all__ = [
    "AnswerEvaluator",
    "EVALUATION_SYSTEM_PROMPT",
    "EVALUATION_TOOL",
    "NO_ANSWER",
    "build_evaluation_task",
    "normalize_outcome",
    "render_answer",
]
