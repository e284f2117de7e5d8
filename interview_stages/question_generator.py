from __future__ import annotations  # Stage question generation via structured LLM output

import logging
from textwrap import dedent
from typing import List, Optional

from .errors import ExternalServiceError
from .inference import InferenceClient, Prompt
from .models import CandidateProfile, Question, QuestionSet, StageDefinition

logger = logging.getLogger(__name__)

NOT_SPECIFIED = "Not specified"

QUESTION_SYSTEM_PROMPT = (
    "You are an expert HR interviewer and technical recruiter. "
    "Generate realistic interview questions based on the stage and candidate profile."
)
QUESTION_TOOL = "generate_interview_questions"

STAGE_FOCUS = {  # Extra guidance per stage type
    "assessment": (
        "- Deep knowledge of {subject} concepts\n"
        "- Problem-solving in {subject} contexts\n"
        "- Teaching methodologies for {subject}\n"
        "- Real classroom scenarios and student engagement\n"
        "- Subject-specific curriculum and exam patterns"
    ),
    "demo": "- Teaching demonstration, presentation skills, subject knowledge",
    "hr_documents": "- HR questions, document verification, future plans, final assessment",
}


class QuestionGenerator:  # Requests stage-appropriate questions for a candidate profile
    def __init__(self, inference: InferenceClient) -> None:
        self._inference = inference

    def generate(self, stage: StageDefinition, profile: Optional[CandidateProfile]) -> List[Question]:
        """Return at most ``stage.question_count`` questions, or an empty list for question-free stages.

        Extra questions are dropped; a short set is kept as returned and logged.
        """

        if not stage.has_questions:
            return []
        prompt = Prompt(
            system=QUESTION_SYSTEM_PROMPT,
            task=build_question_task(stage, profile),
            tool_name=QUESTION_TOOL,
            tool_description="Generate interview questions for a specific stage",
        )
        result = self._inference.complete(prompt, QuestionSet)
        if not result.questions:
            raise ExternalServiceError(f"AI returned no questions for stage '{stage.name}'")
        if len(result.questions) < stage.question_count:
            logger.warning(
                "AI returned %d of %d questions for stage '%s'",
                len(result.questions),
                stage.question_count,
                stage.name,
            )
        return _renumber(result.questions[: stage.question_count])


def build_question_task(stage: StageDefinition, profile: Optional[CandidateProfile]) -> str:  # Build task prompt for LLM
    subject = _field(profile, "primary_subject", "")
    subject_focus = (
        f"Focus questions specifically on {subject} topics, concepts, and teaching methodologies for this subject."
        if subject
        else "Focus on general teaching aptitude and pedagogical skills."
    )
    stage_focus = STAGE_FOCUS.get(stage.stage_type, "").format(subject=subject or "the subject")
    sections = [
        f'Generate {stage.question_count} interview questions for the "{stage.name}" stage.',
        f"Stage Description: {stage.description}",
        _profile_block(profile),
        f"IMPORTANT: {subject_focus}",
        dedent(
            f"""
            Requirements:
            1. Questions should be directly related to the candidate's PRIMARY SUBJECT: {subject or "General"}
            2. Include subject-specific concepts, theories, and approaches
            3. Mix of difficulty levels (easy to challenging)
            4. For multiple choice questions, provide 4 options
            5. Include expected key points for text answers
            6. Make questions specific to the candidate's experience level and background
            """
        ).strip(),
    ]
    if stage_focus:
        sections.append(f'For "{stage.name}" stage, focus on:\n{stage_focus}')
    sections.append(
        f"Generate exactly {stage.question_count} questions that test the candidate's expertise in "
        f"{subject or 'their field'}. Number question ids from 1."
    )
    return "\n\n".join(sections)


def _profile_block(profile: Optional[CandidateProfile]) -> str:
    if profile is None:
        return "No profile information available."
    skills = ", ".join(profile.skills) if profile.skills else NOT_SPECIFIED
    lines = [
        "Candidate Profile:",
        f"- Name: {_field(profile, 'full_name')}",
        f"- Current Role: {_field(profile, 'preferred_role')}",
        f"- Experience Level: {_field(profile, 'experience_level', 'Entry Level')}",
        f"- Skills: {skills}",
        f"- Highest Qualification: {_field(profile, 'highest_qualification')}",
        f"- Primary Subject: {_field(profile, 'primary_subject', 'General Knowledge')}",
        f"- Classes Handled: {_field(profile, 'classes_handled')}",
        f"- Segment: {_field(profile, 'segment', 'Education')}",
    ]
    return "\n".join(lines)


def _field(profile: Optional[CandidateProfile], name: str, default: str = NOT_SPECIFIED) -> str:
    if profile is None:
        return default
    value = getattr(profile, name, None)
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def _renumber(questions: List[Question]) -> List[Question]:
    # ids must be unique for per-question scoring
    ids = [question.id for question in questions]
    if len(set(ids)) == len(ids):
        return list(questions)
    return [question.model_copy(update={"id": index}) for index, question in enumerate(questions, start=1)]


__all__ = ["QUESTION_SYSTEM_PROMPT", "QUESTION_TOOL", "QuestionGenerator", "build_question_task"]
