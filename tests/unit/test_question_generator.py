import pytest

from interview_stages import (
    CandidateProfile,
    ExternalServiceError,
    Question,
    QuestionGenerator,
    QuestionSet,
    default_catalog,
)
from interview_stages.question_generator import build_question_task


def test_generate_truncates_to_question_count(fake_inference, three_stage_catalog):
    stage = three_stage_catalog.definition_for_order(1)
    questions = QuestionGenerator(fake_inference).generate(stage, None)
    assert [question.id for question in questions] == [1, 2]
    prompt = fake_inference.prompts[0]
    assert prompt.tool_name == "generate_interview_questions"
    assert "Generate 2 interview questions" in prompt.task


def test_generate_skips_stages_without_questions(fake_inference):
    stage = default_catalog().definition_for_order(1)
    assert QuestionGenerator(fake_inference).generate(stage, None) == []
    assert fake_inference.prompts == []


def test_empty_question_set_is_an_error(fake_inference, three_stage_catalog):
    fake_inference.question_sets.append(QuestionSet(questions=[]))
    with pytest.raises(ExternalServiceError):
        QuestionGenerator(fake_inference).generate(three_stage_catalog.definition_for_order(1), None)


def test_short_question_set_is_kept_and_logged(fake_inference, three_stage_catalog, caplog):
    fake_inference.question_sets.append(QuestionSet(questions=[Question(id=1, question="Only one?")]))
    with caplog.at_level("WARNING", logger="interview_stages.question_generator"):
        questions = QuestionGenerator(fake_inference).generate(three_stage_catalog.definition_for_order(1), None)
    assert [question.question for question in questions] == ["Only one?"]
    assert "returned 1 of 2 questions" in caplog.text


def test_duplicate_ids_are_renumbered(fake_inference, three_stage_catalog):
    fake_inference.question_sets.append(
        QuestionSet(questions=[Question(id=7, question="a"), Question(id=7, question="b")])
    )
    questions = QuestionGenerator(fake_inference).generate(three_stage_catalog.definition_for_order(1), None)
    assert [question.id for question in questions] == [1, 2]


def test_options_only_kept_for_multiple_choice():
    text = Question(id=1, question="Explain", type="text", options=["x", "y"])
    assert text.options == []
    choice = Question(id=2, question="Pick", type="multiple_choice", options=["a", "b", "c", "d"])
    assert len(choice.options) == 4
    bare_choice = Question(id=3, question="Pick", type="multiple_choice")
    assert bare_choice.type == "text"


def test_prompt_defaults_for_missing_profile_fields(three_stage_catalog):
    stage = three_stage_catalog.definition_for_order(1)
    task = build_question_task(stage, CandidateProfile(full_name="Asha"))
    assert "- Name: Asha" in task
    assert "- Experience Level: Entry Level" in task
    assert "- Primary Subject: General Knowledge" in task
    assert "- Segment: Education" in task
    assert "- Current Role: Not specified" in task


def test_prompt_without_profile(three_stage_catalog):
    task = build_question_task(three_stage_catalog.definition_for_order(1), None)
    assert "No profile information available." in task
    assert "general teaching aptitude" in task


def test_prompt_focuses_on_primary_subject(three_stage_catalog):
    profile = CandidateProfile.model_validate(
        {"fullName": "Ravi", "primarySubject": "Physics", "skills": "optics, mechanics"}
    )
    task = build_question_task(three_stage_catalog.definition_for_order(1), profile)
    assert "Physics" in task
    assert "- Skills: optics, mechanics" in task
