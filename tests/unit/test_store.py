import pytest

from interview_stages import NotFoundError, Question, QuestionScore, StageResult


def test_create_and_fetch_session(store):
    session = store.create_session("cand-1", 1)
    fetched = store.get_session(session.id)
    assert fetched.candidate_id == "cand-1"
    assert fetched.current_stage_order == 1
    assert fetched.stages_completed == []
    assert fetched.status == "in_progress"
    assert fetched.started_at is not None


def test_missing_session_raises(store):
    with pytest.raises(NotFoundError):
        store.get_session("nope")


def test_stage_result_roundtrip_and_overwrite(store):
    session = store.create_session("cand-1", 1)
    with store.transaction() as tx:
        tx.save_stage_result(
            StageResult(
                session_id=session.id,
                stage_name="Technical Assessment",
                stage_order=1,
                questions=[Question(id=1, question="Pick", type="multiple_choice", options=["a", "b"])],
            )
        )
    first = store.get_stage_result(session.id, 1)
    assert first.questions[0].options == ["a", "b"]
    assert first.answers is None
    assert first.ai_score is None and first.passed is None

    with store.transaction() as tx:
        tx.save_stage_result(
            first.model_copy(
                update={
                    "answers": [1],
                    "ai_score": 64.5,
                    "passed": False,
                    "question_scores": [QuestionScore(question_id=1, score=64.5, feedback="ok")],
                    "completed_at": "2026-01-01T00:00:00+00:00",
                }
            )
        )
    stored = store.list_stage_results(session.id)
    assert len(stored) == 1
    assert stored[0].answers == [1]
    assert stored[0].passed is False
    assert stored[0].question_scores[0].feedback == "ok"
    assert stored[0].created_at == first.created_at


def test_transaction_rolls_back_on_error(store):
    session = store.create_session("cand-1", 1)
    with pytest.raises(RuntimeError):
        with store.transaction() as tx:
            tx.update_session(session.model_copy(update={"current_stage_order": 2}))
            raise RuntimeError("boom")
    assert store.get_session(session.id).current_stage_order == 1


def test_list_sessions_by_candidate(store):
    store.create_session("cand-1", 1)
    store.create_session("cand-2", 1)
    store.create_session("cand-1", 1)
    assert len(store.list_sessions("cand-1")) == 2
    assert len(store.list_sessions()) == 3
