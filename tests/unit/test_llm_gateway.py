import json

import pytest

from config import LlmRoute
from interview_stages import (
    EvaluationOutcome,
    ExternalServiceError,
    GatewayInferenceClient,
    Prompt,
    QuestionSet,
    QuotaExhaustedError,
    RateLimitedError,
)
from llm_gateway import LlmGatewayError, LlmRateLimitedError, Tool, call


class FakeResponse:
    def __init__(self, status_code, body):
        self.status_code = status_code
        self._body = body

    def json(self):
        return self._body

    @property
    def text(self):
        return json.dumps(self._body)


class FakeHttpClient:
    def __init__(self, responses):
        self.responses = list(responses)
        self.requests = []

    def post(self, url, *, json, headers, timeout):
        self.requests.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        return self.responses.pop(0)


def _route(**overrides):
    data = dict(
        name="test",
        base_url="https://llm.example",
        endpoint="/chat/completions",
        model="test-model",
        timeout_s=5,
        max_retries=1,
    )
    data.update(overrides)
    return LlmRoute(**data)


def _tool_response(arguments):
    return FakeResponse(
        200,
        {"choices": [{"message": {"tool_calls": [{"function": {"name": "t", "arguments": json.dumps(arguments)}}]}}]},
    )


def test_call_forces_tool_and_parses_arguments():
    client = FakeHttpClient([_tool_response({"questions": [{"id": 1, "question": "Why?", "expectedPoints": ["x"]}]})])
    result = call(
        "Generate",
        QuestionSet,
        cfg=_route(),
        tool=Tool(name="generate_interview_questions", description="d"),
        system="sys",
        client=client,
    )
    assert result.questions[0].expected_points == ["x"]
    sent = client.requests[0]
    assert sent["url"] == "https://llm.example/chat/completions"
    assert sent["json"]["tool_choice"] == {"type": "function", "function": {"name": "generate_interview_questions"}}
    assert sent["json"]["messages"][0] == {"role": "system", "content": "sys"}
    assert sent["json"]["tools"][0]["function"]["name"] == "generate_interview_questions"


def test_invalid_arguments_are_retried_with_hint():
    client = FakeHttpClient([_tool_response({"questions": "nope"}), _tool_response({"questions": []})])
    result = call("Generate", QuestionSet, cfg=_route(), tool=Tool(name="t"), client=client)
    assert result.questions == []
    retry_messages = client.requests[1]["json"]["messages"]
    assert "failed validation" in retry_messages[-1]["content"]


def test_rate_limit_status_is_mapped():
    client = FakeHttpClient([FakeResponse(429, {"error": "slow down"})])
    with pytest.raises(LlmRateLimitedError):
        call("x", QuestionSet, cfg=_route(), tool=Tool(name="t"), client=client)


def test_missing_tool_call_is_gateway_error():
    client = FakeHttpClient([FakeResponse(200, {"choices": [{"message": {"content": ""}}]})])
    with pytest.raises(LlmGatewayError):
        call("x", QuestionSet, cfg=_route(), tool=Tool(name="t"), client=client)


def test_api_key_header_from_env(monkeypatch):
    monkeypatch.setenv("TEST_LLM_KEY", "secret")
    client = FakeHttpClient([_tool_response({"questions": []})])
    call("x", QuestionSet, cfg=_route(api_key_env="TEST_LLM_KEY"), tool=Tool(name="t"), client=client)
    assert client.requests[0]["headers"]["Authorization"] == "Bearer secret"


@pytest.mark.parametrize(
    "status, error_type",
    [(429, RateLimitedError), (402, QuotaExhaustedError), (500, ExternalServiceError)],
)
def test_inference_client_translates_gateway_errors(status, error_type):
    client = FakeHttpClient([FakeResponse(status, {})])
    inference = GatewayInferenceClient({EvaluationOutcome: _route()}, client=client)
    with pytest.raises(error_type):
        inference.complete(Prompt(system="s", task="t", tool_name="evaluate_interview_answers"), EvaluationOutcome)


def test_inference_client_without_route():
    inference = GatewayInferenceClient({}, client=FakeHttpClient([]))
    with pytest.raises(ExternalServiceError):
        inference.complete(Prompt(system="s", task="t", tool_name="x"), QuestionSet)
