from __future__ import annotations

import pytest
from pydantic import ValidationError

from ollama_client.models import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    ChatTool,
    CreateModelRequest,
    GenerateRequest,
    ListModelsResponse,
    Options,
    PullProgress,
    PullStatus,
    PushProgress,
    PushStatus,
    Role,
    ShowModelResponse,
    ToolFunction,
)


def test_chat_request_payload_omits_absent_fields():
    request = ChatRequest(
        model="llama3.2",
        messages=[ChatMessage.system("be brief"), ChatMessage.user("hi", images=["aGk="])],
        options=Options(temperature=0.1, format="json"),
        stream=False,
        think="low",
    )

    assert request.to_payload() == {
        "model": "llama3.2",
        "messages": [
            {"role": "system", "content": "be brief"},
            {"role": "user", "content": "hi", "images": ["aGk="]},
        ],
        "options": {"temperature": 0.1},
        "format": "json",
        "stream": False,
        "think": "low",
    }


def test_chat_request_requires_model_and_messages():
    with pytest.raises(ValidationError):
        ChatRequest(model="", messages=[ChatMessage.user("hi")])
    with pytest.raises(ValidationError):
        ChatRequest(model="llama3.2", messages=[])


def test_request_messages_reject_unknown_fields():
    with pytest.raises(ValidationError, match="contnet"):
        ChatRequest(model="llama3.2", messages=[{"role": "user", "contnet": "hi"}])
    with pytest.raises(ValidationError, match="contnet"):
        CreateModelRequest(model="mario", messages=[{"role": "user", "contnet": "hi"}])

    request = ChatRequest(model="llama3.2", messages=[{"role": "user", "content": "hi"}])
    assert request.messages[0].content == "hi"


def test_chat_request_with_tools():
    tool = ChatTool(function=ToolFunction(name="get_weather", parameters={"type": "object"}))
    request = ChatRequest(model="llama3.2", messages=[ChatMessage.user("weather?")], tools=[tool])

    assert request.to_payload()["tools"] == [
        {"type": "function", "function": {"name": "get_weather", "parameters": {"type": "object"}}}
    ]


def test_chat_response_ignores_unknown_fields_and_reads_tool_calls():
    response = ChatResponse.model_validate(
        {
            "model": "llama3.2",
            "message": {
                "role": "assistant",
                "content": "",
                "tool_calls": [{"function": {"name": "get_weather", "arguments": {"city": "Paris"}}}],
            },
            "done": True,
            "brand_new_field": 1,
        }
    )

    assert response.message.role is Role.ASSISTANT
    assert response.message.tool_calls[0].function.arguments == {"city": "Paris"}
    assert response.done
    assert response.tokens_per_second is None


def test_generate_request_defaults_to_streaming():
    payload = GenerateRequest(model="llama3.2", prompt="Why is the sky blue?", raw=True).to_payload()
    assert payload == {"model": "llama3.2", "prompt": "Why is the sky blue?", "stream": True, "raw": True}


def test_create_request_keeps_parameter_types_and_alias():
    request = CreateModelRequest(
        model="mario",
        from_="llama3.2",
        system="You are Mario.",
        parameters={"temperature": 0.7, "num_ctx": 4096, "stop": ["<|end|>", "<|user|>"], "penalize_newline": True},
    )

    assert request.to_payload() == {
        "model": "mario",
        "from": "llama3.2",
        "system": "You are Mario.",
        "parameters": {
            "temperature": 0.7,
            "num_ctx": 4096,
            "stop": ["<|end|>", "<|user|>"],
            "penalize_newline": True,
        },
        "stream": False,
    }


def test_create_request_rejects_structured_parameters():
    with pytest.raises(ValidationError):
        CreateModelRequest(model="mario", parameters={"nested": {"a": 1}})


@pytest.mark.parametrize(
    ("status", "state", "done"),
    [
        ("pulling manifest", PullStatus.PULLING, False),
        ("verifying sha256 digest", PullStatus.VERIFYING, False),
        ("writing manifest", PullStatus.WRITING, False),
        ("success", PullStatus.SUCCESS, True),
        ("done", PullStatus.DONE, True),
        ("removing any unused layers", PullStatus.UNKNOWN, False),
    ],
)
def test_pull_progress_states(status, state, done):
    progress = PullProgress(status=status)
    assert progress.state is state
    assert progress.done is done


def test_push_progress_fraction():
    progress = PushProgress(status="pushing sha256:abc", total=200, completed=50)
    assert progress.state is PushStatus.PUSHING
    assert progress.fraction == 0.25
    assert PushProgress(status="pushing", progress=0.5).fraction == 0.5
    assert PushProgress(status="queued").fraction is None


def test_list_and_show_responses():
    listing = ListModelsResponse.model_validate(
        {"models": [{"name": "llama3.2:latest", "size": 2019393189, "details": {"family": "llama"}}]}
    )
    assert listing.names() == ["llama3.2:latest"]
    assert listing.models[0].details.family == "llama"

    shown = ShowModelResponse.model_validate({"capabilities": ["completion", "tools"], "model_info": {"a": 1}})
    assert shown.supports("tools")
    assert not shown.supports("vision")
