from types import SimpleNamespace

import pytest

from src.todos.extractor import (
    RESPONSE_SCHEMA,
    TodoExtractionError,
    extract_todos,
    parse_todos,
)


def fake_client(response=None, error=None):
    captured = {}

    def generate_content(**kwargs):
        captured.update(kwargs)
        if error is not None:
            raise error
        return response

    client = SimpleNamespace(models=SimpleNamespace(generate_content=generate_content))
    return client, captured


def test_extract_uses_parsed_payload_and_schema():
    response = SimpleNamespace(
        parsed={"todos": [{"description": "Email the client", "priority": "High"}]},
        text=None,
    )
    client, captured = fake_client(response)

    todos = extract_todos("Alice will email the client.", client=client)

    assert todos == [{"description": "Email the client", "priority": "High"}]
    assert "Alice will email the client." in captured["contents"]
    assert captured["config"]["response_schema"] == RESPONSE_SCHEMA
    assert captured["config"]["response_mime_type"] == "application/json"


def test_extract_falls_back_to_response_text():
    response = SimpleNamespace(
        parsed=None,
        text='{"todos": [{"description": "Ship it", "priority": "Low"}]}',
    )
    client, _ = fake_client(response)

    assert extract_todos("transcript", client=client) == [
        {"description": "Ship it", "priority": "Low"}
    ]


def test_api_errors_become_extraction_errors():
    client, _ = fake_client(error=ConnectionError("quota exceeded"))

    with pytest.raises(TodoExtractionError, match="quota exceeded"):
        extract_todos("transcript", client=client)


@pytest.mark.parametrize(
    "payload",
    ["not json", {"items": []}, {"todos": "none"}, ["todos"]],
)
def test_parse_rejects_malformed_payloads(payload):
    with pytest.raises(TodoExtractionError):
        parse_todos(payload)


def test_parse_skips_non_object_items():
    assert parse_todos({"todos": ["loose string", {"description": "Real"}]}) == [
        {"description": "Real", "priority": None}
    ]
