import json

import pytest

from errors import EmptyResponseError, ParseError, SchemaError
from models.report import DiscoveryPayload, WritingPayload
from tools.parsing import (
    clean_json_text,
    extract_json,
    parse_stage_response,
    required_fields,
    validate_shape,
)

PAYLOAD = {"subject": "X", "keyFacts": ["a", "b"], "tweet": {"text": "t", "url": "u", "date": "d"}}


@pytest.mark.parametrize(
    "template",
    [
        "{json}",
        "Sure! Here is the result: {json} Let me know if you need more.",
        "```json\n{json}\n```",
        "```\n{json}\n```",
        "Result:\n```json\n{json}\n```\nDone.",
    ],
)
def test_extract_json_ignores_prose_and_fences(template: str) -> None:
    raw = template.replace("{json}", json.dumps(PAYLOAD))
    assert extract_json(raw) == PAYLOAD


def test_extract_json_keeps_braces_inside_strings() -> None:
    payload = {"body": "Use {curly} braces {inside} text"}
    assert extract_json(f"prefix {json.dumps(payload)} suffix") == payload


def test_clean_json_text_strips_fences_without_braces() -> None:
    assert clean_json_text("```json\n[1, 2]\n```") == "[1, 2]"
    assert extract_json("```json\n[1, 2]\n```") == [1, 2]


def test_extract_json_raises_parse_error_with_stage() -> None:
    with pytest.raises(ParseError) as exc_info:
        extract_json("I could not find anything.", stage="writing")
    assert exc_info.value.stage == "writing"
    assert str(exc_info.value).startswith("[writing]")


def test_extract_json_trailing_brace_breaks_payload() -> None:
    with pytest.raises(ParseError):
        extract_json('{"body": "x"} and then a stray }')


def test_validate_shape_rejects_non_object() -> None:
    with pytest.raises(SchemaError, match="Expected a JSON object"):
        validate_shape([1, 2], ["body"])


def test_validate_shape_reports_missing_fields() -> None:
    with pytest.raises(SchemaError, match="keyFacts"):
        validate_shape({"subject": "x", "tweet": {}}, required_fields(DiscoveryPayload), stage="discovery")


def test_required_fields_include_legacy_names() -> None:
    fields = required_fields(DiscoveryPayload)
    assert ("subject", "germanSubject") in fields
    assert ("keyFacts", "key_facts") in fields
    assert ("tweet",) in fields
    assert required_fields(WritingPayload) == [("body", "germanBody")]


def test_parse_stage_response_accepts_legacy_field_names() -> None:
    raw = json.dumps({
        "germanSubject": "Neuer Start",
        "keyFacts": ["a"],
        "tweet": {"text": "t", "url": "https://x.com/elonmusk", "date": "1h"},
    })
    payload = parse_stage_response(raw, DiscoveryPayload, stage="discovery")
    assert payload.subject == "Neuer Start"
    assert payload.key_facts == ["a"]

    writing = parse_stage_response('{"germanBody": "full text"}', WritingPayload, stage="writing")
    assert writing.body == "full text"


@pytest.mark.parametrize("text", [None, "", "   \n  "])
def test_parse_stage_response_empty_text(text) -> None:
    with pytest.raises(EmptyResponseError) as exc_info:
        parse_stage_response(text, WritingPayload, stage="writing")
    assert exc_info.value.stage == "writing"


def test_parse_stage_response_wrong_types_raise_schema_error() -> None:
    raw = json.dumps({"subject": "x", "keyFacts": "not a list", "tweet": {"text": "t", "url": "u", "date": "d"}})
    with pytest.raises(SchemaError, match="key_facts|keyFacts"):
        parse_stage_response(raw, DiscoveryPayload, stage="discovery")


def test_parse_stage_response_missing_tweet_fields() -> None:
    raw = json.dumps({"subject": "x", "keyFacts": [], "tweet": {"text": "t"}})
    with pytest.raises(SchemaError):
        parse_stage_response(raw, DiscoveryPayload)
