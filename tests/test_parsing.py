import json

from parsing import ReplyStatus, extract_json_text, parse_structured_reply


def test_extracts_json_tagged_fence():
    assert extract_json_text('prefix ```json\n{"a": 1}\n``` suffix') == '{"a": 1}'


def test_extracts_untagged_fence():
    assert extract_json_text('```\n{"a": 1}\n```') == '{"a": 1}'


def test_prefers_json_tagged_fence_over_earlier_block():
    text = '```\nnot this\n```\n```json\n{"a": 1}\n```'
    assert extract_json_text(text) == '{"a": 1}'


def test_unfenced_text_is_used_whole():
    assert extract_json_text('  {"a": 1}\n') == '{"a": 1}'


def test_fenced_result_equals_inner_json(fenced_reply, sample_analysis):
    reply = parse_structured_reply(fenced_reply)
    assert reply.status is ReplyStatus.SUCCESS
    assert reply.to_payload() == sample_analysis


def test_plain_json_result(sample_analysis):
    reply = parse_structured_reply(json.dumps(sample_analysis))
    assert reply.ok
    assert reply.data == sample_analysis


def test_unknown_keys_survive(sample_analysis):
    sample_analysis["followUp"] = "2 weeks"
    reply = parse_structured_reply(json.dumps(sample_analysis))
    assert reply.data["followUp"] == "2 weeks"


def test_invalid_json_is_soft_failure():
    text = "```json\n{not json}\n```"
    reply = parse_structured_reply(text)
    assert reply.status is ReplyStatus.SOFT_FAILURE
    assert reply.to_payload() == {"rawResponse": text, "parseError": True}


def test_non_object_json_is_soft_failure():
    reply = parse_structured_reply("[1, 2, 3]")
    assert not reply.ok
    assert reply.to_payload() == {"rawResponse": "[1, 2, 3]", "parseError": True}


def test_missing_findings_is_soft_failure(sample_analysis):
    del sample_analysis["findings"]
    text = json.dumps(sample_analysis)
    reply = parse_structured_reply(text)

    assert reply.status is ReplyStatus.SOFT_FAILURE
    payload = reply.to_payload()
    assert payload["rawResponse"] == text
    assert payload["parseError"] is True
    assert any(e.startswith("findings") for e in payload["validationErrors"])


def test_partial_nested_fields_are_accepted():
    data = {"findings": [], "overallSeverity": "Normal", "summary": "No abnormality."}
    reply = parse_structured_reply(json.dumps(data))
    assert reply.ok
    assert reply.data == data


def test_deeply_nested_json_is_soft_failure():
    text = "[" * 100000
    reply = parse_structured_reply(text)
    assert reply.status is ReplyStatus.SOFT_FAILURE
    assert reply.to_payload() == {"rawResponse": text, "parseError": True}


def test_fractional_score_and_null_leaves_are_accepted(sample_analysis):
    sample_analysis["severityScore"] = 72.5
    sample_analysis["disclaimer"] = None
    sample_analysis["recommendations"]["additionalTests"] = None
    sample_analysis["findings"][0]["confidence"] = "0.9"

    reply = parse_structured_reply(json.dumps(sample_analysis))
    assert reply.status is ReplyStatus.SUCCESS
    assert reply.data == sample_analysis


def test_null_nested_objects_are_accepted():
    data = {
        "scanAnalysis": None,
        "findings": [],
        "overallSeverity": "Normal",
        "recommendations": {"specialistReferral": None, "suggestedMedications": None},
        "summary": "No abnormality.",
    }
    assert parse_structured_reply(json.dumps(data)).ok
