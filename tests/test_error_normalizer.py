from demo_content_agent.llm.errors import build_api_error_message


def test_openai_structured_message_is_prefixed_with_status():
    data = {"error": {"message": "Incorrect API key provided.", "type": "invalid_request_error"}}
    message = build_api_error_message("openai", data, 401, "Unauthorized")
    assert message == "OpenAI API error (401): Incorrect API key provided."


def test_priority_falls_back_to_status_then_reason_then_generic():
    assert build_api_error_message("gemini", {"error": {"status": "PERMISSION_DENIED"}}, 403, "Forbidden") == (
        "Gemini API error (403): PERMISSION_DENIED"
    )
    assert build_api_error_message("gemini", None, 503, "Service Unavailable") == (
        "Gemini API error (503): Service Unavailable"
    )
    assert build_api_error_message("replicate", {}, 0, "") == "Error communicating with the Replicate API."


def test_replicate_detail_and_plain_string_shapes():
    assert build_api_error_message("replicate", {"detail": "Invalid token."}, 401) == (
        "Replicate API error (401): Invalid token."
    )
    assert build_api_error_message("replicate", {"error": "NSFW content detected"}, 0) == "NSFW content detected"


def test_message_is_sanitized_and_bounded():
    data = {"error": {"message": "<b>bad</b>\x07 " + "x" * 1000}}
    message = build_api_error_message("openai", data, 500)

    assert "<b>" not in message
    assert "\x07" not in message
    assert message.startswith("OpenAI API error (500): bad ")
    body = message[len("OpenAI API error (500): "):]
    assert len(body) == 403
    assert body.endswith("...")


def test_normalizer_is_deterministic():
    data = {"error": {"message": "quota exceeded"}}
    assert build_api_error_message("openai", data, 429, "Too Many Requests") == build_api_error_message(
        "openai", data, 429, "Too Many Requests"
    )
