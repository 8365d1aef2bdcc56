# tests/smoke_test_llm_client.py
"""call_chat() 재시도/백오프 smoke test (가짜 클라이언트, 네트워크 미사용)"""
import sys, os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import openai

from services.errors import UpstreamError
from services.llm_client import INITIAL_DELAY_SECONDS, JITTER_SECONDS, MAX_DELAY_SECONDS, call_chat

_URL = "https://api.openai.com/v1/chat/completions"


def _status_error(cls, status, headers=None, body=None):
    response = httpx.Response(status, headers=headers or {}, request=httpx.Request("POST", _URL))
    return cls(f"status {status}", response=response, body=body)


def _completion(text):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


def _client(*effects):
    client = MagicMock()
    client.chat.completions.create.side_effect = list(effects)
    return client


MESSAGES = [{"role": "user", "content": "hi"}]


def test_success_strips_content():
    client = _client(_completion("  [1, 2]  \n"))
    assert call_chat(MESSAGES, "gpt-4o-mini", temperature=0.3, client=client) == "[1, 2]"
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs == {"model": "gpt-4o-mini", "messages": MESSAGES, "temperature": 0.3}
    print("  [PASS] Content returned + temperature forwarded")


def test_gpt5_drops_temperature():
    client = _client(_completion("ok"))
    call_chat(MESSAGES, "gpt-5", temperature=0.3, client=client)
    assert "temperature" not in client.chat.completions.create.call_args.kwargs
    print("  [PASS] gpt-5 omits temperature")


def test_retry_after_header_honored():
    """429 + Retry-After: 2 → 2초 대기 후 재시도"""
    waits = []
    client = _client(
        _status_error(openai.RateLimitError, 429, headers={"retry-after": "2"}),
        _completion("done"),
    )
    assert call_chat(MESSAGES, "gpt-5", client=client, sleep=waits.append) == "done"
    assert waits == [2.0]
    print("  [PASS] Retry-After honored")


def test_exponential_backoff_with_cap():
    waits = []
    client = _client(*[_status_error(openai.InternalServerError, 503) for _ in range(5)], _completion("ok"))
    assert call_chat(MESSAGES, "gpt-5", client=client, sleep=waits.append, max_retries=6) == "ok"
    bases = [INITIAL_DELAY_SECONDS * 2 ** i for i in range(5)]
    bases = [min(b, MAX_DELAY_SECONDS) for b in bases]
    assert len(waits) == 5
    for wait, base in zip(waits, bases):
        assert base <= wait <= base + JITTER_SECONDS, f"{wait} not in [{base}, {base + JITTER_SECONDS}]"
    print("  [PASS] Exponential backoff capped")


def test_backoff_exhausted():
    client = _client(*[_status_error(openai.RateLimitError, 429) for _ in range(3)])
    try:
        call_chat(MESSAGES, "gpt-5", client=client, sleep=lambda s: None, max_retries=2)
        assert False, "Expected UpstreamError"
    except UpstreamError as e:
        assert e.status == 429
        assert "backoff failed after 3 attempts" in str(e)
    assert client.chat.completions.create.call_count == 3
    print("  [PASS] Backoff exhaustion raises UpstreamError")


def test_non_retryable_status():
    body = {"error": {"message": "Invalid model name"}}
    client = _client(_status_error(openai.BadRequestError, 400, body=body))
    try:
        call_chat(MESSAGES, "gpt-x", client=client, sleep=lambda s: None)
        assert False, "Expected UpstreamError"
    except UpstreamError as e:
        assert e.status == 400
        assert str(e) == "HTTP 400 Invalid model name"
    assert client.chat.completions.create.call_count == 1
    print("  [PASS] 4xx surfaces immediately")


def test_timeout_maps_to_504():
    client = _client(openai.APITimeoutError(request=httpx.Request("POST", _URL)))
    try:
        call_chat(MESSAGES, "gpt-5", client=client)
        assert False, "Expected UpstreamError"
    except UpstreamError as e:
        assert e.status == 504
        assert "timeout" in str(e).lower()
    print("  [PASS] Timeout mapped to 504")


def test_empty_choices():
    client = _client(SimpleNamespace(choices=[]))
    assert call_chat(MESSAGES, "gpt-5", client=client) == ""
    print("  [PASS] Empty choices → empty string")


if __name__ == "__main__":
    print("Running LLM client smoke tests...")
    test_success_strips_content()
    test_gpt5_drops_temperature()
    test_retry_after_header_honored()
    test_exponential_backoff_with_cap()
    test_backoff_exhausted()
    test_non_retryable_status()
    test_timeout_maps_to_504()
    test_empty_choices()
    print("\nAll LLM client tests passed!")
