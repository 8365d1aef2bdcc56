import os
import random
import time
import logging
from typing import Callable, Dict, List, Optional

import streamlit as st
from openai import OpenAI, OpenAIError, APIConnectionError, APIStatusError, APITimeoutError
from dotenv import load_dotenv

from services.errors import UpstreamError

load_dotenv()

logger = logging.getLogger(__name__)

# OpenAI 설정 (.env)
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL") or None

# 업스트림 호출 한도 (프록시 55초 상한과 동일)
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "55"))
MAX_RETRIES = int(os.getenv("LLM_MAX_RETRIES", "6"))
INITIAL_DELAY_SECONDS = 1.5
MAX_DELAY_SECONDS = 12.0
JITTER_SECONDS = 0.4

# ── 기능별 모델 ──
DEFAULT_MODEL = "gpt-5"                     # Verbatims (테마 추출/편집)
MODEL_SUMMARY = "gpt-4o-mini"               # Memos (topline 요약)
AVAILABLE_MODELS = {
    "gpt-5": "GPT-5 (Best quality)",
    "gpt-5-mini": "GPT-5 mini (Faster)",
    "gpt-4o-mini": "GPT-4o-mini (Fast & cheap)",
}

_openai_client = None


def _is_gpt5(model: str) -> bool:
    """gpt-5 계열은 temperature 파라미터를 받지 않음."""
    return model.startswith("gpt-5")


def has_api_key() -> bool:
    return bool(OPENAI_API_KEY)


def _get_openai_client() -> OpenAI:
    """OpenAI 클라이언트 싱글턴 (재시도는 call_chat에서 직접 처리)."""
    global _openai_client
    if _openai_client is not None:
        return _openai_client

    if not OPENAI_API_KEY:
        raise UpstreamError("OpenAI API key (OPENAI_API_KEY) not found in .env file.", status=401)

    _openai_client = OpenAI(
        api_key=OPENAI_API_KEY,
        base_url=OPENAI_BASE_URL,
        timeout=LLM_TIMEOUT_SECONDS,
        max_retries=0,
    )
    return _openai_client


def init_client():
    """UI 진입 시 클라이언트 초기화. 키가 없으면 페이지 중단."""
    if not OPENAI_API_KEY:
        st.error("OpenAI API key (OPENAI_API_KEY) not found in .env file.")
        st.stop()

    try:
        return _get_openai_client()
    except (UpstreamError, OpenAIError) as e:
        st.error(f"Failed to initialize OpenAI client: {e}")
        st.stop()


def _retry_after_seconds(error: APIStatusError) -> Optional[float]:
    headers = getattr(error.response, "headers", None) or {}
    value = headers.get("retry-after")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except (TypeError, ValueError):
        return None


def _upstream_message(error: APIStatusError) -> str:
    """업스트림 에러 본문에서 메시지 추출 (error.message > message > SDK 메시지)"""
    body = error.body
    if isinstance(body, dict):
        inner = body.get("error")
        if isinstance(inner, dict) and inner.get("message"):
            return str(inner["message"])
        if body.get("message"):
            return str(body["message"])
    return error.message


def call_chat(messages: List[Dict[str, str]], model: str = DEFAULT_MODEL, *,
              temperature: Optional[float] = None,
              max_retries: int = MAX_RETRIES,
              client: Optional[OpenAI] = None,
              sleep: Callable[[float], None] = time.sleep) -> str:
    """chat/completions 호출: 429/5xx는 지수 백오프 후 재시도.

    Retry-After 헤더가 있으면 그 값을 따르고, 없으면 1.5초부터 두 배씩
    (최대 12초) + 지터.

    Args:
        messages: [{"role": ..., "content": ...}, ...]
        model: 모델명
        temperature: gpt-5 계열에는 전달하지 않음
        max_retries: 재시도 횟수
        client: 테스트용 클라이언트 주입
        sleep: 테스트용 sleep 주입

    Returns:
        choices[0].message.content 텍스트

    Raises:
        UpstreamError: HTTP 실패, 타임아웃, 재시도 소진
    """
    client = client or _get_openai_client()
    kwargs = {"model": model, "messages": messages}
    if temperature is not None and not _is_gpt5(model):
        kwargs["temperature"] = temperature

    attempt = 0
    delay = INITIAL_DELAY_SECONDS
    while True:
        try:
            response = client.chat.completions.create(**kwargs)
        except APITimeoutError as e:
            raise UpstreamError(
                f"Upstream timeout: model did not respond within {LLM_TIMEOUT_SECONDS:.0f}s.",
                status=504,
            ) from e
        except APIConnectionError as e:
            raise UpstreamError(f"Request failed: {e}", status=502) from e
        except APIStatusError as e:
            status = e.status_code
            if status != 429 and status < 500:
                raise UpstreamError(_upstream_message(e), status=status) from e

            attempt += 1
            if attempt > max_retries:
                raise UpstreamError(
                    f"backoff failed after {attempt} attempts: {_upstream_message(e)}",
                    status=status,
                ) from e

            retry_after = _retry_after_seconds(e)
            wait = retry_after if retry_after is not None else delay + random.uniform(0, JITTER_SECONDS)
            logger.warning(f"Backoff ({status}) attempt {attempt}. Waiting {wait:.1f}s")
            sleep(wait)
            delay = min(MAX_DELAY_SECONDS, delay * 2)
            continue

        if not response.choices:
            return ""
        content = response.choices[0].message.content
        return (content or "").strip()
