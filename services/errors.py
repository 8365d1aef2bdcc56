"""Theme coder 예외 분류.

- InputError: 네트워크 호출 전에 잡히는 사용자 입력 문제
- UpstreamError: 모델 API 호출 실패 (재시도 소진, 타임아웃 포함)
- ResultParseError: 모델 응답에서 JSON을 복구하지 못함
"""

from typing import Optional


class ThemeCoderError(Exception):
    pass


class InputError(ThemeCoderError):
    pass


class EditRequestError(InputError):
    pass


class UpstreamError(ThemeCoderError):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
        self.message = message

    def __str__(self) -> str:
        return f"HTTP {self.status or ''} {self.message}".replace("  ", " ").strip()


class ResultParseError(ThemeCoderError):
    def __init__(self, message: str, raw: Optional[str] = None):
        super().__init__(message)
        self.raw = raw
