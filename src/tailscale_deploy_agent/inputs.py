"""
입력 해석 모듈
인증 키/태그를 명시 입력 > 설정 기본값 > 대화형 입력 순으로 결정
드라이버 실행 전에 완전한 ConnectRequest 를 만든다
"""

import re
from typing import Callable, Iterable, Optional, Tuple
from rich.console import Console
from rich.prompt import Prompt

from .config import InstallConfig
from .errors import InputError
from .logger import get_logger
from .models import ConnectRequest

console = Console()

TAG_PREFIX = "tag:"
_SEPARATORS = re.compile(r"[,\s]+")


def split_tags(raw: Optional[str]) -> Tuple[str, ...]:
    """쉼표/공백으로 구분된 태그 문자열 분리"""
    if not raw:
        return ()
    return tuple(part for part in _SEPARATORS.split(raw) if part)


def normalize_tags(tags: Iterable[str]) -> Tuple[str, ...]:
    """모든 태그에 tag: 접두사 부여, 빈 값/중복 제거 (순서 유지)"""
    normalized = []
    for tag in tags:
        tag = (tag or "").strip()
        if not tag or tag == TAG_PREFIX:
            continue
        if not tag.startswith(TAG_PREFIX):
            tag = TAG_PREFIX + tag
        if tag not in normalized:
            normalized.append(tag)
    return tuple(normalized)


def _rich_prompt(message: str, password: bool = False) -> str:
    return Prompt.ask(message, password=password, default="", show_default=False, console=console)


class InputResolver:
    """connect 입력 해석 클래스"""

    def __init__(self, config: InstallConfig,
                 prompt: Callable[..., str] = _rich_prompt,
                 max_attempts: Optional[int] = None):
        self.config = config
        self.prompt = prompt
        self.max_attempts = max_attempts
        self.logger = get_logger()

    def resolve_auth_key(self, explicit: Optional[str] = None) -> str:
        if explicit and explicit.strip():
            self.logger.debug("Using auth key from command line")
            return explicit.strip()
        if self.config.auth.auth_key.strip():
            self.logger.debug("Using auth key from configuration")
            return self.config.auth.auth_key.strip()

        attempts = 0
        while self.max_attempts is None or attempts < self.max_attempts:
            attempts += 1
            try:
                value = self.prompt("Tailscale auth key", password=True)
            except EOFError as e:
                raise InputError("Auth key is required but no interactive input is available") from e
            if value and value.strip():
                self.logger.debug("Using auth key from interactive input")
                return value.strip()
            console.print("[yellow]인증 키는 비워둘 수 없습니다.[/yellow]")
        raise InputError("Auth key is required")

    def resolve_tags(self, explicit: Iterable[str] = ()) -> Tuple[str, ...]:
        explicit_tags = tuple(t for raw in explicit for t in split_tags(raw))
        if explicit_tags:
            return normalize_tags(explicit_tags)
        if self.config.auth.tags:
            return normalize_tags(self.config.auth.tags)

        try:
            raw = self.prompt("ACL tags (comma separated, optional)")
        except EOFError:
            return ()
        return normalize_tags(split_tags(raw))

    def resolve_connect(self, auth_key: Optional[str] = None,
                        tags: Iterable[str] = ()) -> ConnectRequest:
        """connect 요청 생성"""
        request = ConnectRequest(
            auth_key=self.resolve_auth_key(auth_key),
            tags=self.resolve_tags(tags),
        )
        self.logger.info(f"Resolved connect request with tags: {','.join(request.tags) or '(none)'}")
        return request
