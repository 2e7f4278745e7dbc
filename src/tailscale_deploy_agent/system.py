"""
외부 명령 실행 및 권한 확인
"""

import ctypes
import os
import subprocess
import sys
from typing import List, Optional, Sequence

from .logger import get_logger

SECRET_FLAGS = ("--auth-key=", "--authkey=")


def redact_command(args: Sequence[str]) -> List[str]:
    """로그용 명령줄 (인증 키 마스킹)"""
    redacted = []
    for arg in args:
        for flag in SECRET_FLAGS:
            if arg.startswith(flag):
                arg = f"{flag}***"
                break
        redacted.append(arg)
    return redacted


def run_command(args: Sequence[str], timeout: Optional[float] = None) -> subprocess.CompletedProcess:
    """외부 명령 실행 (종료 코드는 호출자가 판단)"""
    logger = get_logger()
    logger.debug(f"Running: {' '.join(redact_command(args))}")
    result = subprocess.run(
        list(args),
        capture_output=True,
        text=True,
        timeout=timeout
    )
    logger.debug(f"Exit code {result.returncode}: {' '.join(redact_command(args[:2]))}")
    return result


def is_elevated() -> bool:
    """관리자(또는 root) 권한 여부"""
    if sys.platform == "win32":
        try:
            return bool(ctypes.windll.shell32.IsUserAnAdmin())
        except (AttributeError, OSError):
            return False
    return os.geteuid() == 0
