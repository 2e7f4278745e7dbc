"""
Tailscale CLI(tailscale.exe) 래퍼
"""

import subprocess
from typing import List, Optional, Sequence

from .logger import get_logger
from .system import run_command


class AgentCLI:
    """tailscale CLI 호출 클래스"""

    def __init__(self, executable: str = "tailscale", up_timeout: Optional[float] = 120):
        self.executable = executable
        self.up_timeout = up_timeout
        self.logger = get_logger()

    def up_command(self, auth_key: str, tags: Sequence[str]) -> List[str]:
        cmd = [self.executable, "up", "--unattended", f"--auth-key={auth_key}"]
        # 빈 --advertise-tags 는 태그를 지워버리므로 태그가 있을 때만 추가
        if tags:
            cmd.append(f"--advertise-tags={','.join(tags)}")
        return cmd

    def up(self, auth_key: str, tags: Sequence[str]) -> int:
        """무인 모드 인증, 종료 코드 반환"""
        result = run_command(self.up_command(auth_key, tags), timeout=self.up_timeout)
        if result.returncode != 0:
            self.logger.error(f"tailscale up failed: {(result.stderr or result.stdout).strip()}")
        return result.returncode

    def status_text(self) -> Optional[str]:
        """tailscale status 출력 (실패 시 None)"""
        try:
            result = run_command([self.executable, "status"], timeout=30)
        except (OSError, subprocess.SubprocessError) as e:
            self.logger.debug(f"tailscale status unavailable: {e}")
            return None

        if result.returncode != 0:
            return None
        return result.stdout
