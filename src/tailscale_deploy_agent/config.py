"""
설정 관리 모듈
YAML/JSON 기반 설정 파일 로드 및 기본값 제공
설정은 프로세스 시작 시 한 번 생성되며 이후 변경되지 않는다
"""

import os
import re
import json
import yaml
from dataclasses import dataclass, field, fields, asdict
from typing import Any, Dict, Optional, Tuple

from .logger import DEFAULT_LOG_DIR


def _env_dir(variable: str, fallback: str, *parts: str) -> str:
    return os.path.join(os.environ.get(variable, fallback), *parts)


DEFAULT_MSI_PROPERTIES = (
    "TS_ADMINCONSOLE=hide",
    "TS_NETWORKDEVICES=hide",
    "TS_NOLAUNCH=true",
    "TS_INSTALLUPDATES=always",
    "TS_UNATTENDEDMODE=always",
    "TS_ALLOWINCOMINGCONNECTIONS=always",
)


@dataclass(frozen=True)
class PathsConfig:
    """파일 시스템 경로 설정"""
    install_dir: str = field(
        default_factory=lambda: _env_dir("ProgramFiles", r"C:\Program Files", "Tailscale")
    )
    temp_dir: str = field(
        default_factory=lambda: os.environ.get("TEMP", os.environ.get("TMPDIR", "/tmp"))
    )
    state_dirs: Tuple[str, ...] = field(
        default_factory=lambda: (
            _env_dir("ProgramData", r"C:\ProgramData", "Tailscale"),
            _env_dir("LOCALAPPDATA", os.path.expanduser("~/AppData/Local"), "Tailscale"),
        )
    )


@dataclass(frozen=True)
class PackageConfig:
    """설치 패키지 설정"""
    download_base_url: str = "https://pkgs.tailscale.com"
    latest_alias: str = "tailscale-setup-latest-amd64.msi"
    installer_pattern: str = "tailscale-setup-*.msi"
    properties: Tuple[str, ...] = DEFAULT_MSI_PROPERTIES
    msiexec: str = "msiexec"
    download_timeout: int = 60


@dataclass(frozen=True)
class ServiceConfig:
    """Tailscale 서비스 설정"""
    name: str = "Tailscale"
    process_names: Tuple[str, ...] = ("tailscale-ipn.exe", "tailscaled.exe")
    start_timeout: float = 15
    poll_interval: float = 1
    settle_interval: float = 2


@dataclass(frozen=True)
class AuthConfig:
    """인증 설정"""
    auth_key: str = ""
    tags: Tuple[str, ...] = ()
    executable: str = field(
        default_factory=lambda: _env_dir("ProgramFiles", r"C:\Program Files", "Tailscale", "tailscale.exe")
    )
    up_timeout: int = 120


@dataclass(frozen=True)
class AgentConfig:
    """에이전트 설정"""
    log_dir: str = DEFAULT_LOG_DIR
    log_level: str = "INFO"
    rollback_on_failure: bool = False


_SECTIONS = {
    "paths": PathsConfig,
    "package": PackageConfig,
    "service": ServiceConfig,
    "auth": AuthConfig,
    "agent": AgentConfig,
}


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# 문자열 하나로 주어져도 분리하지 않는 경로 목록 (경로에 공백 포함 가능)
_PATH_LISTS = {"state_dirs"}
_LIST_SEPARATORS = re.compile(r"[,\s]+")
_OPTIONAL_STRINGS = {"auth_key"}


def _coerce(where: str, name: str, expected, value):
    """YAML 값 하나를 필드 타입에 맞게 검증/변환 (잘못된 값은 ValueError)"""
    if expected is bool:
        if not isinstance(value, bool):
            raise ValueError(f"{where}: expected true/false, got {value!r}")
        return value

    if expected in (int, float):
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            raise ValueError(f"{where}: expected a positive number, got {value!r}")
        return value

    if expected is str:
        if not isinstance(value, str):
            raise ValueError(f"{where}: expected a string, got {value!r}")
        # 빈 경로는 현재 디렉토리('.')가 되므로 허용하지 않음
        if not value.strip() and name not in _OPTIONAL_STRINGS:
            raise ValueError(f"{where}: must not be empty")
        return value

    # Tuple[str, ...]
    if isinstance(value, str):
        if name in _PATH_LISTS:
            items = (value,) if value.strip() else ()
        else:
            items = tuple(part for part in _LIST_SEPARATORS.split(value) if part)
    elif isinstance(value, (list, tuple)):
        items = tuple(value)
    else:
        raise ValueError(f"{where}: expected a list, got {value!r}")

    for item in items:
        if not isinstance(item, str) or not item.strip():
            raise ValueError(f"{where}: list entries must be non-empty strings, got {item!r}")
    return items


def _build_section(section: str, cls, data: Optional[Dict[str, Any]]):
    """알려진 키만 골라 검증 후 섹션 생성 (null 은 기본값 사용)"""
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ValueError(f"{section}: expected a mapping, got {data!r}")

    kwargs = {}
    types = {f.name: f.type for f in fields(cls)}
    for key, value in data.items():
        if key not in types or value is None:
            continue
        kwargs[key] = _coerce(f"{section}.{key}", key, types[key], value)

    level = kwargs.get("log_level")
    if level is not None and level.upper() not in LOG_LEVELS:
        raise ValueError(f"{section}.log_level: expected one of {', '.join(LOG_LEVELS)}, got {level!r}")
    return cls(**kwargs)


@dataclass(frozen=True)
class InstallConfig:
    """전체 설정 (불변)"""
    paths: PathsConfig = field(default_factory=PathsConfig)
    package: PackageConfig = field(default_factory=PackageConfig)
    service: ServiceConfig = field(default_factory=ServiceConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    agent: AgentConfig = field(default_factory=AgentConfig)
    source_path: Optional[str] = field(default=None, compare=False)

    DEFAULT_CONFIG_PATHS = (
        _env_dir("ProgramData", r"C:\ProgramData", "TailscaleDeployAgent", "config.yaml"),
        "~/.tailscale-deploy-agent/config.yaml",
        "./config.yaml",
    )

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source_path: Optional[str] = None) -> "InstallConfig":
        """딕셔너리에서 설정 생성"""
        if not isinstance(data, dict):
            raise ValueError(f"Configuration must be a mapping, got {type(data).__name__}")
        sections = {
            name: _build_section(name, section_cls, data.get(name))
            for name, section_cls in _SECTIONS.items()
        }
        return cls(source_path=source_path, **sections)

    @classmethod
    def from_file(cls, path: str) -> "InstallConfig":
        """설정 파일 로드"""
        path = os.path.expanduser(path)
        with open(path, 'r', encoding='utf-8') as f:
            if path.endswith('.json'):
                data = json.load(f)
            else:
                data = yaml.safe_load(f) or {}
        return cls.from_dict(data, source_path=path)

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "InstallConfig":
        """명시 경로 또는 기본 경로에서 설정 로드 (없으면 기본값)"""
        if config_path:
            return cls.from_file(config_path)
        for path in cls.DEFAULT_CONFIG_PATHS:
            expanded_path = os.path.expanduser(path)
            if os.path.exists(expanded_path):
                return cls.from_file(expanded_path)
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        """딕셔너리로 변환"""
        data = {}
        for name in _SECTIONS:
            section = asdict(getattr(self, name))
            data[name] = {
                key: list(value) if isinstance(value, tuple) else value
                for key, value in section.items()
            }
        return data

    def save(self, path: str):
        """설정 파일 저장"""
        save_path = os.path.expanduser(path)
        directory = os.path.dirname(save_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with open(save_path, 'w', encoding='utf-8') as f:
            if save_path.endswith('.json'):
                json.dump(self.to_dict(), f, indent=2)
            else:
                yaml.safe_dump(self.to_dict(), f, default_flow_style=False, allow_unicode=True)


SAMPLE_CONFIG = """# Tailscale Deploy Agent Configuration File
# 이 파일을 복사하여 config.yaml로 사용하세요

# 파일 시스템 경로
paths:
  install_dir: "C:\\\\Program Files\\\\Tailscale"
  temp_dir: "C:\\\\Windows\\\\Temp"
  state_dirs:
    - "C:\\\\ProgramData\\\\Tailscale"
    - "C:\\\\Users\\\\Administrator\\\\AppData\\\\Local\\\\Tailscale"

# 설치 패키지
package:
  download_base_url: "https://pkgs.tailscale.com"
  latest_alias: "tailscale-setup-latest-amd64.msi"
  installer_pattern: "tailscale-setup-*.msi"
  # msiexec 속성 (배포 기본값, 실행마다 변경하지 않음)
  properties:
    - "TS_ADMINCONSOLE=hide"
    - "TS_NETWORKDEVICES=hide"
    - "TS_NOLAUNCH=true"
    - "TS_INSTALLUPDATES=always"
    - "TS_UNATTENDEDMODE=always"
    - "TS_ALLOWINCOMINGCONNECTIONS=always"
  download_timeout: 60

# Tailscale 서비스
service:
  name: "Tailscale"
  process_names:
    - "tailscale-ipn.exe"
    - "tailscaled.exe"
  start_timeout: 15  # 서비스 Running 대기 (초)
  poll_interval: 1
  settle_interval: 2  # 서비스 중지 후 제거 전 대기 (초)

# 인증
auth:
  auth_key: ""  # 비워두면 실행 시 입력
  tags: []  # 예: ["eng", "prod"] -> tag:eng,tag:prod
  executable: "C:\\\\Program Files\\\\Tailscale\\\\tailscale.exe"
  up_timeout: 120

# 에이전트
agent:
  log_dir: "C:\\\\ProgramData\\\\TailscaleDeployAgent\\\\logs"
  log_level: "INFO"  # DEBUG, INFO, WARNING, ERROR
  rollback_on_failure: false  # 설치 후 단계 실패 시 자동 제거
"""


def create_sample(output_path: str):
    """샘플 설정 파일 생성"""
    directory = os.path.dirname(output_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(SAMPLE_CONFIG)
