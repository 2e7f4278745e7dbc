"""
테스트 공용 픽스처 및 가짜 외부 구성요소
"""

import subprocess

import pytest
import requests

from tailscale_deploy_agent.config import InstallConfig
from tailscale_deploy_agent.logger import init_logger
from tailscale_deploy_agent.models import ServiceState

RUNNING_OUTPUT = """
SERVICE_NAME: Tailscale
        TYPE               : 10  WIN32_OWN_PROCESS
        STATE              : 4  RUNNING
                                (STOPPABLE, NOT_PAUSABLE, ACCEPTS_SHUTDOWN)
"""


@pytest.fixture(autouse=True)
def agent_logger(tmp_path):
    """로그를 임시 디렉토리로 보냄"""
    return init_logger(str(tmp_path / "logs"), "DEBUG", False)


@pytest.fixture
def config(tmp_path):
    return InstallConfig.from_dict({
        "paths": {
            "install_dir": str(tmp_path / "install"),
            "temp_dir": str(tmp_path / "temp"),
            "state_dirs": [str(tmp_path / "machine-state"), str(tmp_path / "user-state")],
        },
        "auth": {"executable": "tailscale"},
        "agent": {"log_dir": str(tmp_path / "logs")},
    })


class FakeRunner:
    """subprocess.run 대체: 명령 기록 및 접두사 기반 결과 반환"""

    def __init__(self):
        self.calls = []
        self.results = {}

    def set(self, *prefix, returncode=0, stdout="", error=None):
        self.results[prefix] = (returncode, stdout, error)

    def __call__(self, args, **kwargs):
        args = list(args)
        self.calls.append(args)
        best = None
        for prefix, result in self.results.items():
            if tuple(args[:len(prefix)]) == prefix:
                if best is None or len(prefix) > len(best[0]):
                    best = (prefix, result)
        returncode, stdout, error = best[1] if best else (0, "", None)
        if error is not None:
            raise error
        return subprocess.CompletedProcess(args, returncode, stdout, "")

    def commands(self, executable):
        return [call for call in self.calls if call[0] == executable]


@pytest.fixture
def fake_run(monkeypatch):
    runner = FakeRunner()
    monkeypatch.setattr("tailscale_deploy_agent.system.subprocess.run", runner)
    return runner


class FakeResponse:
    def __init__(self, status_code=200, headers=None, content=b""):
        self.status_code = status_code
        self.headers = headers or {}
        self.content = content

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")

    def iter_content(self, chunk_size=1):
        yield self.content

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeSession:
    """requests.Session 대체"""

    def __init__(self, location="/stable/tailscale-setup-1.2.3-amd64.msi",
                 content=b"MSI", head_status=302, get_status=200, head_error=None):
        self.location = location
        self.content = content
        self.head_status = head_status
        self.get_status = get_status
        self.head_error = head_error
        self.calls = []

    def head(self, url, **kwargs):
        self.calls.append(("HEAD", url, kwargs))
        if self.head_error:
            raise self.head_error
        headers = {"Location": self.location} if self.location else {}
        return FakeResponse(self.head_status, headers)

    def get(self, url, **kwargs):
        self.calls.append(("GET", url, kwargs))
        return FakeResponse(self.get_status, content=self.content)


class FakePackageManager:
    def __init__(self, install_code=0, uninstall_code=0):
        self.install_code = install_code
        self.uninstall_code = uninstall_code
        self.calls = []

    def install(self, artifact_path, properties):
        self.calls.append(("install", artifact_path, tuple(properties)))
        return self.install_code

    def uninstall(self, target):
        self.calls.append(("uninstall", target))
        return self.uninstall_code


class FakeService:
    def __init__(self, states=(ServiceState.RUNNING,), start_state=ServiceState.STARTING,
                 stop_result=(True, "중지됨"), start_error=None):
        self.states = list(states)
        self.start_error = start_error
        self.start_state = start_state
        self.stop_result = stop_result
        self.status_calls = 0
        self.calls = []

    def start(self):
        self.calls.append("start")
        if self.start_error:
            raise self.start_error
        return self.start_state

    def status(self):
        self.calls.append("status")
        self.status_calls += 1
        state = self.states.pop(0) if len(self.states) > 1 else self.states[0]
        if isinstance(state, BaseException):
            raise state
        return state

    def stop(self):
        self.calls.append("stop")
        return self.stop_result

    def terminate_processes(self, names):
        self.calls.append(("terminate", tuple(names)))
        return []


class FakeAgentCLI:
    def __init__(self, exit_code=0):
        self.exit_code = exit_code
        self.calls = []

    def up(self, auth_key, tags):
        self.calls.append((auth_key, tuple(tags)))
        return self.exit_code


class SleepRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


class ScriptedPrompt:
    """미리 정한 응답을 순서대로 돌려주는 프롬프트"""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.questions = []

    def __call__(self, message, password=False):
        self.questions.append((message, password))
        answer = self.answers.pop(0)
        if isinstance(answer, BaseException):
            raise answer
        return answer
