"""
입력 해석 모듈 테스트
"""

import pytest
from conftest import ScriptedPrompt
from tailscale_deploy_agent.config import InstallConfig
from tailscale_deploy_agent.errors import InputError
from tailscale_deploy_agent.inputs import InputResolver, normalize_tags, split_tags


def config_with(auth_key="", tags=()):
    return InstallConfig.from_dict({"auth": {"auth_key": auth_key, "tags": list(tags)}})


@pytest.mark.parametrize("tags", [
    [],
    ["eng"],
    ["eng", "tag:prod"],
    ["  ", "", "tag:", "ops "],
    ["tag:eng", "eng", "prod", "tag:prod"],
])
def test_normalize_tags_idempotent(tags):
    """정규화 멱등성, 접두사 및 빈 값 제거"""
    once = normalize_tags(tags)
    assert normalize_tags(once) == once
    assert all(tag.startswith("tag:") for tag in once)
    assert all(tag[len("tag:"):].strip() for tag in once)


def test_normalize_tags_prefix_and_order():
    """접두사 추가 및 순서 유지"""
    assert normalize_tags(["eng", " tag:prod ", "", "eng"]) == ("tag:eng", "tag:prod")


def test_split_tags():
    """쉼표/공백 구분"""
    assert split_tags("eng, prod  tag:ops,,") == ("eng", "prod", "tag:ops")
    assert split_tags("") == ()
    assert split_tags(None) == ()


def test_auth_key_explicit_wins():
    """명시 입력이 설정 기본값보다 우선"""
    prompt = ScriptedPrompt()
    resolver = InputResolver(config_with(auth_key="B"), prompt=prompt)
    assert resolver.resolve_auth_key("A") == "A"
    assert prompt.questions == []


def test_auth_key_default_used():
    """명시 입력이 없으면 설정 기본값"""
    prompt = ScriptedPrompt()
    resolver = InputResolver(config_with(auth_key="B"), prompt=prompt)
    assert resolver.resolve_auth_key(None) == "B"
    assert prompt.questions == []


def test_auth_key_prompt_loops_until_non_empty():
    """입력이 비어 있으면 다시 묻는다"""
    prompt = ScriptedPrompt("", "   ", "tskey-prompted")
    resolver = InputResolver(config_with(), prompt=prompt)

    assert resolver.resolve_auth_key(None) == "tskey-prompted"
    assert len(prompt.questions) == 3
    assert all(password for _, password in prompt.questions)


def test_auth_key_without_terminal_is_input_error():
    """입력 불가 시 빈 키로 진행하지 않음"""
    resolver = InputResolver(config_with(), prompt=ScriptedPrompt(EOFError()))
    with pytest.raises(InputError):
        resolver.resolve_auth_key(None)


def test_auth_key_attempt_limit():
    """시도 횟수 제한"""
    resolver = InputResolver(config_with(), prompt=ScriptedPrompt("", ""), max_attempts=2)
    with pytest.raises(InputError):
        resolver.resolve_auth_key(None)


def test_tags_precedence():
    """태그: 명시 입력 > 설정 기본값 > 입력"""
    prompt = ScriptedPrompt("ops, qa")
    resolver = InputResolver(config_with(tags=["default"]), prompt=prompt)
    assert resolver.resolve_tags(["eng,prod"]) == ("tag:eng", "tag:prod")
    assert resolver.resolve_tags([]) == ("tag:default",)
    assert prompt.questions == []

    resolver = InputResolver(config_with(), prompt=prompt)
    assert resolver.resolve_tags([]) == ("tag:ops", "tag:qa")


def test_tags_prompt_may_be_empty():
    """태그 입력은 비워둘 수 있음"""
    resolver = InputResolver(config_with(), prompt=ScriptedPrompt(""))
    assert resolver.resolve_tags(()) == ()


def test_resolve_connect_hides_auth_key():
    """요청 repr 에 인증 키가 노출되지 않음"""
    resolver = InputResolver(config_with(auth_key="tskey-secret", tags=["eng"]), prompt=ScriptedPrompt())
    request = resolver.resolve_connect()

    assert request.auth_key == "tskey-secret"
    assert request.tags == ("tag:eng",)
    assert "tskey-secret" not in repr(request)
