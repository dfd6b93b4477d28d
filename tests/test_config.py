import json

import pytest

from lambda_kit.config import (
    DeployContext,
    FunctionConfig,
    ProjectConfig,
    apply_defaults,
    discover_functions,
    load_function_config,
    remote_function_name,
)
from lambda_kit.errors import ConfigError

from conftest import write_function


def _base_env() -> dict[str, str]:
    return {
        "AWS_REGION": "eu-west-1",
        "DEPLOY_ENVIRONMENT": "DEV",
        "DEPLOY_STAGE": "v0",
    }


def test_missing_required_env_raises_value_error(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    env = _base_env()

    # 필수 값 중 DEPLOY_STAGE 만 비워둔다.
    for key, value in env.items():
        if key == "DEPLOY_STAGE":
            continue
        monkeypatch.setenv(key, value)
    monkeypatch.delenv("DEPLOY_STAGE", raising=False)

    with pytest.raises(ValueError) as excinfo:
        ProjectConfig.from_env()

    assert "DEPLOY_STAGE" in str(excinfo.value)
    assert "AWS_REGION" not in str(excinfo.value)


def test_from_env_defaults_and_context(monkeypatch: pytest.MonkeyPatch) -> None:
    for key, value in _base_env().items():
        monkeypatch.setenv(key, value)
    monkeypatch.delenv("LAMBDAS_DIR", raising=False)
    monkeypatch.setenv("ROLE_PREFIX_WITH_ENVIRONMENT", "no")

    cfg = ProjectConfig.from_env("/project")

    assert cfg.lambdas_dir == "lambdas"
    assert cfg.path(cfg.lambdas_dir) == "/project/lambdas"
    assert cfg.role_prefix_with_environment is False
    assert cfg.context == DeployContext(environment="DEV", stage="v0")


def test_apply_defaults_fills_only_missing_params() -> None:
    cfg = apply_defaults(
        FunctionConfig(
            identifier="foo",
            handler_path="/tmp/foo",
            params={"Runtime": "nodejs18.x", "Timeout": 60},
        )
    )

    assert cfg.params["Runtime"] == "nodejs18.x"
    assert cfg.params["Timeout"] == 60
    assert cfg.params["FunctionName"] == "foo"
    assert cfg.params["Handler"] == "lambda.handler"
    assert cfg.params["Role"] == "PLEASE-CONFIGURE-AN-EXECUTION-ROLE-FOR-foo"
    assert cfg.params["Publish"] is False
    assert cfg.modules == ()


def test_apply_defaults_keeps_explicit_falsy_values_and_does_not_mutate_input() -> None:
    original_params = {"Publish": True, "Timeout": 0}
    source = FunctionConfig(identifier="foo", handler_path="/tmp/foo", params=original_params)

    cfg = apply_defaults(source)

    assert cfg.params["Publish"] is True
    assert cfg.params["Timeout"] == 0
    assert original_params == {"Publish": True, "Timeout": 0}
    assert source.params is original_params


def test_remote_function_name_prefixes_environment() -> None:
    assert remote_function_name("foo", DeployContext("PROD", "v1")) == "PROD-foo"


def test_load_function_config_resolves_handler_path(tmp_path) -> None:
    function_dir = write_function(
        tmp_path,
        "foo",
        {"modules": ["bar"], "includeEndpoints": True, "params": {"Timeout": 30}},
    )

    cfg = load_function_config(str(tmp_path), "foo")

    assert cfg.identifier == "foo"
    assert cfg.handler_path == str(function_dir / "lambda")
    assert cfg.modules == ("bar",)
    assert cfg.include_endpoints is True
    assert cfg.params["Timeout"] == 30
    assert cfg.params["Runtime"] == "nodejs4.3"


def test_load_function_config_rejects_invalid_modules(tmp_path) -> None:
    write_function(tmp_path, "foo", {"modules": "bar"})

    with pytest.raises(ConfigError) as excinfo:
        load_function_config(str(tmp_path), "foo")

    assert "modules" in str(excinfo.value)


def test_load_function_config_rejects_malformed_json(tmp_path) -> None:
    function_dir = write_function(tmp_path, "foo")
    (function_dir / "config.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_function_config(str(tmp_path), "foo")


def test_discover_functions_only_lists_dirs_with_config(tmp_path) -> None:
    write_function(tmp_path, "b")
    write_function(tmp_path, "a")
    (tmp_path / "not-a-function").mkdir()
    (tmp_path / "README.md").write_text(json.dumps({}), encoding="utf-8")

    assert discover_functions(str(tmp_path)) == ["a", "b"]
    assert discover_functions(str(tmp_path / "missing")) == []


def test_identifier_always_comes_from_directory_name(tmp_path) -> None:
    # config.json 의 identifier 로 원격 이름이 디렉토리 이름과 어긋나면 안 된다.
    write_function(tmp_path, "foo", {"identifier": "renamed"})

    cfg = load_function_config(str(tmp_path), "foo")

    assert cfg.identifier == "foo"
    assert cfg.params["FunctionName"] == "foo"
    assert discover_functions(str(tmp_path)) == [cfg.identifier]
