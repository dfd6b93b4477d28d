"""
pytest 설정:

로컬 작업 환경에 설치된 다른 버전의 lambda_kit 패키지가 존재할 때,
`pytest` 실행 시 site-packages 쪽이 먼저 import 되어 테스트가 깨질 수 있다.

테스트는 항상 현재 레포의 소스를 대상으로 해야 하므로, repo root 를 sys.path 최상단에 고정한다.
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import pytest
from botocore.exceptions import ClientError

from lambda_kit.errors import ResourceNotFound


def pytest_configure() -> None:
    repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    if repo_root not in sys.path:
        sys.path.insert(0, repo_root)


@pytest.fixture(autouse=True)
def _fake_aws_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    # 테스트 중 실수로 실제 AWS 계정을 호출하지 않도록 더미 자격증명을 고정한다.
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


def write_module(modules_dir: Path, name: str, deps: list[str] | None = None) -> Path:
    """`<modules_dir>/<name>/package.json` + index.js 를 만든다."""
    module_dir = modules_dir / name
    module_dir.mkdir(parents=True, exist_ok=True)
    manifest = {"name": name, "dependencies": {d: "*" for d in (deps or [])}}
    (module_dir / "package.json").write_text(json.dumps(manifest), encoding="utf-8")
    (module_dir / "index.js").write_text(f"module.exports = '{name}';\n", encoding="utf-8")
    return module_dir


def write_function(lambdas_dir: Path, identifier: str, config: dict | None = None) -> Path:
    """`<lambdas_dir>/<identifier>/config.json` + lambda/lambda.js 를 만든다."""
    function_dir = lambdas_dir / identifier
    handler_dir = function_dir / "lambda"
    handler_dir.mkdir(parents=True, exist_ok=True)
    (handler_dir / "lambda.js").write_text("exports.handler = () => {};\n", encoding="utf-8")
    (function_dir / "config.json").write_text(json.dumps(config or {}), encoding="utf-8")
    return function_dir


class FakeLambdaClient:
    """LambdaClient 와 같은 인터페이스를 가진 메모리 구현."""

    def __init__(self, exists: bool = False, alias_version: str | None = None,
                 version: str = "5", fail_on: str | None = None) -> None:
        self.exists = exists
        self.alias_version = alias_version
        self.version = version
        self.fail_on = fail_on
        self.calls: list[tuple[str, dict]] = []

    def _record(self, name: str, **params):
        self.calls.append((name, params))
        if self.fail_on == name:
            raise ClientError({"Error": {"Code": "ServiceException", "Message": "boom"}}, name)

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def params_of(self, name: str) -> dict:
        return next(p for n, p in self.calls if n == name)

    def get_function(self, function_name):
        self._record("get_function", FunctionName=function_name)
        if not self.exists:
            raise ResourceNotFound("get_function", {"FunctionName": function_name})
        return {"Configuration": {"FunctionName": function_name}}

    def create_function(self, **params):
        self._record("create_function", **params)
        return {"FunctionName": params["FunctionName"]}

    def update_function_code(self, function_name, zip_file, publish=False):
        self._record("update_function_code", FunctionName=function_name, ZipFile=zip_file, Publish=publish)
        return {"FunctionName": function_name}

    def update_function_configuration(self, **params):
        self._record("update_function_configuration", **params)
        return {"FunctionName": params["FunctionName"]}

    def publish_version(self, function_name):
        self._record("publish_version", FunctionName=function_name)
        return {"Version": self.version}

    def get_alias(self, function_name, name):
        self._record("get_alias", FunctionName=function_name, Name=name)
        if self.alias_version is None:
            raise ResourceNotFound("get_alias", {"FunctionName": function_name, "Name": name})
        return {"FunctionVersion": self.alias_version}

    def _alias(self, op, function_name, name, function_version):
        self._record(op, FunctionName=function_name, Name=name, FunctionVersion=function_version)
        return {
            "AliasArn": f"arn:aws:lambda:eu-west-1:123456789012:function:{function_name}:{name}",
            "FunctionVersion": function_version,
        }

    def create_alias(self, function_name, name, function_version):
        return self._alias("create_alias", function_name, name, function_version)

    def update_alias(self, function_name, name, function_version):
        return self._alias("update_alias", function_name, name, function_version)
