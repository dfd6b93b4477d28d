"""
errors
------

lambda_kit 전역에서 사용하는 예외 타입.

AWS 호출 실패는 botocore 예외(ClientError 등)를 그대로 전파하고,
여기에는 "존재하지 않음"처럼 호출 측에서 분기해야 하는 경우만 정의한다.
"""

from __future__ import annotations


class LambdaKitError(Exception):
    """lambda_kit 예외의 공통 부모."""


class ConfigError(LambdaKitError):
    """설정 파일 형식 오류, 실행 역할 누락 등."""


class NodeModuleNotFound(LambdaKitError):
    def __init__(self, name: str, modules_dir: str) -> None:
        super().__init__(f"node module 을 찾을 수 없습니다: {name} ({modules_dir})")
        self.name = name
        self.modules_dir = modules_dir


class ResourceNotFound(LambdaKitError):
    """
    원격 Lambda 리소스(함수/별칭)가 없을 때 LambdaClient 가 던진다.
    존재 여부(bool)로의 변환은 deployer 에서만 한다.
    """

    def __init__(self, operation: str, params: dict) -> None:
        super().__init__(f"리소스 없음: {operation} {params}")
        self.operation = operation
        self.params = params
