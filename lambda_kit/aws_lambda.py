"""
aws_lambda
----------

AWS Lambda 함수 관리 API 에 대한 얇은 래퍼.

각 메서드는 boto3 요청 1회에 대응하며 재시도하지 않는다.
조회(get_function/get_alias)의 ResourceNotFoundException 만 ResourceNotFound 로
바꾸고, 그 외 botocore 예외는 그대로 전파한다.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import ClientError

from .errors import ResourceNotFound
from .logging_utils import get_logger


logger = get_logger(__name__)

NOT_FOUND_CODE = "ResourceNotFoundException"


def _is_not_found(e: ClientError) -> bool:
    return e.response.get("Error", {}).get("Code") == NOT_FOUND_CODE


class LambdaClient:
    def __init__(self, region: str, client: Optional[Any] = None) -> None:
        self.region = region
        self._client = client if client is not None else boto3.client("lambda", region_name=region)

    def _lookup(self, operation: str, **params: Any) -> Dict[str, Any]:
        logger.debug("Lambda API 호출: %s %s", operation, params)
        try:
            return getattr(self._client, operation)(**params)
        except ClientError as e:
            if _is_not_found(e):
                raise ResourceNotFound(operation, params) from e
            raise

    def _call(self, operation: str, **params: Any) -> Dict[str, Any]:
        # 패키지 bytes 가 로그에 찍히지 않도록 키만 남긴다.
        logger.debug("Lambda API 호출: %s (%s)", operation, ", ".join(sorted(params)))
        return getattr(self._client, operation)(**params)

    def get_function(self, function_name: str) -> Dict[str, Any]:
        return self._lookup("get_function", FunctionName=function_name)

    def create_function(self, **params: Any) -> Dict[str, Any]:
        return self._call("create_function", **params)

    def update_function_code(self, function_name: str, zip_file: bytes, publish: bool = False) -> Dict[str, Any]:
        return self._call(
            "update_function_code",
            FunctionName=function_name,
            ZipFile=zip_file,
            Publish=publish,
        )

    def update_function_configuration(self, **params: Any) -> Dict[str, Any]:
        return self._call("update_function_configuration", **params)

    def publish_version(self, function_name: str) -> Dict[str, Any]:
        return self._call("publish_version", FunctionName=function_name)

    def get_alias(self, function_name: str, name: str) -> Dict[str, Any]:
        return self._lookup("get_alias", FunctionName=function_name, Name=name)

    def create_alias(self, function_name: str, name: str, function_version: str) -> Dict[str, Any]:
        return self._call(
            "create_alias",
            FunctionName=function_name,
            Name=name,
            FunctionVersion=function_version,
        )

    def update_alias(self, function_name: str, name: str, function_version: str) -> Dict[str, Any]:
        return self._call(
            "update_alias",
            FunctionName=function_name,
            Name=name,
            FunctionVersion=function_version,
        )
