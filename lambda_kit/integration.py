"""
integration
-----------

배포된 Lambda 별칭을 API Gateway 에 연결하기 위한 데이터.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Dict

from .config import FunctionConfig


HTTP_METHODS = {"get", "put", "post", "delete", "options", "head", "patch"}
OPERATION_EXTENSION = "x-lambda-kit"
INTEGRATION_EXTENSION = "x-amazon-apigateway-integration"


@dataclass(frozen=True)
class IntegrationDescriptor:
    function: FunctionConfig
    function_version: str
    alias_arn: str

    @property
    def identifier(self) -> str:
        return self.function.identifier

    def integration_uri(self, region: str) -> str:
        return (
            f"arn:aws:apigateway:{region}:lambda:path/2015-03-31/functions/"
            f"{self.alias_arn}/invocations"
        )

    def inject(self, api_spec: Dict[str, Any], region: str) -> Dict[str, Any]:
        """
        Swagger/OpenAPI 문서의 operation 중 `x-lambda-kit.lambda` 가
        이 함수 identifier 인 것에 aws_proxy integration 을 채운 사본을 반환한다.
        """
        result = copy.deepcopy(api_spec)
        for path_item in (result.get("paths") or {}).values():
            for method, operation in path_item.items():
                if method.lower() not in HTTP_METHODS or not isinstance(operation, dict):
                    continue
                target = (operation.get(OPERATION_EXTENSION) or {}).get("lambda")
                if target != self.identifier:
                    continue
                operation[INTEGRATION_EXTENSION] = {
                    "type": "aws_proxy",
                    "httpMethod": "POST",
                    "uri": self.integration_uri(region),
                }
        return result
