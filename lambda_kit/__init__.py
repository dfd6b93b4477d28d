"""
lambda_kit
----------

AWS Lambda 배포 CLI 패키지.
함수 코드와 재사용 node module 을 zip 으로 묶어 Lambda 를 생성/업데이트하고,
새 버전을 발행한 뒤 stage 이름의 별칭을 연결한다.
결과로 API Gateway 연동에 필요한 별칭 ARN/버전 정보를 돌려준다.
"""

__all__ = [
    "config",
    "deployer",
    "orchestrator",
]
