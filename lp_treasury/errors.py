"""
트레저리 코어 오류 정의

- DataUnavailable: 재시도/중복 엔드포인트를 모두 소진한 읽기 실패 (0으로 대체하지 않음)
- NotFound: 알 수 없는 포지션/풀 식별자
- InvalidConfiguration: 트레저리 설정 누락/오류 (호출자에게 전파하지 않고 기본값 사용)
- ReadError / PriceFeedError: 외부 협력자 경계에서 발생하는 단일 읽기 실패
"""


class TreasuryError(Exception):
    """트레저리 코어 오류의 기반 클래스"""
    pass


class DataUnavailable(TreasuryError):
    """하위 읽기가 모든 재시도 후 실패"""
    pass


class NotFound(TreasuryError):
    """알 수 없는 포지션 또는 풀"""
    pass


class InvalidConfiguration(TreasuryError):
    """트레저리 설정에 필수 필드가 없거나 값이 잘못됨"""
    pass


class ReadError(TreasuryError):
    """풀 상태 / 원장 단일 읽기 실패"""
    pass


class PriceFeedError(TreasuryError):
    """가격 피드 조회 실패 (네트워크 / 파싱)"""
    pass
