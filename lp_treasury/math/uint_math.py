"""
Uint Math - 고정 폭 부호 없는 정수 연산

Solidity uint256 / uint128 연산을 비트 단위로 재현.
Python int는 임의 정밀도의 부호 있는 정수이므로, 모든 누산기 연산은
이 모듈을 거쳐 [0, 2^256) 범위로 강제된다.

핵심 규칙:
    wrapping_sub_256(a, b) = (a - b) mod 2^256       # unchecked 뺄셈
    mul_shift_128(x, l)    = (x × l) >> 128           # FullMath.mulDiv(x, l, Q128)
"""

from ..constants import UINT256_MAX, UINT128_MAX


def to_uint256(value: int) -> int:
    """값이 uint256 범위인지 검증

    부호 있는 값이 누산기 경로로 새어 들어오면 랩어라운드 규칙이 깨지므로
    조용히 보정하지 않고 거부한다.

    Args:
        value: 검증할 정수

    Returns:
        입력값 그대로

    Raises:
        ValueError: 음수이거나 2^256 이상인 경우
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"uint256은 정수여야 합니다: {value!r}")
    if value < 0 or value > UINT256_MAX:
        raise ValueError(f"uint256 범위를 벗어났습니다: {value}")
    return value


def to_uint128(value: int) -> int:
    """값이 uint128 범위인지 검증 (liquidity, tokensOwed)"""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"uint128은 정수여야 합니다: {value!r}")
    if value < 0 or value > UINT128_MAX:
        raise ValueError(f"uint128 범위를 벗어났습니다: {value}")
    return value


def wrapping_sub_256(a: int, b: int) -> int:
    """uint256 랩어라운드 뺄셈 (Solidity unchecked { a - b })

    Args:
        a: 피감수 (uint256)
        b: 감수 (uint256)

    Returns:
        (a - b) mod 2^256
    """
    return (to_uint256(a) - to_uint256(b)) & UINT256_MAX


def wrapping_add_128(a: int, b: int) -> int:
    """uint128 랩어라운드 덧셈 (tokensOwed += ...)"""
    return (to_uint128(a) + to_uint128(b)) & UINT128_MAX


def mul_shift_128(x: int, liquidity: int) -> int:
    """wide-multiply 후 128비트 우측 시프트

    FullMath.mulDiv(x, liquidity, Q128)과 동일. 512비트 곱을 만든 뒤
    Q128로 나누며 내림(truncation) 외의 반올림은 없다.

    Args:
        x: fee growth 차이 (uint256)
        liquidity: 포지션 유동성 (uint128)

    Returns:
        (x × liquidity) >> 128
    """
    return (to_uint256(x) * to_uint128(liquidity)) >> 128
