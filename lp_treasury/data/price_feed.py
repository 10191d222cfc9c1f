"""
시장 가격 피드

외부 시장 가격 API에서 토큰 USD 가격을 조회한다.
PriceOracle이 고정 주기로 호출하며, 실패는 PriceFeedError로 보고한다.
"""

import math
from abc import ABC, abstractmethod
from typing import Optional

import requests

from ..errors import PriceFeedError


COINGECKO_BASE_URL = "https://api.coingecko.com/api/v3"


class PriceFeed(ABC):
    """토큰 식별자 → USD 가격"""

    @abstractmethod
    def fetch_price(self, token_id: str) -> float:
        """토큰 USD 가격

        구현은 네트워크 / 응답 형식 오류를 PriceFeedError로 감싸야 한다.

        Raises:
            PriceFeedError: 가격을 얻지 못한 경우
        """


class CoinGeckoPriceFeed(PriceFeed):
    """CoinGecko simple/price 엔드포인트 클라이언트

    사용법:
        feed = CoinGeckoPriceFeed()
        price = feed.fetch_price("kilt-protocol")
    """

    def __init__(
        self,
        base_url: str = COINGECKO_BASE_URL,
        api_key: Optional[str] = None,
        timeout: float = 10.0
    ):
        """
        Args:
            base_url: API 베이스 URL
            api_key: CoinGecko demo API 키 (선택)
            timeout: 요청 타임아웃 (초)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = requests.Session()
        if api_key:
            self._session.headers["x-cg-demo-api-key"] = api_key

    def fetch_price(self, token_id: str) -> float:
        url = f"{self.base_url}/simple/price"
        try:
            response = self._session.get(
                url,
                params={"ids": token_id, "vs_currencies": "usd"},
                timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.Timeout as e:
            raise PriceFeedError(f"가격 조회 타임아웃 ({self.timeout}초): {token_id}") from e
        except requests.exceptions.RequestException as e:
            raise PriceFeedError(f"가격 조회 네트워크 오류: {e}") from e
        except ValueError as e:
            raise PriceFeedError(f"가격 응답을 해석할 수 없습니다: {e}") from e

        try:
            price = float(data[token_id]["usd"])
        except (KeyError, TypeError, ValueError) as e:
            raise PriceFeedError(f"응답에 {token_id} 가격이 없습니다") from e

        if not math.isfinite(price) or price <= 0:
            raise PriceFeedError(f"유효하지 않은 가격: {price}")

        return price


class StaticPriceFeed(PriceFeed):
    """고정 가격 피드 (스테이블코인 등)"""

    def __init__(self, price: float):
        self.price = price

    def fetch_price(self, token_id: str) -> float:
        return self.price
