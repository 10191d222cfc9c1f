"""
Data layer for the liquidity-mining treasury

외부 협력자 경계, 스냅샷 데이터 타입, 풀 상태 리더 및 가격 피드
"""

from .types import Position, PoolState, TreasuryConfig, RewardRecord, CacheEntry, LedgerEntry
from .readers import PoolStateReader, PositionReader, ConfigStore, LiquidityLedger, RewardStore
from .price_feed import PriceFeed, CoinGeckoPriceFeed, StaticPriceFeed
from .rpc_reader import JsonRpcPoolStateReader
from .graph_client import SubgraphPoolStateReader, GraphClientError
from .memory import (
    InMemoryPositionStore,
    InMemoryConfigStore,
    InMemoryRewardStore,
    load_snapshot,
)
