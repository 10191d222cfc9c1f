"""
Treasury service wiring

Builds the single TreasuryService instance shared by all request handlers.
"""
import logging
from typing import Optional

from lp_treasury.core import TreasuryService, build_service
from lp_treasury.data import (
    CoinGeckoPriceFeed,
    JsonRpcPoolStateReader,
    SubgraphPoolStateReader,
    load_snapshot,
)

from app.config import Settings, settings

logger = logging.getLogger(__name__)

_service: Optional[TreasuryService] = None


def create_service(config: Settings = settings) -> TreasuryService:
    """Create a TreasuryService from application settings

    Pool state is read from each RPC endpoint in order, then from the subgraph
    when SUBGRAPH_URL is set.
    """
    snapshot = load_snapshot(config.SNAPSHOT_PATH)

    readers = [JsonRpcPoolStateReader(url, pool_address=config.POOL_ADDRESS) for url in config.RPC_URLS]
    if config.SUBGRAPH_URL:
        readers.append(SubgraphPoolStateReader(endpoint=config.SUBGRAPH_URL))
    if not readers:
        logger.warning("No pool state readers configured; fee queries will return 503")

    feed = CoinGeckoPriceFeed(api_key=config.COINGECKO_API_KEY or None)

    return build_service(
        positions=snapshot.positions,
        ledger=snapshot.positions,
        config_store=snapshot.config,
        reward_store=snapshot.rewards,
        pool_readers=readers,
        reward_feed=feed,
        reward_token_id=config.REWARD_TOKEN_ID,
        token0_feed=feed,
        token0_id=config.TOKEN0_ID,
        token1_feed=feed,
        token1_id=config.TOKEN1_ID,
        decimals_0=config.TOKEN0_DECIMALS,
        decimals_1=config.TOKEN1_DECIMALS,
        price_interval=config.PRICE_REFRESH_INTERVAL,
        max_price_change=config.PRICE_MAX_CHANGE,
        price_ttl=config.PRICE_TTL,
        pool_ttl=config.POOL_TTL,
        cycle_interval=config.REWARD_CYCLE_INTERVAL,
        sample_interval=config.RANGE_SAMPLE_INTERVAL,
        enable_scheduler=config.SCHEDULER_ENABLED,
    )


def get_service() -> TreasuryService:
    """FastAPI dependency returning the shared service (created lazily)"""
    global _service
    if _service is None:
        _service = create_service()
    return _service


def set_service(service: Optional[TreasuryService]) -> None:
    """Replace the shared service (startup hook and tests)"""
    global _service
    _service = service
