"""
Configuration settings for the treasury backend API

Loads environment variables and provides application configuration.
"""
import os
from typing import List
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _split(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings:
    """Application settings"""

    # API Configuration
    API_VERSION: str = "1.0.0"
    API_TITLE: str = "Liquidity Mining Treasury API"
    API_DESCRIPTION: str = "Unclaimed fee accounting and incentive rewards for Uniswap V3 positions"

    # Pool state sources (RPC endpoints are tried in order, then the subgraph)
    RPC_URLS: List[str] = _split(os.getenv("RPC_URLS", "https://mainnet.base.org"))
    SUBGRAPH_URL: str = os.getenv("SUBGRAPH_URL", "")
    POOL_ADDRESS: str = os.getenv("POOL_ADDRESS", "0x82da478b1382b951cbad01beb9ed459cdb16458e")

    # Tokens
    REWARD_TOKEN_ID: str = os.getenv("REWARD_TOKEN_ID", "kilt-protocol")
    TOKEN0_ID: str = os.getenv("TOKEN0_ID", "ethereum")
    TOKEN1_ID: str = os.getenv("TOKEN1_ID", "kilt-protocol")
    TOKEN0_DECIMALS: int = int(os.getenv("TOKEN0_DECIMALS", 18))
    TOKEN1_DECIMALS: int = int(os.getenv("TOKEN1_DECIMALS", 18))

    # Price feed
    COINGECKO_API_KEY: str = os.getenv("COINGECKO_API_KEY", "")
    PRICE_REFRESH_INTERVAL: float = float(os.getenv("PRICE_REFRESH_INTERVAL", 30))
    PRICE_MAX_CHANGE: float = float(os.getenv("PRICE_MAX_CHANGE", 0.5))

    # Cache TTLs (seconds)
    PRICE_TTL: float = float(os.getenv("PRICE_TTL", 15))
    POOL_TTL: float = float(os.getenv("POOL_TTL", 30))

    # Reward cycle
    SNAPSHOT_PATH: str = os.getenv("SNAPSHOT_PATH", "data/treasury_snapshot.json")
    SCHEDULER_ENABLED: bool = os.getenv("SCHEDULER_ENABLED", "True").lower() == "true"
    REWARD_CYCLE_INTERVAL: float = float(os.getenv("REWARD_CYCLE_INTERVAL", 3600))
    RANGE_SAMPLE_INTERVAL: float = float(os.getenv("RANGE_SAMPLE_INTERVAL", 900))

    # CORS Configuration
    CORS_ORIGINS: List[str] = _split(os.getenv("CORS_ORIGINS", "http://localhost:3000"))

    # Server Configuration
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", 8000))
    DEBUG: bool = os.getenv("DEBUG", "False").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


# Create global settings instance
settings = Settings()
